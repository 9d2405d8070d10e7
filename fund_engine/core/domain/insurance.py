"""
InsuranceFundConfig — риск-буфер, привязанный к фонду

Баланс буфера не хранится в записи: его ведёт внешний vault и передаёт
в каждую операцию. Запись хранит накопительные потоки, часовой snapshot
баланса и флаг ADL.
"""

from enum import Enum
from typing import Final

from pydantic import BaseModel, Field

from fund_engine.core.domain.units import I64, U64, NonNegI64, Pubkey, Timestamp
from fund_engine.core.math.fixed_point import SECONDS_PER_DAY, saturating_add, saturating_sub

# Задержка вывода из insurance fund по умолчанию (7 дней)
DEFAULT_WITHDRAWAL_DELAY_SECS: Final[int] = 7 * SECONDS_PER_DAY


class ADLTriggerReason(str, Enum):
    """Причина срабатывания ADL (в порядке приоритета проверки)."""

    NONE = "NONE"
    BANKRUPTCY = "BANKRUPTCY"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    RAPID_DECLINE = "RAPID_DECLINE"


class InsuranceFundConfig(BaseModel):
    """Конфигурация и накопительная статистика insurance fund."""

    fund: Pubkey = Field(..., description="Фонд, выступающий буфером")

    # Потоки (e6)
    total_liquidation_income_e6: I64 = 0
    total_adl_profit_e6: I64 = 0
    total_shortfall_payout_e6: I64 = 0

    # ADL
    adl_trigger_threshold_e6: NonNegI64 = Field(0, description="Минимальный баланс буфера")
    adl_trigger_count: U64 = 0
    is_adl_in_progress: bool = False

    # Часовой snapshot баланса
    balance_1h_ago_e6: I64 = 0
    last_snapshot_ts: Timestamp = 0

    withdrawal_delay_secs: NonNegI64 = DEFAULT_WITHDRAWAL_DELAY_SECS
    authorized_caller: Pubkey = Field(..., description="Единственный допустимый CPI caller")
    last_update_ts: Timestamp = 0

    model_config = {"frozen": True}

    def total_income_e6(self) -> int:
        """Суммарный доход: ликвидации + ADL прибыль."""
        return saturating_add(self.total_liquidation_income_e6, self.total_adl_profit_e6)

    def net_income_e6(self) -> int:
        """Чистый доход: суммарный доход минус выплаты по shortfall."""
        return saturating_sub(self.total_income_e6(), self.total_shortfall_payout_e6)
