"""
Fund — модели фонда, его комиссий, статистики и LP позиции

Immutable Pydantic модели записей FUND_FUN и LP_POSIT.
Все изменения создают новый экземпляр (model_copy), поэтому любая
ошибка движка оставляет исходные записи нетронутыми.
"""

from typing import Final

from pydantic import BaseModel, Field, field_validator, model_validator

from fund_engine.core.domain.units import I64, U16, U32, U64, NonNegI64, Pubkey, Timestamp
from fund_engine.core.math.fixed_point import INITIAL_NAV_E6, SECONDS_PER_DAY

# Максимальная длина имени фонда (байт UTF-8)
MAX_FUND_NAME_LEN: Final[int] = 32

# Интервал сбора комиссий по умолчанию (1 день)
DEFAULT_FEE_COLLECTION_INTERVAL: Final[int] = SECONDS_PER_DAY


# =============================================================================
# FEE CONFIG
# =============================================================================


class FeeConfig(BaseModel):
    """
    Условия комиссий фонда.

    Верхние границы bps (management/performance) проверяются движком
    при создании и изменении фонда, чтобы вернуть типизированную ошибку.
    """

    management_fee_bps: U16 = Field(0, description="Годовая management fee (bps от AUM)")
    performance_fee_bps: U16 = Field(0, description="Performance fee (bps от прибыли)")
    use_high_water_mark: bool = Field(
        True, description="Performance fee только выше high-water mark"
    )
    fee_collection_interval: NonNegI64 = Field(
        DEFAULT_FEE_COLLECTION_INTERVAL, description="Минимальный интервал сбора (сек)"
    )

    model_config = {"frozen": True}


# =============================================================================
# FUND STATS
# =============================================================================


class FundStats(BaseModel):
    """Накопительная статистика фонда (все суммы в e6)."""

    total_deposits_e6: I64 = 0
    total_withdrawals_e6: I64 = 0
    total_realized_pnl_e6: I64 = 0
    total_management_fee_e6: I64 = 0
    total_performance_fee_e6: I64 = 0

    current_nav_e6: I64 = Field(INITIAL_NAV_E6, description="Последний сохранённый NAV")
    high_water_mark_e6: I64 = Field(INITIAL_NAV_E6, description="High-water mark NAV")

    total_shares: U64 = 0
    last_fee_collection_ts: Timestamp = 0
    lp_count: U32 = 0

    model_config = {"frozen": True}


# =============================================================================
# FUND
# =============================================================================


class Fund(BaseModel):
    """
    Инвестиционный пул.

    Закрытие фонда — терминальный переход (is_closed), а не удаление записи.
    """

    # Идентификация
    address: Pubkey = Field(..., description="Ключ записи фонда")
    manager: Pubkey = Field(..., description="Управляющий фондом")
    name: str = Field(..., description="Имя фонда (1..32 байт UTF-8)")
    fund_vault: Pubkey
    share_mint: Pubkey
    fund_index: U64 = 0

    # Условия и статистика
    fee_config: FeeConfig = Field(default_factory=FeeConfig)
    stats: FundStats = Field(default_factory=FundStats)

    # Флаги
    is_open: bool = True
    is_paused: bool = False
    is_closed: bool = False
    is_insurance_fund: bool = Field(False, description="Фонд является буфером insurance fund")

    # Время
    created_at: Timestamp = 0
    last_update_ts: Timestamp = 0

    model_config = {"frozen": True}

    @field_validator("name")
    @classmethod
    def validate_name_length(cls, v: str) -> str:
        size = len(v.encode("utf-8"))
        if size == 0 or size > MAX_FUND_NAME_LEN:
            raise ValueError(f"Fund name must be 1..{MAX_FUND_NAME_LEN} bytes, got {size}")
        return v

    @model_validator(mode="after")
    def validate_closed_state(self) -> "Fund":
        if self.is_closed and self.is_open:
            raise ValueError("Closed fund cannot be open")
        return self

    def can_deposit(self) -> bool:
        return self.is_open and not self.is_paused and not self.is_closed

    def can_withdraw(self) -> bool:
        return not self.is_paused


# =============================================================================
# LP POSITION
# =============================================================================


class LPPosition(BaseModel):
    """
    Доля одного инвестора в одном фонде.

    Уникальна для пары (fund, investor). deposit_nav_e6 — NAV последнего
    депозита, используется только для отображения PnL.
    """

    fund: Pubkey
    investor: Pubkey
    shares: U64 = 0
    deposit_nav_e6: I64 = INITIAL_NAV_E6
    total_deposited_e6: I64 = 0
    total_withdrawn_e6: I64 = 0
    deposited_at: Timestamp = 0
    last_deposit_ts: Timestamp = 0
    last_update_ts: Timestamp = 0

    model_config = {"frozen": True}

    def is_empty(self) -> bool:
        return self.shares == 0
