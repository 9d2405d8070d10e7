"""Insurance Fund Risk Engine — доходы буфера, покрытие shortfall и решение об ADL.

Решение об ADL (строгий порядок приоритета, сообщается только первое совпадение):
1. BANKRUPTCY           — shortfall > 0 и balance < shortfall
2. INSUFFICIENT_BALANCE — balance < adl_trigger_threshold
3. RAPID_DECLINE        — balance_1h_ago > 0 и balance < balance_1h_ago × 70 / 100
4. NONE

Баланс буфера ведёт внешний vault и передаёт в операции; запись хранит
потоки, часовой snapshot и флаг ADL. Пока флаг поднят, погашение LP долей
из буфера запрещено (ADLInProgress).
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fund_engine.core.domain.fund import Fund, LPPosition
from fund_engine.core.domain.insurance import (
    DEFAULT_WITHDRAWAL_DELAY_SECS,
    ADLTriggerReason,
    InsuranceFundConfig,
)
from fund_engine.core.domain.program import FundConfig
from fund_engine.core.errors import (
    ADLRequired,
    AdminRequired,
    InvalidAmount,
    InvalidFundAccount,
    ProgramPaused,
    UnauthorizedCaller,
)
from fund_engine.core.math.fixed_point import (
    SECONDS_PER_HOUR,
    mul_div,
    saturating_add,
    saturating_add_u64,
)
from fund_engine.lp.lifecycle import (
    LPLifecycle,
    RedemptionResult,
    apply_realized_pnl,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsurancePolicy:
    """Параметры risk engine.

    - rapid_decline_pct: баланс ниже этого процента от часового snapshot → RAPID_DECLINE
    - snapshot_interval_secs: минимальный интервал обновления snapshot
    """
    rapid_decline_pct: int = 70
    snapshot_interval_secs: int = SECONDS_PER_HOUR
    default_withdrawal_delay_secs: int = DEFAULT_WITHDRAWAL_DELAY_SECS
    fund_name: str = "Insurance Fund"


@dataclass(frozen=True)
class ADLCheckResult:
    """Результат проверки условий ADL."""

    reason: ADLTriggerReason
    balance_e6: int
    shortfall_e6: int
    threshold_e6: int
    balance_1h_ago_e6: int

    # Для отладки
    details: str

    @property
    def triggered(self) -> bool:
        return self.reason != ADLTriggerReason.NONE


@dataclass(frozen=True)
class InsuranceFundCreation:
    program: FundConfig
    fund: Fund
    config: InsuranceFundConfig


@dataclass(frozen=True)
class InsuranceUpdate:
    """Новые snapshot-записи после операции с доходом буфера."""

    config: InsuranceFundConfig
    fund: Fund


@dataclass(frozen=True)
class ShortfallCoverage:
    config: InsuranceFundConfig
    fund: Fund
    covered_e6: int
    remaining_e6: int

    @property
    def fully_covered(self) -> bool:
        return self.remaining_e6 == 0


@dataclass(frozen=True)
class SnapshotUpdate:
    config: InsuranceFundConfig
    updated: bool


class InsuranceRiskEngine:
    """Risk engine insurance fund."""

    def __init__(
        self,
        policy: Optional[InsurancePolicy] = None,
        lifecycle: Optional[LPLifecycle] = None
    ):
        self.policy = policy or InsurancePolicy()
        self.lifecycle = lifecycle or LPLifecycle()

    # =========================================================================
    # ИНИЦИАЛИЗАЦИЯ
    # =========================================================================

    def initialize_insurance_fund(
        self,
        program: FundConfig,
        authority: str,
        address: str,
        fund_vault: str,
        share_mint: str,
        authorized_caller: str,
        now: int,
        adl_trigger_threshold_e6: int = 0,
        withdrawal_delay_secs: Optional[int] = None,
    ) -> InsuranceFundCreation:
        """Создание буфера: фонд без комиссий + конфигурация insurance fund.

        Raises:
            AdminRequired: authority не совпадает с authority реестра
            ProgramPaused: Программа на паузе
            InvalidAmount: Отрицательный порог или задержка
        """
        if authority != program.authority:
            raise AdminRequired(f"Caller {authority} is not the program authority")
        if program.is_paused:
            raise ProgramPaused()
        if adl_trigger_threshold_e6 < 0:
            raise InvalidAmount(f"ADL threshold must be non-negative, got {adl_trigger_threshold_e6}")

        delay = (
            self.policy.default_withdrawal_delay_secs
            if withdrawal_delay_secs is None
            else withdrawal_delay_secs
        )
        if delay < 0:
            raise InvalidAmount(f"Withdrawal delay must be non-negative, got {delay}")

        creation = self.lifecycle.create_fund(
            program=program,
            manager=authority,
            address=address,
            name=self.policy.fund_name,
            fund_vault=fund_vault,
            share_mint=share_mint,
            now=now,
            use_high_water_mark=False,
        )
        fund = creation.fund.model_copy(update={"is_insurance_fund": True})
        config = InsuranceFundConfig(
            fund=address,
            adl_trigger_threshold_e6=adl_trigger_threshold_e6,
            withdrawal_delay_secs=delay,
            authorized_caller=authorized_caller,
            last_snapshot_ts=now,
            last_update_ts=now,
        )

        logger.info("insurance fund initialized: fund=%s caller=%s", address, authorized_caller)
        return InsuranceFundCreation(program=creation.program, fund=fund, config=config)

    # =========================================================================
    # РЕШЕНИЕ ОБ ADL
    # =========================================================================

    def should_trigger_adl(
        self,
        config: InsuranceFundConfig,
        balance_e6: int,
        shortfall_e6: int = 0
    ) -> ADLTriggerReason:
        """Проверка условий ADL в порядке приоритета.

        Args:
            config: конфигурация insurance fund
            balance_e6: текущий баланс буфера (e6)
            shortfall_e6: требуемое покрытие (e6), 0 если нет

        Returns:
            Первая совпавшая причина или ADLTriggerReason.NONE
        """
        # 1. Буфер не покрывает требование
        if shortfall_e6 > 0 and balance_e6 < shortfall_e6:
            return ADLTriggerReason.BANKRUPTCY

        # 2. Баланс ниже порога
        if balance_e6 < config.adl_trigger_threshold_e6:
            return ADLTriggerReason.INSUFFICIENT_BALANCE

        # 3. Падение >= 30% за час
        if config.balance_1h_ago_e6 > 0:
            floor = mul_div(config.balance_1h_ago_e6, self.policy.rapid_decline_pct, 100)
            if balance_e6 < floor:
                return ADLTriggerReason.RAPID_DECLINE

        return ADLTriggerReason.NONE

    def evaluate_adl(
        self,
        config: InsuranceFundConfig,
        balance_e6: int,
        shortfall_e6: int = 0
    ) -> ADLCheckResult:
        """Проверка условий ADL с диагностикой."""
        reason = self.should_trigger_adl(config, balance_e6, shortfall_e6)

        if reason == ADLTriggerReason.BANKRUPTCY:
            details = f"shortfall {shortfall_e6} exceeds balance {balance_e6}"
        elif reason == ADLTriggerReason.INSUFFICIENT_BALANCE:
            details = f"balance {balance_e6} below threshold {config.adl_trigger_threshold_e6}"
        elif reason == ADLTriggerReason.RAPID_DECLINE:
            details = f"balance {balance_e6} fell below {self.policy.rapid_decline_pct}% of {config.balance_1h_ago_e6}"
        else:
            details = "no ADL condition met"

        if reason != ADLTriggerReason.NONE:
            logger.warning("ADL condition: fund=%s reason=%s %s", config.fund, reason.value, details)

        return ADLCheckResult(
            reason=reason,
            balance_e6=balance_e6,
            shortfall_e6=shortfall_e6,
            threshold_e6=config.adl_trigger_threshold_e6,
            balance_1h_ago_e6=config.balance_1h_ago_e6,
            details=details
        )

    # =========================================================================
    # ДОХОДЫ И ВЫПЛАТЫ
    # =========================================================================

    def add_liquidation_income(
        self, config: InsuranceFundConfig, fund: Fund, caller: str, amount_e6: int, now: int
    ) -> InsuranceUpdate:
        """Доход от ликвидаций."""
        return self._add_income(config, fund, caller, amount_e6, now, "total_liquidation_income_e6")

    def add_adl_profit(
        self, config: InsuranceFundConfig, fund: Fund, caller: str, amount_e6: int, now: int
    ) -> InsuranceUpdate:
        """Прибыль от ADL."""
        return self._add_income(config, fund, caller, amount_e6, now, "total_adl_profit_e6")

    def add_trading_fee(
        self, config: InsuranceFundConfig, fund: Fund, caller: str, amount_e6: int, now: int
    ) -> InsuranceUpdate:
        """Доля торговых комиссий. Учитывается вместе с доходом от ликвидаций."""
        return self._add_income(config, fund, caller, amount_e6, now, "total_liquidation_income_e6")

    def cover_shortfall(
        self,
        config: InsuranceFundConfig,
        fund: Fund,
        caller: str,
        shortfall_e6: int,
        balance_e6: int,
        now: int
    ) -> ShortfallCoverage:
        """Покрытие shortfall из буфера.

        Покрывается min(shortfall, balance). Если буфера не хватает, ADL уже
        должен быть запущен вызывающей стороной: иначе операция отклоняется,
        а не завершается молчаливым частичным покрытием.

        Raises:
            UnauthorizedCaller: caller не authorized_caller
            InvalidAmount: shortfall ≤ 0
            ADLRequired: shortfall > balance при опущенном флаге ADL
        """
        self._require_authorized(config, caller)
        if shortfall_e6 <= 0:
            raise InvalidAmount(f"Shortfall must be positive, got {shortfall_e6}")
        if fund.address != config.fund:
            raise InvalidFundAccount(f"Fund {fund.address} is not the insurance fund {config.fund}")

        if shortfall_e6 > balance_e6 and not config.is_adl_in_progress:
            logger.warning(
                "shortfall exceeds buffer without ADL: fund=%s shortfall=%d balance=%d",
                config.fund, shortfall_e6, balance_e6
            )
            raise ADLRequired(f"Shortfall {shortfall_e6} exceeds insurance balance {balance_e6}")

        covered = max(min(shortfall_e6, balance_e6), 0)
        remaining = shortfall_e6 - covered

        config = config.model_copy(update={
            "total_shortfall_payout_e6": saturating_add(config.total_shortfall_payout_e6, covered),
            "last_update_ts": now,
        })
        if covered > 0:
            fund = apply_realized_pnl(fund, -covered, now)

        if remaining > 0:
            logger.warning(
                "shortfall partially covered: fund=%s covered=%d remaining=%d",
                config.fund, covered, remaining
            )
        else:
            logger.info("shortfall covered: fund=%s covered=%d", config.fund, covered)

        return ShortfallCoverage(config=config, fund=fund, covered_e6=covered, remaining_e6=remaining)

    # =========================================================================
    # SNAPSHOT / ADL FLAG
    # =========================================================================

    def update_hourly_snapshot(
        self, config: InsuranceFundConfig, balance_e6: int, now: int
    ) -> SnapshotUpdate:
        """Обновление часового snapshot баланса. Ранний вызов — no-op."""
        if now - config.last_snapshot_ts < self.policy.snapshot_interval_secs:
            return SnapshotUpdate(config=config, updated=False)

        config = config.model_copy(update={
            "balance_1h_ago_e6": balance_e6,
            "last_snapshot_ts": now,
            "last_update_ts": now,
        })
        logger.debug("hourly snapshot: fund=%s balance=%d", config.fund, balance_e6)
        return SnapshotUpdate(config=config, updated=True)

    def set_adl_in_progress(
        self, config: InsuranceFundConfig, caller: str, in_progress: bool, now: int
    ) -> InsuranceFundConfig:
        """Установка флага ADL. Подъём флага увеличивает adl_trigger_count."""
        self._require_authorized(config, caller)

        trigger_count = config.adl_trigger_count
        if in_progress and not config.is_adl_in_progress:
            trigger_count = saturating_add_u64(trigger_count, 1)

        logger.info("ADL flag: fund=%s in_progress=%s", config.fund, in_progress)
        return config.model_copy(update={
            "is_adl_in_progress": in_progress,
            "adl_trigger_count": trigger_count,
            "last_update_ts": now,
        })

    # =========================================================================
    # ПОГАШЕНИЕ
    # =========================================================================

    def redeem_from_insurance_fund(
        self,
        config: InsuranceFundConfig,
        fund: Fund,
        position: LPPosition,
        investor: str,
        shares: int,
        balance_e6: int,
        now: int
    ) -> RedemptionResult:
        """Погашение LP долей буфера с учётом ADL флага, задержки и баланса vault.

        Raises:
            InvalidFundAccount: fund не является фондом этого буфера
            ADLInProgress / WithdrawalDelayNotMet / InsufficientShares / InsufficientBalance
        """
        if fund.address != config.fund:
            raise InvalidFundAccount(f"Fund {fund.address} is not the insurance fund {config.fund}")

        return self.lifecycle.redeem(
            fund=fund,
            position=position,
            investor=investor,
            shares=shares,
            now=now,
            insurance=config,
            vault_balance_e6=balance_e6,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _require_authorized(self, config: InsuranceFundConfig, caller: str) -> None:
        if caller != config.authorized_caller:
            logger.warning("unauthorized insurance caller: fund=%s caller=%s", config.fund, caller)
            raise UnauthorizedCaller(f"Caller {caller} is not authorized for insurance fund {config.fund}")

    def _add_income(
        self,
        config: InsuranceFundConfig,
        fund: Fund,
        caller: str,
        amount_e6: int,
        now: int,
        field: str
    ) -> InsuranceUpdate:
        self._require_authorized(config, caller)
        if amount_e6 <= 0:
            raise InvalidAmount(f"Income amount must be positive, got {amount_e6}")
        if fund.address != config.fund:
            raise InvalidFundAccount(f"Fund {fund.address} is not the insurance fund {config.fund}")

        config = config.model_copy(update={
            field: saturating_add(getattr(config, field), amount_e6),
            "last_update_ts": now,
        })
        fund = apply_realized_pnl(fund, amount_e6, now)

        logger.debug("insurance income: fund=%s %s+=%d", config.fund, field, amount_e6)
        return InsuranceUpdate(config=config, fund=fund)
