"""
LP Lifecycle — жизненный цикл фонда и LP позиций

Операции:
- create_fund / update_fund / set_fund_open / set_fund_paused / close_fund
- deposit: выпуск долей по свежему NAV
- redeem: погашение долей по свежему NAV (с учётом ADL флага insurance fund)
- collect_fees: сбор management/performance fee (только manager)
- refresh_nav / record_pnl: обновление NAV и реализованного PnL

Каждая операция принимает frozen snapshot-записи и возвращает новые.
При любой ошибке исключение поднимается до построения результата,
поэтому частичных изменений не бывает.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Доли выпускаются и погашаются только по NAV, вычисленному заново из статистики
2. lp_count растёт при первой (или повторной после полного выхода) позиции
   и уменьшается при обнулении позиции
3. Закрытие фонда — терминальный переход и требует нулевых долей и LP
4. total_shares фонда == сумма долей всех его позиций
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fund_engine.core.domain.fund import (
    DEFAULT_FEE_COLLECTION_INTERVAL,
    MAX_FUND_NAME_LEN,
    FeeConfig,
    Fund,
    FundStats,
    LPPosition,
)
from fund_engine.core.domain.insurance import InsuranceFundConfig
from fund_engine.core.domain.program import FundConfig
from fund_engine.core.errors import (
    ADLInProgress,
    DepositTooSmall,
    FeeCollectionTooEarly,
    FundHasLPPositions,
    FundNotOpen,
    FundPaused,
    InsufficientBalance,
    InsufficientShares,
    InvalidAmount,
    InvalidFundAccount,
    InvalidFundName,
    InvalidManager,
    LPPositionNotFound,
    NoFeesToCollect,
    ProgramPaused,
    UnauthorizedCaller,
    WithdrawalDelayNotMet,
)
from fund_engine.core.math.fixed_point import (
    U32_MAX,
    U64_MAX,
    checked_add,
    saturating_add,
    saturating_add_u64,
    saturating_sub,
    saturating_sub_u64,
)
from fund_engine.nav.fees import FeeEngine
from fund_engine.nav.valuation import (
    calculate_redemption_value,
    calculate_shares_to_mint,
    current_nav_e6,
    refresh_nav,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG / RESULTS
# =============================================================================


@dataclass(frozen=True)
class LifecyclePolicy:
    """Параметры жизненного цикла LP позиций."""

    min_deposit_e6: int = 1_000_000  # 1.0 единица расчёта


@dataclass(frozen=True)
class FundCreation:
    program: FundConfig
    fund: Fund


@dataclass(frozen=True)
class FundClosure:
    program: FundConfig
    fund: Fund


@dataclass(frozen=True)
class DepositResult:
    """Результат депозита."""

    fund: Fund
    position: LPPosition
    amount_e6: int
    shares_minted: int
    nav_e6: int
    is_new_lp: bool


@dataclass(frozen=True)
class RedemptionResult:
    """Результат погашения долей."""

    fund: Fund
    position: LPPosition
    shares_burned: int
    payout_e6: int
    nav_e6: int
    position_closed: bool


@dataclass(frozen=True)
class FeeCollectionResult:
    fund: Fund
    management_fee_e6: int
    performance_fee_e6: int
    nav_e6: int

    @property
    def total_fee_e6(self) -> int:
        return saturating_add(self.management_fee_e6, self.performance_fee_e6)


# =============================================================================
# SHARED HELPERS
# =============================================================================


def apply_realized_pnl(fund: Fund, pnl_e6: int, now: int) -> Fund:
    """
    Учёт реализованного PnL в статистике фонда с пересчётом NAV.

    high_water_mark не меняется: он двигается только при сборе комиссий.

    Raises:
        NAVCalculationError: Если после учёта стоимость фонда стала невыразимой
    """
    stats = fund.stats.model_copy(
        update={"total_realized_pnl_e6": saturating_add(fund.stats.total_realized_pnl_e6, pnl_e6)}
    )
    return fund.model_copy(update={"stats": refresh_nav(stats), "last_update_ts": now})


def _require_manager(fund: Fund, caller: str) -> None:
    if caller != fund.manager:
        logger.warning("manager-only operation rejected: fund=%s caller=%s", fund.address, caller)
        raise InvalidManager(f"Caller {caller} is not the manager of fund {fund.address}")


def _require_not_closed(fund: Fund) -> None:
    if fund.is_closed:
        raise FundNotOpen(f"Fund {fund.address} is closed")


def _validate_fund_name(name: str) -> None:
    size = len(name.encode("utf-8"))
    if size == 0 or size > MAX_FUND_NAME_LEN:
        raise InvalidFundName(f"Fund name must be 1..{MAX_FUND_NAME_LEN} bytes, got {size}")


# =============================================================================
# LIFECYCLE
# =============================================================================


class LPLifecycle:
    """Операции над фондами и LP позициями."""

    def __init__(
        self,
        policy: Optional[LifecyclePolicy] = None,
        fee_engine: Optional[FeeEngine] = None,
    ):
        """
        Args:
            policy: параметры депозитов
            fee_engine: движок комиссий (границы ставок и начисление)
        """
        self.policy = policy or LifecyclePolicy()
        self.fee_engine = fee_engine or FeeEngine()

    # -------------------------------------------------------------------------
    # Fund administration
    # -------------------------------------------------------------------------

    def create_fund(
        self,
        program: FundConfig,
        manager: str,
        address: str,
        name: str,
        fund_vault: str,
        share_mint: str,
        now: int,
        management_fee_bps: int = 0,
        performance_fee_bps: int = 0,
        use_high_water_mark: bool = True,
        fee_collection_interval: int = DEFAULT_FEE_COLLECTION_INTERVAL,
    ) -> FundCreation:
        """
        Создание фонда.

        Raises:
            ProgramPaused: Программа на паузе
            InvalidFundName: Имя пустое или длиннее 32 байт
            ManagementFeeTooHigh / PerformanceFeeTooHigh: Ставки выше лимитов
        """
        if program.is_paused:
            raise ProgramPaused("Cannot create funds while the program is paused")

        _validate_fund_name(name)

        fee_config = FeeConfig(
            management_fee_bps=management_fee_bps,
            performance_fee_bps=performance_fee_bps,
            use_high_water_mark=use_high_water_mark,
            fee_collection_interval=fee_collection_interval,
        )
        self.fee_engine.validate_fee_config(fee_config)

        fund = Fund(
            address=address,
            manager=manager,
            name=name,
            fund_vault=fund_vault,
            share_mint=share_mint,
            fund_index=program.total_funds,
            fee_config=fee_config,
            stats=FundStats(last_fee_collection_ts=now),
            created_at=now,
            last_update_ts=now,
        )
        program = program.model_copy(
            update={
                "total_funds": saturating_add_u64(program.total_funds, 1),
                "active_funds": saturating_add_u64(program.active_funds, 1),
            }
        )

        logger.info("fund created: fund=%s manager=%s index=%d", address, manager, fund.fund_index)
        return FundCreation(program=program, fund=fund)

    def update_fund(
        self,
        fund: Fund,
        caller: str,
        now: int,
        management_fee_bps: Optional[int] = None,
        performance_fee_bps: Optional[int] = None,
        use_high_water_mark: Optional[bool] = None,
        fee_collection_interval: Optional[int] = None,
    ) -> Fund:
        """Изменение условий комиссий (только manager, None = без изменений)."""
        _require_manager(fund, caller)
        _require_not_closed(fund)

        changes = {
            "management_fee_bps": management_fee_bps,
            "performance_fee_bps": performance_fee_bps,
            "use_high_water_mark": use_high_water_mark,
            "fee_collection_interval": fee_collection_interval,
        }
        current = fund.fee_config.model_dump()
        current.update({key: value for key, value in changes.items() if value is not None})
        fee_config = FeeConfig(**current)
        self.fee_engine.validate_fee_config(fee_config)

        return fund.model_copy(update={"fee_config": fee_config, "last_update_ts": now})

    def set_fund_open(self, fund: Fund, caller: str, is_open: bool, now: int) -> Fund:
        _require_manager(fund, caller)
        _require_not_closed(fund)
        return fund.model_copy(update={"is_open": is_open, "last_update_ts": now})

    def set_fund_paused(self, fund: Fund, caller: str, is_paused: bool, now: int) -> Fund:
        _require_manager(fund, caller)
        _require_not_closed(fund)
        logger.info("fund pause toggled: fund=%s paused=%s", fund.address, is_paused)
        return fund.model_copy(update={"is_paused": is_paused, "last_update_ts": now})

    def close_fund(self, program: FundConfig, fund: Fund, caller: str, now: int) -> FundClosure:
        """
        Закрытие фонда (терминальный переход).

        Raises:
            InvalidManager: caller не manager
            FundNotOpen: Фонд уже закрыт
            FundHasLPPositions: Остались LP позиции или доли
        """
        _require_manager(fund, caller)
        _require_not_closed(fund)

        if fund.stats.lp_count > 0 or fund.stats.total_shares > 0:
            raise FundHasLPPositions(
                f"Fund {fund.address} has {fund.stats.lp_count} LPs and "
                f"{fund.stats.total_shares} shares outstanding"
            )

        fund = fund.model_copy(update={"is_closed": True, "is_open": False, "last_update_ts": now})
        program = program.model_copy(
            update={"active_funds": saturating_sub_u64(program.active_funds, 1)}
        )

        logger.info("fund closed: fund=%s", fund.address)
        return FundClosure(program=program, fund=fund)

    # -------------------------------------------------------------------------
    # Deposits / redemptions
    # -------------------------------------------------------------------------

    def deposit(
        self,
        fund: Fund,
        position: Optional[LPPosition],
        investor: str,
        amount_e6: int,
        now: int,
    ) -> DepositResult:
        """
        Депозит в фонд с выпуском долей.

        Args:
            fund: Фонд
            position: Текущая позиция инвестора (None при первом депозите)
            investor: Ключ инвестора
            amount_e6: Сумма депозита (e6)
            now: Текущий Unix timestamp

        Returns:
            DepositResult с новыми фондом и позицией

        Raises:
            InvalidAmount: amount ≤ 0
            FundNotOpen: Фонд закрыт или не принимает депозиты
            FundPaused: Фонд на паузе
            DepositTooSmall: Сумма ниже минимума
            LPPositionNotFound: Позиция принадлежит другому фонду или инвестору
            NAVCalculationError / ShareCalculationError / Overflow
        """
        if amount_e6 <= 0:
            raise InvalidAmount(f"Deposit amount must be positive, got {amount_e6}")
        if fund.is_closed or not fund.is_open:
            raise FundNotOpen(f"Fund {fund.address} is not open for deposits")
        if fund.is_paused:
            raise FundPaused(f"Fund {fund.address} is paused")
        if amount_e6 < self.policy.min_deposit_e6:
            raise DepositTooSmall(
                f"Deposit {amount_e6} is below minimum {self.policy.min_deposit_e6}"
            )
        if position is not None and (position.fund != fund.address or position.investor != investor):
            raise LPPositionNotFound(f"Position does not belong to investor {investor} in fund {fund.address}")

        nav = current_nav_e6(fund.stats)
        shares = calculate_shares_to_mint(amount_e6, nav)
        is_new_lp = position is None or position.is_empty()

        stats = fund.stats.model_copy(
            update={
                "total_deposits_e6": saturating_add(fund.stats.total_deposits_e6, amount_e6),
                "total_shares": checked_add(fund.stats.total_shares, shares, 0, U64_MAX),
                "lp_count": (
                    saturating_add(fund.stats.lp_count, 1, 0, U32_MAX) if is_new_lp else fund.stats.lp_count
                ),
            }
        )
        stats = refresh_nav(stats)

        if position is None:
            position = LPPosition(fund=fund.address, investor=investor, deposited_at=now)
        position = position.model_copy(
            update={
                "shares": checked_add(position.shares, shares, 0, U64_MAX),
                "deposit_nav_e6": nav,
                "total_deposited_e6": saturating_add(position.total_deposited_e6, amount_e6),
                "last_deposit_ts": now,
                "last_update_ts": now,
            }
        )

        logger.info(
            "deposit: fund=%s investor=%s amount=%d shares=%d nav=%d",
            fund.address,
            investor,
            amount_e6,
            shares,
            nav,
        )
        return DepositResult(
            fund=fund.model_copy(update={"stats": stats, "last_update_ts": now}),
            position=position,
            amount_e6=amount_e6,
            shares_minted=shares,
            nav_e6=nav,
            is_new_lp=is_new_lp,
        )

    def redeem(
        self,
        fund: Fund,
        position: LPPosition,
        investor: str,
        shares: int,
        now: int,
        insurance: Optional[InsuranceFundConfig] = None,
        vault_balance_e6: Optional[int] = None,
    ) -> RedemptionResult:
        """
        Погашение долей.

        Args:
            fund: Фонд
            position: Позиция инвестора
            investor: Ключ инвестора
            shares: Количество погашаемых долей
            now: Текущий Unix timestamp
            insurance: Конфигурация insurance fund, если фонд является буфером
                (ADL флаг и задержка вывода)
            vault_balance_e6: Баланс vault фонда, если выплата ограничена им

        Returns:
            RedemptionResult с новыми фондом и позицией

        Raises:
            InvalidAmount: shares ≤ 0
            FundPaused: Фонд на паузе
            LPPositionNotFound: Позиция принадлежит другому фонду или инвестору
            InsufficientShares: Погашение больше доли
            InvalidFundAccount: insurance относится к другому фонду или не передан для буфера
            ADLInProgress: Идёт ADL
            WithdrawalDelayNotMet: Не прошла задержка с последнего депозита
            InsufficientBalance: Баланса vault не хватает на выплату
        """
        if shares <= 0:
            raise InvalidAmount(f"Shares to redeem must be positive, got {shares}")
        if not fund.can_withdraw():
            raise FundPaused(f"Fund {fund.address} is paused")
        if position.fund != fund.address or position.investor != investor:
            raise LPPositionNotFound(f"Position does not belong to investor {investor} in fund {fund.address}")
        if shares > position.shares:
            raise InsufficientShares(f"Redeem {shares} shares but position holds {position.shares}")

        if fund.is_insurance_fund and insurance is None:
            raise InvalidFundAccount(f"Fund {fund.address} is an insurance fund; redeem requires its config")
        if insurance is not None:
            if insurance.fund != fund.address:
                raise InvalidFundAccount(f"Insurance config governs {insurance.fund}, not {fund.address}")
            if insurance.is_adl_in_progress:
                raise ADLInProgress()
            delay = insurance.withdrawal_delay_secs
            if delay > 0 and now - position.last_deposit_ts < delay:
                raise WithdrawalDelayNotMet(
                    f"{now - position.last_deposit_ts}s elapsed since last deposit, {delay}s required"
                )

        nav = current_nav_e6(fund.stats)
        payout = calculate_redemption_value(shares, nav)
        if vault_balance_e6 is not None and vault_balance_e6 < payout:
            raise InsufficientBalance(f"Vault balance {vault_balance_e6} < payout {payout}")

        remaining = position.shares - shares
        position_closed = remaining == 0

        stats = fund.stats.model_copy(
            update={
                "total_withdrawals_e6": saturating_add(fund.stats.total_withdrawals_e6, payout),
                "total_shares": saturating_sub_u64(fund.stats.total_shares, shares),
                "lp_count": (
                    saturating_sub(fund.stats.lp_count, 1, 0, U32_MAX) if position_closed else fund.stats.lp_count
                ),
            }
        )
        stats = refresh_nav(stats)

        position = position.model_copy(
            update={
                "shares": remaining,
                "total_withdrawn_e6": saturating_add(position.total_withdrawn_e6, payout),
                "last_update_ts": now,
            }
        )

        logger.info(
            "redeem: fund=%s investor=%s shares=%d payout=%d nav=%d",
            fund.address,
            investor,
            shares,
            payout,
            nav,
        )
        return RedemptionResult(
            fund=fund.model_copy(update={"stats": stats, "last_update_ts": now}),
            position=position,
            shares_burned=shares,
            payout_e6=payout,
            nav_e6=nav,
            position_closed=position_closed,
        )

    # -------------------------------------------------------------------------
    # Fees / NAV
    # -------------------------------------------------------------------------

    def collect_fees(self, fund: Fund, caller: str, now: int) -> FeeCollectionResult:
        """
        Сбор комиссий фонда (только manager).

        Raises:
            InvalidManager: caller не manager
            FeeCollectionTooEarly: Интервал сбора ещё не прошёл
            NoFeesToCollect: Начислено 0
        """
        _require_manager(fund, caller)

        if not self.fee_engine.is_collection_due(fund, now):
            raise FeeCollectionTooEarly(
                f"Next collection at {fund.stats.last_fee_collection_ts + fund.fee_config.fee_collection_interval}, now {now}"
            )

        accrual = self.fee_engine.accrue(fund, now)
        if accrual.total_fee_e6 <= 0:
            raise NoFeesToCollect()

        fund = self.fee_engine.apply_collection(fund, accrual, now)

        logger.info(
            "fees collected: fund=%s mgmt=%d perf=%d nav=%d",
            fund.address,
            accrual.management_fee_e6,
            accrual.performance_fee_e6,
            fund.stats.current_nav_e6,
        )
        return FeeCollectionResult(
            fund=fund,
            management_fee_e6=accrual.management_fee_e6,
            performance_fee_e6=accrual.performance_fee_e6,
            nav_e6=fund.stats.current_nav_e6,
        )

    def refresh_nav(self, fund: Fund, now: int) -> Fund:
        """Пересчёт и сохранение NAV фонда."""
        return fund.model_copy(update={"stats": refresh_nav(fund.stats), "last_update_ts": now})

    def record_pnl(self, program: FundConfig, fund: Fund, caller: str, pnl_e6: int, now: int) -> Fund:
        """
        Учёт реализованного PnL (вызывается только ledger программой).

        Raises:
            UnauthorizedCaller: caller не ledger_program реестра
            NAVCalculationError: Стоимость фонда стала невыразимой
        """
        if caller != program.ledger_program:
            logger.warning("record_pnl rejected: fund=%s caller=%s", fund.address, caller)
            raise UnauthorizedCaller(f"Caller {caller} is not the ledger program")

        return apply_realized_pnl(fund, pnl_e6, now)
