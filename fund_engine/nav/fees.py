"""
Fee Engine — начисление management и performance fee

Management fee (линейна во времени):
    fee = AUM × bps × elapsed / 10000 / seconds_per_year

Performance fee (относительно baseline):
    profit = (NAV − baseline) × total_value / NAV
    fee    = profit × bps / 10000
    baseline = high_water_mark при use_high_water_mark, иначе 0

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Комиссии собираются не чаще fee_collection_interval
2. high_water_mark никогда не уменьшается
3. Performance fee = 0, если NAV ≤ baseline
4. Все промежуточные произведения считаются без переполнения, результат — checked i64
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fund_engine.core.domain.fund import FeeConfig, Fund
from fund_engine.core.errors import ManagementFeeTooHigh, PerformanceFeeTooHigh
from fund_engine.core.math.fixed_point import (
    BPS_DENOMINATOR,
    I64_MAX,
    SECONDS_PER_YEAR,
    bps_of,
    checked_narrow,
    mul_div,
    saturating_add,
    trunc_div,
)
from fund_engine.nav.valuation import calculate_nav_e6, total_value_e6

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG / RESULT
# =============================================================================


@dataclass(frozen=True)
class FeePolicy:
    """
    Границы комиссий и календарь начисления.

    - max_management_fee_bps: 1000 (10% годовых)
    - max_performance_fee_bps: 5000 (50% прибыли)
    """

    max_management_fee_bps: int = 1000
    max_performance_fee_bps: int = 5000
    seconds_per_year: int = SECONDS_PER_YEAR


@dataclass(frozen=True)
class FeeAccrual:
    """Результат расчёта комиссий на момент now."""

    management_fee_e6: int
    performance_fee_e6: int

    # Входы расчёта (диагностика)
    aum_e6: int
    nav_e6: int
    baseline_nav_e6: int
    elapsed_secs: int

    @property
    def total_fee_e6(self) -> int:
        return saturating_add(self.management_fee_e6, self.performance_fee_e6)


# =============================================================================
# FORMULAS
# =============================================================================


def calculate_management_fee(
    aum_e6: int,
    fee_bps: int,
    elapsed_secs: int,
    seconds_per_year: int = SECONDS_PER_YEAR,
) -> int:
    """
    Management fee за прошедший период.

    Args:
        aum_e6: Стоимость фонда (e6)
        fee_bps: Годовая ставка (bps)
        elapsed_secs: Длительность периода (сек)
        seconds_per_year: Длина года (сек)

    Returns:
        Комиссия в e6 (0 при неположительных входах)

    Examples:
        >>> calculate_management_fee(100_000_000_000, 200, 31_536_000)
        2000000000
    """
    if aum_e6 <= 0 or fee_bps == 0 or elapsed_secs <= 0:
        return 0

    fee = trunc_div(aum_e6 * fee_bps * elapsed_secs, BPS_DENOMINATOR * seconds_per_year)
    return checked_narrow(fee, 0, I64_MAX, name="management_fee")


def calculate_performance_fee(
    nav_e6: int,
    baseline_nav_e6: int,
    total_value: int,
    fee_bps: int,
) -> int:
    """
    Performance fee на прирост NAV выше baseline.

    Args:
        nav_e6: Текущий NAV (e6)
        baseline_nav_e6: Baseline NAV (HWM или 0)
        total_value: Стоимость фонда (e6)
        fee_bps: Ставка (bps от прибыли)

    Returns:
        Комиссия в e6

    Examples:
        >>> calculate_performance_fee(1_200_000, 1_000_000, 100_000_000_000, 2000)
        3333333333
    """
    if nav_e6 <= baseline_nav_e6 or fee_bps == 0 or total_value <= 0:
        return 0

    profit = mul_div(nav_e6 - baseline_nav_e6, total_value, nav_e6)
    return checked_narrow(bps_of(profit, fee_bps), 0, I64_MAX, name="performance_fee")


# =============================================================================
# ENGINE
# =============================================================================


class FeeEngine:
    """Расчёт и применение комиссий фонда."""

    def __init__(self, policy: Optional[FeePolicy] = None):
        self.policy = policy or FeePolicy()

    def validate_fee_config(self, fee_config: FeeConfig) -> None:
        """
        Проверка границ ставок.

        Raises:
            ManagementFeeTooHigh: management_fee_bps выше лимита
            PerformanceFeeTooHigh: performance_fee_bps выше лимита
        """
        if fee_config.management_fee_bps > self.policy.max_management_fee_bps:
            raise ManagementFeeTooHigh(
                f"management_fee_bps {fee_config.management_fee_bps} > {self.policy.max_management_fee_bps}"
            )
        if fee_config.performance_fee_bps > self.policy.max_performance_fee_bps:
            raise PerformanceFeeTooHigh(
                f"performance_fee_bps {fee_config.performance_fee_bps} > {self.policy.max_performance_fee_bps}"
            )

    def is_collection_due(self, fund: Fund, now: int) -> bool:
        next_ts = fund.stats.last_fee_collection_ts + fund.fee_config.fee_collection_interval
        return now >= next_ts

    def performance_baseline(self, fund: Fund) -> int:
        if fund.fee_config.use_high_water_mark:
            return fund.stats.high_water_mark_e6
        return 0

    def accrue(self, fund: Fund, now: int) -> FeeAccrual:
        """
        Расчёт комиссий без изменения фонда.

        Args:
            fund: Фонд
            now: Текущий Unix timestamp

        Returns:
            FeeAccrual с management/performance fee и входами расчёта

        Raises:
            NAVCalculationError: Если NAV фонда невыразим
        """
        aum = total_value_e6(fund.stats)
        nav = calculate_nav_e6(aum, fund.stats.total_shares)
        baseline = self.performance_baseline(fund)
        elapsed = now - fund.stats.last_fee_collection_ts

        management_fee = calculate_management_fee(
            aum, fund.fee_config.management_fee_bps, elapsed, self.policy.seconds_per_year
        )
        performance_fee = calculate_performance_fee(
            nav, baseline, aum, fund.fee_config.performance_fee_bps
        )

        return FeeAccrual(
            management_fee_e6=management_fee,
            performance_fee_e6=performance_fee,
            aum_e6=aum,
            nav_e6=nav,
            baseline_nav_e6=baseline,
            elapsed_secs=elapsed,
        )

    def apply_collection(self, fund: Fund, accrual: FeeAccrual, now: int) -> Fund:
        """
        Списание комиссий из стоимости фонда.

        Обновляет накопленные комиссии, last_fee_collection_ts, NAV и
        поднимает high_water_mark до NAV после списания.
        """
        stats = fund.stats
        stats = stats.model_copy(
            update={
                "total_management_fee_e6": saturating_add(
                    stats.total_management_fee_e6, accrual.management_fee_e6
                ),
                "total_performance_fee_e6": saturating_add(
                    stats.total_performance_fee_e6, accrual.performance_fee_e6
                ),
                "last_fee_collection_ts": now,
            }
        )

        nav = calculate_nav_e6(total_value_e6(stats), stats.total_shares)
        stats = stats.model_copy(
            update={
                "current_nav_e6": nav,
                "high_water_mark_e6": max(stats.high_water_mark_e6, nav),
            }
        )

        logger.debug(
            "fees applied: fund=%s mgmt=%d perf=%d nav=%d hwm=%d",
            fund.address,
            accrual.management_fee_e6,
            accrual.performance_fee_e6,
            nav,
            stats.high_water_mark_e6,
        )
        return fund.model_copy(update={"stats": stats, "last_update_ts": now})
