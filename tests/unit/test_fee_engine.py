"""
Тесты Fee Engine

Проверяемые инварианты:
1. Management fee линейна по времени и AUM
2. Performance fee начисляется только на прирост выше baseline
3. Без high-water mark baseline равен нулю
4. Сбор поднимает HWM до NAV после списания и никогда не опускает его
"""

import pytest

from fund_engine.core.domain import FeeConfig, Fund, FundStats
from fund_engine.core.errors import ManagementFeeTooHigh, PerformanceFeeTooHigh
from fund_engine.core.math import SECONDS_PER_YEAR
from fund_engine.nav import (
    FeeEngine,
    FeePolicy,
    calculate_management_fee,
    calculate_performance_fee,
)


def key(n: int) -> str:
    return f"{n:064x}"


def make_fund(pnl_e6: int, use_hwm: bool = True, hwm_e6: int = 1_000_000) -> Fund:
    """Фонд: 100_000 депозитов, 100_000 долей, PnL pnl_e6, комиссии 2% / 20%."""
    return Fund(
        address=key(1),
        manager=key(2),
        name="Fees",
        fund_vault=key(3),
        share_mint=key(4),
        fee_config=FeeConfig(management_fee_bps=200, performance_fee_bps=2000, use_high_water_mark=use_hwm),
        stats=FundStats(
            total_deposits_e6=100_000_000_000,
            total_realized_pnl_e6=pnl_e6,
            total_shares=100_000_000_000,
            high_water_mark_e6=hwm_e6,
        ),
    )


@pytest.fixture
def engine():
    return FeeEngine()


# =============================================================================
# ТЕСТЫ: Formulas
# =============================================================================


class TestManagementFee:
    def test_full_year(self):
        """2% годовых за год."""
        assert calculate_management_fee(100_000_000_000, 200, SECONDS_PER_YEAR) == 2_000_000_000

    def test_one_day(self):
        """Пропорционально прошедшему времени."""
        assert calculate_management_fee(100_000_000_000, 200, 86_400) == 5_479_452

    def test_zero_inputs(self):
        """Нулевые или отрицательные входы дают 0."""
        assert calculate_management_fee(0, 200, 86_400) == 0
        assert calculate_management_fee(-5, 200, 86_400) == 0
        assert calculate_management_fee(100, 0, 86_400) == 0
        assert calculate_management_fee(100, 200, -1) == 0


class TestPerformanceFee:
    def test_profit_above_baseline(self):
        """20% от прироста NAV 1.0 → 1.2 на стоимость 100_000."""
        assert calculate_performance_fee(1_200_000, 1_000_000, 100_000_000_000, 2000) == 3_333_333_333

    def test_no_fee_below_baseline(self):
        """NAV не выше baseline → 0."""
        assert calculate_performance_fee(900_000, 1_000_000, 100_000_000_000, 2000) == 0
        assert calculate_performance_fee(1_000_000, 1_000_000, 100_000_000_000, 2000) == 0

    def test_zero_baseline(self):
        """Baseline 0: комиссия от всей стоимости."""
        assert calculate_performance_fee(1_000_000, 0, 50_000_000, 2000) == 10_000_000


# =============================================================================
# ТЕСТЫ: Engine
# =============================================================================


class TestFeeEngine:
    def test_validate_limits(self, engine):
        """Лимиты ставок по умолчанию: 10% и 50%."""
        engine.validate_fee_config(FeeConfig(management_fee_bps=1000, performance_fee_bps=5000))
        with pytest.raises(ManagementFeeTooHigh):
            engine.validate_fee_config(FeeConfig(management_fee_bps=1001))
        with pytest.raises(PerformanceFeeTooHigh):
            engine.validate_fee_config(FeeConfig(performance_fee_bps=5001))

    def test_custom_policy(self):
        """Лимиты задаются политикой."""
        engine = FeeEngine(FeePolicy(max_management_fee_bps=100))
        with pytest.raises(ManagementFeeTooHigh):
            engine.validate_fee_config(FeeConfig(management_fee_bps=200))

    def test_collection_due(self, engine):
        """Сбор разрешён по истечении интервала."""
        fund = make_fund(0)
        assert not engine.is_collection_due(fund, 86_399)
        assert engine.is_collection_due(fund, 86_400)

    def test_accrue_full_year(self, engine):
        """Начисление за год на фонд с NAV 1.2."""
        fund = make_fund(20_000_000_000)
        accrual = engine.accrue(fund, SECONDS_PER_YEAR)
        assert accrual.aum_e6 == 120_000_000_000
        assert accrual.nav_e6 == 1_200_000
        assert accrual.management_fee_e6 == 2_400_000_000
        assert accrual.performance_fee_e6 == 4_000_000_000
        assert accrual.total_fee_e6 == 6_400_000_000

    def test_accrue_does_not_mutate(self, engine):
        """accrue не меняет фонд."""
        fund = make_fund(20_000_000_000)
        engine.accrue(fund, SECONDS_PER_YEAR)
        assert fund.stats.total_management_fee_e6 == 0

    def test_baseline_without_hwm(self, engine):
        """Без HWM baseline 0."""
        fund = make_fund(20_000_000_000, use_hwm=False, hwm_e6=1_500_000)
        assert engine.performance_baseline(fund) == 0
        assert engine.accrue(fund, 0).performance_fee_e6 == 24_000_000_000

    def test_no_performance_fee_below_hwm(self, engine):
        """NAV ниже HWM: только management fee."""
        fund = make_fund(20_000_000_000, hwm_e6=1_300_000)
        accrual = engine.accrue(fund, SECONDS_PER_YEAR)
        assert accrual.performance_fee_e6 == 0
        assert accrual.management_fee_e6 == 2_400_000_000

    def test_apply_collection_raises_hwm(self, engine):
        """После сбора HWM = NAV после списания."""
        fund = make_fund(20_000_000_000)
        accrual = engine.accrue(fund, SECONDS_PER_YEAR)
        collected = engine.apply_collection(fund, accrual, SECONDS_PER_YEAR)
        assert collected.stats.total_management_fee_e6 == 2_400_000_000
        assert collected.stats.total_performance_fee_e6 == 4_000_000_000
        assert collected.stats.current_nav_e6 == 1_136_000
        assert collected.stats.high_water_mark_e6 == 1_136_000
        assert collected.stats.last_fee_collection_ts == SECONDS_PER_YEAR

    def test_apply_collection_keeps_higher_hwm(self, engine):
        """HWM не опускается ниже прежнего значения."""
        fund = make_fund(0, hwm_e6=1_300_000)
        accrual = engine.accrue(fund, SECONDS_PER_YEAR)
        collected = engine.apply_collection(fund, accrual, SECONDS_PER_YEAR)
        assert collected.stats.current_nav_e6 == 980_000
        assert collected.stats.high_water_mark_e6 == 1_300_000
