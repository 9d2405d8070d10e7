"""
NAV Valuation — стоимость фонда, NAV на долю, конверсия сумма ↔ доли

total_value = deposits − withdrawals + realized_pnl − management_fee − performance_fee
NAV         = total_value × 1e6 / total_shares   (1e6 при total_shares == 0)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. total_value считается с насыщением и никогда не поднимает исключение
2. При total_shares == 0 NAV равен номиналу (INITIAL_NAV_E6): первый депозит идёт по 1.0
3. Отрицательная стоимость при наличии долей — невыразимое состояние (NAVCalculationError)
4. Все деления усекают к нулю: округление всегда в пользу фонда, а не инвестора
"""

from fund_engine.core.domain.fund import FundStats
from fund_engine.core.errors import InvalidAmount, NAVCalculationError, ShareCalculationError
from fund_engine.core.math.fixed_point import (
    E6,
    I64_MAX,
    I64_MIN,
    INITIAL_NAV_E6,
    U64_MAX,
    checked_narrow,
    mul_div,
    saturating_add,
    saturating_sub,
)


def total_value_e6(stats: FundStats) -> int:
    """
    Полная стоимость фонда (e6).

    Args:
        stats: Статистика фонда

    Returns:
        deposits − withdrawals + pnl − fees, ограниченное диапазоном i64
    """
    value = saturating_sub(stats.total_deposits_e6, stats.total_withdrawals_e6)
    value = saturating_add(value, stats.total_realized_pnl_e6)
    value = saturating_sub(value, stats.total_management_fee_e6)
    value = saturating_sub(value, stats.total_performance_fee_e6)
    return value


def calculate_nav_e6(total_value: int, total_shares: int) -> int:
    """
    NAV на одну долю (e6).

    Args:
        total_value: Стоимость фонда (e6)
        total_shares: Количество выпущенных долей

    Returns:
        NAV в e6

    Raises:
        NAVCalculationError: Отрицательная стоимость при наличии долей
            или NAV вне диапазона i64

    Examples:
        >>> calculate_nav_e6(0, 0)
        1000000
        >>> calculate_nav_e6(1_200_000_000, 1_000_000_000)
        1200000
    """
    if total_shares == 0:
        return INITIAL_NAV_E6

    if total_value < 0:
        raise NAVCalculationError(
            f"Negative fund value {total_value} with {total_shares} shares outstanding"
        )

    nav = mul_div(total_value, E6, total_shares)
    return checked_narrow(nav, I64_MIN, I64_MAX, error=NAVCalculationError, name="nav_e6")


def current_nav_e6(stats: FundStats) -> int:
    """NAV, вычисленный заново из статистики (не сохранённый current_nav_e6)."""
    return calculate_nav_e6(total_value_e6(stats), stats.total_shares)


def calculate_shares_to_mint(amount_e6: int, nav_e6: int) -> int:
    """
    Количество долей за депозит: amount × 1e6 / NAV.

    Raises:
        NAVCalculationError: NAV ≤ 0
        InvalidAmount: amount ≤ 0
        ShareCalculationError: Депозит слишком мал для хотя бы одной доли
        Overflow: Результат не помещается в u64

    Examples:
        >>> calculate_shares_to_mint(1_000_000_000, 1_000_000)
        1000000000
    """
    if nav_e6 <= 0:
        raise NAVCalculationError(f"Cannot mint shares at NAV {nav_e6}")

    if amount_e6 <= 0:
        raise InvalidAmount(f"Deposit amount must be positive, got {amount_e6}")

    shares = mul_div(amount_e6, E6, nav_e6)
    if shares == 0:
        raise ShareCalculationError(f"Amount {amount_e6} buys zero shares at NAV {nav_e6}")

    return checked_narrow(shares, 0, U64_MAX, name="shares")


def calculate_redemption_value(shares: int, nav_e6: int) -> int:
    """
    Выплата за погашаемые доли: shares × NAV / 1e6.

    Raises:
        InvalidAmount: shares == 0
        NAVCalculationError: NAV ≤ 0
        Overflow: Результат не помещается в i64
    """
    if shares <= 0:
        raise InvalidAmount(f"Shares to redeem must be positive, got {shares}")

    if nav_e6 <= 0:
        raise NAVCalculationError(f"Cannot redeem shares at NAV {nav_e6}")

    return checked_narrow(mul_div(shares, nav_e6, E6), 0, I64_MAX, name="redemption_value")


def refresh_nav(stats: FundStats) -> FundStats:
    """Статистика с пересчитанным current_nav_e6."""
    return stats.model_copy(update={"current_nav_e6": current_nav_e6(stats)})
