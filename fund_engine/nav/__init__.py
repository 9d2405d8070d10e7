"""NAV/Fee Engine — стоимость фонда, NAV на долю, management и performance fee."""

from fund_engine.nav.fees import (
    FeeAccrual,
    FeeEngine,
    FeePolicy,
    calculate_management_fee,
    calculate_performance_fee,
)
from fund_engine.nav.valuation import (
    calculate_nav_e6,
    calculate_redemption_value,
    calculate_shares_to_mint,
    current_nav_e6,
    refresh_nav,
    total_value_e6,
)

__all__ = [
    # Valuation
    "calculate_nav_e6",
    "calculate_redemption_value",
    "calculate_shares_to_mint",
    "current_nav_e6",
    "refresh_nav",
    "total_value_e6",
    # Fees
    "FeeAccrual",
    "FeeEngine",
    "FeePolicy",
    "calculate_management_fee",
    "calculate_performance_fee",
]
