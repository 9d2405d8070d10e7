"""
Domain records and value types.

Contains the persistent ledger records (Fund, LPPosition, InsuranceFundConfig,
referral records, PredictionMarketFeeConfig, FundConfig) and unit conversions.
"""

from fund_engine.core.domain.fund import (
    DEFAULT_FEE_COLLECTION_INTERVAL,
    MAX_FUND_NAME_LEN,
    FeeConfig,
    Fund,
    FundStats,
    LPPosition,
)
from fund_engine.core.domain.insurance import (
    DEFAULT_WITHDRAWAL_DELAY_SECS,
    ADLTriggerReason,
    InsuranceFundConfig,
)
from fund_engine.core.domain.prediction_market import (
    PMFeeAction,
    PredictionMarketFeeConfig,
)
from fund_engine.core.domain.program import MAX_RELAYERS, FundConfig, RelayerEntry
from fund_engine.core.domain.referral import (
    DEFAULT_MIN_SETTLEMENT_E6,
    DEFAULT_REFEREE_DISCOUNT_BPS,
    DEFAULT_REFERRER_SHARE_BPS,
    DEFAULT_VIP_BONUS_BPS,
    MAX_REFERRAL_CODE_LEN,
    MAX_VIP_TIER,
    VIP_TIER_COUNT,
    ReferralBinding,
    ReferralConfig,
    ReferralLink,
    is_valid_referral_code,
)
from fund_engine.core.domain.units import (
    I64,
    PUBKEY_SIZE,
    U8,
    U16,
    U32,
    U64,
    ZERO_KEY,
    Bps,
    NonNegI64,
    Pubkey,
    Timestamp,
    bps_to_fraction,
    from_e6,
    pubkey_from_bytes,
    pubkey_to_bytes,
    to_e6,
)

__all__ = [
    # Units module
    "I64",
    "U8",
    "U16",
    "U32",
    "U64",
    "Bps",
    "NonNegI64",
    "Pubkey",
    "PUBKEY_SIZE",
    "Timestamp",
    "ZERO_KEY",
    "bps_to_fraction",
    "from_e6",
    "to_e6",
    "pubkey_from_bytes",
    "pubkey_to_bytes",
    # Fund records
    "DEFAULT_FEE_COLLECTION_INTERVAL",
    "MAX_FUND_NAME_LEN",
    "FeeConfig",
    "Fund",
    "FundStats",
    "LPPosition",
    # Insurance fund
    "DEFAULT_WITHDRAWAL_DELAY_SECS",
    "ADLTriggerReason",
    "InsuranceFundConfig",
    # Referral records
    "DEFAULT_MIN_SETTLEMENT_E6",
    "DEFAULT_REFEREE_DISCOUNT_BPS",
    "DEFAULT_REFERRER_SHARE_BPS",
    "DEFAULT_VIP_BONUS_BPS",
    "MAX_REFERRAL_CODE_LEN",
    "MAX_VIP_TIER",
    "VIP_TIER_COUNT",
    "ReferralBinding",
    "ReferralConfig",
    "ReferralLink",
    "is_valid_referral_code",
    # Prediction market
    "PMFeeAction",
    "PredictionMarketFeeConfig",
    # Program registry
    "MAX_RELAYERS",
    "FundConfig",
    "RelayerEntry",
]
