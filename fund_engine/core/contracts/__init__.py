"""
JSON Schema contracts for exported record snapshots.
"""

from fund_engine.core.contracts.validators import (
    ContractValidator,
    FundValidator,
    InsuranceFundConfigValidator,
    LPPositionValidator,
    PMFeeConfigValidator,
    ReferralBindingValidator,
    SchemaLoader,
    export_snapshot,
    validate_fund,
    validate_insurance_fund_config,
    validate_lp_position,
    validate_pm_fee_config,
    validate_referral_binding,
)

__all__ = [
    # Loader
    "SchemaLoader",
    # Validators
    "ContractValidator",
    "FundValidator",
    "InsuranceFundConfigValidator",
    "LPPositionValidator",
    "PMFeeConfigValidator",
    "ReferralBindingValidator",
    # Convenience functions
    "export_snapshot",
    "validate_fund",
    "validate_insurance_fund_config",
    "validate_lp_position",
    "validate_pm_fee_config",
    "validate_referral_binding",
]
