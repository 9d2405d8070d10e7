"""
Fixed binary record layouts (type tag + fields + reserved block).
"""

from fund_engine.core.codec.layout import (
    ALL_LAYOUTS,
    CONFIG_RESERVED_SIZE,
    DISCRIMINATOR_SIZE,
    FUND_CONFIG_LAYOUT,
    FUND_LAYOUT,
    INSURANCE_FUND_CONFIG_LAYOUT,
    LP_POSITION_LAYOUT,
    PM_FEE_CONFIG_LAYOUT,
    RECORD_RESERVED_SIZE,
    REFERRAL_BINDING_LAYOUT,
    REFERRAL_CONFIG_LAYOUT,
    REFERRAL_LINK_LAYOUT,
    RecordLayout,
    decode_record,
    encode_record,
    layout_for,
)

__all__ = [
    # Layouts
    "ALL_LAYOUTS",
    "FUND_CONFIG_LAYOUT",
    "FUND_LAYOUT",
    "INSURANCE_FUND_CONFIG_LAYOUT",
    "LP_POSITION_LAYOUT",
    "PM_FEE_CONFIG_LAYOUT",
    "REFERRAL_BINDING_LAYOUT",
    "REFERRAL_CONFIG_LAYOUT",
    "REFERRAL_LINK_LAYOUT",
    "RecordLayout",
    # Sizes
    "CONFIG_RESERVED_SIZE",
    "DISCRIMINATOR_SIZE",
    "RECORD_RESERVED_SIZE",
    # Functions
    "decode_record",
    "encode_record",
    "layout_for",
]
