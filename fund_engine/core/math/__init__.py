"""
Core math modules для fund_engine

Целочисленные fixed-point примитивы с гарантией детерминизма.
"""

from fund_engine.core.math.fixed_point import (
    # Scales
    BPS_DENOMINATOR,
    E6,
    INITIAL_NAV_E6,
    # Time
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
    SECONDS_PER_YEAR,
    # Integer bounds
    I64_MAX,
    I64_MIN,
    U8_MAX,
    U16_MAX,
    U32_MAX,
    U64_MAX,
    # Saturating
    clamp,
    saturating_add,
    saturating_add_u64,
    saturating_sub,
    saturating_sub_u64,
    # Checked
    checked_add,
    checked_narrow,
    checked_sub,
    # Division
    bps_of,
    mul_div,
    trunc_div,
)

__all__ = [
    # Scales
    "BPS_DENOMINATOR",
    "E6",
    "INITIAL_NAV_E6",
    # Time
    "SECONDS_PER_DAY",
    "SECONDS_PER_HOUR",
    "SECONDS_PER_YEAR",
    # Integer bounds
    "I64_MAX",
    "I64_MIN",
    "U8_MAX",
    "U16_MAX",
    "U32_MAX",
    "U64_MAX",
    # Saturating
    "clamp",
    "saturating_add",
    "saturating_add_u64",
    "saturating_sub",
    "saturating_sub_u64",
    # Checked
    "checked_add",
    "checked_narrow",
    "checked_sub",
    # Division
    "bps_of",
    "mul_div",
    "trunc_div",
]
