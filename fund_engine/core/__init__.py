"""
Core primitives: fixed-point math, typed errors, domain records, binary layout, contracts.

This module contains the foundational building blocks shared by every engine
and independent of the surrounding runtime (storage, signatures, token transfers).
"""
