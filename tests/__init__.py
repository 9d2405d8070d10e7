"""
Test suite for fund_engine

Contains:
- tests/unit/          : Unit tests for primitives, records and engines
"""
