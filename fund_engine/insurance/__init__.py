"""Insurance Fund Risk Engine — доходы буфера, shortfall, ADL решение и флаг."""

from fund_engine.insurance.risk_engine import (
    ADLCheckResult,
    InsuranceFundCreation,
    InsurancePolicy,
    InsuranceRiskEngine,
    InsuranceUpdate,
    ShortfallCoverage,
    SnapshotUpdate,
)

__all__ = [
    "ADLCheckResult",
    "InsuranceFundCreation",
    "InsurancePolicy",
    "InsuranceRiskEngine",
    "InsuranceUpdate",
    "ShortfallCoverage",
    "SnapshotUpdate",
]
