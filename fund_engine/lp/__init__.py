"""LP Position Lifecycle — фонды, депозиты, погашения, сбор комиссий."""

from fund_engine.lp.lifecycle import (
    DepositResult,
    FeeCollectionResult,
    FundClosure,
    FundCreation,
    LifecyclePolicy,
    LPLifecycle,
    RedemptionResult,
    apply_realized_pnl,
)

__all__ = [
    "DepositResult",
    "FeeCollectionResult",
    "FundClosure",
    "FundCreation",
    "LifecyclePolicy",
    "LPLifecycle",
    "RedemptionResult",
    "apply_realized_pnl",
]
