"""Prediction Market Fee Distributor."""

from fund_engine.prediction_market.fee_distributor import (
    FeeSplit,
    PMFeeCollection,
    PMFeeDistributor,
    compute_fee,
    split_fee,
)

__all__ = [
    "FeeSplit",
    "PMFeeCollection",
    "PMFeeDistributor",
    "compute_fee",
    "split_fee",
]
