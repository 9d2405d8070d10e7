"""Proxy callers: реестр relayers с лимитами и proxy-операции инвестора."""

from fund_engine.relayer.gateway import (
    RelayedBinding,
    RelayedDeposit,
    RelayedRedemption,
    RelayerGateway,
)
from fund_engine.relayer.registry import RelayerPolicy, RelayerRegistry

__all__ = [
    # Registry
    "RelayerPolicy",
    "RelayerRegistry",
    # Gateway
    "RelayedBinding",
    "RelayedDeposit",
    "RelayedRedemption",
    "RelayerGateway",
]
