"""
FundConfig — реестр программы и allow-list proxy callers (FUND_CON)

Список relayers — ограниченная коллекция фиксированной ёмкости (MAX_RELAYERS):
на диске он хранится как счётчик плюс MAX_RELAYERS слотов.
"""

from typing import Final, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from fund_engine.core.domain.units import I64, U64, NonNegI64, Pubkey, Timestamp

MAX_RELAYERS: Final[int] = 5


class RelayerEntry(BaseModel):
    """Proxy caller с лимитами. Лимит 0 означает отсутствие ограничения."""

    relayer: Pubkey
    is_active: bool = True
    single_tx_limit_e6: NonNegI64 = 0
    daily_limit_e6: NonNegI64 = 0
    daily_used_e6: NonNegI64 = 0
    last_reset_ts: Timestamp = 0

    model_config = {"frozen": True}


class FundConfig(BaseModel):
    """Глобальный реестр фондов."""

    authority: Pubkey
    vault_program: Pubkey
    ledger_program: Pubkey = Field(..., description="Единственный caller для record_pnl")

    total_funds: U64 = 0
    active_funds: U64 = 0
    is_paused: bool = False

    relayers: Tuple[RelayerEntry, ...] = Field((), max_length=MAX_RELAYERS)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_counts(self) -> "FundConfig":
        if self.active_funds > self.total_funds:
            raise ValueError(
                f"active_funds {self.active_funds} exceeds total_funds {self.total_funds}"
            )
        keys = [entry.relayer for entry in self.relayers]
        if len(keys) != len(set(keys)):
            raise ValueError("Duplicate relayer entries")
        return self

    @property
    def relayer_count(self) -> int:
        return len(self.relayers)

    def find_relayer(self, relayer: str) -> Optional[RelayerEntry]:
        for entry in self.relayers:
            if entry.relayer == relayer:
                return entry
        return None
