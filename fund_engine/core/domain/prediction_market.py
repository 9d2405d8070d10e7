"""
PredictionMarketFeeConfig — комиссии операций prediction market (PM_FEECF)

Хранит ставки по типам операций, доли распределения (protocol/maker/creator),
накопительную статистику и пулы ещё не выплаченных наград.
"""

from enum import Enum
from typing import Final

from pydantic import BaseModel, Field, model_validator

from fund_engine.core.domain.units import I64, U16, Bps, Pubkey, Timestamp
from fund_engine.core.math.fixed_point import BPS_DENOMINATOR

DEFAULT_PM_MINTING_FEE_BPS: Final[int] = 10
DEFAULT_PM_REDEMPTION_FEE_BPS: Final[int] = 10
DEFAULT_PM_TAKER_FEE_BPS: Final[int] = 10
DEFAULT_PM_MAKER_FEE_BPS: Final[int] = 0
DEFAULT_PM_SETTLEMENT_FEE_BPS: Final[int] = 0

DEFAULT_PM_PROTOCOL_SHARE_BPS: Final[int] = 7000
DEFAULT_PM_MAKER_REWARD_SHARE_BPS: Final[int] = 2000
DEFAULT_PM_CREATOR_SHARE_BPS: Final[int] = 1000


class PMFeeAction(str, Enum):
    """Оплачиваемые операции prediction market."""

    MINTING = "MINTING"
    REDEMPTION = "REDEMPTION"
    TAKER_TRADE = "TAKER_TRADE"
    MAKER_TRADE = "MAKER_TRADE"
    SETTLEMENT = "SETTLEMENT"


class PredictionMarketFeeConfig(BaseModel):
    """
    Условия комиссий prediction market.

    Инвариант: protocol_share_bps + maker_reward_share_bps + creator_share_bps == 10000.
    """

    authority: Pubkey
    authorized_caller: Pubkey = Field(..., description="Программа prediction market (CPI)")

    # Ставки по операциям
    minting_fee_bps: Bps = DEFAULT_PM_MINTING_FEE_BPS
    redemption_fee_bps: Bps = DEFAULT_PM_REDEMPTION_FEE_BPS
    taker_fee_bps: Bps = DEFAULT_PM_TAKER_FEE_BPS
    maker_fee_bps: Bps = DEFAULT_PM_MAKER_FEE_BPS
    settlement_fee_bps: Bps = DEFAULT_PM_SETTLEMENT_FEE_BPS

    # Доли распределения
    protocol_share_bps: U16 = DEFAULT_PM_PROTOCOL_SHARE_BPS
    maker_reward_share_bps: U16 = DEFAULT_PM_MAKER_REWARD_SHARE_BPS
    creator_share_bps: U16 = DEFAULT_PM_CREATOR_SHARE_BPS

    # Статистика (e6)
    total_minting_fee_e6: I64 = 0
    total_redemption_fee_e6: I64 = 0
    total_trading_fee_e6: I64 = 0
    total_settlement_fee_e6: I64 = 0
    total_protocol_income_e6: I64 = 0

    # Пулы к выплате и выплаченные награды (e6)
    maker_reward_pool_e6: I64 = 0
    creator_reward_pool_e6: I64 = 0
    total_maker_rewards_paid_e6: I64 = 0
    total_creator_rewards_paid_e6: I64 = 0

    is_paused: bool = False
    last_update_ts: Timestamp = 0

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_share_sum(self) -> "PredictionMarketFeeConfig":
        total = self.protocol_share_bps + self.maker_reward_share_bps + self.creator_share_bps
        if total != BPS_DENOMINATOR:
            raise ValueError(f"Distribution shares must sum to {BPS_DENOMINATOR}, got {total}")
        return self

    def fee_bps_for(self, action: PMFeeAction) -> int:
        return {
            PMFeeAction.MINTING: self.minting_fee_bps,
            PMFeeAction.REDEMPTION: self.redemption_fee_bps,
            PMFeeAction.TAKER_TRADE: self.taker_fee_bps,
            PMFeeAction.MAKER_TRADE: self.maker_fee_bps,
            PMFeeAction.SETTLEMENT: self.settlement_fee_bps,
        }[action]
