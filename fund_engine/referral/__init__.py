"""Referral Computation Engine — ставки, VIP уровни, распределение комиссии сделки."""

from fund_engine.referral.engine import (
    BindingCreation,
    EffectiveRates,
    LinkCreation,
    ReferralEngine,
    ReferralPolicy,
    ReferralSplit,
    TradeRecord,
    is_reward_active,
    resolve_effective_rates,
    split_referral_fee,
    vip_tier,
)

__all__ = [
    "BindingCreation",
    "EffectiveRates",
    "LinkCreation",
    "ReferralEngine",
    "ReferralPolicy",
    "ReferralSplit",
    "TradeRecord",
    "is_reward_active",
    "resolve_effective_rates",
    "split_referral_fee",
    "vip_tier",
]
