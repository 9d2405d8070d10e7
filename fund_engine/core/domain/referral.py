"""
Referral — записи реферальной программы

- ReferralConfig  : глобальные ставки, VIP бонусы, порог расчёта (REF_CONF)
- ReferralLink    : инвайт-код реферера с опциональными индивидуальными ставками (REF_LINK)
- ReferralBinding : связь реферал → реферер, создаётся один раз (REF_BIND)
"""

import re
from typing import Final, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from fund_engine.core.domain.units import I64, U16, U64, Bps, NonNegI64, Pubkey, Timestamp, ZERO_KEY

# Количество VIP уровней (0..5)
VIP_TIER_COUNT: Final[int] = 6
MAX_VIP_TIER: Final[int] = VIP_TIER_COUNT - 1

# Длина и алфавит реферального кода
MAX_REFERRAL_CODE_LEN: Final[int] = 12
REFERRAL_CODE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_-]{1,12}$")

# Ставки по умолчанию
DEFAULT_REFERRER_SHARE_BPS: Final[int] = 2000
DEFAULT_REFEREE_DISCOUNT_BPS: Final[int] = 1000
DEFAULT_VIP_BONUS_BPS: Final[Tuple[int, ...]] = (0, 200, 500, 1000, 1500, 2000)
DEFAULT_MIN_SETTLEMENT_E6: Final[int] = 10_000_000

VipBonusTable = Tuple[U16, U16, U16, U16, U16, U16]


def is_valid_referral_code(code: str) -> bool:
    """Код: 1..12 символов из [A-Za-z0-9_-]."""
    return REFERRAL_CODE_PATTERN.fullmatch(code) is not None


# =============================================================================
# REFERRAL CONFIG
# =============================================================================


class ReferralConfig(BaseModel):
    """Глобальные условия реферальной программы."""

    authority: Pubkey
    authorized_caller: Pubkey = Field(ZERO_KEY, description="CPI caller для записи сделок")

    # Базовые ставки
    referrer_share_bps: U16 = DEFAULT_REFERRER_SHARE_BPS
    referee_discount_bps: U16 = DEFAULT_REFEREE_DISCOUNT_BPS

    # VIP бонусы по уровням 0..5
    referrer_vip_bonus_bps: VipBonusTable = DEFAULT_VIP_BONUS_BPS
    referee_vip_bonus_bps: VipBonusTable = DEFAULT_VIP_BONUS_BPS

    # Политика расчёта
    min_settlement_amount_e6: NonNegI64 = DEFAULT_MIN_SETTLEMENT_E6
    reward_validity_secs: NonNegI64 = Field(0, description="0 = награда бессрочна")

    # Статистика
    total_referrers: U64 = 0
    total_referees: U64 = 0
    total_volume_e6: I64 = 0
    total_rewards_e6: I64 = 0
    total_discounts_e6: I64 = 0

    is_paused: bool = False
    last_update_ts: Timestamp = 0

    model_config = {"frozen": True}


# =============================================================================
# REFERRAL LINK
# =============================================================================


class ReferralLink(BaseModel):
    """Инвайт-код реферера."""

    referrer: Pubkey
    code: str
    is_active: bool = True

    # Индивидуальные ставки (None = глобальные + VIP)
    custom_referrer_share_bps: Optional[Bps] = None
    custom_referee_discount_bps: Optional[Bps] = None

    referred_count: U64 = 0
    total_volume_e6: I64 = 0
    total_rewards_earned_e6: I64 = 0
    total_discounts_given_e6: I64 = 0

    created_at: Timestamp = 0
    last_update_ts: Timestamp = 0

    model_config = {"frozen": True}

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        if not is_valid_referral_code(v):
            raise ValueError(f"Invalid referral code {v!r}")
        return v


# =============================================================================
# REFERRAL BINDING
# =============================================================================


class ReferralBinding(BaseModel):
    """Связь реферала с реферером. Создаётся ровно один раз на реферала."""

    referee: Pubkey
    referrer: Pubkey
    referral_code: str
    bound_at: Timestamp

    referee_volume_e6: I64 = 0
    referrer_rewards_e6: I64 = 0
    referee_discounts_e6: I64 = 0
    trade_count: U64 = 0
    last_trade_ts: Timestamp = 0

    model_config = {"frozen": True}

    @field_validator("referral_code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        if not is_valid_referral_code(v):
            raise ValueError(f"Invalid referral code {v!r}")
        return v
