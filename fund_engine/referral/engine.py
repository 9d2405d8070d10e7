"""
Referral Engine — эффективные ставки и распределение комиссии сделки

Эффективные ставки:
    tier            = max(referrer_vip, referee_vip), ограничен 0..5
    discount_bps    = link.custom_referee_discount_bps  или  base + referee_bonus[tier]
    share_bps       = link.custom_referrer_share_bps    или  base + referrer_bonus[tier]

Распределение комиссии fee:
    discount        = fee × discount_bps / 10000
    net_fee         = fee − discount
    referrer_reward = net_fee × share_bps / 10000
    platform_income = net_fee − referrer_reward

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. discount + referrer_reward + platform_income == fee (остаток всегда у платформы)
2. net_fee < min_settlement → вся комиссия платформе, без скидки и награды
3. Истёкшая награда (reward_validity_secs) обнуляет только награду реферера, скидка сохраняется
4. Binding создаётся ровно один раз на реферала
"""

import logging
from dataclasses import dataclass
from typing import Collection, Optional, Sequence

from fund_engine.core.domain.referral import (
    MAX_VIP_TIER,
    VIP_TIER_COUNT,
    ReferralBinding,
    ReferralConfig,
    ReferralLink,
    is_valid_referral_code,
)
from fund_engine.core.errors import (
    AdminRequired,
    AlreadyBound,
    CannotReferSelf,
    InvalidAmount,
    InvalidRefereeDiscount,
    InvalidReferralCode,
    InvalidReferrerShare,
    ReferralLinkAlreadyExists,
    ReferralLinkMismatch,
    ReferralLinkNotActive,
    ReferralPaused,
    Unauthorized,
    UnauthorizedCaller,
)
from fund_engine.core.math.fixed_point import (
    BPS_DENOMINATOR,
    bps_of,
    clamp,
    saturating_add,
    saturating_add_u64,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG / RESULTS
# =============================================================================


@dataclass(frozen=True)
class ReferralPolicy:
    """Границы ставок реферальной программы."""

    max_base_rate_bps: int = 5000
    max_custom_rate_bps: int = BPS_DENOMINATOR


@dataclass(frozen=True)
class EffectiveRates:
    tier: int
    referee_discount_bps: int
    referrer_share_bps: int


@dataclass(frozen=True)
class ReferralSplit:
    """Распределение комиссии одной сделки."""

    fee_e6: int
    discount_e6: int
    net_fee_e6: int
    referrer_reward_e6: int
    platform_income_e6: int

    settled: bool  # False: net_fee ниже порога расчёта
    reward_expired: bool


@dataclass(frozen=True)
class LinkCreation:
    config: ReferralConfig
    link: ReferralLink


@dataclass(frozen=True)
class BindingCreation:
    config: ReferralConfig
    link: ReferralLink
    binding: ReferralBinding


@dataclass(frozen=True)
class TradeRecord:
    config: ReferralConfig
    link: ReferralLink
    binding: ReferralBinding
    split: ReferralSplit


# =============================================================================
# PURE FUNCTIONS
# =============================================================================


def vip_tier(referrer_vip_level: int, referee_vip_level: int) -> int:
    """
    Общий VIP уровень пары: старший из двух, ограниченный 0..5.

    Examples:
        >>> vip_tier(1, 3)
        3
        >>> vip_tier(9, 0)
        5
    """
    return clamp(max(referrer_vip_level, referee_vip_level), 0, MAX_VIP_TIER)


def resolve_effective_rates(
    config: ReferralConfig,
    link: ReferralLink,
    referrer_vip_level: int = 0,
    referee_vip_level: int = 0,
) -> EffectiveRates:
    """
    Эффективные ставки скидки и награды для пары реферер/реферал.

    Индивидуальная ставка ссылки (если задана) заменяет базу и VIP бонус целиком.
    """
    tier = vip_tier(referrer_vip_level, referee_vip_level)

    if link.custom_referee_discount_bps is not None:
        discount_bps = link.custom_referee_discount_bps
    else:
        discount_bps = config.referee_discount_bps + config.referee_vip_bonus_bps[tier]

    if link.custom_referrer_share_bps is not None:
        share_bps = link.custom_referrer_share_bps
    else:
        share_bps = config.referrer_share_bps + config.referrer_vip_bonus_bps[tier]

    return EffectiveRates(
        tier=tier,
        referee_discount_bps=min(discount_bps, BPS_DENOMINATOR),
        referrer_share_bps=min(share_bps, BPS_DENOMINATOR),
    )


def split_referral_fee(
    fee_e6: int,
    rates: EffectiveRates,
    min_settlement_amount_e6: int,
    reward_active: bool = True,
) -> ReferralSplit:
    """
    Распределение комиссии между скидкой реферала, наградой реферера и платформой.

    Args:
        fee_e6: Комиссия сделки (e6, >= 0)
        rates: Эффективные ставки
        min_settlement_amount_e6: Минимальный net_fee для расчёта
        reward_active: False, если срок награды реферера истёк

    Returns:
        ReferralSplit; discount + reward + platform == fee

    Examples:
        >>> rates = EffectiveRates(tier=0, referee_discount_bps=1000, referrer_share_bps=2000)
        >>> split = split_referral_fee(100_000_000, rates, 10_000_000)
        >>> (split.discount_e6, split.referrer_reward_e6, split.platform_income_e6)
        (10000000, 18000000, 72000000)
    """
    discount = bps_of(fee_e6, rates.referee_discount_bps)
    net_fee = fee_e6 - discount

    if net_fee < min_settlement_amount_e6:
        return ReferralSplit(
            fee_e6=fee_e6,
            discount_e6=0,
            net_fee_e6=fee_e6,
            referrer_reward_e6=0,
            platform_income_e6=fee_e6,
            settled=False,
            reward_expired=not reward_active,
        )

    reward = bps_of(net_fee, rates.referrer_share_bps) if reward_active else 0

    return ReferralSplit(
        fee_e6=fee_e6,
        discount_e6=discount,
        net_fee_e6=net_fee,
        referrer_reward_e6=reward,
        platform_income_e6=net_fee - reward,
        settled=True,
        reward_expired=not reward_active,
    )


def is_reward_active(config: ReferralConfig, binding: ReferralBinding, now: int) -> bool:
    """Награда реферера действует, если срок не задан или ещё не истёк."""
    if config.reward_validity_secs <= 0:
        return True
    return now - binding.bound_at <= config.reward_validity_secs


# =============================================================================
# ENGINE
# =============================================================================


class ReferralEngine:
    """Операции реферальной программы."""

    def __init__(self, policy: Optional[ReferralPolicy] = None):
        self.policy = policy or ReferralPolicy()

    # -------------------------------------------------------------------------
    # Config
    # -------------------------------------------------------------------------

    def initialize_referral(
        self,
        authority: str,
        authorized_caller: str,
        now: int,
        referrer_share_bps: Optional[int] = None,
        referee_discount_bps: Optional[int] = None,
    ) -> ReferralConfig:
        """
        Создание глобальной конфигурации (None = ставка по умолчанию).

        Raises:
            InvalidReferrerShare / InvalidRefereeDiscount: Ставка выше лимита
        """
        changes = {"authority": authority, "authorized_caller": authorized_caller, "last_update_ts": now}
        if referrer_share_bps is not None:
            self._validate_base_rates(referrer_share_bps, None)
            changes["referrer_share_bps"] = referrer_share_bps
        if referee_discount_bps is not None:
            self._validate_base_rates(None, referee_discount_bps)
            changes["referee_discount_bps"] = referee_discount_bps

        logger.info("referral program initialized: authority=%s", authority)
        return ReferralConfig(**changes)

    def update_referral_config(
        self,
        config: ReferralConfig,
        caller: str,
        now: int,
        referrer_share_bps: Optional[int] = None,
        referee_discount_bps: Optional[int] = None,
        referrer_vip_bonus_bps: Optional[Sequence[int]] = None,
        referee_vip_bonus_bps: Optional[Sequence[int]] = None,
        min_settlement_amount_e6: Optional[int] = None,
        reward_validity_secs: Optional[int] = None,
        authorized_caller: Optional[str] = None,
        is_paused: Optional[bool] = None,
    ) -> ReferralConfig:
        """
        Изменение глобальной конфигурации (только authority, None = без изменений).

        Raises:
            AdminRequired: caller не authority
            InvalidReferrerShare / InvalidRefereeDiscount: Ставка или VIP бонус вне границ
            InvalidAmount: Отрицательный порог или срок
        """
        self._require_admin(config, caller)
        self._validate_base_rates(referrer_share_bps, referee_discount_bps)

        if referrer_vip_bonus_bps is not None:
            self._validate_vip_table(referrer_vip_bonus_bps, InvalidReferrerShare)
        if referee_vip_bonus_bps is not None:
            self._validate_vip_table(referee_vip_bonus_bps, InvalidRefereeDiscount)
        if min_settlement_amount_e6 is not None and min_settlement_amount_e6 < 0:
            raise InvalidAmount(f"min_settlement_amount_e6 must be non-negative, got {min_settlement_amount_e6}")
        if reward_validity_secs is not None and reward_validity_secs < 0:
            raise InvalidAmount(f"reward_validity_secs must be non-negative, got {reward_validity_secs}")

        changes = {
            "referrer_share_bps": referrer_share_bps,
            "referee_discount_bps": referee_discount_bps,
            "referrer_vip_bonus_bps": tuple(referrer_vip_bonus_bps) if referrer_vip_bonus_bps is not None else None,
            "referee_vip_bonus_bps": tuple(referee_vip_bonus_bps) if referee_vip_bonus_bps is not None else None,
            "min_settlement_amount_e6": min_settlement_amount_e6,
            "reward_validity_secs": reward_validity_secs,
            "authorized_caller": authorized_caller,
            "is_paused": is_paused,
        }
        update = {key: value for key, value in changes.items() if value is not None}
        update["last_update_ts"] = now

        logger.info("referral config updated: fields=%s", sorted(update))
        return config.model_copy(update=update)

    # -------------------------------------------------------------------------
    # Links
    # -------------------------------------------------------------------------

    def create_referral_link(
        self,
        config: ReferralConfig,
        referrer: str,
        code: str,
        now: int,
        taken_codes: Collection[str] = (),
        existing_link: Optional[ReferralLink] = None,
    ) -> LinkCreation:
        """
        Создание инвайт-кода реферера.

        Args:
            config: Глобальная конфигурация
            referrer: Ключ реферера
            code: Код (1..12 символов [A-Za-z0-9_-])
            now: Текущий Unix timestamp
            taken_codes: Уже занятые коды (из хранилища)
            existing_link: Текущая ссылка реферера (одна ссылка на реферера)

        Raises:
            ReferralPaused / InvalidReferralCode / ReferralLinkAlreadyExists
        """
        if config.is_paused:
            raise ReferralPaused()
        if not is_valid_referral_code(code):
            raise InvalidReferralCode(f"Invalid referral code {code!r}")
        if existing_link is not None and existing_link.referrer == referrer:
            raise ReferralLinkAlreadyExists(f"Referrer {referrer} already owns link {existing_link.code!r}")
        if code in taken_codes:
            raise ReferralLinkAlreadyExists(f"Referral code {code!r} is already taken")

        link = ReferralLink(referrer=referrer, code=code, created_at=now, last_update_ts=now)
        config = config.model_copy(
            update={"total_referrers": saturating_add_u64(config.total_referrers, 1), "last_update_ts": now}
        )

        logger.info("referral link created: referrer=%s code=%s", referrer, code)
        return LinkCreation(config=config, link=link)

    def deactivate_referral_link(self, link: ReferralLink, caller: str, now: int) -> ReferralLink:
        """Отключение ссылки (только её реферер)."""
        if caller != link.referrer:
            raise Unauthorized(f"Caller {caller} does not own referral link {link.code!r}")

        logger.info("referral link deactivated: code=%s", link.code)
        return link.model_copy(update={"is_active": False, "last_update_ts": now})

    def set_custom_referral_rates(
        self,
        config: ReferralConfig,
        link: ReferralLink,
        caller: str,
        now: int,
        referrer_share_bps: Optional[int] = None,
        referee_discount_bps: Optional[int] = None,
    ) -> ReferralLink:
        """Индивидуальные ставки ссылки (только authority). None снимает override."""
        self._require_admin(config, caller)

        if referrer_share_bps is not None and referrer_share_bps > self.policy.max_custom_rate_bps:
            raise InvalidReferrerShare(f"Custom referrer share {referrer_share_bps} bps out of range")
        if referee_discount_bps is not None and referee_discount_bps > self.policy.max_custom_rate_bps:
            raise InvalidRefereeDiscount(f"Custom referee discount {referee_discount_bps} bps out of range")

        return link.model_copy(
            update={
                "custom_referrer_share_bps": referrer_share_bps,
                "custom_referee_discount_bps": referee_discount_bps,
                "last_update_ts": now,
            }
        )

    # -------------------------------------------------------------------------
    # Bindings / trades
    # -------------------------------------------------------------------------

    def bind_referral(
        self,
        config: ReferralConfig,
        link: ReferralLink,
        referee: str,
        existing_binding: Optional[ReferralBinding],
        now: int,
    ) -> BindingCreation:
        """
        Привязка реферала к рефереру по ссылке.

        Raises:
            ReferralPaused: Программа на паузе
            AlreadyBound: У реферала уже есть binding
            ReferralLinkNotActive: Ссылка отключена
            CannotReferSelf: Реферал совпадает с реферером
        """
        if config.is_paused:
            raise ReferralPaused()
        if existing_binding is not None:
            raise AlreadyBound(f"Referee {referee} is already bound to {existing_binding.referrer}")
        if not link.is_active:
            raise ReferralLinkNotActive(f"Referral link {link.code!r} is not active")
        if referee == link.referrer:
            raise CannotReferSelf()

        binding = ReferralBinding(
            referee=referee,
            referrer=link.referrer,
            referral_code=link.code,
            bound_at=now,
        )
        link = link.model_copy(
            update={"referred_count": saturating_add_u64(link.referred_count, 1), "last_update_ts": now}
        )
        config = config.model_copy(
            update={"total_referees": saturating_add_u64(config.total_referees, 1), "last_update_ts": now}
        )

        logger.info("referral bound: referee=%s referrer=%s code=%s", referee, link.referrer, link.code)
        return BindingCreation(config=config, link=link, binding=binding)

    def record_referral_trade(
        self,
        config: ReferralConfig,
        link: ReferralLink,
        binding: ReferralBinding,
        caller: str,
        fee_e6: int,
        volume_e6: int,
        now: int,
        referrer_vip_level: int = 0,
        referee_vip_level: int = 0,
    ) -> TradeRecord:
        """
        Учёт сделки реферала и распределение её комиссии.

        Raises:
            UnauthorizedCaller: caller не authorized_caller
            ReferralPaused: Программа на паузе
            ReferralLinkMismatch: binding не относится к ссылке
            InvalidAmount: Отрицательная комиссия или объём
        """
        if caller != config.authorized_caller:
            logger.warning("unauthorized referral trade caller: %s", caller)
            raise UnauthorizedCaller(f"Caller {caller} may not record referral trades")
        if config.is_paused:
            raise ReferralPaused()
        if binding.referral_code != link.code or binding.referrer != link.referrer:
            raise ReferralLinkMismatch(f"Binding {binding.referral_code!r} does not belong to link {link.code!r}")
        if fee_e6 < 0 or volume_e6 < 0:
            raise InvalidAmount(f"Fee and volume must be non-negative, got fee={fee_e6} volume={volume_e6}")

        rates = resolve_effective_rates(config, link, referrer_vip_level, referee_vip_level)
        split = split_referral_fee(
            fee_e6,
            rates,
            config.min_settlement_amount_e6,
            reward_active=is_reward_active(config, binding, now),
        )

        binding = binding.model_copy(
            update={
                "referee_volume_e6": saturating_add(binding.referee_volume_e6, volume_e6),
                "referrer_rewards_e6": saturating_add(binding.referrer_rewards_e6, split.referrer_reward_e6),
                "referee_discounts_e6": saturating_add(binding.referee_discounts_e6, split.discount_e6),
                "trade_count": saturating_add_u64(binding.trade_count, 1),
                "last_trade_ts": now,
            }
        )
        link = link.model_copy(
            update={
                "total_volume_e6": saturating_add(link.total_volume_e6, volume_e6),
                "total_rewards_earned_e6": saturating_add(link.total_rewards_earned_e6, split.referrer_reward_e6),
                "total_discounts_given_e6": saturating_add(link.total_discounts_given_e6, split.discount_e6),
                "last_update_ts": now,
            }
        )
        config = config.model_copy(
            update={
                "total_volume_e6": saturating_add(config.total_volume_e6, volume_e6),
                "total_rewards_e6": saturating_add(config.total_rewards_e6, split.referrer_reward_e6),
                "total_discounts_e6": saturating_add(config.total_discounts_e6, split.discount_e6),
                "last_update_ts": now,
            }
        )

        logger.debug(
            "referral trade: code=%s tier=%d fee=%d discount=%d reward=%d platform=%d",
            link.code,
            rates.tier,
            fee_e6,
            split.discount_e6,
            split.referrer_reward_e6,
            split.platform_income_e6,
        )
        return TradeRecord(config=config, link=link, binding=binding, split=split)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_admin(self, config: ReferralConfig, caller: str) -> None:
        if caller != config.authority:
            raise AdminRequired(f"Caller {caller} is not the referral authority")

    def _validate_base_rates(self, referrer_share_bps: Optional[int], referee_discount_bps: Optional[int]) -> None:
        limit = self.policy.max_base_rate_bps
        if referrer_share_bps is not None and not 0 <= referrer_share_bps <= limit:
            raise InvalidReferrerShare(f"Referrer share {referrer_share_bps} bps outside 0..{limit}")
        if referee_discount_bps is not None and not 0 <= referee_discount_bps <= limit:
            raise InvalidRefereeDiscount(f"Referee discount {referee_discount_bps} bps outside 0..{limit}")

    def _validate_vip_table(self, table: Sequence[int], error: type) -> None:
        if len(table) != VIP_TIER_COUNT:
            raise error(f"VIP bonus table must have {VIP_TIER_COUNT} tiers, got {len(table)}")
        for bonus in table:
            if not 0 <= bonus <= BPS_DENOMINATOR:
                raise error(f"VIP bonus {bonus} bps outside 0..{BPS_DENOMINATOR}")
