"""
Prediction Market Fee Distributor — комиссии операций и их распределение

fee      = notional × fee_bps(action) / 10000
protocol = fee × protocol_share_bps / 10000
maker    = fee × maker_reward_share_bps / 10000
creator  = fee − protocol − maker

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. protocol + maker + creator == fee (остаток округления уходит creator)
2. protocol_share + maker_share + creator_share == 10000
3. Выплата награды не превышает накопленный пул
4. Нулевая комиссия не изменяет конфигурацию
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fund_engine.core.domain.prediction_market import PMFeeAction, PredictionMarketFeeConfig
from fund_engine.core.errors import (
    AdminRequired,
    InsufficientBalance,
    InvalidAmount,
    InvalidFeeConfiguration,
    PMFeePaused,
    UnauthorizedCaller,
)
from fund_engine.core.math.fixed_point import BPS_DENOMINATOR, I64_MAX, bps_of, checked_narrow, saturating_add

logger = logging.getLogger(__name__)


_TOTAL_FIELD_BY_ACTION = {
    PMFeeAction.MINTING: "total_minting_fee_e6",
    PMFeeAction.REDEMPTION: "total_redemption_fee_e6",
    PMFeeAction.TAKER_TRADE: "total_trading_fee_e6",
    PMFeeAction.MAKER_TRADE: "total_trading_fee_e6",
    PMFeeAction.SETTLEMENT: "total_settlement_fee_e6",
}

_FEE_BPS_FIELDS = (
    "minting_fee_bps",
    "redemption_fee_bps",
    "taker_fee_bps",
    "maker_fee_bps",
    "settlement_fee_bps",
)


@dataclass(frozen=True)
class FeeSplit:
    fee_e6: int
    protocol_e6: int
    maker_reward_e6: int
    creator_e6: int


@dataclass(frozen=True)
class PMFeeCollection:
    config: PredictionMarketFeeConfig
    action: PMFeeAction
    notional_e6: int
    split: FeeSplit


def compute_fee(config: PredictionMarketFeeConfig, action: PMFeeAction, notional_e6: int) -> int:
    """
    Комиссия операции.

    Raises:
        InvalidAmount: notional < 0

    Examples:
        >>> from fund_engine.core.domain.units import ZERO_KEY
        >>> cfg = PredictionMarketFeeConfig(authority=ZERO_KEY, authorized_caller=ZERO_KEY)
        >>> compute_fee(cfg, PMFeeAction.TAKER_TRADE, 10_000_000_000)
        10000000
    """
    if notional_e6 < 0:
        raise InvalidAmount(f"Notional must be non-negative, got {notional_e6}")
    return checked_narrow(bps_of(notional_e6, config.fee_bps_for(action)), 0, I64_MAX, name="pm_fee")


def split_fee(config: PredictionMarketFeeConfig, fee_e6: int) -> FeeSplit:
    """Распределение комиссии: protocol и maker по долям, creator получает остаток."""
    protocol = bps_of(fee_e6, config.protocol_share_bps)
    maker = bps_of(fee_e6, config.maker_reward_share_bps)
    return FeeSplit(
        fee_e6=fee_e6,
        protocol_e6=protocol,
        maker_reward_e6=maker,
        creator_e6=fee_e6 - protocol - maker,
    )


class PMFeeDistributor:
    """Учёт комиссий prediction market и выплата наград из пулов."""

    def initialize_pm_fee_config(
        self,
        authority: str,
        authorized_caller: str,
        now: int,
        **overrides: int,
    ) -> PredictionMarketFeeConfig:
        """
        Создание конфигурации. overrides: ставки и доли (по умолчанию 10/10/10/0/0, 70/20/10).

        Raises:
            InvalidFeeConfiguration: Доли не дают 10000 или ставка > 10000
        """
        self._validate_rates(overrides)
        shares = {
            name: overrides.get(name, PredictionMarketFeeConfig.model_fields[name].default)
            for name in ("protocol_share_bps", "maker_reward_share_bps", "creator_share_bps")
        }
        self._validate_shares(**shares)

        logger.info("pm fee config initialized: authority=%s caller=%s", authority, authorized_caller)
        return PredictionMarketFeeConfig(
            authority=authority,
            authorized_caller=authorized_caller,
            last_update_ts=now,
            **overrides,
        )

    def collect_fee(
        self,
        config: PredictionMarketFeeConfig,
        caller: str,
        action: PMFeeAction,
        notional_e6: int,
        now: int,
    ) -> PMFeeCollection:
        """
        Начисление комиссии операции и распределение в пулы.

        Args:
            config: Конфигурация комиссий
            caller: Вызывающая программа (должна быть authorized_caller)
            action: Тип операции
            notional_e6: Объём операции (e6)
            now: Текущий Unix timestamp

        Returns:
            PMFeeCollection; при нулевой комиссии config не меняется

        Raises:
            UnauthorizedCaller: caller не authorized_caller
            PMFeePaused: Сбор комиссий приостановлен
            InvalidAmount: notional < 0
        """
        if caller != config.authorized_caller:
            logger.warning("unauthorized pm fee caller: %s", caller)
            raise UnauthorizedCaller(f"Caller {caller} may not collect prediction market fees")
        if config.is_paused:
            raise PMFeePaused()

        fee = compute_fee(config, action, notional_e6)
        split = split_fee(config, fee)
        if fee == 0:
            return PMFeeCollection(config=config, action=action, notional_e6=notional_e6, split=split)

        total_field = _TOTAL_FIELD_BY_ACTION[action]
        config = config.model_copy(
            update={
                total_field: saturating_add(getattr(config, total_field), fee),
                "total_protocol_income_e6": saturating_add(config.total_protocol_income_e6, split.protocol_e6),
                "maker_reward_pool_e6": saturating_add(config.maker_reward_pool_e6, split.maker_reward_e6),
                "creator_reward_pool_e6": saturating_add(config.creator_reward_pool_e6, split.creator_e6),
                "last_update_ts": now,
            }
        )

        logger.debug(
            "pm fee collected: action=%s fee=%d protocol=%d maker=%d creator=%d",
            action.value,
            fee,
            split.protocol_e6,
            split.maker_reward_e6,
            split.creator_e6,
        )
        return PMFeeCollection(config=config, action=action, notional_e6=notional_e6, split=split)

    def distribute_maker_reward(
        self, config: PredictionMarketFeeConfig, caller: str, amount_e6: int, now: int
    ) -> PredictionMarketFeeConfig:
        return self._distribute(config, caller, amount_e6, now, "maker_reward_pool_e6", "total_maker_rewards_paid_e6")

    def distribute_creator_reward(
        self, config: PredictionMarketFeeConfig, caller: str, amount_e6: int, now: int
    ) -> PredictionMarketFeeConfig:
        return self._distribute(
            config, caller, amount_e6, now, "creator_reward_pool_e6", "total_creator_rewards_paid_e6"
        )

    def update_pm_fee_config(
        self,
        config: PredictionMarketFeeConfig,
        caller: str,
        now: int,
        **changes: Optional[int],
    ) -> PredictionMarketFeeConfig:
        """
        Изменение ставок и долей (только authority). None = без изменений.

        Raises:
            AdminRequired: caller не authority
            InvalidFeeConfiguration: Доли не дают 10000, ставка > 10000 или неизвестное поле
        """
        if caller != config.authority:
            raise AdminRequired(f"Caller {caller} is not the prediction market fee authority")

        update = {name: value for name, value in changes.items() if value is not None}
        self._validate_rates(update)
        self._validate_shares(
            protocol_share_bps=update.get("protocol_share_bps", config.protocol_share_bps),
            maker_reward_share_bps=update.get("maker_reward_share_bps", config.maker_reward_share_bps),
            creator_share_bps=update.get("creator_share_bps", config.creator_share_bps),
        )
        update["last_update_ts"] = now

        logger.info("pm fee config updated: fields=%s", sorted(update))
        return config.model_copy(update=update)

    def set_pm_fee_paused(
        self, config: PredictionMarketFeeConfig, caller: str, is_paused: bool, now: int
    ) -> PredictionMarketFeeConfig:
        if caller != config.authority:
            raise AdminRequired(f"Caller {caller} is not the prediction market fee authority")

        logger.info("pm fee paused=%s", is_paused)
        return config.model_copy(update={"is_paused": is_paused, "last_update_ts": now})

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _distribute(
        self,
        config: PredictionMarketFeeConfig,
        caller: str,
        amount_e6: int,
        now: int,
        pool_field: str,
        paid_field: str,
    ) -> PredictionMarketFeeConfig:
        if caller not in (config.authority, config.authorized_caller):
            logger.warning("unauthorized pm reward caller: %s", caller)
            raise UnauthorizedCaller(f"Caller {caller} may not distribute prediction market rewards")
        if config.is_paused:
            raise PMFeePaused()
        if amount_e6 <= 0:
            raise InvalidAmount(f"Reward amount must be positive, got {amount_e6}")

        pool = getattr(config, pool_field)
        if amount_e6 > pool:
            raise InsufficientBalance(f"Reward {amount_e6} exceeds pending {pool_field} {pool}")

        logger.info("pm reward distributed: pool=%s amount=%d", pool_field, amount_e6)
        return config.model_copy(
            update={
                pool_field: pool - amount_e6,
                paid_field: saturating_add(getattr(config, paid_field), amount_e6),
                "last_update_ts": now,
            }
        )

    @staticmethod
    def _validate_rates(values: dict) -> None:
        allowed = set(_FEE_BPS_FIELDS) | {"protocol_share_bps", "maker_reward_share_bps", "creator_share_bps"}
        for name, value in values.items():
            if name not in allowed:
                raise InvalidFeeConfiguration(f"Unknown fee field {name!r}")
            if not 0 <= value <= BPS_DENOMINATOR:
                raise InvalidFeeConfiguration(f"{name} {value} bps outside 0..{BPS_DENOMINATOR}")

    @staticmethod
    def _validate_shares(protocol_share_bps: int, maker_reward_share_bps: int, creator_share_bps: int) -> None:
        total = protocol_share_bps + maker_reward_share_bps + creator_share_bps
        if total != BPS_DENOMINATOR:
            raise InvalidFeeConfiguration(f"Distribution shares must sum to {BPS_DENOMINATOR}, got {total}")
