"""
Relayer Registry — allow-list proxy callers с лимитами

Relayer может выполнять операции от имени инвестора в пределах лимитов:
- single_tx_limit_e6: максимум одной операции (0 = без ограничения)
- daily_limit_e6: максимум за окно в сутки (0 = без ограничения)

Окно сбрасывается, когда now − last_reset_ts ≥ day_secs.
Ёмкость списка фиксирована (MAX_RELAYERS).
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from fund_engine.admin.program import require_admin
from fund_engine.core.domain.program import MAX_RELAYERS, FundConfig, RelayerEntry
from fund_engine.core.errors import (
    InvalidAmount,
    MaxRelayersReached,
    RelayerAlreadyExists,
    RelayerLimitExceeded,
    RelayerNotFound,
    UnauthorizedCaller,
)
from fund_engine.core.math.fixed_point import SECONDS_PER_DAY, saturating_add

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelayerPolicy:
    max_relayers: int = MAX_RELAYERS
    day_secs: int = SECONDS_PER_DAY


def _validate_limits(single_tx_limit_e6: int, daily_limit_e6: int) -> None:
    if single_tx_limit_e6 < 0 or daily_limit_e6 < 0:
        raise InvalidAmount(
            f"Relayer limits must be non-negative, got single={single_tx_limit_e6} daily={daily_limit_e6}"
        )


def _replace_entry(relayers: Tuple[RelayerEntry, ...], entry: RelayerEntry) -> Tuple[RelayerEntry, ...]:
    return tuple(entry if item.relayer == entry.relayer else item for item in relayers)


class RelayerRegistry:
    """Управление списком relayers и проверка их лимитов."""

    def __init__(self, policy: Optional[RelayerPolicy] = None):
        self.policy = policy or RelayerPolicy()

    def add_relayer(
        self,
        config: FundConfig,
        caller: str,
        relayer: str,
        single_tx_limit_e6: int,
        daily_limit_e6: int,
        now: int,
    ) -> FundConfig:
        """
        Добавление relayer (только authority).

        Raises:
            AdminRequired: caller не authority
            InvalidAmount: Отрицательный лимит
            RelayerAlreadyExists: relayer уже в списке
            MaxRelayersReached: Список заполнен
        """
        require_admin(config, caller)
        _validate_limits(single_tx_limit_e6, daily_limit_e6)

        if config.find_relayer(relayer) is not None:
            raise RelayerAlreadyExists(f"Relayer {relayer} is already registered")
        if config.relayer_count >= self.policy.max_relayers:
            raise MaxRelayersReached(f"Relayer list is full ({config.relayer_count}/{self.policy.max_relayers})")

        entry = RelayerEntry(
            relayer=relayer,
            single_tx_limit_e6=single_tx_limit_e6,
            daily_limit_e6=daily_limit_e6,
            last_reset_ts=now,
        )

        logger.info("relayer added: relayer=%s single=%d daily=%d", relayer, single_tx_limit_e6, daily_limit_e6)
        return config.model_copy(update={"relayers": config.relayers + (entry,)})

    def remove_relayer(self, config: FundConfig, caller: str, relayer: str) -> FundConfig:
        require_admin(config, caller)
        if config.find_relayer(relayer) is None:
            raise RelayerNotFound(f"Relayer {relayer} is not registered")

        logger.info("relayer removed: relayer=%s", relayer)
        return config.model_copy(
            update={"relayers": tuple(entry for entry in config.relayers if entry.relayer != relayer)}
        )

    def update_relayer_limits(
        self,
        config: FundConfig,
        caller: str,
        relayer: str,
        single_tx_limit_e6: int,
        daily_limit_e6: int,
        is_active: bool,
    ) -> FundConfig:
        """Новые лимиты и флаг активности. Использованный дневной объём сохраняется."""
        require_admin(config, caller)
        _validate_limits(single_tx_limit_e6, daily_limit_e6)

        entry = config.find_relayer(relayer)
        if entry is None:
            raise RelayerNotFound(f"Relayer {relayer} is not registered")

        entry = entry.model_copy(
            update={
                "single_tx_limit_e6": single_tx_limit_e6,
                "daily_limit_e6": daily_limit_e6,
                "is_active": is_active,
            }
        )
        return config.model_copy(update={"relayers": _replace_entry(config.relayers, entry)})

    def require_active(self, config: FundConfig, relayer: str) -> RelayerEntry:
        entry = config.find_relayer(relayer)
        if entry is None or not entry.is_active:
            logger.warning("relayer rejected: relayer=%s", relayer)
            raise UnauthorizedCaller(f"Caller {relayer} is not an active relayer")
        return entry

    def authorize_relayer(self, config: FundConfig, relayer: str, amount_e6: int, now: int) -> FundConfig:
        """
        Проверка лимитов relayer и учёт использованного объёма.

        Args:
            config: Реестр программы
            relayer: Ключ relayer
            amount_e6: Сумма операции (e6, 0 для операций без суммы)
            now: Текущий Unix timestamp

        Returns:
            FundConfig с обновлённым daily_used_e6 (и окном, если оно истекло)

        Raises:
            UnauthorizedCaller: relayer не зарегистрирован или неактивен
            InvalidAmount: amount < 0
            RelayerLimitExceeded: Превышен лимит операции или дневной лимит
        """
        entry = self.require_active(config, relayer)
        if amount_e6 < 0:
            raise InvalidAmount(f"Relayed amount must be non-negative, got {amount_e6}")

        daily_used = entry.daily_used_e6
        last_reset_ts = entry.last_reset_ts
        if now - last_reset_ts >= self.policy.day_secs:
            daily_used = 0
            last_reset_ts = now

        if entry.single_tx_limit_e6 > 0 and amount_e6 > entry.single_tx_limit_e6:
            logger.warning("relayer single tx limit exceeded: relayer=%s amount=%d", relayer, amount_e6)
            raise RelayerLimitExceeded(
                f"Amount {amount_e6} exceeds single tx limit {entry.single_tx_limit_e6}"
            )

        new_used = saturating_add(daily_used, amount_e6)
        if entry.daily_limit_e6 > 0 and new_used > entry.daily_limit_e6:
            logger.warning("relayer daily limit exceeded: relayer=%s used=%d", relayer, new_used)
            raise RelayerLimitExceeded(
                f"Daily usage {new_used} exceeds daily limit {entry.daily_limit_e6}"
            )

        entry = entry.model_copy(update={"daily_used_e6": new_used, "last_reset_ts": last_reset_ts})
        return config.model_copy(update={"relayers": _replace_entry(config.relayers, entry)})
