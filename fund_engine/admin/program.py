"""
Program administration — глобальный реестр FundConfig

Все изменения реестра (кроме счётчиков фондов и relayers) выполняет только authority.
"""

import logging

from fund_engine.core.domain.program import FundConfig
from fund_engine.core.errors import AdminRequired

logger = logging.getLogger(__name__)


def initialize_program(authority: str, vault_program: str, ledger_program: str) -> FundConfig:
    """
    Создание реестра программы.

    Args:
        authority: Администратор программы
        vault_program: Программа хранилища средств
        ledger_program: Единственная программа, которой разрешён record_pnl

    Returns:
        FundConfig с нулевыми счётчиками и пустым списком relayers
    """
    logger.info("program initialized: authority=%s ledger=%s", authority, ledger_program)
    return FundConfig(
        authority=authority,
        vault_program=vault_program,
        ledger_program=ledger_program,
    )


def require_admin(config: FundConfig, caller: str) -> None:
    if caller != config.authority:
        logger.warning("admin operation rejected: caller=%s", caller)
        raise AdminRequired(f"Caller {caller} is not the program authority")


def update_authority(config: FundConfig, caller: str, new_authority: str) -> FundConfig:
    """Передача прав администратора."""
    require_admin(config, caller)
    logger.info("program authority changed: %s -> %s", config.authority, new_authority)
    return config.model_copy(update={"authority": new_authority})


def set_program_paused(config: FundConfig, caller: str, is_paused: bool) -> FundConfig:
    require_admin(config, caller)
    logger.info("program paused=%s", is_paused)
    return config.model_copy(update={"is_paused": is_paused})
