"""Администрирование программы: реестр фондов, authority, пауза."""

from fund_engine.admin.program import (
    initialize_program,
    require_admin,
    set_program_paused,
    update_authority,
)

__all__ = [
    "initialize_program",
    "require_admin",
    "set_program_paused",
    "update_authority",
]
