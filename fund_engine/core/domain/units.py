"""
Units — типы полей записей и конверсии fixed-point единиц

Единственный допустимый способ преобразований между:
- денежными суммами в e6 (int, 1.0 == 1_000_000)
- человекочитаемыми суммами (Decimal)
- basis points (int из 10_000) и долями (Decimal)
- публичными ключами (32 байта) и их hex-представлением в записях

ЗАПРЕЩЕНО использовать float для денежных величин: конверсия из float
теряет точность и делает расчёты невоспроизводимыми.
"""

from decimal import Decimal
from typing import Annotated, Final

from pydantic import Field

from fund_engine.core.math.fixed_point import (
    BPS_DENOMINATOR,
    E6,
    I64_MAX,
    I64_MIN,
    U8_MAX,
    U16_MAX,
    U32_MAX,
    U64_MAX,
    checked_narrow,
)


# =============================================================================
# ТИПЫ ПОЛЕЙ ЗАПИСЕЙ
# =============================================================================

# Знаковые 64-битные поля (денежные суммы e6, NAV, timestamps)
I64 = Annotated[int, Field(ge=I64_MIN, le=I64_MAX)]

# Беззнаковые поля фиксированной ширины
U64 = Annotated[int, Field(ge=0, le=U64_MAX)]
U32 = Annotated[int, Field(ge=0, le=U32_MAX)]
U16 = Annotated[int, Field(ge=0, le=U16_MAX)]
U8 = Annotated[int, Field(ge=0, le=U8_MAX)]

# Неотрицательные i64 (лимиты, пороги, интервалы) и ставки в bps (0..10000)
NonNegI64 = Annotated[int, Field(ge=0, le=I64_MAX)]
Bps = Annotated[int, Field(ge=0, le=BPS_DENOMINATOR)]

# Unix timestamp (секунды)
Timestamp = I64

# Публичный ключ: 32 байта в hex (64 символа, нижний регистр)
PUBKEY_SIZE: Final[int] = 32
Pubkey = Annotated[str, Field(pattern=r"^[0-9a-f]{64}$")]

# Нулевой ключ (не назначен)
ZERO_KEY: Final[str] = "00" * PUBKEY_SIZE


# =============================================================================
# КЛЮЧИ
# =============================================================================


def pubkey_from_bytes(raw: bytes) -> str:
    """
    Конверсия 32 байт ключа в hex-представление записи.

    Raises:
        ValueError: Если длина не 32 байта
    """
    if len(raw) != PUBKEY_SIZE:
        raise ValueError(f"Pubkey must be {PUBKEY_SIZE} bytes, got {len(raw)}")
    return raw.hex()


def pubkey_to_bytes(key: str) -> bytes:
    """
    Конверсия hex-представления ключа в 32 байта.

    Raises:
        ValueError: Если строка не является 32-байтовым hex
    """
    raw = bytes.fromhex(key)
    if len(raw) != PUBKEY_SIZE:
        raise ValueError(f"Pubkey must be {PUBKEY_SIZE} bytes, got {len(raw)}")
    return raw


# =============================================================================
# ДЕНЕЖНЫЕ КОНВЕРТЕРЫ
# =============================================================================


def to_e6(amount: Decimal | int | str) -> int:
    """
    Конверсия: человекочитаемая сумма → e6

    Args:
        amount: Сумма (Decimal, int или строка; float запрещён)

    Returns:
        Сумма в e6

    Raises:
        TypeError: Если передан float
        ValueError: Если сумма точнее 1e-6 (усечение было бы молчаливым)
        Overflow: Если результат не помещается в i64

    Examples:
        >>> to_e6("1000")
        1000000000
        >>> to_e6(Decimal("0.5"))
        500000
    """
    if isinstance(amount, float):
        raise TypeError("float amounts are not allowed, use Decimal or str")

    scaled = Decimal(amount) * E6
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount} has more than 6 decimal places")

    return checked_narrow(int(scaled), I64_MIN, I64_MAX, name="amount_e6")


def from_e6(value_e6: int) -> Decimal:
    """
    Конверсия: e6 → Decimal

    Examples:
        >>> from_e6(1_500_000)
        Decimal('1.5')
    """
    return Decimal(value_e6) / E6


def bps_to_fraction(bps: int) -> Decimal:
    """
    Конверсия basis points в долю.

    Examples:
        >>> bps_to_fraction(2500)
        Decimal('0.25')
    """
    return Decimal(bps) / BPS_DENOMINATOR
