"""
Fixed-Point — целочисленная арифметика e6/bps

Все денежные величины ядра хранятся как знаковые 64-битные целые, масштабированные
на 1_000_000 (e6). Basis points (bps) — целые из 10_000.

Модуль обеспечивает:
- Saturating сложение/вычитание для накопительных денежных полей
- Checked сужение результата в фиксированную ширину поля (i64/u64/u32/u16)
- Деление с усечением к нулю (семантика целочисленного деления фиксированной ширины)
- mul_div без промежуточного переполнения (Python int не ограничен)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Накопительные поля никогда не "заворачиваются" (wrap): только clamp к границам
2. Деление всегда усекает к нулю, а не к минус бесконечности
3. Результат, который не помещается в поле записи, никогда не сохраняется молча
4. Все операции детерминированы и воспроизводимы
"""

from typing import Final, Type

from fund_engine.core.errors import FundEngineError, Overflow

# =============================================================================
# МАСШТАБЫ
# =============================================================================

# Масштаб fixed-point денежных величин (1.0 == 1_000_000)
E6: Final[int] = 1_000_000

# Знаменатель basis points (100% == 10_000)
BPS_DENOMINATOR: Final[int] = 10_000

# NAV при нулевом количестве долей (номинал 1.0)
INITIAL_NAV_E6: Final[int] = 1_000_000

# =============================================================================
# ВРЕМЯ
# =============================================================================

SECONDS_PER_HOUR: Final[int] = 3_600
SECONDS_PER_DAY: Final[int] = 86_400
SECONDS_PER_YEAR: Final[int] = 31_536_000

# =============================================================================
# ГРАНИЦЫ ЦЕЛЫХ ТИПОВ
# =============================================================================

I64_MIN: Final[int] = -(2**63)
I64_MAX: Final[int] = 2**63 - 1
U64_MAX: Final[int] = 2**64 - 1
U32_MAX: Final[int] = 2**32 - 1
U16_MAX: Final[int] = 2**16 - 1
U8_MAX: Final[int] = 2**8 - 1


# =============================================================================
# CLAMP / SATURATING
# =============================================================================


def clamp(value: int, min_value: int | None = None, max_value: int | None = None) -> int:
    """
    Ограничение значения в заданном диапазоне.

    Examples:
        >>> clamp(5, 0, 10)
        5
        >>> clamp(-1, 0, 10)
        0
    """
    result = value

    if min_value is not None:
        result = max(result, min_value)

    if max_value is not None:
        result = min(result, max_value)

    return result


def saturating_add(a: int, b: int, min_value: int = I64_MIN, max_value: int = I64_MAX) -> int:
    """
    Сложение с насыщением.

    Args:
        a: Первое слагаемое
        b: Второе слагаемое
        min_value: Нижняя граница типа (default: i64 min)
        max_value: Верхняя граница типа (default: i64 max)

    Returns:
        a + b, ограниченное диапазоном [min_value, max_value]

    Examples:
        >>> saturating_add(I64_MAX, 1) == I64_MAX
        True
        >>> saturating_add(0, -5, min_value=0, max_value=U64_MAX)
        0
    """
    return clamp(a + b, min_value, max_value)


def saturating_sub(a: int, b: int, min_value: int = I64_MIN, max_value: int = I64_MAX) -> int:
    """Вычитание с насыщением (см. saturating_add)."""
    return clamp(a - b, min_value, max_value)


def saturating_add_u64(a: int, b: int) -> int:
    return saturating_add(a, b, 0, U64_MAX)


def saturating_sub_u64(a: int, b: int) -> int:
    return saturating_sub(a, b, 0, U64_MAX)


# =============================================================================
# CHECKED
# =============================================================================


def checked_narrow(
    value: int,
    min_value: int = I64_MIN,
    max_value: int = I64_MAX,
    error: Type[FundEngineError] = Overflow,
    name: str = "value",
) -> int:
    """
    Сужение целого в фиксированную ширину поля.

    Args:
        value: Значение произвольной точности
        min_value: Нижняя граница поля
        max_value: Верхняя граница поля
        error: Класс исключения при выходе за границы (default: Overflow)
        name: Имя величины (для сообщения об ошибке)

    Returns:
        value без изменений

    Raises:
        FundEngineError: Экземпляр error, если value вне [min_value, max_value]
    """
    if value < min_value or value > max_value:
        raise error(f"{name}={value} out of range [{min_value}, {max_value}]")
    return value


def checked_add(a: int, b: int, min_value: int = I64_MIN, max_value: int = I64_MAX) -> int:
    """Сложение с ошибкой Overflow вместо насыщения."""
    return checked_narrow(a + b, min_value, max_value, name="sum")


def checked_sub(a: int, b: int, min_value: int = I64_MIN, max_value: int = I64_MAX) -> int:
    """Вычитание с ошибкой Overflow вместо насыщения."""
    return checked_narrow(a - b, min_value, max_value, name="difference")


# =============================================================================
# ДЕЛЕНИЕ
# =============================================================================


def trunc_div(numerator: int, denominator: int) -> int:
    """
    Целочисленное деление с усечением к нулю.

    Оператор // в Python округляет к минус бесконечности, что для
    отрицательных PnL дало бы расхождение на единицу младшего разряда.

    Args:
        numerator: Делимое
        denominator: Делитель (не ноль)

    Returns:
        Частное, усечённое к нулю

    Raises:
        ZeroDivisionError: Если denominator == 0

    Examples:
        >>> trunc_div(7, 2)
        3
        >>> trunc_div(-7, 2)
        -3
    """
    if denominator == 0:
        raise ZeroDivisionError("trunc_div by zero")

    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    a * b / denominator с усечением к нулю без промежуточного переполнения.

    Промежуточное произведение вычисляется в неограниченной точности;
    сужение результата в поле записи — ответственность вызывающей стороны
    (checked_narrow).
    """
    return trunc_div(a * b, denominator)


def bps_of(amount: int, bps: int) -> int:
    """
    Доля amount в basis points: amount * bps / 10000.

    Examples:
        >>> bps_of(100_000_000, 1000)
        10000000
        >>> bps_of(-15, 5000)
        -7
    """
    return mul_div(amount, bps, BPS_DENOMINATOR)
