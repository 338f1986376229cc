"""
Fixed Point — Q64.64 арифметика для всех денежных расчётов

Вещественные числа представлены целыми, масштабированными на 2^64
(64 дробных бита в 128-битном слове). Все функции работают с python int,
но явно проверяют разрядность, которую имел бы нативный u64/u128/u256.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Усечение всегда к нулю (floor для неотрицательного домена).
   Направление усечения выгодно протоколу при конверсиях и должно
   сохраняться идентично.
2. Переполнение никогда не оборачивается: либо ArithmeticOverflow,
   либо явная saturating-семантика.
3. fixed_divide принимает делимое не больше MAX_FIXED_DIVIDEND, чтобы
   сдвиг (a << 64) помещался в 128 бит.
"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Final, Union

from src.core.errors import ArithmeticOverflow, DivisionByZero

# =============================================================================
# КОНСТАНТЫ РАЗРЯДНОСТИ
# =============================================================================

Q64_SHIFT: Final[int] = 64

# 1.0 в Q64.64
Q64_ONE: Final[int] = 1 << Q64_SHIFT

U64_MAX: Final[int] = (1 << 64) - 1
U128_MAX: Final[int] = (1 << 128) - 1

# Максимальное безопасное делимое для fixed_divide: (a << 64) <= U128_MAX
MAX_FIXED_DIVIDEND: Final[int] = U64_MAX

# Точность Decimal для конверсий: U128_MAX занимает 39 цифр, 2^-64 ещё 64
DECIMAL_PRECISION: Final[int] = 120


# =============================================================================
# ВАЛИДАЦИЯ ОПЕРАНДОВ
# =============================================================================


def _require_uint(value: int, name: str, max_value: int = U128_MAX) -> int:
    # bool является подклассом int, но денежной величиной не является
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    if value > max_value:
        raise ArithmeticOverflow(f"{name}={value} exceeds {max_value.bit_length()}-bit range")
    return value


# =============================================================================
# FIXED-POINT ПРИМИТИВЫ
# =============================================================================


def fixed_multiply(a: int, b: int) -> int:
    """
    Q64.64 умножение: (a * b) >> 64.

    Оба операнда ограничены u128, поэтому произведение всегда
    помещается в промежуточные 256 бит; проверяется только результат,
    который должен помещаться в 128 бит.

    Args:
        a: Q64.64 (или немасштабированное целое, если b — Q64.64 цена)
        b: Q64.64

    Returns:
        Произведение, усечённое к нулю

    Raises:
        ArithmeticOverflow: операнд или результат вне u128
        ValueError: отрицательный или нецелый операнд

    Examples:
        >>> fixed_multiply(3, Q64_ONE)
        3
        >>> fixed_multiply(Q64_ONE, Q64_ONE // 2) == Q64_ONE // 2
        True
    """
    _require_uint(a, "a")
    _require_uint(b, "b")

    result = (a * b) >> Q64_SHIFT
    if result > U128_MAX:
        raise ArithmeticOverflow(f"fixed_multiply result exceeds u128: {a} * {b}")
    return result


def fixed_divide(a: int, b: int) -> int:
    """
    Q64.64 деление: (a << 64) // b.

    Args:
        a: Делимое, не больше MAX_FIXED_DIVIDEND
        b: Делитель (Q64.64 цена или немасштабированное целое)

    Returns:
        Частное, усечённое к нулю

    Raises:
        DivisionByZero: b == 0
        ArithmeticOverflow: a > MAX_FIXED_DIVIDEND (сдвиг не помещается в u128)
        ValueError: отрицательный или нецелый операнд

    Examples:
        >>> fixed_divide(400, 400) == Q64_ONE
        True
        >>> fixed_divide(1000, 2 * Q64_ONE)
        500
    """
    _require_uint(a, "a")
    _require_uint(b, "b")

    if b == 0:
        raise DivisionByZero(f"fixed_divide by zero (a={a})")
    if a > MAX_FIXED_DIVIDEND:
        raise ArithmeticOverflow(
            f"fixed_divide dividend {a} exceeds MAX_FIXED_DIVIDEND {MAX_FIXED_DIVIDEND}"
        )

    return (a << Q64_SHIFT) // b


# =============================================================================
# SATURATING АРИФМЕТИКА (u128)
# =============================================================================


def saturating_add(a: int, b: int) -> int:
    """a + b с насыщением на U128_MAX"""
    _require_uint(a, "a")
    _require_uint(b, "b")
    return min(a + b, U128_MAX)


def saturating_sub(a: int, b: int) -> int:
    """a - b с насыщением на нуле"""
    _require_uint(a, "a")
    _require_uint(b, "b")
    return max(a - b, 0)


def saturating_mul(a: int, b: int) -> int:
    """a * b с насыщением на U128_MAX"""
    _require_uint(a, "a")
    _require_uint(b, "b")
    return min(a * b, U128_MAX)


def descale(value: int) -> int:
    """Q64.64 → нативное целое (сдвиг вправо на 64, усечение)"""
    _require_uint(value, "value")
    return value >> Q64_SHIFT


def to_native_amount(value: int, name: str = "amount") -> int:
    """
    Проверенное сужение до u64 (нативная разрядность asset).

    Raises:
        ArithmeticOverflow: value > U64_MAX
    """
    return _require_uint(value, name, max_value=U64_MAX)


def to_q64(value: int, name: str = "value") -> int:
    """
    Проверка, что value помещается в Q64.64 слово (u128).

    Raises:
        ArithmeticOverflow: value > U128_MAX
    """
    return _require_uint(value, name)


# =============================================================================
# КОНВЕРСИЯ ЧЕЛОВЕЧЕСКИХ ЕДИНИЦ
# =============================================================================


def q64_from_decimal(value: Union[Decimal, str, int]) -> int:
    """
    Конверсия человеческого значения (например, NAV "1.05") в Q64.64.

    Точная десятичная арифметика, усечение к нулю. float не принимается:
    двоичное представление float теряет точность до масштабирования.

    Raises:
        ValueError: float, нечисловая строка, NaN/Infinity или отрицательное значение
        ArithmeticOverflow: результат не помещается в u128

    Examples:
        >>> q64_from_decimal("1") == Q64_ONE
        True
        >>> q64_from_decimal("0.5") == Q64_ONE // 2
        True
    """
    if isinstance(value, float):
        raise ValueError("float is not accepted, pass Decimal or str")

    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"value is not a decimal number: {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"value must be finite, got {value!r}")

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        scaled = (number * Q64_ONE).to_integral_value(rounding=ROUND_DOWN)
    return _require_uint(int(scaled), "value")


def q64_to_decimal(value: int) -> Decimal:
    """Q64.64 → Decimal (точно, без округления)"""
    _require_uint(value, "value")
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return Decimal(value) / Decimal(Q64_ONE)
