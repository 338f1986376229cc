"""
Core math modules

Q64.64 fixed-point примитивы с явной проверкой разрядности.
"""

from src.core.math.fixed_point import (
    # Constants
    MAX_FIXED_DIVIDEND,
    Q64_ONE,
    Q64_SHIFT,
    U64_MAX,
    U128_MAX,
    # Fixed-point
    descale,
    fixed_divide,
    fixed_multiply,
    # Saturating
    saturating_add,
    saturating_mul,
    saturating_sub,
    # Conversions
    q64_from_decimal,
    q64_to_decimal,
    to_native_amount,
    to_q64,
)

__all__ = [
    # Constants
    "MAX_FIXED_DIVIDEND",
    "Q64_ONE",
    "Q64_SHIFT",
    "U64_MAX",
    "U128_MAX",
    # Fixed-point
    "descale",
    "fixed_divide",
    "fixed_multiply",
    # Saturating
    "saturating_add",
    "saturating_mul",
    "saturating_sub",
    # Conversions
    "q64_from_decimal",
    "q64_to_decimal",
    "to_native_amount",
    "to_q64",
]
