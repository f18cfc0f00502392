"""
Q15 fixed-point primitives.

all sample data are 16-bit signed integers in which -32768 to +32767
represent -1.0 to +1.0. products are formed in a 32-bit intermediate
and rounded back to Q15.
"""

import numpy as np
from typing import Union

# Q15 constants
FRAC_BITS = 15
SCALE = 1 << FRAC_BITS
Q15_MIN = -(1 << 15)
Q15_MAX = (1 << 15) - 1
Q15_ONE = Q15_MAX  # closest representable value to +1.0

ArrayLike = Union[int, float, np.ndarray]


def saturate(x: ArrayLike) -> np.ndarray:
    """Clip integer values into the int16 range and return them as int16."""
    return np.clip(x, Q15_MIN, Q15_MAX).astype(np.int16)


def to_q15(x: ArrayLike) -> np.ndarray:
    """
    Quantize real values in [-1.0, 1.0) to Q15 integers.

    Uses round-to-nearest and saturates out-of-range values.
    """
    x = np.asarray(x, dtype=np.float64)
    return saturate(np.round(x * SCALE))


def from_q15(q: ArrayLike) -> np.ndarray:
    """Convert Q15 integers back to float."""
    return np.asarray(q, dtype=np.int64).astype(np.float64) / SCALE


def _mpy(a, b):
    # shift right one bit less than FRAC_BITS; the last bit shifted out rounds
    c = (a * b) >> (FRAC_BITS - 1)
    return (c >> 1) + (c & 1)


def fix_mpy(a: ArrayLike, b: ArrayLike):
    """
    Multiply two Q15 values (scalars or arrays) and return the Q15 product.

    The product is formed in 32 bits, shifted back by 15 and rounded half up
    on the last bit shifted out. The one product that does not fit
    (-32768 * -32768) saturates to 32767.

    Args:
        a: Q15 multiplicand
        b: Q15 multiplier

    Returns:
        int16 scalar or array with the broadcast shape of a and b
    """
    product = _mpy(np.asarray(a, dtype=np.int32), np.asarray(b, dtype=np.int32))
    return saturate(product)[()]
