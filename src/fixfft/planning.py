"""
Transform size selection and validation.

the fixed-point engine only handles power-of-two lengths up to the size
covered by the sine table. this module holds the checks the engine runs
before touching a buffer, plus helpers for hosts that need to pick or pad
to a supported size.
"""

import logging
import numpy as np
from typing import Optional

from .errors import InvalidSizeError, BufferLengthMismatchError

# set up logging
logger = logging.getLogger("fixfft.planning")


def is_power_of_two(n: int) -> bool:
    """Check if n is a positive power of two."""
    return n > 0 and (n & (n - 1)) == 0


def _max_log2n() -> int:
    from .core import get_max_log2n
    return get_max_log2n()


def max_transform_size() -> int:
    """Largest transform length supported by the current sine table."""
    return 1 << _max_log2n()


def log2_size(n: int) -> int:
    """
    Return m such that n == 2**m.

    Raises:
        InvalidSizeError: if n is not a positive power of two
    """
    if not is_power_of_two(n):
        raise InvalidSizeError(f"Transform length {n} is not a power of two")
    return n.bit_length() - 1


def check_transform_size(n: int, m: Optional[int] = None,
                         min_log2n: int = 1) -> int:
    """
    Validate a buffer length against the requested log2 size.

    Args:
        n: Buffer length
        m: Requested log2 size (None = derive from n)
        min_log2n: Smallest accepted m

    Returns:
        The validated log2 size

    Raises:
        InvalidSizeError: n is not a power of two, or m is out of range
        BufferLengthMismatchError: n != 2**m
    """
    log2n = log2_size(n)
    if m is None:
        m = log2n
    elif isinstance(m, bool) or not isinstance(m, (int, np.integer)):
        raise InvalidSizeError(f"log2 size must be an integer, got {m!r}")

    max_log2n = _max_log2n()
    if m < min_log2n or m > max_log2n:
        raise InvalidSizeError(
            f"log2 size {m} outside supported range [{min_log2n}, {max_log2n}]")
    if log2n != m:
        raise BufferLengthMismatchError(
            f"Buffer length {n} does not match 2**{m} = {1 << int(m)}")
    return int(m)


def optimal_transform_size(target_size: int) -> int:
    """
    Find the smallest supported transform length that holds target_size samples.

    Args:
        target_size: Number of samples to fit

    Returns:
        Power-of-two transform length

    Raises:
        InvalidSizeError: if target_size exceeds the largest supported length
    """
    if target_size <= 2:
        return 2

    # find next power of 2
    size = 1 << (int(target_size) - 1).bit_length()

    if size > max_transform_size():
        raise InvalidSizeError(
            f"{target_size} samples exceed the largest supported transform "
            f"({max_transform_size()} points)")
    return size


def pad_to_transform_size(samples: np.ndarray) -> np.ndarray:
    """
    Zero-pad a sample sequence to the next supported transform length.

    Args:
        samples: 1-D sequence of Q15 samples

    Returns:
        New int16 buffer of power-of-two length
    """
    samples = np.asarray(samples)
    size = optimal_transform_size(len(samples))
    padded = np.zeros(size, dtype=np.int16)
    padded[:len(samples)] = samples
    if size != len(samples):
        logger.debug(f"Padded {len(samples)} samples to {size}")
    return padded
