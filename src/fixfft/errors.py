"""
Exceptions raised when a transform call is rejected.

every check runs before a buffer is touched, so a rejected call never
leaves partially transformed data behind.
"""


class FixedFFTError(ValueError):
    """Base class for rejected transform calls."""


class InvalidSizeError(FixedFFTError):
    """Transform length is not a power of two, or m is outside the table range."""


class BufferLengthMismatchError(FixedFFTError):
    """Buffers have unequal lengths, or their length disagrees with 2**m."""
