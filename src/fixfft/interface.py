"""
NumPy-friendly helpers around the fixed-point buffer layouts.

the transforms work on raw int16 buffers: a real/imag pair for the complex
transform and a packed spectrum for the real transform. the functions here
convert between those layouts and ordinary NumPy arrays, and undo the scale
shift returned by inverse transforms.
"""

import numpy as np
from typing import Tuple

from .fixedpoint import saturate
from .planning import log2_size

# ----------------------------------------------------------------------------------
# Complex buffer pairs
# ----------------------------------------------------------------------------------

def to_complex(real, imag) -> np.ndarray:
    """
    Combine a real/imag buffer pair into one complex array.

    Values stay in Q15 units (no division by 32768).
    """
    return np.asarray(real, dtype=np.float64) + 1j * np.asarray(imag, dtype=np.float64)


def from_complex(z) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split a complex array in Q15 units into int16 real/imag buffers.

    Parameters
    ----------
    z : array_like
        Complex values, already scaled to the Q15 integer range.

    Returns
    -------
    real, imag : int16 ndarray
        Rounded and saturated buffers ready for transform().
    """
    z = np.asarray(z, dtype=np.complex128)
    return saturate(np.round(z.real)), saturate(np.round(z.imag))


def restore_scale(buffer, scale_shift: int) -> np.ndarray:
    """
    Apply the scale shift returned by an inverse transform.

    The restored amplitude generally does not fit into 16 bits, so the
    result is an int64 array. In practice, if the result is used as a filter,
    the scale shift can often be ignored, as the output is approximately
    normalized as is.

    Parameters
    ----------
    buffer : array_like
        Output of an inverse transform.
    scale_shift : int
        Value returned by that transform.

    Returns
    -------
    out : int64 ndarray
        buffer * 2**scale_shift
    """
    if scale_shift < 0:
        raise ValueError(f"Scale shift must be non-negative, got {scale_shift}")
    return np.asarray(buffer, dtype=np.int64) << scale_shift


# ----------------------------------------------------------------------------------
# Packed real spectrum
# ----------------------------------------------------------------------------------

def unpack_real_spectrum(packed) -> np.ndarray:
    """
    Expand the packed output of a forward real transform.

    Parameters
    ----------
    packed : array_like
        N values: DC, (re, im) pairs of bins 1..N/2-1, Nyquist.

    Returns
    -------
    out : complex ndarray
        N/2+1 bins, in Q15 units.
    """
    packed = np.asarray(packed, dtype=np.float64)
    n = len(packed)
    log2_size(n)
    half = n // 2
    bins = np.zeros(half + 1, dtype=np.complex128)
    bins[0] = packed[0]
    bins[half] = packed[n - 1]
    bins[1:half] = packed[1:n - 1:2] + 1j * packed[2:n - 1:2]
    return bins


def pack_real_spectrum(bins) -> np.ndarray:
    """
    Build the packed layout expected by an inverse real transform.

    The imaginary parts of the DC and Nyquist bins are dropped, since they
    are zero for the spectrum of any real sequence.

    Parameters
    ----------
    bins : array_like
        N/2+1 complex bins in Q15 units.

    Returns
    -------
    out : int16 ndarray
        N packed values, rounded and saturated.
    """
    bins = np.asarray(bins, dtype=np.complex128)
    half = len(bins) - 1
    n = 2 * half
    log2_size(n)
    packed = np.zeros(n, dtype=np.float64)
    packed[0] = bins[0].real
    packed[n - 1] = bins[half].real
    packed[1:n - 1:2] = bins[1:half].real
    packed[2:n - 1:2] = bins[1:half].imag
    return saturate(np.round(packed))


def magnitude_spectrum(packed) -> np.ndarray:
    """Magnitude of each of the N/2+1 bins of a packed real spectrum."""
    return np.abs(unpack_real_spectrum(packed))


def bin_frequencies(m: int, sample_rate: float = 1.0) -> np.ndarray:
    """
    Frequencies of the N/2+1 bins of a real transform of 2**m samples.

    Parameters
    ----------
    m : int
        log2 of the transform length.
    sample_rate : float, optional
        Sampling rate; the default gives frequencies in cycles per sample.
    """
    return np.fft.rfftfreq(1 << m, d=1.0 / sample_rate)
