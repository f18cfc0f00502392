"""
Floating-point reference spectra and accuracy measurement.

reference transforms run through FFTW (pyfftw numpy interface) and are
scaled by 1/N so they can be compared directly with the fixed-point forward
output. measure_accuracy() is the check to run before trusting a sine table
larger than the verified 2048 points.
"""

import logging
import numpy as np
import pyfftw
import pyfftw.interfaces.numpy_fft as fftw_fft
from typing import Dict, Optional

from . import core
from .interface import to_complex, unpack_real_spectrum, restore_scale
from .planning import log2_size

# enable the PyFFTW cache
pyfftw.interfaces.cache.enable()

logger = logging.getLogger("fixfft.reference")


def reference_spectrum(real, imag=None) -> np.ndarray:
    """
    Float spectrum of a complex Q15 sequence, scaled like transform().

    Args:
        real: Real parts in Q15 units
        imag: Imaginary parts (None = all zero)

    Returns:
        Complex spectrum divided by N, in Q15 units
    """
    real = np.asarray(real)
    if imag is None:
        imag = np.zeros(len(real))
    n = len(real)
    log2_size(n)
    return fftw_fft.fft(to_complex(real, imag)) / n


def reference_real_spectrum(samples) -> np.ndarray:
    """
    Float spectrum (N/2+1 bins) of a real Q15 sequence, scaled like transform_real().
    """
    samples = np.asarray(samples, dtype=np.float64)
    n = len(samples)
    log2_size(n)
    return fftw_fft.rfft(samples) / n


def sqnr_db(measured, reference) -> float:
    """
    Signal-to-quantization-noise ratio of measured against reference, in dB.

    Returns inf when the two agree exactly.
    """
    measured = np.asarray(measured)
    reference = np.asarray(reference)
    signal_power = np.sum(np.abs(reference) ** 2)
    noise_power = np.sum(np.abs(measured - reference) ** 2)
    if noise_power == 0:
        return float('inf')
    if signal_power == 0:
        return float('-inf')
    return float(10.0 * np.log10(signal_power / noise_power))


def measure_accuracy(m: int, trials: int = 4, amplitude: float = 0.5,
                     seed: Optional[int] = 0) -> Dict[str, float]:
    """
    Measure fixed-point accuracy of the real transform at size 2**m.

    Random real signals are run through the forward real transform (compared
    with the FFTW spectrum) and through a forward/inverse round trip
    (compared with the input).

    Args:
        m: log2 of the transform length
        trials: Number of random signals
        amplitude: Peak amplitude as a fraction of full scale
        seed: Seed for the random signals

    Returns:
        Dict with the worst-case 'forward_sqnr_db' and 'roundtrip_sqnr_db'
        over all trials, and the largest 'max_scale_shift' seen
    """
    rng = np.random.default_rng(seed)
    n = 1 << m
    forward = []
    roundtrip = []
    max_shift = 0

    for _ in range(trials):
        original = np.round(rng.uniform(-amplitude, amplitude, n) * 32767).astype(np.int16)
        work = original.copy()

        core.transform_real(work, m)
        forward.append(sqnr_db(unpack_real_spectrum(work), reference_real_spectrum(original)))

        shift = core.transform_real(work, m, inverse=True)
        max_shift = max(max_shift, shift)
        roundtrip.append(sqnr_db(restore_scale(work, shift), original))

    results = {
        'forward_sqnr_db': min(forward),
        'roundtrip_sqnr_db': min(roundtrip),
        'max_scale_shift': max_shift,
    }
    logger.info(f"Accuracy at {n} points: {results}")
    return results
