"""
Synthetic test signals for checking the transforms by hand.

Only for debugging; nothing in the transforms depends on it. Frequencies are
given in bins, i.e. cycles per transform length, so a tone at frequency k
lands in bin k of the forward transform.
"""

import logging
import numpy as np
import scipy.signal
from typing import Optional, Sequence, Union

from .fixedpoint import to_q15
from .planning import log2_size

logger = logging.getLogger("fixfft.signals")

SIGNAL_KINDS = ('sine', 'square', 'chirp', 'noise')

DEFAULT_FREQUENCY = 4.0
DEFAULT_AMPLITUDE = 0.5


def _synthesize(n: int, kind: str,
                frequency: Union[float, Sequence[float]],
                amplitude: float,
                seed: Optional[int]) -> np.ndarray:
    """Float samples in [-amplitude, amplitude] for the requested kind."""
    t = np.arange(n) / n

    if kind == 'sine':
        freqs = np.atleast_1d(np.asarray(frequency, dtype=np.float64))
        # split the amplitude across tones so the sum stays in range
        tones = np.sin(2.0 * np.pi * np.outer(freqs, t)).sum(axis=0)
        return amplitude * tones / len(freqs)

    if kind == 'square':
        return amplitude * scipy.signal.square(2.0 * np.pi * float(frequency) * t)

    if kind == 'chirp':
        # linear sweep from DC up to the given frequency over the buffer
        return amplitude * scipy.signal.chirp(t, f0=0.0, t1=1.0, f1=float(frequency),
                                              method='linear')

    if kind == 'noise':
        rng = np.random.default_rng(seed)
        return rng.uniform(-amplitude, amplitude, n)

    raise ValueError(f"Unknown signal kind: {kind!r} (expected one of {SIGNAL_KINDS})")


def generate_test_signal(m: int,
                         kind: str = 'sine',
                         frequency: Union[float, Sequence[float]] = DEFAULT_FREQUENCY,
                         amplitude: float = DEFAULT_AMPLITUDE,
                         seed: Optional[int] = None) -> np.ndarray:
    """
    Generate a Q15 test signal of 2**m samples.

    Args:
        m: log2 of the number of samples
        kind: 'sine', 'square', 'chirp' or 'noise'
        frequency: Tone frequency in bins ('sine' accepts several), or the
            end frequency of the sweep for 'chirp'; ignored for 'noise'
        amplitude: Peak amplitude as a fraction of full scale, in (0, 1]
        seed: Seed for 'noise'

    Returns:
        New int16 buffer
    """
    if not 0.0 < amplitude <= 1.0:
        raise ValueError(f"Amplitude must be in (0, 1], got {amplitude}")
    n = 1 << m
    samples = to_q15(_synthesize(n, kind, frequency, amplitude, seed))
    logger.debug(f"Generated {kind} test signal of {n} samples")
    return samples


def fill_test_signal(buffer: np.ndarray, kind: str = 'sine', **kwargs) -> np.ndarray:
    """
    Write a test signal into an existing power-of-two buffer.

    Accepts the same keyword arguments as generate_test_signal().

    Returns:
        The same buffer, for chaining
    """
    buffer[:] = generate_test_signal(log2_size(len(buffer)), kind, **kwargs)
    return buffer
