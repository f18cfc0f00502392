"""
Fixed-point in-place FFT engine.

this module provides the core functionality for the fixfft package: the
radix-2 complex transform on a pair of Q15 buffers, the real-input adapter
that runs a half-size complex transform on a single buffer, and the
read-only sine and bit-reversal tables both of them use.

For the forward transform (time -> freq) fixed scaling is performed to
prevent arithmetic overflow: every stage halves its operands, which maps
a 0dB sine/cosine (amplitude 32767) to two -6dB frequency coefficients.
The returned scale shift is always 0.

For the inverse transform (freq -> time) fixed scaling cannot be used, as
two 0dB coefficients would sum to a peak amplitude of 64K. The engine scales
according to the data instead and returns the number of bits LEFT by which
the output must be shifted to get the actual amplitude (a return value of 3
means every output value must be multiplied by 8).
"""

import threading
import logging
import numpy as np
from typing import Dict, Optional, Tuple

from .errors import BufferLengthMismatchError
from .fixedpoint import Q15_MIN, Q15_MAX, Q15_ONE, _mpy
from .planning import check_transform_size

logger = logging.getLogger("fixfft.core")

# log2 of the sine table period; also the largest supported transform size
MAX_LOG2N = 11
# precision of the Q15 coefficients has been verified up to this size
VERIFIED_LOG2N = 11
# smallest and largest table periods accepted by set_max_log2n
MIN_TABLE_LOG2N = 2
MAX_TABLE_LOG2N = 15

# inverse transform: peak |re| + |im| that one butterfly stage can double safely
INVERSE_GUARD = 16383

_cache_lock = threading.RLock()  # tables are built once per size


class FixedFFT:
    """
    Fixed-point FFT with lazily built, shared read-only tables.

    the class holds no per-call state. the only shared data are the sine and
    bit-reversal tables, which are built on first use, frozen and reused by
    every later call.
    """
    # static caches
    _sine_tables: Dict[int, np.ndarray] = {}  # keyed by log2 of the table period
    _bitrev_tables: Dict[int, np.ndarray] = {}  # keyed by log2 of the transform size

    @classmethod
    def clear_cache(cls):
        """Drop all cached tables; they are rebuilt on next use."""
        with _cache_lock:
            cls._sine_tables.clear()
            cls._bitrev_tables.clear()

    @classmethod
    def sine_table(cls, log2n_wave: Optional[int] = None) -> np.ndarray:
        """
        Return 3/4 of a sine period sampled at 2**log2n_wave points, in Q15.

        three quarters are kept so that the cosine of any angle in [0, pi)
        can be read at an offset of a quarter period.
        """
        if log2n_wave is None:
            log2n_wave = MAX_LOG2N
        table = cls._sine_tables.get(log2n_wave)
        if table is not None:
            return table

        with _cache_lock:
            if log2n_wave not in cls._sine_tables:
                n_wave = 1 << log2n_wave
                angles = 2.0 * np.pi * np.arange(n_wave - n_wave // 4) / n_wave
                table = np.round(Q15_ONE * np.sin(angles)).astype(np.int32)
                table.flags.writeable = False
                cls._sine_tables[log2n_wave] = table
                logger.debug(f"Built sine table with period {n_wave}")
            return cls._sine_tables[log2n_wave]

    @classmethod
    def bit_reverse_indices(cls, m: int) -> np.ndarray:
        """Return the permutation that reverses the low m bits of each index."""
        table = cls._bitrev_tables.get(m)
        if table is not None:
            return table

        with _cache_lock:
            if m not in cls._bitrev_tables:
                idx = np.arange(1 << m)
                rev = np.zeros(1 << m, dtype=np.intp)
                for bit in range(m):
                    rev |= ((idx >> bit) & 1) << (m - 1 - bit)
                rev.flags.writeable = False
                cls._bitrev_tables[m] = rev
            return cls._bitrev_tables[m]

    @classmethod
    def _twiddles(cls, k: np.ndarray, log2n: int, inverse: bool) -> Tuple[np.ndarray, np.ndarray]:
        """Q15 (cos, -sin) of 2*pi*k / 2**log2n, sign of sin flipped for the inverse."""
        log2n_wave = MAX_LOG2N  # read once; set_max_log2n may run concurrently
        sinewave = cls.sine_table(log2n_wave)
        idx = k << (log2n_wave - log2n)
        wr = sinewave[idx + (1 << log2n_wave) // 4]
        wi = sinewave[idx] if inverse else -sinewave[idx]
        return wr, wi

    @staticmethod
    def _check_buffer(buf, name: str):
        if not isinstance(buf, np.ndarray):
            raise TypeError(f"{name} must be a numpy.ndarray, got {type(buf).__name__}")
        if buf.dtype != np.int16:
            raise TypeError(f"{name} must have dtype int16, got {buf.dtype}")
        if buf.ndim != 1:
            raise TypeError(f"{name} must be one-dimensional, got shape {buf.shape}")
        if not buf.flags.writeable:
            raise ValueError(f"{name} is read-only")

    @classmethod
    def _fft_inplace(cls, fr: np.ndarray, fi: np.ndarray, m: int, inverse: bool) -> int:
        """
        Run the complex transform on already validated buffers.

        m may be 0 here (a one-point transform is the identity), which the
        real adapter relies on for two-sample inputs.
        """
        n = 1 << m
        if n == 1:
            return 0

        # decimation in time - re-order data
        rev = cls.bit_reverse_indices(m)
        re = fr.astype(np.int32)[rev]
        im = fi.astype(np.int32)[rev]

        scale = 0
        l = 1
        stage = 1
        while l < n:
            if inverse:
                # variable scaling, depending upon data
                peak = int(np.max(np.abs(re) + np.abs(im)))
                shift = 0
                while (peak >> shift) > INVERSE_GUARD:
                    shift += 1
                if shift > 1:
                    re >>= shift - 1
                    im >>= shift - 1
                scale += shift
            else:
                # fixed scaling: log2(n) halvings give an overall factor of 1/n
                shift = 1

            istep = l << 1
            wr, wi = cls._twiddles(np.arange(l), stage, inverse)
            if shift:
                wr = wr >> 1
                wi = wi >> 1

            # each row is one group; the top half meets the bottom half
            re_g = re.reshape(-1, istep)
            im_g = im.reshape(-1, istep)
            br, bi = re_g[:, l:], im_g[:, l:]
            tr = np.clip(_mpy(wr, br) - _mpy(wi, bi), Q15_MIN, Q15_MAX)
            ti = np.clip(_mpy(wr, bi) + _mpy(wi, br), Q15_MIN, Q15_MAX)
            if shift:
                qr = re_g[:, :l] >> 1
                qi = im_g[:, :l] >> 1
            else:
                qr = re_g[:, :l].copy()
                qi = im_g[:, :l].copy()

            re_g[:, l:] = np.clip(qr - tr, Q15_MIN, Q15_MAX)
            im_g[:, l:] = np.clip(qi - ti, Q15_MIN, Q15_MAX)
            re_g[:, :l] = np.clip(qr + tr, Q15_MIN, Q15_MAX)
            im_g[:, :l] = np.clip(qi + ti, Q15_MIN, Q15_MAX)

            l = istep
            stage += 1

        fr[:] = re
        fi[:] = im
        if scale:
            logger.debug(f"Inverse transform of {n} points scaled down by 2**{scale}")
        return scale

    @classmethod
    def transform(cls, real: np.ndarray, imag: np.ndarray,
                  m: Optional[int] = None, inverse: bool = False) -> int:
        """
        Compute the complex FFT or inverse FFT of real/imag in place.

        Args:
            real: int16 buffer of real parts, overwritten with the result
            imag: int16 buffer of imaginary parts, overwritten with the result
            m: log2 of the transform length (None = derive from buffer length)
            inverse: False for the forward transform, True for the inverse

        Returns:
            Scale shift: 0 for forward calls, the number of left shifts needed
            to restore the amplitude of the inverse result otherwise

        Raises:
            InvalidSizeError: length is not a power of two or m is out of range
            BufferLengthMismatchError: real and imag lengths differ or != 2**m
        """
        cls._check_buffer(real, "real")
        cls._check_buffer(imag, "imag")
        if len(real) != len(imag):
            raise BufferLengthMismatchError(
                f"real and imag lengths differ ({len(real)} != {len(imag)})")
        if np.shares_memory(real, imag):
            raise ValueError("real and imag must not overlap")
        m = check_transform_size(len(real), m)

        return cls._fft_inplace(real, imag, m, bool(inverse))

    @staticmethod
    def _split_halves(samples: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Two disjoint views over the first and second half of one buffer."""
        half = len(samples) >> 1
        return samples[:half], samples[half:]

    @classmethod
    def _recombine(cls, samples: np.ndarray, m: int):
        """
        Turn the half-size spectrum held in the two halves of samples into the
        packed spectrum of the real sequence.
        """
        n = 1 << m
        half = n >> 1
        fr, fi = cls._split_halves(samples)
        zr = fr.astype(np.int64)
        zi = fi.astype(np.int64)

        xr = np.zeros(half + 1, dtype=np.int64)
        xi = np.zeros(half + 1, dtype=np.int64)
        xr[0] = _round_shift(zr[0] + zi[0], 1)
        xr[half] = _round_shift(zr[0] - zi[0], 1)

        k = np.arange(1, half // 2 + 1)
        if len(k):
            mk = half - k
            sr = zr[k] + zr[mk]
            di = zi[k] - zi[mk]
            si = zi[k] + zi[mk]
            dr = zr[k] - zr[mk]
            wr, wi = cls._twiddles(k, m, False)
            # W * B, with B = (si - j dr) / 2 and the halving folded into the final shift
            rot_r = _mpy(wr, si) + _mpy(wi, dr)
            rot_i = _mpy(wi, si) - _mpy(wr, dr)
            xr[mk] = _round_shift(sr - rot_r, 2)
            xi[mk] = _round_shift(rot_i - di, 2)
            xr[k] = _round_shift(sr + rot_r, 2)
            xi[k] = _round_shift(di + rot_i, 2)

        packed = np.empty(n, dtype=np.int64)
        packed[0] = xr[0]
        packed[n - 1] = xr[half]
        packed[1:n - 1:2] = xr[1:half]
        packed[2:n - 1:2] = xi[1:half]
        samples[:] = np.clip(packed, Q15_MIN, Q15_MAX)

    @classmethod
    def _split_spectrum(cls, samples: np.ndarray, m: int) -> int:
        """
        Rebuild the half-size complex spectrum from a packed real spectrum and
        store it in the two halves of samples.

        Returns:
            Number of halvings needed to fit the rebuilt values into int16
        """
        n = 1 << m
        half = n >> 1
        packed = samples.astype(np.int64)

        xr = np.zeros(half + 1, dtype=np.int64)
        xi = np.zeros(half + 1, dtype=np.int64)
        xr[0] = packed[0]
        xr[half] = packed[n - 1]
        xr[1:half] = packed[1:n - 1:2]
        xi[1:half] = packed[2:n - 1:2]

        zr = np.zeros(half, dtype=np.int64)
        zi = np.zeros(half, dtype=np.int64)
        zr[0] = xr[0] + xr[half]
        zi[0] = xr[0] - xr[half]

        k = np.arange(1, half // 2 + 1)
        if len(k):
            mk = half - k
            # A = X[k] + conj X[M-k], C = X[k] - conj X[M-k] = W * B
            ar = xr[k] + xr[mk]
            ai = xi[k] - xi[mk]
            cr = xr[k] - xr[mk]
            ci = xi[k] + xi[mk]
            wr, wi = cls._twiddles(k, m, False)
            # B = conj(W) * C
            b_r = _mpy(wr, cr) + _mpy(wi, ci)
            b_i = _mpy(wr, ci) - _mpy(wi, cr)
            zr[mk] = ar + b_i
            zi[mk] = b_r - ai
            zr[k] = ar - b_i
            zi[k] = ai + b_r

        pre_scale = 0
        peak = int(max(np.max(np.abs(zr)), np.max(np.abs(zi))))
        while (peak >> pre_scale) > Q15_MAX:
            pre_scale += 1
        if pre_scale:
            zr >>= pre_scale
            zi >>= pre_scale

        fr, fi = cls._split_halves(samples)
        fr[:] = zr
        fi[:] = zi
        return pre_scale

    @classmethod
    def transform_real(cls, samples: np.ndarray, m: Optional[int] = None,
                       inverse: bool = False) -> int:
        """
        Compute the FFT or inverse FFT of a real sequence in place.

        The forward transform leaves the N/2+1 unique bins in packed form:
        samples[0] is DC, samples[2k-1] and samples[2k] hold the real and
        imaginary part of bin k, samples[N-1] is the Nyquist bin. The inverse
        takes that layout and restores the real sequence.

        even samples are moved to the first half and odd samples to the
        second half, so that a half-size complex transform sees consecutive
        real samples as alternating real and imaginary parts.

        Args:
            samples: int16 buffer, overwritten with the result
            m: log2 of the number of real samples (None = derive from length)
            inverse: False for the forward transform, True for the inverse

        Returns:
            Scale shift, as for transform()

        Raises:
            InvalidSizeError: length is not a power of two or m is out of range
            BufferLengthMismatchError: length != 2**m
        """
        cls._check_buffer(samples, "samples")
        m = check_transform_size(len(samples), m)
        half = len(samples) >> 1

        if not inverse:
            samples[:] = np.concatenate((samples[0::2], samples[1::2]))
            fr, fi = cls._split_halves(samples)
            cls._fft_inplace(fr, fi, m - 1, False)
            cls._recombine(samples, m)
            return 0

        pre_scale = cls._split_spectrum(samples, m)
        fr, fi = cls._split_halves(samples)
        scale = cls._fft_inplace(fr, fi, m - 1, True)
        restored = np.empty_like(samples)
        restored[0::2] = samples[:half]
        restored[1::2] = samples[half:]
        samples[:] = restored
        if pre_scale:
            logger.debug(f"Real inverse transform pre-scaled by 2**{pre_scale}")
        return pre_scale + scale


def _round_shift(x, bits: int):
    """Arithmetic right shift rounding half up."""
    return (x + (1 << (bits - 1))) >> bits


def get_max_log2n() -> int:
    """Largest supported log2 transform size."""
    return MAX_LOG2N


def set_max_log2n(log2n: int):
    """
    Set the sine table period, and so the largest supported transform size.

    Precision of the Q15 coefficients has been verified up to 2**11 points;
    larger tables should be checked with fixfft.reference.measure_accuracy.

    Args:
        log2n: log2 of the table period, between 2 and 15
    """
    global MAX_LOG2N
    if isinstance(log2n, bool) or not isinstance(log2n, (int, np.integer)):
        raise ValueError(f"Invalid table size: {log2n!r}")
    if not MIN_TABLE_LOG2N <= log2n <= MAX_TABLE_LOG2N:
        raise ValueError(
            f"Invalid table size: 2**{log2n} (expected 2**{MIN_TABLE_LOG2N} to 2**{MAX_TABLE_LOG2N})")
    if log2n > VERIFIED_LOG2N:
        logger.warning(f"Sine table of 2**{log2n} points exceeds the verified "
                       f"precision bound of 2**{VERIFIED_LOG2N}; check accuracy "
                       f"with fixfft.reference.measure_accuracy")
    MAX_LOG2N = int(log2n)


# Simplified function interfaces
def transform(real, imag, m=None, inverse=False):
    """Complex fixed-point FFT (inverse=False) or inverse FFT, in place."""
    return FixedFFT.transform(real, imag, m, inverse)

def transform_real(samples, m=None, inverse=False):
    """Real-input fixed-point FFT or inverse FFT, in place."""
    return FixedFFT.transform_real(samples, m, inverse)

def fft(real, imag, m=None):
    """Forward complex transform in place; always returns 0."""
    return FixedFFT.transform(real, imag, m, False)

def ifft(real, imag, m=None):
    """Inverse complex transform in place; returns the scale shift."""
    return FixedFFT.transform(real, imag, m, True)

def rfft(samples, m=None):
    """Forward real transform in place into the packed spectrum layout."""
    return FixedFFT.transform_real(samples, m, False)

def irfft(samples, m=None):
    """Inverse real transform of a packed spectrum in place; returns the scale shift."""
    return FixedFFT.transform_real(samples, m, True)

def clear_cache():
    """Clear the cached sine and bit-reversal tables."""
    FixedFFT.clear_cache()
