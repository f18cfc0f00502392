"""
fixfft: Fixed-point (Q15) Fast Fourier Transform in Python.

this package computes forward and inverse FFTs entirely in 16-bit integer
arithmetic, in place, the way it is done on targets without a floating-point
unit. it handles bit reversal, overflow scaling and the real-input packing
trick; the caller only owns the sample buffers.

Basic usage:
    import numpy as np
    import fixfft

    # 256 real samples, Q15
    samples = fixfft.generate_test_signal(8)

    # forward real FFT -> samples now hold the packed spectrum
    fixfft.rfft(samples)
    bins = fixfft.unpack_real_spectrum(samples)

Complex data:
    real = np.zeros(1024, dtype=np.int16)
    imag = np.zeros(1024, dtype=np.int16)
    fixfft.fft(real, imag)                 # always returns 0
    shift = fixfft.ifft(real, imag)        # multiply output by 2**shift
"""

import copy
import logging


__version__ = '0.1.0'
# Import core functionality
from .core import (
    # Main transform functions
    transform, transform_real,
    fft, ifft, rfft, irfft,

    # Configuration functions
    get_max_log2n, set_max_log2n, clear_cache,

    # Core class for advanced users
    FixedFFT
)

from .fixedpoint import (
    fix_mpy, saturate, to_q15, from_q15,
    Q15_MIN, Q15_MAX, Q15_ONE, FRAC_BITS
)

from .errors import (
    FixedFFTError, InvalidSizeError, BufferLengthMismatchError
)

# Import interface functionality for NumPy interoperability
from .interface import (
    to_complex, from_complex, restore_scale,
    unpack_real_spectrum, pack_real_spectrum,
    magnitude_spectrum, bin_frequencies
)

# Import planning module for size selection
from .planning import (
    is_power_of_two, log2_size, check_transform_size,
    optimal_transform_size, pad_to_transform_size, max_transform_size
)

from .signals import generate_test_signal, fill_test_signal

from . import core

# Configuration system
_config = {
    # Default configuration
    'table': {
        'log2_n_wave': 11,  # sine table period, also the largest transform
    },
    'logging': {
        'level': 'WARNING',
    }
}

def _update_nested_dict(d, u):
    """Update nested dictionary recursively."""
    for k, v in u.items():
        if isinstance(v, dict) and k in d and isinstance(d[k], dict):
            _update_nested_dict(d[k], v)
        else:
            d[k] = v

def _check_config_dict(config_dict):
    """Reject sections and keys that are not part of the configuration."""
    for section, values in config_dict.items():
        if section not in _config:
            raise ValueError(f"Unknown configuration section: {section}")
        if not isinstance(values, dict):
            raise ValueError(f"Configuration section '{section}' must be a dict, "
                             f"got {type(values).__name__}")
        for key in values:
            if key not in _config[section]:
                raise ValueError(f"Unknown configuration key: {section}_{key}")

def _split_key(key):
    """Map a flattened key like 'table_log2_n_wave' to (section, key), or None."""
    section, _, name = key.partition('_')
    if section in _config and name in _config[section]:
        return section, name
    return None

def configure(config_dict=None, **kwargs):
    """
    Configure fixfft global settings.

    Args:
        config_dict: Dictionary with configuration settings
        **kwargs: Configuration settings as keyword arguments

    Examples:
        # Configure with a dictionary
        fixfft.configure({'table': {'log2_n_wave': 10}})

        # Or with keyword arguments
        fixfft.configure(table_log2_n_wave=10, logging_level='DEBUG')
    """
    previous = copy.deepcopy(_config)
    try:
        if config_dict:
            _check_config_dict(config_dict)
            # Update nested dictionary recursively
            _update_nested_dict(_config, config_dict)

        # Process kwargs (flattened config), e.g. 'table_log2_n_wave'
        for key, value in kwargs.items():
            target = _split_key(key)
            if target is None:
                raise ValueError(f"Unknown configuration key: {key}")
            _config[target[0]][target[1]] = value

        # Apply configuration
        _apply_configuration()
    except (ValueError, TypeError, KeyError, AttributeError):
        # keep the last valid configuration
        _config.clear()
        _config.update(previous)
        _apply_configuration()
        raise

    return {section: dict(values) for section, values in _config.items()}

def _apply_configuration():
    """Apply configuration settings to module components."""
    core.set_max_log2n(_config['table']['log2_n_wave'])

    # Configure logging
    logging.getLogger("fixfft").setLevel(getattr(logging, str(_config['logging']['level']).upper()))

def _load_env_config():
    """Load configuration from environment variables."""
    import os

    # Environment variable prefix
    prefix = "FIXFFT_"

    settings = {}
    # Find all relevant environment variables
    for key, value in os.environ.items():
        if key.startswith(prefix):
            # Remove prefix and convert to lowercase
            config_key = key[len(prefix):].lower()
            if _split_key(config_key) is None:
                logging.getLogger("fixfft").warning(
                    f"Ignoring unknown configuration variable {key}")
                continue

            # Try to convert value to appropriate type
            if value.isdigit():
                value = int(value)
            settings[config_key] = value

    if settings:
        configure(**settings)

# Initialize logging
def _setup_logging():
    """Set up default logging configuration."""
    logger = logging.getLogger("fixfft")
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, _config['logging']['level']))
        # Don't propagate to root logger
        logger.propagate = False

_setup_logging()

# Load environment config at startup
_load_env_config()
