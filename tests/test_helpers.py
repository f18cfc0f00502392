import os
import logging
import unittest
from unittest import mock
import numpy as np
import fixfft
from fixfft import planning, reference, signals, InvalidSizeError, BufferLengthMismatchError


class TestPlanning(unittest.TestCase):

    def test_power_of_two(self):
        """Test power-of-two detection and log2"""
        self.assertTrue(planning.is_power_of_two(1))
        self.assertTrue(planning.is_power_of_two(2048))
        self.assertFalse(planning.is_power_of_two(0))
        self.assertFalse(planning.is_power_of_two(6))
        self.assertEqual(planning.log2_size(1024), 10)
        with self.assertRaises(InvalidSizeError):
            planning.log2_size(6)

    def test_check_transform_size(self):
        """Test size validation used by the transforms"""
        self.assertEqual(planning.check_transform_size(8), 3)
        self.assertEqual(planning.check_transform_size(8, 3), 3)
        with self.assertRaises(BufferLengthMismatchError):
            planning.check_transform_size(8, 4)
        with self.assertRaises(InvalidSizeError):
            planning.check_transform_size(8, True)
        with self.assertRaises(InvalidSizeError):
            planning.check_transform_size(1 << 12)

    def test_optimal_transform_size(self):
        """Test picking the next supported power of two"""
        self.assertEqual(planning.optimal_transform_size(1), 2)
        self.assertEqual(planning.optimal_transform_size(100), 128)
        self.assertEqual(planning.optimal_transform_size(2048), 2048)
        self.assertEqual(planning.max_transform_size(), 2048)
        with self.assertRaises(InvalidSizeError):
            planning.optimal_transform_size(2049)

    def test_pad_to_transform_size(self):
        """Test zero-padding to a supported length"""
        padded = planning.pad_to_transform_size(np.arange(1, 6))
        self.assertEqual(padded.dtype, np.int16)
        np.testing.assert_array_equal(padded, [1, 2, 3, 4, 5, 0, 0, 0])


class TestInterface(unittest.TestCase):

    def test_pack_unpack(self):
        """Test the packed real spectrum layout"""
        bins = np.array([100, 1 + 2j, -3 + 4j, 5 + 6j, 7])
        packed = fixfft.pack_real_spectrum(bins)
        self.assertEqual(packed.dtype, np.int16)
        np.testing.assert_array_equal(packed, [100, 1, 2, -3, 4, 5, 6, 7])
        np.testing.assert_allclose(fixfft.unpack_real_spectrum(packed), bins)

        # two-point transform: DC and Nyquist only
        np.testing.assert_array_equal(fixfft.pack_real_spectrum([3, -4]), [3, -4])

        with self.assertRaises(InvalidSizeError):
            fixfft.unpack_real_spectrum(np.zeros(6))

    def test_magnitude_spectrum(self):
        """Test bin magnitudes of a packed spectrum"""
        packed = np.array([0, 3, 4, 0, 0, 0, 0, -2], dtype=np.int16)
        np.testing.assert_allclose(fixfft.magnitude_spectrum(packed), [0, 5, 0, 0, 2])

    def test_complex_conversion(self):
        """Test conversion between complex arrays and buffer pairs"""
        real, imag = fixfft.from_complex([40000 + 0j, -1.6 - 2.4j])
        np.testing.assert_array_equal(real, [32767, -2])
        np.testing.assert_array_equal(imag, [0, -2])
        np.testing.assert_allclose(fixfft.to_complex(real, imag), [32767, -2 - 2j])

    def test_restore_scale(self):
        """Test applying the inverse scale shift"""
        restored = fixfft.restore_scale(np.array([1, -2], dtype=np.int16), 3)
        self.assertEqual(restored.dtype, np.int64)
        np.testing.assert_array_equal(restored, [8, -16])
        with self.assertRaises(ValueError):
            fixfft.restore_scale([1], -1)

    def test_bin_frequencies(self):
        """Test frequencies of the real transform bins"""
        np.testing.assert_allclose(fixfft.bin_frequencies(3, 8.0), [0, 1, 2, 3, 4])


class TestSignals(unittest.TestCase):

    def test_sine_peak(self):
        """Test that a generated tone lands in its bin"""
        samples = signals.generate_test_signal(8, frequency=4)
        self.assertEqual(samples.dtype, np.int16)
        self.assertEqual(len(samples), 256)

        fixfft.rfft(samples)
        magnitude = fixfft.magnitude_spectrum(samples)
        self.assertEqual(int(np.argmax(magnitude)), 4)
        # amplitude 0.5 -> two coefficients of a quarter of full scale
        self.assertLessEqual(abs(magnitude[4] - 8192), 40)

    def test_multiple_tones(self):
        """Test a sine signal with two tones"""
        samples = signals.generate_test_signal(7, frequency=[4, 10])
        fixfft.rfft(samples)
        peaks = np.argsort(fixfft.magnitude_spectrum(samples))[-2:]
        self.assertEqual(sorted(peaks.tolist()), [4, 10])

    def test_square_and_chirp(self):
        """Test the scipy-based signal kinds"""
        square = signals.generate_test_signal(7, kind='square', frequency=4, amplitude=0.25)
        self.assertEqual(set(np.unique(square).tolist()), {-8192, 8192})
        fixfft.rfft(square)
        self.assertEqual(int(np.argmax(fixfft.magnitude_spectrum(square))), 4)

        chirp = signals.generate_test_signal(7, kind='chirp', frequency=32)
        self.assertLessEqual(np.max(np.abs(chirp.astype(int))), 16384)
        self.assertEqual(chirp[0], 16384)

    def test_noise_is_seeded(self):
        """Test reproducible noise"""
        a = signals.generate_test_signal(6, kind='noise', seed=3)
        b = signals.generate_test_signal(6, kind='noise', seed=3)
        np.testing.assert_array_equal(a, b)

    def test_fill_test_signal(self):
        """Test filling an existing buffer"""
        buffer = np.zeros(64, dtype=np.int16)
        result = fixfft.fill_test_signal(buffer, frequency=2)
        self.assertIs(result, buffer)
        np.testing.assert_array_equal(buffer, signals.generate_test_signal(6, frequency=2))
        with self.assertRaises(InvalidSizeError):
            fixfft.fill_test_signal(np.zeros(6, dtype=np.int16))

    def test_bad_arguments(self):
        """Test rejected generator arguments"""
        with self.assertRaises(ValueError):
            signals.generate_test_signal(5, kind='triangle')
        with self.assertRaises(ValueError):
            signals.generate_test_signal(5, amplitude=0.0)


class TestReference(unittest.TestCase):

    def setUp(self):
        np.random.seed(42)

    def test_reference_spectra(self):
        """Test FFTW reference spectra against NumPy"""
        real = np.random.randint(-8000, 8001, 64)
        imag = np.random.randint(-8000, 8001, 64)
        np.testing.assert_allclose(reference.reference_spectrum(real, imag),
                                   np.fft.fft(real + 1j * imag) / 64, atol=1e-6)
        np.testing.assert_allclose(reference.reference_real_spectrum(real),
                                   np.fft.rfft(real) / 64, atol=1e-6)

    def test_sqnr(self):
        """Test signal-to-quantization-noise ratio"""
        ref = np.array([100.0, -100.0])
        self.assertEqual(reference.sqnr_db(ref, ref), float('inf'))
        self.assertAlmostEqual(reference.sqnr_db(ref + 1.0, ref), 40.0)

    def test_measure_accuracy(self):
        """Test accuracy of the default table size"""
        results = reference.measure_accuracy(8, trials=2)
        self.assertGreater(results['forward_sqnr_db'], 30)
        self.assertGreater(results['roundtrip_sqnr_db'], 30)
        self.assertGreaterEqual(results['max_scale_shift'], 0)


class TestConfiguration(unittest.TestCase):

    def tearDown(self):
        # restore defaults after each test
        fixfft.configure(table_log2_n_wave=11, logging_level='WARNING')

    def test_raise_table_bound(self):
        """Test that a larger sine table allows larger transforms"""
        with self.assertLogs("fixfft", level="WARNING"):
            config = fixfft.configure(table_log2_n_wave=12)
        self.assertEqual(config['table']['log2_n_wave'], 12)
        self.assertEqual(fixfft.get_max_log2n(), 12)

        n = 1 << 12
        x = np.round(16384 * np.cos(2 * np.pi * 100 * np.arange(n) / n)).astype(np.int16)
        fixfft.rfft(x)
        self.assertEqual(int(np.argmax(fixfft.magnitude_spectrum(x))), 100)

    def test_lower_table_bound(self):
        """Test that a smaller sine table rejects larger transforms"""
        fixfft.configure({'table': {'log2_n_wave': 6}})
        with self.assertRaises(InvalidSizeError):
            fixfft.transform_real(np.zeros(128, dtype=np.int16))

        real = np.full(64, 1000, dtype=np.int16)
        imag = np.zeros(64, dtype=np.int16)
        fixfft.transform(real, imag)
        self.assertLessEqual(abs(int(real[0]) - 1000), 20)

    def test_invalid_values(self):
        """Test that rejected settings keep the previous configuration"""
        with self.assertRaises(ValueError):
            fixfft.configure(table_log2_n_wave=16)
        with self.assertRaises(ValueError):
            fixfft.configure(table_size=10)
        self.assertEqual(fixfft.get_max_log2n(), 11)
        self.assertEqual(fixfft._config['table']['log2_n_wave'], 11)

    def test_logging_level(self):
        """Test configuring the package log level"""
        fixfft.configure(logging_level='DEBUG')
        self.assertEqual(logging.getLogger("fixfft").level, logging.DEBUG)

    def test_env_config(self):
        """Test configuration from environment variables"""
        with mock.patch.dict(os.environ, {'FIXFFT_TABLE_LOG2_N_WAVE': '10'}):
            fixfft._load_env_config()
        self.assertEqual(fixfft.get_max_log2n(), 10)

    def test_env_config_ignores_unrelated_variables(self):
        """Test that unknown FIXFFT_ variables are skipped with a warning"""
        env = {'FIXFFT_HOME': '/opt/x', 'FIXFFT_FOO': '3', 'FIXFFT_TABLE_LOG2_N_WAVE': '9'}
        with mock.patch.dict(os.environ, env):
            with self.assertLogs("fixfft", level="WARNING") as logs:
                fixfft._load_env_config()
        self.assertEqual(fixfft.get_max_log2n(), 9)
        self.assertTrue(any('FIXFFT_HOME' in line for line in logs.output))

    def test_bad_section_is_rolled_back(self):
        """Test that a non-dict section is rejected and later calls still work"""
        with self.assertRaises(ValueError):
            fixfft.configure({'table': 5})
        self.assertEqual(fixfft._config['table'], {'log2_n_wave': 11})

        config = fixfft.configure(logging_level='INFO')
        self.assertEqual(config['logging']['level'], 'INFO')

    def test_unknown_dict_entries(self):
        """Test that the dict form rejects what the keyword form rejects"""
        with self.assertRaises(ValueError):
            fixfft.configure({'tables': {'log2_n_wave': 10}})
        with self.assertRaises(ValueError):
            fixfft.configure({'table': {'size': 10}})
        with self.assertRaises(ValueError):
            fixfft.configure({'table': {'log2_n_wave': 'big'}})
        self.assertEqual(fixfft.get_max_log2n(), 11)
        self.assertNotIn('tables', fixfft._config)


if __name__ == "__main__":
    unittest.main()
