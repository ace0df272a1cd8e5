import unittest

from triax.drivers import units
from triax.drivers.errors import ConfigError, RangeError

class TestModels(unittest.TestCase):
    def test_lookup_ignores_case_and_spaces(self):
        self.assertEqual(units.lookup_model('Triax 320').spectral_dispersion, 2.64)
        self.assertEqual(units.lookup_model('triax550').spectral_dispersion, 1.55)
        self.assertEqual(units.lookup_model('TRIAX 190').min_limit, -100)

    def test_lookup_unknown_model(self):
        with self.assertRaises(ConfigError):
            units.lookup_model('Triax 999')
        with self.assertRaises(ConfigError):
            units.lookup_model(None)

    def test_grating_table(self):
        self.assertEqual([g.density for g in units.GRATINGS.values()], [1200, 900, 600])
        self.assertEqual(units.base_factor_for_index(0), 1.0)
        self.assertEqual(units.base_factor_for_index(1), 0.75)
        self.assertEqual(units.base_factor_for_index(2), 0.5)

class TestConversions(unittest.TestCase):
    def setUp(self):
        self.model = units.lookup_model('Triax 320')

    def test_round_half_away(self):
        self.assertEqual(units.round_half_away(2.5), 3)
        self.assertEqual(units.round_half_away(-2.5), -3)
        self.assertEqual(units.round_half_away(0.125, 2), 0.13)
        self.assertEqual(units.round_half_away(1.2344, 3), 1.234)

    def test_wavelength_raw(self):
        self.assertEqual(units.wavelength_to_raw(500, 0.5), 250)
        self.assertEqual(units.raw_to_wavelength(250, 0.5), 500)
        self.assertEqual(units.wavelength_to_raw(123.45, 0.75), 92.5875)

    def test_wavelength_range(self):
        self.assertTrue(units.wavelength_in_range(500, 1.0, self.model))
        self.assertTrue(units.wavelength_in_range(1500, 1.0, self.model))
        self.assertFalse(units.wavelength_in_range(1600, 1.0, self.model))
        self.assertFalse(units.wavelength_in_range(-250, 1.0, self.model))
        # Coarser gratings reach further.
        self.assertTrue(units.wavelength_in_range(2000, 0.5, self.model))
        self.assertEqual(units.wavelength_limits(0.5, self.model), (-400, 3000))

    def test_format_raw(self):
        self.assertEqual(units.format_raw(250.0), '250')
        self.assertEqual(units.format_raw(12.3456), '12.3456')
        self.assertEqual(units.format_raw(-7.5), '-7.5')
        self.assertEqual(units.format_raw(-0.00001), '0')

    def test_slit_steps(self):
        self.assertEqual(units.width_to_steps(1.0), 482)
        self.assertEqual(units.width_to_steps(2.24), 1080)
        self.assertEqual(units.width_to_steps(-1.0), -482)
        self.assertEqual(units.steps_to_width(482), 1.0)
        self.assertEqual(units.steps_to_width(1080), 2.24)

    def test_bandwidth(self):
        self.assertAlmostEqual(units.width_to_bandwidth(1.0, self.model), 2.64)
        self.assertAlmostEqual(units.bandwidth_to_width(2.64, self.model), 1.0)
        self.assertAlmostEqual(units.max_bandwidth(self.model), 5.9136)

class TestResolve(unittest.TestCase):
    def setUp(self):
        self.model = units.lookup_model('Triax 180')

    def test_max_width(self):
        self.assertEqual(units.resolve_width('max'), 2.24)
        self.assertEqual(units.resolve_width('MAX'), 2.24)
        self.assertEqual(units.resolve_width(1), 1.0)

    def test_bad_width(self):
        for width in ('wide', -0.1, 2.25, None, float('nan'), True):
            with self.assertRaises(RangeError):
                units.resolve_width(width)

    def test_bandwidth(self):
        self.assertAlmostEqual(units.resolve_bandwidth('max', self.model), 2.24 * 3.53)
        self.assertEqual(units.resolve_bandwidth(3, self.model), 3.0)
        with self.assertRaises(RangeError):
            units.resolve_bandwidth(8, self.model)
        with self.assertRaises(RangeError):
            units.resolve_bandwidth('narrow', self.model)

if __name__ == '__main__':
    unittest.main()
