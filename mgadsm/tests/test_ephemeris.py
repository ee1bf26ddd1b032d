"""Tests for the JPL approximate ephemeris and its state cache."""
import unittest

import numpy as np
from numpy.testing import assert_allclose

from mgadsm.cartesian_state import CartesianState
from mgadsm.constants import KMPAU, MU_SUN
from mgadsm.ephemeris import EphemerisCache, JplApproximateEphemeris
from mgadsm.exceptions import EphemerisError, UnknownBodyError, UnsupportedEpochError


class TestJplApproximateEphemeris(unittest.TestCase):

    def setUp(self):
        self.ephemeris = JplApproximateEphemeris()

    def test_earth_at_j2000(self):
        """Earth sits near 1 AU and moves at about 30 km/s."""
        state = self.ephemeris.get_state("Earth", 0.0)

        self.assertTrue(0.98 < state.radius / KMPAU < 1.02)
        self.assertTrue(29.0 < state.speed < 31.0)
        # nearly in the ecliptic
        self.assertLess(abs(state.r[2]) / KMPAU, 1e-3)

    def test_jupiter_distance(self):
        """Jupiter stays between its perihelion and aphelion distance."""
        for epoch in (0.0, 2000.0, 5000.0):
            state = self.ephemeris.get_state("Jupiter", epoch)
            self.assertTrue(4.9 < state.radius / KMPAU < 5.5)

    def test_names_are_case_insensitive(self):
        assert_allclose(self.ephemeris.get_state("mars", 100.0).r,
                        self.ephemeris.get_state("MARS", 100.0).r)

    def test_orbital_elements_match_state(self):
        """get_orbital_elements and get_state describe the same orbit."""
        elements = self.ephemeris.get_orbital_elements("Venus", 1234.5)
        self.assertTrue(0.71 < elements.a / KMPAU < 0.74)
        self.assertTrue(0.0 <= elements.e < 0.01)

    def test_unknown_body(self):
        """An unknown body raises UnknownBodyError."""
        with self.assertRaises(UnknownBodyError) as cm:
            self.ephemeris.get_state("Vulcan", 0.0)
        self.assertIn("Vulcan", str(cm.exception))
        self.assertIsInstance(cm.exception, EphemerisError)

    def test_unsupported_epoch(self):
        """Epochs outside 3000 BC - 3000 AD raise UnsupportedEpochError."""
        with self.assertRaises(UnsupportedEpochError):
            self.ephemeris.get_state("Earth", 2.0e6)
        with self.assertRaises(UnsupportedEpochError):
            self.ephemeris.get_state("Earth", float('nan'))

    def test_cache_hits(self):
        """Repeated queries are served from the cache."""
        first = self.ephemeris.get_state("Mars", 500.0)
        second = self.ephemeris.get_state("Mars", 500.0)

        self.assertEqual(self.ephemeris.cache.misses, 1)
        self.assertEqual(self.ephemeris.cache.hits, 1)
        assert_allclose(first.r, second.r)

    def test_cached_states_are_independent(self):
        """Mutating a returned state does not corrupt the cache."""
        state = self.ephemeris.get_state("Mars", 500.0)
        state.r[0] = 0.0
        again = self.ephemeris.get_state("Mars", 500.0)
        self.assertNotEqual(again.r[0], 0.0)

    def test_disabled_cache(self):
        ephemeris = JplApproximateEphemeris(cache_size=0)
        ephemeris.get_state("Earth", 10.0)
        ephemeris.get_state("Earth", 10.0)
        self.assertEqual(len(ephemeris.cache), 0)
        self.assertEqual(ephemeris.cache.hits, 0)

    def test_physical_properties(self):
        self.assertEqual(self.ephemeris.get_physical_properties("earth").name, "Earth")
        self.assertEqual(self.ephemeris.get_gravitational_parameter_central_body("Earth"), MU_SUN)
        with self.assertRaises(UnknownBodyError):
            self.ephemeris.get_gravitational_parameter_central_body("Sun")

    def test_body_names(self):
        self.assertIn("Neptune", self.ephemeris.body_names)
        self.assertEqual(len(self.ephemeris.body_names), 9)


class TestEphemerisCache(unittest.TestCase):

    def test_eviction(self):
        """The least recently used entry is evicted first."""
        cache = EphemerisCache(maxsize=2)
        state = CartesianState.create([1.0, 0.0, 0.0], [0.0, 1.0, 0.0])
        cache.put(("a", 0.0), state)
        cache.put(("b", 0.0), state)
        cache.get(("a", 0.0))
        cache.put(("c", 0.0), state)

        self.assertIsNotNone(cache.get(("a", 0.0)))
        self.assertIsNone(cache.get(("b", 0.0)))
        self.assertEqual(len(cache), 2)

    def test_clear(self):
        cache = EphemerisCache()
        cache.put(("a", 0.0), CartesianState.create(np.ones(3), np.ones(3)))
        cache.get(("a", 0.0))
        cache.clear()
        self.assertEqual((len(cache), cache.hits, cache.misses), (0, 0, 0))

    def test_negative_size(self):
        with self.assertRaises(ValueError):
            EphemerisCache(maxsize=-1)


if __name__ == '__main__':
    unittest.main()
