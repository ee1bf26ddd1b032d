"""Tests for the two-body propagators."""
import unittest

import numpy as np
import pytest
from numpy.testing import assert_allclose

from mgadsm.cartesian_state import CartesianState
from mgadsm.constants import DEG2RAD, MU_EARTH, RADIUS_EARTH
from mgadsm.conversion import canonical_units, cartesian_to_elements, elements_to_cartesian
from mgadsm.orbital_elements import OrbitalElements
from mgadsm.propagate import (
    KeplerianPropagator,
    LagrangianPropagator,
    PropagatorType,
    make_propagator,
    propagate_elements,
    propagate_state,
    solve_universal_variable,
    stumpff_c2_c3,
)

VALLADO_2_4_R0 = [1131.340, -2282.343, 6672.423]
VALLADO_2_4_V0 = [-5.64305, 4.30333, 2.42879]
VALLADO_2_4_R = [-4219.7527, 4363.0292, -3958.7666]
VALLADO_2_4_V = [3.689866, -1.916735, -6.112511]


class TestLagrangianPropagator(unittest.TestCase):

    def setUp(self):
        self.propagator = LagrangianPropagator()

    def test_vallado_2_4(self):
        """Vallado example 2-4 propagated as a Cartesian state."""
        state = CartesianState.create(VALLADO_2_4_R0, VALLADO_2_4_V0)
        result = self.propagator.propagate(state, MU_EARTH, 40.0 * 60.0)

        self.assertIsInstance(result, CartesianState)
        assert_allclose(result.r, VALLADO_2_4_R, rtol=1e-3)
        assert_allclose(result.v, VALLADO_2_4_V, rtol=1e-3)

    def test_vallado_2_4_elements(self):
        """Vallado example 2-4 propagated through orbital elements."""
        elements = cartesian_to_elements(CartesianState.create(VALLADO_2_4_R0, VALLADO_2_4_V0), MU_EARTH)
        result = self.propagator.propagate(elements, MU_EARTH, 40.0 * 60.0)

        self.assertIsInstance(result, OrbitalElements)
        state = elements_to_cartesian(result, MU_EARTH)
        assert_allclose(state.r, VALLADO_2_4_R, rtol=1e-3)
        assert_allclose(state.v, VALLADO_2_4_V, rtol=1e-3)

    def test_vallado_2_4_canonical(self):
        """Vallado example 2-4 in canonical units (mu = 1)."""
        du, tu, vu = canonical_units(RADIUS_EARTH, MU_EARTH)
        state = CartesianState.create([0.177378, -0.357838, 1.046140], [-0.713825, 0.544356, 0.307233])
        result = self.propagator.propagate(state, 1.0, 40.0 * 60.0 / tu)

        assert_allclose(result.r, [-0.661596, 0.684060, -0.620678], rtol=1e-3)
        assert_allclose(result.v, [0.466755, -0.242460, -0.773210], rtol=1e-3)

    def test_curtis_3_7(self):
        """Curtis example 3.7."""
        state = CartesianState.create([7000.0, -12124.0, 0.0], [2.6679, 4.6210, 0.0])
        result = self.propagator.propagate(state, 398600.0, 3600.0)

        assert_allclose(result.r, [-3296.8, 7413.9, 0.0], rtol=1e-3, atol=1e-6)
        assert_allclose(result.v, [-8.2977, -0.96309, 0.0], rtol=1e-3, atol=1e-6)

    def test_curtis_3_5_hyperbolic(self):
        """Curtis example 3.5: hyperbolic true anomaly after three hours."""
        h, e = 100170.0, 2.7696
        a = h**2 / MU_EARTH / (1.0 - e**2)
        elements = OrbitalElements(a=a, e=e, i=0.0, Omega=0.0, omega=0.0, nu=100.0 * DEG2RAD)

        result = self.propagator.propagate(elements, 398600.0, 3.0 * 3600.0)
        assert_allclose(result.nu, 107.78 * DEG2RAD, rtol=1e-3)

        state = self.propagator.propagate(elements_to_cartesian(elements, 398600.0), 398600.0,
                                          3.0 * 3600.0)
        assert_allclose(cartesian_to_elements(state, 398600.0).nu, 107.78 * DEG2RAD, rtol=1e-3)

    def test_curtis_3_6_hyperbolic(self):
        """Curtis example 3.6: hyperbolic true anomaly after one hour."""
        h, e = 95154.0, 1.4682
        a = h**2 / MU_EARTH / (1.0 - e**2)
        elements = OrbitalElements(a=a, e=e, i=0.0, Omega=0.0, omega=0.0, nu=30.0 * DEG2RAD)

        result = self.propagator.propagate(elements, 398600.0, 3600.0)
        assert_allclose(result.nu, 100.04 * DEG2RAD, rtol=1e-3)

    def test_forward_backward(self):
        """Propagating forward then backward returns the initial state."""
        state = CartesianState.create(VALLADO_2_4_R0, VALLADO_2_4_V0)
        forward = self.propagator.propagate(state, MU_EARTH, 12345.0)
        back = self.propagator.propagate(forward, MU_EARTH, -12345.0)

        assert_allclose(back.r, state.r, rtol=1e-8, atol=1e-6)
        assert_allclose(back.v, state.v, rtol=1e-8, atol=1e-9)

    def test_zero_time_returns_copy(self):
        """A zero time of flight returns an equal but independent state."""
        state = CartesianState.create(VALLADO_2_4_R0, VALLADO_2_4_V0)
        result = self.propagator.propagate(state, MU_EARTH, 0.0)

        assert_allclose(result.r, state.r)
        self.assertIsNot(result.r, state.r)

    def test_full_period(self):
        """An elliptical orbit returns to its initial state after one period."""
        elements = OrbitalElements(a=26600.0, e=0.74, i=1.1, Omega=0.4, omega=4.9, nu=0.3)
        period = 2.0 * np.pi * np.sqrt(elements.a**3 / MU_EARTH)
        state = elements_to_cartesian(elements, MU_EARTH)
        result = self.propagator.propagate(state, MU_EARTH, period)

        assert_allclose(result.r, state.r, rtol=1e-6, atol=1e-3)
        assert_allclose(result.v, state.v, rtol=1e-6, atol=1e-6)

    def test_near_parabolic(self):
        """Parabolic and nearly parabolic states conserve energy and angular momentum."""
        r0 = 7000.0
        for scale in (1.0, 1.0 + 1e-9, 1.0 - 1e-9):
            with self.subTest(scale=scale):
                v0 = scale * np.sqrt(2.0 * MU_EARTH / r0)
                state = CartesianState.create([r0, 0.0, 0.0], [0.0, v0, 0.0])
                result = self.propagator.propagate(state, MU_EARTH, 5000.0)

                energy0 = 0.5 * v0**2 - MU_EARTH / r0
                energy = 0.5 * result.speed**2 - MU_EARTH / result.radius
                assert_allclose(energy, energy0, atol=1e-5)
                assert_allclose(np.cross(result.r, result.v), np.cross(state.r, state.v), rtol=1e-6)

    def test_parabolic_elements(self):
        """A parabolic orbit keeps e = 1 and advances the true anomaly."""
        elements = OrbitalElements(a=14000.0, e=1.0, i=0.3, Omega=0.2, omega=0.1, nu=0.0)
        result = propagate_elements(elements, MU_EARTH, 3600.0)

        state = propagate_state(elements_to_cartesian(elements, MU_EARTH), MU_EARTH, 3600.0)
        assert_allclose(elements_to_cartesian(result, MU_EARTH).r, state.r, rtol=1e-6)
        self.assertGreater(result.nu, 0.0)

    def test_invalid_mu(self):
        """A non-positive mu raises ValueError."""
        state = CartesianState.create(VALLADO_2_4_R0, VALLADO_2_4_V0)
        with self.assertRaises(ValueError) as cm:
            self.propagator.propagate(state, -1.0, 10.0)
        self.assertIn("mu must be positive", str(cm.exception))


class TestKeplerianPropagator(unittest.TestCase):

    def test_matches_lagrangian(self):
        """Both propagators agree for elliptical and hyperbolic orbits."""
        lagrangian = LagrangianPropagator()
        keplerian = KeplerianPropagator()
        cases = [
            OrbitalElements(a=9000.0, e=0.2, i=0.4, Omega=1.0, omega=0.5, nu=2.0),
            OrbitalElements(a=-15000.0, e=1.6, i=0.9, Omega=2.0, omega=1.5, nu=-0.4),
        ]
        for elements in cases:
            with self.subTest(e=elements.e):
                state = elements_to_cartesian(elements, MU_EARTH)
                a = lagrangian.propagate(state, MU_EARTH, 4000.0)
                b = keplerian.propagate(state, MU_EARTH, 4000.0)
                assert_allclose(b.r, a.r, rtol=1e-6, atol=1e-3)
                assert_allclose(b.v, a.v, rtol=1e-6, atol=1e-6)

    def test_vallado_2_4(self):
        """Vallado example 2-4 through mean anomaly."""
        state = CartesianState.create(VALLADO_2_4_R0, VALLADO_2_4_V0)
        result = KeplerianPropagator().propagate(state, MU_EARTH, 40.0 * 60.0)

        assert_allclose(result.r, VALLADO_2_4_R, rtol=1e-3)
        assert_allclose(result.v, VALLADO_2_4_V, rtol=1e-3)


class TestUniversalVariable(unittest.TestCase):

    def test_stumpff_limits(self):
        """Stumpff functions tend to 1/2 and 1/6 at zero and are continuous across it."""
        self.assertEqual(stumpff_c2_c3(0.0), (0.5, 1.0 / 6.0))
        for psi in (2e-6, -2e-6):
            c2, c3 = stumpff_c2_c3(psi)
            assert_allclose(c2, 0.5, rtol=1e-5)
            assert_allclose(c3, 1.0 / 6.0, rtol=1e-5)

    def test_stumpff_values(self):
        """Closed forms for a positive and a negative argument."""
        c2, c3 = stumpff_c2_c3(np.pi**2)
        assert_allclose(c2, 2.0 / np.pi**2)
        assert_allclose(c3, 1.0 / np.pi**2)

        c2, c3 = stumpff_c2_c3(-1.0)
        assert_allclose(c2, np.cosh(1.0) - 1.0)
        assert_allclose(c3, np.sinh(1.0) - 1.0)

    def test_iteration_cap_logs_warning(self):
        """Hitting the iteration cap logs a warning and returns the last estimate."""
        r0 = np.linalg.norm(VALLADO_2_4_R0)
        v0 = np.linalg.norm(VALLADO_2_4_V0)
        rdotv = float(np.dot(VALLADO_2_4_R0, VALLADO_2_4_V0))
        alpha = 2.0 / r0 - v0**2 / MU_EARTH
        h = float(np.linalg.norm(np.cross(VALLADO_2_4_R0, VALLADO_2_4_V0)))

        with self.assertLogs('mgadsm.propagate', level='WARNING') as cm:
            solution = solve_universal_variable(r0, rdotv, alpha, h, 2400.0, MU_EARTH, max_iter=1)

        self.assertFalse(solution.converged)
        self.assertTrue(np.isfinite(solution.x))
        self.assertIn("Universal variable iteration", cm.output[0])


def test_make_propagator():
    """make_propagator accepts enum values, strings and instances."""
    assert isinstance(make_propagator(PropagatorType.LAGRANGIAN), LagrangianPropagator)
    assert isinstance(make_propagator('keplerian'), KeplerianPropagator)

    propagator = KeplerianPropagator()
    assert make_propagator(propagator) is propagator


def test_make_propagator_unknown():
    """An unknown propagator kind raises ValueError listing the valid kinds."""
    with pytest.raises(ValueError, match="Unknown propagator type 'cowell'"):
        make_propagator('cowell')


if __name__ == '__main__':
    unittest.main()
