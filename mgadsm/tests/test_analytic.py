"""Tests for the JAX arc sampler."""
import unittest

import numpy as np
import pytest
from numpy.testing import assert_allclose

from mgadsm.analytic import propagate_ballistic, sample_report_arcs
from mgadsm.cartesian_state import CartesianState
from mgadsm.constants import DAY, KMPAU, MU_SUN
from mgadsm.conversion import elements_to_cartesian
from mgadsm.orbital_elements import OrbitalElements
from mgadsm.propagate import propagate_state
from mgadsm.report import ConicArc, LegReport, TrajectoryReport


class TestPropagateBallistic(unittest.TestCase):

    def test_matches_scalar_propagator(self):
        """The vectorised propagator agrees with the scalar universal-variable propagator."""
        cases = [
            OrbitalElements(a=1.5 * KMPAU, e=0.3, i=0.1, Omega=0.5, omega=1.0, nu=0.2),
            OrbitalElements(a=-1.0 * KMPAU, e=1.4, i=0.2, Omega=1.0, omega=0.3, nu=-0.5),
        ]
        times = np.linspace(0.0, 300.0 * DAY, 7)
        for elements in cases:
            with self.subTest(e=elements.e):
                state = elements_to_cartesian(elements, MU_SUN)
                positions, velocities = propagate_ballistic(state.r, state.v, times, MU_SUN)

                self.assertEqual(positions.shape, (7, 3))
                for k, t in enumerate(times):
                    expected = propagate_state(state, MU_SUN, t)
                    assert_allclose(np.asarray(positions[k]), expected.r, rtol=1e-8)
                    assert_allclose(np.asarray(velocities[k]), expected.v, rtol=1e-8)

    def test_first_sample_is_initial_state(self):
        r0 = np.array([KMPAU, 0.0, 0.0])
        v0 = np.array([0.0, 30.0, 0.0])
        positions, velocities = propagate_ballistic(r0, v0, np.array([5.0, 10.0, 100.0]))

        assert_allclose(np.asarray(positions[0]), r0)
        assert_allclose(np.asarray(velocities[0]), v0)

    def test_backwards(self):
        """Times before times[0] propagate backwards."""
        state = CartesianState.create([KMPAU, 0.0, 0.0], [0.0, 31.0, 1.0])
        positions, _ = propagate_ballistic(state.r, state.v, np.array([0.0, -50.0 * DAY]))
        assert_allclose(np.asarray(positions[1]), propagate_state(state, MU_SUN, -50.0 * DAY).r,
                        rtol=1e-8)


def make_report():
    arcs = [
        ConicArc.create(100.0, [KMPAU, 0.0, 0.0], [0.0, 32.0, 0.0], 40.0 * DAY),
        ConicArc.create(140.0, [0.0, KMPAU, 0.0], [-31.0, 0.0, 0.5], 60.0 * DAY),
    ]
    leg = LegReport(index=0, initial_body="Earth", final_body="Mars", departure_epoch=100.0,
                    arrival_epoch=200.0, arcs=arcs, delta_vs=[1.0, 2.0])
    return TrajectoryReport.create([100.0], [leg])


def test_sample_report_arcs():
    """Every arc is sampled with its own epochs, ending at the arc end."""
    samples = sample_report_arcs(make_report(), num_points=11)

    assert len(samples) == 2
    first, second = samples
    assert first.positions.shape == (11, 3)
    assert first.velocities.shape == (11, 3)
    assert_allclose(first.epochs[[0, -1]], [100.0, 140.0])
    assert_allclose(second.epochs[[0, -1]], [140.0, 200.0])
    assert_allclose(second.positions[0], [0.0, KMPAU, 0.0])


def test_sample_report_arcs_num_points():
    with pytest.raises(ValueError, match="num_points"):
        sample_report_arcs(make_report(), num_points=1)
