"""
Vectorised two-body propagation with JAX, used to sample coast arcs.
"""
from typing import List, NamedTuple

import jax.numpy as jnp
import numpy as np
from jax import lax, vmap

from mgadsm.constants import DAY, MU_SUN, STUMPFF_THRESHOLD
from mgadsm.report import TrajectoryReport


def propagate_ballistic(r0: jnp.ndarray, v0: jnp.ndarray, times: jnp.ndarray,
                        mu: float = MU_SUN) -> tuple[jnp.ndarray, jnp.ndarray]:
    """
    Propagate a ballistic (Keplerian) trajectory to many times at once.

    Universal-variable formulation with Lagrange coefficients, valid for every
    conic. Each time is solved independently under ``vmap`` with a fixed number
    of Newton iterations.

    Args:
        r0: Position at times[0] (km)
        v0: Velocity at times[0] (km/s)
        times: Sample times (s); the state (r0, v0) belongs to the first entry
        mu: Gravitational parameter (km^3/s^2)

    Returns:
        positions: (len(times), 3) array (km)
        velocities: (len(times), 3) array (km/s)

    References:
        Vallado, D. A. (2013). Fundamentals of Astrodynamics and Applications (4th ed.).
        Algorithm 8: KEPLER
    """
    r0 = jnp.asarray(r0, dtype=float)
    v0 = jnp.asarray(v0, dtype=float)
    times = jnp.asarray(times, dtype=float)

    r0_mag = jnp.linalg.norm(r0)
    rdotv = jnp.dot(r0, v0)
    alpha = 2.0 / r0_mag - jnp.dot(v0, v0) / mu
    sqrt_mu = jnp.sqrt(mu)

    t0 = times[0]

    def propagate_single_time(t):
        dt = t - t0
        x = _solve_universal_variable(r0_mag, rdotv, alpha, dt, mu)

        psi = x**2 * alpha
        c2, c3 = _stumpff(psi)
        r_mag = x**2 * c2 + rdotv / sqrt_mu * x * (1.0 - psi * c3) + r0_mag * (1.0 - psi * c2)

        f = 1.0 - x**2 / r0_mag * c2
        g = dt - x**3 / sqrt_mu * c3
        fdot = sqrt_mu / (r_mag * r0_mag) * x * (psi * c3 - 1.0)
        gdot = 1.0 - x**2 / r_mag * c2

        r = f * r0 + g * v0
        v = fdot * r0 + gdot * v0

        at_epoch = dt == 0.0
        return jnp.where(at_epoch, r0, r), jnp.where(at_epoch, v0, v)

    return vmap(propagate_single_time)(times)


def _solve_universal_variable(r0_mag, rdotv, alpha, dt, mu, max_iter: int = 50):
    """
    Newton iteration on the universal variable with a fixed iteration count.

    The initial guess follows the conic type; lax.fori_loop keeps the loop
    traceable.
    """
    sqrt_mu = jnp.sqrt(mu)

    x_ellipse = sqrt_mu * dt * alpha

    a = 1.0 / alpha
    log_arg = (-2.0 * mu * alpha * dt) / (
        rdotv + jnp.sign(dt) * jnp.sqrt(jnp.abs(-mu * a)) * (1.0 - r0_mag * alpha))
    x_hyperbola = jnp.sign(dt) * jnp.sqrt(jnp.abs(a)) * jnp.log(jnp.maximum(log_arg, 1e-10))

    x_parabola = sqrt_mu * dt / r0_mag

    x = jnp.where(alpha > STUMPFF_THRESHOLD, x_ellipse,
                  jnp.where(alpha < -STUMPFF_THRESHOLD, x_hyperbola, x_parabola))

    def newton_step(i, x):
        psi = x**2 * alpha
        c2, c3 = _stumpff(psi)
        r = x**2 * c2 + rdotv / sqrt_mu * x * (1.0 - psi * c3) + r0_mag * (1.0 - psi * c2)
        residual = sqrt_mu * dt - x**3 * c3 - rdotv / sqrt_mu * x**2 * c2 - r0_mag * x * (1.0 - psi * c3)
        return x + residual / r

    return lax.fori_loop(0, max_iter, newton_step, x)


def _stumpff(psi):
    """
    Stumpff functions c2 and c3 with a series expansion near psi = 0.
    """
    sqrt_psi = jnp.sqrt(jnp.abs(psi))

    c2_series = 0.5 - psi / 24.0 + psi**2 / 720.0
    c3_series = 1.0 / 6.0 - psi / 120.0 + psi**2 / 5040.0

    c2_pos = (1.0 - jnp.cos(sqrt_psi)) / psi
    c3_pos = (sqrt_psi - jnp.sin(sqrt_psi)) / sqrt_psi**3

    c2_neg = (1.0 - jnp.cosh(sqrt_psi)) / psi
    c3_neg = (jnp.sinh(sqrt_psi) - sqrt_psi) / sqrt_psi**3

    c2 = jnp.where(psi > STUMPFF_THRESHOLD, c2_pos,
                   jnp.where(psi < -STUMPFF_THRESHOLD, c2_neg, c2_series))
    c3 = jnp.where(psi > STUMPFF_THRESHOLD, c3_pos,
                   jnp.where(psi < -STUMPFF_THRESHOLD, c3_neg, c3_series))
    return c2, c3


class SampledArc(NamedTuple):
    epochs: np.ndarray  # MJD2000 (days)
    positions: np.ndarray  # (n, 3) km
    velocities: np.ndarray  # (n, 3) km/s


def sample_report_arcs(report: TrajectoryReport, num_points: int = 100,
                       mu: float = MU_SUN) -> List[SampledArc]:
    """
    Sample every coast arc of a trajectory report.

    Args:
        report: Detailed evaluation result
        num_points: Samples per arc, end points included
        mu: Gravitational parameter of the central body (km^3/s^2)

    Returns:
        One SampledArc per coast arc, in flight order
    """
    if num_points < 2:
        raise ValueError(f"num_points must be at least 2, got {num_points}")

    samples = []
    for leg in report.legs:
        for arc in leg.arcs:
            times = jnp.linspace(0.0, arc.duration, num_points)
            r, v = propagate_ballistic(jnp.array(arc.position), jnp.array(arc.velocity), times, mu)
            samples.append(SampledArc(
                epochs=arc.epoch + np.asarray(times) / DAY,
                positions=np.asarray(r),
                velocities=np.asarray(v),
            ))
    return samples
