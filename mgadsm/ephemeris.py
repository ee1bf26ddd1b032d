"""
Ephemeris capability and the JPL approximate planetary ephemeris.

Epochs are MJD2000 days (days since 2000-01-01 00:00). States are heliocentric
ecliptic J2000 in km and km/s.
"""
from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Optional

import numpy as np

from mgadsm.bodies import Body, get_body
from mgadsm.cartesian_state import CartesianState
from mgadsm.constants import DAYS_PER_CENTURY, DEG2RAD, JD_J2000, KMPAU, MU_SUN
from mgadsm.conversion import (
    eccentric_to_true_anomaly,
    elements_to_cartesian,
    mjd2000_to_jd,
    mjd2000_to_year,
    solve_kepler_elliptical,
)
from mgadsm.exceptions import UnknownBodyError, UnsupportedEpochError
from mgadsm.orbital_elements import OrbitalElements

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).parent / 'data' / 'jpl_approx_elements.csv'
DEFAULT_CACHE_SIZE = 4096


class EphemerisCache:
    """
    Bounded least-recently-used cache of body states keyed on (name, epoch).

    Each ephemeris instance owns its cache; nothing is shared between instances.
    """

    def __init__(self, maxsize: int = DEFAULT_CACHE_SIZE):
        if maxsize < 0:
            raise ValueError(f"maxsize must be non-negative, got {maxsize}")
        self.maxsize = maxsize
        self.hits = 0
        self.misses = 0
        self._data: OrderedDict[tuple[str, float], CartesianState] = OrderedDict()

    def get(self, key: tuple[str, float]) -> Optional[CartesianState]:
        state = self._data.get(key)
        if state is None:
            self.misses += 1
            return None
        self._data.move_to_end(key)
        self.hits += 1
        return state.copy()

    def put(self, key: tuple[str, float], state: CartesianState) -> None:
        if self.maxsize == 0:
            return
        self._data[key] = state.copy()
        self._data.move_to_end(key)
        while len(self._data) > self.maxsize:
            self._data.popitem(last=False)

    def clear(self) -> None:
        self._data.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._data)


class Ephemeris(ABC):
    """
    Ephemeris capability consumed by the trajectory engine.

    ``get_state`` validates the body name and epoch first and raises
    UnknownBodyError or UnsupportedEpochError rather than returning a
    plausible but wrong state.
    """

    def get_state(self, name: str, epoch: float) -> CartesianState:
        """
        Heliocentric state of ``name`` at ``epoch``.

        Args:
            name: Body name
            epoch: MJD2000 (days)

        Returns:
            CartesianState (km, km/s)
        """
        if not self.is_valid_name(name):
            raise UnknownBodyError(f"Body '{name}' is not available from {type(self).__name__}")
        if not self.is_valid_epoch(epoch):
            raise UnsupportedEpochError(
                f"Epoch {epoch} (MJD2000) is outside the validity range of {type(self).__name__}"
            )
        return self._get_state(name, float(epoch))

    @abstractmethod
    def _get_state(self, name: str, epoch: float) -> CartesianState:
        ...

    @abstractmethod
    def is_valid_name(self, name: str) -> bool:
        ...

    @abstractmethod
    def is_valid_epoch(self, epoch: float) -> bool:
        ...

    def get_physical_properties(self, name: str) -> Body:
        return get_body(name)

    def get_gravitational_parameter_central_body(self, name: str) -> float:
        """Gravitational parameter (km^3/s^2) of the body that ``name`` orbits."""
        body = self.get_physical_properties(name)
        if body.central_body is None:
            raise UnknownBodyError(f"Body '{name}' has no central body")
        return self.get_physical_properties(body.central_body).mu


class JplApproximateEphemeris(Ephemeris):
    """
    JPL Keplerian elements for approximate positions of the major planets.

    Elements and their rates are linear in Julian centuries from J2000; Jupiter
    through Pluto carry additional mean-anomaly correction terms. Valid from
    3000 BC to 3000 AD.

    Args:
        data_file: CSV file with the element table (defaults to the bundled one)
        cache_size: Maximum number of cached states (0 disables caching)

    Examples:
        >>> ephem = JplApproximateEphemeris()
        >>> state = ephem.get_state("Earth", 0.0)
        >>> round(np.linalg.norm(state.r) / KMPAU, 2)
        0.98
    """
    start_year = -3000.0
    end_year = 3000.0

    def __init__(self, data_file: str | Path | None = None, cache_size: int = DEFAULT_CACHE_SIZE):
        self.data_file = Path(data_file) if data_file is not None else DEFAULT_DATA_FILE
        self.cache = EphemerisCache(cache_size)
        self._table = self._load(self.data_file)
        logger.debug("Loaded %d bodies from %s", len(self._table), self.data_file)

    @staticmethod
    def _load(data_file: Path) -> dict[str, dict[str, float]]:
        table = {}
        with open(data_file, 'r', newline='') as f:
            reader = csv.DictReader(line for line in f if not line.startswith('#'))
            for row in reader:
                name = row.pop('name').strip()
                table[name.lower()] = {key.strip(): float(value) for key, value in row.items()}
        return table

    @property
    def body_names(self) -> list[str]:
        return [get_body(name).name for name in self._table]

    def is_valid_name(self, name: str) -> bool:
        return name.lower() in self._table

    def is_valid_epoch(self, epoch: float) -> bool:
        return bool(np.isfinite(epoch)) and self.start_year <= mjd2000_to_year(epoch) <= self.end_year

    def get_orbital_elements(self, name: str, epoch: float) -> OrbitalElements:
        """
        Heliocentric orbital elements of ``name`` at ``epoch`` (km, rad).

        Raises:
            UnknownBodyError: If the body is not in the table
            UnsupportedEpochError: If the epoch is outside 3000 BC - 3000 AD
        """
        if not self.is_valid_name(name):
            raise UnknownBodyError(f"Body '{name}' is not available from {type(self).__name__}")
        if not self.is_valid_epoch(epoch):
            raise UnsupportedEpochError(
                f"Epoch {epoch} (MJD2000) is outside the validity range of {type(self).__name__}"
            )

        row = self._table[name.lower()]
        T = (mjd2000_to_jd(epoch) - JD_J2000) / DAYS_PER_CENTURY

        a = row['a'] + row['a_dot'] * T
        e = row['e'] + row['e_dot'] * T
        inc = row['I'] + row['I_dot'] * T
        L = row['L'] + row['L_dot'] * T
        long_peri = row['long_peri'] + row['long_peri_dot'] * T
        long_node = row['long_node'] + row['long_node_dot'] * T

        omega = long_peri - long_node
        M = (L - long_peri + row['b'] * T**2
             + row['c'] * np.cos(row['f'] * T * DEG2RAD)
             + row['s'] * np.sin(row['f'] * T * DEG2RAD))
        M = np.mod(M, 360.0)
        if M > 180.0:
            M -= 360.0

        E = solve_kepler_elliptical(e, M * DEG2RAD)
        nu = eccentric_to_true_anomaly(e, E)

        return OrbitalElements(a=a * KMPAU, e=e, i=inc * DEG2RAD, Omega=long_node * DEG2RAD,
                               omega=omega * DEG2RAD, nu=float(nu))

    def _get_state(self, name: str, epoch: float) -> CartesianState:
        key = (name.lower(), epoch)
        state = self.cache.get(key)
        if state is None:
            state = elements_to_cartesian(self.get_orbital_elements(name, epoch), MU_SUN)
            self.cache.put(key, state)
        return state
