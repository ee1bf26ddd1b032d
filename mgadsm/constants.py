"""
Physical, numerical and mission constants for mgadsm.

This module contains the constants shared by the propagators, the Lambert
solver and the trajectory engine. Distances are in km, times in seconds,
angles in radians unless noted otherwise.
"""
import numpy as np

# Numerical tolerances and iteration limits
TOLERANCE = 1.0e-8  # convergence / orbit-type classification tolerance
STUMPFF_THRESHOLD = 1.0e-6  # |psi| below which the Stumpff series limits are used
UNIVERSAL_VARIABLE_MAX_ITER = 100
LAMBERT_MAX_ITER = 60
KEPLER_MAX_ITER = 1000

# Time constants
DAY = 86400.0  # seconds per day
YEAR = 365.25 * DAY  # seconds per Julian year
JD_J2000 = 2451545.0  # Julian date of the J2000 epoch (2000-01-01 12:00 TT)
JD_MJD2000 = 2451544.5  # Julian date of MJD2000 = 0 (2000-01-01 00:00)
DAYS_PER_CENTURY = 36525.0

# Distance constants
KMPAU = 149597870.66  # km per AU
AU = KMPAU

# Gravitational parameters (km^3/s^2)
MU_SUN = 132712428000.0
MU_MERCURY = 22032.0
MU_VENUS = 325700.0
MU_EARTH = 398600.4418
MU_MARS = 43050.0
MU_JUPITER = 126800000.0
MU_SATURN = 37940000.0
MU_URANUS = 5794000.0
MU_NEPTUNE = 6809000.0
MU_PLUTO = 900.0

# Equatorial radii (km)
RADIUS_SUN = 696000.0
RADIUS_MERCURY = 2439.0
RADIUS_VENUS = 6052.0
RADIUS_EARTH = 6378.1363
RADIUS_MARS = 3397.2
RADIUS_JUPITER = 71492.0
RADIUS_SATURN = 60268.0
RADIUS_URANUS = 25559.0
RADIUS_NEPTUNE = 24764.0
RADIUS_PLUTO = 1151.0

SAFE_RADIUS_FACTOR = 1.1  # minimum safe flyby radius as a multiple of the body radius

# Angles
TWO_PI = 2.0 * np.pi
DEG2RAD = np.pi / 180.0
RAD2DEG = 180.0 / np.pi
