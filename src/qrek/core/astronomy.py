# src/qrek/core/astronomy.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


def norm360(deg: float) -> float:
    x = deg % 360.0
    # tiny negatives round up to exactly 360.0
    return 0.0 if x >= 360.0 else x


def angdiff180(deg: float) -> float:
    """Map angle to (-180, 180]."""
    x = (deg + 180.0) % 360.0 - 180.0
    return 180.0 if x == -180.0 else x


@runtime_checkable
class EphemerisProvider(Protocol):
    """
    Apparent geocentric ecliptic longitudes (degrees) as pure functions of a
    UT Julian Date.
    """
    def sun_longitude(self, jd: float) -> float: ...
    def moon_longitude(self, jd: float) -> float: ...


@dataclass(frozen=True)
class AstronomyEngine:
    provider: EphemerisProvider

    def sun_lon(self, jd: float) -> float:
        """Return apparent solar ecliptic longitude (degrees, [0, 360)) at jd."""
        return norm360(float(self.provider.sun_longitude(jd)))

    def moon_lon(self, jd: float) -> float:
        """Return apparent lunar ecliptic longitude (degrees, [0, 360)) at jd."""
        return norm360(float(self.provider.moon_longitude(jd)))

    def moon_sun_lon_diff(self, jd: float) -> float:
        """Δλ = λ☾ - λ☉ mapped to (-180, 180]. New moon ≈ 0."""
        return angdiff180(self.moon_lon(jd) - self.sun_lon(jd))
