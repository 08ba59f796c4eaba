from __future__ import annotations

import os
from pathlib import Path

import pytest

from qrek.core.astronomy import AstronomyEngine

J2000_JD = 2451545.0


class MeanMotionProvider:
    """
    Uniform solar and lunar motion (mean longitudes at J2000.0 and mean daily
    rates). Synodic month ~29.5306 d, tropical year ~365.2422 d.
    """
    sun_l0 = 280.46646
    sun_rate = 0.98564736
    moon_l0 = 218.3165
    moon_rate = 13.17639648

    def sun_longitude(self, jd: float) -> float:
        return (self.sun_l0 + self.sun_rate * (jd - J2000_JD)) % 360.0

    def moon_longitude(self, jd: float) -> float:
        return (self.moon_l0 + self.moon_rate * (jd - J2000_JD)) % 360.0


class StuckMoonProvider(MeanMotionProvider):
    """Moon pinned 90 deg ahead of the Sun: the new moon search never settles."""

    def moon_longitude(self, jd: float) -> float:
        return (self.sun_longitude(jd) + 90.0) % 360.0


class BoundedProvider(MeanMotionProvider):
    """Mean motion over 2000-01-01 .. 2010-01-01 only; counts solar lookups."""

    coverage = (2451545.0, 2455197.5)

    def __init__(self) -> None:
        self.calls = 0

    def sun_longitude(self, jd: float) -> float:
        self.calls += 1
        return super().sun_longitude(jd)


@pytest.fixture
def eng() -> AstronomyEngine:
    return AstronomyEngine(provider=MeanMotionProvider())


@pytest.fixture
def stuck_eng() -> AstronomyEngine:
    return AstronomyEngine(provider=StuckMoonProvider())


def _find_ephemeris_path() -> Path | None:
    env = os.environ.get("QREK_EPHEMERIS_PATH")
    if env:
        p = Path(env).expanduser()
        if p.exists():
            return p

    repo = Path(__file__).resolve().parents[1]
    for name in ("de440s.bsp", "de421.bsp"):
        p = repo / "data" / name
        if p.exists():
            return p
    return None


@pytest.fixture
def ephemeris_path() -> Path:
    p = _find_ephemeris_path()
    if p is None:
        pytest.skip("ephemeris not found (set QREK_EPHEMERIS_PATH or place data/de440s.bsp)")
    return p
