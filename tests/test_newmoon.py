from __future__ import annotations

import pytest

from qrek.core.astronomy import AstronomyEngine
from qrek.core.config import NewMoonConfig
from qrek.core.errors import ConversionError, NonConvergenceError
from qrek.core.newmoon import (
    SYNODIC_MONTH_DAYS,
    _elongation_step_deg,
    locate_new_moon,
    walk_back_new_moons,
    walk_forward_new_moons,
)

from conftest import MeanMotionProvider

ONE_SECOND = 1.0 / 86400.0


class LateStallProvider(MeanMotionProvider):
    """
    Moon creeps 2 deg ahead of the Sun for jd > stall_after, which keeps the
    search from settling until it restarts further back.
    """

    def __init__(self, stall_after: float) -> None:
        self.stall_after = stall_after

    def moon_longitude(self, jd: float) -> float:
        if jd > self.stall_after:
            return (self.sun_longitude(jd) + 2.0) % 360.0
        return super().moon_longitude(jd)


def _sample_jds(start: float = 2451545.0, days: float = 740.0, step: float = 2.9):
    n = int(days / step)
    return [start + i * step for i in range(n)]


def test_new_moon_elongation_is_zero(eng: AstronomyEngine):
    for jd in _sample_jds():
        ev = locate_new_moon(eng, jd)
        assert abs(eng.moon_sun_lon_diff(ev.jd)) < 1e-4
        assert 1 <= ev.iterations <= 30


def test_new_moon_within_one_month_of_guess(eng: AstronomyEngine):
    for jd in _sample_jds():
        ev = locate_new_moon(eng, jd)
        assert abs(jd - ev.jd) < SYNODIC_MONTH_DAYS + 0.01
        assert not ev.restarted


def test_new_moon_usually_precedes_guess(eng: AstronomyEngine):
    # away from the Sun-near-0 deg inversion the search always steps back
    ev = locate_new_moon(eng, 2451560.0)
    assert ev.jd <= 2451560.0 + ONE_SECOND


def test_inverted_first_step_lands_on_following_new_moon(eng: AstronomyEngine):
    # Sun at 0.66 deg, Moon at 342.9 deg: the conjunction 1.5 days later is found
    guess = 2451991.6
    ev = locate_new_moon(eng, guess)
    assert ev.jd > guess
    assert ev.jd == pytest.approx(2451993.057, abs=0.01)
    assert abs(eng.moon_sun_lon_diff(ev.jd)) < 1e-4
    assert ev.iterations <= 5


@pytest.mark.parametrize(
    "sun,moon,first,expected",
    [
        (10.0, 350.0, False, 20.0),
        (10.0, 350.0, True, 20.0),
        (100.0, 90.0, True, 350.0),
        (100.0, 90.0, False, -10.0),
        (100.0, 200.0, False, 100.0),
        (100.0, 130.0, False, 30.0),
    ],
)
def test_elongation_step_heuristics(sun: float, moon: float, first: bool, expected: float):
    assert _elongation_step_deg(sun, moon, first=first) == pytest.approx(expected)


def test_known_mean_new_moon(eng: AstronomyEngine):
    # the mean model puts the first new moon of 2000 at about 2000-01-06 14h UT
    ev = locate_new_moon(eng, 2451560.0)
    assert ev.jd == pytest.approx(2451550.098, abs=0.01)


def test_restart_after_stall():
    guess = 2451545.0 + 200.0
    eng = AstronomyEngine(provider=LateStallProvider(stall_after=guess - 20.0))
    ev = locate_new_moon(eng, guess)

    assert ev.restarted
    assert 15 < ev.iterations <= 30
    assert ev.jd < guess - 20.0
    assert abs(eng.moon_sun_lon_diff(ev.jd)) < 1e-4


def test_stuck_search_raises(stuck_eng: AstronomyEngine):
    with pytest.raises(NonConvergenceError) as ei:
        locate_new_moon(stuck_eng, 2451545.0)
    assert ei.value.iterations == 30
    assert ei.value.jd_approx == 2451545.0
    assert isinstance(ei.value, ConversionError)


def test_iteration_budget_is_configurable(stuck_eng: AstronomyEngine):
    cfg = NewMoonConfig(restart_iteration=3, max_iterations=5)
    with pytest.raises(NonConvergenceError) as ei:
        locate_new_moon(stuck_eng, 2451545.0, config=cfg)
    assert ei.value.iterations == 5


def test_walk_back_new_moons(eng: AstronomyEngine):
    start = locate_new_moon(eng, 2451545.0 + 120.0)
    moons = walk_back_new_moons(eng, start, 2451545.0)

    assert moons[-1] == start
    assert moons[0].jd < 2451545.0
    assert all(m.jd >= 2451545.0 for m in moons[1:])
    for a, b in zip(moons, moons[1:]):
        assert b.jd - a.jd == pytest.approx(SYNODIC_MONTH_DAYS, abs=0.01)


def test_walk_forward_new_moons(eng: AstronomyEngine):
    start = locate_new_moon(eng, 2451545.0)
    moons = walk_forward_new_moons(eng, start, 2451545.0 + 100.0)

    assert moons[0] == start
    assert moons[-1].jd >= 2451545.0 + 100.0
    assert all(m.jd < 2451545.0 + 100.0 for m in moons[:-1])
    for a, b in zip(moons, moons[1:]):
        assert b.jd - a.jd == pytest.approx(SYNODIC_MONTH_DAYS, abs=0.01)


def test_walk_forward_never_repeats_a_conjunction(eng: AstronomyEngine):
    # a forward step shorter than the month lands on the same new moon again
    cfg = NewMoonConfig(forward_step_days=20.0)
    start = locate_new_moon(eng, 2451545.0)
    moons = walk_forward_new_moons(eng, start, 2451545.0 + 200.0, config=cfg)
    for a, b in zip(moons, moons[1:]):
        assert b.jd - a.jd > 26.0
