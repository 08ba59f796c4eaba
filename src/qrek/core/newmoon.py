# src/qrek/core/newmoon.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from .astronomy import AstronomyEngine, norm360
from .config import NewMoonConfig
from .errors import CalendarInvariantError, NonConvergenceError
from .timeutil import SECONDS_PER_DAY

log = logging.getLogger(__name__)

# mean synodic month (days)
SYNODIC_MONTH_DAYS = 29.530589
SYNODIC_DAYS_PER_DEG = SYNODIC_MONTH_DAYS / 360.0


@dataclass(frozen=True)
class NewMoonEvent:
    """
    Conjunction (saku): solar and lunar ecliptic longitudes coincide at jd.
    iterations / restarted describe how the locator got there.
    """
    jd: float
    iterations: int = 0
    restarted: bool = False


def _elongation_step_deg(sun: float, moon: float, *, first: bool) -> float:
    """
    Angle (moon - sun) still to be removed, with the wraparound heuristics:
      - first iteration: a negative difference means the Moon has not caught
        up across 0 deg yet -> fold into [0, 360)
      - Sun in [0, 20) with Moon >= 300: invert around 360
      - anything still beyond 40 deg is folded into [0, 360)
    """
    delta = moon - sun
    if first and delta < 0.0:
        delta = norm360(delta)
    if 0.0 <= sun < 20.0 and moon >= 300.0:
        delta = 360.0 - norm360(delta)
    if abs(delta) > 40.0:
        delta = norm360(delta)
    return delta


def locate_new_moon(
    eng: AstronomyEngine,
    jd_approx: float,
    *,
    config: NewMoonConfig = NewMoonConfig(),
) -> NewMoonEvent:
    """
    Exact JD of a new moon within one synodic month of jd_approx, normally
    the one preceding it. With the Sun in [0, 20) deg and the Moon >= 300 deg
    the inverted first step can carry the search onto the following new moon.

    Steps backwards by (moon - sun) converted with the mean synodic rate until
    the correction is below tol_seconds. If that has not happened after
    `restart_iteration` steps the search starts over from
    jd_approx - restart_offset_days; after `max_iterations` steps it fails.

    Raises
    ------
    NonConvergenceError
    """
    tol = config.tol_seconds / SECONDS_PER_DAY

    jd = jd_approx
    restarted = False
    for it in range(1, config.max_iterations + 1):
        delta = _elongation_step_deg(eng.sun_lon(jd), eng.moon_lon(jd), first=(it == 1))
        step = delta * SYNODIC_DAYS_PER_DEG
        jd -= step
        if abs(step) < tol:
            return NewMoonEvent(jd=jd, iterations=it, restarted=restarted)

        if it == config.restart_iteration:
            log.warning(
                "new moon search stalled after %d iterations from jd=%.6f; restarting %.1f days earlier",
                it,
                jd_approx,
                config.restart_offset_days,
            )
            jd = jd_approx - config.restart_offset_days
            restarted = True

    raise NonConvergenceError(
        f"new moon search did not converge within {config.max_iterations} iterations "
        f"(jd_approx={jd_approx:.6f})",
        jd_approx=jd_approx,
        iterations=config.max_iterations,
    )


def walk_back_new_moons(
    eng: AstronomyEngine,
    start: NewMoonEvent,
    before_jd: float,
    *,
    config: NewMoonConfig = NewMoonConfig(),
    max_steps: int = 64,
) -> List[NewMoonEvent]:
    """
    Relocate preceding new moons until one earlier than before_jd is found.
    Returns [earliest, ..., start] in chronological order.
    """
    out: List[NewMoonEvent] = [start]
    cur = start
    while cur.jd >= before_jd:
        if len(out) > max_steps:
            raise CalendarInvariantError(f"no new moon before jd={before_jd:.6f} within {max_steps} steps")
        cur = locate_new_moon(eng, cur.jd - config.back_step_days, config=config)
        out.insert(0, cur)
    return out


def walk_forward_new_moons(
    eng: AstronomyEngine,
    start: NewMoonEvent,
    not_before_jd: float,
    *,
    config: NewMoonConfig = NewMoonConfig(),
    max_steps: int = 64,
) -> List[NewMoonEvent]:
    """
    Relocate following new moons until one at or after not_before_jd is found.
    Returns [start, ..., latest].

    A result closer than min_separation_days to its predecessor is the same
    conjunction found twice; that step is retried with the longer jump.
    """
    out: List[NewMoonEvent] = [start]
    cur = start
    while cur.jd < not_before_jd:
        if len(out) > max_steps:
            raise CalendarInvariantError(f"no new moon after jd={not_before_jd:.6f} within {max_steps} steps")
        nxt = locate_new_moon(eng, cur.jd + config.forward_step_days, config=config)
        if nxt.jd - cur.jd < config.min_separation_days:
            log.debug("new moon at jd=%.6f repeated; retrying with %.1f days", nxt.jd, config.retry_step_days)
            nxt = locate_new_moon(eng, cur.jd + config.retry_step_days, config=config)
        out.append(nxt)
        cur = nxt
    return out
