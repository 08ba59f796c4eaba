# src/qrek/core/solarterms.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List

from .astronomy import AstronomyEngine, angdiff180
from .config import SolarTermConfig
from .errors import CalendarInvariantError, NonConvergenceError
from .timeutil import SECONDS_PER_DAY

log = logging.getLogger(__name__)

# 24 sekki, 15 degrees apart; even indices are the 12 principal terms (chuki)
SEKKI_STEP_DEG = 15.0
# days the mean Sun needs for one degree of longitude
TROPICAL_DAYS_PER_DEG = 365.2 / 360.0

WINTER_SOLSTICE_DEG = 270   # 冬至
USUI_DEG = 330              # 雨水


@dataclass(frozen=True)
class SolarTermEvent:
    """
    Instant (UT JD) at which the apparent solar longitude reaches `deg`.
    deg is one of 0, 15, ..., 345.
    """
    jd: float
    deg: int

    @property
    def index(self) -> int:
        return self.deg // 15

    @property
    def is_principal(self) -> bool:
        return self.index % 2 == 0


def _floor_to_sekki(lon: float) -> int:
    return int(math.floor(lon / SEKKI_STEP_DEG) * SEKKI_STEP_DEG) % 360


def locate_solar_term(
    eng: AstronomyEngine,
    jd_approx: float,
    *,
    config: SolarTermConfig = SolarTermConfig(),
) -> SolarTermEvent:
    """
    Find the most recent instant (<= jd_approx) at which the solar longitude
    crossed a multiple of 15 degrees.

    The target bucket is taken once from the longitude at jd_approx; each step
    converts the remaining angle into days with the mean solar rate.
    """
    target = _floor_to_sekki(eng.sun_lon(jd_approx))
    tol = config.tol_seconds / SECONDS_PER_DAY

    jd = jd_approx
    for _ in range(config.max_iterations):
        delta = angdiff180(eng.sun_lon(jd) - target)
        step = delta * TROPICAL_DAYS_PER_DEG
        jd -= step
        if abs(step) < tol:
            return SolarTermEvent(jd=jd, deg=target)

    raise NonConvergenceError(
        f"solar term {target} deg did not converge from jd={jd_approx:.6f}",
        jd_approx=jd_approx,
        iterations=config.max_iterations,
    )


def walk_back_to_solar_term(
    eng: AstronomyEngine,
    start: SolarTermEvent,
    deg: int,
    *,
    config: SolarTermConfig = SolarTermConfig(),
    max_steps: int = 64,
) -> List[SolarTermEvent]:
    """
    Relocate preceding terms until one with bucket `deg` is reached.
    Returns [deg-term, ..., start] in chronological order.
    """
    out: List[SolarTermEvent] = [start]
    cur = start
    while cur.deg != deg:
        if len(out) > max_steps:
            raise CalendarInvariantError(f"no {deg} deg term within {max_steps} terms before jd={start.jd:.6f}")
        cur = locate_solar_term(eng, cur.jd - config.back_step_days, config=config)
        out.insert(0, cur)
    log.debug("walked back %d terms from %d to %d deg", len(out) - 1, start.deg, deg)
    return out


def walk_forward_to_solar_term(
    eng: AstronomyEngine,
    start: SolarTermEvent,
    deg: int,
    *,
    not_before: float = float("-inf"),
    config: SolarTermConfig = SolarTermConfig(),
    max_steps: int = 64,
) -> List[SolarTermEvent]:
    """
    Relocate following terms until one with bucket `deg` at or after
    `not_before` is reached. Returns [start, ..., deg-term].
    """
    out: List[SolarTermEvent] = [start]
    cur = start
    while not (cur.deg == deg and cur.jd >= not_before):
        if len(out) > max_steps:
            raise CalendarInvariantError(f"no {deg} deg term within {max_steps} terms after jd={start.jd:.6f}")
        cur = locate_solar_term(eng, cur.jd + config.forward_step_days, config=config)
        out.append(cur)
    log.debug("walked forward %d terms from %d to %d deg (jd=%.6f)", len(out) - 1, start.deg, deg, cur.jd)
    return out
