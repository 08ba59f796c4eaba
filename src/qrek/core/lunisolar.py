# src/qrek/core/lunisolar.py
from __future__ import annotations

import logging
from bisect import bisect_right
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .astronomy import AstronomyEngine
from .config import QrekConfig
from .errors import CalendarInvariantError, DateInputError
from .month_naming import LunarMonth, assign_month_numbers, pair_new_moons, resolve_leap_months
from .newmoon import NewMoonEvent, locate_new_moon, walk_back_new_moons, walk_forward_new_moons
from .providers.skyfield_provider import SkyfieldProvider
from .solarterms import (
    USUI_DEG,
    WINTER_SOLSTICE_DEG,
    SolarTermEvent,
    locate_solar_term,
    walk_back_to_solar_term,
    walk_forward_to_solar_term,
)
from .timeutil import local_day_jd, to_julian_date

log = logging.getLogger(__name__)


# ============================================================
# Engine cache
# ============================================================

@lru_cache(maxsize=4)
def _engine_for(ephemeris: Optional[Union[str, Path]], ephemeris_path: Optional[Path]) -> AstronomyEngine:
    provider = SkyfieldProvider(ephemeris=ephemeris, ephemeris_path=ephemeris_path)
    return AstronomyEngine(provider=provider)


def default_engine(
    ephemeris: Optional[Union[str, Path]] = None,
    ephemeris_path: Optional[Path] = None,
) -> AstronomyEngine:
    """
    Skyfield-backed engine, built once per (ephemeris, ephemeris_path).
    """
    return _engine_for(ephemeris, ephemeris_path)


# ============================================================
# Public types
# ============================================================

@dataclass(frozen=True)
class TempoDate:
    """
    天保暦の年・月・日・閏
    month_start_jd is the local-day JD of day 1 of the month.
    """
    year: int
    month: int
    day: int
    is_leap: bool
    month_start_jd: float

    def __str__(self) -> str:
        leap = "閏" if self.is_leap else ""
        return f"{self.year}年{leap}{self.month}月{self.day}日"


@dataclass(frozen=True)
class LunisolarFrame:
    """
    Everything assembled around one target day:
      terms   : 24-sekki events from the preceding 冬至 to the covering 雨水
      moons   : new moons bracketing those terms
      months  : numbered lunar months (leap months resolved)
    """
    target_jd: float
    target_day_jd: float
    terms: Tuple[SolarTermEvent, ...]
    moons: Tuple[NewMoonEvent, ...]
    months: Tuple[LunarMonth, ...]

    @property
    def winter_solstice(self) -> SolarTermEvent:
        return self.terms[0]

    @property
    def usui(self) -> SolarTermEvent:
        return self.terms[-1]

    def month_for_day(self, day_jd: float) -> LunarMonth:
        starts = [m.start_jd for m in self.months]
        i = bisect_right(starts, day_jd) - 1
        if i < 0 or not self.months[i].contains_day(day_jd):
            raise CalendarInvariantError(f"no lunar month covers local day jd={day_jd:.1f}")
        return self.months[i]

    def terms_on_day(self, day_jd: float, *, utc_offset_hours: float) -> List[SolarTermEvent]:
        return [t for t in self.terms if local_day_jd(t.jd, utc_offset_hours) == day_jd]


# ============================================================
# Assembly
# ============================================================

def _local_tz(config: QrekConfig) -> timezone:
    return timezone(timedelta(hours=config.lunisolar.utc_offset_hours))


def _require_date(d: date) -> date:
    if isinstance(d, datetime) or not isinstance(d, date):
        raise DateInputError(f"expected a calendar date, got {type(d).__name__}: {d!r}")
    return d


def _require_coverage(eng: AstronomyEngine, d: date, jd: float, margin_days: float) -> None:
    coverage = getattr(eng.provider, "coverage", None)
    if coverage is None:
        return
    start, end = coverage
    if jd - margin_days < start or jd + margin_days > end:
        raise DateInputError(
            f"{d.isoformat()} is outside the ephemeris coverage "
            f"(jd {start:.1f}..{end:.1f}, {margin_days:.0f} days needed either side)"
        )


def _collect_solar_terms(
    eng: AstronomyEngine,
    jd: float,
    *,
    config: QrekConfig,
) -> List[SolarTermEvent]:
    st_cfg = config.solarterm
    max_steps = config.lunisolar.max_walk_steps

    anchor = locate_solar_term(eng, jd, config=st_cfg)
    terms = walk_back_to_solar_term(eng, anchor, WINTER_SOLSTICE_DEG, config=st_cfg, max_steps=max_steps)

    # continue past the anchor until a 雨水 beyond the end of the target day
    forward = walk_forward_to_solar_term(
        eng,
        terms[-1],
        USUI_DEG,
        not_before=jd + 1.0,
        config=st_cfg,
        max_steps=max_steps,
    )
    return terms + forward[1:]


def _collect_new_moons(
    eng: AstronomyEngine,
    jd: float,
    winter_solstice: SolarTermEvent,
    usui: SolarTermEvent,
    *,
    config: QrekConfig,
) -> List[NewMoonEvent]:
    nm_cfg = config.newmoon
    max_steps = config.lunisolar.max_walk_steps
    offset_days = config.lunisolar.utc_offset_hours / 24.0

    # a new moon later on the solstice's own local day still opens the 11th month
    solstice_day_end = local_day_jd(winter_solstice.jd, config.lunisolar.utc_offset_hours) + 1.0 - offset_days

    nearest = locate_new_moon(eng, jd, config=nm_cfg)
    back = walk_back_new_moons(eng, nearest, solstice_day_end, config=nm_cfg, max_steps=max_steps)
    forward = walk_forward_new_moons(eng, nearest, usui.jd, config=nm_cfg, max_steps=max_steps)
    return back + forward[1:]


def assemble_frame(
    d: date,
    *,
    eng: Optional[AstronomyEngine] = None,
    config: QrekConfig = QrekConfig(),
) -> LunisolarFrame:
    """
    Locate the solar terms and new moons around a local (JST) date and number
    the lunar months between them.
    """
    d = _require_date(d)
    if eng is None:
        eng = default_engine()
    offset_hours = config.lunisolar.utc_offset_hours

    jd = to_julian_date(datetime.combine(d, time(0, 0), tzinfo=_local_tz(config)))
    target_day = local_day_jd(jd, offset_hours)
    _require_coverage(eng, d, jd, config.lunisolar.coverage_margin_days)

    terms = _collect_solar_terms(eng, jd, config=config)
    moons = _collect_new_moons(eng, jd, terms[0], terms[-1], config=config)

    months = pair_new_moons(moons, utc_offset_hours=offset_hours)
    months = assign_month_numbers(months, terms, utc_offset_hours=offset_hours)
    months = resolve_leap_months(months)

    log.debug(
        "frame for %s: %d terms (%d..%d deg), %d new moons, %d months, leap=%s",
        d,
        len(terms),
        terms[0].deg,
        terms[-1].deg,
        len(moons),
        len(months),
        [m.month_no for m in months if m.is_leap],
    )

    return LunisolarFrame(
        target_jd=jd,
        target_day_jd=target_day,
        terms=tuple(terms),
        moons=tuple(moons),
        months=tuple(months),
    )


def tempo_year(d: date, month_no: int) -> int:
    """
    The lunisolar year takes the Gregorian year of the date, except for months
    10..12 seen from an earlier Gregorian month: those belong to the year that
    started in the previous Gregorian year.
    """
    if month_no >= 10 and month_no > d.month:
        return d.year - 1
    return d.year


def tempo_date_from_frame(d: date, frame: LunisolarFrame) -> TempoDate:
    month = frame.month_for_day(frame.target_day_jd)
    day = int(round(frame.target_day_jd - month.start_jd)) + 1
    return TempoDate(
        year=tempo_year(d, month.month_no),
        month=int(month.month_no),
        day=day,
        is_leap=bool(month.is_leap),
        month_start_jd=month.start_jd,
    )


def convert_to_tempo(
    d: date,
    *,
    eng: Optional[AstronomyEngine] = None,
    config: QrekConfig = QrekConfig(),
) -> TempoDate:
    """
    西暦(JST日付) → 天保暦(年/月/日/閏)

    Raises
    ------
    DateInputError
        d is not a calendar date.
    NonConvergenceError
        a new moon search exhausted its iteration budget.
    CalendarInvariantError
        the assembled months do not cover d.
    """
    frame = assemble_frame(d, eng=eng, config=config)
    return tempo_date_from_frame(d, frame)
