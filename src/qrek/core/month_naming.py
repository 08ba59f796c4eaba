# src/qrek/core/month_naming.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Sequence

from .errors import CalendarInvariantError
from .newmoon import NewMoonEvent
from .solarterms import SolarTermEvent
from .timeutil import local_day_jd


# 中気(0,30,...,330) → 旧暦月番号
ZHONGQI_TO_MONTHNO: dict[int, int] = {
    270: 11,  # 冬至
    300: 12,  # 大寒
    330:  1,  # 雨水
      0:  2,  # 春分
     30:  3,  # 穀雨
     60:  4,  # 小満
     90:  5,  # 夏至
    120:  6,  # 大暑
    150:  7,  # 処暑
    180:  8,  # 秋分
    210:  9,  # 霜降
    240: 10,  # 小雪
}

UNRESOLVED_MONTH_NO = 0

# solstices and equinoxes
_PINNED_MONTHNO: dict[int, int] = {0: 2, 90: 5, 180: 8, 270: 11}


def month_no_for_zhongqi(deg: int) -> int:
    """
    Month number named by a principal term.
    The solstices/equinoxes pin months 2, 5, 8, 11; the others follow
    (index/2 + 1) % 12 + 1 with index = deg / 15.
    """
    d = int(deg) % 360
    if d % 30 != 0:
        raise ValueError(f"not a principal term: {deg}")
    if d in _PINNED_MONTHNO:
        return _PINNED_MONTHNO[d]
    return (d // 15 // 2 + 1) % 12 + 1


@dataclass(frozen=True)
class LunarMonth:
    """
    One lunar month: [new_moon_jd, next_new_moon_jd)

    start_jd / end_jd are the local-day JDs of the first day of this month and
    of the next one. month_no is 0 until a leap month has been resolved.
    """
    pos: int
    new_moon_jd: float
    next_new_moon_jd: float
    start_jd: float
    end_jd: float
    month_no: int = UNRESOLVED_MONTH_NO
    is_leap: bool = False
    zhongqi_deg: Optional[int] = None
    zhongqi_jd: Optional[float] = None

    @property
    def days(self) -> int:
        return int(round(self.end_jd - self.start_jd))

    def contains_day(self, day_jd: float) -> bool:
        return self.start_jd <= day_jd < self.end_jd

    @property
    def label(self) -> str:
        if self.is_leap:
            return f"M{self.month_no:02d} (LEAP)"
        return f"M{self.month_no:02d}"


def pair_new_moons(moons: Sequence[NewMoonEvent], *, utc_offset_hours: float) -> List[LunarMonth]:
    """
    Pair consecutive new moons: month_i = [moons[i], moons[i+1])
    """
    days = [local_day_jd(m.jd, utc_offset_hours) for m in moons]
    out: List[LunarMonth] = []
    for i in range(len(moons) - 1):
        out.append(
            LunarMonth(
                pos=i,
                new_moon_jd=moons[i].jd,
                next_new_moon_jd=moons[i + 1].jd,
                start_jd=days[i],
                end_jd=days[i + 1],
            )
        )
    return out


def assign_month_numbers(
    months: Sequence[LunarMonth],
    terms: Iterable[SolarTermEvent],
    *,
    utc_offset_hours: float,
) -> List[LunarMonth]:
    """
    Number each month by the principal term (中気) falling in it.

    Containment is judged on the local day basis:
      month_start_day <= term_day < next_month_start_day
    If one month holds two principal terms, 冬至 (270) wins, otherwise the
    earliest. A month without any is marked leap with its number unresolved.
    """
    zq = sorted((t for t in terms if t.is_principal), key=lambda t: t.jd)
    zq_days = [(t, local_day_jd(t.jd, utc_offset_hours)) for t in zq]

    out: List[LunarMonth] = []
    for m in months:
        hits = [t for t, day in zq_days if m.contains_day(day)]
        if not hits:
            out.append(replace(m, month_no=UNRESOLVED_MONTH_NO, is_leap=True))
            continue

        chosen = next((t for t in hits if t.deg == 270), hits[0])
        out.append(
            replace(
                m,
                month_no=month_no_for_zhongqi(chosen.deg),
                is_leap=False,
                zhongqi_deg=chosen.deg,
                zhongqi_jd=chosen.jd,
            )
        )
    return out


def resolve_leap_months(months: Sequence[LunarMonth]) -> List[LunarMonth]:
    """
    A leap month carries the number of the month right before it.
    """
    out: List[LunarMonth] = []
    for m in months:
        if m.is_leap:
            if not out:
                raise CalendarInvariantError(
                    f"first month (new moon jd={m.new_moon_jd:.6f}) is leap; no previous month number"
                )
            m = replace(m, month_no=out[-1].month_no)
        out.append(m)
    return out
