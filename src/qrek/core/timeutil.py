# src/qrek/core/timeutil.py
from __future__ import annotations

import math
from datetime import datetime, timezone

UTC = timezone.utc

# JD = MJD + 2400000.5
MJD_EPOCH_JD = 2400000.5
# J2000.0 = 2000-01-01 12:00 TT
J2000_JD = 2451545.0
DAYS_PER_JULIAN_CENTURY = 36525.0
SECONDS_PER_DAY = 86400


def require_aware(dt: datetime, name: str = "dt") -> datetime:
    """Reject naive datetimes; any zone or fixed offset is accepted."""
    if dt.tzinfo is None or dt.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (got {dt!r})")
    return dt


def to_julian_date(dt: datetime) -> float:
    """
    Gregorian datetime (timezone-aware) -> Julian Date.

    January and February are counted as months 13 and 14 of the previous year
    so that the leap day falls at the end of the counting year.
    """
    dt = require_aware(dt).astimezone(UTC)

    y, m = dt.year, dt.month
    if m <= 2:
        y -= 1
        m += 12

    mjd = (
        math.floor(365.25 * y)
        + math.floor(y / 400.0)
        - math.floor(y / 100.0)
        + math.floor(30.59 * (m - 2))
        + dt.day
        - 678912
    )
    frac = (
        dt.hour / 24.0
        + dt.minute / 1440.0
        + (dt.second + dt.microsecond / 1e6) / 86400.0
    )
    return mjd + MJD_EPOCH_JD + frac


def from_julian_date(jd: float) -> datetime:
    """
    Julian Date -> UTC datetime, rounded to the nearest whole second.
    """
    mjd = jd - MJD_EPOCH_JD
    day_no = math.floor(mjd)
    secs = int(round((mjd - day_no) * SECONDS_PER_DAY))
    if secs >= SECONDS_PER_DAY:
        day_no += 1
        secs -= SECONDS_PER_DAY

    n = day_no + 678881
    a = 4 * n + 3 + 4 * ((3 * (((4 * (n + 1)) // 146097) + 1)) // 4)
    b = 5 * ((a % 1461) // 4) + 2

    year = a // 1461
    month = b // 153 + 3
    day = (b % 153) // 5 + 1
    if month > 12:
        year += 1
        month -= 12

    hour, rem = divmod(secs, 3600)
    minute, second = divmod(rem, 60)
    return datetime(year, month, day, hour, minute, second, tzinfo=UTC)


def julian_century(jd: float) -> float:
    """Julian centuries since J2000.0 (2000-01-01 12:00)."""
    return (jd - J2000_JD) / DAYS_PER_JULIAN_CENTURY


def local_day_jd(jd: float, utc_offset_hours: float) -> float:
    """
    JD of the local civil midnight that starts the day containing `jd`.

    The local midnight is expressed on the UT axis as if it were 00:00 UT,
    so the result is always *.5 and day differences are whole numbers.
    """
    local = from_julian_date(jd + utc_offset_hours / 24.0)
    return to_julian_date(datetime(local.year, local.month, local.day, tzinfo=UTC))
