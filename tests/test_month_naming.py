from __future__ import annotations

import pytest

from qrek.core.errors import CalendarInvariantError
from qrek.core.month_naming import (
    UNRESOLVED_MONTH_NO,
    ZHONGQI_TO_MONTHNO,
    LunarMonth,
    assign_month_numbers,
    month_no_for_zhongqi,
    pair_new_moons,
    resolve_leap_months,
)
from qrek.core.newmoon import NewMoonEvent
from qrek.core.solarterms import SolarTermEvent


def _moons(*jds: float):
    return [NewMoonEvent(jd=jd) for jd in jds]


def _terms(*pairs):
    return [SolarTermEvent(jd=jd, deg=deg) for deg, jd in pairs]


def _numbered(moons, terms, offset: float = 0.0):
    months = pair_new_moons(moons, utc_offset_hours=offset)
    months = assign_month_numbers(months, terms, utc_offset_hours=offset)
    return resolve_leap_months(months)


@pytest.mark.parametrize("deg,month_no", sorted(ZHONGQI_TO_MONTHNO.items()))
def test_month_no_formula_matches_table(deg: int, month_no: int):
    assert month_no_for_zhongqi(deg) == month_no


def test_month_no_rejects_minor_terms():
    with pytest.raises(ValueError):
        month_no_for_zhongqi(285)


def test_pair_new_moons_uses_local_days():
    # 2023-01-21 20:53 UT is already 01-22 in JST
    months = pair_new_moons(_moons(2459966.37, 2459995.96), utc_offset_hours=9.0)
    assert len(months) == 1
    m = months[0]
    assert m.start_jd == 2459966.5
    assert m.end_jd == 2459995.5
    assert m.days == 29
    assert m.contains_day(2459966.5)
    assert not m.contains_day(2459995.5)

    utc = pair_new_moons(_moons(2459966.37, 2459995.96), utc_offset_hours=0.0)[0]
    assert utc.start_jd == 2459965.5
    assert utc.days == 30


def test_leap_month_without_principal_term():
    moons = _moons(2460000.6, 2460030.6, 2460059.6, 2460089.6)
    terms = _terms((270, 2460010.6), (285, 2460025.6), (300, 2460040.6), (330, 2460089.6))
    months = _numbered(moons, terms)

    assert [(m.month_no, m.is_leap) for m in months] == [(11, False), (12, False), (12, True)]
    assert months[0].zhongqi_deg == 270
    assert months[1].zhongqi_deg == 300
    assert months[2].zhongqi_deg is None
    # 雨水 on the first day of the following month belongs to that month
    assert not months[2].contains_day(2460089.5)


def test_month_with_two_principal_terms_prefers_winter_solstice():
    moons = _moons(2460000.6, 2460030.6)
    terms = _terms((240, 2460001.2), (270, 2460029.9))
    months = _numbered(moons, terms)
    assert months[0].month_no == 11
    assert months[0].zhongqi_deg == 270


def test_month_with_two_principal_terms_takes_earliest():
    moons = _moons(2460000.6, 2460030.6)
    terms = _terms((330, 2460029.9), (300, 2460001.2))
    months = _numbered(moons, terms)
    assert months[0].month_no == 12


def test_term_on_first_local_day_counts():
    # the term falls a few hours before the new moon but on the same day
    moons = _moons(2460000.9, 2460030.6)
    terms = _terms((270, 2460000.6))
    months = _numbered(moons, terms)
    assert months[0].month_no == 11
    assert not months[0].is_leap


def test_leading_leap_month_is_an_error():
    moons = _moons(2460000.6, 2460030.6, 2460059.6)
    terms = _terms((270, 2460040.6))
    months = assign_month_numbers(
        pair_new_moons(moons, utc_offset_hours=0.0), terms, utc_offset_hours=0.0
    )
    assert months[0].is_leap
    assert months[0].month_no == UNRESOLVED_MONTH_NO
    with pytest.raises(CalendarInvariantError):
        resolve_leap_months(months)


def test_label():
    m = LunarMonth(pos=0, new_moon_jd=0.0, next_new_moon_jd=29.5, start_jd=0.5, end_jd=29.5, month_no=2)
    assert m.label == "M02"
    assert LunarMonth(
        pos=1, new_moon_jd=0.0, next_new_moon_jd=29.5, start_jd=0.5, end_jd=29.5, month_no=2, is_leap=True
    ).label == "M02 (LEAP)"
    assert m.days == 29
