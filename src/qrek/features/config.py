# src/qrek/features/config.py
from __future__ import annotations

"""
Display tables for the Tempo calendar.

- 二十四節気: deg (0, 15, ..., 345) -> name, kind (中気 / 節)
- 月名: month_no -> 一月..十二月, 閏 prefix for leap months
- 六曜: index 0..5 -> label, cyclic order starting at 先勝
"""

from typing import Dict, List, Tuple

# ============================================================
# 二十四節気
#   index n = deg / 15, starting at 春分 (0 deg)
#   n even -> 中気, n odd -> 節
# ============================================================

SEKKI24_NAMES: Tuple[str, ...] = (
    "春分", "清明", "穀雨", "立夏", "小満", "芒種",
    "夏至", "小暑", "大暑", "立秋", "処暑", "白露",
    "秋分", "寒露", "霜降", "立冬", "小雪", "大雪",
    "冬至", "小寒", "大寒", "立春", "雨水", "啓蟄",
)

SEKKI24_NAME_BY_DEG: Dict[int, str] = {n * 15: name for n, name in enumerate(SEKKI24_NAMES)}


def sekki_name_from_deg(deg: int) -> str:
    try:
        return SEKKI24_NAME_BY_DEG[int(deg) % 360]
    except KeyError as e:
        raise KeyError(f"not a sekki boundary: {deg}") from e


def sekki_kind_from_deg(deg: int) -> str:
    """中気 on multiples of 30 deg, 節 otherwise."""
    return "中気" if int(deg) % 30 == 0 else "節"


# ============================================================
# 月名
# ============================================================

_KANJI_DIGITS = "一二三四五六七八九"


def _kanji_month(n: int) -> str:
    if n < 10:
        return f"{_KANJI_DIGITS[n - 1]}月"
    return "十" + (_KANJI_DIGITS[n - 11] if n > 10 else "") + "月"


LUNAR_MONTH_NAME_BY_MONTH_NO: Dict[int, str] = {n: _kanji_month(n) for n in range(1, 13)}


def lunar_month_display_name(month_no: int, is_leap: bool) -> str:
    try:
        base = LUNAR_MONTH_NAME_BY_MONTH_NO[int(month_no)]
    except KeyError as e:
        raise ValueError(f"invalid lunar month_no: {month_no}") from e
    return f"閏{base}" if is_leap else base


# ============================================================
# 六曜
#   index = (M + D - 2) % 6
#     0：先勝  1：友引  2：先負  3：仏滅  4：大安  5：赤口
#
#   - 閏月は月番号をそのまま使う（閏5月も 5月）
#   - 1/1 と 7/1 は先勝
# ============================================================

ROKUYO_ORDER: List[str] = ["先勝", "友引", "先負", "仏滅", "大安", "赤口"]

ROKUYO_ROMAJI: List[str] = ["Sensho", "Tomobiki", "Sempu", "Butsumetsu", "Taian", "Shakku"]


def rokuyo_index_from_lunar_month_day(lunar_month: int, lunar_day: int) -> int:
    m = int(lunar_month)
    d = int(lunar_day)
    if not (1 <= m <= 12):
        raise ValueError(f"lunar_month out of range: {m}")
    if not (1 <= d <= 30):
        raise ValueError(f"lunar_day out of range: {d}")
    return (m + d - 2) % 6
