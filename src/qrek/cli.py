"""
Command-line entry point: Gregorian (JST) date -> Tempo date + rokuyo.

    qrek                       # today
    qrek 2023-01-01
    qrek 2023-03-20 --end 2023-03-25 --json
    qrek 2023-03-22 --verbose  # also dump the assembled month table
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from qrek.core.astronomy import AstronomyEngine
from qrek.core.errors import ConversionError
from qrek.core.lunisolar import LunisolarFrame, assemble_frame, default_engine, tempo_date_from_frame
from qrek.core.timeutil import from_julian_date
from qrek.features.config import lunar_month_display_name, sekki_name_from_deg
from qrek.features.rokuyo import rokuyo_of

JST = ZoneInfo("Asia/Tokyo")

ENV_EPHEMERIS = "QREK_EPHEMERIS"
ENV_EPHEMERIS_PATH = "QREK_EPHEMERIS_PATH"
ENV_LOG_LEVEL = "QREK_LOG_LEVEL"

log = logging.getLogger("qrek.cli")


@dataclass(frozen=True)
class EphemerisConfig:
    name: Optional[str]
    path: Optional[Path]


def parse_date(s: str) -> date:
    try:
        return date.fromisoformat(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date: {s!r} (expected YYYY-MM-DD)") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrek", description="Gregorian (JST) date -> 旧暦 (天保暦) + 六曜")
    parser.add_argument("date", nargs="?", type=parse_date, help="YYYY-MM-DD (default: today in JST)")
    parser.add_argument("--end", type=parse_date, help="YYYY-MM-DD; convert every day from DATE to END")
    parser.add_argument("--ephemeris", default="")
    parser.add_argument("--ephemeris-path", default="")
    parser.add_argument("--json", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--log-level", default=os.environ.get(ENV_LOG_LEVEL, "WARNING"))
    return parser


def resolve_ephemeris(name_arg: str, path_arg: str) -> EphemerisConfig:
    name = (name_arg or "").strip() or os.environ.get(ENV_EPHEMERIS, "").strip() or None
    path_raw = (path_arg or "").strip() or os.environ.get(ENV_EPHEMERIS_PATH, "").strip()
    return EphemerisConfig(name=name, path=Path(path_raw).expanduser() if path_raw else None)


def iter_dates(start: date, end: date) -> Iterable[date]:
    cur = start
    while cur <= end:
        yield cur
        cur = cur + timedelta(days=1)


def _format_jst(jd: float) -> str:
    return from_julian_date(jd).astimezone(JST).isoformat()


def _dump_frame(frame: LunisolarFrame) -> None:
    print("  months:")
    for m in frame.months:
        mark = "*" if m.contains_day(frame.target_day_jd) else " "
        zq = "-" if m.zhongqi_deg is None else f"{m.zhongqi_deg:03d} {sekki_name_from_deg(m.zhongqi_deg)}"
        print(
            f"   {mark} {lunar_month_display_name(m.month_no, m.is_leap):<5} "
            f"new_moon={_format_jst(m.new_moon_jd)}  days={m.days}  zq={zq}"
        )


def _row(d: date, frame: LunisolarFrame) -> dict:
    td = tempo_date_from_frame(d, frame)
    r = rokuyo_of(td)
    return {
        "date": d.isoformat(),
        "tempo_date_str": str(td),
        "year": td.year,
        "month": td.month,
        "day": td.day,
        "leap": td.is_leap,
        "month_name": lunar_month_display_name(td.month, td.is_leap),
        "rokuyo_index": r.index(),
        "rokuyo": r.label(),
    }


def run(days: Sequence[date], eng: AstronomyEngine, *, as_json: bool, verbose: bool) -> int:
    rows: List[dict] = []
    for d in days:
        try:
            frame = assemble_frame(d, eng=eng)
            row = _row(d, frame)
        except (ConversionError, ValueError) as e:
            log.error("conversion failed: date=%s: %s", d, e)
            print(f"error: {d.isoformat()}: {e}", file=sys.stderr)
            return 1

        if as_json:
            rows.append(row)
            continue
        print(f"{row['date']}  旧暦 {row['tempo_date_str']}  {row['rokuyo']}")
        if verbose:
            _dump_frame(frame)

    if as_json:
        print(json.dumps({"rows": rows}, ensure_ascii=False, indent=2))
    return 0


def main(argv: Optional[Sequence[str]] = None, *, eng: Optional[AstronomyEngine] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=str(args.log_level).upper(), format="%(levelname)s %(name)s: %(message)s")

    start = args.date or datetime.now(JST).date()
    end = args.end or start
    if end < start:
        parser.error("--end must be >= date")

    if eng is None:
        eph = resolve_ephemeris(args.ephemeris, args.ephemeris_path)
        try:
            eng = default_engine(eph.name, eph.path)
        except FileNotFoundError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1

    return run(list(iter_dates(start, end)), eng, as_json=args.json, verbose=args.verbose)


if __name__ == "__main__":
    sys.exit(main())
