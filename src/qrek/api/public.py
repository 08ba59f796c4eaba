from __future__ import annotations

import logging
import os
from datetime import date, datetime, time
from pathlib import Path
from typing import List
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from qrek.core.astronomy import AstronomyEngine
from qrek.core.config import QrekConfig
from qrek.core.errors import ConversionError
from qrek.core.lunisolar import assemble_frame, default_engine, tempo_date_from_frame
from qrek.core.timeutil import from_julian_date
from qrek.features.config import lunar_month_display_name, sekki_name_from_deg
from qrek.features.rokuyo import rokuyo_of

router = APIRouter(tags=["public"])

log = logging.getLogger("qrek.api.public")

JST = ZoneInfo("Asia/Tokyo")
QREK_EPHEMERIS_ENV = "QREK_EPHEMERIS"
QREK_EPHEMERIS_PATH_ENV = "QREK_EPHEMERIS_PATH"


# ============================================================
# Response Models
# ============================================================
class TempoDatePayload(BaseModel):
    year: int
    month: int
    day: int
    leap_month: bool = Field(default=False, description="閏月なら true")
    month_name: str
    rokuyo_index: int = Field(ge=0, le=5)
    rokuyo_str: str


class SekkiPayload(BaseModel):
    name: str
    degree: int
    at_jst: str


class TempoDateResponse(BaseModel):
    date_str: str
    tempo_date_str: str
    tempo_date: TempoDatePayload
    sekki: List[SekkiPayload] = Field(default_factory=list, description="その日に入る節気")


class HealthResponse(BaseModel):
    status: str = "ok"


# ============================================================
# Dependencies
# ============================================================
def get_engine() -> AstronomyEngine:
    """
    Engine from QREK_EPHEMERIS / QREK_EPHEMERIS_PATH; built once and reused.
    """
    ephem = os.environ.get(QREK_EPHEMERIS_ENV, "").strip() or None
    path_raw = os.environ.get(QREK_EPHEMERIS_PATH_ENV, "").strip()
    ephem_path = Path(path_raw).expanduser() if path_raw else None
    try:
        return default_engine(ephem, ephem_path)
    except FileNotFoundError as e:
        log.error("ephemeris unavailable: %s", e)
        raise HTTPException(status_code=503, detail="ephemeris unavailable") from e


def get_config() -> QrekConfig:
    return QrekConfig()


# ============================================================
# Helpers
# ============================================================
def _parse_iso_date(s: str) -> date:
    try:
        return date.fromisoformat(s)
    except ValueError as e:
        log.error("date parse error: %r: %s", s, e)
        raise HTTPException(status_code=422, detail=f"Invalid date format: {s} (expected YYYY-MM-DD)") from e


def _format_iso_jst(jd: float) -> str:
    return from_julian_date(jd).astimezone(JST).isoformat()


# ============================================================
# Endpoints
# ============================================================
@router.get("/tempo_date", response_model=TempoDateResponse)
def get_tempo_date(
    date_str: str = Query(..., alias="date", description="YYYY-MM-DD"),
    eng: AstronomyEngine = Depends(get_engine),
    config: QrekConfig = Depends(get_config),
) -> TempoDateResponse:
    d = _parse_iso_date(date_str)

    try:
        frame = assemble_frame(d, eng=eng, config=config)
        td = tempo_date_from_frame(d, frame)
    except ValueError as e:
        # outside ephemeris coverage etc.
        log.error("tempo conversion rejected: date=%s: %s", d, e)
        raise HTTPException(status_code=422, detail=str(e)) from e
    except ConversionError as e:
        log.exception("tempo conversion failed: date=%s", d)
        raise HTTPException(status_code=500, detail=f"conversion failed: {e}") from e

    rokuyo = rokuyo_of(td)
    terms = frame.terms_on_day(frame.target_day_jd, utc_offset_hours=config.lunisolar.utc_offset_hours)

    return TempoDateResponse(
        date_str=datetime.combine(d, time(0, 0), tzinfo=JST).isoformat(),
        tempo_date_str=str(td),
        tempo_date=TempoDatePayload(
            year=td.year,
            month=td.month,
            day=td.day,
            leap_month=td.is_leap,
            month_name=lunar_month_display_name(td.month, td.is_leap),
            rokuyo_index=rokuyo.index(),
            rokuyo_str=rokuyo.label(),
        ),
        sekki=[
            SekkiPayload(name=sekki_name_from_deg(t.deg), degree=t.deg, at_jst=_format_iso_jst(t.jd))
            for t in terms
        ],
    )


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse()
