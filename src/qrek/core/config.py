# src/qrek/core/config.py
from __future__ import annotations
from dataclasses import dataclass, field


@dataclass(frozen=True)
class SolarTermConfig:
    """
    Configuration for the solar-term (sekki) locator and the term walks.
    All time units are explicit days / seconds.
    """
    tol_seconds: float = 1.0
    max_iterations: int = 50

    back_step_days: float = 13.0
    forward_step_days: float = 18.0


@dataclass(frozen=True)
class NewMoonConfig:
    tol_seconds: float = 1.0

    # restart once from (guess - restart_offset_days), give up after max_iterations
    restart_iteration: int = 15
    restart_offset_days: float = 26.0
    max_iterations: int = 30

    back_step_days: float = 27.0
    forward_step_days: float = 30.0
    retry_step_days: float = 35.0
    min_separation_days: float = 26.0


@dataclass(frozen=True)
class LuniSolarConfig:
    """
    Calendar assembly configuration.

    Civil days are counted in JST (UTC+9).
    """
    utc_offset_hours: float = 9.0

    # upper bound on every term / new moon walk
    max_walk_steps: int = 64

    # the frame reaches about a year and a month either side of the target
    coverage_margin_days: float = 400.0


@dataclass(frozen=True)
class QrekConfig:
    newmoon: NewMoonConfig = field(default_factory=NewMoonConfig)
    solarterm: SolarTermConfig = field(default_factory=SolarTermConfig)
    lunisolar: LuniSolarConfig = field(default_factory=LuniSolarConfig)
