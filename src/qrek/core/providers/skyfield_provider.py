# src/qrek/core/providers/skyfield_provider.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal, Optional, Tuple, Union

from skyfield.api import Loader

log = logging.getLogger(__name__)

KERNEL_CANDIDATES: Tuple[str, ...] = ("de440s.bsp", "de421.bsp")

# of_date: true ecliptic and equinox of date (almanac convention)
# J2000: fixed J2000 ecliptic
EclipticFrameName = Literal["of_date", "J2000"]


def _ecliptic_frame(name: EclipticFrameName):
    from skyfield import framelib

    if name == "J2000":
        return framelib.ecliptic_J2000_frame
    # older Skyfield only ships ecliptic_frame, which is also of date
    return getattr(framelib, "true_ecliptic_and_equinox_of_date", framelib.ecliptic_frame)


def data_dir() -> Path:
    return Path.cwd() / "data"


def resolve_kernel_path(
    ephemeris: Optional[Union[str, Path]] = None,
    ephemeris_path: Optional[Path] = None,
) -> Path:
    """
    ephemeris_path wins; a bare or relative `ephemeris` name is looked up
    under ./data; otherwise the first of KERNEL_CANDIDATES found in ./data
    (de440s covers 1849-2150, de421 1899-2053).
    """
    if ephemeris_path is not None:
        return Path(ephemeris_path).expanduser()

    if ephemeris is not None:
        p = Path(ephemeris).expanduser()
        return p if p.is_absolute() else data_dir() / p

    for name in KERNEL_CANDIDATES:
        p = data_dir() / name
        if p.exists():
            return p
    return data_dir() / KERNEL_CANDIDATES[-1]


class SkyfieldProvider:
    """
    EphemerisProvider backed by a JPL SPK kernel.

    Longitudes are apparent geocentric ecliptic longitudes (degrees) of the
    Sun and Moon at a UT Julian Date.
    """

    def __init__(
        self,
        ephemeris: Optional[Union[str, Path]] = None,
        ephemeris_path: Optional[Path] = None,
        frame: EclipticFrameName = "of_date",
    ) -> None:
        self.kernel_path = resolve_kernel_path(ephemeris, ephemeris_path)
        if not self.kernel_path.exists():
            hint = "\n".join(f"  - {data_dir() / name}" for name in KERNEL_CANDIDATES)
            raise FileNotFoundError(
                f"Ephemeris not found: {self.kernel_path}\n"
                f"Place one of these kernels:\n{hint}\n"
                "or set QREK_EPHEMERIS_PATH."
            )

        loader = Loader(str(self.kernel_path.parent))
        self._kernel = loader(self.kernel_path.name)
        self._ts = loader.timescale()
        self._earth = self._kernel["earth"]
        self._bodies = {"sun": self._kernel["sun"], "moon": self._kernel["moon"]}
        self._frame = _ecliptic_frame(frame)
        self.coverage = self._coverage()
        log.debug("loaded %s, coverage jd %.1f..%.1f", self.kernel_path, *self.coverage)

    def _coverage(self) -> Tuple[float, float]:
        # SPK segments; a kernel without them is treated as unbounded
        segments = getattr(getattr(self._kernel, "spk", None), "segments", None)
        if not segments:
            return float("-inf"), float("inf")
        return min(s.start_jd for s in segments), max(s.end_jd for s in segments)

    def _longitude(self, body: str, jd: float) -> float:
        start, end = self.coverage
        if not (start <= jd <= end):
            raise ValueError(
                f"jd {jd:.5f} is outside the coverage of {self.kernel_path.name} "
                f"({start:.1f}..{end:.1f}); de440s.bsp covers 1849-2150"
            )
        t = self._ts.ut1_jd(jd)
        apparent = self._earth.at(t).observe(self._bodies[body]).apparent()
        _lat, lon, _dist = apparent.frame_latlon(self._frame)
        return float(lon.degrees % 360.0)

    def sun_longitude(self, jd: float) -> float:
        return self._longitude("sun", jd)

    def moon_longitude(self, jd: float) -> float:
        return self._longitude("moon", jd)
