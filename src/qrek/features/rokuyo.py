from __future__ import annotations

from enum import Enum

from qrek.core.lunisolar import TempoDate
from qrek.features.config import ROKUYO_ORDER, ROKUYO_ROMAJI, rokuyo_index_from_lunar_month_day


class Rokuyo(Enum):
    """
    六曜, in cyclic order.
    """
    SENSHO = 0      # 先勝
    TOMOBIKI = 1    # 友引
    SEMPU = 2       # 先負
    BUTSUMETSU = 3  # 仏滅
    TAIAN = 4       # 大安
    SHAKKU = 5      # 赤口

    def index(self) -> int:
        return self.value

    def label(self) -> str:
        return ROKUYO_ORDER[self.value]

    def romaji(self) -> str:
        return ROKUYO_ROMAJI[self.value]

    def __str__(self) -> str:
        return self.label()


def rokuyo_from_lunar_month_day(lunar_month: int, lunar_day: int) -> Rokuyo:
    return Rokuyo(rokuyo_index_from_lunar_month_day(lunar_month, lunar_day))


def rokuyo_of(td: TempoDate) -> Rokuyo:
    """
    旧暦 (TempoDate) から六曜を返す。

    NOTE:
      - 年には依存しない
      - 閏月でも月番号はそのまま（閏5月も 5月として扱う）
    """
    return rokuyo_from_lunar_month_day(td.month, td.day)
