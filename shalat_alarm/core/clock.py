"""
アラーム用の壁時計。

サンプラー・ガード・API が「いま何時か」「今日は何日か」を同じ基準で読むための時計。
ローカル暦日の判定（今日/翌日）はこのクラスだけが行う。

検証用に、実時間へオフセット秒を足して時刻を先送りできる（/control/time/advance）。
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional


@dataclass(frozen=True)
class ClockSnapshot:
    """同一時点で読んだ時計の状態。"""

    real_utc_ts: int
    alarm_utc_ts: int
    offset_seconds: int
    local_date: date


class AlarmClock:
    """
    アラーム判定に使う時計。

    - 時刻は「実時間（now_func）+ オフセット秒」。
    - 暦日は OS のローカルタイムゾーンで決める。
    """

    def __init__(self, *, now_func: Optional[Callable[[], float]] = None) -> None:
        self._now_func = now_func or time.time
        self._lock = threading.Lock()
        self._offset_seconds = 0

    @property
    def offset_seconds(self) -> int:
        with self._lock:
            return self._offset_seconds

    def _read(self) -> tuple[int, int]:
        real = int(self._now_func())
        with self._lock:
            return real, real + self._offset_seconds

    def now_utc_ts(self) -> int:
        """アラーム時刻（UTC epoch seconds）。"""

        return self._read()[1]

    def now_local(self) -> datetime:
        """アラーム時刻のローカル壁時計（naive）。"""

        return datetime.fromtimestamp(self.now_utc_ts())

    def today(self) -> date:
        return self.now_local().date()

    def tomorrow(self) -> date:
        return self.today() + timedelta(days=1)

    def advance(self, *, seconds: int) -> int:
        """
        時刻を先送りし、変更後のオフセット秒を返す。

        巻き戻しはできない（発火済みマーカーとの整合を崩さないため）。
        """

        delta = int(seconds)
        if delta <= 0:
            raise ValueError("seconds must be >= 1")
        with self._lock:
            self._offset_seconds += delta
            return self._offset_seconds

    def reset(self) -> None:
        """オフセットを 0 に戻す。"""

        with self._lock:
            self._offset_seconds = 0

    def snapshot(self) -> ClockSnapshot:
        real, alarm = self._read()
        return ClockSnapshot(
            real_utc_ts=real,
            alarm_utc_ts=alarm,
            offset_seconds=alarm - real,
            local_date=datetime.fromtimestamp(alarm).date(),
        )


_alarm_clock = AlarmClock()


def get_alarm_clock() -> AlarmClock:
    """共有の時計を返す。"""

    return _alarm_clock
