"""
時刻ユーティリティ

UNIX秒（UTC）を API 表示用の ISO 8601 ローカル時刻へ変換する。
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def format_iso8601_local_with_tz(ts_utc: Optional[int]) -> Optional[str]:
    """UTCのUNIX秒を、ISO 8601形式のローカル時刻へ変換して返す（タイムゾーン表記あり）。

    例:
    - 1700000000 -> "2023-11-14T05:13:20+07:00"（環境がWIBの場合）

    Args:
        ts_utc: UTCのUNIX秒（int）。None/0以下はNoneを返す。

    Returns:
        ISO 8601形式のローカル時刻（秒精度）。無効値ならNone。
    """

    # --- 無効値は None ---
    if ts_utc is None:
        return None
    try:
        ts_i = int(ts_utc)
    except (TypeError, ValueError):
        return None
    if ts_i <= 0:
        return None

    # --- UTC -> ローカル（tzinfo保持） ---
    dt_utc = datetime.fromtimestamp(ts_i, tz=timezone.utc)
    return dt_utc.astimezone().isoformat(timespec="seconds")


def format_hhmm(hours: int, minutes: int) -> str:
    """時・分を "HH:MM" 形式にする。"""

    return f"{int(hours):02d}:{int(minutes):02d}"
