"""
アラームのターゲット（ラベル付きの時刻）定義。

方針:
    - ターゲットは「ラベル + 時:分」。ラベルは一意で、リストは1日の時系列順に並べる。
    - 不正な時刻やラベル重複は読み込み時に除外する（実行時エラーにしない）。
    - 既定値は地域（Tangerang Selatan）の5回の礼拝時刻。
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Protocol

from shalat_alarm.core.time_utils import format_hhmm


logger = logging.getLogger(__name__)

ACTION_ADHAN = "adhan"
ACTION_H1_REMINDER = "h1_reminder"

MAX_CATCH_UP_MINUTES = 59

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class InvalidTargetTime(ValueError):
    """ターゲット時刻の書式/範囲が不正。"""


@dataclass(frozen=True)
class Target:
    """ラベル付きの時刻（1日1回発火させたい対象）。"""

    label: str
    hour: int
    minute: int
    action: str = ACTION_ADHAN
    title: Optional[str] = None
    arabic_name: Optional[str] = None
    # 指定分を過ぎても、この分数以内なら発火を追いかける（0 なら指定分ちょうどのみ）
    catch_up_minutes: int = 0

    @property
    def minutes_since_midnight(self) -> int:
        return int(self.hour) * 60 + int(self.minute)

    @property
    def time_text(self) -> str:
        return format_hhmm(self.hour, self.minute)


class TargetProvider(Protocol):
    """指定日のターゲット一覧を返す提供元（読み取り専用の入力）。"""

    def targets_for(self, day: date) -> list[Target]:
        ...


def parse_time_of_day(text: str) -> tuple[int, int]:
    """
    "HH:MM"（または "H:MM"）を (hour, minute) へ変換する。

    Raises:
        InvalidTargetTime: 書式違い、または範囲外。
    """

    s = str(text or "").strip()
    m = _TIME_RE.match(s)
    if not m:
        raise InvalidTargetTime(f"invalid time of day: {text!r} (expected HH:MM)")
    hour = int(m.group(1))
    minute = int(m.group(2))
    if hour > 23 or minute > 59:
        raise InvalidTargetTime(f"time of day out of range: {text!r}")
    return (hour, minute)


def _parse_catch_up_minutes(value: Any) -> int:
    """catch_up_minutes（省略時 0、0〜59 の整数）を検証する。"""

    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidTargetTime(f"catch_up_minutes must be an integer: {value!r}")
    if value < 0 or value > MAX_CATCH_UP_MINUTES:
        raise InvalidTargetTime(f"catch_up_minutes out of range: {value!r} (0-{MAX_CATCH_UP_MINUTES})")
    return int(value)


def build_target_list(entries: Iterable[Mapping[str, Any]]) -> list[Target]:
    """
    生の定義（label/time/action/title/arabic_name/catch_up_minutes）からターゲット一覧を組み立てる。

    - 時刻や catch_up_minutes が不正な行、ラベルが空の行は警告して除外する。
    - ラベルが重複した場合は先勝ち（後の行を除外）。
    - 結果は時刻順（同時刻は入力順）に並べる。
    """

    targets: list[Target] = []
    seen: set[str] = set()
    for raw in entries:
        label = str(raw.get("label") or "").strip()
        if not label:
            logger.warning("target skipped: empty label entry=%s", dict(raw))
            continue
        if label in seen:
            logger.warning("target skipped: duplicate label=%s", label)
            continue
        try:
            hour, minute = parse_time_of_day(str(raw.get("time") or ""))
            catch_up = _parse_catch_up_minutes(raw.get("catch_up_minutes"))
        except InvalidTargetTime as exc:
            logger.warning("target skipped: label=%s error=%s", label, str(exc))
            continue

        action = str(raw.get("action") or ACTION_ADHAN).strip() or ACTION_ADHAN
        title = str(raw["title"]).strip() if raw.get("title") else None
        arabic_name = str(raw["arabic_name"]).strip() if raw.get("arabic_name") else None

        seen.add(label)
        targets.append(
            Target(
                label=label,
                hour=hour,
                minute=minute,
                action=action,
                title=title,
                arabic_name=arabic_name,
                catch_up_minutes=catch_up,
            )
        )

    # --- 時刻順へ（sorted は安定ソートなので同時刻は入力順を保つ） ---
    return sorted(targets, key=lambda t: t.minutes_since_midnight)


def default_prayer_entries() -> list[dict[str, str]]:
    """Tangerang Selatan の礼拝時刻（既定ターゲット）を返す。"""

    return [
        {"label": "Subuh", "time": "04:32", "arabic_name": "الفجر"},
        {"label": "Zuhur", "time": "11:51", "arabic_name": "الظهر"},
        {"label": "Asar", "time": "15:06", "arabic_name": "العصر"},
        {"label": "Magrib", "time": "17:52", "arabic_name": "المغرب"},
        {"label": "Isya", "time": "19:01", "arabic_name": "العشاء"},
    ]


class StaticTargetProvider:
    """固定のターゲット一覧を返す提供元（日付に依らない）。"""

    def __init__(self, entries: Iterable[Mapping[str, Any]]) -> None:
        self._targets = build_target_list(entries)

    def targets_for(self, day: date) -> list[Target]:
        return list(self._targets)
