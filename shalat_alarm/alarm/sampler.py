"""
クロックサンプラー

tick ごとにローカル壁時計を読み、
    - 次のターゲットまでのカウントダウン
    - 現在の「分」と一致したターゲット（exact-match）
を計算する。判定は分単位で、秒は見ない。

ターゲット一覧は提供元から日付が変わったときだけ取り直す。
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from shalat_alarm.alarm.targets import Target, TargetProvider
from shalat_alarm.core.clock import AlarmClock
from shalat_alarm.core.time_utils import format_hhmm


logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

POLICY_ALL = "all"
POLICY_FIRST = "first"


@dataclass(frozen=True)
class Countdown:
    """次のターゲットまでの残り時間。"""

    label: str
    hours: int
    minutes: int
    total_minutes: int
    is_tomorrow: bool

    @property
    def time_left(self) -> str:
        return format_hhmm(self.hours, self.minutes)


@dataclass(frozen=True)
class TickSample:
    """1回の tick で得られた観測結果。"""

    now: datetime
    fire_date: date
    countdown: Optional[Countdown]
    matches: list[Target] = field(default_factory=list)


def minutes_since_midnight(now: datetime) -> int:
    """0:00 からの経過分を返す。"""

    return int(now.hour) * 60 + int(now.minute)


def compute_countdown(targets: Sequence[Target], now: datetime) -> Optional[Countdown]:
    """
    次のターゲットまでのカウントダウンを返す。

    - 現在分より厳密に後の最初のターゲット（リスト順）。
    - 今日残りが無ければ、翌日の先頭ターゲット（0時までの残り + 先頭の経過分）。
    - ターゲットが空なら None。
    """

    if not targets:
        return None

    now_m = minutes_since_midnight(now)
    for t in targets:
        if t.minutes_since_midnight > now_m:
            diff = t.minutes_since_midnight - now_m
            return Countdown(
                label=t.label,
                hours=diff // 60,
                minutes=diff % 60,
                total_minutes=diff,
                is_tomorrow=False,
            )

    # --- 今日はもう無い: 翌日の先頭 ---
    first = targets[0]
    total = (MINUTES_PER_DAY - now_m) + first.minutes_since_midnight
    return Countdown(
        label=first.label,
        hours=total // 60,
        minutes=total % 60,
        total_minutes=total,
        is_tomorrow=True,
    )


def find_exact_matches(
    targets: Sequence[Target],
    now: datetime,
    *,
    policy: str = POLICY_ALL,
) -> list[Target]:
    """
    現在の「分」と一致するターゲットを返す。

    catch_up_minutes を持つターゲットは、指定分から catch_up_minutes 分後までの間も一致とみなす
    （tick の取りこぼしやプロセス停止中に指定分を過ぎた場合の追いかけ）。1日1回の抑止はガードが行う。

    policy:
        - "all": 同一分のターゲットをすべて返す（それぞれ独立に発火する）。
        - "first": 指定分ちょうどの一致はリスト順で先頭の1件だけ返す（追いかけ中の一致は残す）。
    """

    now_m = minutes_since_midnight(now)
    matches: list[Target] = []
    exact_taken = False
    for t in targets:
        start = t.minutes_since_midnight
        if not (start <= now_m <= start + int(t.catch_up_minutes)):
            continue
        if start == now_m:
            if policy == POLICY_FIRST and exact_taken:
                continue
            exact_taken = True
        matches.append(t)
    return matches


class ClockSampler:
    """
    tick ごとの観測を行うサンプラー。

    ターゲット一覧は日付境界ごとに提供元から1回だけ読む。
    """

    def __init__(
        self,
        *,
        provider: TargetProvider,
        clock: AlarmClock,
        same_minute_policy: str = POLICY_ALL,
    ) -> None:
        if same_minute_policy not in (POLICY_ALL, POLICY_FIRST):
            raise ValueError(f"unknown same_minute_policy: {same_minute_policy!r}")
        self._provider = provider
        self._clock = clock
        self._policy = same_minute_policy
        self._lock = threading.Lock()
        self._targets_day: Optional[date] = None
        self._targets: list[Target] = []

    @property
    def same_minute_policy(self) -> str:
        return self._policy

    def now(self) -> datetime:
        """サンプラーが使うローカル壁時計の現在時刻。"""

        return self._clock.now_local()

    def targets_for(self, day: date) -> list[Target]:
        """指定日のターゲット一覧を返す（日付が変わったときだけ取り直す）。"""

        with self._lock:
            if self._targets_day != day:
                self._targets = list(self._provider.targets_for(day))
                self._targets_day = day
                logger.info(
                    "targets refreshed day=%s targets=%s",
                    day.isoformat(),
                    [f"{t.label}@{t.time_text}" for t in self._targets],
                )
            return list(self._targets)

    def sample(self, now: Optional[datetime] = None) -> TickSample:
        """現在時刻（未指定なら時計から取得）で1回分の観測を行う。"""

        current = now if now is not None else self.now()
        day = current.date()
        targets = self.targets_for(day)
        return TickSample(
            now=current,
            fire_date=day,
            countdown=compute_countdown(targets, current),
            matches=find_exact_matches(targets, current, policy=self._policy),
        )
