"""
アラームサービス

1本の定期 tick が、カウントダウン更新と exact-match 判定の両方を駆動する。

実装方針:
- サーバ側の定期タスク（runtime.periodic）から tick() を呼び出す。
- tick() は複数回同時に呼ばれても安全（実行中なら即 return する）。
- 発火の重複抑止とアクション実行は FireOnceGuard に委譲する。
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional

from shalat_alarm.alarm.capabilities import ADHAN_SOUND_ID, AlertCapability, AlertResult, TargetAction
from shalat_alarm.alarm.guard import FireOnceGuard
from shalat_alarm.alarm.sampler import ClockSampler, Countdown, compute_countdown, minutes_since_midnight


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickResult:
    """1回の tick の結果。"""

    now: datetime
    countdown: Optional[Countdown]
    fired: list[str] = field(default_factory=list)
    suppressed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TargetStatus:
    """表示用のターゲット状態。"""

    label: str
    time: str
    action: str
    arabic_name: Optional[str]
    passed: bool
    is_next: bool
    fired_today: bool


@dataclass(frozen=True)
class AlarmStatus:
    """アラームの現在状態のスナップショット。"""

    now: datetime
    location_name: str
    countdown: Optional[Countdown]
    targets: list[TargetStatus]
    sound_enabled: bool
    storage_degraded: bool
    pending_retry_label: Optional[str]


class AlarmService:
    """サンプラーとガードを束ね、tick ごとの発火を行うサービス。"""

    def __init__(
        self,
        *,
        sampler: ClockSampler,
        guard: FireOnceGuard,
        actions: Mapping[str, TargetAction],
        capability: AlertCapability,
        sound_enabled: bool = True,
        location_name: str = "",
    ) -> None:
        self._sampler = sampler
        self._guard = guard
        self._actions = dict(actions)
        self._capability = capability
        self._location_name = str(location_name)
        self._lock = threading.Lock()
        self._running = False
        self._sound_enabled = bool(sound_enabled)
        self._last_countdown: Optional[Countdown] = None

    @property
    def guard(self) -> FireOnceGuard:
        return self._guard

    @property
    def sound_enabled(self) -> bool:
        with self._lock:
            return bool(self._sound_enabled)

    def set_sound_enabled(self, enabled: bool) -> None:
        """アザーン音声の ON/OFF を切り替える。"""

        with self._lock:
            self._sound_enabled = bool(enabled)
        logger.info("adhan sound %s", "enabled" if enabled else "disabled")

    @property
    def last_countdown(self) -> Optional[Countdown]:
        with self._lock:
            return self._last_countdown

    def start(self) -> None:
        """
        起動時処理: 接続済みクライアントへ通知許可を1回だけ依頼する。

        起動直後は通常クライアントが居ないので失敗ログで終わる。後から接続したクライアントには
        /events/stream が接続時に依頼する。
        """

        result = self._capability.request_permission()
        if not result.ok:
            logger.info("notification permission request not delivered: %s", result.error)

    def stop(self) -> None:
        """アクション実行スレッドを停止する。"""

        self._guard.shutdown(wait=False)

    def tick(self, now: Optional[datetime] = None) -> Optional[TickResult]:
        """
        1回分の観測と発火を行う。

        Returns:
            実行した tick の結果。別の tick が実行中で何もしなかった場合は None。
        """

        with self._lock:
            if self._running:
                return None
            self._running = True

        try:
            sample = self._sampler.sample(now)
            with self._lock:
                self._last_countdown = sample.countdown

            fired: list[str] = []
            suppressed: list[str] = []
            skipped: list[str] = []
            for target in sample.matches:
                action = self._actions.get(target.action)
                if action is None:
                    logger.warning("alarm target skipped: unknown action label=%s action=%s", target.label, target.action)
                    skipped.append(target.label)
                    continue
                if self._guard.try_fire(target, sample.fire_date, action):
                    fired.append(target.label)
                else:
                    suppressed.append(target.label)

            return TickResult(
                now=sample.now,
                countdown=sample.countdown,
                fired=fired,
                suppressed=suppressed,
                skipped=skipped,
            )
        finally:
            with self._lock:
                self._running = False

    def status(self, now: Optional[datetime] = None) -> AlarmStatus:
        """表示用の状態を返す（発火はしない）。"""

        current = now if now is not None else self._sampler.now()
        day = current.date()
        targets = self._sampler.targets_for(day)
        countdown = compute_countdown(targets, current)
        now_m = minutes_since_midnight(current)
        next_label = countdown.label if countdown is not None else None

        rows: list[TargetStatus] = []
        for t in targets:
            is_next = t.label == next_label
            rows.append(
                TargetStatus(
                    label=t.label,
                    time=t.time_text,
                    action=t.action,
                    arabic_name=t.arabic_name,
                    passed=bool(t.minutes_since_midnight <= now_m and not is_next),
                    is_next=bool(is_next),
                    fired_today=self._guard.already_fired(t.label, day),
                )
            )

        return AlarmStatus(
            now=current,
            location_name=self._location_name,
            countdown=countdown,
            targets=rows,
            sound_enabled=self.sound_enabled,
            storage_degraded=bool(getattr(self._guard.store, "degraded", False)),
            pending_retry_label=self._guard.pending_retry_label,
        )

    def test_alert(self) -> AlertResult:
        """ガードを通さずにアザーンを1回鳴らす（動作確認用）。"""

        result = self._capability.play_sound(sound_id=ADHAN_SOUND_ID)
        if not result.ok:
            logger.info("test adhan not delivered: %s", result.error)
        return result

    def notify_user_interaction(self) -> bool:
        """ユーザー操作を受けて、保留中の再試行を実行する。"""

        return self._guard.on_user_interaction()


_alarm_service: Optional[AlarmService] = None


def init_alarm_service(service: Optional[AlarmService]) -> None:
    """アラームサービスのシングルトンを登録する（起動時）。"""

    global _alarm_service
    _alarm_service = service


def get_alarm_service() -> AlarmService:
    """アラームサービスのシングルトンを返す。"""

    if _alarm_service is None:
        raise RuntimeError("AlarmService not initialized")
    return _alarm_service
