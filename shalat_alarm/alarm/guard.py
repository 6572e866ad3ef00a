"""
発火ガード（Fire-Once Guard）

exact-match したターゲットを、(ラベル, 暦日) ごとに1回だけ発火させる。

方針:
    - マーカーの読み取り→書き込みはロック内で行う（単一ライター）。
    - マーカーはアクション実行「前」に記録する（発火は「試行済み」であって「配信確認済み」ではない）。
    - アクションは dispatch へ投げっぱなしにし、tick をブロックしない。
    - 失敗がユーザー操作待ち（deferrable）なら、再試行を1件だけ予約する。再試行の失敗は再予約しない。
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable, Optional

from shalat_alarm.alarm.capabilities import AlertResult, TargetAction
from shalat_alarm.alarm.markers import FiredMarker, MarkerStore
from shalat_alarm.alarm.targets import Target
from shalat_alarm.core.clock import AlarmClock, get_alarm_clock


logger = logging.getLogger(__name__)

Dispatch = Callable[[Callable[[], None]], None]


class FireOnceGuard:
    """(ラベル, 暦日) 単位の重複発火を抑止するガード。"""

    def __init__(
        self,
        *,
        store: MarkerStore,
        dispatch: Optional[Dispatch] = None,
        clock: Optional[AlarmClock] = None,
    ) -> None:
        self._store = store
        self._clock = clock or get_alarm_clock()
        self._lock = threading.Lock()
        self._retry_lock = threading.Lock()
        self._pending_retry: Optional[Callable[[], AlertResult]] = None
        self._pending_retry_label: Optional[str] = None
        self._pending_retry_date: Optional[date] = None

        # --- 既定の dispatch はワーカースレッド1本（アクション同士も直列に流す） ---
        self._executor: Optional[ThreadPoolExecutor] = None
        if dispatch is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="alarm-action")
            self._dispatch: Dispatch = self._submit
        else:
            self._dispatch = dispatch

    @property
    def store(self) -> MarkerStore:
        return self._store

    @property
    def has_pending_retry(self) -> bool:
        with self._retry_lock:
            return self._pending_retry is not None

    @property
    def pending_retry_label(self) -> Optional[str]:
        with self._retry_lock:
            return self._pending_retry_label

    def _submit(self, fn: Callable[[], None]) -> None:
        if self._executor is None:
            raise RuntimeError("alarm action executor is not available")
        self._executor.submit(fn)

    def already_fired(self, label: str, fire_date: date) -> bool:
        """指定ラベルが指定日に発火済みかを返す。"""

        marker = self._store.get(label)
        return bool(marker is not None and marker.fired_date == fire_date)

    def try_fire(self, target: Target, fire_date: date, action: TargetAction) -> bool:
        """
        まだ発火していなければマーカーを記録し、アクションを投げる。

        Returns:
            発火した（アクションを投げた）なら True、抑止したなら False。
        """

        with self._lock:
            if self.already_fired(target.label, fire_date):
                logger.debug("alarm suppressed key=%s-%s", target.label, fire_date.isoformat())
                return False
            marker = FiredMarker(
                label=target.label,
                fired_date=fire_date,
                fired_at_utc=int(self._clock.now_utc_ts()),
            )
            self._store.set(marker)

        logger.info("alarm fired key=%s action=%s", marker.key, target.action)
        self._dispatch(lambda: self._run_action(target, fire_date, action))
        return True

    def _run_action(self, target: Target, fire_date: date, action: TargetAction) -> None:
        """アクションを実行し、結果をログへ残す（例外は外へ出さない）。"""

        try:
            result = action(target, fire_date)
        except Exception as exc:  # noqa: BLE001
            logger.exception("alarm action raised label=%s action=%s", target.label, target.action)
            result = AlertResult.failure(f"{type(exc).__name__}: {exc}")

        if result.ok:
            logger.info("alarm action completed label=%s action=%s", target.label, target.action)
            return

        logger.warning(
            "alarm action failed label=%s action=%s error=%s deferrable=%s",
            target.label,
            target.action,
            result.error,
            result.deferrable,
        )
        if result.deferrable:
            self._arm_retry(target, fire_date, lambda: action(target, fire_date))

    def _arm_retry(self, target: Target, fire_date: date, retry: Callable[[], AlertResult]) -> None:
        # --- 保留できる再試行は常に1件（新しいもので置き換える） ---
        with self._retry_lock:
            self._pending_retry = retry
            self._pending_retry_label = target.label
            self._pending_retry_date = fire_date
        logger.info("alarm retry armed for next user interaction label=%s", target.label)

    def on_user_interaction(self) -> bool:
        """
        ユーザー操作を受けて、保留中の再試行を1回だけ実行する。

        発火日とアラーム時計の今日が違う再試行は、実行せずに破棄する。

        Returns:
            再試行を実行したら True（結果の成否は問わない）。
        """

        with self._retry_lock:
            retry = self._pending_retry
            label = self._pending_retry_label
            fire_date = self._pending_retry_date
            self._pending_retry = None
            self._pending_retry_label = None
            self._pending_retry_date = None
        if retry is None:
            return False

        today = self._clock.today()
        if fire_date != today:
            logger.info(
                "alarm retry expired label=%s fire_date=%s today=%s",
                label,
                fire_date.isoformat() if fire_date else None,
                today.isoformat(),
            )
            return False

        try:
            result = retry()
        except Exception:  # noqa: BLE001
            logger.exception("alarm retry raised label=%s", label)
            return True
        if result.ok:
            logger.info("alarm retry completed label=%s", label)
        else:
            logger.warning("alarm retry failed label=%s error=%s", label, result.error)
        return True

    def shutdown(self, *, wait: bool = True) -> None:
        """既定 executor を停止する。"""

        if self._executor is not None:
            self._executor.shutdown(wait=wait)
