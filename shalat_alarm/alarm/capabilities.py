"""
アラート capability（通知 / 音声再生）。

役割:
    - ガードやサービスは AlertCapability（request_permission / notify / play_sound）だけに依存する。
    - 実体はイベントストリーム経由でクライアントへ依頼する実装を既定とする。
    - 各操作は例外ではなく AlertResult（成功/失敗）で結果を返す。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Protocol

from shalat_alarm.alarm.targets import Target
from shalat_alarm.runtime import event_stream


logger = logging.getLogger(__name__)

ADHAN_SOUND_ID = "adhan"
PERMISSION_REQUEST_EVENT = "alarm.permission_request"


@dataclass(frozen=True)
class AlertResult:
    """
    アラート操作の結果。

    deferrable=True は「ユーザー操作を待てば再試行できる失敗」（例: 自動再生ブロック）。
    """

    ok: bool
    error: Optional[str] = None
    deferrable: bool = False

    @classmethod
    def success(cls) -> "AlertResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str, *, deferrable: bool = False) -> "AlertResult":
        return cls(ok=False, error=str(error), deferrable=bool(deferrable))


class AlertCapability(Protocol):
    """通知 / 音声再生の能力。"""

    def request_permission(self) -> AlertResult:
        ...

    def notify(self, *, title: str, body: str) -> AlertResult:
        ...

    def play_sound(self, *, sound_id: str) -> AlertResult:
        ...


# ターゲット発火時に実行するアクション（(target, 発火日) -> 結果）
TargetAction = Callable[[Target, date], AlertResult]


class EventStreamAlertCapability:
    """
    イベントストリームでクライアントへ通知/再生を依頼する capability。

    - 接続クライアントが無いと通知は失敗、再生は「ユーザー操作待ち」の失敗になる。
    - 実際に鳴ったかどうかはクライアント側の事情（自動再生ポリシー等）なので、依頼できたら成功とする。
    """

    def request_permission(self) -> AlertResult:
        # NOTE: 新規接続には /events/stream が接続時に直接依頼する。ここは接続済みクライアント向け。
        if not event_stream.has_any_client_connected():
            return AlertResult.failure("no client connected")
        if not event_stream.publish(type=PERMISSION_REQUEST_EVENT, data={}):
            return AlertResult.failure("event stream not available")
        return AlertResult.success()

    def notify(self, *, title: str, body: str) -> AlertResult:
        if not event_stream.has_any_client_connected():
            return AlertResult.failure("no client connected")
        if not event_stream.publish(type="alarm.notify", data={"title": str(title), "body": str(body)}):
            return AlertResult.failure("event stream not available")
        return AlertResult.success()

    def play_sound(self, *, sound_id: str) -> AlertResult:
        # --- 受け手がいない再生要求は、次のユーザー操作まで保留する ---
        if not event_stream.has_any_client_connected():
            return AlertResult.failure("no client connected; waiting for user interaction", deferrable=True)
        if not event_stream.publish(type="alarm.play_sound", data={"sound_id": str(sound_id)}):
            return AlertResult.failure("event stream not available", deferrable=True)
        return AlertResult.success()


class AdhanAction:
    """
    adhan アクション: 通知を出し、音声が有効ならアザーンを再生する。

    戻り値は再生結果（音声無効時は通知結果）。
    """

    def __init__(self, capability: AlertCapability, *, sound_enabled: Callable[[], bool]) -> None:
        self._capability = capability
        self._sound_enabled = sound_enabled

    def __call__(self, target: Target, fire_date: date) -> AlertResult:
        title = target.title or f"Waktu {target.label}"
        body = f"Saatnya melaksanakan shalat {target.label}"

        notified = self._capability.notify(title=title, body=body)
        if not notified.ok:
            logger.info("adhan notify not delivered label=%s error=%s", target.label, notified.error)

        if not self._sound_enabled():
            return notified
        return self._capability.play_sound(sound_id=ADHAN_SOUND_ID)
