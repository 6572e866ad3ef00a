"""テスト用のフェイク実装。"""

from __future__ import annotations

from typing import Any, Callable, Optional

from shalat_alarm.alarm.capabilities import AlertResult


class FakeCapability:
    """呼び出しを記録するだけの AlertCapability。"""

    def __init__(
        self,
        *,
        notify_result: Optional[AlertResult] = None,
        play_results: Optional[list[AlertResult]] = None,
    ) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._notify_result = notify_result or AlertResult.success()
        self._play_results = list(play_results or [])

    def request_permission(self) -> AlertResult:
        self.calls.append(("request_permission", {}))
        return AlertResult.success()

    def notify(self, *, title: str, body: str) -> AlertResult:
        self.calls.append(("notify", {"title": title, "body": body}))
        return self._notify_result

    def play_sound(self, *, sound_id: str) -> AlertResult:
        self.calls.append(("play_sound", {"sound_id": sound_id}))
        if self._play_results:
            return self._play_results.pop(0)
        return AlertResult.success()

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


def sync_dispatch(fn: Callable[[], None]) -> None:
    """アクションをその場で実行する dispatch。"""

    fn()


