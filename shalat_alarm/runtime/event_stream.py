"""
WebSocket向けアプリイベント配信

アラームの通知・音声再生要求、H-1 リマインダーの完了などのイベントを
接続中のクライアント（デスクトップシェル / ブラウザ）へリアルタイム配信する。

publish() は tick スレッドやアクション実行スレッドから呼ばれるため、
イベントループへは call_soon_threadsafe で受け渡す。
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from fastapi import WebSocket


@dataclass
class AppEvent:
    """WebSocket配信用のイベント。"""

    type: str  # イベント種別（alarm.notify, alarm.play_sound 等）
    data: Dict[str, Any]  # 追加データ


_event_queue: Optional[asyncio.Queue[AppEvent]] = None
_clients: Set["WebSocket"] = set()
_dispatch_task: Optional[asyncio.Task[None]] = None
_installed = False
_loop: Optional[asyncio.AbstractEventLoop] = None
logger = logging.getLogger(__name__)

# --- 配信バックプレッシャー設定 ---
# NOTE:
# - キューは有界にして、遅延時のメモリ膨張を防ぐ。
# - 送信はタイムアウトを設け、遅いクライアントを切り離す。
_EVENT_QUEUE_MAXSIZE = 1000
_SEND_TIMEOUT_SECONDS = 2.0


def _serialize_event(event: AppEvent) -> str:
    """イベントをJSON文字列にシリアライズする。"""
    return json.dumps(
        {
            "type": event.type,
            "data": event.data,
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )


def install(loop: asyncio.AbstractEventLoop) -> None:
    """
    イベントストリームを初期化する。

    publish()で使用するイベントループとキューをセットアップする。
    多重呼び出しは無視される。
    """
    global _event_queue, _installed, _loop
    if _installed:
        return
    _loop = loop
    _event_queue = asyncio.Queue(maxsize=int(_EVENT_QUEUE_MAXSIZE))
    _installed = True
    logger.info("event stream installed")


def uninstall() -> None:
    """イベントストリームの状態を破棄する（shutdown 後 / テスト用）。"""
    global _event_queue, _installed, _loop
    _event_queue = None
    _installed = False
    _loop = None
    _clients.clear()


async def start_dispatcher() -> None:
    """
    イベント配信タスクを起動する。

    キューからイベントを取り出し、接続中の全クライアントへ配信する。
    """
    global _dispatch_task
    if _dispatch_task is not None:
        return
    if _event_queue is None:
        raise RuntimeError("event queue is not initialized. call install() first.")
    loop = asyncio.get_running_loop()
    _dispatch_task = loop.create_task(_dispatch_loop())
    logger.info("event stream dispatcher started")


async def stop_dispatcher() -> None:
    """イベント配信タスクを停止する。"""
    global _dispatch_task
    if _dispatch_task is None:
        return
    _dispatch_task.cancel()
    try:
        await _dispatch_task
    except asyncio.CancelledError:  # pragma: no cover
        pass
    _dispatch_task = None


def _enqueue_event_nonblocking(event: AppEvent) -> None:
    """イベントを non-blocking でキュー投入する（満杯時はドロップ）。"""

    if _event_queue is None:
        return
    try:
        _event_queue.put_nowait(event)
    except asyncio.QueueFull:
        logger.warning("event stream queue full; dropped type=%s", str(event.type or ""))


def publish(*, type: str, data: Optional[Dict[str, Any]] = None) -> bool:
    """
    イベントをキューに投入する。

    スレッドセーフにイベントを追加し、dispatcherが配信を行う。

    Returns:
        キューへの受け渡しを依頼できたら True（未初期化/終了済みなら False）。
    """
    if _event_queue is None or _loop is None:
        return False
    event = AppEvent(type=str(type), data=dict(data or {}))
    try:
        _loop.call_soon_threadsafe(_enqueue_event_nonblocking, event)
    except RuntimeError:
        # --- shutdown レース（loop close 後）は捨てる ---
        return False
    return True


async def add_client(ws: "WebSocket") -> None:
    """WebSocketクライアントを購読リストに登録する。"""
    _clients.add(ws)


async def remove_client(ws: "WebSocket") -> None:
    """WebSocketクライアントを購読リストから解除する。"""
    _clients.discard(ws)


async def send_to_client(ws: "WebSocket", *, type: str, data: Optional[Dict[str, Any]] = None) -> None:
    """
    1クライアントへイベントを直接送る（キューを経由しない）。

    接続直後の初回メッセージなど、配信順を保証したい場合に使う。
    """

    payload = _serialize_event(AppEvent(type=str(type), data=dict(data or {})))
    await asyncio.wait_for(ws.send_text(payload), timeout=float(_SEND_TIMEOUT_SECONDS))


def get_connected_client_count() -> int:
    """
    接続中クライアント数を返す。

    NOTE: _clients はイベントループ側で更新されるが、概数が取れれば十分なのでロックしない。
    """

    return int(len(_clients))


def has_any_client_connected() -> bool:
    """
    接続中クライアントが1つ以上あるかを返す。

    例:
    - アザーン: 接続0なら再生できないので、ユーザー操作時の再試行へ回す
    """

    return get_connected_client_count() > 0


async def _dispatch_loop() -> None:
    while True:
        if _event_queue is None:  # pragma: no cover
            await asyncio.sleep(0.1)
            continue
        event = await _event_queue.get()
        payload = _serialize_event(event)

        dead_clients: List["WebSocket"] = []

        # --- ブロードキャスト（本文はログに出さない） ---
        logger.info("event stream broadcast type=%s clients=%s", event.type, len(_clients))
        for ws in list(_clients):
            try:
                await asyncio.wait_for(ws.send_text(payload), timeout=float(_SEND_TIMEOUT_SECONDS))
            except Exception:  # noqa: BLE001
                dead_clients.append(ws)

        for ws in dead_clients:
            await remove_client(ws)
