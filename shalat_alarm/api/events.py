"""
WebSocketによるアプリイベントストリーミングAPI

アラームの通知・アザーン再生要求、H-1 リマインダーの完了をリアルタイムで配信する。
クライアント（デスクトップシェル / ブラウザ）はこのストリームを購読し、
受け取った alarm.notify / alarm.play_sound を実際の通知・再生に変換する。
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from shalat_alarm.alarm.capabilities import PERMISSION_REQUEST_EVENT
from shalat_alarm.alarm.service import get_alarm_service
from shalat_alarm.api.http_auth import authenticate_websocket
from shalat_alarm.runtime import event_stream


router = APIRouter(prefix="/events", tags=["events"])
logger = logging.getLogger(__name__)


async def _close_policy_violation(websocket: WebSocket) -> None:
    """
    認証失敗などのポリシー違反でWebSocketを閉じる。

    close時例外は制御経路のため、debugで記録して握りつぶす。
    """

    try:
        await websocket.close(code=1008)
    except Exception as exc:  # noqa: BLE001
        logger.debug("events websocket close failed: %s", str(exc))


@router.websocket("/stream")
async def stream_events(websocket: WebSocket) -> None:
    """
    アプリイベントをWebSocketでストリーミング配信する。

    Bearer認証後に購読クライアントとして登録し、切断時は自動で登録解除する。
    クライアントから {"type": "interaction"} を受け取ると、保留中の再試行を実行する。
    """
    # NOTE:
    # - 先に accept し、認証NGなら policy violation(1008) で close する。
    # - accept せずに return すると、再接続ループ時にサーバ側ログが 403 で埋まりやすい。
    await websocket.accept()

    if not authenticate_websocket(websocket):
        await _close_policy_violation(websocket)
        logger.info("events websocket rejected (auth failed)")
        return

    client_added = False
    try:
        # --- 接続ごとに通知許可を依頼する（購読登録前に送り、必ず最初のメッセージにする） ---
        await event_stream.send_to_client(websocket, type=PERMISSION_REQUEST_EVENT, data={})
        await event_stream.add_client(websocket)
        client_added = True
        logger.info("events websocket connected clients=%s", event_stream.get_connected_client_count())

        # --- クライアントメッセージ受信ループ ---
        while True:
            text = await websocket.receive_text()
            try:
                payload = json.loads(text or "")
            except json.JSONDecodeError:
                logger.debug("events websocket ignored invalid json payload")
                continue
            if not isinstance(payload, dict):
                continue

            # --- ユーザー操作（クリック/キー入力）で保留中のアクションを再試行する ---
            if str(payload.get("type") or "").strip() == "interaction":
                retried = get_alarm_service().notify_user_interaction()
                logger.debug("events websocket interaction received retried=%s", retried)
    except WebSocketDisconnect:
        logger.info("events websocket disconnected by client")
    except Exception as exc:  # noqa: BLE001
        logger.warning("events websocket terminated by error: %s", str(exc))
    finally:
        if client_added:
            await event_stream.remove_client(websocket)
        logger.info("events websocket disconnected")
