"""
HTTP / WebSocket 用の Bearer 認証。

方針:
    - 設定の token と Authorization: Bearer <TOKEN> を照合する。
    - WebSocket はヘッダを付けられないクライアント向けに ?token= も受け付ける。
"""

from __future__ import annotations

import hmac

from fastapi import HTTPException, Request, WebSocket, status

from shalat_alarm.config import get_token


def _token_matches(provided: str) -> bool:
    expected = get_token()
    return bool(provided) and hmac.compare_digest(str(provided), str(expected))


def _bearer_from_header(auth_header: str | None) -> str:
    """Authorization ヘッダから Bearer トークンを取り出す（無ければ空文字）。"""

    raw = str(auth_header or "").strip()
    # --- 形式: "Bearer <TOKEN>" ---
    if not raw.lower().startswith("bearer "):
        return ""
    return raw.split(" ", 1)[1].strip()


def require_bearer_only(request: Request) -> None:
    """HTTP リクエストで Bearer 認証を必須にする。"""

    if _token_matches(_bearer_from_header(request.headers.get("Authorization"))):
        return
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication token")


def authenticate_websocket(websocket: WebSocket) -> bool:
    """WebSocket 接続の Bearer（ヘッダ優先、無ければ ?token=）を検証する。"""

    provided = _bearer_from_header(websocket.headers.get("Authorization"))
    if not provided:
        provided = str(websocket.query_params.get("token") or "").strip()
    return _token_matches(provided)
