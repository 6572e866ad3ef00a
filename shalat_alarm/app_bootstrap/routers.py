"""
HTTP ルート登録。

目的:
    - router 登録とヘルスチェックの配線をまとめる。
"""

from __future__ import annotations

from fastapi import Depends, FastAPI

from shalat_alarm.api import alarm, control, events, reminders
from shalat_alarm.api.http_auth import require_bearer_only


def register_http_routes(app: FastAPI) -> None:
    """
    API router を登録する。
    """

    # --- 認証付き API router を登録する ---
    app.include_router(alarm.router, dependencies=[Depends(require_bearer_only)], prefix="/api")
    app.include_router(control.router, dependencies=[Depends(require_bearer_only)], prefix="/api")
    app.include_router(reminders.router, dependencies=[Depends(require_bearer_only)], prefix="/api")

    # --- WebSocket は接続時に自前で認証する ---
    app.include_router(events.router, prefix="/api")

    # --- ヘルスチェックを登録する ---
    @app.get("/api/health")
    async def health() -> dict[str, str]:
        """稼働確認用のヘルスチェックを返す。"""

        return {"status": "healthy"}
