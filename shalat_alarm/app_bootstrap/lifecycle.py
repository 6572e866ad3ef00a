"""
アプリライフサイクル登録。

目的:
    - startup / shutdown の副作用を 1 箇所へ集約する。
    - `main.py` は登録呼び出しだけにする。
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI

from shalat_alarm.alarm.service import get_alarm_service
from shalat_alarm.config import Config
from shalat_alarm.runtime import event_stream
from shalat_alarm.runtime.logging import suppress_uvicorn_access_log_paths
from shalat_alarm.runtime.periodic import start_periodic_task, stop_periodic_tasks


logger = logging.getLogger(__name__)


def register_lifecycle_hooks(app: FastAPI, *, config: Config) -> None:
    """
    FastAPI の startup / shutdown フックを登録する。
    """

    # --- ステータス画面のポーリングで access log が埋まらないようにする ---
    @app.on_event("startup")
    async def suppress_noisy_uvicorn_access_logs() -> None:
        """頻繁なアクセスログを uvicorn.access から除外する。"""

        suppress_uvicorn_access_log_paths(
            "/api/health",
            "/api/alarm/status",
        )

    # --- イベント配信を起動する ---
    @app.on_event("startup")
    async def start_event_stream_dispatcher() -> None:
        """イベント WebSocket 配信を起動する。"""

        loop = asyncio.get_running_loop()
        event_stream.install(loop)
        await event_stream.start_dispatcher()

    # --- アラームの tick を起動する ---
    @app.on_event("startup")
    async def start_alarm_tick() -> None:
        """通知許可の依頼と、定期 tick の登録を行う。"""

        # --- event_stream 起動後に登録し、 publish レースを避ける ---
        service = get_alarm_service()
        service.start()

        async def _alarm_tick() -> None:
            await asyncio.to_thread(service.tick)

        start_periodic_task(
            app,
            name="periodic_alarm_tick",
            interval_seconds=float(config.tick_interval_seconds),
            wait_first=False,
            func=_alarm_tick,
            logger=logger,
        )
        logger.info("alarm tick started interval_seconds=%s", config.tick_interval_seconds)

    # --- tick を先に止めて publish レースを避ける ---
    @app.on_event("shutdown")
    async def stop_alarm_tick() -> None:
        """定期 tick とアクション実行を停止する。"""

        await stop_periodic_tasks(app, logger=logger)
        get_alarm_service().stop()

    @app.on_event("shutdown")
    async def stop_event_stream_dispatcher() -> None:
        """イベント配信を停止する。"""

        await event_stream.stop_dispatcher()
