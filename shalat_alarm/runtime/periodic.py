"""
定期実行タスク（periodic task）ユーティリティ

FastAPI の startup/shutdown に合わせて、一定間隔で実行する asyncio タスクを管理する。

目的:
- 標準 asyncio だけで「毎N秒」を実現する
- 次回の起動時刻は開始時刻基準で計算し、処理時間ぶんの遅れを積み上げない
- 例外が起きてもタスクが死なず、ログに残して継続する
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from fastapi import FastAPI


_TASKS_STATE_KEY = "_shalat_alarm_periodic_tasks"


def start_periodic_task(
    app: "FastAPI",
    *,
    name: str,
    interval_seconds: float,
    wait_first: bool,
    func: Callable[[], Awaitable[None]],
    logger: logging.Logger,
) -> asyncio.Task[None]:
    """
    定期実行タスクを開始して FastAPI app.state に登録する。

    Args:
        app: FastAPI アプリ。
        name: asyncio タスク名（デバッグ用）。
        interval_seconds: 実行間隔（秒）。
        wait_first: True の場合、最初の実行前に interval だけ待つ。
        func: 1回分の処理（awaitable）。
        logger: 例外ログ出力に使用するロガー。

    Returns:
        作成した asyncio.Task。
    """
    interval = float(interval_seconds)
    if interval <= 0:
        raise ValueError("interval_seconds must be positive")

    # --- app.state にタスクリストを確保する ---
    tasks = getattr(app.state, _TASKS_STATE_KEY, None)
    if tasks is None:
        tasks = []
        setattr(app.state, _TASKS_STATE_KEY, tasks)

    async def _runner() -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time() + (interval if wait_first else 0.0)

        while True:
            # --- 予定時刻まで待つ（遅れていれば待たない） ---
            delay = next_at - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)

            try:
                await func()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                logger.exception("periodic task failed: name=%s error=%s", name, str(exc))

            # --- 1周以上遅れた場合は取りこぼした回を詰めて実行しない ---
            next_at += interval
            now = loop.time()
            if next_at < now:
                next_at = now

    task = asyncio.create_task(_runner(), name=str(name))
    tasks.append(task)
    return task


async def stop_periodic_tasks(app: "FastAPI", *, logger: logging.Logger) -> None:
    """
    app.state に登録された定期実行タスクを停止する。
    """
    tasks: list[asyncio.Task[None]] | None = getattr(app.state, _TASKS_STATE_KEY, None)
    if not tasks:
        return

    for t in list(tasks):
        t.cancel()

    # --- gather して終了を待つ（CancelledError は想定内） ---
    try:
        await asyncio.gather(*tasks, return_exceptions=True)
    finally:
        setattr(app.state, _TASKS_STATE_KEY, [])
        logger.info("periodic tasks stopped")
