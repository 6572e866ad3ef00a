"""
ログ設定

コンソール出力と、任意のローテーション付きファイル出力を構成する。
uvicorn の access log から、ポーリング系のノイズを除外するフィルタも提供する。
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path


_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_HANDLER_MARK = "_shalat_alarm_handler"


class _AccessLogPathFilter(logging.Filter):
    """指定パスへのリクエストを uvicorn.access から除外するフィルタ。"""

    def __init__(self, paths: tuple[str, ...]) -> None:
        super().__init__()
        self._paths = tuple(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        # --- uvicorn.access は args に (client, method, path, http_version, status) を持つ ---
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            path = str(args[2] or "")
            path = path.split("?", 1)[0]
            if path in self._paths:
                return False
        return True


def setup_logging(
    level: str,
    *,
    log_file_enabled: bool = False,
    log_file_path: str | None = None,
    log_file_max_bytes: int = 200_000,
) -> None:
    """
    ルートロガーを構成する。

    多重呼び出し時は、以前に付与したハンドラを差し替える。
    """

    root = logging.getLogger()
    root.setLevel(str(level or "INFO").upper())

    # --- 以前付与したハンドラを外す（再初期化に備える） ---
    for h in list(root.handlers):
        if getattr(h, _HANDLER_MARK, False):
            root.removeHandler(h)
            h.close()

    formatter = logging.Formatter(_LOG_FORMAT)

    # --- コンソール ---
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    setattr(console, _HANDLER_MARK, True)
    root.addHandler(console)

    # --- ファイル（任意） ---
    if log_file_enabled and log_file_path:
        path = Path(log_file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max(1, int(log_file_max_bytes)),
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARK, True)
        root.addHandler(file_handler)


def suppress_uvicorn_access_log_paths(*paths: str) -> None:
    """uvicorn の access log から指定パスの行を除外する。"""

    if not paths:
        return
    logging.getLogger("uvicorn.access").addFilter(_AccessLogPathFilter(tuple(paths)))
