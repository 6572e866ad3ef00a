"""
FastAPI エントリポイント

ShalatAlarm APIサーバーのメインモジュール。
アプリケーションの初期化、ルーターの登録、起動/終了イベントの登録を行う。

NOTE:
    - import 時に設定ファイルを読まないよう、モジュール変数の app は持たない。
    - uvicorn からは factory=True で create_app を渡す。
"""

from __future__ import annotations

import logging
import pathlib
from typing import Optional

from fastapi import FastAPI

from shalat_alarm.app_bootstrap import (
    bootstrap_config,
    bootstrap_services,
    register_http_routes,
    register_lifecycle_hooks,
)
from shalat_alarm.config import Config
from shalat_alarm.core.clock import get_alarm_clock


logger = logging.getLogger(__name__)


def create_app(config: Optional[Config] = None, *, config_path: str | pathlib.Path | None = None) -> FastAPI:
    """
    アプリ生成と初期化を行う。

    設定読み込み→ログ→サービス生成→ルータ登録→ライフサイクル登録の順で実行する。

    Args:
        config: 構築済みの設定（テスト用）。None なら TOML から読み込む。
        config_path: 設定ファイルのパス（None なら config/setting.toml）。
    """

    # 1. 設定とログ
    toml_config = bootstrap_config(config, path=config_path)

    # 2. サービス（アラーム / H-1 リマインダー）
    bootstrap_services(toml_config, clock=get_alarm_clock())

    # 3. FastAPI アプリ
    app = FastAPI(title="ShalatAlarm API")
    register_http_routes(app)
    register_lifecycle_hooks(app, config=toml_config)

    logger.info("ShalatAlarm app created port=%s location=%s", toml_config.port, toml_config.location_name)
    return app
