"""
起動時の設定・ログ初期化。

目的:
    - create_app() から初期化の詳細を切り離す。
    - 設定読み込み -> ログ設定 -> 設定ストア登録 の順序を1箇所で固定する。
"""

from __future__ import annotations

import pathlib
from typing import Optional

from shalat_alarm.config import Config, ConfigStore, load_config, set_global_config_store
from shalat_alarm.runtime.logging import setup_logging


def bootstrap_config(config: Optional[Config] = None, *, path: str | pathlib.Path | None = None) -> Config:
    """
    起動時の設定初期化を実行し、確定した Config を返す。

    Args:
        config: 構築済みの設定（テスト用）。None なら TOML から読み込む。
        path: 設定ファイルのパス（None なら既定パス）。
    """

    # --- 1. TOML 設定を読み込み、ログ設定を先に確定する ---
    toml_config = config if config is not None else load_config(path)
    setup_logging(
        toml_config.log_level,
        log_file_enabled=toml_config.log_file_enabled,
        log_file_path=toml_config.log_file_path,
        log_file_max_bytes=toml_config.log_file_max_bytes,
    )

    # --- 2. 設定ストアとして登録する ---
    set_global_config_store(ConfigStore(toml_config))
    return toml_config
