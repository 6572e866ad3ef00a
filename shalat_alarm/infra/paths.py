"""
保存先パスの解決。

方針:
    - アプリのルート（app_root）は環境変数 SHALAT_ALARM_HOME、無ければカレントディレクトリ。
    - config / data / db / logs は app_root 配下に置き、取得時にディレクトリを作成する。
    - 相対パス指定は app_root 基準で解決する。
"""

from __future__ import annotations

import os
from pathlib import Path


_HOME_ENV = "SHALAT_ALARM_HOME"


def get_app_root() -> Path:
    """アプリのルートディレクトリを返す。"""

    raw = str(os.getenv(_HOME_ENV) or "").strip()
    if raw:
        return Path(raw).expanduser().resolve()
    return Path.cwd().resolve()


def _ensure_dir(p: Path) -> Path:
    # --- 初回起動時にディレクトリが無くても落ちないようにする ---
    p.mkdir(parents=True, exist_ok=True)
    return p


def get_config_dir() -> Path:
    """設定ファイル置き場（config/）を返す。"""

    return _ensure_dir(get_app_root() / "config")


def get_data_dir() -> Path:
    """データ置き場（data/）を返す。"""

    return _ensure_dir(get_app_root() / "data")


def get_db_dir() -> Path:
    """DB 置き場（data/db/）を返す。"""

    return _ensure_dir(get_data_dir() / "db")


def get_logs_dir() -> Path:
    """ログ置き場（logs/）を返す。"""

    return _ensure_dir(get_app_root() / "logs")


def get_default_config_file_path() -> Path:
    """既定の設定ファイルパス（config/setting.toml）を返す。"""

    return get_config_dir() / "setting.toml"


def resolve_path_under_app_root(path: str | Path) -> Path:
    """
    パスを app_root 基準で解決する。

    絶対パスはそのまま返す。
    """

    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_app_root() / p).resolve()
