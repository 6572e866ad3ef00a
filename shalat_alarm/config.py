"""
設定読み込みとランタイム設定ストア

TOML設定ファイルの読み込みと、実行時に使用する設定の管理を行う。
設定は起動時に読み込まれ、ConfigStore として各モジュールから参照される。
"""

from __future__ import annotations

import pathlib
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import tomli

from shalat_alarm.infra import paths


SAME_MINUTE_POLICIES = ("all", "first")


@dataclass
class Config:
    """
    TOML起動設定（起動時のみ使用、変更不可）。
    """
    port: int               # API の待受ポート
    token: str              # API認証用トークン
    log_level: str          # ログレベル（DEBUG, INFO, WARNING, ERROR）
    log_file_enabled: bool  # ファイルログ有効/無効
    log_file_path: str      # ファイルログの保存先パス
    log_file_max_bytes: int  # ファイルログのローテーションサイズ（bytes）
    tick_interval_seconds: float  # サンプラーの tick 間隔（秒）
    same_minute_policy: str  # 同一分に複数ターゲットがあるとき: all=全て発火 / first=先頭のみ
    sound_enabled: bool     # アザーン音声の初期値
    location_name: str      # 表示用の地域名
    markers_db_path: str    # 発火済みマーカーDBのパス
    targets: List[Dict[str, Any]] = field(default_factory=list)  # ターゲット定義（未検証の生データ）
    h1_reminder_enabled: bool = False  # H-1 リマインダーを有効化するか
    h1_reminder_time: str = "08:00"    # H-1 リマインダーの送信時刻
    h1_reminder_catch_up_minutes: int = 59  # 送信時刻を過ぎても追いかけて送る分数（08:00〜08:59）
    whatsapp_endpoint: str = ""        # WhatsApp 送信APIのURL
    whatsapp_device_id: str = ""       # WhatsApp 送信APIのデバイスID
    whatsapp_send_delay_seconds: float = 1.0  # 連続送信の間隔（秒）
    bookings_base_url: str = ""        # 予約DB（PostgREST）のベースURL
    bookings_api_key: str = ""         # 予約DBのAPIキー
    bookings_table: str = "bookings"   # 予約テーブル名
    http_timeout_seconds: float = 10.0  # 外部HTTPのタイムアウト秒数


class ConfigStore:
    """
    ランタイム設定ストア。
    スレッドセーフに設定を保持し、各モジュールから参照可能にする。
    """

    def __init__(self, toml_config: Config) -> None:
        self._toml = toml_config
        self._lock = threading.Lock()

    @property
    def config(self) -> Config:
        """起動時に読み込んだ設定を返す。"""
        with self._lock:
            return self._toml

    @property
    def token(self) -> str:
        """API認証トークンを返す。"""
        return self.config.token


def _require(config_dict: dict, key: str) -> Any:
    """
    設定辞書から必須キーを取得する。
    キーが存在しないか空の場合はValueErrorを発生させる。
    """
    if key not in config_dict or config_dict[key] in (None, ""):
        raise ValueError(f"config key '{key}' is required")
    return config_dict[key]


_ALLOWED_KEYS = {
    "port",
    "token",
    "log_level",
    "log_file_enabled",
    "log_file_path",
    "log_file_max_bytes",
    "tick_interval_seconds",
    "same_minute_policy",
    "sound_enabled",
    "location_name",
    "markers_db_path",
    "targets",
    "h1_reminder_enabled",
    "h1_reminder_time",
    "h1_reminder_catch_up_minutes",
    "whatsapp_endpoint",
    "whatsapp_device_id",
    "whatsapp_send_delay_seconds",
    "bookings_base_url",
    "bookings_api_key",
    "bookings_table",
    "http_timeout_seconds",
}


def parse_config(data: dict) -> Config:
    """
    TOMLをパースした辞書から Config を構築する。
    許可されていないキーが含まれる場合はエラーを発生させる。
    """
    unknown_keys = sorted(set(data.keys()) - _ALLOWED_KEYS)
    if unknown_keys:
        keys = ", ".join(repr(k) for k in unknown_keys)
        raise ValueError(f"unknown config key(s): {keys}")

    # --- ログファイルパスは相対指定なら app_root 基準に解決する ---
    raw_log_file_path = str(data.get("log_file_path", str(paths.get_logs_dir() / "shalat_alarm.log")))
    resolved_log_file_path = str(paths.resolve_path_under_app_root(raw_log_file_path))

    # --- マーカーDB（未指定なら data/db/markers.db） ---
    raw_markers_db_path = str(data.get("markers_db_path") or "").strip()
    if raw_markers_db_path:
        markers_db_path = str(paths.resolve_path_under_app_root(raw_markers_db_path))
    else:
        markers_db_path = str(paths.get_db_dir() / "markers.db")

    # --- tick 間隔（正の数） ---
    tick_interval_seconds = float(data.get("tick_interval_seconds", 1.0))
    if tick_interval_seconds <= 0:
        raise ValueError("tick_interval_seconds must be positive")

    # --- 同一分の扱い ---
    same_minute_policy = str(data.get("same_minute_policy", "all")).strip().lower()
    if same_minute_policy not in SAME_MINUTE_POLICIES:
        raise ValueError(f"same_minute_policy must be one of {SAME_MINUTE_POLICIES}")

    # --- ターゲット定義 ---
    # NOTE: 時刻の妥当性はここでは見ない（不正な行は読み込み時に除外する）。
    raw_targets = data.get("targets", [])
    if not isinstance(raw_targets, list) or not all(isinstance(t, dict) for t in raw_targets):
        raise ValueError("targets must be an array of tables")

    whatsapp_send_delay_seconds = float(data.get("whatsapp_send_delay_seconds", 1.0))
    if whatsapp_send_delay_seconds < 0:
        raise ValueError("whatsapp_send_delay_seconds must be >= 0")
    http_timeout_seconds = float(data.get("http_timeout_seconds", 10.0))
    if http_timeout_seconds <= 0:
        raise ValueError("http_timeout_seconds must be positive")
    h1_reminder_catch_up_minutes = int(data.get("h1_reminder_catch_up_minutes", 59))
    if not 0 <= h1_reminder_catch_up_minutes <= 59:
        raise ValueError("h1_reminder_catch_up_minutes must be between 0 and 59")

    return Config(
        port=int(_require(data, "port")),
        token=str(_require(data, "token")),
        log_level=str(_require(data, "log_level")),
        log_file_enabled=bool(data.get("log_file_enabled", False)),
        log_file_path=resolved_log_file_path,
        log_file_max_bytes=int(data.get("log_file_max_bytes", 200_000)),
        tick_interval_seconds=float(tick_interval_seconds),
        same_minute_policy=same_minute_policy,
        sound_enabled=bool(data.get("sound_enabled", True)),
        location_name=str(data.get("location_name", "Tangerang Selatan")),
        markers_db_path=markers_db_path,
        targets=[dict(t) for t in raw_targets],
        h1_reminder_enabled=bool(data.get("h1_reminder_enabled", False)),
        h1_reminder_time=str(data.get("h1_reminder_time", "08:00")),
        h1_reminder_catch_up_minutes=h1_reminder_catch_up_minutes,
        whatsapp_endpoint=str(data.get("whatsapp_endpoint", "")).strip(),
        whatsapp_device_id=str(data.get("whatsapp_device_id", "")).strip(),
        whatsapp_send_delay_seconds=float(whatsapp_send_delay_seconds),
        bookings_base_url=str(data.get("bookings_base_url", "")).strip(),
        bookings_api_key=str(data.get("bookings_api_key", "")).strip(),
        bookings_table=str(data.get("bookings_table", "bookings")).strip() or "bookings",
        http_timeout_seconds=float(http_timeout_seconds),
    )


def load_config(path: str | pathlib.Path | None = None) -> Config:
    """
    TOML設定ファイルを読み込む。
    """
    # --- 既定は app_root/config/setting.toml ---
    config_path = pathlib.Path(paths.get_default_config_file_path() if path is None else path)
    config_path = paths.resolve_path_under_app_root(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    with config_path.open("rb") as f:
        data = tomli.load(f)
    return parse_config(data)


# グローバル設定ストア（シングルトン）
_config_store: Optional[ConfigStore] = None


def set_global_config_store(store: ConfigStore) -> None:
    """グローバルConfigStoreを設定。起動時に一度だけ呼び出される。"""
    global _config_store
    _config_store = store


def get_config_store() -> ConfigStore:
    """
    グローバルConfigStoreを取得。
    初期化されていない場合はRuntimeErrorを発生させる。
    """
    if _config_store is None:
        raise RuntimeError("ConfigStore not initialized")
    return _config_store


def get_token() -> str:
    """API認証用トークンを返す。"""
    return get_config_store().token
