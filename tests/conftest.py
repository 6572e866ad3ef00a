"""テスト共通の fixture。"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

import pytest

from shalat_alarm.alarm.db import dispose_markers_db
from shalat_alarm.config import Config, parse_config
from shalat_alarm.core.clock import AlarmClock
from shalat_alarm.runtime import event_stream


@pytest.fixture(autouse=True)
def app_home(tmp_path, monkeypatch):
    """app_root を一時ディレクトリへ向け、グローバル状態を後始末する。"""

    monkeypatch.setenv("SHALAT_ALARM_HOME", str(tmp_path))
    yield tmp_path
    event_stream.uninstall()
    dispose_markers_db()


# --- ローカル 2024-01-01 04:33 で止まった時計 ---
FIXED_NOW = datetime(2024, 1, 1, 4, 33)


@pytest.fixture
def clock() -> AlarmClock:
    fixed_ts = FIXED_NOW.timestamp()
    return AlarmClock(now_func=lambda: fixed_ts)


@pytest.fixture
def make_config(tmp_path) -> Callable[..., Config]:
    """必須キーを埋めた Config を作る。"""

    def _make(**overrides: Any) -> Config:
        data: dict[str, Any] = {
            "port": 55610,
            "token": "secret-token",
            "log_level": "DEBUG",
            "markers_db_path": str(tmp_path / "markers.db"),
        }
        data.update(overrides)
        return parse_config(data)

    return _make
