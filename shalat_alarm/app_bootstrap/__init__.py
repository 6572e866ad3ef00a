"""
アプリ起動配線パッケージ。

目的:
    - 起動時の配線を `main.py` から分離する。
    - 初期化手順を責務ごとに読みやすく保つ。
"""

from __future__ import annotations

from shalat_alarm.app_bootstrap.config_bootstrap import bootstrap_config
from shalat_alarm.app_bootstrap.lifecycle import register_lifecycle_hooks
from shalat_alarm.app_bootstrap.routers import register_http_routes
from shalat_alarm.app_bootstrap.services import bootstrap_services

__all__ = [
    "bootstrap_config",
    "bootstrap_services",
    "register_http_routes",
    "register_lifecycle_hooks",
]
