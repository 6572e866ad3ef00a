"""
依存オブジェクトの取得（FastAPI の Depends 入口）。
"""

from __future__ import annotations

from fastapi import HTTPException, status

from shalat_alarm.alarm.service import AlarmService, get_alarm_service
from shalat_alarm.config import ConfigStore, get_config_store
from shalat_alarm.core.clock import AlarmClock, get_alarm_clock
from shalat_alarm.reminders.service import H1ReminderService, get_h1_reminder_service


def get_config_store_dep() -> ConfigStore:
    """ConfigStore を Depends 用に返す。"""

    return get_config_store()


def get_alarm_clock_dep() -> AlarmClock:
    """AlarmClock を Depends 用に返す。"""

    # --- サンプラーと同じ共有時計を返す ---
    return get_alarm_clock()


def get_alarm_service_dep() -> AlarmService:
    """AlarmService を Depends 用に返す。"""

    return get_alarm_service()


def get_h1_reminder_service_dep() -> H1ReminderService:
    """
    H1ReminderService を Depends 用に返す。

    未設定（無効/接続先不足）の場合は 503。
    """

    service = get_h1_reminder_service()
    if service is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="h1 reminder is not configured")
    return service
