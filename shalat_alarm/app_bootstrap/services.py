"""
サービス生成（設定 → アラーム / H-1 リマインダー）。

目的:
    - 設定からサンプラー・ガード・アクションを組み立てる手順を1箇所に置く。
    - 永続ストアの初期化に失敗しても、メモリのみで起動を続ける。
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from shalat_alarm.alarm.capabilities import AdhanAction, AlertCapability, EventStreamAlertCapability, TargetAction
from shalat_alarm.alarm.db import init_markers_db
from shalat_alarm.alarm.guard import Dispatch, FireOnceGuard
from shalat_alarm.alarm.markers import FallbackMarkerStore, SqlMarkerStore
from shalat_alarm.alarm.sampler import ClockSampler
from shalat_alarm.alarm.service import AlarmService, init_alarm_service
from shalat_alarm.alarm.targets import (
    ACTION_ADHAN,
    ACTION_H1_REMINDER,
    StaticTargetProvider,
    default_prayer_entries,
)
from shalat_alarm.config import Config
from shalat_alarm.core.clock import AlarmClock
from shalat_alarm.reminders.bookings import SupabaseBookingSource
from shalat_alarm.reminders.dispatch import H1ReminderAction
from shalat_alarm.reminders.service import H1ReminderService, init_h1_reminder_service
from shalat_alarm.reminders.whatsapp import WhatsAppClient


logger = logging.getLogger(__name__)

H1_REMINDER_LABEL = "H-1 Reminder"


def build_h1_reminder_service(config: Config) -> Optional[H1ReminderService]:
    """
    H-1 リマインダーを組み立てる。

    無効、または接続先が揃っていなければ None。
    """

    if not config.h1_reminder_enabled:
        return None

    missing = [
        key
        for key, value in (
            ("whatsapp_endpoint", config.whatsapp_endpoint),
            ("whatsapp_device_id", config.whatsapp_device_id),
            ("bookings_base_url", config.bookings_base_url),
            ("bookings_api_key", config.bookings_api_key),
        )
        if not value
    ]
    if missing:
        logger.warning("h1 reminder disabled: missing config %s", missing)
        return None

    return H1ReminderService(
        source=SupabaseBookingSource(
            base_url=config.bookings_base_url,
            api_key=config.bookings_api_key,
            table=config.bookings_table,
            timeout_seconds=config.http_timeout_seconds,
        ),
        whatsapp=WhatsAppClient(
            endpoint=config.whatsapp_endpoint,
            device_id=config.whatsapp_device_id,
            timeout_seconds=config.http_timeout_seconds,
        ),
        delay_seconds=config.whatsapp_send_delay_seconds,
    )


def build_target_entries(config: Config, *, h1_enabled: bool) -> list[dict[str, Any]]:
    """設定からターゲット定義（未検証）を返す。targets が空なら礼拝時刻の既定値。"""

    entries: list[dict[str, Any]] = [dict(t) for t in config.targets] or default_prayer_entries()
    if h1_enabled:
        # --- 送信時刻ちょうどの tick を逃しても、同じ時間帯のうちに1回だけ送る ---
        entries.append(
            {
                "label": H1_REMINDER_LABEL,
                "time": config.h1_reminder_time,
                "action": ACTION_H1_REMINDER,
                "catch_up_minutes": config.h1_reminder_catch_up_minutes,
            }
        )
    return entries


def build_marker_store(config: Config) -> FallbackMarkerStore:
    """永続マーカーストアを用意する（失敗したらメモリのみ）。"""

    try:
        init_markers_db(config.markers_db_path)
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("markers DB unavailable; falling back to memory: %s", str(exc))
        return FallbackMarkerStore(None)
    return FallbackMarkerStore(SqlMarkerStore())


def build_alarm_service(
    config: Config,
    *,
    clock: AlarmClock,
    capability: Optional[AlertCapability] = None,
    h1_service: Optional[H1ReminderService] = None,
    dispatch: Optional[Dispatch] = None,
) -> AlarmService:
    """設定からアラームサービスを組み立てる。"""

    cap = capability or EventStreamAlertCapability()
    sampler = ClockSampler(
        provider=StaticTargetProvider(build_target_entries(config, h1_enabled=h1_service is not None)),
        clock=clock,
        same_minute_policy=config.same_minute_policy,
    )
    guard = FireOnceGuard(store=build_marker_store(config), dispatch=dispatch, clock=clock)

    # --- アクション名 -> 実装 ---
    service_ref: dict[str, AlarmService] = {}
    actions: dict[str, TargetAction] = {
        ACTION_ADHAN: AdhanAction(cap, sound_enabled=lambda: service_ref["service"].sound_enabled),
    }
    if h1_service is not None:
        actions[ACTION_H1_REMINDER] = H1ReminderAction(
            source=h1_service.source,
            whatsapp=h1_service.whatsapp,
            delay_seconds=h1_service.delay_seconds,
            sleep=h1_service.sleep,
        )

    service = AlarmService(
        sampler=sampler,
        guard=guard,
        actions=actions,
        capability=cap,
        sound_enabled=config.sound_enabled,
        location_name=config.location_name,
    )
    service_ref["service"] = service
    return service


def bootstrap_services(config: Config, *, clock: AlarmClock) -> AlarmService:
    """サービスを生成してシングルトンへ登録する。"""

    h1_service = build_h1_reminder_service(config)
    init_h1_reminder_service(h1_service)

    alarm_service = build_alarm_service(config, clock=clock, h1_service=h1_service)
    init_alarm_service(alarm_service)
    logger.info(
        "services bootstrapped h1_reminder=%s same_minute_policy=%s",
        h1_service is not None,
        config.same_minute_policy,
    )
    return alarm_service
