"""
H-1 リマインダーの一括送信。

翌日に訪問予定の予約へ WhatsApp のリマインダーを送る。
アラームの h1_reminder アクションとして、また手動送信 API から呼ばれる。
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable

from shalat_alarm.alarm.capabilities import AlertResult
from shalat_alarm.alarm.targets import Target
from shalat_alarm.reminders.bookings import BookingSource, BookingSourceError
from shalat_alarm.reminders.whatsapp import WhatsAppClient, build_reminder_message, normalize_phone
from shalat_alarm.runtime import event_stream


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchSummary:
    """一括送信の結果。"""

    day: date
    total: int
    sent: int
    failed: int
    skipped: int


def send_h1_reminders(
    *,
    source: BookingSource,
    whatsapp: WhatsAppClient,
    day: date,
    delay_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> DispatchSummary:
    """
    day に訪問予定の予約へリマインダーを送る。

    - 電話番号が無い予約は送らない（skipped）。
    - 送信と送信の間に delay_seconds だけ空ける。

    Raises:
        BookingSourceError: 予約の取得に失敗した。
    """

    bookings = source.fetch_for_date(day)
    if not bookings:
        logger.info("h1 reminders: no bookings day=%s", day.isoformat())
        return DispatchSummary(day=day, total=0, sent=0, failed=0, skipped=0)

    sent = 0
    failed = 0
    skipped = 0
    first = True
    for booking in bookings:
        number = normalize_phone(booking.no_hp)
        if not number:
            skipped += 1
            continue

        # --- ゲートウェイへの連投を避ける ---
        if not first and delay_seconds > 0:
            sleep(float(delay_seconds))
        first = False

        if whatsapp.send_text(number=number, message=build_reminder_message(booking)):
            sent += 1
        else:
            failed += 1

    summary = DispatchSummary(day=day, total=len(bookings), sent=sent, failed=failed, skipped=skipped)
    logger.info(
        "h1 reminders done day=%s total=%s sent=%s failed=%s skipped=%s",
        day.isoformat(),
        summary.total,
        summary.sent,
        summary.failed,
        summary.skipped,
    )
    return summary


class H1ReminderAction:
    """h1_reminder アクション: 発火日の翌日に訪問予定の予約へリマインダーを送る。"""

    def __init__(
        self,
        *,
        source: BookingSource,
        whatsapp: WhatsAppClient,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._source = source
        self._whatsapp = whatsapp
        self._delay_seconds = float(delay_seconds)
        self._sleep = sleep

    def __call__(self, target: Target, fire_date: date) -> AlertResult:
        day = fire_date + timedelta(days=1)
        try:
            summary = send_h1_reminders(
                source=self._source,
                whatsapp=self._whatsapp,
                day=day,
                delay_seconds=self._delay_seconds,
                sleep=self._sleep,
            )
        except BookingSourceError as exc:
            return AlertResult.failure(str(exc))

        event_stream.publish(
            type="reminder.h1_done",
            data={
                "day": summary.day.isoformat(),
                "total": summary.total,
                "sent": summary.sent,
                "failed": summary.failed,
                "skipped": summary.skipped,
            },
        )
        if summary.failed > 0:
            return AlertResult.failure(f"{summary.failed} reminder(s) failed")
        return AlertResult.success()
