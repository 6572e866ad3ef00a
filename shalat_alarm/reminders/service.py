"""
H-1 リマインダーの依存オブジェクト保持。

手動プレビュー/送信 API から、アラームと同じ予約取得元と送信クライアントを使えるようにする。
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from shalat_alarm.reminders.bookings import Booking, BookingSource
from shalat_alarm.reminders.dispatch import DispatchSummary, send_h1_reminders
from shalat_alarm.reminders.whatsapp import WhatsAppClient


@dataclass
class H1ReminderService:
    """H-1 リマインダーのプレビューと手動送信。"""

    source: BookingSource
    whatsapp: WhatsAppClient
    delay_seconds: float = 1.0
    sleep: Callable[[float], None] = field(default=time.sleep)

    def preview(self, day: date) -> list[Booking]:
        """day に訪問予定の予約を返す。"""

        return self.source.fetch_for_date(day)

    def send(self, day: date) -> DispatchSummary:
        """day に訪問予定の予約へリマインダーを送る。"""

        return send_h1_reminders(
            source=self.source,
            whatsapp=self.whatsapp,
            day=day,
            delay_seconds=self.delay_seconds,
            sleep=self.sleep,
        )


_h1_reminder_service: Optional[H1ReminderService] = None


def init_h1_reminder_service(service: Optional[H1ReminderService]) -> None:
    """H-1 リマインダーサービスを登録する（未設定なら None）。"""

    global _h1_reminder_service
    _h1_reminder_service = service


def get_h1_reminder_service() -> Optional[H1ReminderService]:
    """H-1 リマインダーサービスを返す（未設定なら None）。"""

    return _h1_reminder_service
