"""
/reminders エンドポイント

H-1 リマインダー（翌日訪問予定の予約への WhatsApp 送信）のプレビューと手動送信。
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from shalat_alarm import schemas
from shalat_alarm.app_bootstrap.dependencies import get_alarm_clock_dep, get_h1_reminder_service_dep
from shalat_alarm.core.clock import AlarmClock
from shalat_alarm.reminders.bookings import Booking, BookingSourceError
from shalat_alarm.reminders.service import H1ReminderService


router = APIRouter(prefix="/reminders", tags=["reminders"])
logger = logging.getLogger(__name__)


def _resolve_day(text: Optional[str], clock: AlarmClock) -> date:
    """day 指定（YYYY-MM-DD）を解釈する。省略時はアラーム時計の翌日。"""

    if not text:
        return clock.tomorrow()
    try:
        return date.fromisoformat(str(text).strip())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="day must be YYYY-MM-DD") from exc


def _booking_response(b: Booking) -> schemas.BookingResponse:
    return schemas.BookingResponse(
        id=b.id,
        nama=b.nama,
        no_hp=b.no_hp,
        alamat=b.alamat,
        jenis_layanan=b.jenis_layanan,
        tanggal_kunjungan=b.tanggal_kunjungan,
        status=b.status,
        teknisi=b.teknisi,
    )


@router.get("/h1/preview", response_model=schemas.BookingPreviewResponse)
def preview_h1(
    day: Optional[str] = Query(default=None),
    service: H1ReminderService = Depends(get_h1_reminder_service_dep),
    clock: AlarmClock = Depends(get_alarm_clock_dep),
) -> schemas.BookingPreviewResponse:
    """指定日（省略時は翌日）に訪問予定の予約を返す。"""

    target_day = _resolve_day(day, clock)
    try:
        bookings = service.preview(target_day)
    except BookingSourceError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return schemas.BookingPreviewResponse(
        day=target_day.isoformat(),
        bookings=[_booking_response(b) for b in bookings],
    )


@router.post("/h1/send", response_model=schemas.DispatchSummaryResponse)
def send_h1(
    request: Optional[schemas.H1SendRequest] = None,
    service: H1ReminderService = Depends(get_h1_reminder_service_dep),
    clock: AlarmClock = Depends(get_alarm_clock_dep),
) -> schemas.DispatchSummaryResponse:
    """指定日（省略時は翌日）に訪問予定の予約へリマインダーを送る。"""

    target_day = _resolve_day(request.day if request is not None else None, clock)
    try:
        summary = service.send(target_day)
    except BookingSourceError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    logger.info(
        "h1 reminders sent manually day=%s sent=%s failed=%s skipped=%s",
        summary.day.isoformat(),
        summary.sent,
        summary.failed,
        summary.skipped,
    )
    return schemas.DispatchSummaryResponse(
        day=summary.day.isoformat(),
        total=summary.total,
        sent=summary.sent,
        failed=summary.failed,
        skipped=summary.skipped,
    )
