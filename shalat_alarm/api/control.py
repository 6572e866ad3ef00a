"""
/control エンドポイント

アラーム時計のオフセット（検証用の時刻先送り）の参照と操作を受け付ける。
アラームの発火確認を実時間を待たずに行うための管理用 API で、Bearer 認証必須とする。
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from shalat_alarm import schemas
from shalat_alarm.app_bootstrap.dependencies import get_alarm_clock_dep
from shalat_alarm.core.clock import AlarmClock
from shalat_alarm.core.time_utils import format_iso8601_local_with_tz


router = APIRouter(prefix="/control", tags=["control"])
logger = logging.getLogger(__name__)


def _build_time_snapshot_response(clock: AlarmClock) -> schemas.ControlTimeSnapshotResponse:
    """実時間とアラーム時刻をAPIレスポンスへ整形する。"""

    snap = clock.snapshot()
    return schemas.ControlTimeSnapshotResponse(
        real_now_utc_ts=int(snap.real_utc_ts),
        real_now_iso=format_iso8601_local_with_tz(int(snap.real_utc_ts)),
        alarm_now_utc_ts=int(snap.alarm_utc_ts),
        alarm_now_iso=format_iso8601_local_with_tz(int(snap.alarm_utc_ts)),
        offset_seconds=int(snap.offset_seconds),
        local_date=snap.local_date.isoformat(),
    )


@router.get("/time", response_model=schemas.ControlTimeSnapshotResponse)
def get_time(clock: AlarmClock = Depends(get_alarm_clock_dep)) -> schemas.ControlTimeSnapshotResponse:
    """実時間とアラーム時刻を返す。"""

    return _build_time_snapshot_response(clock)


@router.post("/time/advance", response_model=schemas.ControlTimeSnapshotResponse)
def advance_time(
    request: schemas.ControlTimeAdvanceRequest,
    clock: AlarmClock = Depends(get_alarm_clock_dep),
) -> schemas.ControlTimeSnapshotResponse:
    """アラーム時刻を指定秒だけ進める。"""

    try:
        offset = clock.advance(seconds=int(request.seconds))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    logger.warning("alarm clock advanced seconds=%s offset=%s", int(request.seconds), int(offset))
    return _build_time_snapshot_response(clock)


@router.post("/time/reset", response_model=schemas.ControlTimeSnapshotResponse)
def reset_time(clock: AlarmClock = Depends(get_alarm_clock_dep)) -> schemas.ControlTimeSnapshotResponse:
    """アラーム時計のオフセットを 0 に戻す。"""

    clock.reset()
    logger.info("alarm clock offset reset")
    return _build_time_snapshot_response(clock)
