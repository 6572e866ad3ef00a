"""
/alarm エンドポイント

カウントダウンとターゲット一覧の取得、アザーン音声の ON/OFF、
テスト再生、ユーザー操作の通知（保留中の再試行の実行）を受け付ける。
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from shalat_alarm import schemas
from shalat_alarm.alarm.capabilities import AlertResult
from shalat_alarm.alarm.sampler import Countdown
from shalat_alarm.alarm.service import AlarmService, AlarmStatus
from shalat_alarm.app_bootstrap.dependencies import get_alarm_service_dep


router = APIRouter(prefix="/alarm", tags=["alarm"])
logger = logging.getLogger(__name__)


def _countdown_response(countdown: Optional[Countdown]) -> Optional[schemas.CountdownResponse]:
    if countdown is None:
        return None
    return schemas.CountdownResponse(
        label=countdown.label,
        hours=int(countdown.hours),
        minutes=int(countdown.minutes),
        total_minutes=int(countdown.total_minutes),
        time_left=countdown.time_left,
        is_tomorrow=bool(countdown.is_tomorrow),
    )


def _status_response(st: AlarmStatus) -> schemas.AlarmStatusResponse:
    """AlarmStatus を API レスポンスへ整形する。"""

    return schemas.AlarmStatusResponse(
        now=st.now.replace(microsecond=0).isoformat(),
        location_name=st.location_name,
        next=_countdown_response(st.countdown),
        targets=[
            schemas.TargetStatusResponse(
                label=t.label,
                time=t.time,
                action=t.action,
                arabic_name=t.arabic_name,
                passed=t.passed,
                is_next=t.is_next,
                fired_today=t.fired_today,
            )
            for t in st.targets
        ],
        sound_enabled=st.sound_enabled,
        storage_degraded=st.storage_degraded,
        pending_retry_label=st.pending_retry_label,
    )


def _alert_response(result: AlertResult) -> schemas.AlertResultResponse:
    return schemas.AlertResultResponse(ok=result.ok, error=result.error, deferrable=result.deferrable)


@router.get("/status", response_model=schemas.AlarmStatusResponse)
def get_status(service: AlarmService = Depends(get_alarm_service_dep)) -> schemas.AlarmStatusResponse:
    """現在のカウントダウンとターゲット一覧を返す。"""

    return _status_response(service.status())


@router.put("/sound", response_model=schemas.AlarmStatusResponse)
def put_sound(
    request: schemas.AlarmSoundRequest,
    service: AlarmService = Depends(get_alarm_service_dep),
) -> schemas.AlarmStatusResponse:
    """アザーン音声の ON/OFF を切り替える（OFF でも通知は出す）。"""

    service.set_sound_enabled(request.enabled)
    return _status_response(service.status())


@router.post("/test", response_model=schemas.AlertResultResponse)
def post_test(service: AlarmService = Depends(get_alarm_service_dep)) -> schemas.AlertResultResponse:
    """アザーンをテスト再生する（発火記録には残さない）。"""

    return _alert_response(service.test_alert())


@router.post("/interaction", response_model=schemas.InteractionResponse)
def post_interaction(service: AlarmService = Depends(get_alarm_service_dep)) -> schemas.InteractionResponse:
    """
    ユーザー操作を通知する。

    再生がブロックされて保留になっていたアクションがあれば、ここで1回だけ再試行する。
    """

    retried = service.notify_user_interaction()
    if retried:
        logger.info("pending alarm action retried on user interaction")
    return schemas.InteractionResponse(retried=bool(retried))
