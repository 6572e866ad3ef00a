"""
API リクエスト/レスポンスの Pydantic モデル

FastAPI エンドポイントで使用するリクエスト/レスポンスのスキーマ定義。
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- アラーム ---


class CountdownResponse(BaseModel):
    """次のターゲットまでの残り時間。"""

    label: str
    hours: int
    minutes: int
    total_minutes: int
    time_left: str  # "HH:MM"
    is_tomorrow: bool


class TargetStatusResponse(BaseModel):
    """ターゲット1件の表示状態。"""

    label: str
    time: str
    action: str
    arabic_name: Optional[str] = None
    passed: bool
    is_next: bool
    fired_today: bool


class AlarmStatusResponse(BaseModel):
    """
    /alarm/status のレスポンス。

    カウントダウンとターゲット一覧、音声設定、ストレージ状態をまとめて返す。
    """

    now: str  # ローカル時刻（ISO 8601）
    location_name: str
    next: Optional[CountdownResponse] = None
    targets: List[TargetStatusResponse]
    sound_enabled: bool
    storage_degraded: bool
    pending_retry_label: Optional[str] = None


class AlarmSoundRequest(BaseModel):
    """/alarm/sound 用リクエスト。"""

    model_config = ConfigDict(extra="forbid")

    enabled: bool


class AlertResultResponse(BaseModel):
    """アラート操作の結果。"""

    ok: bool
    error: Optional[str] = None
    deferrable: bool = False


class InteractionResponse(BaseModel):
    """/alarm/interaction のレスポンス。"""

    retried: bool


# --- 時刻制御 ---


class ControlTimeAdvanceRequest(BaseModel):
    """
    /control/time/advance 用リクエスト。

    アラーム時刻を指定秒だけ前進させる。
    """

    model_config = ConfigDict(extra="forbid")

    seconds: int = Field(ge=1, le=31_536_000)


class ControlTimeSnapshotResponse(BaseModel):
    """
    /control/time 系APIの共通レスポンス。

    実時間とアラーム時刻（オフセット適用後）、アラーム時計のローカル暦日を返す。
    """

    real_now_utc_ts: int
    real_now_iso: Optional[str] = None
    alarm_now_utc_ts: int
    alarm_now_iso: Optional[str] = None
    offset_seconds: int
    local_date: str  # YYYY-MM-DD


# --- H-1 リマインダー ---


class BookingResponse(BaseModel):
    """予約1件（プレビュー表示用）。"""

    id: str
    nama: str
    no_hp: str
    alamat: str
    jenis_layanan: str
    tanggal_kunjungan: Optional[str] = None
    status: str
    teknisi: str


class BookingPreviewResponse(BaseModel):
    """/reminders/h1/preview のレスポンス。"""

    day: str
    bookings: List[BookingResponse]


class H1SendRequest(BaseModel):
    """/reminders/h1/send 用リクエスト（day 省略時は翌日）。"""

    model_config = ConfigDict(extra="forbid")

    day: Optional[str] = None


class DispatchSummaryResponse(BaseModel):
    """一括送信の結果。"""

    day: str
    total: int
    sent: int
    failed: int
    skipped: int
