"""
予約（bookings）の取得と、訪問日による絞り込み。

予約データはホスト型DB（Supabase / PostgREST）にあるため、ここでは読み取りだけを行う。
訪問日（tanggal_kunjungan）は "DD/MM/YYYY" と ISO 形式が混在するので、
DB側の範囲検索には頼らず、取得後にこちらで日付を解釈して絞り込む。
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Iterable, Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError


logger = logging.getLogger(__name__)

# H-1 リマインダーの対象ステータス
REMINDER_STATUSES = ("confirmed", "pending", "Terjadwal")

_DMY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


class BookingSourceError(RuntimeError):
    """予約データの取得に失敗した。"""


class Booking(BaseModel):
    """予約1件（H-1 リマインダーに必要な列だけ）。"""

    model_config = ConfigDict(extra="ignore")

    id: str
    booking_id: Optional[str] = None
    nama: str = ""
    no_hp: str = ""
    alamat: str = ""
    jenis_layanan: str = ""
    tanggal_kunjungan: Optional[str] = None
    status: str = ""
    teknisi: str = ""


class BookingSource(Protocol):
    """指定日に訪問予定の予約を返す提供元。"""

    def fetch_for_date(self, day: date) -> list[Booking]:
        ...


def parse_visit_date(text: Optional[str]) -> Optional[date]:
    """
    訪問日の文字列を date に変換する。

    - "DD/MM/YYYY"
    - ISO（"YYYY-MM-DD"、時刻付きも可）
    解釈できなければ None。
    """

    s = str(text or "").strip()
    if not s:
        return None

    m = _DMY_RE.match(s)
    if m:
        try:
            return date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        except ValueError:
            return None

    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def select_bookings_for(bookings: Iterable[Booking], day: date) -> list[Booking]:
    """訪問日が day に一致する予約だけを返す（解釈できない日付は除外）。"""

    selected: list[Booking] = []
    for b in bookings:
        visit = parse_visit_date(b.tanggal_kunjungan)
        if visit is None:
            if b.tanggal_kunjungan:
                logger.debug("booking date not parsable id=%s value=%s", b.id, b.tanggal_kunjungan)
            continue
        if visit == day:
            selected.append(b)
    return selected


class SupabaseBookingSource:
    """
    PostgREST（Supabase の REST API）から予約を読む。

    ステータスで絞って取得し、訪問日はクライアント側で判定する。
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        table: str = "bookings",
        timeout_seconds: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_url = str(base_url).rstrip("/")
        self._api_key = str(api_key)
        self._table = str(table)
        self._timeout = float(timeout_seconds)
        self._client = client

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }

    def fetch_all(self) -> list[Booking]:
        """対象ステータスの予約をすべて返す。"""

        url = f"{self._base_url}/rest/v1/{self._table}"
        params = {
            "select": "*",
            "status": "in.({})".format(",".join(REMINDER_STATUSES)),
        }
        try:
            if self._client is not None:
                resp = self._client.get(url, params=params, headers=self._headers(), timeout=self._timeout)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    resp = client.get(url, params=params, headers=self._headers())
            resp.raise_for_status()
            rows = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise BookingSourceError(f"bookings fetch failed: {exc}") from exc

        if not isinstance(rows, list):
            raise BookingSourceError("bookings fetch failed: unexpected payload")

        bookings: list[Booking] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                bookings.append(Booking.model_validate({**row, "id": str(row.get("id", ""))}))
            except ValidationError as exc:
                logger.warning("booking row skipped id=%s error=%s", row.get("id"), str(exc))
        return bookings

    def fetch_for_date(self, day: date) -> list[Booking]:
        """訪問日が day の予約を返す。"""

        return select_bookings_for(self.fetch_all(), day)
