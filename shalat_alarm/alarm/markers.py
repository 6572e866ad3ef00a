"""
発火済みマーカー（fired-marker）ストア

ラベルごとに「最後に鳴った暦日」を1件だけ保持する。
    - get/set だけの小さな抽象にして、テストではメモリ実装へ差し替える。
    - 永続ストアが使えなくなったら、プロセス終了までメモリで重複抑止を続ける。
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from shalat_alarm.alarm.db import markers_session_scope
from shalat_alarm.alarm.models import FiredMarkerRow


logger = logging.getLogger(__name__)


class MarkerStoreUnavailable(RuntimeError):
    """永続ストアへの読み書きができない。"""


@dataclass(frozen=True)
class FiredMarker:
    """あるラベルがある暦日に発火した記録。"""

    label: str
    fired_date: date
    fired_at_utc: int

    @property
    def key(self) -> str:
        return f"{self.label}-{self.fired_date.isoformat()}"


class MarkerStore(Protocol):
    """マーカーの読み書き口。書き込みはガードだけが行う。"""

    def get(self, label: str) -> Optional[FiredMarker]:
        ...

    def set(self, marker: FiredMarker) -> None:
        ...


class InMemoryMarkerStore:
    """メモリ上のマーカーストア（プロセス再起動で消える）。"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._markers: dict[str, FiredMarker] = {}

    def get(self, label: str) -> Optional[FiredMarker]:
        with self._lock:
            return self._markers.get(str(label))

    def set(self, marker: FiredMarker) -> None:
        with self._lock:
            self._markers[str(marker.label)] = marker


class SqlMarkerStore:
    """markers.db（SQLAlchemy）上のマーカーストア。"""

    def get(self, label: str) -> Optional[FiredMarker]:
        try:
            with markers_session_scope() as db:
                row = db.get(FiredMarkerRow, str(label))
                if row is None:
                    return None
                return FiredMarker(
                    label=str(row.label),
                    fired_date=date.fromisoformat(str(row.fired_date)),
                    fired_at_utc=int(row.fired_at_utc),
                )
        except (SQLAlchemyError, RuntimeError) as exc:
            raise MarkerStoreUnavailable(f"marker read failed: label={label} error={exc}") from exc

    def set(self, marker: FiredMarker) -> None:
        try:
            with markers_session_scope() as db:
                # --- 1ラベル1行の upsert（前日の記録は上書きされる） ---
                row = db.get(FiredMarkerRow, str(marker.label))
                if row is None:
                    row = FiredMarkerRow(label=str(marker.label))
                    db.add(row)
                row.fired_date = marker.fired_date.isoformat()
                row.fired_at_utc = int(marker.fired_at_utc)
        except (SQLAlchemyError, RuntimeError) as exc:
            raise MarkerStoreUnavailable(f"marker write failed: key={marker.key} error={exc}") from exc


class FallbackMarkerStore:
    """
    永続ストアを優先し、失敗したらメモリへ切り替えるストア。

    - 読み書きに成功した値はメモリにも写しておく。
    - 一度でも MarkerStoreUnavailable が出たら、以降はメモリだけを使う（元に戻さない）。
    """

    def __init__(self, primary: Optional[MarkerStore]) -> None:
        self._primary = primary
        self._memory = InMemoryMarkerStore()
        self._lock = threading.Lock()
        self._degraded = primary is None
        if self._degraded:
            logger.warning("marker store started in memory-only mode (durable storage unavailable)")

    @property
    def degraded(self) -> bool:
        with self._lock:
            return bool(self._degraded)

    def _degrade(self, exc: Exception) -> None:
        with self._lock:
            if self._degraded:
                return
            self._degraded = True
        logger.warning("marker store degraded to memory-only: %s", str(exc))

    def get(self, label: str) -> Optional[FiredMarker]:
        if not self.degraded and self._primary is not None:
            try:
                marker = self._primary.get(label)
            except MarkerStoreUnavailable as exc:
                self._degrade(exc)
            else:
                if marker is not None:
                    self._memory.set(marker)
                return marker
        return self._memory.get(label)

    def set(self, marker: FiredMarker) -> None:
        # --- 先にメモリへ書く（永続側が落ちても同一プロセス内の重複は防ぐ） ---
        self._memory.set(marker)
        if self.degraded or self._primary is None:
            return
        try:
            self._primary.set(marker)
        except MarkerStoreUnavailable as exc:
            self._degrade(exc)
