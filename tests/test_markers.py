from __future__ import annotations

from datetime import date
from typing import Optional

import pytest

from shalat_alarm.alarm.db import dispose_markers_db, init_markers_db
from shalat_alarm.alarm.markers import (
    FallbackMarkerStore,
    FiredMarker,
    InMemoryMarkerStore,
    MarkerStoreUnavailable,
    SqlMarkerStore,
)


def _marker(label="Subuh", day=date(2024, 1, 1)):
    return FiredMarker(label=label, fired_date=day, fired_at_utc=1_704_000_000)


def test_marker_key_is_label_and_date():
    assert _marker().key == "Subuh-2024-01-01"


def test_in_memory_store_keeps_latest_per_label():
    store = InMemoryMarkerStore()
    assert store.get("Subuh") is None

    store.set(_marker(day=date(2024, 1, 1)))
    store.set(_marker(day=date(2024, 1, 2)))

    got = store.get("Subuh")
    assert got is not None and got.fired_date == date(2024, 1, 2)


def test_sql_store_upserts_and_survives_reinit(tmp_path):
    db_path = tmp_path / "markers.db"
    init_markers_db(db_path)
    store = SqlMarkerStore()

    store.set(_marker(day=date(2024, 1, 1)))
    store.set(_marker(day=date(2024, 1, 2)))
    store.set(_marker(label="Isya", day=date(2024, 1, 1)))

    # --- プロセス再起動相当: engine を作り直す ---
    dispose_markers_db()
    init_markers_db(db_path)

    again = SqlMarkerStore()
    subuh = again.get("Subuh")
    assert subuh is not None and subuh.fired_date == date(2024, 1, 2)
    assert again.get("Isya").fired_date == date(2024, 1, 1)
    assert again.get("Asar") is None


def test_sql_store_raises_unavailable_when_not_initialized():
    dispose_markers_db()
    with pytest.raises(MarkerStoreUnavailable):
        SqlMarkerStore().get("Subuh")


class _BrokenStore:
    def __init__(self, *, fail_get: bool = False, fail_set: bool = False):
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.calls = 0

    def get(self, label: str) -> Optional[FiredMarker]:
        self.calls += 1
        if self.fail_get:
            raise MarkerStoreUnavailable("disk gone")
        return None

    def set(self, marker: FiredMarker) -> None:
        self.calls += 1
        if self.fail_set:
            raise MarkerStoreUnavailable("disk gone")


def test_fallback_degrades_permanently_on_write_failure():
    primary = _BrokenStore(fail_set=True)
    store = FallbackMarkerStore(primary)
    assert store.degraded is False

    store.set(_marker())
    assert store.degraded is True
    calls_after_failure = primary.calls

    # --- 以降はメモリのみ。重複抑止は続く ---
    got = store.get("Subuh")
    assert got is not None and got.fired_date == date(2024, 1, 1)
    store.set(_marker(label="Isya"))
    assert primary.calls == calls_after_failure


def test_fallback_degrades_on_read_failure():
    store = FallbackMarkerStore(_BrokenStore(fail_get=True))
    assert store.get("Subuh") is None
    assert store.degraded is True


def test_fallback_without_primary_starts_degraded():
    store = FallbackMarkerStore(None)
    assert store.degraded is True
    store.set(_marker())
    assert store.get("Subuh") is not None
