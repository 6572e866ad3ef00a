from __future__ import annotations

import asyncio
import logging
import time
from datetime import date, datetime

import pytest

from shalat_alarm.core.clock import AlarmClock
from shalat_alarm.core.time_utils import format_hhmm, format_iso8601_local_with_tz
from shalat_alarm.runtime import event_stream
from shalat_alarm.runtime.logging import _AccessLogPathFilter, setup_logging
from shalat_alarm.runtime.periodic import start_periodic_task, stop_periodic_tasks


def test_clock_advance_moves_local_date():
    base = datetime(2024, 1, 1, 23, 30).timestamp()
    clock = AlarmClock(now_func=lambda: base)
    assert clock.today() == date(2024, 1, 1)
    assert clock.tomorrow() == date(2024, 1, 2)

    assert clock.advance(seconds=3600) == 3600
    assert clock.now_local() == datetime(2024, 1, 2, 0, 30)
    assert clock.today() == date(2024, 1, 2)
    snap = clock.snapshot()
    assert snap.alarm_utc_ts - snap.real_utc_ts == 3600
    assert snap.offset_seconds == 3600
    assert snap.local_date == date(2024, 1, 2)

    clock.reset()
    assert clock.offset_seconds == 0
    assert clock.today() == date(2024, 1, 1)


def test_clock_rejects_non_positive_advance():
    with pytest.raises(ValueError):
        AlarmClock().advance(seconds=0)


def test_time_formatting():
    assert format_hhmm(4, 5) == "04:05"
    assert format_iso8601_local_with_tz(None) is None
    text = format_iso8601_local_with_tz(int(time.time()))
    assert text is not None and "T" in text


def test_access_log_filter_drops_listed_paths():
    f = _AccessLogPathFilter(("/api/health",))

    def record(path):
        return logging.LogRecord("uvicorn.access", logging.INFO, __file__, 1, '%s - "%s %s HTTP/%s" %d', ("1.2.3.4", "GET", path, "1.1", 200), None)

    assert f.filter(record("/api/health")) is False
    assert f.filter(record("/api/health?x=1")) is False
    assert f.filter(record("/api/alarm/status")) is True


def test_setup_logging_replaces_its_own_handlers(tmp_path):
    root = logging.getLogger()
    log_path = tmp_path / "logs" / "app.log"

    setup_logging("INFO", log_file_enabled=True, log_file_path=str(log_path))
    setup_logging("DEBUG", log_file_enabled=True, log_file_path=str(log_path))

    ours = [h for h in root.handlers if getattr(h, "_shalat_alarm_handler", False)]
    assert len(ours) == 2
    assert root.level == logging.DEBUG
    assert log_path.parent.is_dir()

    setup_logging("INFO")


class _FakeState:
    pass


class _FakeApp:
    def __init__(self):
        self.state = _FakeState()


def test_periodic_task_runs_until_stopped():
    app = _FakeApp()
    calls = []
    logger = logging.getLogger("test.periodic")

    async def _tick():
        calls.append(1)
        if len(calls) == 2:
            raise RuntimeError("one bad tick")

    async def _main():
        start_periodic_task(app, name="t", interval_seconds=0.01, wait_first=False, func=_tick, logger=logger)
        await asyncio.sleep(0.1)
        await stop_periodic_tasks(app, logger=logger)

    asyncio.run(_main())
    assert len(calls) >= 3


def test_periodic_task_rejects_bad_interval():
    async def _noop():
        return None

    async def _main():
        start_periodic_task(_FakeApp(), name="t", interval_seconds=0, wait_first=True, func=_noop, logger=logging.getLogger("t"))

    with pytest.raises(ValueError):
        asyncio.run(_main())


class _FakeWebSocket:
    def __init__(self, *, fail=False):
        self.sent = []
        self.fail = fail

    async def send_text(self, text):
        if self.fail:
            raise ConnectionError("gone")
        self.sent.append(text)


def test_event_stream_broadcasts_and_drops_dead_clients():
    good = _FakeWebSocket()
    bad = _FakeWebSocket(fail=True)

    async def _main():
        event_stream.install(asyncio.get_running_loop())
        await event_stream.start_dispatcher()
        await event_stream.add_client(good)
        await event_stream.add_client(bad)
        assert event_stream.publish(type="alarm.notify", data={"title": "Waktu Subuh"})
        for _ in range(50):
            await asyncio.sleep(0.01)
            if good.sent:
                break
        await event_stream.stop_dispatcher()

    asyncio.run(_main())

    assert good.sent == ['{"type":"alarm.notify","data":{"title":"Waktu Subuh"}}']
    assert event_stream.get_connected_client_count() == 1


def test_publish_before_install_returns_false():
    assert event_stream.publish(type="x") is False
