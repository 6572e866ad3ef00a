from __future__ import annotations

from datetime import date

import pytest

from shalat_alarm.alarm.targets import (
    ACTION_ADHAN,
    InvalidTargetTime,
    StaticTargetProvider,
    build_target_list,
    default_prayer_entries,
    parse_time_of_day,
)


@pytest.mark.parametrize(
    "text,expected",
    [("04:32", (4, 32)), ("4:05", (4, 5)), ("00:00", (0, 0)), ("23:59", (23, 59)), (" 19:01 ", (19, 1))],
)
def test_parse_time_of_day_accepts_valid_times(text, expected):
    assert parse_time_of_day(text) == expected


@pytest.mark.parametrize("text", ["24:00", "12:60", "1230", "ab:cd", "", "12:5", "-1:30"])
def test_parse_time_of_day_rejects_malformed(text):
    with pytest.raises(InvalidTargetTime):
        parse_time_of_day(text)


def test_build_target_list_excludes_bad_rows_and_sorts():
    targets = build_target_list(
        [
            {"label": "Isya", "time": "19:01"},
            {"label": "Broken", "time": "25:00"},
            {"label": "", "time": "10:00"},
            {"label": "Subuh", "time": "04:32"},
            {"label": "Subuh", "time": "05:00"},
        ]
    )

    assert [t.label for t in targets] == ["Subuh", "Isya"]
    assert targets[0].time_text == "04:32"
    assert targets[0].action == ACTION_ADHAN
    assert targets[1].minutes_since_midnight == 19 * 60 + 1


def test_build_target_list_keeps_input_order_for_same_minute():
    targets = build_target_list(
        [
            {"label": "B", "time": "12:00"},
            {"label": "A", "time": "12:00"},
        ]
    )
    assert [t.label for t in targets] == ["B", "A"]


def test_default_prayer_provider_has_five_ordered_targets():
    provider = StaticTargetProvider(default_prayer_entries())
    targets = provider.targets_for(date(2024, 1, 1))

    assert [t.label for t in targets] == ["Subuh", "Zuhur", "Asar", "Magrib", "Isya"]
    assert all(t.arabic_name for t in targets)
    # 返り値を書き換えても提供元には影響しない
    targets.clear()
    assert len(provider.targets_for(date(2024, 1, 2))) == 5
