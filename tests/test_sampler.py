from __future__ import annotations

from datetime import date, datetime

import pytest

from shalat_alarm.alarm.sampler import (
    POLICY_FIRST,
    ClockSampler,
    compute_countdown,
    find_exact_matches,
)
from shalat_alarm.alarm.targets import StaticTargetProvider, build_target_list


def _targets(*pairs):
    return build_target_list([{"label": label, "time": t} for label, t in pairs])


def test_countdown_to_next_target_today():
    targets = _targets(("A", "04:32"), ("B", "11:51"))
    cd = compute_countdown(targets, datetime(2024, 1, 1, 4, 32, 0))

    assert cd is not None
    assert cd.label == "B"
    assert (cd.hours, cd.minutes) == (7, 19)
    assert cd.total_minutes == 7 * 60 + 19
    assert cd.is_tomorrow is False
    assert cd.time_left == "07:19"


def test_countdown_wraps_to_first_target_tomorrow():
    targets = _targets(("A", "04:32"))
    cd = compute_countdown(targets, datetime(2024, 1, 1, 23, 58, 0))

    assert cd is not None
    assert cd.label == "A"
    assert (cd.hours, cd.minutes) == (4, 34)
    assert cd.is_tomorrow is True


def test_countdown_ignores_seconds():
    targets = _targets(("A", "10:00"))
    cd = compute_countdown(targets, datetime(2024, 1, 1, 9, 59, 59))
    assert cd is not None
    assert cd.total_minutes == 1


def test_countdown_with_no_targets_is_none():
    assert compute_countdown([], datetime(2024, 1, 1, 12, 0)) is None


def test_exact_match_is_minute_precision():
    targets = _targets(("A", "04:32"), ("B", "11:51"))

    assert [t.label for t in find_exact_matches(targets, datetime(2024, 1, 1, 4, 32, 0))] == ["A"]
    assert [t.label for t in find_exact_matches(targets, datetime(2024, 1, 1, 4, 32, 59))] == ["A"]
    assert find_exact_matches(targets, datetime(2024, 1, 1, 4, 33, 0)) == []


def test_same_minute_policy():
    targets = _targets(("A", "12:00"), ("B", "12:00"))
    now = datetime(2024, 1, 1, 12, 0)

    assert [t.label for t in find_exact_matches(targets, now)] == ["A", "B"]
    assert [t.label for t in find_exact_matches(targets, now, policy=POLICY_FIRST)] == ["A"]


def test_catch_up_window_matches_minutes_after_start():
    targets = build_target_list(
        [
            {"label": "H-1", "time": "08:00", "action": "h1_reminder", "catch_up_minutes": 59},
            {"label": "A", "time": "08:15"},
        ]
    )

    assert find_exact_matches(targets, datetime(2024, 1, 1, 7, 59)) == []
    assert [t.label for t in find_exact_matches(targets, datetime(2024, 1, 1, 8, 14))] == ["H-1"]
    assert [t.label for t in find_exact_matches(targets, datetime(2024, 1, 1, 8, 59, 59))] == ["H-1"]
    assert find_exact_matches(targets, datetime(2024, 1, 1, 9, 0)) == []

    # --- first は指定分ちょうどの一致だけを絞る（追いかけ中のターゲットに隠されない） ---
    now = datetime(2024, 1, 1, 8, 15)
    assert [t.label for t in find_exact_matches(targets, now, policy=POLICY_FIRST)] == ["H-1", "A"]


@pytest.mark.parametrize("value", [-1, 60, "5", True])
def test_invalid_catch_up_minutes_drops_the_entry(value):
    targets = build_target_list([{"label": "A", "time": "08:00", "catch_up_minutes": value}])
    assert targets == []


def test_sampler_rejects_unknown_policy(clock):
    with pytest.raises(ValueError):
        ClockSampler(provider=StaticTargetProvider([]), clock=clock, same_minute_policy="random")


class _CountingProvider:
    def __init__(self):
        self.days: list[date] = []

    def targets_for(self, day):
        self.days.append(day)
        return _targets(("A", "04:32"))


def test_sampler_refreshes_targets_only_on_day_change(clock):
    provider = _CountingProvider()
    sampler = ClockSampler(provider=provider, clock=clock)

    sampler.sample(datetime(2024, 1, 1, 4, 31))
    sampler.sample(datetime(2024, 1, 1, 4, 32))
    sampler.sample(datetime(2024, 1, 2, 0, 0))

    assert provider.days == [date(2024, 1, 1), date(2024, 1, 2)]


def test_sample_reports_fire_date_and_matches(clock):
    sampler = ClockSampler(provider=StaticTargetProvider([{"label": "A", "time": "04:32"}]), clock=clock)
    sample = sampler.sample(datetime(2024, 1, 1, 4, 32, 10))

    assert sample.fire_date == date(2024, 1, 1)
    assert [t.label for t in sample.matches] == ["A"]
    assert sample.countdown is not None and sample.countdown.is_tomorrow
