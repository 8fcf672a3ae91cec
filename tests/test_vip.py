"""VIP tiers: thresholds, daily limits, progress."""

from decimal import Decimal

import pytest

from taskearn.services.vip_service import (
    MAX_VIP_LEVEL,
    daily_task_limit,
    vip_level,
    vip_progress,
    vip_tiers,
)


@pytest.mark.parametrize(
    "deposited, earned, expected",
    [
        ("0", "0", 0),
        ("19.99", "0", 0),
        ("10", "10", 1),
        ("49.99", "0", 1),
        ("10", "15", 1),
        ("60", "15", 2),
        ("100", "0", 3),
        ("150", "50", 4),
        ("500", "0", 5),
        ("10000", "0", 5),
    ],
)
def test_vip_level_thresholds(deposited, earned, expected):
    assert vip_level(Decimal(deposited), Decimal(earned)) == expected


def test_vip_level_is_monotonic_in_activity():
    previous = 0
    for cents in range(0, 60000, 137):
        level = vip_level(Decimal(cents) / 100, Decimal("0"))
        assert level >= previous
        previous = level
    assert previous == MAX_VIP_LEVEL


def test_daily_limits_per_level():
    assert [daily_task_limit(level) for level in range(6)] == [5, 10, 15, 20, 25, 30]


def test_daily_limit_clamps_out_of_range_levels():
    assert daily_task_limit(-3) == 5
    assert daily_task_limit(42) == 30


def test_tiers_table():
    tiers = vip_tiers()
    assert [t.name for t in tiers] == ["Standard", "VIP 1", "VIP 2", "VIP 3", "VIP 4", "VIP 5"]
    assert [t.requirement for t in tiers] == [Decimal(x) for x in ("0", "20", "50", "100", "200", "500")]
    assert tiers[3].benefits[0] == "20 tasks per day"


def test_progress_halfway_to_next_tier():
    progress = vip_progress(Decimal("35"), Decimal("0"), 1)
    assert progress.current.level == 1
    assert progress.next is not None and progress.next.level == 2
    assert progress.amount_needed == Decimal("15.00")
    assert progress.progress_percent == 50.0


def test_progress_at_top_tier():
    progress = vip_progress(Decimal("900"), Decimal("0"), 5)
    assert progress.next is None
    assert progress.amount_needed == Decimal("0.00")
    assert progress.progress_percent == 100.0
