from datetime import date, datetime, time

import pytest

from medx360.modules.availability import policy
from medx360.modules.schedules.schemas import AvailabilityException

DAY = date(2030, 1, 7)


def exc(start=None, end=None, available=True):
    return AvailabilityException(doctor_id=1, date=DAY, start_time=start, end_time=end, is_available=available)


def test_overlap_is_half_open():
    assert policy.overlaps((600, 630), (615, 645))
    assert not policy.overlaps((600, 630), (630, 660))
    assert not policy.overlaps((630, 660), (600, 630))
    assert policy.overlaps((600, 700), (610, 620))


def test_merge_coalesces_touching_and_overlapping():
    assert policy.merge([(600, 630), (540, 600), (620, 700), (800, 800)]) == [(540, 700)]


def test_subtract_splits_an_interval():
    assert policy.subtract([(540, 720)], [(600, 630)]) == [(540, 600), (630, 720)]


def test_subtract_at_edges_and_beyond():
    assert policy.subtract([(540, 720)], [(500, 560), (700, 800)]) == [(560, 700)]
    assert policy.subtract([(540, 720)], [(540, 720)]) == []


def test_widen_clamps_to_the_day():
    assert policy.widen((10, 40), 15) == (0, 55)
    assert policy.widen((1400, 1430), 15) == (1385, 1440)


def test_discretize_never_crosses_interval_boundary():
    slots = policy.discretize([(540, 600), (630, 680)], 30)
    assert slots == [(540, 570), (570, 600), (630, 660)]


def test_discretize_honours_not_before():
    assert policy.discretize([(540, 720)], 60, not_before=541) == [(600, 660), (660, 720)]


def test_earliest_start_rounds_partial_minutes_up():
    now = datetime(2030, 1, 7, 8, 0, 30)
    assert policy.earliest_start(DAY, now, 60) == 9 * 60 + 1


def test_earliest_start_other_days():
    assert policy.earliest_start(DAY, datetime(2030, 1, 1, 12, 0), 60) == 0
    assert policy.earliest_start(DAY, datetime(2030, 1, 8, 12, 0), 60) == policy.MINUTES_PER_DAY


def test_whole_day_blackout_wins_over_everything():
    result = policy.apply_exceptions(
        [(540, 720)],
        [exc(available=False), exc(time(13), time(14), available=True), exc(available=True)],
    )
    assert result == []


def test_whole_day_available_opens_full_day():
    assert policy.apply_exceptions([(540, 720)], [exc(available=True)]) == [policy.FULL_DAY]


def test_partial_blackout_beats_partial_extra():
    result = policy.apply_exceptions(
        [(540, 720)],
        [exc(time(9), time(10), available=False), exc(time(9, 30), time(13), available=True)],
    )
    assert result == [(600, 780)]


@pytest.mark.parametrize("status,occupies", [
    ("pending", True), ("confirmed", True), ("cancelled", False), ("completed", False), ("no_show", False),
])
def test_only_live_statuses_occupy(status, occupies):
    assert policy.occupies_slot(status) is occupies
