"""Tests for the horizon projector"""
from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.application.projection import (
    project, project_all, fires_on, next_occurrence,
    rolling_window, month_end_window, month_view_window, occurrence_index,
)


def _dates(occurrences):
    return [occ.date for occ in occurrences]


class TestScenarios:
    def test_weekly_next_two_mondays(self, make_schedule, today):
        """Weekly Monday schedule over the next 14 days from a Wednesday"""
        s = make_schedule(
            frequency="weekly", day_of_month=None, day_of_week=1,
            amount=Decimal("-500"), created_at=today - timedelta(days=14),
        )
        start, end = rolling_window(today, 14)

        occurrences = project(s, start, end)

        assert _dates(occurrences) == [date(2024, 1, 22), date(2024, 1, 29)]
        assert all(occ.amount == Decimal("-500") for occ in occurrences)

    def test_remaining_consumed_on_processed_date(self, make_schedule):
        """The last remaining occurrence was materialized on last_processed_date"""
        s = make_schedule(
            day_of_month=15, remaining_occurrences=1, last_processed_date=date(2024, 1, 15),
        )
        assert project(s, date(2024, 1, 16), date(2024, 3, 31)) == []

    def test_yearly_feb_29_leap_and_non_leap(self, make_schedule):
        s = make_schedule(frequency="yearly", month=1, day_of_month=29, created_at=date(2023, 1, 1))

        assert _dates(project(s, date(2024, 1, 1), date(2024, 3, 31))) == [date(2024, 2, 29)]
        assert _dates(project(s, date(2025, 1, 1), date(2025, 3, 31))) == [date(2025, 2, 28)]


class TestTermination:
    def test_inactive_yields_nothing(self, make_schedule):
        s = make_schedule(is_active=False)
        assert project(s, date(2024, 1, 1), date(2024, 12, 31)) == []

    def test_anchor_after_end(self, make_schedule):
        assert project(make_schedule(), date(2024, 2, 1), date(2024, 1, 1)) == []

    def test_never_before_creation(self, make_schedule):
        s = make_schedule(created_at=date(2024, 2, 21))
        assert _dates(project(s, date(2024, 1, 1), date(2024, 4, 30))) == [
            date(2024, 3, 20), date(2024, 4, 20),
        ]

    def test_created_on_firing_day_fires(self, make_schedule):
        s = make_schedule(created_at=date(2024, 1, 20))
        assert _dates(project(s, date(2024, 1, 17), date(2024, 1, 31))) == [date(2024, 1, 20)]

    def test_skips_processed_dates(self, make_schedule):
        s = make_schedule(last_processed_date=date(2024, 1, 20))
        assert _dates(project(s, date(2024, 1, 1), date(2024, 2, 29))) == [date(2024, 2, 20)]

    def test_end_date_is_inclusive(self, make_schedule):
        s = make_schedule(end_date=date(2024, 3, 20))
        assert _dates(project(s, date(2024, 1, 17), date(2024, 6, 30))) == [
            date(2024, 1, 20), date(2024, 2, 20), date(2024, 3, 20),
        ]

    def test_remaining_zero_never_fires(self, make_schedule):
        s = make_schedule(remaining_occurrences=0)
        assert project(s, date(2024, 1, 1), date(2024, 12, 31)) == []

    def test_remaining_counts_from_creation(self, make_schedule):
        s = make_schedule(day_of_month=10, created_at=date(2023, 12, 1), remaining_occurrences=3)

        assert _dates(project(s, date(2023, 12, 1), date(2024, 6, 30))) == [
            date(2023, 12, 10), date(2024, 1, 10), date(2024, 2, 10),
        ]
        # a later anchor does not reset the budget
        assert _dates(project(s, date(2024, 1, 1), date(2024, 6, 30))) == [
            date(2024, 1, 10), date(2024, 2, 10),
        ]

    def test_remaining_after_processing(self, make_schedule):
        s = make_schedule(
            day_of_month=15, remaining_occurrences=2, last_processed_date=date(2024, 1, 15),
        )
        assert _dates(project(s, date(2024, 1, 16), date(2024, 6, 30))) == [date(2024, 2, 15)]

    def test_both_limits_apply(self, make_schedule):
        by_count = make_schedule(
            created_at=date(2024, 1, 1), remaining_occurrences=2, end_date=date(2024, 12, 31),
        )
        by_date = make_schedule(
            created_at=date(2024, 1, 1), remaining_occurrences=10, end_date=date(2024, 2, 20),
        )
        assert _dates(project(by_count, date(2024, 1, 1), date(2024, 12, 31))) == [
            date(2024, 1, 20), date(2024, 2, 20),
        ]
        assert _dates(project(by_date, date(2024, 1, 1), date(2024, 12, 31))) == [
            date(2024, 1, 20), date(2024, 2, 20),
        ]

    def test_occurrence_index(self, make_schedule):
        s = make_schedule(day_of_month=15, last_processed_date=date(2024, 1, 15))
        assert occurrence_index(s, date(2024, 1, 15)) == 1
        assert occurrence_index(s, date(2024, 2, 15)) == 2


class TestWindows:
    def test_rolling_window(self, today):
        assert rolling_window(today) == (today, date(2024, 2, 16))

    def test_month_end_window(self):
        assert month_end_window(date(2024, 2, 10)) == (date(2024, 2, 10), date(2024, 2, 29))

    def test_month_view_window(self, today):
        assert month_view_window(2023, 12, today) is None
        assert month_view_window(2024, 1, today) == (today, date(2024, 1, 31))
        assert month_view_window(2024, 2, today) == (date(2024, 2, 1), date(2024, 2, 29))


class TestInvariants:
    @pytest.mark.parametrize("changes", [
        {},
        {"frequency": "daily", "day_of_month": None, "remaining_occurrences": 20},
        {"frequency": "weekly", "day_of_month": None, "day_of_week": 5, "end_date": date(2024, 5, 1)},
        {"day_of_month": 31, "remaining_occurrences": 4},
        {"frequency": "yearly", "month": 1, "day_of_month": 30},
    ])
    def test_windows_compose(self, make_schedule, changes):
        """Projecting [a, b] then [b+1, c] equals projecting [a, c]"""
        s = make_schedule(created_at=date(2024, 1, 1), **changes)
        a, b, c = date(2024, 1, 1), date(2024, 3, 14), date(2025, 3, 31)

        split = project(s, a, b) + project(s, b + timedelta(days=1), c)

        assert split == project(s, a, c)

    def test_strictly_ascending_within_bounds(self, make_schedule):
        s = make_schedule(frequency="daily", day_of_month=None)
        dates = _dates(project(s, date(2024, 1, 1), date(2024, 1, 31)))
        assert dates == sorted(set(dates))
        assert dates[0] == date(2024, 1, 1) and dates[-1] == date(2024, 1, 31)

    def test_project_all_sorted_and_stable(self, make_schedule):
        first = make_schedule(id="a", day_of_month=25)
        second = make_schedule(id="b", day_of_month=20)
        third = make_schedule(id="c", day_of_month=20)

        occurrences = project_all([first, second, third], date(2024, 1, 17), date(2024, 1, 31))

        assert [(o.schedule.id, o.date.day) for o in occurrences] == [("b", 20), ("c", 20), ("a", 25)]


class TestHelpers:
    def test_fires_on(self, make_schedule):
        s = make_schedule()
        assert fires_on(s, date(2024, 1, 20))
        assert not fires_on(s, date(2024, 1, 21))
        assert not fires_on(make_schedule(is_active=False), date(2024, 1, 20))

    def test_next_occurrence(self, make_schedule, today):
        assert next_occurrence(make_schedule(), today) == date(2024, 1, 20)
        assert next_occurrence(make_schedule(end_date=date(2024, 1, 1)), today) is None


class TestCalendarLimits:
    def test_horizon_ending_on_last_representable_date(self, make_schedule):
        s = make_schedule(day_of_month=31, created_at=date(9999, 1, 1))
        assert _dates(project(s, date(9999, 12, 1), date.max)) == [date.max]

    def test_remaining_with_anchor_on_first_representable_date(self, make_schedule):
        s = make_schedule(
            frequency="daily", day_of_month=None, created_at=date.min, remaining_occurrences=2,
        )
        assert _dates(project(s, date.min, date(1, 1, 10))) == [date(1, 1, 1), date(1, 1, 2)]

    def test_next_occurrence_near_last_representable_date(self, make_schedule):
        s = make_schedule(day_of_month=31, created_at=date(9999, 1, 1))
        assert next_occurrence(s, date(9999, 12, 20)) == date.max
        assert next_occurrence(s, date.max) == date.max
