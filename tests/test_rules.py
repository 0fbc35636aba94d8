"""Unit tests for dynamic multiplier rule selection."""

import itertools
from decimal import Decimal

import pytest

from pricing_engine.domain.entities import HourWindow
from pricing_engine.domain.rules import RuleMatcher, day_of_week
from tests.conftest import at, make_rule


class TestHourWindow:
    @pytest.mark.parametrize("hour", [22, 23, 0, 1])
    def test_wrapping_window_covers_past_midnight(self, hour):
        assert HourWindow(22, 2).contains(hour)

    @pytest.mark.parametrize("hour", [2, 5, 12, 21])
    def test_wrapping_window_excludes_daytime(self, hour):
        assert not HourWindow(22, 2).contains(hour)

    def test_end_hour_is_exclusive(self):
        window = HourWindow(8, 20)
        assert window.contains(8)
        assert window.contains(19)
        assert not window.contains(20)

    def test_equal_bounds_cover_whole_day(self):
        window = HourWindow(6, 6)
        assert all(window.contains(h) for h in range(24))


class TestRuleMatcher:
    def setup_method(self):
        self.matcher = RuleMatcher()

    def test_weekday_numbering_starts_on_sunday(self):
        assert day_of_week(at(18, 12)) == 0  # Sunday
        assert day_of_week(at(16, 12)) == 5  # Friday

    def test_no_rules_means_neutral_multiplier(self):
        assert self.matcher.select_rule([], at(16, 19)) is None
        assert self.matcher.multiplier_at([], at(16, 19)) == Decimal("1")

    def test_friday_evening_rule_matches(self):
        rule = make_rule(day_of_week=5, start_hour=18, end_hour=23, multiplier=1.5, priority=10)
        assert self.matcher.select_rule([rule], at(16, 19)) == rule
        assert self.matcher.select_rule([rule], at(15, 19)) is None  # Thursday
        assert self.matcher.select_rule([rule], at(16, 23)) is None

    def test_inactive_rules_are_ignored(self):
        rule = make_rule(is_active=False)
        assert self.matcher.select_rule([rule], at(16, 19)) is None

    def test_night_rule_wraps_midnight(self):
        rule = make_rule(start_hour=22, end_hour=2)
        for hour in (22, 23, 0, 1):
            assert self.matcher.select_rule([rule], at(16, hour)) == rule
        assert self.matcher.select_rule([rule], at(16, 5)) is None

    def test_highest_priority_wins(self):
        low = make_rule(id="a-low", multiplier=2.0, priority=1, day_of_week=5, start_hour=18, end_hour=23)
        high = make_rule(id="z-high", multiplier=1.1, priority=9)
        assert self.matcher.select_rule([low, high], at(16, 19)) == high

    def test_specificity_breaks_priority_ties(self):
        always = make_rule(id="a-always", priority=5)
        hours = make_rule(id="b-hours", priority=5, start_hour=18, end_hour=23)
        day = make_rule(id="c-day", priority=5, day_of_week=5)
        both = make_rule(id="d-both", priority=5, day_of_week=5, start_hour=18, end_hour=23)
        rules = [always, hours, day, both]

        assert self.matcher.select_rule(rules, at(16, 19)) == both
        assert self.matcher.select_rule([always, hours, day], at(16, 19)) == day
        assert self.matcher.select_rule([always, hours], at(16, 19)) == hours
        assert self.matcher.select_rule([always], at(16, 19)) == always

    def test_smallest_id_breaks_full_ties(self):
        first = make_rule(id="rule-a", multiplier=1.2)
        second = make_rule(id="rule-b", multiplier=1.4)
        assert self.matcher.select_rule([second, first], at(16, 19)) == first

    def test_selection_is_independent_of_input_order(self):
        rules = [
            make_rule(id="r1", priority=3, start_hour=18, end_hour=23),
            make_rule(id="r2", priority=3, day_of_week=5),
            make_rule(id="r3", priority=1, day_of_week=5, start_hour=18, end_hour=23),
            make_rule(id="r4", priority=3),
        ]
        picks = {
            self.matcher.select_rule(list(order), at(16, 19)).id
            for order in itertools.permutations(rules)
        }
        assert picks == {"r2"}

    def test_chosen_priority_is_never_below_another_match(self):
        rules = [
            make_rule(id=f"r{i}", priority=p, start_hour=s, end_hour=e)
            for i, (p, s, e) in enumerate(
                [(1, None, None), (7, 18, 23), (4, 22, 2), (9, 6, 10), (7, 0, 0)]
            )
        ]
        for hour in range(24):
            moment = at(16, hour)
            chosen = self.matcher.select_rule(rules, moment)
            matches = self.matcher.matching_rules(rules, moment)
            assert all(chosen.priority >= r.priority for r in matches)
