"""
Tests for option validation and the filter engine.

Tests cover:
- Boundary validation of every command option
- Each predicate on its own
- Conjunction of predicates and order preservation
"""

from itertools import combinations

import pytest

from sage.errors import ValidationError
from sage.filters import (
    CLASS_NAME_ERROR,
    DAY_OF_WEEK_ERROR,
    EVENT_DATE_ERROR,
    LOCATION_TYPE_ERROR,
    describe,
    filter_events,
    parse_criteria,
    weekday_index,
)
from sage.models import FilterCriteria, LocationType
from sage.normalizer import normalize


@pytest.fixture
def events(week_of_events):
    return [normalize(raw) for raw in week_of_events]


def ids(events):
    return [e.event_id for e in events]


class TestParseCriteria:
    """Tests for boundary validation."""

    def test_no_options(self):
        assert parse_criteria().is_empty

    def test_blank_options_are_unset(self):
        assert parse_criteria(classname="", locationtype="  ", dayofweek="").is_empty

    @pytest.mark.parametrize("value", ["cisc123", "CISC123", "Cisc999"])
    def test_valid_class_name(self, value):
        assert parse_criteria(classname=value).class_name == value.lower()

    @pytest.mark.parametrize("value", ["cisc12", "cisc1234", "math123", "cisc 123", "123"])
    def test_invalid_class_name(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_criteria(classname=value)
        assert exc.value.message == CLASS_NAME_ERROR

    @pytest.mark.parametrize("value,expected", [
        ("IP", LocationType.IN_PERSON),
        ("V", LocationType.VIRTUAL),
        ("v", LocationType.VIRTUAL),
    ])
    def test_valid_location_type(self, value, expected):
        assert parse_criteria(locationtype=value).location_type is expected

    @pytest.mark.parametrize("value", ["virtual", "X", "I P"])
    def test_invalid_location_type(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_criteria(locationtype=value)
        assert exc.value.message == LOCATION_TYPE_ERROR

    @pytest.mark.parametrize("value,expected", [
        ("december 12", (12, 12)),
        ("December 9", (12, 9)),
        ("february 29", (2, 29)),
        ("january 31", (1, 31)),
    ])
    def test_valid_event_date(self, value, expected):
        assert parse_criteria(eventdate=value).event_date == expected

    @pytest.mark.parametrize("value", [
        "december 32",
        "april 31",
        "february 30",
        "december 0",
        "dec 12",
        "12/12",
        "december 123",
        "december",
    ])
    def test_invalid_event_date(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_criteria(eventdate=value)
        assert exc.value.message == EVENT_DATE_ERROR

    def test_day_of_week(self):
        assert parse_criteria(dayofweek="Sunday").day_of_week == 0
        assert parse_criteria(dayofweek="saturday").day_of_week == 6

    def test_invalid_day_of_week(self):
        with pytest.raises(ValidationError) as exc:
            parse_criteria(dayofweek="funday")
        assert exc.value.message == DAY_OF_WEEK_ERROR

    def test_event_holder_kept_verbatim(self):
        assert parse_criteria(eventholder=" Dr. Smith ").event_holder == "Dr. Smith"


class TestPredicates:
    """Tests for each filter on its own."""

    def test_no_criteria_returns_everything_in_order(self, events):
        assert filter_events(events, FilterCriteria()) == events

    def test_class_name_exact_match(self, events):
        result = filter_events(events, FilterCriteria(class_name="cisc123"))
        assert ids(result) == ["evt1", "evt3"]

    def test_class_name_is_not_substring(self, events):
        assert filter_events(events, FilterCriteria(class_name="cisc12")) == []

    def test_location_type(self, events):
        virtual = filter_events(events, FilterCriteria(location_type=LocationType.VIRTUAL))
        assert ids(virtual) == ["evt2", "evt3"]
        in_person = filter_events(events, FilterCriteria(location_type=LocationType.IN_PERSON))
        assert ids(in_person) == ["evt1", "evt4", "evt5", "evt6", "evt7"]

    def test_event_holder_substring_case_insensitive(self, events):
        result = filter_events(events, FilterCriteria(event_holder="smith"))
        assert ids(result) == ["evt1", "evt4"]

    def test_event_date(self, events):
        result = filter_events(events, FilterCriteria(event_date=(12, 12)))
        assert ids(result) == ["evt4"]

    def test_event_date_does_not_match_prefix_day(self, events):
        assert filter_events(events, FilterCriteria(event_date=(12, 1))) == []

    def test_event_date_all_day(self, events):
        assert ids(filter_events(events, FilterCriteria(event_date=(12, 15)))) == ["evt7"]

    def test_day_of_week(self, events):
        monday = filter_events(events, FilterCriteria(day_of_week=1))
        assert ids(monday) == ["evt1"]
        sunday = filter_events(events, FilterCriteria(day_of_week=0))
        assert ids(sunday) == ["evt7"]

    def test_weekday_uses_event_offset(self, events):
        # 2024-12-13 is a Friday
        assert weekday_index(events[4]) == 5

    def test_unparseable_start_fails_date_filters(self, events):
        broken = events[0]
        broken.start = "soon"
        assert filter_events([broken], FilterCriteria(day_of_week=1)) == []
        assert filter_events([broken], FilterCriteria(event_date=(12, 9))) == []


class TestConjunction:
    """Tests for combined criteria."""

    ALL = {
        "class_name": "cisc220",
        "location_type": LocationType.IN_PERSON,
        "event_holder": "jones",
        "event_date": (12, 14),
        "day_of_week": 6,
    }

    def test_all_criteria(self, events):
        assert ids(filter_events(events, FilterCriteria(**self.ALL))) == ["evt6"]

    def test_any_subset_equals_intersection(self, events):
        """Test that every subset equals the intersection of single filters."""
        keys = list(self.ALL)
        for size in range(len(keys) + 1):
            for subset in combinations(keys, size):
                combined = filter_events(events, FilterCriteria(**{k: self.ALL[k] for k in subset}))
                expected = list(events)
                for k in subset:
                    single = filter_events(events, FilterCriteria(**{k: self.ALL[k]}))
                    expected = [e for e in expected if e in single]
                assert combined == expected, subset

    def test_over_filtering_returns_empty(self, events):
        criteria = FilterCriteria(class_name="cisc123", location_type=LocationType.VIRTUAL, event_holder="smith")
        assert filter_events(events, criteria) == []


class TestDescribe:
    def test_describe(self):
        assert describe(FilterCriteria()) == ""
        assert describe(FilterCriteria(class_name="cisc123")) == "for cisc123"
        assert describe(FilterCriteria(class_name="cisc123", location_type=LocationType.VIRTUAL)) == "for cisc123 (Virtual)"
