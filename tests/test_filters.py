"""
Tests for the filter pipeline and month grouping
"""

from datetime import date, datetime

import pytest

from kalender.core.filters import (
    apply_filters,
    events_by_day,
    events_on_day,
    format_event_count,
    matches_search,
)
from kalender.core.models import CalendarEvent, FilterCriteria

NOW = datetime(2026, 3, 14, 9, 30)


def make_event(event_id, when, title='Event', description='', category='Work'):
    return CalendarEvent(id=event_id, title=title, description=description, timestamp=when, category=category)


@pytest.fixture
def events():
    return [
        make_event('a', datetime(2026, 3, 10, 8, 0), 'Budget review', 'Quarterly numbers'),
        make_event('b', datetime(2026, 3, 14, 9, 30), 'Yoga', 'Bring the MAT', category='Personal'),
        make_event('c', datetime(2026, 3, 14, 23, 59), 'Call Alex', category='Family'),
        make_event('d', datetime(2026, 3, 20, 0, 0), 'Dentist', category='personal'),
        make_event('e', datetime(2026, 4, 2, 18, 0), 'Birthday', category='Family'),
    ]


class TestApplyFilters:
    """Filtering and ordering"""

    def test_empty_criteria_sorts_everything(self, events):
        shuffled = [events[3], events[0], events[4], events[2], events[1]]
        result = apply_filters(shuffled, FilterCriteria(), now=NOW)

        assert [e.id for e in result] == ['a', 'b', 'c', 'd', 'e']

    def test_equal_timestamps_keep_insertion_order(self):
        batch = [
            make_event('first', datetime(2026, 3, 14, 9, 0)),
            make_event('second', datetime(2026, 3, 14, 8, 0)),
            make_event('third', datetime(2026, 3, 14, 8, 0)),
        ]

        result = apply_filters(batch, FilterCriteria(), now=NOW)

        assert [e.id for e in result] == ['second', 'third', 'first']

    def test_idempotent(self, events):
        criteria = FilterCriteria(search_text='a', show_past_events=False)
        once = apply_filters(events, criteria, now=NOW)

        assert apply_filters(once, criteria, now=NOW) == once

    def test_input_not_mutated(self, events):
        original = list(events)
        apply_filters(list(reversed(events)), FilterCriteria(search_text='zzz'), now=NOW)
        assert events == original

    def test_search_is_case_insensitive_over_title_and_description(self, events):
        by_description = apply_filters(events, FilterCriteria(search_text='mat'), now=NOW)
        by_title = apply_filters(events, FilterCriteria(search_text='BUDGET'), now=NOW)

        assert [e.id for e in by_description] == ['b']
        assert [e.id for e in by_title] == ['a']

    def test_date_bounds_are_inclusive_and_ignore_time_of_day(self, events):
        criteria = FilterCriteria(start_date=date(2026, 3, 14), end_date=date(2026, 3, 20))
        result = apply_filters(events, criteria, now=NOW)

        assert [e.id for e in result] == ['b', 'c', 'd']

    def test_open_ended_bounds(self, events):
        after = apply_filters(events, FilterCriteria(start_date=date(2026, 3, 15)), now=NOW)
        before = apply_filters(events, FilterCriteria(end_date=date(2026, 3, 13)), now=NOW)

        assert [e.id for e in after] == ['d', 'e']
        assert [e.id for e in before] == ['a']

    def test_hide_past_keeps_events_starting_now(self, events):
        result = apply_filters(events, FilterCriteria(show_past_events=False), now=NOW)

        assert [e.id for e in result] == ['b', 'c', 'd', 'e']

    def test_category_match_is_case_insensitive(self, events):
        result = apply_filters(events, FilterCriteria(category='PERSONAL'), now=NOW)

        assert [e.id for e in result] == ['b', 'd']

    def test_filters_combine(self, events):
        criteria = FilterCriteria(
            search_text='dent',
            start_date=date(2026, 3, 1),
            end_date=date(2026, 3, 31),
            show_past_events=False,
            category='personal',
        )

        assert [e.id for e in apply_filters(events, criteria, now=NOW)] == ['d']


def test_matches_search():
    event = make_event('x', NOW, 'Planning', 'Sprint 12')

    assert matches_search(event, '')
    assert matches_search(event, 'sprint')
    assert not matches_search(event, 'retro')


def test_events_on_day(events):
    assert [e.id for e in events_on_day(events, date(2026, 3, 14))] == ['b', 'c']
    assert events_on_day(events, date(2026, 3, 15)) == []


def test_events_by_day_groups_one_month(events):
    grouped = events_by_day(list(reversed(events)), date(2026, 3, 1))

    assert list(grouped) == [date(2026, 3, 10), date(2026, 3, 14), date(2026, 3, 20)]
    assert [e.id for e in grouped[date(2026, 3, 14)]] == ['b', 'c']
    assert date(2026, 4, 2) not in grouped


@pytest.mark.parametrize('count,text', [
    (0, 'No events'),
    (1, '1 event'),
    (2, '2 events'),
    (57, '57 events'),
])
def test_format_event_count(count, text):
    assert format_event_count(count) == text
