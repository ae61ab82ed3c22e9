"""
Tests for the in-memory event store
"""

import asyncio
from datetime import date, datetime

import pytest

from kalender.core.errors import EventNotFoundError, ValidationError
from kalender.core.models import CalendarEvent, EventFields, StoreState
from kalender.core.store import EventStore


class TestEventStoreCrud:
    """Add, update, delete and lookup by id"""

    @pytest.mark.asyncio
    async def test_add_then_snapshot(self, sample_fields):
        store = EventStore()
        event_id = await store.add(sample_fields[0])

        events = await store.snapshot()
        assert len(events) == 1
        assert events[0].id == event_id
        assert events[0].title == 'Team standup'
        assert events[0].timestamp == datetime(2026, 3, 16, 9, 0)
        assert events[0].notified is False

    @pytest.mark.asyncio
    async def test_ids_are_unique_and_order_is_insertion(self, sample_fields):
        store = EventStore()
        ids = [await store.add(fields) for fields in sample_fields]

        assert len(set(ids)) == 3
        assert [e.id for e in await store.snapshot()] == ids

    @pytest.mark.asyncio
    async def test_invalid_add_leaves_store_unchanged(self, sample_fields):
        store = EventStore()
        await store.add(sample_fields[0])

        with pytest.raises(ValidationError):
            await store.add({**sample_fields[1], 'priority': 42})

        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_update_keeps_identity_and_position(self, sample_fields):
        store = EventStore()
        ids = [await store.add(fields) for fields in sample_fields]

        updated = await store.update(ids[1], {'title': 'Dentist (moved room)'})

        assert updated.id == ids[1]
        assert updated.description == 'Bring insurance card'
        events = await store.snapshot()
        assert [e.id for e in events] == ids
        assert events[1].title == 'Dentist (moved room)'

    @pytest.mark.asyncio
    async def test_update_with_event_fields_replaces_everything(self, sample_fields):
        store = EventStore()
        event_id = await store.add(sample_fields[1])

        replacement = EventFields(title='Checkup', timestamp=datetime(2026, 3, 15, 14, 30))
        updated = await store.update(event_id, replacement)

        assert updated.title == 'Checkup'
        assert updated.description == ''
        assert updated.category == 'Work'

    @pytest.mark.asyncio
    async def test_update_preserves_notified_when_time_unchanged(self, sample_fields):
        store = EventStore()
        event_id = await store.add(sample_fields[0])
        await store.mark_notified(event_id)

        updated = await store.update(event_id, {'location': 'Room 5'})

        assert updated.notified is True

    @pytest.mark.asyncio
    async def test_update_rearms_when_time_changes(self, sample_fields):
        store = EventStore()
        event_id = await store.add(sample_fields[0])
        await store.mark_notified(event_id)

        updated = await store.update(event_id, {'timestamp': datetime(2026, 3, 17, 9, 0)})

        assert updated.notified is False

    @pytest.mark.asyncio
    async def test_invalid_update_leaves_event_unchanged(self, sample_fields):
        store = EventStore()
        event_id = await store.add(sample_fields[0])

        with pytest.raises(ValidationError):
            await store.update(event_id, {'title': '  '})

        assert (await store.get(event_id)).title == 'Team standup'

    @pytest.mark.asyncio
    async def test_missing_ids_raise_not_found(self):
        store = EventStore()

        with pytest.raises(EventNotFoundError):
            await store.update('nope', {'title': 'x'})
        with pytest.raises(EventNotFoundError):
            await store.delete('nope')
        with pytest.raises(EventNotFoundError) as exc_info:
            await store.get('nope')

        assert exc_info.value.event_id == 'nope'
        assert await store.contains('nope') is False

    @pytest.mark.asyncio
    async def test_delete_removes_only_the_identified_event(self, sample_fields):
        store = EventStore()
        # Two events with identical fields stay distinguishable by id
        first = await store.add(sample_fields[0])
        second = await store.add(sample_fields[0])

        removed = await store.delete(first)

        assert removed.id == first
        assert [e.id for e in await store.snapshot()] == [second]

    @pytest.mark.asyncio
    async def test_extend_validates_whole_batch_first(self, sample_fields):
        store = EventStore()
        batch = sample_fields + [{'title': '', 'timestamp': datetime(2026, 3, 1)}]

        with pytest.raises(ValidationError):
            await store.extend(batch)

        assert await store.count() == 0
        ids = await store.extend(sample_fields)
        assert len(ids) == 3
        assert await store.count() == 3


class TestSnapshots:
    """Readers keep a stable view while writers proceed"""

    @pytest.mark.asyncio
    async def test_snapshot_is_isolated_from_later_writes(self, sample_fields):
        store = EventStore()
        event_id = await store.add(sample_fields[0])
        snapshot = await store.snapshot()

        await store.update(event_id, {'title': 'Changed'})
        await store.add(sample_fields[1])
        await store.delete(event_id)

        assert len(snapshot) == 1
        assert snapshot[0].title == 'Team standup'


class TestMarkNotified:
    """Check-and-set on the reminder flag"""

    @pytest.mark.asyncio
    async def test_flag_flips_once(self, sample_fields):
        store = EventStore()
        event_id = await store.add(sample_fields[0])

        assert await store.mark_notified(event_id) is True
        assert await store.mark_notified(event_id) is False
        assert (await store.get(event_id)).notified is True

    @pytest.mark.asyncio
    async def test_stale_timestamp_is_refused(self, sample_fields):
        store = EventStore()
        event_id = await store.add(sample_fields[0])
        await store.update(event_id, {'timestamp': datetime(2026, 3, 20, 9, 0)})

        assert await store.mark_notified(event_id, datetime(2026, 3, 16, 9, 0)) is False
        assert (await store.get(event_id)).notified is False

    @pytest.mark.asyncio
    async def test_unknown_id(self):
        assert await EventStore().mark_notified('nope') is False

    @pytest.mark.asyncio
    async def test_concurrent_flips_succeed_once(self, sample_fields):
        store = EventStore()
        event_id = await store.add(sample_fields[0])

        results = await asyncio.gather(*[store.mark_notified(event_id) for _ in range(20)])

        assert results.count(True) == 1


class TestStoreState:
    """Export and replace"""

    @pytest.mark.asyncio
    async def test_display_month_normalized(self):
        store = EventStore(display_month=date(2026, 3, 14))
        assert await store.get_display_month() == date(2026, 3, 1)

        assert await store.set_display_month(date(2026, 7, 31)) == date(2026, 7, 1)

    @pytest.mark.asyncio
    async def test_export_and_replace(self, sample_fields):
        store = EventStore(display_month=date(2026, 3, 1))
        await store.extend(sample_fields)
        state = await store.export_state()

        other = EventStore()
        await other.add({'title': 'Will be replaced', 'timestamp': datetime(2026, 1, 1)})
        await other.replace_all(state)

        assert await other.snapshot() == state.events
        assert await other.get_display_month() == date(2026, 3, 1)

    @pytest.mark.asyncio
    async def test_constructed_from_events(self):
        event = CalendarEvent(id='fixed', title='x', timestamp=datetime(2026, 3, 14))
        store = EventStore(events=[event])

        assert await store.get('fixed') == event
        assert isinstance(await store.export_state(), StoreState)


@pytest.mark.asyncio
async def test_concurrent_adds_keep_every_event(sample_fields):
    store = EventStore()
    count = 200

    async def reader():
        for _ in range(20):
            for event in await store.snapshot():
                await store.mark_notified(event.id)
            await asyncio.sleep(0)

    results = await asyncio.gather(
        *[store.add({**sample_fields[i % 3], 'title': f'Event {i}'}) for i in range(count)],
        reader(),
        reader(),
    )

    ids = results[:count]
    assert len(set(ids)) == count
    assert await store.count() == count
    assert {e.title for e in await store.snapshot()} == {f'Event {i}' for i in range(count)}
