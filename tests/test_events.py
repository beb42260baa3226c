"""Tests for the calendar event model and EventsService."""

from __future__ import annotations

import pytest

from minato.services.events import (
    CalendarEvent,
    EventNotFoundError,
    EventsService,
    EventUpdate,
    EventValidationError,
)


@pytest.fixture
def events(document_store):
    return EventsService(document_store)


def _lunch(**overrides):
    data = {
        "title": "Lunch with Ada",
        "date": "2025-03-14",
        "start_time": "12:30",
        "end_time": "13:30",
        "location": "Downtown Bistro",
        "collaborators": [{"name": "Ada"}],
    }
    data.update(overrides)
    return data


class TestCalendarEventModel:
    def test_defaults(self):
        event = CalendarEvent(title="Standup", date="2025-03-14")
        assert event.id
        assert event.location == ""
        assert event.collaborators == []
        assert event.all_day is False

    def test_all_day_clears_times(self):
        event = CalendarEvent(
            title="Offsite", date="2025-03-14", start_time="09:00", end_time="17:00", all_day=True,
        )
        assert event.start_time is None
        assert event.end_time is None

    def test_duplicate_collaborators_and_reminders_dropped(self):
        event = CalendarEvent(
            title="Review",
            date="2025-03-14",
            collaborators=[{"name": "Ada"}, {"name": "Bob"}, {"name": "Ada"}],
            reminders=[
                {"time_before": "15m", "method": "popup"},
                {"time_before": "15m", "method": "popup"},
            ],
        )
        assert [c.name for c in event.collaborators] == ["Ada", "Bob"]
        assert len(event.reminders) == 1

    @pytest.mark.parametrize(
        "field,value",
        [("date", "14/03/2025"), ("start_time", "25:00"), ("end_time", "9am")],
    )
    def test_malformed_date_or_time_rejected(self, field, value):
        with pytest.raises(ValueError):
            CalendarEvent(**_lunch(**{field: value}))

    def test_none_text_fields_become_empty(self):
        event = CalendarEvent(title="x", date="2025-03-14", location=None, description=None)
        assert event.location == ""
        assert event.description == ""


class TestCreateAndRead:
    def test_create_assigns_id_and_persists(self, events):
        created = events.create_event("client-1", _lunch())
        assert created.id

        stored = events.get_event("client-1", created.id)
        assert stored == created

    def test_create_requires_title_and_date(self, events):
        with pytest.raises(EventValidationError, match="title and a date"):
            events.create_event("client-1", {"title": "No date"})

    def test_create_reports_malformed_fields(self, events):
        with pytest.raises(EventValidationError, match="start_time"):
            events.create_event("client-1", _lunch(start_time="noon"))

    def test_create_with_taken_id_rejected(self, events):
        events.create_event("client-1", _lunch(id="evt-1"))
        with pytest.raises(EventValidationError, match="already exists"):
            events.create_event("client-1", _lunch(id="evt-1"))

    def test_same_id_allowed_for_different_clients(self, events):
        events.create_event("client-1", _lunch(id="evt-1"))
        events.create_event("client-2", _lunch(id="evt-1"))
        assert len(events.list_events("client-2")) == 1

    def test_empty_id_is_replaced(self, events):
        created = events.create_event("client-1", _lunch(id=""))
        assert created.id

    def test_list_is_scoped_to_client_and_sorted(self, events):
        events.create_event("client-1", _lunch(title="Later", date="2025-03-20"))
        events.create_event("client-1", _lunch(title="Sooner", date="2025-03-10"))
        events.create_event("client-2", _lunch(title="Not mine"))

        titles = [e.title for e in events.list_events("client-1")]
        assert titles == ["Sooner", "Later"]

    def test_get_missing_event(self, events):
        with pytest.raises(EventNotFoundError):
            events.get_event("client-1", "nope")


class TestUpdate:
    def test_partial_update_keeps_other_fields(self, events):
        created = events.create_event("client-1", _lunch())
        updated = events.update_event(
            "client-1", created.id, EventUpdate(start_time="13:00", end_time="14:00"),
        )

        assert updated.id == created.id
        assert updated.start_time == "13:00"
        assert updated.title == "Lunch with Ada"
        assert updated.location == "Downtown Bistro"
        assert events.get_event("client-1", created.id) == updated

    def test_update_to_all_day_clears_times(self, events):
        created = events.create_event("client-1", _lunch())
        updated = events.update_event("client-1", created.id, EventUpdate(all_day=True))
        assert updated.start_time is None
        assert updated.end_time is None
        assert events.get_event("client-1", created.id).start_time is None

    def test_empty_update_rejected(self, events):
        created = events.create_event("client-1", _lunch())
        with pytest.raises(EventValidationError, match="No fields"):
            events.update_event("client-1", created.id, EventUpdate())

    def test_invalid_update_rejected(self, events):
        created = events.create_event("client-1", _lunch())
        with pytest.raises(EventValidationError, match="date"):
            events.update_event("client-1", created.id, EventUpdate(date="next friday"))

    def test_update_unknown_event(self, events):
        with pytest.raises(EventNotFoundError):
            events.update_event("client-1", "nope", EventUpdate(title="x"))

    def test_update_cannot_change_id(self):
        with pytest.raises(ValueError):
            EventUpdate(id="other")


class TestDelete:
    def test_delete_removes_event(self, events):
        created = events.create_event("client-1", _lunch())
        events.delete_event("client-1", created.id)
        assert events.list_events("client-1") == []

    def test_delete_unknown_event(self, events):
        with pytest.raises(EventNotFoundError):
            events.delete_event("client-1", "nope")

    def test_delete_is_scoped_to_client(self, events):
        created = events.create_event("client-1", _lunch())
        with pytest.raises(EventNotFoundError):
            events.delete_event("client-2", created.id)
        assert len(events.list_events("client-1")) == 1
