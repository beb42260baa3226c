"""Calendar events: the domain model and its storage-adjacent service.

``CalendarEvent`` owns the event invariants (an all-day event has no start
or end time; collaborators and reminders carry no duplicates).
``EventsService`` applies them on every write and turns storage outcomes
into domain errors that the calendar tools report back to the model.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from minato.errors import DomainError
from minato.services.document_store import DocumentStore, DuplicateEventError

logger = logging.getLogger(__name__)

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class EventError(DomainError):
    """Base class for calendar domain failures."""


class EventValidationError(EventError):
    """The event data is incomplete or malformed."""


class EventNotFoundError(EventError):
    """No event with the given id exists for the client."""


class Collaborator(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, description="The name of the collaborator.")


class Reminder(BaseModel):
    model_config = ConfigDict(extra="ignore")

    time_before: str = Field(
        ...,
        min_length=1,
        description="How long before the event the reminder fires (e.g. '15m', '1h', '1d').",
    )
    method: str = Field(..., min_length=1, description="Reminder method (e.g. 'popup', 'email').")


def _dedupe(items: list[BaseModel]) -> list[BaseModel]:
    seen: set[tuple] = set()
    unique = []
    for item in items:
        key = tuple(item.model_dump().values())
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


class CalendarEvent(BaseModel):
    """A single calendar entry belonging to one client."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), min_length=1, max_length=64)
    title: str = Field(..., min_length=1)
    date: str = Field(..., pattern=DATE_PATTERN)
    start_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    end_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    location: str = ""
    description: str = ""
    collaborators: list[Collaborator] = Field(default_factory=list)
    reminders: list[Reminder] = Field(default_factory=list)
    all_day: bool = False

    @field_validator("location", "description", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("collaborators", "reminders", mode="before")
    @classmethod
    def _none_as_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @model_validator(mode="after")
    def _apply_invariants(self) -> CalendarEvent:
        if self.all_day:
            self.start_time = None
            self.end_time = None
        self.collaborators = _dedupe(self.collaborators)
        self.reminders = _dedupe(self.reminders)
        return self

    def to_record(self) -> dict[str, Any]:
        return self.model_dump()


class EventUpdate(BaseModel):
    """Partial update: only the fields that are set get merged.  ``id`` is immutable."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    location: str | None = None
    description: str | None = None
    collaborators: list[Collaborator] | None = None
    reminders: list[Reminder] | None = None
    all_day: bool | None = None


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "event"
        problems.append(f"{location}: {err.get('msg')}")
    return "; ".join(problems)


class EventsService:
    """CRUD over a client's calendar events."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list_events(self, client_id: str) -> list[CalendarEvent]:
        return [CalendarEvent.model_validate(r) for r in self._store.list_events(client_id)]

    def get_event(self, client_id: str, event_id: str) -> CalendarEvent:
        record = self._store.get_event(client_id, event_id)
        if record is None:
            raise EventNotFoundError(f"Event with id {event_id} not found.")
        return CalendarEvent.model_validate(record)

    def create_event(self, client_id: str, data: dict[str, Any]) -> CalendarEvent:
        """Validate *data* into an event and store it.

        Raises ``EventValidationError`` when required fields are missing or
        malformed, or when the supplied id is already taken.
        """
        if not data.get("title") or not data.get("date"):
            raise EventValidationError("Event must have a title and a date.")
        clean = {k: v for k, v in data.items() if not (k == "id" and not v)}
        try:
            event = CalendarEvent.model_validate(clean)
        except ValidationError as exc:
            raise EventValidationError(
                f"Invalid event: {_describe_validation_error(exc)}"
            ) from exc

        try:
            self._store.insert_event(client_id, event.to_record())
        except DuplicateEventError as exc:
            raise EventValidationError(str(exc)) from exc
        logger.info("Created event %s (%s) for client %s", event.id, event.title, client_id)
        return event

    def update_event(self, client_id: str, event_id: str, update: EventUpdate) -> CalendarEvent:
        """Merge the set fields of *update* into the stored event."""
        current = self.get_event(client_id, event_id)
        changes = update.model_dump(exclude_unset=True)
        if not changes:
            raise EventValidationError("No fields to update were provided.")

        merged = current.to_record() | changes
        merged["id"] = current.id
        try:
            event = CalendarEvent.model_validate(merged)
        except ValidationError as exc:
            raise EventValidationError(
                f"Invalid update: {_describe_validation_error(exc)}"
            ) from exc

        if not self._store.replace_event(client_id, event_id, event.to_record()):
            raise EventNotFoundError(f"Event with id {event_id} not found.")
        logger.info("Updated event %s for client %s: %s", event_id, client_id, sorted(changes))
        return event

    def delete_event(self, client_id: str, event_id: str) -> None:
        if not self._store.delete_event(client_id, event_id):
            raise EventNotFoundError(f"Event with id {event_id} not found.")
        logger.info("Deleted event %s for client %s", event_id, client_id)
