"""Calendar tools for the events agent.

Each handler performs one ``EventsService`` operation for the client bound
to the run and reports the outcome as an instruction note.  Event errors
raised by the service propagate to ``ToolRegistry.dispatch``, which turns
them into failure notes.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from minato.services.events import CalendarEvent, Collaborator, EventsService, EventUpdate, Reminder
from minato.tools.registry import ToolContext, ToolId, ToolResult, ToolSpec


def _or_na(value: str | None) -> str:
    return value or "N/A"


def describe_event(event: CalendarEvent) -> str:
    """One-line summary used when listing events."""
    collaborators = ", ".join(c.name for c in event.collaborators) or "None"
    return (
        f"Event ID: {event.id}, Title: {event.title}, Date: {event.date}, "
        f"Start Time: {_or_na(event.start_time)}, End Time: {_or_na(event.end_time)}, "
        f"Location: {_or_na(event.location)}, Description: {_or_na(event.description)}, "
        f"Collaborators: {collaborators}, All Day: {'Yes' if event.all_day else 'No'}."
    )


def event_details(event: CalendarEvent) -> str:
    """Multi-line block used when confirming a write."""
    reminders = ", ".join(f"{r.time_before} before via {r.method}" for r in event.reminders)
    collaborators = ", ".join(c.name for c in event.collaborators)
    return (
        "**Event Details:**\n"
        f"- **ID**: {event.id}\n"
        f"- **Title**: {event.title}\n"
        f"- **Date**: {event.date}\n"
        f"- **Start Time**: {_or_na(event.start_time)}\n"
        f"- **End Time**: {_or_na(event.end_time)}\n"
        f"- **Location**: {_or_na(event.location)}\n"
        f"- **Description**: {_or_na(event.description)}\n"
        f"- **Collaborators**: {collaborators or 'None'}\n"
        f"- **Reminders**: {reminders or 'None'}\n"
        f"- **All Day Event**: {'Yes' if event.all_day else 'No'}"
    )


# ── Argument schemas ────────────────────────────────────────────────


class GetClientEventsArgs(BaseModel):
    pass


class AddClientEventArgs(BaseModel):
    id: str | None = Field(
        default=None, description="Optional ID for the new event. One is generated when omitted.",
    )
    title: str = Field(..., description="The title of the event.")
    date: str = Field(..., description="The date of the event, in YYYY-MM-DD format.")
    start_time: str | None = Field(default=None, description="Start time, HH:MM (24-hour).")
    end_time: str | None = Field(default=None, description="End time, HH:MM (24-hour).")
    location: str | None = Field(default=None, description="Where the event takes place.")
    description: str | None = Field(default=None, description="A short description of the event.")
    collaborators: list[Collaborator] | None = Field(
        default=None, description="People taking part in the event.",
    )
    reminders: list[Reminder] | None = Field(
        default=None, description="Reminders to fire before the event.",
    )
    all_day: bool = Field(
        default=False, description="Whether the event lasts all day. All-day events have no times.",
    )


class UpdateClientEventArgs(BaseModel):
    eventId: str = Field(..., description="The ID of the event to update, as listed by get_client_events.")
    updateFields: EventUpdate = Field(
        ..., description="Only the fields to change. Fields left out keep their current values.",
    )


class DeleteClientEventArgs(BaseModel):
    eventId: str = Field(..., description="The ID of the event to delete, as listed by get_client_events.")


_NO_REFETCH = "Do not call the 'get_client_events' function again unless instructed."


def build_calendar_specs(events: EventsService) -> list[ToolSpec]:
    """Tool specs for the events agent, all backed by *events*."""

    def get_client_events(args: GetClientEventsArgs, context: ToolContext) -> ToolResult:
        found = events.list_events(context.client_id)
        if found:
            listing = "Events for the client:\n" + "\n".join(describe_event(e) for e in found)
        else:
            listing = "No events were found for the client."
        return ToolResult(
            tag=ToolId.GET_CLIENT_EVENTS,
            content=(
                f"{listing}\n\n###INSTRUCTION: If you are seeing this message that means "
                "you've successfully performed a get_client_events function. "
                f"{_NO_REFETCH} Continue with the user's request, or return an assistant "
                "response answering the user's query."
            ),
        )

    def add_client_event(args: AddClientEventArgs, context: ToolContext) -> ToolResult:
        event = events.create_event(context.client_id, args.model_dump(exclude_none=True))
        return ToolResult(
            tag=ToolId.ADD_CLIENT_EVENT,
            content=(
                "###INSTRUCTION: Successfully created a new event.\n\n"
                f"{event_details(event)}\n\n"
                f"{_NO_REFETCH} Return an assistant response confirming your action for the user."
            ),
        )

    def update_client_event(args: UpdateClientEventArgs, context: ToolContext) -> ToolResult:
        event = events.update_event(context.client_id, args.eventId, args.updateFields)
        return ToolResult(
            tag=ToolId.UPDATE_CLIENT_EVENT,
            content=(
                "###INSTRUCTION: Successfully updated the event.\n\n"
                f"{event_details(event)}\n\n"
                f"{_NO_REFETCH} Return an assistant response confirming your action for the user."
            ),
        )

    def delete_client_event(args: DeleteClientEventArgs, context: ToolContext) -> ToolResult:
        event = events.get_event(context.client_id, args.eventId)
        events.delete_event(context.client_id, args.eventId)
        return ToolResult(
            tag=ToolId.DELETE_CLIENT_EVENT,
            content=(
                f"###INSTRUCTION: Successfully deleted the event '{event.title}' "
                f"on {event.date} (ID {event.id}). "
                f"{_NO_REFETCH} Return an assistant response confirming your action for the user."
            ),
        )

    return [
        ToolSpec(
            id=ToolId.GET_CLIENT_EVENTS,
            description="Retrieve every event in the client's calendar.",
            args_schema=GetClientEventsArgs,
            handler=get_client_events,
        ),
        ToolSpec(
            id=ToolId.ADD_CLIENT_EVENT,
            description="Add a new event to the client's calendar. Title and date are required.",
            args_schema=AddClientEventArgs,
            handler=add_client_event,
        ),
        ToolSpec(
            id=ToolId.UPDATE_CLIENT_EVENT,
            description="Update selected fields of an existing event in the client's calendar.",
            args_schema=UpdateClientEventArgs,
            handler=update_client_event,
        ),
        ToolSpec(
            id=ToolId.DELETE_CLIENT_EVENT,
            description="Delete an event from the client's calendar.",
            args_schema=DeleteClientEventArgs,
            handler=delete_client_event,
        ),
    ]
