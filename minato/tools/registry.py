"""Tool registry and dispatch for the agent loops.

Each agent instance owns one ``ToolRegistry``, fixed at construction: a
closed mapping from ``ToolId`` to a ``ToolSpec`` (pydantic argument schema
plus handler).  The registry renders the schemas the completion service
sees and dispatches one model-issued call at a time.

Handlers perform exactly one side effect and answer with a ``ToolResult``:
a note for the model, tagged with the tool id so the engine can upsert it
into history.  Bad arguments and domain failures do not abort the run;
they come back as failure notes the model can react to.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from langchain_core.utils.function_calling import convert_to_openai_tool
from pydantic import BaseModel, Field, ValidationError

from minato.errors import DomainError
from minato.services.llm import ToolCall

logger = logging.getLogger(__name__)


class ToolId(StrEnum):
    """Every tool any agent can expose.  The value is the wire name."""

    TRY_TO_REMEMBER = "try_to_remember"
    QUERY_EVENTS_AGENT = "query_events_agent"
    GET_CLIENT_EVENTS = "get_client_events"
    ADD_CLIENT_EVENT = "add_client_event"
    UPDATE_CLIENT_EVENT = "update_client_event"
    DELETE_CLIENT_EVENT = "delete_client_event"
    SUSPEND_THREAD = "suspend_thread"


@dataclass
class ToolContext:
    """Per-run facts handlers need but the model must not choose."""

    client_id: str
    user_text: str
    calls: Counter = field(default_factory=Counter)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool call, written for the model rather than the user.

    ``content`` becomes a system note tagged ``tag``.  ``context``, when
    set, becomes the context note at the start of history.
    """

    tag: str
    content: str
    succeeded: bool = True
    context: str | None = None


Handler = Callable[[Any, ToolContext], ToolResult]


@dataclass(frozen=True)
class ToolSpec:
    id: ToolId
    description: str
    args_schema: type[BaseModel]
    handler: Handler | None = None

    def schema(self) -> dict[str, Any]:
        """OpenAI-style function schema; both providers accept it via LangChain."""
        tool = convert_to_openai_tool(self.args_schema)
        tool["function"]["name"] = self.id.value
        tool["function"]["description"] = self.description
        return tool


# ── Terminate tool ──────────────────────────────────────────────────


class SuspendThreadArgs(BaseModel):
    suspensionReasoning: str = Field(
        default="",
        description=(
            "Provide a reason for suspending the thread. This can be a statement "
            "indicating that you're suspending the thread."
        ),
    )


SUSPEND_THREAD = ToolSpec(
    id=ToolId.SUSPEND_THREAD,
    description=(
        "Use this function when you'd like to suspend the current thread of "
        "conversation. You are effectively ending the conversation with the user. "
        "This is usually an option after you've provided a non-function response "
        "to the user and the thread is returned to you."
    ),
    args_schema=SuspendThreadArgs,
)


def failure_note(tool: str, reason: str) -> str:
    return (
        f"###ERROR: The '{tool}' call failed: {reason} "
        "Tell the user what went wrong, or correct the arguments and try again."
    )


class ToolRegistry:
    """Fixed set of tools for one agent instance; always includes ``suspend_thread``."""

    def __init__(self, specs: Iterable[ToolSpec]) -> None:
        self._specs: dict[ToolId, ToolSpec] = {}
        for spec in specs:
            if spec.id in self._specs:
                raise ValueError(f"Duplicate tool registration: {spec.id}")
            if spec.handler is None and spec.id is not ToolId.SUSPEND_THREAD:
                raise ValueError(f"Tool {spec.id} has no handler")
            self._specs[spec.id] = spec
        self._specs.setdefault(ToolId.SUSPEND_THREAD, SUSPEND_THREAD)

    @property
    def tool_ids(self) -> list[ToolId]:
        return list(self._specs)

    def schemas(self) -> list[dict[str, Any]]:
        return [spec.schema() for spec in self._specs.values()]

    def lookup(self, name: str) -> ToolSpec | None:
        try:
            return self._specs.get(ToolId(name))
        except ValueError:
            return None

    @staticmethod
    def is_terminate(name: str) -> bool:
        return name == ToolId.SUSPEND_THREAD.value

    def dispatch(self, call: ToolCall, context: ToolContext) -> ToolResult | None:
        """Execute *call* once.  Returns ``None`` for unknown tools (no-op).

        The terminate tool is handled by the engine and never reaches here.
        """
        spec = self.lookup(call.name)
        if spec is None or spec.handler is None:
            logger.warning("Ignoring call to unknown tool %r", call.name)
            return None

        context.calls[spec.id] += 1
        try:
            args = spec.args_schema.model_validate(call.arguments)
        except ValidationError as exc:
            logger.info("Rejected %s arguments: %s", spec.id, exc.errors())
            reason = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in exc.errors()
            )
            return ToolResult(tag=spec.id, content=failure_note(spec.id, reason + "."), succeeded=False)

        try:
            result = spec.handler(args, context)
        except DomainError as exc:
            logger.info("%s failed for client %s: %s", spec.id, context.client_id, exc)
            return ToolResult(tag=spec.id, content=failure_note(spec.id, str(exc)), succeeded=False)

        logger.debug("%s succeeded for client %s", spec.id, context.client_id)
        return result
