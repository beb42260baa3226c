"""The assembled agents: the top-level assistant, its events agent and the planner.

``create_assistant`` wires everything from configuration:

    Assistant (MAX_ITERATIONS)
      ├─ try_to_remember     → MemoryService.recall
      ├─ query_events_agent  → events agent (CALENDAR_MAX_ITERATIONS)
      │     ├─ get/add/update/delete_client_event → EventsService
      │     └─ suspend_thread
      └─ suspend_thread

A run that ends with a final answer is remembered once it completes: the
recollection goes to the vector store and the transcript to the document
store.  Services are injected so tests can swap any of them.
"""

from __future__ import annotations

import logging

from langchain_core.language_models import BaseChatModel

from minato.config import (
    CALENDAR_MAX_ITERATIONS,
    DATABASE_URL,
    MAX_ITERATIONS,
    PLANNER_ENABLED,
    RECALL_LIMIT,
)
from minato.engine import AgentLoopEngine, LoopResult
from minato.history import NoteTag
from minato.prompts import PLAN_NOTE, PLANNER_PROMPT, get_assistant_prompt, get_calendar_prompt
from minato.services.document_store import DocumentStore
from minato.services.events import EventsService
from minato.services.llm import CompletionService, build_chat_model, build_fast_chat_model
from minato.services.memory import MemoryService
from minato.services.vector_store import ChromaVectorStore, create_chroma_client
from minato.tools.calendar import build_calendar_specs
from minato.tools.delegation import build_delegation_specs
from minato.tools.memory import build_memory_specs
from minato.tools.registry import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred while processing your request."


class Planner:
    """Turns a request into step-by-step instructions for the assistant."""

    def __init__(self, completions: CompletionService) -> None:
        self._completions = completions

    def plan(self, user_text: str) -> str:
        return self._completions.instruct(PLANNER_PROMPT, user_text)


def create_calendar_agent(completions: CompletionService, events: EventsService) -> AgentLoopEngine:
    return AgentLoopEngine(
        completions,
        ToolRegistry(build_calendar_specs(events)),
        name="events-agent",
        system_preamble=get_calendar_prompt,
        max_iterations=CALENDAR_MAX_ITERATIONS,
    )


class Assistant:
    """Top-level entry point: one ``ask`` per client request."""

    def __init__(
        self,
        completions: CompletionService,
        registry: ToolRegistry,
        memory: MemoryService,
        *,
        planner: Planner | None = None,
        max_iterations: int = MAX_ITERATIONS,
    ) -> None:
        self._memory = memory
        self._planner = planner
        self._engine = AgentLoopEngine(
            completions,
            registry,
            name="assistant",
            system_preamble=get_assistant_prompt,
            max_iterations=max_iterations,
            on_complete=self._remember,
        )

    @property
    def memory(self) -> MemoryService:
        return self._memory

    def _remember(self, result: LoopResult, context: ToolContext) -> None:
        self._memory.remember_exchange(
            context.client_id,
            context.user_text,
            result.final_answer,
            result.history.messages,
        )
        logger.debug("Remembered exchange for client %s", context.client_id)

    def run(self, client_id: str, user_text: str) -> LoopResult:
        """Run one request; errors propagate.  ``ask`` is the safe wrapper."""
        context = ToolContext(client_id=client_id, user_text=user_text)
        notes: dict[str, str] = {}
        if self._planner is not None:
            plan = self._planner.plan(user_text)
            if plan:
                notes[NoteTag.PLAN] = PLAN_NOTE.format(plan=plan)
        return self._engine.run(user_text, context, notes=notes)

    def ask(self, client_id: str, user_text: str) -> str:
        """Answer *user_text* for *client_id*, never raising.

        Any failure (model, vector store, database) is logged and replaced
        by a generic message; a failed run persists nothing.
        """
        try:
            result = self.run(client_id, user_text)
        except Exception:
            logger.exception("Request for client %s failed", client_id)
            return GENERIC_ERROR
        logger.info(
            "Answered client %s in %d iteration(s)%s",
            client_id, result.iterations, "" if result.suspended else " (cap reached)",
        )
        return result.answer

    def close(self) -> None:
        self._memory.close()


def create_assistant(
    *,
    chat_model: BaseChatModel | None = None,
    fast_model: BaseChatModel | None = None,
    vector_store: ChromaVectorStore | None = None,
    document_store: DocumentStore | None = None,
    planner_enabled: bool = PLANNER_ENABLED,
) -> Assistant:
    """Build the assistant and its collaborators from configuration."""
    injected_fast = fast_model is not None
    chat_model = chat_model or build_chat_model()
    fast_model = fast_model or build_fast_chat_model()
    completions = CompletionService(chat_model, fast_model=fast_model)

    vector_store = vector_store or ChromaVectorStore(create_chroma_client())
    document_store = document_store or DocumentStore.from_url(DATABASE_URL)
    memory = MemoryService(vector_store, document_store, completions)

    calendar_agent = create_calendar_agent(completions, EventsService(document_store))
    registry = ToolRegistry(
        build_memory_specs(memory, limit=RECALL_LIMIT) + build_delegation_specs(calendar_agent)
    )

    planner = None
    if planner_enabled:
        # Plans come from the fast model at temperature 0.
        planner_model = fast_model if injected_fast else build_fast_chat_model(temperature=0.0)
        planner = Planner(CompletionService(planner_model))

    logger.info(
        "Assistant ready: tools=%s, planner=%s",
        ", ".join(registry.tool_ids), "on" if planner else "off",
    )
    return Assistant(completions, registry, memory, planner=planner)
