"""Bounded tool-calling loop shared by every agent.

The loop is a two-node LangGraph ``StateGraph``:

    model ──(tool call?)──▶ dispatch ──(suspended or cap reached?)──▶ END
      ▲  │                     │
      │  └─(final answer, under cap)──▶ model
      └────────────────────────┘

1. **model** sends the whole history plus the registry's schemas to the
   completion service (tool choice left to the model).  A final answer is
   appended as an assistant turn, remembered as the pending result, and
   followed by a tagged note telling the model to call ``suspend_thread``.
   The loop does *not* stop here: the transcript is closed only by the
   explicit terminate call, or by the iteration cap.
2. **dispatch** executes the single requested tool.  ``suspend_thread``
   ends the run with the pending result; any other tool's note is upserted
   into history by tag.

An iteration is one completion-service call, so a run never issues more
than ``max_iterations`` of them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from langgraph.graph import END, StateGraph
from typing_extensions import TypedDict

from minato.history import MessageHistory, NoteTag
from minato.prompts import END_THREAD_NOTE
from minato.services.llm import CompletionService, ToolCall
from minato.tools.registry import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)

MAX_ATTEMPTS_FALLBACK = (
    "The maximum number of attempts has been reached. "
    "Please refine your query or try again later."
)
SUSPENDED_WITHOUT_ANSWER = "Thread was suspended without a prior stop."


class LoopState(TypedDict):
    """State flowing through the loop graph.

    ``history`` is mutated in place by both nodes; every other key is a
    plain value replaced on update.
    """

    history: MessageHistory
    context: ToolContext
    iterations: int
    final_answer: str | None
    pending_call: ToolCall | None
    result: str | None


@dataclass(frozen=True)
class LoopResult:
    """What a finished run hands back to its caller."""

    answer: str
    final_answer: str | None
    iterations: int
    suspended: bool
    history: MessageHistory


CompletionHook = Callable[[LoopResult, ToolContext], None]


class AgentLoopEngine:
    """One configured agent: completion service, tools, preamble and cap."""

    def __init__(
        self,
        completions: CompletionService,
        registry: ToolRegistry,
        *,
        name: str = "agent",
        system_preamble: str | Callable[[], str] | None = None,
        max_iterations: int = 6,
        on_complete: CompletionHook | None = None,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.name = name
        self._completions = completions
        self._registry = registry
        self._schemas = registry.schemas()
        self._system_preamble = system_preamble
        self._max_iterations = max_iterations
        self._on_complete = on_complete
        self._graph = self._build_graph()

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    # ── Nodes ────────────────────────────────────────────────────────

    def _model_node(self, state: LoopState) -> dict:
        history = state["history"]
        iteration = state["iterations"] + 1
        completion = self._completions.complete(history.messages, self._schemas)

        if completion.is_final:
            logger.debug("[%s] iteration %d: final answer", self.name, iteration)
            history.append_assistant(completion.content)
            # The end-thread note always follows the newest answer.
            history.remove_tagged(NoteTag.END_THREAD)
            history.upsert_tagged_system_note(NoteTag.END_THREAD, END_THREAD_NOTE)
            return {
                "history": history,
                "iterations": iteration,
                "final_answer": completion.content,
                "pending_call": None,
            }

        logger.info(
            "[%s] iteration %d: tool call %s", self.name, iteration, completion.tool_call.name,
        )
        return {
            "history": history,
            "iterations": iteration,
            "pending_call": completion.tool_call,
        }

    def _dispatch_node(self, state: LoopState) -> dict:
        history = state["history"]
        call = state["pending_call"]

        if self._registry.is_terminate(call.name):
            reason = call.arguments.get("suspensionReasoning", "")
            logger.debug("[%s] thread suspended: %s", self.name, reason)
            return {
                "pending_call": None,
                "result": state["final_answer"] or SUSPENDED_WITHOUT_ANSWER,
            }

        result = self._registry.dispatch(call, state["context"])
        if result is not None:
            if result.context is not None:
                history.upsert_tagged_system_note(NoteTag.CONTEXT, result.context, prepend=True)
            history.upsert_tagged_system_note(result.tag, result.content)
        return {"history": history, "pending_call": None}

    # ── Edges ────────────────────────────────────────────────────────

    def _after_model(self, state: LoopState) -> str:
        if state["pending_call"] is not None:
            return "dispatch"
        if state["iterations"] >= self._max_iterations:
            return END
        return "model"

    def _after_dispatch(self, state: LoopState) -> str:
        if state["result"] is not None or state["iterations"] >= self._max_iterations:
            return END
        return "model"

    def _build_graph(self):
        graph = StateGraph(LoopState)
        graph.add_node("model", self._model_node)
        graph.add_node("dispatch", self._dispatch_node)
        graph.set_entry_point("model")
        graph.add_conditional_edges(
            "model", self._after_model, {"dispatch": "dispatch", "model": "model", END: END},
        )
        graph.add_conditional_edges(
            "dispatch", self._after_dispatch, {"model": "model", END: END},
        )
        return graph.compile()

    # ── Public API ───────────────────────────────────────────────────

    def _preamble(self) -> str | None:
        if callable(self._system_preamble):
            return self._system_preamble()
        return self._system_preamble

    def run(
        self,
        user_text: str,
        context: ToolContext,
        *,
        notes: Mapping[str, str] | None = None,
    ) -> LoopResult:
        """Drive one conversation to completion.

        *notes* are tagged system notes seeded after the preamble and
        before the user's request.
        """
        history = MessageHistory()
        preamble = self._preamble()
        if preamble:
            history.append_system(preamble)
        for tag, content in (notes or {}).items():
            history.upsert_tagged_system_note(tag, content)
        history.append_user(user_text)

        initial: LoopState = {
            "history": history,
            "context": context,
            "iterations": 0,
            "final_answer": None,
            "pending_call": None,
            "result": None,
        }
        # Two graph steps per iteration, plus slack for the entry step.
        final = self._graph.invoke(
            initial, config={"recursion_limit": 2 * self._max_iterations + 4},
        )

        suspended = final["result"] is not None
        if suspended:
            answer = final["result"]
        else:
            answer = final["final_answer"] or MAX_ATTEMPTS_FALLBACK
            logger.warning(
                "[%s] iteration cap (%d) reached for client %s",
                self.name, self._max_iterations, context.client_id,
            )

        loop_result = LoopResult(
            answer=answer,
            final_answer=final["final_answer"],
            iterations=final["iterations"],
            suspended=suspended,
            history=history,
        )
        if self._on_complete is not None and loop_result.final_answer:
            self._on_complete(loop_result, context)
        return loop_result
