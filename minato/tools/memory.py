"""Recall tool for the top-level assistant."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from minato.prompts import CONTEXT_NOTE
from minato.services.memory import MEMORY_KIND, MemoryService, Recollection
from minato.tools.registry import ToolContext, ToolId, ToolResult, ToolSpec

logger = logging.getLogger(__name__)

RECALL_CALLS_PER_RUN = 3


class TryToRememberArgs(BaseModel):
    memoryRequest: str = Field(
        ...,
        description=(
            "Describe what you are trying to remember. Phrase it as a short query "
            "about the earlier conversation, e.g. 'what the user asked about their "
            "dentist appointment'."
        ),
    )


def render_recollections(recollections: list[Recollection]) -> str:
    lines = [f"{i}. {r.text}" for i, r in enumerate(recollections, start=1)]
    return CONTEXT_NOTE.format(recollections="\n".join(lines))


def build_memory_specs(memory: MemoryService, *, limit: int) -> list[ToolSpec]:
    """Tool specs backed by *memory*; *limit* caps recollections per call."""

    def try_to_remember(args: TryToRememberArgs, context: ToolContext) -> ToolResult:
        calls = context.calls[ToolId.TRY_TO_REMEMBER]
        if calls > RECALL_CALLS_PER_RUN:
            return ToolResult(
                tag=ToolId.TRY_TO_REMEMBER,
                content=(
                    f"###INSTRUCTION: You've called 'try_to_remember' {calls} times. "
                    f"You are limited to calling it {RECALL_CALLS_PER_RUN} times, so this "
                    "call was not performed. Return an assistant response immediately."
                ),
                succeeded=False,
            )

        query = args.memoryRequest.strip() or context.user_text
        recollections = memory.recall(context.client_id, MEMORY_KIND, query, limit)
        if not recollections:
            return ToolResult(
                tag=ToolId.TRY_TO_REMEMBER,
                content=(
                    "###INSTRUCTION: You tried to remember but no earlier conversations "
                    "with this user were found. Do not call 'try_to_remember' again. "
                    "Answer the user with what you know."
                ),
            )

        return ToolResult(
            tag=ToolId.TRY_TO_REMEMBER,
            content=(
                "###INSTRUCTION: If you are seeing this message that means you've "
                "successfully retrieved a memory. Do not call the 'try_to_remember' "
                f"function again unless instructed. You've called on 'try_to_remember' "
                f"{calls} times already. You are limited to calling it "
                f"{RECALL_CALLS_PER_RUN} times. Return an assistant response immediately."
            ),
            context=render_recollections(recollections),
        )

    return [
        ToolSpec(
            id=ToolId.TRY_TO_REMEMBER,
            description=(
                "Try to remember earlier conversations with the user. Use this when the "
                "request refers to something discussed before or when past context "
                "would help. It is not a source of truth for the calendar."
            ),
            args_schema=TryToRememberArgs,
            handler=try_to_remember,
        ),
    ]
