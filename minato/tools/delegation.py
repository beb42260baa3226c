"""Delegation of calendar requests to the events agent."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from minato.engine import AgentLoopEngine
from minato.tools.registry import ToolContext, ToolId, ToolResult, ToolSpec

logger = logging.getLogger(__name__)


class QueryEventsAgentArgs(BaseModel):
    request: str = Field(
        ...,
        description=(
            "A natural-language request for the events agent, e.g. 'Add a meeting "
            "with Ada tomorrow at 10:00'. One event operation per request."
        ),
    )


def build_delegation_specs(calendar_agent: AgentLoopEngine) -> list[ToolSpec]:
    def query_events_agent(args: QueryEventsAgentArgs, context: ToolContext) -> ToolResult:
        sub_context = ToolContext(client_id=context.client_id, user_text=args.request)
        outcome = calendar_agent.run(
            f"The client uuid: {context.client_id}. The query from the user: {args.request}",
            sub_context,
        )
        logger.info(
            "Events agent answered for client %s after %d iteration(s)",
            context.client_id, outcome.iterations,
        )
        return ToolResult(
            tag=ToolId.QUERY_EVENTS_AGENT,
            content=(
                f"###EVENTS AGENT: {outcome.answer}\n\n"
                "###INSTRUCTION: If you are seeing this message that means the events "
                "agent has handled your last request. Use its answer to respond to the "
                "user, or send it the next request if more changes are needed."
            ),
        )

    return [
        ToolSpec(
            id=ToolId.QUERY_EVENTS_AGENT,
            description=(
                "Send a request to the events agent, which can read, create, update and "
                "delete events in the user's calendar. It answers with what it did."
            ),
            args_schema=QueryEventsAgentArgs,
            handler=query_events_agent,
        ),
    ]
