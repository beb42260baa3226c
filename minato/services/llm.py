"""Completion service: the single seam between the engine and the LLM.

The engine only ever asks two questions of the model:

* ``complete(messages, tools)``: one turn of a tool-calling loop.  The
  answer is either a final text answer or a request to call a tool.
* ``instruct(system_prompt, text)``: a plain, tool-less completion used
  for recollections and plans.

Both providers are reached through LangChain chat models, so swapping
Anthropic for OpenAI is a configuration change (``LLM_PROVIDER``).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from minato.config import (
    FAST_MODEL_NAME,
    LLM_API_KEY,
    LLM_MAX_RETRIES,
    LLM_PROVIDER,
    LLM_TIMEOUT_SECONDS,
    MODEL_NAME,
)
from minato.services.metrics import metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCall:
    """A single tool invocation requested by the model."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass(frozen=True)
class Completion:
    """One model turn: final text, or a tool call (``tool_call`` set)."""

    content: str
    tool_call: ToolCall | None = None

    @property
    def is_final(self) -> bool:
        return self.tool_call is None


# ── Model builders ──────────────────────────────────────────────────


def build_chat_model(
    model_name: str | None = None,
    *,
    temperature: float = 0.1,
    max_tokens: int = 1024,
) -> BaseChatModel:
    """Build a chat model for the configured provider."""
    model_name = model_name or MODEL_NAME
    if LLM_PROVIDER == "openai":
        return ChatOpenAI(
            model=model_name,
            api_key=LLM_API_KEY,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=LLM_TIMEOUT_SECONDS,
            max_retries=LLM_MAX_RETRIES,
        )
    return ChatAnthropic(
        model=model_name,
        api_key=LLM_API_KEY,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=LLM_TIMEOUT_SECONDS,
        max_retries=LLM_MAX_RETRIES,
    )


def build_fast_chat_model(*, temperature: float = 0.2) -> BaseChatModel:
    """Cheaper model for recollections and plans (no tools)."""
    return build_chat_model(FAST_MODEL_NAME, temperature=temperature)


# ── Wire rendering ──────────────────────────────────────────────────


def render_messages(
    messages: Sequence[BaseMessage],
    provider: str = LLM_PROVIDER,
) -> list[BaseMessage]:
    """Shape the history into something the provider accepts.

    OpenAI takes system messages anywhere in the list.  Anthropic takes a
    single system prompt up front, so leading system messages are merged
    into one and later system notes are sent as user turns marked
    ``[system note]``.
    """
    if provider != "anthropic":
        return list(messages)

    leading: list[str] = []
    index = 0
    while index < len(messages) and isinstance(messages[index], SystemMessage):
        leading.append(str(messages[index].content))
        index += 1

    rendered: list[BaseMessage] = []
    if leading:
        rendered.append(SystemMessage(content="\n\n".join(leading)))
    for message in messages[index:]:
        if isinstance(message, SystemMessage):
            rendered.append(HumanMessage(content=f"[system note]\n{message.content}"))
        else:
            rendered.append(message)
    return rendered


def _content_text(content: Any) -> str:
    """Flatten message content (plain string or content blocks) to text."""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


# ── Service ─────────────────────────────────────────────────────────


class CompletionService:
    """Thin wrapper around LangChain chat models used by every agent loop."""

    def __init__(
        self,
        chat_model: BaseChatModel,
        *,
        fast_model: BaseChatModel | None = None,
        provider: str = LLM_PROVIDER,
    ) -> None:
        self._chat_model = chat_model
        self._fast_model = fast_model or chat_model
        self._provider = provider

    def complete(
        self,
        messages: Sequence[BaseMessage],
        tools: list[dict[str, Any]],
    ) -> Completion:
        """Run one tool-calling turn with ``tool_choice="auto"``.

        Only the first tool call of a response is honored.
        """
        model = self._chat_model.bind_tools(tools, tool_choice="auto") if tools else self._chat_model
        with metrics.track("llm", "complete"):
            response = model.invoke(render_messages(messages, self._provider))

        text = _content_text(response.content)
        tool_calls = getattr(response, "tool_calls", None) or []
        if not tool_calls:
            return Completion(content=text)

        if len(tool_calls) > 1:
            logger.warning(
                "Model requested %d tool calls at once; only %r is honored",
                len(tool_calls), tool_calls[0]["name"],
            )
        first = tool_calls[0]
        return Completion(
            content=text,
            tool_call=ToolCall(
                name=first["name"],
                arguments=dict(first.get("args") or {}),
                id=first.get("id"),
            ),
        )

    def instruct(self, system_prompt: str, text: str) -> str:
        """Plain completion on the fast model: system prompt plus one user turn."""
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=text)]
        with metrics.track("llm", "instruct"):
            response = self._fast_model.invoke(render_messages(messages, self._provider))
        return _content_text(response.content).strip()
