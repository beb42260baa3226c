"""Per-run message history with tagged system notes.

The history is the model's working memory: an ordered list of LangChain
messages that one orchestration run owns and mutates.  Besides plain
appends it supports *tagged system notes*: instructions that describe the
current state of the run ("events already fetched", "call suspend_thread
now").  A tagged note exists at most once; writing it again replaces the
earlier copy in place so the model always sees the newest state and the
history does not grow with repeated instructions.

The tag is stored as the message ``id``, so it is a stable identifier and
never derived from the note's text.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import StrEnum

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

_ROLE_BY_TYPE = {"human": "user", "ai": "assistant", "system": "system"}


class NoteTag(StrEnum):
    """Tags for system notes written by the engine rather than a tool."""

    END_THREAD = "end_thread"
    CONTEXT = "context"
    PLAN = "plan"


def role_of(message: BaseMessage) -> str:
    """Map a LangChain message type onto the user/assistant/system roles."""
    return _ROLE_BY_TYPE.get(message.type, message.type)


class MessageHistory:
    """Ordered, mutable conversation log shared by reference within a run."""

    def __init__(self, messages: list[BaseMessage] | None = None) -> None:
        self._messages: list[BaseMessage] = list(messages or [])

    # ── Plain turns ──────────────────────────────────────────────────

    def append_system(self, content: str) -> None:
        self._messages.append(SystemMessage(content=content))

    def append_user(self, content: str) -> None:
        self._messages.append(HumanMessage(content=content))

    def append_assistant(self, content: str) -> None:
        self._messages.append(AIMessage(content=content))

    # ── Tagged notes ─────────────────────────────────────────────────

    def upsert_tagged_system_note(
        self,
        tag: str,
        content: str,
        *,
        prepend: bool = False,
    ) -> bool:
        """Replace the system note carrying *tag*, or add it if absent.

        New notes are appended, or inserted at the very start when
        *prepend* is set.  An existing note keeps its position.  Returns
        ``True`` when an existing note was replaced.
        """
        note = SystemMessage(content=content, id=str(tag))
        index = self.find_tagged(tag)
        if index is not None:
            self._messages[index] = note
            return True
        if prepend:
            self._messages.insert(0, note)
        else:
            self._messages.append(note)
        return False

    def remove_tagged(self, tag: str) -> bool:
        """Drop the system note carrying *tag*.  Returns ``True`` if one was removed."""
        index = self.find_tagged(tag)
        if index is None:
            return False
        del self._messages[index]
        return True

    def find_tagged(self, tag: str) -> int | None:
        """Return the index of the system note carrying *tag*, if any."""
        for i, message in enumerate(self._messages):
            if isinstance(message, SystemMessage) and message.id == str(tag):
                return i
        return None

    def tagged_note(self, tag: str) -> str | None:
        index = self.find_tagged(tag)
        if index is None:
            return None
        return self._messages[index].content

    # ── Views ────────────────────────────────────────────────────────

    @property
    def messages(self) -> list[BaseMessage]:
        """A shallow copy of the messages, in order."""
        return list(self._messages)

    def conversational_turns(self) -> list[dict[str, str]]:
        """User and assistant turns as ``{"role", "content"}`` dicts.

        System notes are orchestration scaffolding and are left out.
        """
        return [
            {"role": role_of(m), "content": str(m.content)}
            for m in self._messages
            if not isinstance(m, SystemMessage)
        ]

    def __iter__(self) -> Iterator[BaseMessage]:
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __repr__(self) -> str:
        return f"MessageHistory({len(self._messages)} messages)"
