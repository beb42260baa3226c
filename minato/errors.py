"""Exception types shared across the assistant's layers."""

from __future__ import annotations


class DomainError(Exception):
    """A request the model made that the domain rejects.

    Tool dispatch reports these back into the conversation instead of
    aborting the run, so the model can tell the user or try again.
    """
