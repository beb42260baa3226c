"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Incoming request from a client.

    Both fields are optional at the schema level so that a missing or
    blank value is answered with ``400`` by the route instead of ``422``.
    """

    clientUUID: str | None = Field(
        default=None, description="Identifier of the calling client",
    )
    clientRequest: str | None = Field(
        default=None, max_length=4000, description="The client's natural-language request",
    )


class ChatResponse(BaseModel):
    message: str = Field(..., description="The assistant's answer, prefixed with 'The model says: '")


class StatusResponse(BaseModel):
    status: str = "healthy"
