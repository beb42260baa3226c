"""FastAPI route definitions for the Minato assistant API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request

from minato.agents import Assistant
from minato.api.schemas import ChatRequest, ChatResponse, StatusResponse
from minato.services.document_store import CLIENT_ID_MAX_LENGTH

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_assistant(request: Request) -> Assistant:
    """Retrieve the assistant built during the FastAPI lifespan (see ``server.py``)."""
    assistant = getattr(request.app.state, "assistant", None)
    if assistant is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return assistant


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/status", response_model=StatusResponse)
async def status():
    return StatusResponse()


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, http_request: Request):
    """Answer one client request.

    ``Assistant.ask`` is synchronous and blocks on the LLM, Chroma and the
    database, so it runs in the default thread pool via
    ``asyncio.to_thread`` to keep the event loop free.
    """
    client_id = (request.clientUUID or "").strip()
    client_request = (request.clientRequest or "").strip()
    if not client_id or not client_request:
        raise HTTPException(
            status_code=400,
            detail="Both 'clientUUID' and 'clientRequest' fields are required.",
        )
    if len(client_id) > CLIENT_ID_MAX_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"'clientUUID' must be at most {CLIENT_ID_MAX_LENGTH} characters.",
        )

    assistant = _get_assistant(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        answer = await asyncio.to_thread(assistant.ask, client_id, client_request)
    except Exception as e:
        # Full traceback stays server-side.
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    logger.info("[%s] Answered client %s", request_id, client_id)
    return ChatResponse(message=f"The model says: {answer}")
