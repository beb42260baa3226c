"""FastAPI server for the Minato assistant.

Run with:
    uvicorn minato.server:app --host 0.0.0.0 --port 3005
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from minato.agents import create_assistant
from minato.api.routes import router
from minato.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from minato.services.metrics import metrics

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Build the assistant once and keep it in app state.

    Shutdown releases the database engine and pushes any buffered metrics.
    """
    logger.info("Building assistant…")
    application.state.assistant = create_assistant()
    logger.info("Assistant ready.")
    yield
    application.state.assistant.close()
    application.state.assistant = None
    metrics.flush()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Minato Assistant",
    description="Personal assistant with long-term memory and a managed calendar.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a request ID (client-supplied or generated) for log correlation.

    The ID is echoed in the ``X-Request-ID`` response header.
    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(router)


if __name__ == "__main__":
    logger.info("Starting Minato API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run("minato.server:app", host=SERVER_HOST, port=SERVER_PORT)
