"""Centralized configuration for the Minato assistant.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/minato/<VARIABLE_NAME>``.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 (lazy import, only needed on AWS)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/minato/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store /minato/{name} (AWS)."
    )


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ── LLM ─────────────────────────────────────────────────────────────
LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "anthropic").strip().lower()
if LLM_PROVIDER not in ("anthropic", "openai"):
    raise OSError(f"Unsupported LLM_PROVIDER {LLM_PROVIDER!r}; use 'anthropic' or 'openai'.")

_DEFAULT_MODELS = {
    "anthropic": ("claude-sonnet-4-5", "claude-haiku-4-5"),
    "openai": ("gpt-4o", "gpt-4o-mini"),
}

LLM_API_KEY: str = _require_env(
    "ANTHROPIC_API_KEY" if LLM_PROVIDER == "anthropic" else "OPENAI_API_KEY"
)
# Primary model drives the tool-calling loops; the fast model writes
# recollections and plans.
MODEL_NAME: str = os.getenv("MODEL_NAME", _DEFAULT_MODELS[LLM_PROVIDER][0])
FAST_MODEL_NAME: str = os.getenv("FAST_MODEL_NAME", _DEFAULT_MODELS[LLM_PROVIDER][1])
LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
LLM_MAX_RETRIES: int = int(os.getenv("LLM_MAX_RETRIES", "2"))

# ── Orchestration ───────────────────────────────────────────────────
MAX_ITERATIONS: int = int(os.getenv("MAX_ITERATIONS", "6"))
CALENDAR_MAX_ITERATIONS: int = int(os.getenv("CALENDAR_MAX_ITERATIONS", "4"))
RECALL_LIMIT: int = int(os.getenv("RECALL_LIMIT", "5"))
PLANNER_ENABLED: bool = _env_flag("PLANNER_ENABLED")

# ── Storage ─────────────────────────────────────────────────────────
# CHROMA_HOST selects a remote Chroma server; otherwise a local persistent
# client is opened at CHROMA_PATH.
CHROMA_HOST: str | None = os.getenv("CHROMA_HOST") or None
CHROMA_PORT: int = int(os.getenv("CHROMA_PORT", "8000"))
CHROMA_PATH: str = os.getenv("CHROMA_PATH", "chroma")
DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///minato.db")

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "3005"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
