"""Minato: a personal assistant with long-term memory and a managed calendar.

Architecture Overview
=====================

Every agent is the same **bounded tool-calling loop** (``minato.engine``),
a LangGraph StateGraph with two nodes:

1. **model** sends the accumulated history and the agent's tool schemas
   to the completion service. The model answers in text or asks for one tool.
2. **dispatch** runs the tool and folds its note back into history, keyed
   by tag so repeated calls replace rather than pile up.

A text answer is not the end of a run: the model is asked to call
``suspend_thread``, and only that call (or the iteration cap) closes it.

Two loops are configured in ``minato.agents``:

- the **assistant** (6 iterations) with ``try_to_remember`` and
  ``query_events_agent``;
- the **events agent** (4 iterations) with calendar CRUD tools, run as a
  tool of the assistant.

Memory
------
Each completed run is condensed into a first-person recollection by the
fast model and stored in a per-client Chroma collection, and its
user/assistant turns are stored in SQL. Recall orders matches by
ascending cosine distance (most relevant first).

Package Structure
-----------------
- ``minato/engine.py``: the loop
- ``minato/agents.py``: assistant, events agent, planner and wiring
- ``minato/history.py``: message history with tagged system notes
- ``minato/config.py``: configuration from environment variables
- ``minato/prompts.py``: system prompts and instruction notes
- ``minato/server.py``: FastAPI application
- ``minato/main.py``: CLI chat interface
- ``minato/services/``: LLM, vector store, document store, events, memory, metrics
- ``minato/tools/``: tool registry and handlers
- ``minato/api/``: FastAPI routes and Pydantic schemas
"""
