"""CLI entry point for the Minato assistant.

A terminal chat loop for development.  For production, use the FastAPI
server (``minato/server.py``).

Usage:
    python -m minato.main                    # new random client id
    python -m minato.main --client alice     # reuse a client's memory and calendar
    python -m minato.main --debug            # show LLM / storage logging
"""

from __future__ import annotations

import argparse
import logging
import uuid

from minato.agents import create_assistant

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    if not debug:
        for noisy in ("httpx", "httpcore", "chromadb"):
            logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger("minato").setLevel(logging.DEBUG if debug else logging.INFO)


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Minato assistant CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including LLM and storage calls",
    )
    parser.add_argument(
        "--client", default=None,
        help="Client id to talk as (defaults to a fresh UUID)",
    )
    args = parser.parse_args()

    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Minato Assistant - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new client id.")
    print("=" * 60 + "\n")

    assistant = create_assistant()
    client_id = args.client or str(uuid.uuid4())
    logger.info("Talking as client: %s", client_id)

    try:
        while True:
            try:
                user_input = input("You: ").strip()
            except (KeyboardInterrupt, EOFError):
                print("\n\nGoodbye!")
                break

            if not user_input:
                continue

            if user_input.lower() in ("exit", "quit", "q"):
                print("\nGoodbye!")
                break

            if user_input.lower() == "new":
                client_id = str(uuid.uuid4())
                print(f"\n>> New client id: {client_id[:8]}...\n")
                continue

            answer = assistant.ask(client_id, user_input)
            print(f"\nMinato: {answer}\n")
    finally:
        assistant.close()


if __name__ == "__main__":
    main()
