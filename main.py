"""
FAQ assistant entry point.

Serves the chat API for the website widget, or runs the offline console
chat for development.

Usage:
    HTTP API:     python main.py serve
    Console mode: python main.py console
"""

import logging
import os
import sys

from tappy.config import settings

logger = logging.getLogger(__name__)


def _run_server() -> None:
    """Start the HTTP API under uvicorn."""
    import uvicorn

    from tappy.api import create_app

    port = int(os.getenv("PORT", "3001"))
    logger.info("%s chat API starting on port %d", settings.business.assistant_name, port)
    uvicorn.run(create_app(), host=os.getenv("HOST", "0.0.0.0"), port=port)


def _run_console_mode() -> None:
    """Start the offline console chat (no API keys required)."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_server()
