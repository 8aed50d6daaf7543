"""
Chat bridge entry point.

Runs either the same-origin relay that forwards widget turns to the
automation webhook, or a terminal chat that talks to a running relay.

Usage:
    Relay server: python main.py serve
    Console chat: python main.py console
"""

import logging
import sys

from chatbridge.config import settings

logger = logging.getLogger(__name__)


def _run_relay() -> None:
    """Start the relay under uvicorn."""
    import uvicorn

    from chatbridge.proxy import app

    if not settings.webhook.url:
        logger.warning("AUTOMATION_WEBHOOK_URL is not set; the relay will answer 503")
    uvicorn.run(
        app,
        host=settings.webhook.host,
        port=settings.webhook.port,
        log_level=settings.log_level.lower(),
    )


def _run_console_mode() -> None:
    """Start the terminal chat against CHAT_PROXY_URL."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_relay()
