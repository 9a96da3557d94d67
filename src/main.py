"""Teach-back assistant entry point."""

import asyncio
import contextlib
import logging

from src.config import Settings
from src.web.server import ChatServer, create_app

logger = logging.getLogger(__name__)


async def serve(settings: Settings) -> None:
    """Run the HTTP server until cancelled."""
    server = ChatServer(create_app(settings), settings.http_host, settings.http_port)
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> None:
    """Load settings, configure logging, and start serving."""
    settings = Settings()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    missing = settings.missing_chat_credentials()
    if missing:
        logger.warning("Missing configuration: %s; chat will fail to start", ", ".join(missing))

    logger.info("Starting teach-back assistant with model %s...", settings.chat_model)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(serve(settings))


if __name__ == "__main__":
    main()
