"""Async HTTP server for the chat and interaction-logging endpoints.

Routes:
- ``POST /api/chat``     → streamed plain-text reply (chunked)
- ``POST /api/logging``  → store a question/response pair
- ``GET  /health``       → liveness check

Components are built from ``Settings`` in a cleanup context so the
asyncpg pool and provider clients open with the app and close with it.
Tests pass a prepared pipeline and interaction log instead.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from aiohttp import web

from src.analytics.interactions import InteractionLog
from src.chat.models import ChatRequest, LogRequest
from src.chat.pipeline import ChatPipeline
from src.config import Settings
from src.db import DatabaseTarget
from src.llm.client import CompletionStreamer
from src.llm.embeddings import EmbeddingClient
from src.llm.prompt import PromptComposer
from src.memory.store import MemoryStore
from src.retrieval.store import DocumentStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

SETTINGS = web.AppKey("settings", Settings)
PIPELINE = web.AppKey("pipeline", ChatPipeline)
INTERACTIONS = web.AppKey("interactions", InteractionLog)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def _internal_error() -> web.Response:
    return web.json_response({"error": "Internal Server Error"}, status=500)


# -- Handlers -----------------------------------------------------------------


async def _handle_chat(request: web.Request) -> web.StreamResponse:
    """POST /api/chat: run one chat turn and stream the reply."""
    started = time.perf_counter()
    pipeline = request.app[PIPELINE]

    # Malformed bodies get the same 500 as upstream failures.
    try:
        chat = ChatRequest.model_validate(await request.json())
    except ValueError:
        logger.warning("Chat request rejected: malformed body (after %.2fms)", _elapsed_ms(started))
        return _internal_error()

    try:
        turn = await pipeline.prepare(chat)
        chunks = pipeline.stream(turn)
        first = await anext(chunks, None)
    except Exception:
        logger.exception("Error in chat route (after %.2fms)", _elapsed_ms(started))
        return _internal_error()

    logger.info("Stream initialization time: %.2fms", _elapsed_ms(turn.started_at))

    response = web.StreamResponse(
        status=200,
        headers={"Content-Type": "text/plain; charset=utf-8", "Cache-Control": "no-cache"},
    )
    response.enable_chunked_encoding()
    await response.prepare(request)

    connected = await _write(response, first)
    try:
        async for chunk in chunks:
            if connected:
                connected = await _write(response, chunk)
    except Exception:
        logger.exception(
            "Chat stream interrupted for user %s (after %.2fms)",
            turn.user_id,
            _elapsed_ms(started),
        )
        return response

    if connected:
        await response.write_eof()
    logger.info(
        "Total processing time: %.2fms (%s, user=%s)",
        _elapsed_ms(started),
        "greeting" if turn.is_greeting else turn.persona.value,
        turn.user_id,
    )
    return response


async def _write(response: web.StreamResponse, chunk: str | None) -> bool:
    """Write a chunk; return False once the client has gone away.

    After a disconnect the caller keeps draining the upstream stream so
    the completed turn is still recorded.
    """
    if not chunk:
        return True
    try:
        await response.write(chunk.encode("utf-8"))
    except ConnectionResetError:
        logger.info("Client disconnected; finishing stream without output")
        return False
    return True


async def _handle_logging(request: web.Request) -> web.Response:
    """POST /api/logging: record a question/response pair."""
    try:
        body = LogRequest.model_validate(await request.json())
        await request.app[INTERACTIONS].record(
            body.user_id, body.question, body.response, timestamp=body.timestamp
        )
    except Exception:
        logger.exception("Error in logging route")
        return web.json_response({"error": "Failed to log interaction"}, status=500)
    return web.json_response({"success": True})


async def _health(request: web.Request) -> web.Response:
    """GET /health: basic liveness check."""
    return web.json_response({"status": "ok"})


# -- Application --------------------------------------------------------------


async def _chat_components(app: web.Application) -> AsyncIterator[None]:
    """Open the document pool and provider clients for the app's lifetime."""
    settings: Settings = app[SETTINGS]
    missing = settings.missing_chat_credentials()
    if missing:
        raise RuntimeError(f"Chat endpoint is not configured: set {', '.join(missing)}")

    prompts = PromptComposer()
    documents = await DocumentStore.open(settings)
    embedder = EmbeddingClient.from_settings(settings)
    streamer = CompletionStreamer.from_settings(settings)
    pipeline = ChatPipeline(
        embedder=embedder,
        retriever=documents,
        prompts=prompts,
        streamer=streamer,
        memory=MemoryStore.from_settings(settings),
        memory_recall_limit=settings.memory_recall_limit,
    )
    app[PIPELINE] = pipeline
    logger.info("Chat pipeline ready (chat model=%s)", streamer.model)
    try:
        yield
    finally:
        await pipeline.drain()
        await documents.close()
        await embedder.close()
        await streamer.close()


async def _drain_pipeline(app: web.Application) -> None:
    await app[PIPELINE].drain()


def create_app(
    settings: Settings,
    pipeline: ChatPipeline | None = None,
    interactions: InteractionLog | None = None,
) -> web.Application:
    """Build the aiohttp Application with routes and wired components."""
    app = web.Application()
    app[SETTINGS] = settings
    app[INTERACTIONS] = interactions or InteractionLog(DatabaseTarget.from_settings(settings))

    if pipeline is None:
        app.cleanup_ctx.append(_chat_components)
    else:
        app[PIPELINE] = pipeline
        app.on_cleanup.append(_drain_pipeline)

    app.router.add_get("/health", _health)
    app.router.add_post("/api/chat", _handle_chat)
    app.router.add_post("/api/logging", _handle_logging)
    return app


class ChatServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(self, app: web.Application, host: str = "0.0.0.0", port: int = 8080) -> None:
        self.app = app
        self.host = host
        self.port = port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for chat requests."""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Chat server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully; pending memory writes are drained."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Chat server stopped")
