"""Gateway: wires store, provider, channel and coordinator into one server.

An aiohttp application with the Socket.IO server attached, plus a small
JSON health endpoint.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from aiohttp import web
from loguru import logger

from echoroom.channels.socketio import SocketIOChannel
from echoroom.config.schema import Config
from echoroom.moderation.coordinator import RoomCoordinator
from echoroom.moderation.oracle import ReplyOracle
from echoroom.moderation.repository import RoomRepository
from echoroom.providers.litellm_provider import LiteLLMProvider
from echoroom.store.memory import InMemoryStore
from echoroom.store.sqlite import SQLiteStore

if TYPE_CHECKING:
    from echoroom.providers.base import LLMProvider
    from echoroom.store.base import RecordStore


def build_store(config: Config) -> RecordStore:
    if config.store.backend == "memory":
        logger.warning("Store: using in-memory backend, nothing survives a restart")
        return InMemoryStore()
    return SQLiteStore(config.store.sqlite_path)


def build_provider(config: Config) -> LLMProvider:
    p = config.provider
    if not p.api_key:
        logger.warning("Provider: no API key configured, moderator replies will use fallbacks")
    return LiteLLMProvider(
        api_key=p.api_key,
        api_base=p.api_base,
        default_model=p.model,
        timeout=p.timeout,
    )


class Gateway:
    """Owns the aiohttp app, the Socket.IO channel and the coordinator."""

    def __init__(
        self,
        config: Config,
        store: RecordStore | None = None,
        provider: LLMProvider | None = None,
    ):
        self.config = config
        self.store = store or build_store(config)
        self.provider = provider or build_provider(config)
        self.channel = SocketIOChannel(cors_origins=config.gateway.cors_origins or "*")
        self.coordinator = RoomCoordinator(
            repository=RoomRepository(self.store),
            oracle=ReplyOracle(
                self.provider,
                model=config.provider.model,
                temperature=config.provider.temperature,
                max_tokens=config.provider.max_tokens,
                turn_window=config.moderation.oracle_turn_window,
                timeout_seconds=config.provider.timeout,
            ),
            channel=self.channel,
            config=config.moderation,
        )
        self.channel.bind(self.coordinator)
        self._runner: web.AppRunner | None = None
        self._app: web.Application | None = None

    def create_app(self) -> web.Application:
        app = web.Application()
        self.channel.server.attach(app)

        async def health(request: web.Request) -> web.Response:
            return web.json_response({
                "status": "ok",
                "active_rooms": len(self.coordinator.active_rooms),
            })

        app.router.add_get("/health", health)
        return app

    async def start(self) -> None:
        self._app = self.create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        host, port = self.config.gateway.host, self.config.gateway.port
        site = web.TCPSite(self._runner, host, port)
        await site.start()
        logger.info(f"EchoRoom gateway listening on http://{host}:{port}")

    async def stop(self) -> None:
        await self.coordinator.shutdown()
        if self._runner:
            await self._runner.cleanup()
        await self.store.close()
        logger.info("EchoRoom gateway stopped")


async def run_gateway(config: Config) -> None:
    """Start the gateway and serve until cancelled."""
    gateway = Gateway(config)
    await gateway.start()
    try:
        await asyncio.Event().wait()
    finally:
        await gateway.stop()
