"""Socket.IO channel.

Adapts a ``socketio.AsyncServer`` to BaseChannel for outbound events and,
once bound to a RoomCoordinator, routes the inbound socket events
(joinRoom, sendMessage, typing, voice-status, ...) into it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import socketio
from loguru import logger

from echoroom.channels.base import BaseChannel

if TYPE_CHECKING:
    from echoroom.moderation.coordinator import RoomCoordinator


class SocketIOChannel(BaseChannel):
    """BaseChannel over python-socketio; connection ids are Socket.IO sids."""

    name = "socketio"

    def __init__(self, server: socketio.AsyncServer | None = None, cors_origins: Any = "*"):
        self.server = server or socketio.AsyncServer(
            async_mode="aiohttp",
            cors_allowed_origins=cors_origins,
        )
        self._coordinator: RoomCoordinator | None = None

    # ── BaseChannel ───────────────────────────────────────

    async def join(self, connection_id: str, room_id: str) -> None:
        await self.server.enter_room(connection_id, room_id)

    async def leave(self, connection_id: str, room_id: str) -> None:
        await self.server.leave_room(connection_id, room_id)

    async def broadcast(
        self,
        room_id: str,
        event: str,
        payload: dict[str, Any],
        skip: str | None = None,
    ) -> None:
        await self.server.emit(event, payload, room=room_id, skip_sid=skip)

    async def send_to(self, connection_id: str, event: str, payload: dict[str, Any]) -> None:
        await self.server.emit(event, payload, to=connection_id)

    async def disconnect(self, connection_id: str) -> None:
        await self.server.disconnect(connection_id)

    # ── Inbound routing ───────────────────────────────────

    def bind(self, coordinator: RoomCoordinator) -> None:
        """Register socket event handlers that forward into the coordinator."""
        self._coordinator = coordinator
        sio = self.server

        sio.on("connect", self._on_connect)
        sio.on("disconnect", self._on_disconnect)
        sio.on("joinRoom", self._on_join_room)
        sio.on("leaveRoom", self._on_leave_room)
        sio.on("sendMessage", self._on_send_message)
        sio.on("typing-start", self._on_typing_start)
        sio.on("typing-stop", self._on_typing_stop)
        sio.on("voice-status", self._on_voice_status)
        sio.on("message-reaction", self._on_message_reaction)
        logger.debug("SocketIOChannel: handlers bound")

    @property
    def coordinator(self) -> RoomCoordinator:
        if self._coordinator is None:
            raise RuntimeError("SocketIOChannel is not bound to a coordinator")
        return self._coordinator

    async def _on_connect(self, sid: str, environ: dict, auth: Any = None) -> None:
        logger.info(f"SocketIOChannel: connected {sid}")

    async def _on_disconnect(self, sid: str, reason: Any = None) -> None:
        logger.info(f"SocketIOChannel: disconnected {sid} ({reason})")
        try:
            await self.coordinator.on_disconnect(sid)
        except Exception as e:
            logger.error(f"SocketIOChannel: disconnect cleanup failed for {sid}: {e}")

    async def _on_join_room(self, sid: str, data: dict | None) -> None:
        data = data or {}
        room_id = data.get("session_id")
        user_id = data.get("user_id")
        if not room_id or not user_id:
            await self.send_to(sid, "error", {"message": "session_id and user_id are required"})
            return
        username = data.get("username") or "anonymous"
        try:
            await self.coordinator.on_join(sid, room_id, user_id, username, data.get("mood") or "calm")
        except Exception as e:
            logger.error(f"SocketIOChannel: joinRoom failed for {sid}: {e}")
            await self.send_to(sid, "error", {"message": "Failed to join room"})

    async def _on_leave_room(self, sid: str, data: dict | None) -> None:
        data = data or {}
        room_id, user_id = data.get("session_id"), data.get("user_id")
        if not room_id or not user_id:
            return
        try:
            await self.coordinator.on_leave(sid, room_id, user_id)
        except Exception as e:
            logger.error(f"SocketIOChannel: leaveRoom failed for {sid}: {e}")

    async def _on_send_message(self, sid: str, data: dict | None) -> None:
        data = data or {}
        room_id = data.get("session_id")
        text = data.get("text")
        if not room_id or not isinstance(text, str) or not text.strip():
            return
        try:
            await self.coordinator.on_message(
                sid,
                room_id,
                data.get("sender") or "anonymous",
                data.get("user_id") or "",
                text,
            )
        except Exception as e:
            logger.error(f"SocketIOChannel: sendMessage failed for {sid}: {e}")

    async def _on_typing_start(self, sid: str, data: dict | None) -> None:
        data = data or {}
        if not data.get("session_id"):
            return
        await self.coordinator.on_typing_start(
            sid, data["session_id"], data.get("user_id") or "", data.get("username") or ""
        )

    async def _on_typing_stop(self, sid: str, data: dict | None) -> None:
        data = data or {}
        if not data.get("session_id"):
            return
        await self.coordinator.on_typing_stop(sid, data["session_id"], data.get("user_id") or "")

    async def _on_voice_status(self, sid: str, data: dict | None) -> None:
        data = data or {}
        user_id = data.get("userId")
        if not user_id:
            return
        try:
            await self.coordinator.on_voice_status(
                sid, user_id, bool(data.get("isSpeaking")), bool(data.get("isMuted"))
            )
        except Exception as e:
            logger.error(f"SocketIOChannel: voice-status failed for {sid}: {e}")

    async def _on_message_reaction(self, sid: str, data: dict | None) -> None:
        data = data or {}
        if not data.get("messageId"):
            return
        await self.coordinator.on_reaction(
            sid, data["messageId"], data.get("reaction") or "", data.get("userId") or ""
        )
