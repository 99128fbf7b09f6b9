"""One connected signalling client and its WebSocket."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from .logsetup import get_logger
from .rcsuser import RcsUser

NOT_CONNECTED_TEXT = "Client not connected"


class ClientNotConnected(ConnectionError):
    """Raised when sending to a client whose connection is not open."""


def _log():
    return get_logger("Client")


def _host_of(address: Any) -> str:
    if isinstance(address, (tuple, list)) and address:
        return str(address[0])
    if isinstance(address, str):
        return address
    return ""


@dataclass(eq=False)
class Client:
    """A WebSocket connection together with the session it belongs to."""

    websocket: Any
    session_id: str = ""
    hostname: str = ""
    user: RcsUser = field(default_factory=RcsUser)
    remote_address: str = field(init=False)

    def __post_init__(self) -> None:
        self.remote_address = _host_of(getattr(self.websocket, "remote_address", None))

    def is_connected(self) -> bool:
        """Tell whether the connection is open."""
        return self.websocket is not None and getattr(self.websocket, "state", None) is State.OPEN

    async def send(self, message) -> None:
        """Send a text message; raise ClientNotConnected if that is not possible."""
        if not self.is_connected():
            _log().warning(
                "Attempting to send message to disconnected client: %s", self.session_id
            )
            raise ClientNotConnected(NOT_CONNECTED_TEXT)
        try:
            await self.websocket.send(message)
        except ConnectionClosed as exc:
            _log().warning("WebSocket error for client %s: %s", self.session_id, exc)
            raise ClientNotConnected(str(exc)) from exc

    async def send_json(self, obj) -> None:
        """Send ``obj`` as compact JSON text."""
        await self.send(json.dumps(obj, ensure_ascii=False, separators=(",", ":")))

    async def close(self) -> None:
        """Close the connection if it is still open."""
        if self.is_connected():
            await self.websocket.close()