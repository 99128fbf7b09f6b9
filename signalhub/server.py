"""The WebSocket signalling server: accepts sessions and routes their messages."""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime
from enum import Enum
from typing import Callable
from urllib.parse import unquote, urlsplit

from websockets.asyncio.server import serve
from websockets.exceptions import ConnectionClosed

from .client import Client
from .logsetup import get_logger
from .messagehandler import MessageHandler
from .rcsuser import RcsUser, UserStatus
from .usermanager import UserManager

DEFAULT_PORT = 8080
CLEANUP_INTERVAL = 30.0


class ServerEvent(str, Enum):
    """Events a :class:`SignalServer` reports to its listener."""

    CLIENT_CONNECTED = "client_connected"
    CLIENT_DISCONNECTED = "client_disconnected"
    MESSAGE_RECEIVED = "message_received"
    STARTED = "started"
    STOPPED = "stopped"
    ERROR = "error"


def _log():
    return get_logger("SignalServer")


def parse_connection_params(path):
    """Return ``(session_id, hostname)`` from a request path's query, or None.

    ``sessionId`` is required; ``hostname`` is optional and defaults to "".
    The first occurrence of each key counts.
    """
    values: dict[str, str] = {}
    for item in urlsplit(path).query.split("&"):
        if not item:
            continue
        key, _, value = item.partition("=")
        values.setdefault(unquote(key), unquote(value))
    session_id = values.get("sessionId", "")
    if not session_id:
        return None
    return session_id, values.get("hostname", "")


class SignalServer:
    """Accepts WebSocket sessions identified by ``sessionId`` and relays messages.

    ``listener``, if given, is called as ``listener(event, *args)`` for every
    :class:`ServerEvent`.
    """

    def __init__(
        self,
        name,
        port=DEFAULT_PORT,
        *,
        host=None,
        user_manager=None,
        listener: Callable | None = None,
        cleanup_interval=CLEANUP_INTERVAL,
    ) -> None:
        self.name = name
        self.port = port
        self.host = host
        self.user_manager = user_manager if user_manager is not None else UserManager()
        self.listener = listener
        self.cleanup_interval = cleanup_interval
        self.message_handler = MessageHandler(self, self.user_manager)
        self._server = None
        self._clients: dict[str, Client] = {}
        self._online_count = 0
        self._cleanup_task: asyncio.Task | None = None
        self._stopped: asyncio.Event | None = None

    @property
    def bound_port(self):
        """The port actually listened on, or None when not running."""
        if self._server is None:
            return None
        for sock in self._server.sockets:
            return sock.getsockname()[1]
        return None

    def _emit(self, event: ServerEvent, *args) -> None:
        if self.listener is not None:
            self.listener(event, *args)

    async def start(self) -> bool:
        """Start listening; return False if already running or the port cannot be bound."""
        if self._server is not None:
            _log().warning("Server is already running")
            return False
        try:
            self._server = await serve(self.handle_connection, self.host, self.port)
        except OSError as exc:
            error = str(exc)
            _log().error("WebSocket server failed to start: %s", error)
            _log().error("Binding port %s failed, it may already be in use", self.port)
            self._server = None
            self._emit(ServerEvent.ERROR, error)
            return False

        _log().info("WebSocket server started, listening on port: %s", self.port)
        self._stopped = asyncio.Event()
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        self._emit(ServerEvent.STARTED)
        return True

    async def stop(self) -> None:
        """Close every client and stop listening; does nothing when not running."""
        if self._server is None:
            return

        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        clients = list(self._clients.values())
        self._clients.clear()
        await asyncio.gather(
            *(client.close() for client in clients if client.is_connected()),
            return_exceptions=True,
        )

        self._server.close()
        await self._server.wait_closed()
        self._server = None
        self._online_count = 0

        _log().info("WebSocket server stopped")
        if self._stopped is not None:
            self._stopped.set()
        self._emit(ServerEvent.STOPPED)

    def is_listening(self) -> bool:
        """Tell whether the server is accepting connections."""
        return self._server is not None and self._server.is_serving()

    def get_client(self, session_id):
        """Return the client of ``session_id``, or None."""
        return self._clients.get(session_id)

    def all_clients(self) -> list:
        """Return every registered client."""
        return list(self._clients.values())

    def online_count(self) -> int:
        """Return the connection counter."""
        return self._online_count

    def _setup_user(self, client: Client) -> None:
        existing = self.user_manager.get(client.session_id)
        if existing is not None:
            existing.status = UserStatus.ONLINE
            existing.hostname = client.hostname
            existing.login_ip = client.remote_address
            existing.login_date = datetime.now()
            self.user_manager.update(existing)
            client.user = copy.copy(existing)
        else:
            user = RcsUser(
                sn=client.session_id,
                hostname=client.hostname,
                login_ip=client.remote_address,
                status=UserStatus.ONLINE,
            )
            self.user_manager.insert(user)
            client.user = copy.copy(user)

    async def register_client(self, client) -> None:
        """Record ``client`` as online, replacing an older one with its session id."""
        self._setup_user(client)

        previous = self._clients.pop(client.session_id, None)
        self._clients[client.session_id] = client
        if previous is not None and previous is not client:
            await previous.close()

        self._online_count += 1
        _log().info(
            "Connection opened: %s-%s, connections now: %d",
            client.hostname,
            client.session_id,
            self._online_count,
        )

        self._emit(ServerEvent.CLIENT_CONNECTED, client)
        await self.message_handler.send_all_online_users_to(client)
        await self.message_handler.send_online_notification_to_all(client)

    async def remove_client(self, session_id) -> None:
        """Drop ``session_id``, mark its user offline and tell the others."""
        client = self._clients.pop(session_id, None)
        if client is None:
            return
        self._online_count -= 1
        self.user_manager.set_offline(session_id)
        await self.message_handler.send_offline_notification_to_all(client)
        self._emit(ServerEvent.CLIENT_DISCONNECTED, client)
        await client.close()

    async def handle_connection(self, websocket) -> None:
        """Serve one WebSocket connection until it closes."""
        params = parse_connection_params(websocket.request.path)
        if params is None:
            _log().warning("Invalid connection parameters, closing connection")
            await websocket.close()
            return

        session_id, hostname = params
        client = Client(websocket, session_id=session_id, hostname=hostname)
        await self.register_client(client)
        try:
            async for message in websocket:
                if isinstance(message, str):
                    await self.message_handler.handle_message(client, message)
                    self._emit(ServerEvent.MESSAGE_RECEIVED, client, message)
        except ConnectionClosed:
            pass
        finally:
            if self._clients.get(session_id) is client:
                _log().info(
                    "Connection closed: %s, connections now: %d",
                    session_id,
                    self._online_count - 1,
                )
                await self.remove_client(session_id)

    def cleanup_disconnected_clients(self) -> int:
        """Forget clients whose connection is no longer open; return how many."""
        stale = [sid for sid, client in self._clients.items() if not client.is_connected()]
        for session_id in stale:
            del self._clients[session_id]
        if stale:
            _log().debug("Cleaned up %d disconnected clients", len(stale))
        return len(stale)

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            self.cleanup_disconnected_clients()

    async def serve_forever(self) -> bool:
        """Start and run until :meth:`stop`; return False if starting failed."""
        if not await self.start():
            return False
        await self._stopped.wait()
        return True