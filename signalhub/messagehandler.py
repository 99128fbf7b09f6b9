"""Routing of signalling messages between connected clients."""

from __future__ import annotations

from .client import ClientNotConnected
from .logsetup import get_logger
from .wsmsg import ERROR_TYPE, SERVER_SENDER, WsMsg

HEARTBEAT = "@heart"
INVALID_FORMAT_TEXT = "Invalid message format"
ONLINE_ONE = "onlineOne"
ONLINE_LIST = "onlineList"
OFFLINE_ONE = "offlineOne"


def _log():
    return get_logger("MessageHandler")


async def _deliver(client, text: str) -> None:
    """Send ``text``; a client that has gone away is only logged (by the client)."""
    try:
        await client.send(text)
    except ClientNotConnected:
        pass


class MessageHandler:
    """Answers heartbeats, forwards signalling messages and broadcasts presence.

    ``server`` must offer ``get_client(session_id)``, ``all_clients()`` and
    ``online_count()``; users are looked up in ``user_manager``, which defaults
    to ``server.user_manager``.
    """

    def __init__(self, server, user_manager=None) -> None:
        self.server = server
        self.user_manager = (
            user_manager if user_manager is not None else server.user_manager
        )

    async def handle_message(self, client, message) -> None:
        """Handle one text message received from ``client``."""
        _log().debug("Message from client %s: %s", client.session_id, message)

        if message == HEARTBEAT:
            self.handle_heartbeat(client)
            return

        msg = WsMsg.from_json_string(message)
        if not msg.type:
            await self._send_error(client, INVALID_FORMAT_TEXT)
            return

        await self.handle_signal_message(client, msg, message)

    def handle_heartbeat(self, client) -> None:
        """Acknowledge a heartbeat; no reply is sent."""
        _log().debug("Heartbeat from client: %s", client.session_id)

    async def handle_signal_message(self, client, msg, raw) -> None:
        """Forward ``raw`` to the receiver named in ``msg`` or tell the sender why not."""
        receiver = msg.receiver
        if not receiver:
            await _deliver(client, WsMsg.error_not_found(msg.sender).to_json_string())
            return

        if self.user_manager.get(receiver) is None:
            await _deliver(client, WsMsg.offline(msg.sender).to_json_string())
            return

        receiver_client = self.server.get_client(receiver)
        if receiver_client is None or not receiver_client.is_connected():
            await _deliver(client, WsMsg.offline(msg.sender).to_json_string())
            return

        await self._forward(client, msg, raw)

    async def _forward(self, sender, msg, raw: str) -> None:
        receiver = msg.receiver
        receiver_client = self.server.get_client(receiver)
        if receiver_client is not None and receiver_client.is_connected():
            await _deliver(receiver_client, raw)
            _log().debug(
                "Forwarded from %s to %s: %s", sender.session_id, receiver, raw
            )

    async def _broadcast_presence(self, subject, kind: str) -> None:
        payload = subject.user.to_json()
        for client in self.server.all_clients():
            if client.session_id != subject.session_id and client.is_connected():
                note = WsMsg(kind, payload, SERVER_SENDER, client.session_id)
                await _deliver(client, note.to_json_string())

    async def send_online_notification_to_all(self, new_client) -> None:
        """Tell every other connected client that ``new_client`` came online."""
        if self.server.online_count() <= 1:
            return
        await self._broadcast_presence(new_client, ONLINE_ONE)

    async def send_all_online_users_to(self, client) -> None:
        """Send ``client`` the list of the other users that are online."""
        online = self.user_manager.online_users()
        if len(online) <= 1:
            return

        others = [user.to_json() for user in online if user.sn != client.session_id]
        if not others:
            return

        listing = WsMsg(ONLINE_LIST, others, SERVER_SENDER, client.session_id)
        await _deliver(client, listing.to_json_string())

    async def send_offline_notification_to_all(self, offline_client) -> None:
        """Tell every other connected client that ``offline_client`` went offline."""
        if self.server.online_count() == 0:
            return
        await self._broadcast_presence(offline_client, OFFLINE_ONE)

    async def _send_error(self, client, text: str, type_: str = ERROR_TYPE) -> None:
        reply = WsMsg(type_, text, SERVER_SENDER, client.session_id)
        await _deliver(client, reply.to_json_string())