import json

import pytest
from websockets.exceptions import ConnectionClosedError
from websockets.protocol import State

from signalhub.client import Client, ClientNotConnected
from signalhub.rcsuser import RcsUser


class FakeSocket:
    def __init__(self, state=State.OPEN, remote_address=("192.0.2.10", 40000), fail=False):
        self.state = state
        self.remote_address = remote_address
        self.fail = fail
        self.sent = []
        self.closed = 0

    async def send(self, message):
        if self.fail:
            raise ConnectionClosedError(None, None)
        self.sent.append(message)

    async def close(self):
        self.closed += 1
        self.state = State.CLOSED


def test_remote_address_taken_from_socket():
    client = Client(FakeSocket(remote_address=("192.0.2.10", 40000)))
    assert client.remote_address == "192.0.2.10"


def test_remote_address_missing():
    client = Client(FakeSocket(remote_address=None))
    assert client.remote_address == ""


def test_fields_and_default_user():
    client = Client(FakeSocket(), session_id="dev-a", hostname="box")
    assert client.session_id == "dev-a"
    assert client.hostname == "box"
    assert client.user.sn == RcsUser().sn


@pytest.mark.parametrize(
    "state, expected",
    [(State.OPEN, True), (State.CLOSING, False), (State.CLOSED, False), (State.CONNECTING, False)],
)
def test_is_connected_follows_state(state, expected):
    assert Client(FakeSocket(state=state)).is_connected() is expected


def test_is_connected_without_socket():
    assert Client(None).is_connected() is False


@pytest.mark.asyncio
async def test_send_delivers_text():
    socket = FakeSocket()
    client = Client(socket, session_id="dev-a")
    await client.send("@heart")
    assert socket.sent == ["@heart"]


@pytest.mark.asyncio
async def test_send_to_closed_client_raises():
    socket = FakeSocket(state=State.CLOSED)
    client = Client(socket, session_id="dev-a")
    with pytest.raises(ClientNotConnected, match="Client not connected"):
        await client.send("hello")
    assert socket.sent == []


@pytest.mark.asyncio
async def test_send_on_dropped_connection_raises():
    client = Client(FakeSocket(fail=True), session_id="dev-a")
    with pytest.raises(ClientNotConnected):
        await client.send("hello")


@pytest.mark.asyncio
async def test_send_json_is_compact():
    socket = FakeSocket()
    client = Client(socket)
    payload = {"type": "onlineOne", "data": {"sn": "dev-a"}, "sender": "server"}
    await client.send_json(payload)
    assert len(socket.sent) == 1
    assert " " not in socket.sent[0]
    assert json.loads(socket.sent[0]) == payload


@pytest.mark.asyncio
async def test_close_only_when_open():
    socket = FakeSocket()
    client = Client(socket)
    await client.close()
    await client.close()
    assert socket.closed == 1
    assert client.is_connected() is False