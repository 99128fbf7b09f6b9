"""The JSON envelope exchanged between signalling clients."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

SERVER_SENDER = "server"
ERROR_TYPE = "error"
NOT_FOUND_TEXT = "not found recv id"
OFFLINE_TEXT = "The controlled end may not be online"


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _data_to_json(data: Any) -> Any:
    """Objects, arrays, strings and null go out as they are; scalars as text."""
    if isinstance(data, bool):
        return "true" if data else "false"
    if isinstance(data, int):
        return str(data)
    if isinstance(data, float):
        if data.is_integer() and abs(data) < 1e15:
            return str(int(data))
        return repr(data)
    return data


@dataclass
class WsMsg:
    """A message with a type, a payload, a sender and a receiver."""

    type: str = ""
    data: Any = None
    sender: str = ""
    receiver: str = ""

    def to_json(self) -> dict:
        """Return the message as a JSON object."""
        return {
            "type": self.type,
            "sender": self.sender,
            "receiver": self.receiver,
            "data": _data_to_json(self.data),
        }

    @classmethod
    def from_json(cls, data) -> "WsMsg":
        """Build a message from a JSON object; fields of the wrong kind are empty."""
        return cls(
            type=_as_str(data.get("type")),
            data=data.get("data"),
            sender=_as_str(data.get("sender")),
            receiver=_as_str(data.get("receiver")),
        )

    def to_json_string(self) -> str:
        """Return compact JSON text with keys in sorted order."""
        return json.dumps(
            self.to_json(), ensure_ascii=False, separators=(",", ":"), sort_keys=True
        )

    @classmethod
    def from_json_string(cls, text) -> "WsMsg":
        """Parse JSON text; anything that is not a JSON object gives an empty message."""
        try:
            parsed = json.loads(text)
        except (ValueError, TypeError):
            return cls()
        if not isinstance(parsed, dict):
            return cls()
        return cls.from_json(parsed)

    @classmethod
    def error_not_found(cls, receiver) -> "WsMsg":
        """Error telling ``receiver`` that the message named no receiver."""
        return cls(ERROR_TYPE, NOT_FOUND_TEXT, SERVER_SENDER, receiver)

    @classmethod
    def offline(cls, receiver) -> "WsMsg":
        """Error telling ``receiver`` that the other end is not online."""
        return cls(ERROR_TYPE, OFFLINE_TEXT, SERVER_SENDER, receiver)

    @classmethod
    def error_pwd(cls, receiver) -> "WsMsg":
        """Error sent on a password mismatch; it carries the offline text."""
        return cls(ERROR_TYPE, OFFLINE_TEXT, SERVER_SENDER, receiver)