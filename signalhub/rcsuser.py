"""A known client device and its last login."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any


class UserStatus(IntEnum):
    OFFLINE = 0
    ONLINE = 1


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not value.is_integer():
        return 0
    return int(value)


def _parse_date(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass
class RcsUser:
    """A device identified by its serial number ``sn``."""

    sn: str = ""
    hostname: str = ""
    login_ip: str = ""
    login_date: datetime | None = field(default_factory=datetime.now)
    status: int = UserStatus.OFFLINE

    def to_json(self) -> dict:
        """Return the user as a JSON object."""
        date_text = (
            self.login_date.isoformat(timespec="seconds") if self.login_date else ""
        )
        return {
            "sn": self.sn,
            "hostname": self.hostname,
            "loginIp": self.login_ip,
            "loginDate": date_text,
            "status": int(self.status),
        }

    @classmethod
    def from_json(cls, data) -> "RcsUser":
        """Build a user from a JSON object; bad or missing fields are empty."""
        return cls(
            sn=_as_str(data.get("sn")),
            hostname=_as_str(data.get("hostname")),
            login_ip=_as_str(data.get("loginIp")),
            login_date=_parse_date(data.get("loginDate")),
            status=_as_int(data.get("status")),
        )