"""The registry of known devices, kept in memory and mirrored to a JSON file."""

from __future__ import annotations

import copy
import json
import os
import sys
import threading
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

from .logsetup import get_logger
from .rcsuser import RcsUser, UserStatus

DATA_FILE_NAME = "users.json"
_APP_DIR_NAME = "signalhub"


class UserEvent(str, Enum):
    """Events a :class:`UserManager` reports to its subscribers."""

    ONLINE = "online"
    OFFLINE = "offline"
    UPDATED = "updated"


def default_data_file() -> Path:
    """Return the per-user application data path of the users file."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        xdg = os.environ.get("XDG_DATA_HOME")
        base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base / _APP_DIR_NAME / DATA_FILE_NAME


def _log():
    return get_logger("UserManager")


class UserManager:
    """Known users by serial number, with online/offline tracking and events."""

    def __init__(self, data_file=None) -> None:
        self.data_file = Path(data_file) if data_file else default_data_file()
        self._users: dict[str, RcsUser] = {}
        self._lock = threading.RLock()
        self._listeners: dict[UserEvent, list[Callable[[RcsUser], None]]] = {
            event: [] for event in UserEvent
        }
        self.load()

    def subscribe(self, event, callback) -> None:
        """Call ``callback(user)`` whenever ``event`` happens."""
        self._listeners[UserEvent(event)].append(callback)

    def _emit(self, event: UserEvent, user: RcsUser) -> None:
        for callback in list(self._listeners[event]):
            callback(copy.copy(user))

    def get(self, sn) -> RcsUser | None:
        """Return the stored user with serial number ``sn``, or None."""
        with self._lock:
            return self._users.get(sn)

    def insert(self, user) -> None:
        """Store ``user``, save it, and report it online if its status says so."""
        with self._lock:
            self._users[user.sn] = user
        self.save_user(user)
        if user.status == UserStatus.ONLINE:
            self._emit(UserEvent.ONLINE, user)

    def update(self, user) -> None:
        """Replace the stored user, save it and report any status change."""
        is_online = user.status == UserStatus.ONLINE
        with self._lock:
            previous = self._users.get(user.sn)
            was_online = previous is not None and previous.status == UserStatus.ONLINE
            self._users[user.sn] = user
        self.save_user(user)
        self._emit(UserEvent.UPDATED, user)
        if not was_online and is_online:
            self._emit(UserEvent.ONLINE, user)
        elif was_online and not is_online:
            self._emit(UserEvent.OFFLINE, user)

    def delete(self, sn) -> None:
        """Forget the user ``sn``; an online user is reported offline."""
        with self._lock:
            user = self._users.pop(sn, None)
        if user is not None and user.status == UserStatus.ONLINE:
            self._emit(UserEvent.OFFLINE, user)

    def select(self, status=UserStatus.OFFLINE) -> list[RcsUser]:
        """Return users with the given status; status 0 matches every user."""
        with self._lock:
            return [
                user
                for user in self._users.values()
                if status == UserStatus.OFFLINE or user.status == status
            ]

    def online_users(self) -> list[RcsUser]:
        """Return all users that are online."""
        return self.select(UserStatus.ONLINE)

    def online_count(self) -> int:
        """Return how many users are online."""
        return len(self.online_users())

    def set_online(self, sn) -> None:
        """Mark ``sn`` online with a fresh login date; unknown users are ignored."""
        with self._lock:
            user = self._users.get(sn)
            if user is None:
                return
            user.status = UserStatus.ONLINE
            user.login_date = datetime.now()
            snapshot = copy.copy(user)
        self.save_user(snapshot)
        self._emit(UserEvent.ONLINE, snapshot)

    def set_offline(self, sn) -> None:
        """Mark ``sn`` offline; unknown users are ignored."""
        with self._lock:
            user = self._users.get(sn)
            if user is None:
                return
            user.status = UserStatus.OFFLINE
            snapshot = copy.copy(user)
        self.save_user(snapshot)
        self._emit(UserEvent.OFFLINE, snapshot)

    def is_online(self, sn) -> bool:
        """Tell whether ``sn`` is known and online."""
        with self._lock:
            user = self._users.get(sn)
            return user is not None and user.status == UserStatus.ONLINE

    def _read_file(self):
        """Return the parsed file, or raise OSError if it cannot be read."""
        raw = self.data_file.read_bytes()
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return None

    def save_user(self, user) -> None:
        """Write ``user`` into the data file, replacing an entry with the same sn."""
        with self._lock:
            try:
                existing = self._read_file()
            except OSError:
                existing = None
            entries = existing if isinstance(existing, list) else []
            record = user.to_json()
            for position, entry in enumerate(entries):
                if isinstance(entry, dict) and entry.get("sn") == user.sn:
                    entries[position] = record
                    break
            else:
                entries.append(record)
            try:
                self.data_file.parent.mkdir(parents=True, exist_ok=True)
                self.data_file.write_text(
                    json.dumps(entries, indent=4, ensure_ascii=False) + "\n",
                    encoding="utf-8",
                )
            except OSError as exc:
                _log().warning("Cannot write user data file %s: %s", self.data_file, exc)

    def save_all(self) -> None:
        """Write every known user to the data file."""
        with self._lock:
            for user in list(self._users.values()):
                self.save_user(user)

    def load(self) -> int:
        """Read users from the data file, all offline; return how many are known."""
        try:
            parsed = self._read_file()
        except OSError:
            _log().debug("No existing user data file found, starting with empty user list")
            return len(self._users)
        if not isinstance(parsed, list):
            _log().warning("Invalid user data file format")
            return len(self._users)
        with self._lock:
            for entry in parsed:
                if isinstance(entry, dict):
                    user = RcsUser.from_json(entry)
                    user.status = UserStatus.OFFLINE
                    self._users[user.sn] = user
            count = len(self._users)
        _log().info("Loaded %d users from file", count)
        return count