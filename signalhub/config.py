"""Server settings read from an INI file."""

from __future__ import annotations

import configparser
import sys
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PORT = 8080
DEFAULT_SERVER_NAME = "Signal Server"
DEFAULT_LOG_LEVEL = "info"
CONFIG_FILE_NAME = "config.ini"

_UINT_MAX = 0xFFFFFFFF
_PORT_MASK = 0xFFFF


@dataclass(frozen=True)
class Config:
    """Settings of the signal server and where they were read from."""

    path: Path
    server_port: int = DEFAULT_PORT
    server_name: str = DEFAULT_SERVER_NAME
    log_level: str = DEFAULT_LOG_LEVEL


def _application_dir() -> Path:
    return Path(sys.argv[0] or ".").resolve().parent


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _parse_port(text: str) -> int:
    """Read an unsigned number and keep its low 16 bits; anything unreadable is 0."""
    try:
        number = int(text.strip(), 10)
    except ValueError:
        return 0
    if not 0 <= number <= _UINT_MAX:
        return 0
    return number & _PORT_MASK


def _read_ini(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        delimiters=("=",),
        inline_comment_prefixes=(";",),
        interpolation=None,
        strict=False,
    )
    parser.optionxform = str  # keys are case-sensitive
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return parser
    try:
        parser.read_string("[General]\n" + text, source=str(path))
    except configparser.Error:
        return configparser.ConfigParser(interpolation=None)
    return parser


def load_config(path=None) -> Config:
    """Load settings from ``path`` (default: config.ini beside the program).

    Missing files, sections or keys fall back to the defaults.
    """
    config_path = Path(path) if path else _application_dir() / CONFIG_FILE_NAME
    parser = _read_ini(config_path)

    log_level = _unquote(parser.get("local", "logLevel", fallback=DEFAULT_LOG_LEVEL))
    raw_port = parser.get("signal_server", "serverPort", fallback=None)
    server_port = DEFAULT_PORT if raw_port is None else _parse_port(_unquote(raw_port))
    server_name = _unquote(
        parser.get("signal_server", "serverName", fallback=DEFAULT_SERVER_NAME)
    )

    return Config(
        path=config_path,
        server_port=server_port,
        server_name=server_name,
        log_level=log_level,
    )