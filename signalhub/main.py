"""Command-line entry point that runs a single instance of the signal server."""

from __future__ import annotations

import argparse
import asyncio
import tempfile
from pathlib import Path

from filelock import FileLock, Timeout

from .config import DEFAULT_PORT, DEFAULT_SERVER_NAME, load_config
from .logsetup import get_logger, setup_logging
from .server import ServerEvent, SignalServer
from .usermanager import UserManager

LOCK_FILE_NAME = "signal_server.lock"
MAX_PORT = 65535


def _log():
    return get_logger("main")


def _default_lock_path() -> Path:
    return Path(tempfile.gettempdir()) / LOCK_FILE_NAME


def acquire_instance_lock(lock_path=None):
    """Take the single-instance lock without waiting.

    Return the held lock, or None if another instance already holds it. A lock
    file that cannot be opened does not stop the program from running.
    """
    path = Path(lock_path) if lock_path else _default_lock_path()
    lock = FileLock(str(path))
    try:
        lock.acquire(timeout=0)
    except Timeout:
        return None
    except OSError:
        return lock
    return lock


def validate_settings(port, name):
    """Return a usable ``(port, name)``, replacing an invalid port or empty name."""
    if port == 0 or port > MAX_PORT:
        _log().error("Invalid port number: %s, using default %d", port, DEFAULT_PORT)
        port = DEFAULT_PORT
    if not name:
        name = DEFAULT_SERVER_NAME
    return port, name


class _EventLogger:
    """Writes the server's lifecycle and connection events to the log."""

    def __init__(self, server: SignalServer) -> None:
        self.server = server

    def __call__(self, event, *args) -> None:
        log = _log()
        if event is ServerEvent.STARTED:
            port = self.server.bound_port or self.server.port
            log.info("=== Signal Server Started ===")
            log.info("Server Name: %s", self.server.name)
            log.info("Listening Port: %s", port)
            log.info("WebSocket URL: ws://localhost:%s", port)
            log.info("==============================")
            log.info("Press Ctrl+C to stop the server")
        elif event is ServerEvent.STOPPED:
            log.info("=== Signal Server Stopped ===")
        elif event is ServerEvent.ERROR:
            log.error("Server Error: %s", args[0] if args else "")
        elif event is ServerEvent.CLIENT_CONNECTED:
            client = args[0]
            log.info(
                "Client connected: %s from %s (%s)",
                client.session_id,
                client.remote_address,
                client.hostname,
            )
        elif event is ServerEvent.CLIENT_DISCONNECTED:
            log.info("Client disconnected: %s", args[0].session_id)


async def _run(server: SignalServer) -> int:
    try:
        started = await server.serve_forever()
    finally:
        if server.is_listening():
            _log().info("Shutting down server...")
            await server.stop()
    if not started:
        _log().error("Failed to start server")
        return 1
    return 0


def _parse_args(argv):
    parser = argparse.ArgumentParser(description="WebSocket signalling server.")
    parser.add_argument("--config", help="path of the INI settings file")
    parser.add_argument("--lock-file", help="path of the single-instance lock file")
    parser.add_argument("--log-file", help="path of the log file")
    parser.add_argument("--data-file", help="path of the users data file")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Run the server until stopped; return the process exit status."""
    args = _parse_args(argv)
    lock = acquire_instance_lock(args.lock_file)
    if lock is None:
        return 0
    try:
        config = load_config(args.config)
        setup_logging(args.log_file, config.log_level)
        port, name = validate_settings(config.server_port, config.server_name)

        log = _log()
        log.info("Starting server with configuration:")
        log.info("  Server Name: %s", name)
        log.info("  Port: %s", port)
        log.info("  Config file: %s", config.path)

        user_manager = UserManager(args.data_file)
        server = SignalServer(name, port, user_manager=user_manager)
        server.listener = _EventLogger(server)
        try:
            return asyncio.run(_run(server))
        except KeyboardInterrupt:
            return 0
        finally:
            user_manager.save_all()
    finally:
        lock.release()


if __name__ == "__main__":
    raise SystemExit(main())