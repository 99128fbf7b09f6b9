import socket

import pytest

from signalhub import logsetup
from signalhub.main import acquire_instance_lock, main, validate_settings


@pytest.fixture(autouse=True)
def log_file(tmp_path):
    path = tmp_path / "logs" / "app.log"
    logsetup.setup_logging(path, "info")
    yield path
    logsetup._reset()


def test_second_lock_is_refused(tmp_path):
    path = tmp_path / "instance.lock"
    first = acquire_instance_lock(path)
    try:
        assert first is not None
        assert acquire_instance_lock(path) is None
    finally:
        first.release()


def test_lock_can_be_taken_again_after_release(tmp_path):
    path = tmp_path / "instance.lock"
    first = acquire_instance_lock(path)
    first.release()
    again = acquire_instance_lock(path)
    try:
        assert again is not None
        assert again.is_locked
    finally:
        again.release()


def test_valid_settings_are_kept():
    assert validate_settings(9000, "hub") == (9000, "hub")


@pytest.mark.parametrize("port", [0, 65536, 70000])
def test_invalid_port_falls_back_to_default(port):
    assert validate_settings(port, "hub") == (8080, "hub")


def test_empty_name_falls_back_to_default():
    assert validate_settings(9000, "") == (9000, "Signal Server")


def test_invalid_port_is_logged(log_file):
    validate_settings(0, "hub")
    for handler in logging_handlers():
        handler.flush()
    assert "Invalid port number: 0, using default 8080" in log_file.read_text(
        encoding="utf-8"
    )


def logging_handlers():
    return logsetup.get_logger().handlers


def test_main_exits_quietly_when_another_instance_runs(tmp_path):
    lock_path = tmp_path / "instance.lock"
    held = acquire_instance_lock(lock_path)
    try:
        status = main(
            [
                "--lock-file", str(lock_path),
                "--config", str(tmp_path / "missing.ini"),
                "--data-file", str(tmp_path / "users.json"),
            ]
        )
        assert status == 0
        assert not (tmp_path / "users.json").exists()
    finally:
        held.release()


def test_main_fails_when_port_is_taken(tmp_path, log_file):
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    blocker.bind(("0.0.0.0", 0))
    blocker.listen(1)
    port = blocker.getsockname()[1]
    config_path = tmp_path / "config.ini"
    config_path.write_text(
        f"[signal_server]\nserverPort={port}\nserverName=hub\n", encoding="utf-8"
    )
    lock_path = tmp_path / "instance.lock"
    try:
        status = main(
            [
                "--lock-file", str(lock_path),
                "--config", str(config_path),
                "--data-file", str(tmp_path / "users.json"),
                "--log-file", str(log_file),
            ]
        )
    finally:
        blocker.close()

    assert status == 1
    for handler in logging_handlers():
        handler.flush()
    assert "Failed to start server" in log_file.read_text(encoding="utf-8")

    relock = acquire_instance_lock(lock_path)
    try:
        assert relock is not None
    finally:
        relock.release()