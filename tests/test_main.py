from __future__ import annotations

import logging

import pytest

from peer import main as entry
from peer.config import DEFAULT_CONFIG, ENV_PREFIX


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in DEFAULT_CONFIG:
        monkeypatch.setenv(f"{ENV_PREFIX}{key.upper()}", "")
        monkeypatch.delenv(f"{ENV_PREFIX}{key.upper()}")


def test_parser_accepts_short_and_long_flags():
    args = entry.build_parser().parse_args(["-s", "-p", "9000", "-n", "bob", "-a", "10.0.0.2"])
    assert args.server is True
    assert args.port == 9000
    assert args.name == "bob"
    assert args.address == "10.0.0.2"

    args = entry.build_parser().parse_args(["--port", "9000"])
    assert args.server is None
    assert args.address is None


def test_missing_port_exits_with_error(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(entry.curses, "wrapper", pytest.fail)

    status = entry.main(["--env-file", str(tmp_path / "none.env"), "-n", "alice"])

    assert status == 1
    assert "Port is required" in capsys.readouterr().err


def test_session_result_is_reported(tmp_path, capsys, monkeypatch):
    calls = []

    def fake_wrapper(func, config):
        calls.append(config)
        return 1, "Failed to connect: CONNECT_FAILED (2002): nobody home"

    monkeypatch.setattr(entry.curses, "wrapper", fake_wrapper)
    monkeypatch.setattr(entry.logging, "basicConfig", lambda **kwargs: None)

    status = entry.main(["--env-file", str(tmp_path / "none.env"), "-p", "9000", "-n", "alice"])

    assert status == 1
    assert calls[0]["port"] == 9000
    assert calls[0]["server"] is False
    assert "Failed to connect" in capsys.readouterr().err


def test_interrupt_before_session_starts(tmp_path, monkeypatch):
    def interrupted(func, config):
        raise KeyboardInterrupt

    monkeypatch.setattr(entry.curses, "wrapper", interrupted)
    monkeypatch.setattr(entry.logging, "basicConfig", lambda **kwargs: None)

    assert entry.main(["--env-file", str(tmp_path / "none.env"), "-p", "9000", "-s"]) == 130


def test_logging_stays_off_the_terminal_without_log_file(monkeypatch):
    seen = {}
    monkeypatch.setattr(entry.logging, "basicConfig", lambda **kwargs: seen.update(kwargs))

    entry.configure_logging("ERROR", "")

    assert seen["level"] == "ERROR"
    assert [type(handler) for handler in seen["handlers"]] == [logging.NullHandler]


def test_logging_goes_to_log_file(tmp_path, monkeypatch):
    seen = {}
    monkeypatch.setattr(entry.logging, "basicConfig", lambda **kwargs: seen.update(kwargs))
    log_file = tmp_path / "peer.log"

    entry.configure_logging("DEBUG", str(log_file))

    (handler,) = seen["handlers"]
    try:
        assert isinstance(handler, logging.FileHandler)
        assert handler.baseFilename == str(log_file)
    finally:
        handler.close()
