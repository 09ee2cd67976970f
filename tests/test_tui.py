from __future__ import annotations

import curses
import socket

from peer.core import ConnectionSession, FrameQueue, Role, SessionSnapshot, SessionStatus
from peer.storage import Direction, LogEntry
from peer.ui.tui import ESCAPE, ChatTUI, input_line, message_lines, printable, status_line
from shared.protocol import (
    ErrorCode,
    FramingError,
    IdentFrame,
    MsgFrame,
    SocketStream,
    TransportError,
    decode_frame,
)


def _snapshot(**changes) -> SessionSnapshot:
    values = dict(
        status=SessionStatus.CONNECTED,
        role=Role.CLIENT,
        local_name="alice",
        peer_name="bob",
        peer_address="127.0.0.1:9000",
        messages=(),
        pending_input="",
    )
    values.update(changes)
    return SessionSnapshot(**values)


def test_status_line_puts_address_on_the_right():
    line = status_line(_snapshot(), 40)
    assert len(line) == 40
    assert line.startswith("Connected")
    assert line.endswith("127.0.0.1:9000")


def test_status_line_narrow_terminal_is_truncated():
    line = status_line(_snapshot(status=SessionStatus.DISCONNECTED), 10)
    assert line == "Disconnect"


def test_messages_are_attributed_by_direction():
    snapshot = _snapshot(
        messages=(
            LogEntry(direction=Direction.OUTGOING, content="hi"),
            LogEntry(direction=Direction.INCOMING, content="hey", attachments=("cat.png",)),
        )
    )
    assert message_lines(snapshot, 40) == ["alice: hi", "bob: hey", "Attachment: cat.png"]


def test_long_messages_wrap_to_width():
    snapshot = _snapshot(messages=(LogEntry(direction=Direction.INCOMING, content="word " * 10),))
    lines = message_lines(snapshot, 20)
    assert len(lines) > 1
    assert all(len(line) <= 20 for line in lines)
    assert lines[0].startswith("bob: ")


def test_empty_message_still_shows_sender():
    snapshot = _snapshot(messages=(LogEntry(direction=Direction.OUTGOING, content=""),))
    assert message_lines(snapshot, 20) == ["alice:"]


def test_input_line_prompt_and_overflow():
    assert input_line("hello", 20) == "> hello"
    shown = input_line("abcdefghijklmnopqrstuvwxyz", 10)
    assert shown.startswith("..")
    assert shown.endswith("wxyz")
    assert len(shown) <= 10


def test_unprintable_peer_text_is_replaced():
    snapshot = _snapshot(
        peer_name="b\x00b",
        messages=(
            LogEntry(direction=Direction.INCOMING, content="evil\x00msg\x07", attachments=("a\x00.txt",)),
        ),
    )
    lines = message_lines(snapshot, 40)
    assert lines == ["b?b: evil?msg?", "Attachment: a?.txt"]
    assert not any("\x00" in line for line in lines)


def test_printable_keeps_ordinary_text():
    assert printable("héllo wörld ✓") == "héllo wörld ✓"
    assert printable("\x1b[31m") == "?[31m"


class ScriptedWindow:
    """Stands in for the input window; each get_wch returns or raises the next scripted item."""

    def __init__(self, keys):
        self.keys = list(keys)

    def get_wch(self):
        key = self.keys.pop(0)
        if isinstance(key, BaseException):
            raise key
        return key


class StubSession:
    def __init__(self, closed=False, error=None, send_error=None):
        self.closed = closed
        self.error = error
        self.send_error = send_error
        self.inbound = FrameQueue()
        self.calls = []

    def touch(self):
        pass

    def refresh(self):
        self.calls.append(("refresh",))

    def close(self, error=None):
        self.calls.append(("close", error))
        self.closed = True
        self.error = error

    def send_pending(self):
        if self.send_error:
            raise self.send_error
        self.calls.append(("send",))

    def backspace(self):
        self.calls.append(("backspace",))

    def append_input(self, text):
        self.calls.append(("append", text))


def _tui(keys) -> ChatTUI:
    tui = ChatTUI.__new__(ChatTUI)
    tui.input_win = ScriptedWindow(keys)
    return tui


def test_escape_ends_session_normally():
    session = StubSession()
    assert _tui([ESCAPE]).run(session) == (0, "")
    assert session.calls[-1] == ("close", None)


def test_ctrl_c_ends_session_normally():
    session = StubSession()
    assert _tui([KeyboardInterrupt()]).run(session) == (0, "")
    assert session.closed


def test_session_closed_by_connection_loss():
    lost = FramingError(ErrorCode.TRUNCATED, "peer went away")
    assert _tui([]).run(StubSession(closed=True, error=lost)) == (1, "Connection closed")
    assert _tui([]).run(StubSession(closed=True)) == (0, "")


def test_failed_send_closes_with_error():
    failure = TransportError(ErrorCode.WRITE_FAILED, "broken pipe")
    session = StubSession(send_error=failure)

    assert _tui(["\n"]).run(session) == (1, "Connection closed")
    assert session.calls[-1] == ("close", failure)


def test_keys_are_routed_to_the_session():
    session = StubSession()
    keys = [
        "h",
        "\x01",
        "\r",
        "\n",
        curses.KEY_ENTER,
        "\x7f",
        "\b",
        curses.KEY_BACKSPACE,
        curses.error(),
        ESCAPE,
    ]

    assert _tui(keys).run(session) == (0, "")
    assert session.calls == [
        ("refresh",),
        ("append", "h"),
        ("send",),
        ("send",),
        ("send",),
        ("backspace",),
        ("backspace",),
        ("backspace",),
        ("close", None),
    ]


def test_each_inbound_message_beeps_once(monkeypatch):
    beeps = []
    monkeypatch.setattr(curses, "beep", lambda: beeps.append(1))
    session = StubSession()
    session.inbound.push(MsgFrame(content="one"))
    session.inbound.push(MsgFrame(content="two"))

    _tui([ESCAPE]).run(session)

    assert len(beeps) == 2
    assert session.inbound.is_empty()


def test_typed_line_reaches_the_peer():
    left, right = socket.socketpair()
    right.settimeout(2)
    session = ConnectionSession(name="alice", role=Role.CLIENT)
    session.attach(left, "127.0.0.1:9000")
    session.handle_frame(IdentFrame(name="bob"))
    try:
        assert _tui(["h", "i", "\n", ESCAPE]).run(session) == (0, "")
        assert decode_frame(SocketStream(right)) == MsgFrame(content="hi")
        assert session.closed
        assert session.snapshot().pending_input == ""
    finally:
        session.close()
        right.close()
