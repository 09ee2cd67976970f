from __future__ import annotations

import curses
import logging
import textwrap
from typing import List, Tuple

from shared.protocol import ProtocolError

from peer.core import ConnectionSession, SessionSnapshot, SessionStatus
from peer.storage import Direction

logger = logging.getLogger(__name__)

ESCAPE = "\x1b"
ENTER_CHARS = ("\n", "\r")
BACKSPACE_CHARS = ("\x7f", "\b")
INPUT_POLL_MS = 100
UNPRINTABLE = "?"

STATUS_COLORS = {
    SessionStatus.CONNECTED: 1,
    SessionStatus.DISCONNECTED: 2,
    SessionStatus.IDLE: 3,
}


def status_line(snapshot: SessionSnapshot, width: int) -> str:
    """Status on the left, peer address flush right."""
    status = str(snapshot.status)
    padding = max(1, width - len(status) - len(snapshot.peer_address))
    return (status + " " * padding + snapshot.peer_address)[:width]


def printable(text: str) -> str:
    """Replace control and other unprintable characters; curses cannot draw NUL at all."""
    return "".join(ch if ch.isprintable() else UNPRINTABLE for ch in text)


def message_lines(snapshot: SessionSnapshot, width: int) -> List[str]:
    """Wrapped log lines. Peer-supplied text is passed through `printable`."""
    lines: List[str] = []
    for entry in snapshot.messages:
        sender = snapshot.local_name if entry.direction is Direction.OUTGOING else snapshot.peer_name
        lines.extend(textwrap.wrap(f"{sender}: {entry.content}", width) or [f"{sender}:"])
        for name in entry.attachments:
            lines.extend(textwrap.wrap(f"Attachment: {name}", width))
    return [printable(line) for line in lines]


def input_line(pending: str, width: int) -> str:
    """Prompt plus input; long input keeps its tail visible behind a '..' marker."""
    if len(pending) > width - 2:
        return ".." + pending[len(pending) - max(0, width - 4) :]
    return "> " + pending


class ChatTUI:
    """
    Three-region curses surface: status bar, message log, input line.

    `render` is the session's render callback. The session holds its state
    lock while calling it, so two renders never overlap.
    """

    def __init__(self, stdscr: "curses.window") -> None:
        self.stdscr = stdscr
        curses.set_escdelay(25)
        curses.curs_set(1)
        if curses.has_colors():
            curses.start_color()
            curses.init_pair(1, curses.COLOR_BLACK, curses.COLOR_GREEN)
            curses.init_pair(2, curses.COLOR_BLACK, curses.COLOR_RED)
            curses.init_pair(3, curses.COLOR_BLACK, curses.COLOR_YELLOW)
        self._layout()

    def _layout(self) -> None:
        lines, cols = self.stdscr.getmaxyx()
        self.height, self.width = lines, cols
        self.status_win = curses.newwin(1, cols, 0, 0)
        self.message_win = curses.newwin(max(1, lines - 2), cols, 1, 0)
        self.input_win = curses.newwin(1, cols, lines - 1, 0)
        self.input_win.keypad(True)
        self.input_win.timeout(INPUT_POLL_MS)

    def render(self, snapshot: SessionSnapshot) -> None:
        width = max(1, self.width - 1)
        self.status_win.erase()
        self.message_win.erase()
        self.input_win.erase()

        if curses.has_colors():
            self.status_win.bkgd(" ", curses.color_pair(STATUS_COLORS[snapshot.status]))
        self._put(self.status_win, 0, status_line(snapshot, width))

        visible = max(1, self.height - 2)
        for row, line in enumerate(message_lines(snapshot, width)[-visible:]):
            self._put(self.message_win, row, line)

        self._put(self.input_win, 0, input_line(snapshot.pending_input, width))

        self.status_win.noutrefresh()
        self.message_win.noutrefresh()
        self.input_win.noutrefresh()
        curses.doupdate()

    @staticmethod
    def _put(win: "curses.window", row: int, text: str) -> None:
        try:
            win.addstr(row, 0, text)
        except curses.error:
            # writing into the bottom-right cell raises after the text is drawn
            pass

    def run(self, session: ConnectionSession) -> Tuple[int, str]:
        """
        Foreground input loop. Returns (exit status, message for stderr).
        ESC ends the session normally; a lost connection ends it with status 1.
        """
        session.touch()
        session.refresh()
        while True:
            if session.closed:
                return (1, "Connection closed") if session.error else (0, "")
            self._drain_inbound(session)
            try:
                ch = self.input_win.get_wch()
            except curses.error:
                continue  # poll timeout
            except KeyboardInterrupt:
                session.close()
                return 0, ""
            session.touch()
            try:
                if ch == ESCAPE:
                    session.close()
                    return 0, ""
                self._handle_key(session, ch)
            except ProtocolError as exc:
                logger.error("Send failed: %s", exc)
                session.close(exc)
                return 1, "Connection closed"

    def _handle_key(self, session: ConnectionSession, ch: "str | int") -> None:
        if isinstance(ch, str):
            if ch in ENTER_CHARS:
                session.send_pending()
            elif ch in BACKSPACE_CHARS:
                session.backspace()
            elif ch.isprintable():
                session.append_input(ch)
        elif ch == curses.KEY_ENTER:
            session.send_pending()
        elif ch == curses.KEY_BACKSPACE:
            session.backspace()
        elif ch == curses.KEY_RESIZE:
            self._layout()
            session.refresh()

    def _drain_inbound(self, session: ConnectionSession) -> None:
        while True:
            frame = session.inbound.pop(timeout=0)
            if frame is None:
                return
            logger.debug("Incoming message (%s attachments)", len(frame.attachments))
            curses.beep()


__all__ = ["ChatTUI", "status_line", "printable", "message_lines", "input_line"]
