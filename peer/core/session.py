from __future__ import annotations

import logging
import socket
import threading
import time
from collections.abc import Callable, Iterable
from enum import StrEnum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from shared.protocol import (
    HEARTBEAT_INTERVAL,
    IDLE_CHECK_INTERVAL,
    IDLE_TIMEOUT,
    MAX_CONTENT_LENGTH,
    Attachment,
    ErrorCode,
    Frame,
    FrameType,
    IdentFrame,
    MsgFrame,
    PingFrame,
    PongFrame,
    ProtocolError,
    SocketStream,
    TransportError,
    decode_frame,
    encoded_length,
    is_control,
    write_frame,
)
from shared.utils import utc_timestamp

from peer.storage import ChatLog, Direction, LogEntry

from .frame_queue import FrameQueue
from .network import accept_one, connect_to, open_listener

logger = logging.getLogger(__name__)


class Role(StrEnum):
    SERVER = "server"
    CLIENT = "client"


class SessionStatus(StrEnum):
    DISCONNECTED = "Disconnected"
    CONNECTED = "Connected"
    IDLE = "Idle"


class SessionSnapshot(BaseModel):
    """Read-only view handed to the renderer. Built atomically under the state lock."""

    model_config = ConfigDict(frozen=True)

    status: SessionStatus
    role: Role
    local_name: str
    peer_name: str
    peer_address: str
    messages: Tuple[LogEntry, ...]
    pending_input: str


RenderCallback = Callable[[SessionSnapshot], None]
ClosedCallback = Callable[[Optional[ProtocolError]], None]
FrameHandler = Callable[[Frame], None]


class ConnectionSession:
    """
    Owns the single peer connection and everything that happens on it.

    State (status, names, address, activity timestamps, pending input and the
    chat log) lives behind one state lock. Socket writes go through a separate
    send lock so a heartbeat can never interleave its bytes with a message.
    Background work runs in three threads: receive, idle evaluator and, for
    the server role only, the heartbeat. All of them share one stop event.
    """

    def __init__(
        self,
        name: str,
        role: Role,
        on_render: Optional[RenderCallback] = None,
        on_closed: Optional[ClosedCallback] = None,
        clock: Callable[[], float] = time.time,
        idle_check_interval: float = IDLE_CHECK_INTERVAL,
        idle_timeout: float = IDLE_TIMEOUT,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
    ) -> None:
        self._ident = IdentFrame.from_dict({"name": name})
        self.name = name
        self.role = role
        self.idle_check_interval = idle_check_interval
        self.idle_timeout = idle_timeout
        self.heartbeat_interval = heartbeat_interval
        self.inbound = FrameQueue()

        self._on_render = on_render
        self._on_closed = on_closed
        self._clock = clock

        self._state_lock = threading.RLock()
        self._send_lock = threading.Lock()
        self._stop = threading.Event()
        self._closed = threading.Event()

        self._status = SessionStatus.DISCONNECTED
        self._peer_name = ""
        self._peer_address = ""
        self._last_local_activity = clock()
        self._last_peer_activity = 0.0
        self._pending_input = ""
        self._log = ChatLog()
        self._stream: Optional[SocketStream] = None
        self._error: Optional[ProtocolError] = None
        self._closing = False
        self._workers: List[threading.Thread] = []

        self._handlers: Dict[FrameType, FrameHandler] = {
            FrameType.IDENT: self._handle_ident,
            FrameType.MSG: self._handle_msg,
            FrameType.PING: self._handle_ping,
            FrameType.PONG: self._handle_pong,
        }

    # ------------------------------------------------------------------
    # connection setup
    # ------------------------------------------------------------------
    def connect(self, address: str, port: int, bind_host: str = "0.0.0.0") -> None:
        """
        Server role: listen on `port` and accept exactly one peer.
        Client role: connect to `address:port` and introduce ourselves.
        Raises TransportError on any setup failure; nothing is retried.
        """
        if self.role is Role.SERVER:
            sock, peer_address = accept_one(open_listener(port, bind_host))
        else:
            sock, peer_address = connect_to(address, port)
        self.attach(sock, peer_address)
        if self.role is Role.CLIENT:
            self.send_frame(self._ident)
        self._render()

    def attach(self, sock: socket.socket, peer_address: str) -> None:
        """Adopt an already connected socket."""
        with self._state_lock:
            self._stream = SocketStream(sock)
            self._peer_address = peer_address

    def start(self) -> None:
        stream = self._stream
        if stream is None:
            raise TransportError(ErrorCode.CONNECTION_LOST, "Session has no connection to run")
        self._spawn(self._receive_loop, "session-recv-loop", stream)
        self._spawn(self._idle_loop, "session-idle-check")
        if self.role is Role.SERVER:
            self._spawn(self._heartbeat_loop, "session-heartbeat")

    def _spawn(self, target: Callable[..., None], name: str, *args: object) -> None:
        thread = threading.Thread(target=target, name=name, args=args, daemon=True)
        self._workers.append(thread)
        thread.start()

    # ------------------------------------------------------------------
    # teardown
    # ------------------------------------------------------------------
    def close(self, error: Optional[ProtocolError] = None) -> bool:
        """
        Stop every loop and release the socket. Safe to call from any thread
        and more than once; only the first call does the work.
        Order: signal stop, close the socket to interrupt the blocked read, join.
        """
        with self._state_lock:
            if self._closing:
                return False
            self._closing = True
            self._error = error
            stream = self._stream
        self._stop.set()
        if stream is not None:
            stream.close()
        current = threading.current_thread()
        for thread in self._workers:
            if thread is not current:
                thread.join(timeout=5)
        if error is None:
            logger.info("Session closed")
        else:
            logger.error("Session closed after connection loss: %s", error)
        self._closed.set()
        if self._on_closed:
            self._on_closed(error)
        return True

    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        return self._closed.wait(timeout)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def error(self) -> Optional[ProtocolError]:
        with self._state_lock:
            return self._error

    # ------------------------------------------------------------------
    # background loops
    # ------------------------------------------------------------------
    def _receive_loop(self, stream: SocketStream) -> None:
        while not self._stop.is_set():
            try:
                frame = decode_frame(stream)
                self.handle_frame(frame)
            except ProtocolError as exc:
                if not self._stop.is_set():
                    logger.error("Receive loop terminated: %s", exc)
                    self.close(exc)
                break

    def _idle_loop(self) -> None:
        while not self._stop.wait(self.idle_check_interval):
            self.check_idle()

    def _heartbeat_loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.send_frame(PingFrame(last_active=self._local_timestamp()))
            except ProtocolError as exc:
                if not self._stop.is_set():
                    logger.error("Heartbeat failed: %s", exc)
                    self.close(exc)
                break
            if self._stop.wait(self.heartbeat_interval):
                break

    # ------------------------------------------------------------------
    # inbound frames
    # ------------------------------------------------------------------
    def handle_frame(self, frame: Frame) -> None:
        """Apply one decoded frame. Frames are handled strictly in arrival order."""
        # heartbeat and handshake traffic stays at DEBUG
        level = logging.DEBUG if is_control(frame.type) else logging.INFO
        logger.log(level, "Received %s frame", frame.type.name)
        self._handlers[frame.type](frame)

    def _handle_ident(self, frame: IdentFrame) -> None:
        with self._state_lock:
            self._peer_name = frame.name
            self._status = SessionStatus.CONNECTED
            self._last_peer_activity = self._clock()
        logger.info("Peer identified as %s", frame.name)
        if self.role is Role.SERVER:
            self.send_frame(self._ident)
        self._render()

    def _handle_msg(self, frame: MsgFrame) -> None:
        with self._state_lock:
            self._log.append(LogEntry.from_frame(frame, Direction.INCOMING))
        self.inbound.push(frame)
        self._render()

    def _handle_ping(self, frame: PingFrame) -> None:
        with self._state_lock:
            self._last_peer_activity = frame.last_active
        logger.debug("Ping from peer (last active %s)", frame.last_active)
        self.send_frame(PongFrame(last_active=self._local_timestamp()))

    def _handle_pong(self, frame: PongFrame) -> None:
        with self._state_lock:
            self._last_peer_activity = frame.last_active
        logger.debug("Pong from peer (last active %s)", frame.last_active)

    # ------------------------------------------------------------------
    # liveness
    # ------------------------------------------------------------------
    def check_idle(self, now: Optional[float] = None) -> bool:
        """One evaluator tick. Returns True only when the status actually flipped."""
        now = self._clock() if now is None else now
        with self._state_lock:
            if now - self._last_peer_activity > self.idle_timeout:
                changed = self._status is SessionStatus.CONNECTED
                if changed:
                    self._status = SessionStatus.IDLE
            else:
                changed = self._status is SessionStatus.IDLE
                if changed:
                    self._status = SessionStatus.CONNECTED
            status = self._status
        if changed:
            logger.info("Peer is now %s", status)
            self._render()
        return changed

    def touch(self) -> None:
        """Record local user activity; reported to the peer in Ping/Pong."""
        with self._state_lock:
            self._last_local_activity = self._clock()

    def _local_timestamp(self) -> int:
        with self._state_lock:
            return utc_timestamp(self._last_local_activity)

    # ------------------------------------------------------------------
    # outbound
    # ------------------------------------------------------------------
    def send_frame(self, frame: Frame) -> None:
        """Write one whole frame; the send lock keeps writers from interleaving."""
        stream = self._stream
        if stream is None:
            raise TransportError(ErrorCode.CONNECTION_LOST, "Session is not connected")
        with self._send_lock:
            write_frame(stream, frame)
        logger.debug("Sent %s frame", frame.type.name)

    def send_message(self, content: str, attachments: Iterable[Attachment] = ()) -> MsgFrame:
        """Send a chat message and record it as outgoing once it is on the wire."""
        frame = MsgFrame.from_dict({"content": content, "attachments": tuple(attachments)})
        self.send_frame(frame)
        with self._state_lock:
            self._log.append(LogEntry.from_frame(frame, Direction.OUTGOING))
        self._render()
        return frame

    def append_input(self, text: str) -> bool:
        """Extend the pending input; refuses text that would not fit in one Msg frame."""
        with self._state_lock:
            candidate = self._pending_input + text
            if encoded_length(candidate) > MAX_CONTENT_LENGTH:
                return False
            self._pending_input = candidate
        self._render()
        return True

    def backspace(self) -> None:
        with self._state_lock:
            if not self._pending_input:
                return
            self._pending_input = self._pending_input[:-1]
        self._render()

    def send_pending(self) -> bool:
        """
        Send the pending input as a Msg with no attachments, then clear it.
        Does nothing before the handshake or when the input is empty.
        """
        with self._state_lock:
            if self._status is SessionStatus.DISCONNECTED or not self._pending_input:
                return False
            content = self._pending_input
        self.send_message(content)
        with self._state_lock:
            self._pending_input = ""
        self._render()
        return True

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------
    def snapshot(self) -> SessionSnapshot:
        with self._state_lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> SessionSnapshot:
        return SessionSnapshot(
            status=self._status,
            role=self.role,
            local_name=self.name,
            peer_name=self._peer_name,
            peer_address=self._peer_address,
            messages=self._log.entries(),
            pending_input=self._pending_input,
        )

    def refresh(self) -> None:
        """Push a fresh snapshot to the renderer."""
        self._render()

    def _render(self) -> None:
        if not self._on_render:
            return
        # state lock stays held for the whole callback
        with self._state_lock:
            try:
                self._on_render(self._snapshot_locked())
            except Exception as exc:
                logger.exception("Render callback failed: %s", exc)

    @property
    def status(self) -> SessionStatus:
        with self._state_lock:
            return self._status

    @property
    def peer_name(self) -> str:
        with self._state_lock:
            return self._peer_name

    @property
    def peer_address(self) -> str:
        with self._state_lock:
            return self._peer_address

    @property
    def last_peer_activity(self) -> float:
        with self._state_lock:
            return self._last_peer_activity

    @property
    def last_local_activity(self) -> float:
        with self._state_lock:
            return self._last_local_activity

    @property
    def messages(self) -> Tuple[LogEntry, ...]:
        with self._state_lock:
            return self._log.entries()


__all__ = ["ConnectionSession", "Role", "SessionStatus", "SessionSnapshot"]
