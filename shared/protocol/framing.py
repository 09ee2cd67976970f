"""
Binary frame codec.

Wire format (all integers big-endian):
  Ident  [u8 type=0] [u8 nameLen] [name]
  Msg    [u8 type=1] [u16 contentLen] [u8 attachCount]
         attachCount x ([u8 nameLen] [name] [u32 size])
         [content]
  Ping   [u8 type=2] [u32 lastActive]
  Pong   [u8 type=3] [u32 lastActive]

Lengths precede the data they describe, so every field is fetched with a
single exact-size read. There is no magic number or resync marker.
"""

from __future__ import annotations

import contextlib
import socket
import struct
from typing import Callable, Dict, List, Protocol

from .commands import FrameType, is_frame_type
from .constants import ENCODING
from .errors import ErrorCode, FramingError, TransportError
from .frames import Attachment, Frame, IdentFrame, MsgFrame, PingFrame, PongFrame

U8 = struct.Struct("!B")
U16 = struct.Struct("!H")
U32 = struct.Struct("!I")


class ByteStream(Protocol):
    def read_exact(self, size: int) -> bytes: ...

    def write_all(self, data: bytes) -> None: ...


class SocketStream:
    """Exact-count reads and writes over a connected stream socket."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock

    def read_exact(self, size: int) -> bytes:
        buf = bytearray()
        while len(buf) < size:
            try:
                chunk = self.sock.recv(size - len(buf))
            except OSError as exc:
                raise TransportError(ErrorCode.CONNECTION_LOST, f"Read failed: {exc}") from exc
            if not chunk:
                raise FramingError(ErrorCode.TRUNCATED, f"Stream closed after {len(buf)} of {size} bytes")
            buf.extend(chunk)
        return bytes(buf)

    def write_all(self, data: bytes) -> None:
        try:
            self.sock.sendall(data)
        except OSError as exc:
            raise TransportError(ErrorCode.WRITE_FAILED, f"Write failed: {exc}") from exc

    def close(self) -> None:
        # shutdown() wakes a recv() blocked in another thread
        with contextlib.suppress(OSError):
            self.sock.shutdown(socket.SHUT_RDWR)
        with contextlib.suppress(OSError):
            self.sock.close()


class BufferStream:
    """In-memory stream; reading past the end is a truncation."""

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytes(data)
        self._offset = 0
        self.written = bytearray()

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def read_exact(self, size: int) -> bytes:
        if self.remaining < size:
            raise FramingError(ErrorCode.TRUNCATED, f"Need {size} bytes, {self.remaining} left")
        chunk = self._data[self._offset : self._offset + size]
        self._offset += size
        return chunk

    def write_all(self, data: bytes) -> None:
        self.written.extend(data)


def _encode_text(text: str, prefix: struct.Struct) -> bytes:
    data = text.encode(ENCODING)
    return prefix.pack(len(data)) + data


def _encode_ident(frame: IdentFrame) -> bytes:
    return _encode_text(frame.name, U8)


def _encode_msg(frame: MsgFrame) -> bytes:
    content = frame.content.encode(ENCODING)
    parts: List[bytes] = [U16.pack(len(content)), U8.pack(len(frame.attachments))]
    for attachment in frame.attachments:
        parts.append(_encode_text(attachment.name, U8))
        parts.append(U32.pack(attachment.size))
    parts.append(content)
    return b"".join(parts)


def _encode_heartbeat(frame: PingFrame | PongFrame) -> bytes:
    return U32.pack(frame.last_active)


_ENCODERS: Dict[FrameType, Callable[..., bytes]] = {
    FrameType.IDENT: _encode_ident,
    FrameType.MSG: _encode_msg,
    FrameType.PING: _encode_heartbeat,
    FrameType.PONG: _encode_heartbeat,
}


def encode_frame(frame: Frame) -> bytes:
    """Encode a frame into its wire bytes (discriminant included)."""
    return U8.pack(frame.type) + _ENCODERS[frame.type](frame)


def write_frame(stream: ByteStream, frame: Frame) -> None:
    """Encode and write a frame with a single write call."""
    stream.write_all(encode_frame(frame))


def _read_int(stream: ByteStream, fmt: struct.Struct) -> int:
    return fmt.unpack(stream.read_exact(fmt.size))[0]


def _read_text(stream: ByteStream, size: int) -> str:
    data = stream.read_exact(size)
    try:
        return data.decode(ENCODING)
    except UnicodeDecodeError as exc:
        raise FramingError(ErrorCode.INVALID_FIELD, f"Text field is not valid {ENCODING}: {exc}") from exc


def _decode_ident(stream: ByteStream) -> IdentFrame:
    name_length = _read_int(stream, U8)
    return IdentFrame(name=_read_text(stream, name_length))


def _decode_msg(stream: ByteStream) -> MsgFrame:
    content_length = _read_int(stream, U16)
    attachment_count = _read_int(stream, U8)
    attachments: List[Attachment] = []
    for _ in range(attachment_count):
        name = _read_text(stream, _read_int(stream, U8))
        attachments.append(Attachment(name=name, size=_read_int(stream, U32)))
    content = _read_text(stream, content_length)
    return MsgFrame(content=content, attachments=tuple(attachments))


def _decode_ping(stream: ByteStream) -> PingFrame:
    return PingFrame(last_active=_read_int(stream, U32))


def _decode_pong(stream: ByteStream) -> PongFrame:
    return PongFrame(last_active=_read_int(stream, U32))


_DECODERS: Dict[FrameType, Callable[[ByteStream], Frame]] = {
    FrameType.IDENT: _decode_ident,
    FrameType.MSG: _decode_msg,
    FrameType.PING: _decode_ping,
    FrameType.PONG: _decode_pong,
}


def decode_frame(stream: ByteStream) -> Frame:
    """
    Read exactly one frame from `stream`.
    Raises FramingError on an unknown discriminant or a short read; the caller
    must treat the connection as dead either way.
    """
    raw_type = _read_int(stream, U8)
    if not is_frame_type(raw_type):
        raise FramingError(ErrorCode.UNKNOWN_FRAME_TYPE, f"Unknown frame type {raw_type}")
    return _DECODERS[FrameType(raw_type)](stream)


def decode_bytes(data: bytes) -> Frame:
    """Decode exactly one frame from an in-memory buffer; leftover bytes are an error."""
    stream = BufferStream(data)
    frame = decode_frame(stream)
    if stream.remaining:
        raise FramingError(ErrorCode.INVALID_FIELD, f"{stream.remaining} trailing bytes after {frame.type.name} frame")
    return frame


__all__ = [
    "ByteStream",
    "SocketStream",
    "BufferStream",
    "encode_frame",
    "write_frame",
    "decode_frame",
    "decode_bytes",
]
