from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Domain specific error codes."""

    UNKNOWN_FRAME_TYPE = 1001
    TRUNCATED = 1002
    INVALID_FIELD = 1003
    CONNECTION_LOST = 2001
    CONNECT_FAILED = 2002
    BIND_FAILED = 2003
    ACCEPT_FAILED = 2004
    WRITE_FAILED = 2005


class ProtocolError(Exception):
    """Structured protocol exception carrying code + message."""

    def __init__(self, code: ErrorCode, message: str = "") -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code.name} ({int(code)}): {message}")


class FramingError(ProtocolError):
    """Bytes on the wire do not form a valid frame. Always fatal to the connection."""

    pass


class TransportError(ProtocolError):
    """Socket setup failed or the stream broke mid-conversation."""

    pass


__all__ = ["ErrorCode", "ProtocolError", "FramingError", "TransportError"]
