"""
Shared protocol package that centralizes frame types, frame models, the binary
codec and error types used by both peer roles.
"""

from .commands import FrameType, is_control, is_frame_type, normalize_frame_type
from .constants import (
    ENCODING,
    HEARTBEAT_INTERVAL,
    IDLE_CHECK_INTERVAL,
    IDLE_TIMEOUT,
    MAX_ATTACHMENTS,
    MAX_CONTENT_LENGTH,
    MAX_NAME_LENGTH,
)
from .errors import ErrorCode, FramingError, ProtocolError, TransportError
from .frames import Attachment, BaseFrame, Frame, IdentFrame, MsgFrame, PingFrame, PongFrame, encoded_length
from .framing import BufferStream, ByteStream, SocketStream, decode_bytes, decode_frame, encode_frame, write_frame

__all__ = [
    "FrameType",
    "is_control",
    "is_frame_type",
    "normalize_frame_type",
    "ENCODING",
    "HEARTBEAT_INTERVAL",
    "IDLE_CHECK_INTERVAL",
    "IDLE_TIMEOUT",
    "MAX_ATTACHMENTS",
    "MAX_CONTENT_LENGTH",
    "MAX_NAME_LENGTH",
    "ErrorCode",
    "FramingError",
    "ProtocolError",
    "TransportError",
    "Attachment",
    "BaseFrame",
    "Frame",
    "IdentFrame",
    "MsgFrame",
    "PingFrame",
    "PongFrame",
    "encoded_length",
    "BufferStream",
    "ByteStream",
    "SocketStream",
    "decode_bytes",
    "decode_frame",
    "encode_frame",
    "write_frame",
]
