from __future__ import annotations

from typing import Any, Dict, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .commands import FrameType
from .constants import ENCODING, MAX_ATTACHMENT_SIZE, MAX_ATTACHMENTS, MAX_CONTENT_LENGTH, MAX_NAME_LENGTH, MAX_TIMESTAMP
from .errors import ErrorCode, FramingError


def encoded_length(text: str) -> int:
    """Number of bytes `text` occupies on the wire."""
    return len(text.encode(ENCODING))


def _check_encoded_length(value: str, limit: int) -> str:
    size = encoded_length(value)
    if size > limit:
        raise ValueError(f"encodes to {size} bytes, limit is {limit}")
    return value


class BaseFrame(BaseModel):
    """Base shared by every frame variant. Frames are immutable once built."""

    model_config = ConfigDict(frozen=True)

    type: FrameType

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BaseFrame":
        try:
            return cls(**data)
        except ValidationError as exc:
            raise FramingError(ErrorCode.INVALID_FIELD, f"Frame validation failed: {exc}") from exc


class Attachment(BaseModel):
    """Attachment metadata carried by a Msg frame. No payload bytes travel with it."""

    model_config = ConfigDict(frozen=True)

    name: str
    size: int = Field(default=0, ge=0, le=MAX_ATTACHMENT_SIZE, description="Attachment size in bytes")

    @field_validator("name")
    @classmethod
    def _name_fits(cls, value: str) -> str:
        return _check_encoded_length(value, MAX_NAME_LENGTH)


class IdentFrame(BaseFrame):
    type: Literal[FrameType.IDENT] = Field(default=FrameType.IDENT, frozen=True)
    name: str

    @field_validator("name")
    @classmethod
    def _name_fits(cls, value: str) -> str:
        return _check_encoded_length(value, MAX_NAME_LENGTH)


class MsgFrame(BaseFrame):
    type: Literal[FrameType.MSG] = Field(default=FrameType.MSG, frozen=True)
    content: str
    attachments: Tuple[Attachment, ...] = Field(default=(), max_length=MAX_ATTACHMENTS)

    @field_validator("content")
    @classmethod
    def _content_fits(cls, value: str) -> str:
        return _check_encoded_length(value, MAX_CONTENT_LENGTH)


class PingFrame(BaseFrame):
    type: Literal[FrameType.PING] = Field(default=FrameType.PING, frozen=True)
    last_active: int = Field(ge=0, le=MAX_TIMESTAMP, description="Unix timestamp (seconds)")


class PongFrame(BaseFrame):
    type: Literal[FrameType.PONG] = Field(default=FrameType.PONG, frozen=True)
    last_active: int = Field(ge=0, le=MAX_TIMESTAMP, description="Unix timestamp (seconds)")


Frame = Union[IdentFrame, MsgFrame, PingFrame, PongFrame]

__all__ = [
    "Attachment",
    "BaseFrame",
    "Frame",
    "IdentFrame",
    "MsgFrame",
    "PingFrame",
    "PongFrame",
    "encoded_length",
]
