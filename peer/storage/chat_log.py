from __future__ import annotations

from enum import StrEnum
from typing import Iterable, List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from shared.protocol import MsgFrame


class Direction(StrEnum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"


class LogEntry(BaseModel):
    """One exchanged message. Never mutated after it is appended."""

    model_config = ConfigDict(frozen=True)

    direction: Direction
    content: str
    attachments: Tuple[str, ...] = Field(default=(), description="Attachment names")

    @classmethod
    def from_frame(cls, frame: MsgFrame, direction: Direction) -> "LogEntry":
        return cls(
            direction=direction,
            content=frame.content,
            attachments=tuple(attachment.name for attachment in frame.attachments),
        )


class ChatLog:
    """
    Ordered, append-only record of the conversation. No eviction.

    Not synchronized on its own: ConnectionSession holds its state lock
    around every call.
    """

    def __init__(self, entries: Iterable[LogEntry] = ()) -> None:
        self._entries: List[LogEntry] = list(entries)

    def append(self, entry: LogEntry) -> None:
        self._entries.append(entry)

    def entries(self) -> Tuple[LogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
