from __future__ import annotations

from enum import IntEnum
from typing import Dict, Union


class FrameType(IntEnum):
    """
    One-byte discriminant written in front of every frame.
    Values are part of the wire format and must never be renumbered.
    """

    IDENT = 0
    MSG = 1
    PING = 2
    PONG = 3


FRAME_GROUPS: Dict[int, str] = {
    FrameType.IDENT.value: "control",
    FrameType.MSG.value: "application",
    FrameType.PING.value: "control",
    FrameType.PONG.value: "control",
}


def normalize_frame_type(frame_type: Union[int, FrameType]) -> int:
    """Convert enum/int into the raw discriminant byte."""
    return frame_type.value if isinstance(frame_type, FrameType) else int(frame_type)


def is_frame_type(value: int) -> bool:
    """Check if `value` is a known discriminant."""
    try:
        FrameType(value)
        return True
    except ValueError:
        return False


def is_control(frame_type: Union[int, FrameType]) -> bool:
    """Control frames update session state; application frames reach the log."""
    return FRAME_GROUPS.get(normalize_frame_type(frame_type)) == "control"


__all__ = [
    "FrameType",
    "FRAME_GROUPS",
    "normalize_frame_type",
    "is_frame_type",
    "is_control",
]
