from .frame_queue import FrameQueue
from .network import accept_one, connect_to, open_listener
from .session import ConnectionSession, Role, SessionSnapshot, SessionStatus

__all__ = [
    "FrameQueue",
    "accept_one",
    "connect_to",
    "open_listener",
    "ConnectionSession",
    "Role",
    "SessionSnapshot",
    "SessionStatus",
]
