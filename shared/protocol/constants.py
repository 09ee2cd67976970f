"""Protocol-wide constants shared by both peer roles."""

ENCODING = "utf-8"

MAX_NAME_LENGTH = 0xFF  # u8 length prefix
MAX_CONTENT_LENGTH = 0xFFFF  # u16 length prefix
MAX_ATTACHMENTS = 0xFF
MAX_ATTACHMENT_SIZE = 0xFFFFFFFF
MAX_TIMESTAMP = 0xFFFFFFFF

IDLE_CHECK_INTERVAL = 1  # seconds
IDLE_TIMEOUT = 10  # seconds of peer inactivity before Idle
HEARTBEAT_INTERVAL = 2  # seconds, server role only

__all__ = [
    "ENCODING",
    "MAX_NAME_LENGTH",
    "MAX_CONTENT_LENGTH",
    "MAX_ATTACHMENTS",
    "MAX_ATTACHMENT_SIZE",
    "MAX_TIMESTAMP",
    "IDLE_CHECK_INTERVAL",
    "IDLE_TIMEOUT",
    "HEARTBEAT_INTERVAL",
]
