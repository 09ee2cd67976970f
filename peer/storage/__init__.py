from .chat_log import ChatLog, Direction, LogEntry

__all__ = ["ChatLog", "Direction", "LogEntry"]
