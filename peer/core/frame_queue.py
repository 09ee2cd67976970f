from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Optional

from shared.protocol import Frame


class FrameQueue:
    """
    Thread-safe FIFO of decoded frames.

    One condition (and its lock) guards the storage and the not-empty signal.
    There is no capacity bound: a consumer that falls behind makes the queue
    grow for as long as the connection lives.
    """

    def __init__(self) -> None:
        self._frames: Deque[Frame] = deque()
        self._not_empty = threading.Condition(threading.Lock())

    def push(self, frame: Frame) -> None:
        """Append at the tail and wake one waiting consumer. Never blocks on capacity."""
        with self._not_empty:
            self._frames.append(frame)
            self._not_empty.notify()

    def pop(self, timeout: Optional[float] = None) -> Optional[Frame]:
        """
        Remove and return the head frame, suspending until one is available.
        With a timeout, returns None if nothing arrived in time.
        """
        with self._not_empty:
            if not self._not_empty.wait_for(lambda: len(self._frames) > 0, timeout=timeout):
                return None
            return self._frames.popleft()

    def is_empty(self) -> bool:
        with self._not_empty:
            return not self._frames

    def __len__(self) -> int:
        with self._not_empty:
            return len(self._frames)
