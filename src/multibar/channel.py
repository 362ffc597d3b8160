"""Many-producer, single-consumer channel between bars and the coordinator."""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import TypeAlias

from .exceptions import ChannelClosedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WriteMsg:
    """Latest rendered text for the line at *level*."""

    level: int
    string: str


@dataclass(frozen=True, slots=True)
class FinishMsg:
    """The bar at *level* will send nothing more."""

    level: int


Message: TypeAlias = WriteMsg | FinishMsg


class Channel:
    """Unbounded FIFO of :data:`Message` values.

    Any number of threads may :meth:`send`; exactly one thread calls
    :meth:`recv`.  Order is preserved per sending thread only.  Once
    :meth:`close` is called every later :meth:`send` raises
    :class:`ChannelClosedError`.
    """

    _queue: "queue.SimpleQueue[Message]"
    _closed: threading.Event

    def __init__(self) -> None:
        self._queue = queue.SimpleQueue()
        self._closed = threading.Event()

    def send(self, msg: Message) -> None:
        if self._closed.is_set():
            raise ChannelClosedError(
                f"cannot send update for line {msg.level}: coordinator is no longer listening"
            )
        self._queue.put(msg)

    def recv(self) -> Message:
        """Block until a message is available and return it."""
        return self._queue.get()

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        # Anything still queued was sent after the last bar finished.
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            dropped += 1
        if dropped:
            logger.debug(f"Dropped {dropped} messages queued after close")

    @property
    def closed(self) -> bool:
        return self._closed.is_set()
