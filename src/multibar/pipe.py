"""Writer adapter that routes a bar's output into the coordinator's channel."""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Buffer

from .channel import Channel, FinishMsg, WriteMsg
from .exceptions import BarDecodeError, ChannelClosedError

logger = logging.getLogger(__name__)


class Pipe(io.RawIOBase):
    """Byte sink bound to one MultiBar line.

    Every :meth:`write` is decoded as UTF-8 and forwarded at once as a
    single update for the bound line; nothing is buffered.  Closing the
    pipe tells the coordinator that this bar is done.
    """

    _level: int
    _channel: Channel

    def __init__(self, level: int, channel: Channel) -> None:
        super().__init__()
        self._level = level
        self._channel = channel

    @property
    def level(self) -> int:
        """Slot index this pipe writes to."""
        return self._level

    def writable(self) -> bool:
        return True

    def write(self, buf: Buffer) -> int:
        if self.closed:
            raise ValueError("write to closed pipe")
        data = bytes(buf)
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BarDecodeError(
                f"line {self._level} received {len(data)} bytes that are not valid UTF-8"
            ) from exc
        self._channel.send(WriteMsg(self._level, text))
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        if self.closed:
            return
        # Runs from __del__ too, possibly after the coordinator has stopped.
        try:
            self._channel.send(FinishMsg(self._level))
        except ChannelClosedError:
            logger.debug(f"Line {self._level} closed after coordinator stopped")
        else:
            logger.debug(f"Line {self._level} finished")
        super().close()
