"""Coordinator that draws many progress bars into one terminal region."""

import logging
import sys
import threading
from typing import BinaryIO

from . import VERBOSE
from .channel import Channel, FinishMsg
from .exceptions import MultiBarError
from .pipe import Pipe
from .progress import ProgressBar
from .registry import LineRegistry
from .render import Renderer

logger = logging.getLogger(__name__)


class MultiBar:
    """Owns a terminal region and redraws it as bars report progress.

    Bars may be driven from any number of threads.  They never touch the
    output stream themselves: each bar writes through a :class:`Pipe` that
    forwards its status line to this coordinator, and :meth:`listen` is
    the only code that writes to *handle*.

    Example::

        mb = MultiBar()
        mb.println("Application header:")

        p1 = mb.create_bar(250)
        threading.Thread(target=work, args=(p1,)).start()

        mb.println("add a separator between the two bars")

        p2 = mb.create_bar(500)
        threading.Thread(target=work, args=(p2,)).start()

        # Blocks until every bar has called finish().
        mb.listen()

    The order of :meth:`println` and :meth:`create_bar` calls is the order
    of the lines on screen, top to bottom.
    """

    _lines: LineRegistry
    _channel: Channel
    _handle: BinaryIO
    _bar_levels: list[int]
    _listening: bool
    _lock: threading.Lock

    def __init__(self, handle: BinaryIO | None = None) -> None:
        self._lines = LineRegistry()
        self._channel = Channel()
        self._handle = handle if handle is not None else sys.stdout.buffer
        self._bar_levels = []
        self._listening = False
        self._lock = threading.Lock()

    @property
    def nlines(self) -> int:
        """Number of registered lines, bars included."""
        return len(self._lines)

    @property
    def nbars(self) -> int:
        return len(self._bar_levels)

    def _check_registering(self) -> None:
        if self._listening:
            raise MultiBarError("cannot register lines after listen() has started")

    def println(self, text: str) -> None:
        """Add a static text line, e.g. a header or a separator between bars."""
        self._check_registering()
        level = self._lines.append(text)
        logger.debug(f"Registered static line {level}: {text!r}")

    def create_pipe(self) -> Pipe:
        """Reserve an empty line and return the pipe that writes to it.

        Most callers want :meth:`create_bar`; a bare pipe is for output
        that is not a :class:`ProgressBar`.  Closing the pipe counts as the
        line finishing.
        """
        self._check_registering()
        level = self._lines.append("")
        self._bar_levels.append(level)
        return Pipe(level, self._channel)

    def create_bar(self, total: int) -> ProgressBar:
        """Create a :class:`ProgressBar` drawn on the next line down.

        The bar must be finished (``finish()``, ``finish_print()`` or leaving
        its ``with`` block) for :meth:`listen` to return.
        """
        pipe = self.create_pipe()
        pb = ProgressBar(total, pipe)
        pb.is_multibar = True
        pb.add(0)
        logger.log(VERBOSE, f"Created bar {self.nbars} on line {pipe.level} (total={total})")
        return pb

    def listen(self) -> None:
        """Redraw on every bar update until all bars have finished.

        Blocks the calling thread; run it on a dedicated thread to keep
        working meanwhile.  Errors writing to the output stream propagate.
        """
        with self._lock:
            if self._listening:
                raise MultiBarError("listen() was already called")
            self._listening = True

        pending = set(self._bar_levels)
        renderer = Renderer()
        logger.log(
            VERBOSE, f"Listening for {len(pending)} bars across {self.nlines} lines"
        )

        try:
            while pending:
                msg = self._channel.recv()
                if isinstance(msg, FinishMsg):
                    pending.discard(msg.level)
                    logger.debug(f"Line {msg.level} done, {len(pending)} bars remaining")
                    continue
                self._lines[msg.level] = msg.string
                self._emit(renderer.redraw(self._lines))
        finally:
            self._channel.close()

        self._emit(renderer.clear())
        logger.log(VERBOSE, "All bars finished")

    def _emit(self, out: str) -> None:
        if not out:
            return
        self._handle.write(out.encode("utf-8"))
        self._handle.flush()
