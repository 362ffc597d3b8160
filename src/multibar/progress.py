"""Single progress bar that renders itself into a byte sink."""

import sys
import time
from enum import Enum
from types import TracebackType
from typing import BinaryIO, Self

from rich.cells import cell_len
from rich.filesize import decimal

from .pipe import Pipe
from .tty import terminal_width

DEFAULT_FORMAT: str = "[=>-]"


class Units(Enum):
    DEFAULT = "default"
    BYTES = "bytes"


def _format_duration(seconds: float) -> str:
    """Render *seconds* as e.g. ``42s``, ``3m05s`` or ``1h02m``."""
    total = int(seconds)
    if total < 60:
        return f"{total}s"
    minutes, secs = divmod(total, 60)
    if minutes < 60:
        return f"{minutes}m{secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes:02d}m"


class ProgressBar:
    """Progress indicator for a known number of steps.

    Each draw writes the complete status line to *handle* in a single
    ``write`` call.  When ``is_multibar`` is set the bar leaves cursor
    movement to its MultiBar and never writes ``\\r`` or ``\\n`` itself.

    Example::

        pb = ProgressBar(1000)
        for _ in range(1000):
            pb.inc()
        pb.finish_print("done")
    """

    total: int
    current: int
    is_finish: bool
    is_multibar: bool
    show_bar: bool
    show_counter: bool
    show_percent: bool
    show_speed: bool
    show_time_left: bool
    show_message: bool
    _handle: BinaryIO | Pipe
    _message: str
    _units: Units
    _width: int | None
    _max_refresh_rate: float | None
    _last_refresh: float | None
    _start_time: float
    _bar_start: str
    _bar_fill: str
    _bar_current: str
    _bar_empty: str
    _bar_end: str

    def __init__(self, total: int, handle: BinaryIO | Pipe | None = None) -> None:
        self.total = total
        self.current = 0
        self.is_finish = False
        self.is_multibar = False
        self.show_bar = True
        self.show_counter = True
        self.show_percent = True
        self.show_speed = True
        self.show_time_left = True
        self.show_message = True
        self._handle = handle if handle is not None else sys.stdout.buffer
        self._message = ""
        self._units = Units.DEFAULT
        self._width = None
        self._max_refresh_rate = None
        self._last_refresh = None
        self._start_time = time.monotonic()
        self.format(DEFAULT_FORMAT)

    # -- Context manager -----------------------------------------------

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if not self.is_finish:
            self.finish()

    # -- Appearance ----------------------------------------------------

    def format(self, fmt: str) -> None:
        """Set the bar characters: start, fill, current, empty, end."""
        if len(fmt) != 5:
            raise ValueError(f"bar format needs exactly 5 characters, got {fmt!r}")
        (
            self._bar_start,
            self._bar_fill,
            self._bar_current,
            self._bar_empty,
            self._bar_end,
        ) = fmt

    def message(self, message: str) -> None:
        """Text shown in front of the counter."""
        self._message = message.replace("\n", " ").replace("\r", " ")

    def set_units(self, units: Units) -> None:
        self._units = units

    def set_width(self, width: int | None) -> None:
        """Fix the line width; ``None`` follows the terminal width."""
        self._width = width

    def set_max_refresh_rate(self, seconds: float | None) -> None:
        """Skip redraws that come sooner than *seconds* after the last one."""
        self._max_refresh_rate = seconds

    # -- Progress ------------------------------------------------------

    def add(self, n: int) -> int:
        """Advance by *n* steps and redraw; returns the new position."""
        if self.is_finish:
            return self.current
        self.current = max(0, self.current + n)
        self._draw()
        return self.current

    def inc(self) -> int:
        return self.add(1)

    def set(self, n: int) -> int:
        """Jump to position *n* and redraw; returns the new position."""
        if self.is_finish:
            return self.current
        self.current = max(0, n)
        self._draw()
        return self.current

    def finish(self) -> None:
        """Draw the final state and release the output."""
        if self.is_finish:
            return
        self.is_finish = True
        self._draw()
        self._release()

    def finish_print(self, text: str) -> None:
        """Replace the bar with *text* and release the output."""
        if self.is_finish:
            return
        self.is_finish = True
        self._write(text.ljust(self._line_width()))
        self._release()

    # -- Rendering -----------------------------------------------------

    def _line_width(self) -> int:
        return self._width if self._width is not None else terminal_width()

    def _amount(self, n: float) -> str:
        if self._units is Units.BYTES:
            return decimal(int(n))
        return str(int(n))

    def render(self) -> str:
        """Return the status line for the current position."""
        width = self._line_width()
        elapsed = max(time.monotonic() - self._start_time, 1e-9)

        base = ""
        if self.show_message and self._message:
            base += f"{self._message} "
        if self.show_counter:
            base += f"{self._amount(self.current)} / {self._amount(self.total)} "

        suffix_parts: list[str] = []
        if self.show_percent:
            percent = self.current / self.total * 100 if self.total > 0 else 0.0
            suffix_parts.append(f"{percent:.2f} %")
        if self.show_speed:
            suffix_parts.append(f"{self._amount(self.current / elapsed)}/s")
        if self.show_time_left and 0 < self.current < self.total:
            left = elapsed / self.current * (self.total - self.current)
            suffix_parts.append(_format_duration(left))
        suffix = (" " + " ".join(suffix_parts)) if suffix_parts else ""

        bar = ""
        if self.show_bar:
            size = width - cell_len(base) - cell_len(suffix) - 2
            if size > 0:
                bar = f"{self._bar_start}{self._bar_body(size)}{self._bar_end}"

        line = f"{base}{bar}{suffix}"
        return line + " " * max(0, width - cell_len(line))

    def _bar_body(self, size: int) -> str:
        if self.total <= 0:
            return self._bar_empty * size
        done = min(size, size * self.current // self.total)
        if done >= size:
            return self._bar_fill * size
        if done == 0:
            return self._bar_empty * size
        return (
            self._bar_fill * (done - 1)
            + self._bar_current
            + self._bar_empty * (size - done)
        )

    def _draw(self) -> None:
        now = time.monotonic()
        if (
            not self.is_finish
            and self._max_refresh_rate is not None
            and self._last_refresh is not None
            and now - self._last_refresh < self._max_refresh_rate
        ):
            return
        self._last_refresh = now
        self._write(self.render())

    def _write(self, line: str) -> None:
        if not self.is_multibar:
            line = f"\r{line}"
        self._handle.write(line.encode("utf-8"))
        self._handle.flush()

    def _release(self) -> None:
        if isinstance(self._handle, Pipe):
            self._handle.close()
        elif not self.is_multibar:
            self._handle.write(b"\n")
            self._handle.flush()
