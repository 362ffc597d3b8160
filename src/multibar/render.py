"""Incremental redraw of the MultiBar screen region."""

from collections.abc import Iterable

from rich.cells import cell_len

from .tty import move_cursor_up


class Renderer:
    """Turns snapshots of the line registry into terminal output.

    The renderer remembers how many lines the previous pass drew so the
    next pass can move the cursor back to the top of the region and
    overwrite it.  ``max_width`` only ever grows: blank padding always
    covers the widest line seen so far.
    """

    nlines: int
    nblank_lines: int
    max_width: int

    def __init__(self) -> None:
        self.nlines = 0
        self.nblank_lines = 0
        self.max_width = 0

    def _blank(self, prefix: str) -> str:
        return f"{prefix}{' ' * (self.max_width - 1)}\n"

    def redraw(self, lines: Iterable[str]) -> str:
        """Return the output for one full pass over *lines*, in slot order."""
        out: list[str] = []
        previous = self.nlines + self.nblank_lines
        if previous > 0:
            out.append(move_cursor_up(previous))

        new_nlines = 0
        for line in lines:
            if not line:
                continue
            self.max_width = max(self.max_width, cell_len(line))
            out.append(f"\r{line}\n")
            new_nlines += 1

        self.nblank_lines = max(0, self.nlines - new_nlines)
        self.nlines = new_nlines
        out.extend(self._blank("\r\r") for _ in range(self.nblank_lines))
        return "".join(out)

    def clear(self) -> str:
        """Return the output that blanks the last drawn lines.

        The cursor ends up at the top of the blanked region.  Returns an
        empty string when nothing was drawn.
        """
        if self.nlines == 0:
            return ""
        up = move_cursor_up(self.nlines)
        blanks = "".join(self._blank("\r") for _ in range(self.nlines))
        return f"{up}{blanks}{up}"
