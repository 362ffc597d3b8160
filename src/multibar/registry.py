"""Ordered, index-stable storage for the lines MultiBar draws."""

from collections.abc import Iterator


class LineRegistry:
    """One text slot per registered line, in top-to-bottom screen order.

    Slots are handed out from 0 upwards and never removed or reordered,
    so a slot index doubles as the line's vertical position.
    """

    _lines: list[str]

    def __init__(self) -> None:
        self._lines = []

    def append(self, text: str = "") -> int:
        """Reserve a new slot holding *text* and return its index."""
        self._lines.append(text)
        return len(self._lines) - 1

    def __setitem__(self, level: int, text: str) -> None:
        if not 0 <= level < len(self._lines):
            raise IndexError(f"no line registered at slot {level}")
        self._lines[level] = text

    def __getitem__(self, level: int) -> str:
        return self._lines[level]

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[str]:
        return iter(self._lines)

    def visible(self) -> list[str]:
        """Non-empty lines in slot order."""
        return [line for line in self._lines if line]
