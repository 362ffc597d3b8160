"""Terminal control sequences used by the coordinator and the bars."""

import shutil

ESC: str = "\x1b"

# Used when the output is not attached to a terminal.
_FALLBACK_COLUMNS: int = 80


def move_cursor_up(n: int) -> str:
    """Return the escape sequence that moves the cursor up *n* lines."""
    if n < 0:
        raise ValueError(f"cannot move cursor up {n} lines")
    return f"{ESC}[{n}A"


def terminal_width() -> int:
    """Width of the controlling terminal in columns."""
    return shutil.get_terminal_size((_FALLBACK_COLUMNS, 24)).columns
