"""Shared Rich Console instance for log output."""

from rich.console import Console

# Logs go to stderr so they never land inside the region MultiBar redraws
# on stdout.
console = Console(stderr=True)
