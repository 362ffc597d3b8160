from __future__ import annotations

import gc
import io
import re
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Buffer

from multibar import BarDecodeError, ChannelClosedError, MultiBar, MultiBarError
from multibar.channel import Channel, WriteMsg
from multibar.pipe import Pipe
from multibar.registry import LineRegistry

_CURSOR_UP = re.compile(r"^\x1b\[(\d+)A")


class RecordingSink(io.RawIOBase):
    """Byte sink that keeps every write as a separate decoded string."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: list[str] = []

    def writable(self) -> bool:
        return True

    def write(self, buf: Buffer) -> int:
        data = bytes(buf)
        self.writes.append(data.decode("utf-8"))
        return len(data)


class BrokenSink(io.RawIOBase):
    def writable(self) -> bool:
        return True

    def write(self, buf: Buffer) -> int:
        raise OSError("disk full")


def _screen_lines(out: str) -> list[str]:
    """Lines of one redraw pass, without cursor movement and carriage returns."""
    out = _CURSOR_UP.sub("", out)
    return [line.lstrip("\r") for line in out.split("\n")[:-1]]


def _listen_in_thread(mb: MultiBar) -> threading.Thread:
    thread = threading.Thread(target=mb.listen, daemon=True)
    thread.start()
    return thread


def assert_lines_stack_in_registration_order() -> None:
    mb = MultiBar(RecordingSink())
    mb.println("Header")
    p1 = mb.create_pipe()
    mb.println("separator")
    p2 = mb.create_pipe()
    p3 = mb.create_pipe()
    levels = [p1.level, p2.level, p3.level]
    if levels != [1, 3, 4]:
        raise AssertionError(f"unexpected slots: {levels}")
    if (mb.nlines, mb.nbars) != (5, 3):
        raise AssertionError(f"unexpected counts: {mb.nlines} lines, {mb.nbars} bars")
    for p in (p1, p2, p3):
        p.close()


def assert_header_and_bar_scenario() -> None:
    sink = RecordingSink()
    mb = MultiBar(sink)
    mb.println("Header")
    pb = mb.create_bar(100)
    pb.show_speed = False
    pb.show_time_left = False
    pb.set_width(60)
    _ = pb.set(50)
    _ = pb.set(100)
    pb.finish()
    mb.listen()

    # zero-progress draw, 50, 100, final draw on finish, blanking pass
    if len(sink.writes) != 5:
        raise AssertionError(f"expected 5 writes, got {len(sink.writes)}: {sink.writes!r}")

    passes = [_screen_lines(out) for out in sink.writes[:4]]
    for lines in passes:
        if len(lines) != 2 or lines[0] != "Header":
            raise AssertionError(f"expected header plus one bar, got {lines!r}")
    bars = [lines[1] for lines in passes]
    if "50 / 100" not in bars[1] or "50.00 %" not in bars[1]:
        raise AssertionError(f"bar at 50 rendered as {bars[1]!r}")
    if "100 / 100" not in bars[2] or "100.00 %" not in bars[2]:
        raise AssertionError(f"bar at 100 rendered as {bars[2]!r}")
    if len({bars[0], bars[1], bars[2]}) != 3:
        raise AssertionError(f"bar text did not change between passes: {bars!r}")
    if not sink.writes[1].startswith("\x1b[2A"):
        raise AssertionError(f"second pass did not move up 2 lines: {sink.writes[1]!r}")


def assert_listen_waits_for_every_bar() -> None:
    mb = MultiBar(RecordingSink())
    p1 = mb.create_pipe()
    p2 = mb.create_pipe()
    thread = _listen_in_thread(mb)

    _ = p2.write(b"two")
    p2.close()
    thread.join(timeout=0.2)
    if not thread.is_alive():
        raise AssertionError("listen() returned before the first bar finished")

    _ = p1.write(b"one")
    p1.close()
    thread.join(timeout=5)
    if thread.is_alive():
        raise AssertionError("listen() did not return after both bars finished")


def assert_last_write_wins_across_threads() -> None:
    sink = RecordingSink()
    mb = MultiBar(sink)
    pipes = [mb.create_pipe() for _ in range(4)]

    def produce(pipe: Pipe) -> None:
        with pipe:
            for i in range(200):
                _ = pipe.write(f"{pipe.level}:{i}".encode())

    workers = [threading.Thread(target=produce, args=(p,)) for p in pipes]
    for w in workers:
        w.start()
    mb.listen()
    for w in workers:
        w.join()

    if len(sink.writes) != 4 * 200 + 1:
        raise AssertionError(f"expected one pass per update, got {len(sink.writes) - 1}")
    final = _screen_lines(sink.writes[-2])
    expected = [f"{level}:199" for level in range(4)]
    if final != expected:
        raise AssertionError(f"expected {expected!r}, got {final!r}")
    for out in sink.writes[:-1]:
        lines = _screen_lines(out)
        levels = [int(line.split(":")[0]) for line in lines]
        if levels != sorted(levels):
            raise AssertionError(f"lines drawn out of slot order: {lines!r}")


def assert_same_text_twice_redraws_identically() -> None:
    sink = RecordingSink()
    mb = MultiBar(sink)
    pipe = mb.create_pipe()
    for _ in range(3):
        _ = pipe.write(b"same")
    pipe.close()
    mb.listen()
    if sink.writes[0] != "\rsame\n":
        raise AssertionError(f"unexpected first pass: {sink.writes[0]!r}")
    if sink.writes[1] != sink.writes[2] or sink.writes[1] != "\x1b[1A\rsame\n":
        raise AssertionError(f"repeated text changed output: {sink.writes[1:3]!r}")


def assert_final_pass_blanks_visible_lines() -> None:
    sink = RecordingSink()
    mb = MultiBar(sink)
    mb.println("Header")
    mb.println("")
    pipe = mb.create_pipe()
    _ = pipe.write(b"working")
    pipe.close()
    mb.listen()

    last = sink.writes[-1]
    expected = "\x1b[2A" + ("\r" + " " * 6 + "\n") * 2 + "\x1b[2A"
    if last != expected:
        raise AssertionError(f"expected {expected!r}, got {last!r}")


def assert_vacated_line_is_padded_to_widest() -> None:
    sink = RecordingSink()
    mb = MultiBar(sink)
    wide = mb.create_pipe()
    narrow = mb.create_pipe()
    _ = wide.write(b"x" * 80)
    _ = narrow.write(b"y")
    _ = wide.write(b"")
    wide.close()
    narrow.close()
    mb.listen()

    expected = "\x1b[2A\ry\n" + "\r\r" + " " * 79 + "\n"
    if sink.writes[2] != expected:
        raise AssertionError(f"expected {expected!r}, got {sink.writes[2]!r}")


def assert_listen_without_bars_returns_silently() -> None:
    sink = RecordingSink()
    mb = MultiBar(sink)
    mb.println("Header")
    mb.listen()
    if sink.writes:
        raise AssertionError(f"unexpected output: {sink.writes!r}")


def assert_dropped_pipe_counts_as_finished() -> None:
    mb = MultiBar(RecordingSink())
    pipe = mb.create_pipe()
    _ = pipe.write(b"short-lived")
    del pipe
    _ = gc.collect()
    thread = _listen_in_thread(mb)
    thread.join(timeout=5)
    if thread.is_alive():
        raise AssertionError("listen() did not notice the dropped pipe")


def assert_registration_closes_when_listening() -> None:
    mb = MultiBar(RecordingSink())
    mb.listen()
    for register in (lambda: mb.println("late"), lambda: mb.create_bar(10)):
        try:
            register()
        except MultiBarError:
            continue
        raise AssertionError("registration after listen() did not raise")
    try:
        mb.listen()
    except MultiBarError:
        return
    raise AssertionError("second listen() did not raise")


def assert_send_after_close_raises() -> None:
    channel = Channel()
    channel.close()
    pipe = Pipe(0, channel)
    try:
        _ = pipe.write(b"late")
    except ChannelClosedError:
        pass
    else:
        raise AssertionError("write to a stopped coordinator did not raise")
    # Closing after the coordinator stopped is a no-op.
    pipe.close()
    if not pipe.closed:
        raise AssertionError("pipe did not close")


def assert_invalid_utf8_is_fatal() -> None:
    channel = Channel()
    pipe = Pipe(0, channel)
    try:
        _ = pipe.write(b"\xff\xfe")
    except BarDecodeError as exc:
        if not isinstance(exc.__cause__, UnicodeDecodeError):
            raise AssertionError(f"decode error not chained: {exc.__cause__!r}")
    else:
        raise AssertionError("invalid UTF-8 write did not raise")
    pipe.close()


def assert_sink_failure_propagates() -> None:
    mb = MultiBar(BrokenSink())
    pipe = mb.create_pipe()
    _ = pipe.write(b"boom")
    try:
        mb.listen()
    except OSError as exc:
        if "disk full" not in str(exc):
            raise AssertionError(f"unexpected error: {exc!r}")
    else:
        raise AssertionError("sink failure was swallowed")
    try:
        _ = pipe.write(b"after")
    except ChannelClosedError:
        pass
    else:
        raise AssertionError("channel stayed open after listen() failed")


def assert_pipe_write_forwards_whole_buffer() -> None:
    channel = Channel()
    pipe = Pipe(7, channel)
    written = pipe.write("héllo".encode())
    if written != len("héllo".encode()):
        raise AssertionError(f"write() reported {written} bytes")
    msg = channel.recv()
    if msg != WriteMsg(7, "héllo"):
        raise AssertionError(f"unexpected message: {msg!r}")
    pipe.close()


def assert_registry_rejects_unknown_slot() -> None:
    registry = LineRegistry()
    first = registry.append("Header")
    second = registry.append()
    if (first, second) != (0, 1):
        raise AssertionError(f"unexpected slots: {first}, {second}")
    registry[1] = "bar"
    registry[1] = "bar 2"
    if list(registry) != ["Header", "bar 2"]:
        raise AssertionError(f"unexpected contents: {list(registry)!r}")
    try:
        registry[2] = "nope"
    except IndexError:
        return
    raise AssertionError("write to unregistered slot did not raise")


def main() -> None:
    assert_lines_stack_in_registration_order()
    assert_header_and_bar_scenario()
    assert_listen_waits_for_every_bar()
    assert_last_write_wins_across_threads()
    assert_same_text_twice_redraws_identically()
    assert_final_pass_blanks_visible_lines()
    assert_vacated_line_is_padded_to_widest()
    assert_listen_without_bars_returns_silently()
    assert_dropped_pipe_counts_as_finished()
    assert_registration_closes_when_listening()
    assert_send_after_close_raises()
    assert_invalid_utf8_is_fatal()
    assert_sink_failure_propagates()
    assert_pipe_write_forwards_whole_buffer()
    assert_registry_rejects_unknown_slot()
    print("multibar test passed")


if __name__ == "__main__":
    main()
