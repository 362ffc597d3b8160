import logging
import os
import random
import sys
import threading
import time
from argparse import ArgumentParser, BooleanOptionalAction, Namespace
from typing import NoReturn, TypeVar

from rich.logging import RichHandler

from . import VERBOSE, __version__
from ._console import console
from .multi import MultiBar
from .progress import ProgressBar, Units

logger = logging.getLogger(__name__)

T = TypeVar("T")
N = TypeVar("N", int, float)


class MyArgParser(ArgumentParser):
    """Argument parser that prints help on error instead of just usage."""

    def error(self, message: str) -> NoReturn:
        """Print the error message followed by full help, then exit."""
        _ = sys.stderr.write(f"{self.prog}: {message}\n\n")
        self.print_help()
        sys.exit(2)


def _parse_bool_env(value: str | None, *, env_var: str) -> bool | None:
    """Parse an environment variable string into a boolean, or ``None`` if unset."""
    if value is None:
        return None

    normalized = value.strip().lower()
    true_values = {"1", "true", "yes", "y", "on"}
    false_values = {"0", "false", "no", "n", "off"}

    if normalized in true_values:
        return True
    if normalized in false_values:
        return False

    raise ValueError(
        f"Invalid boolean value for {env_var}: {value!r}. "
        "Use one of 1/0, true/false, yes/no, on/off."
    )


def _parse_number_env(
    value: str | None, *, env_var: str, kind: type[N]
) -> N | None:
    """Parse a numeric environment variable, or ``None`` if unset."""
    if value is None:
        return None
    try:
        return kind(value)
    except ValueError:
        raise ValueError(
            f"Invalid {kind.__name__} value for {env_var}: {value!r}"
        ) from None


def _with_env(arg_value: T | None, env_var: str) -> T | str | None:
    """Return *arg_value* if set, otherwise fall back to the named environment variable."""
    if arg_value is not None:
        return arg_value
    return os.environ.get(env_var)


def _argparser() -> MyArgParser:
    """Build and return the CLI argument parser with all flags and env-var support."""
    parser = MyArgParser(
        description="Draw several progress bars driven by concurrent threads"
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-n",
        "--bars",
        dest="bars",
        metavar="N",
        help="Number of bars (default: 3, env: MULTIBAR_BARS)",
        type=int,
        default=None,
    )
    parser.add_argument(
        "-t",
        "--total",
        dest="total",
        metavar="COUNT",
        help="Steps per bar; bar i counts to COUNT * i (default: 100, env: MULTIBAR_TOTAL)",
        type=int,
        default=None,
    )
    parser.add_argument(
        "-i",
        "--interval",
        dest="interval",
        metavar="SECONDS",
        help="Mean delay between steps (default: 0.02, env: MULTIBAR_INTERVAL)",
        type=float,
        default=None,
    )
    parser.add_argument(
        "--header",
        dest="header",
        metavar="TEXT",
        help="Header line above the bars (env: MULTIBAR_HEADER)",
        default=None,
    )
    parser.add_argument(
        "--bytes",
        dest="bytes",
        help="Show counters as byte sizes (env: MULTIBAR_BYTES)",
        action=BooleanOptionalAction,
        default=None,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        dest="verbose",
        help="Verbose output (env: MULTIBAR_VERBOSE)",
        action="store_true",
        default=None,
    )
    parser.add_argument(
        "-d",
        "--debug",
        dest="debug",
        help="Debug output, one record per bar update (env: MULTIBAR_DEBUG)",
        action="store_true",
        default=None,
    )

    return parser


def _drive(pb: ProgressBar, interval: float) -> None:
    """Advance *pb* to its total with jittered pacing, then finish it."""
    with pb:
        for _ in range(pb.total):
            _ = pb.inc()
            time.sleep(random.uniform(0, 2 * interval))


def run(
    *,
    bars: int,
    total: int,
    interval: float,
    header: str,
    units: Units = Units.DEFAULT,
) -> None:
    """Run *bars* bars on their own threads and draw them until all finish."""
    mb = MultiBar()
    mb.println(header)

    threads: list[threading.Thread] = []
    for i in range(1, bars + 1):
        if i > 1:
            mb.println(f"-- bar {i} of {bars} --")
        pb = mb.create_bar(total * i)
        pb.set_units(units)
        pb.message(f"bar {i}:")
        threads.append(
            threading.Thread(target=_drive, args=(pb, interval), name=f"bar-{i}")
        )

    for thread in threads:
        thread.start()

    mb.listen()

    for thread in threads:
        thread.join()


def main() -> None:
    """Entry point: parse arguments, resolve env vars, and run the demo."""
    args: Namespace = _argparser().parse_args()

    # string options: CLI > env > default
    header = _with_env(args.header, "MULTIBAR_HEADER") or "Application header:"

    # bool/number options: CLI > env > code default
    try:
        bars = (
            args.bars
            if args.bars is not None
            else _parse_number_env(
                os.environ.get("MULTIBAR_BARS"), env_var="MULTIBAR_BARS", kind=int
            )
        )
        total = (
            args.total
            if args.total is not None
            else _parse_number_env(
                os.environ.get("MULTIBAR_TOTAL"), env_var="MULTIBAR_TOTAL", kind=int
            )
        )
        interval = (
            args.interval
            if args.interval is not None
            else _parse_number_env(
                os.environ.get("MULTIBAR_INTERVAL"),
                env_var="MULTIBAR_INTERVAL",
                kind=float,
            )
        )
        use_bytes = (
            args.bytes
            if args.bytes is not None
            else _parse_bool_env(
                os.environ.get("MULTIBAR_BYTES"), env_var="MULTIBAR_BYTES"
            )
        )
        verbose = (
            args.verbose
            if args.verbose is not None
            else _parse_bool_env(
                os.environ.get("MULTIBAR_VERBOSE"), env_var="MULTIBAR_VERBOSE"
            )
        )
        debug = (
            args.debug
            if args.debug is not None
            else _parse_bool_env(
                os.environ.get("MULTIBAR_DEBUG"), env_var="MULTIBAR_DEBUG"
            )
        )
    except ValueError as exc:
        _ = sys.stderr.write(f"ERROR: {exc}\n\n")
        _argparser().print_help()
        sys.exit(2)

    bars = bars if bars is not None else 3
    total = total if total is not None else 100
    interval = interval if interval is not None else 0.02
    use_bytes = use_bytes if use_bytes is not None else False
    verbose = verbose if verbose is not None else False
    debug = debug if debug is not None else False

    if bars < 1 or total < 1 or interval < 0:
        _ = sys.stderr.write(
            "ERROR: --bars and --total must be positive and --interval non-negative\n\n"
        )
        _argparser().print_help()
        sys.exit(2)

    # logging
    #   default : INFO via RichHandler on stderr
    #   -v      : VERBOSE for multibar, bar lifecycle
    #   -d      : DEBUG for everything, raw format, one record per update
    if debug:
        logging.basicConfig(
            format="%(levelname)s: %(name)s: %(message)s", level=logging.DEBUG
        )
    else:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, show_path=False, markup=False)],
        )
        if verbose:
            logging.getLogger("multibar").setLevel(VERBOSE)

    logger.info(f"Starting {bars} bars")
    run(
        bars=bars,
        total=total,
        interval=interval,
        header=header,
        units=Units.BYTES if use_bytes else Units.DEFAULT,
    )

    print(" ")
    print("All done.")


if __name__ == "__main__":
    main()
