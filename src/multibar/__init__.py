import logging
from importlib.metadata import version

__version__ = version("multibar")

VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

from .exceptions import BarDecodeError, ChannelClosedError, MultiBarError  # noqa: E402
from .multi import MultiBar  # noqa: E402
from .pipe import Pipe  # noqa: E402
from .progress import ProgressBar, Units  # noqa: E402

__all__ = [
    "VERBOSE",
    "BarDecodeError",
    "ChannelClosedError",
    "MultiBar",
    "MultiBarError",
    "Pipe",
    "ProgressBar",
    "Units",
    "__version__",
]
