class MultiBarError(Exception):
    """Raised when the multi-bar coordinator is used out of order."""


class ChannelClosedError(MultiBarError):
    """Raised when a bar sends an update after the coordinator stopped listening."""


class BarDecodeError(MultiBarError):
    """Raised when a bar writes bytes that are not valid UTF-8."""
