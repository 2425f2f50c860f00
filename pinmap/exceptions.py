"""
pinmap Exceptions - Recoverable Error Types
===========================================

Every error raised by pinmap derives from `PinmapError`. None of them are
fatal: the stores keep their last good value and the caller decides how to
recover.
"""


class PinmapError(Exception):
    """Base exception for all pinmap errors."""

    pass


class AbsentValueError(PinmapError, LookupError):
    """An observable was read before any value was set."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Observable '{key}' has no value yet")


class ReentrantNotificationError(PinmapError, RuntimeError):
    """A subscriber called set() on an observable that is still notifying."""

    def __init__(self, key: str, message: str = ""):
        self.key = key
        super().__init__(
            message or f"Observable '{key}' was set while notifying its subscribers"
        )


class CascadeDepthExceededError(ReentrantNotificationError):
    """A chain of nested set() calls went deeper than allowed."""

    def __init__(self, key: str, depth: int, limit: int):
        self.depth = depth
        self.limit = limit
        super().__init__(
            key,
            f"Setting '{key}' at cascade depth {depth} exceeds the limit of {limit}",
        )


class StaleFetchError(PinmapError):
    """Fetching pins failed or timed out; the previous pins are still in place."""

    pass


class InvalidRecordError(PinmapError, ValueError):
    """A person or location record is malformed."""

    pass


class ReactiveFunctionError(PinmapError):
    """Reactive function called manually."""

    pass


class SessionConfigError(PinmapError):
    """Invalid session configuration."""

    pass
