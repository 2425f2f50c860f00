"""
pinmap Observable - Synchronous Change Notification
===================================================

A single-slot reactive value. Setting a value stores it and then calls every
subscriber with the new value, synchronously and in subscription order.

Semantics:
- Every `set()` is one event. There is no equality short-circuit, no batching
  and no replay: a subscriber only sees values set after it subscribed.
- An observable may start without a value (`ABSENT`). Reading it then raises
  `AbsentValueError` instead of returning a placeholder.
- A `set()` issued from inside a notification is a cascade. Setting the
  observable that is currently notifying raises `ReentrantNotificationError`;
  `max_cascade_depth` bounds how many notifications may be in flight when a
  nested `set()` starts.

Example:
    name = Observable("name", "Alice")

    subscription = name.subscribe(lambda value: print(f"name -> {value}"))
    name.set("Bob")          # prints "name -> Bob"
    subscription.cancel()
    name.set("Carol")        # prints nothing
"""

import logging
import threading
from typing import Any, Callable, Generic, List, Optional, TypeVar

from .exceptions import (
    AbsentValueError,
    CascadeDepthExceededError,
    ReactiveFunctionError,
    ReentrantNotificationError,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


# ============================================================================
# SENTINEL VALUES
# ============================================================================


class _Absent:
    """Sentinel for 'no value has been set yet'."""

    def __repr__(self):
        return "ABSENT"

    def __bool__(self):
        return False


ABSENT: Any = _Absent()


# ============================================================================
# NOTIFICATION CONTEXT
# ============================================================================


class NotificationContext:
    """Tracks, per thread, which observables are currently notifying."""

    _local = threading.local()

    @classmethod
    def _stack(cls) -> list:
        if not hasattr(cls._local, "stack"):
            cls._local.stack = []
        return cls._local.stack

    @classmethod
    def depth(cls) -> int:
        """Number of notifications in flight on the calling thread."""
        return len(cls._stack())

    @classmethod
    def is_notifying(cls, observable: "Observable") -> bool:
        return any(entry is observable for entry in cls._stack())

    @classmethod
    def _push(cls, observable: "Observable") -> None:
        cls._stack().append(observable)

    @classmethod
    def _pop(cls) -> None:
        cls._stack().pop()

    @classmethod
    def _reset_state(cls) -> None:
        """Reset the notification state for testing."""
        cls._local.__dict__.clear()


# ============================================================================
# SUBSCRIPTION
# ============================================================================


class Subscription:
    """Handle for one registered callback. Cancelling it is idempotent."""

    __slots__ = ("_observable", "callback", "_active")

    def __init__(self, observable: "Observable", callback: Callable[[Any], None]):
        self._observable = observable
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._observable._remove(self)

    dispose = cancel

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "active" if self._active else "cancelled"
        return f"Subscription({self._observable.key}, {state})"


# ============================================================================
# OBSERVABLE
# ============================================================================


class Observable(Generic[T]):
    """
    A value container that notifies its subscribers synchronously on every set.

    Args:
        key: Name used in logs, reprs and error messages.
        initial_value: Starting value. Omit it to create the observable absent.
        max_cascade_depth: Largest number of notifications that may already be
            in flight on this thread when `set()` is called. `None` allows
            unbounded nested cascades.
    """

    __slots__ = (
        "_key",
        "_value",
        "_subscriptions",
        "_lock",
        "_max_cascade_depth",
    )

    def __init__(
        self,
        key: str = "observable",
        initial_value: Any = ABSENT,
        *,
        max_cascade_depth: Optional[int] = None,
    ):
        if max_cascade_depth is not None and max_cascade_depth < 0:
            raise ValueError("max_cascade_depth must be >= 0 or None")
        self._key = key
        self._value = initial_value
        self._subscriptions: List[Subscription] = []
        self._lock = threading.RLock()
        self._max_cascade_depth = max_cascade_depth

    @property
    def key(self) -> str:
        return self._key

    @property
    def max_cascade_depth(self) -> Optional[int]:
        return self._max_cascade_depth

    @property
    def has_value(self) -> bool:
        with self._lock:
            return self._value is not ABSENT

    @property
    def value(self) -> T:
        """Current value. Raises `AbsentValueError` if nothing was set yet."""
        with self._lock:
            value = self._value
        if value is ABSENT:
            raise AbsentValueError(self._key)
        return value

    @value.setter
    def value(self, new_value: T) -> None:
        self.set(new_value)

    def get(self) -> T:
        """Explicit getter (alias for value property)."""
        return self.value

    def peek(self, default: Any = None) -> Any:
        """Current value, or `default` when absent. Never raises."""
        with self._lock:
            value = self._value
        return default if value is ABSENT else value

    def set(self, new_value: T) -> None:
        """
        Store `new_value`, then call every current subscriber with it.

        Subscribers run after the lock is released, each with the value this
        call stored. An exception from a subscriber propagates to the caller
        and the remaining subscribers are skipped for this event.

        Raises:
            ReentrantNotificationError: this observable is already notifying.
            CascadeDepthExceededError: too many notifications are in flight.
        """
        if new_value is ABSENT:
            raise ValueError("ABSENT cannot be set; it only marks a missing value")

        depth = NotificationContext.depth()
        if NotificationContext.is_notifying(self):
            raise ReentrantNotificationError(self._key)
        if self._max_cascade_depth is not None and depth > self._max_cascade_depth:
            raise CascadeDepthExceededError(self._key, depth, self._max_cascade_depth)

        with self._lock:
            self._value = new_value
            subscriptions = list(self._subscriptions)

        logger.debug(
            "%s: notifying %d subscriber(s) at depth %d",
            self._key,
            len(subscriptions),
            depth,
        )
        NotificationContext._push(self)
        try:
            for subscription in subscriptions:
                # Cancelled earlier in this same event
                if not subscription.active:
                    continue
                subscription.callback(new_value)
        finally:
            NotificationContext._pop()

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        """
        Register `callback` for future values.

        The callback is not called with the current value; it only receives
        values set after this call.
        """
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def observe(self, callback: Callable[[T], None]) -> Subscription:
        """Alias for subscribe."""
        return self.subscribe(callback)

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        """Cancel every subscription of `callback`. Unknown callbacks are ignored."""
        with self._lock:
            matching = [s for s in self._subscriptions if s.callback == callback]
        for subscription in matching:
            subscription.cancel()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def __repr__(self) -> str:
        return f"Observable({self._key}={self.peek(ABSENT)!r})"


# ============================================================================
# @reactive DECORATOR
# ============================================================================


def reactive(*dependencies: Observable):
    """
    Decorator for reactive functions.

    The decorated function runs with the new value whenever any dependency is
    set. It does not run on decoration. While subscribed it cannot be called
    by hand; call `.unsubscribe()` first to restore normal behavior.

    Example:
        @reactive(session.current_user.observable)
        def log_name(user):
            print(f"Current user: {user.name}")
    """

    def decorator(func: Callable) -> Callable:
        subscriptions = [dep.subscribe(func) for dep in dependencies]
        unsubscribed = False

        def wrapper(*args, **kwargs):
            if not unsubscribed:
                raise ReactiveFunctionError(
                    "Reactive functions cannot be called manually. "
                    "They run automatically when dependencies change. "
                    "Call .unsubscribe() first to restore normal function behavior."
                )
            return func(*args, **kwargs)

        def unsubscribe():
            nonlocal unsubscribed
            for subscription in subscriptions:
                subscription.cancel()
            unsubscribed = True

        wrapper.unsubscribe = unsubscribe
        wrapper._func = func
        wrapper.__name__ = getattr(func, "__name__", "reactive")
        wrapper.__doc__ = func.__doc__
        return wrapper

    return decorator


__all__ = [
    "ABSENT",
    "NotificationContext",
    "Observable",
    "Subscription",
    "reactive",
]
