"""
pinmap - Observable State for a Map of Pinned People

A small reactive state layer: observables that notify subscribers
synchronously, a current-user store and a pins store kept consistent with
each other, and a reconciler that keeps a rendered set of pins in step with
the pins store.
"""

from .config import SessionConfig
from .exceptions import (
    AbsentValueError,
    CascadeDepthExceededError,
    InvalidRecordError,
    PinmapError,
    ReactiveFunctionError,
    ReentrantNotificationError,
    SessionConfigError,
    StaleFetchError,
)
from .models import CURRENT_USER_ID, Location, Person
from .observable import ABSENT, Observable, Subscription, reactive
from .reconcile import ReconcileResult, Reconciler, RenderingSurface
from .session import Region, Session
from .store import CurrentUserStore, PinsDelta, PinsStore
from .surface import ConsoleSurface, MemorySurface

__version__ = "0.1.0"

__all__ = [
    # Observable primitive
    "ABSENT",
    "Observable",
    "Subscription",
    "reactive",
    # Models
    "CURRENT_USER_ID",
    "Location",
    "Person",
    # Stores
    "CurrentUserStore",
    "PinsDelta",
    "PinsStore",
    # Rendering
    "ReconcileResult",
    "Reconciler",
    "RenderingSurface",
    "MemorySurface",
    "ConsoleSurface",
    # Session
    "Region",
    "Session",
    "SessionConfig",
    # Exceptions
    "PinmapError",
    "AbsentValueError",
    "ReentrantNotificationError",
    "CascadeDepthExceededError",
    "StaleFetchError",
    "InvalidRecordError",
    "ReactiveFunctionError",
    "SessionConfigError",
]
