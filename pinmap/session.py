"""
pinmap Session - Explicitly Owned Map State
===========================================

A `Session` owns one current-user store and one pins store and wires them
together, instead of relying on process-wide singletons. Closing the session
cancels every subscription it created.

Change flow:
    fetch ──► pins.set ──► reconciler

    drop_pin / update_profile ──► current_user.set
        └─► merge into pins (upsert) ──► pins.set ──► reconciler

The merge is the only cascade: a current-user notification sets the pins once.
With the default configuration a deeper chain raises
`CascadeDepthExceededError`.

Example:
    ```python
    surface = MemorySurface()
    with Session(surface=surface) as session:
        session.fetch_pins(backend.load_people)
        session.sign_in(Person(id=CURRENT_USER_ID, name="John Doe"))
        session.drop_pin(37.5753, 36.9228)
    ```
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .config import SessionConfig
from .exceptions import AbsentValueError
from .models import Location, Person
from .observable import Subscription
from .reconcile import Reconciler, RenderingSurface
from .store import AsyncFetcher, CurrentUserStore, Fetcher, PinsStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Region:
    """Visible map area: a center and a span in degrees."""

    center: Location
    lat_span: float
    long_span: float


class Session:
    """
    State for one signed-in map view.

    Args:
        config: Session settings; defaults to `SessionConfig()`.
        surface: Optional rendering surface. When given, a `Reconciler` keeps
            it in step with the pins.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        surface: Optional[RenderingSurface] = None,
    ):
        self.config = config or SessionConfig()
        self.current_user = CurrentUserStore(
            self.config.current_user_id,
            max_cascade_depth=self.config.max_cascade_depth,
        )
        self.pins = PinsStore(max_cascade_depth=self.config.max_cascade_depth)
        self.reconciler: Optional[Reconciler] = None
        self._subscriptions: List[Subscription] = []
        self._closed = False

        self._subscriptions.append(
            self.current_user.subscribe(self._merge_current_user)
        )
        if surface is not None:
            self.reconciler = Reconciler(surface)
            self._subscriptions.append(self.reconciler.attach(self.pins))

    @property
    def closed(self) -> bool:
        return self._closed

    def _merge_current_user(self, user: Person) -> None:
        if self.pins.upsert(user):
            logger.debug("merged current user %s into pins", user.id)

    # ------------------------------------------------------------------
    # Current user
    # ------------------------------------------------------------------

    def sign_in(self, user: Person) -> None:
        """Set the current user's record."""
        self.current_user.set(user)

    def update_profile(self, **changes: Any) -> Person:
        """
        Apply profile form changes to the current user.

        Raises:
            AbsentValueError: nobody is signed in.
        """
        user = self.current_user.get().copy(**changes)
        self.current_user.set(user)
        return user

    def drop_pin(self, lat: float, long: float) -> Person:
        """Move the current user's pin to (lat, long)."""
        return self.update_profile(location=Location(lat, long))

    # ------------------------------------------------------------------
    # Pins
    # ------------------------------------------------------------------

    def fetch_pins(self, fetcher: Fetcher) -> Tuple[Person, ...]:
        return self.pins.fetch(fetcher)

    async def fetch_pins_async(self, fetcher: AsyncFetcher) -> Tuple[Person, ...]:
        return await self.pins.fetch_async(fetcher, timeout=self.config.fetch_timeout)

    def person_for(self, identity: str) -> Optional[Person]:
        """The person behind a tapped pin, looked up by identity."""
        person = self.pins.find(identity)
        if person is None and identity == self.config.current_user_id:
            try:
                return self.current_user.get()
            except AbsentValueError:
                return None
        return person

    def default_region(self) -> Region:
        lat, long = self.config.default_center
        span = self.config.default_span
        return Region(center=Location(lat, long), lat_span=span, long_span=span)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Cancel every subscription this session made. Safe to call twice."""
        if self._closed:
            return
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
        self._closed = True

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Session({self.current_user!r}, {self.pins!r}, {state})"
