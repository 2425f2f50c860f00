"""
pinmap Stores - Current User and Pins State
===========================================

Two observable-backed stores hold the state the map is drawn from:

**CurrentUserStore**: the local user's profile record. Setting it notifies
subscribers; the session merges the new record into the pins.

**PinsStore**: the ordered people shown on the map. It is replaced wholesale
by a fetch and updated one entry at a time by `upsert()` when the current user
changes. Each event also publishes a `PinsDelta` on `changes` so renderers can
follow every removal and addition by identity.

Both stores start absent. Reading `value` before the first set raises
`AbsentValueError`; `people` and `peek()` give an empty/None view instead.

Example:
    ```python
    pins = PinsStore()
    pins.changes.subscribe(lambda delta: print(delta.added_ids))

    pins.fetch(lambda: [{"id": "1", "name": "A", "location": {"lat": 10, "long": 20}}])
    # prints ('1',)
    ```
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Iterable,
    Mapping,
    Optional,
    Set,
    Tuple,
    Union,
)

from .exceptions import InvalidRecordError, StaleFetchError
from .models import CURRENT_USER_ID, Person
from .observable import Observable, Subscription

logger = logging.getLogger(__name__)

PersonRecord = Union[Person, Mapping[str, Any]]
Fetcher = Callable[[], Iterable[PersonRecord]]
AsyncFetcher = Callable[[], Awaitable[Iterable[PersonRecord]]]


@dataclass(frozen=True)
class PinsDelta:
    """Identity-keyed difference between two consecutive pins values.

    A person whose record changed (for example a moved pin) appears in both
    `removed` (old record) and `added` (new record).
    """

    removed: Tuple[Person, ...] = ()
    added: Tuple[Person, ...] = ()

    @property
    def removed_ids(self) -> Tuple[str, ...]:
        return tuple(person.id for person in self.removed)

    @property
    def added_ids(self) -> Tuple[str, ...]:
        return tuple(person.id for person in self.added)

    def __bool__(self) -> bool:
        return bool(self.removed or self.added)

    @classmethod
    def between(
        cls, old: Iterable[Person], new: Iterable[Person]
    ) -> "PinsDelta":
        # Later entries win when an id is duplicated
        old_by_id = {person.id: person for person in old}
        new_by_id = {person.id: person for person in new}
        removed = tuple(
            person
            for person_id, person in old_by_id.items()
            if new_by_id.get(person_id) != person
        )
        added = tuple(
            person
            for person_id, person in new_by_id.items()
            if old_by_id.get(person_id) != person
        )
        return cls(removed=removed, added=added)


def _coerce_people(records: Iterable[PersonRecord]) -> Tuple[Person, ...]:
    if records is None:
        raise InvalidRecordError("fetcher returned None instead of a sequence")
    people = []
    for record in records:
        if isinstance(record, Person):
            people.append(record)
        elif isinstance(record, Mapping):
            people.append(Person.from_dict(record))
        else:
            raise InvalidRecordError(f"cannot build a Person from {record!r}")
    return tuple(people)


# ============================================================================
# CURRENT USER
# ============================================================================


class CurrentUserStore:
    """Holds the local user's record. Only records with `current_user_id` are accepted."""

    def __init__(
        self,
        current_user_id: str = CURRENT_USER_ID,
        *,
        max_cascade_depth: Optional[int] = None,
    ):
        self.current_user_id = current_user_id
        self.observable: Observable[Person] = Observable(
            "current_user", max_cascade_depth=max_cascade_depth
        )

    @property
    def has_value(self) -> bool:
        return self.observable.has_value

    @property
    def value(self) -> Person:
        return self.observable.value

    def get(self) -> Person:
        return self.observable.get()

    def peek(self) -> Optional[Person]:
        return self.observable.peek()

    def set(self, user: Person) -> None:
        """Replace the current user's record and notify subscribers."""
        if not isinstance(user, Person):
            raise InvalidRecordError(f"current user must be a Person, got {user!r}")
        if user.id != self.current_user_id:
            raise InvalidRecordError(
                f"current user id must be {self.current_user_id!r}, got {user.id!r}"
            )
        logger.debug("current user set: %s", user.id)
        self.observable.set(user)

    def subscribe(self, callback: Callable[[Person], None]) -> Subscription:
        return self.observable.subscribe(callback)

    def __repr__(self) -> str:
        return f"CurrentUserStore({self.peek()!r})"


# ============================================================================
# PINS
# ============================================================================


class PinsStore:
    """
    The ordered people shown on the map.

    Attributes:
        observable: The pins themselves, as a tuple of `Person`.
        changes: Fires a `PinsDelta` after every pins event.
    """

    def __init__(self, *, max_cascade_depth: Optional[int] = None):
        self.observable: Observable[Tuple[Person, ...]] = Observable(
            "pins", max_cascade_depth=max_cascade_depth
        )
        self.changes: Observable[PinsDelta] = Observable(
            "pins.changes", max_cascade_depth=max_cascade_depth
        )
        self._pin_to_remove: Optional[Person] = None

    @property
    def has_value(self) -> bool:
        return self.observable.has_value

    @property
    def value(self) -> Tuple[Person, ...]:
        return self.observable.value

    def get(self) -> Tuple[Person, ...]:
        return self.observable.get()

    @property
    def people(self) -> Tuple[Person, ...]:
        """Current pins, or an empty tuple before the first fetch."""
        return self.observable.peek(())

    def ids(self) -> Set[str]:
        return {person.id for person in self.people}

    def find(self, person_id: str) -> Optional[Person]:
        """Latest entry for `person_id`, if any."""
        for person in reversed(self.people):
            if person.id == person_id:
                return person
        return None

    @property
    def pin_to_remove(self) -> Optional[Person]:
        """The record removed by the latest event, or None.

        Only the latest event is kept. Subscribe to `changes` to see every
        removal.
        """
        return self._pin_to_remove

    def subscribe(self, callback: Callable[[Tuple[Person, ...]], None]) -> Subscription:
        return self.observable.subscribe(callback)

    def replace(self, people: Iterable[PersonRecord]) -> None:
        """Replace every pin, as a fetch does."""
        new = _coerce_people(people)
        self._publish(new)

    def upsert(self, person: Person) -> bool:
        """
        Merge one record: drop earlier entries with the same id, append `person`.

        Repeating the call with the same record leaves the set of ids as it
        was, but the entry moves to the end of the list. Returns False, and
        changes nothing, when the pins have never been populated.
        """
        if not self.has_value:
            logger.debug("pins not loaded yet, skipping merge of %s", person.id)
            return False
        kept = tuple(p for p in self.people if p.id != person.id)
        self._publish(kept + (person,))
        return True

    def _publish(self, new: Tuple[Person, ...]) -> None:
        delta = PinsDelta.between(self.people, new)
        previous_pin_to_remove = self._pin_to_remove
        self._pin_to_remove = delta.removed[-1] if delta.removed else None
        logger.debug(
            "pins: %d people, removed=%s added=%s",
            len(new),
            delta.removed_ids,
            delta.added_ids,
        )
        try:
            self.observable.set(new)
        except Exception:
            # Rejected before the value changed
            if self.observable.peek() is not new:
                self._pin_to_remove = previous_pin_to_remove
            raise
        self.changes.set(delta)

    def fetch(self, fetcher: Fetcher) -> Tuple[Person, ...]:
        """
        Load pins from `fetcher` and replace the current ones.

        Raises:
            StaleFetchError: the fetcher raised or returned unusable records.
                The previous pins stay in place and nothing is notified.
        """
        try:
            people = _coerce_people(fetcher())
        except Exception as exc:
            logger.warning("pins fetch failed, keeping previous pins: %s", exc)
            raise StaleFetchError(f"pins fetch failed: {exc}") from exc
        self._publish(people)
        return people

    async def fetch_async(
        self, fetcher: AsyncFetcher, timeout: Optional[float] = None
    ) -> Tuple[Person, ...]:
        """Async variant of `fetch`; a timeout also raises `StaleFetchError`."""
        try:
            records = await asyncio.wait_for(fetcher(), timeout)
            people = _coerce_people(records)
        except asyncio.TimeoutError as exc:
            logger.warning("pins fetch timed out after %ss, keeping previous pins", timeout)
            raise StaleFetchError(f"pins fetch timed out after {timeout}s") from exc
        except Exception as exc:
            logger.warning("pins fetch failed, keeping previous pins: %s", exc)
            raise StaleFetchError(f"pins fetch failed: {exc}") from exc
        self._publish(people)
        return people

    def __repr__(self) -> str:
        state = f"{len(self.people)} people" if self.has_value else "not loaded"
        return f"PinsStore({state})"
