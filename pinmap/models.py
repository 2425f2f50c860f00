"""
pinmap Models - People and Locations
====================================

Immutable value types shared by the stores and the reconciler. Updates are
replacements: `person.copy(location=...)` returns a new `Person` and leaves the
original untouched, which keeps them safe to hand to subscribers.

Example:
    ```python
    from pinmap.models import Location, Person

    alice = Person(id="u1", name="Alice")
    pinned = alice.copy(location=Location(37.5753, 36.9228))

    assert not alice.is_pinned
    assert pinned.is_pinned
    ```
"""

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .exceptions import InvalidRecordError

# Identity of the local user unless a session is configured otherwise
CURRENT_USER_ID = "current-user"


def _needs_tuple(needs: Any) -> Tuple[str, ...]:
    # The profile form submits needs as one block of text, one need per line
    if isinstance(needs, str):
        return tuple(line.strip() for line in needs.splitlines() if line.strip())
    if needs is None:
        return ()
    try:
        items = tuple(needs)
    except TypeError as exc:
        raise InvalidRecordError(f"needs must be text or a sequence, got {needs!r}") from exc
    for item in items:
        if not isinstance(item, str):
            raise InvalidRecordError(f"each need must be text, got {item!r}")
    return items


@dataclass(frozen=True)
class Location:
    """A point on the map, in degrees."""

    lat: float
    long: float

    def __post_init__(self):
        for name, bound in (("lat", 90.0), ("long", 180.0)):
            raw = getattr(self, name)
            try:
                value = float(raw)
            except (TypeError, ValueError) as exc:
                raise InvalidRecordError(f"{name} must be a number, got {raw!r}") from exc
            if math.isnan(value) or not -bound <= value <= bound:
                raise InvalidRecordError(f"{name} must be within ±{bound}, got {raw!r}")
            object.__setattr__(self, name, value)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.long)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Location":
        try:
            return cls(lat=data["lat"], long=data["long"])
        except KeyError as exc:
            raise InvalidRecordError(f"location is missing {exc.args[0]!r}") from exc


@dataclass(frozen=True)
class Person:
    """
    Someone who may be shown on the map.

    Attributes:
        id: Stable identity. Reconciliation and merging are keyed on it.
        name: Display name, used as the pin title.
        location: Where the person pinned themselves, or None.
        phone: Contact number from the profile form.
        address: Free-form postal address.
        needs: What the person is asking for, one entry per line of the form.
    """

    id: str
    name: str
    location: Optional[Location] = None
    phone: str = ""
    address: str = ""
    needs: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.id is None or str(self.id).strip() == "":
            raise InvalidRecordError("person id must be non-empty")
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "needs", _needs_tuple(self.needs))

    @property
    def is_pinned(self) -> bool:
        return self.location is not None

    def copy(self, **changes: Any) -> "Person":
        """Return a new Person with `changes` applied."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Person":
        """Build a Person from a fetched record."""
        try:
            person_id = data["id"]
            name = data["name"]
        except KeyError as exc:
            raise InvalidRecordError(f"person record is missing {exc.args[0]!r}") from exc

        raw_location = data.get("location")
        location = Location.from_dict(raw_location) if raw_location else None
        return cls(
            id=person_id,
            name=name,
            location=location,
            phone=data.get("phone", ""),
            address=data.get("address", ""),
            needs=data.get("needs") or (),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "location": (
                {"lat": self.location.lat, "long": self.location.long}
                if self.location
                else None
            ),
            "phone": self.phone,
            "address": self.address,
            "needs": list(self.needs),
        }
