"""
pinmap Reconciliation - Keeping Rendered Pins in Step with the Store
====================================================================

The reconciler compares what a rendering surface currently shows with the
people in the pins store and applies the smallest set of removals and
additions that makes them match.

Artifacts are keyed on `Person.id`. Two people standing on the same
coordinates are two artifacts, and removing one never touches the other. A
person whose record changed (a new name, say) is removed and added again so
the surface shows the new record.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Protocol, Sequence, Tuple, runtime_checkable

from .models import Location, Person
from .observable import Subscription
from .store import PinsStore

logger = logging.getLogger(__name__)


@runtime_checkable
class RenderingSurface(Protocol):
    """Anything that can show one artifact per person."""

    def add_artifact(self, person: Person) -> None: ...

    def remove_artifact(self, identity: str) -> None: ...

    def list_artifacts(self) -> Sequence[Tuple[str, Location]]: ...


@dataclass(frozen=True)
class ReconcileResult:
    """What one reconcile pass changed on the surface."""

    added: Tuple[str, ...] = ()
    removed: Tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class Reconciler:
    """
    Applies pins to a rendering surface.

    People without a location are not rendered. When an id appears more than
    once in the pins, its last entry is the one shown, matching the order
    `PinsStore.upsert` produces.
    """

    def __init__(self, surface: RenderingSurface):
        self.surface = surface
        # Last record added per identity; edits at an unchanged position compare against it
        self._shown: Dict[str, Person] = {}

    def reconcile(self, people: Iterable[Person]) -> ReconcileResult:
        desired: Dict[str, Person] = {}
        for person in people:
            if person.location is None:
                desired.pop(person.id, None)
                continue
            # Re-insert so a later duplicate takes the later list position
            desired.pop(person.id, None)
            desired[person.id] = person

        rendered = dict(self.surface.list_artifacts())

        removed = []
        for identity, position in rendered.items():
            wanted = desired.get(identity)
            if wanted is None or wanted.location != position or self._is_stale(wanted):
                self.surface.remove_artifact(identity)
                self._shown.pop(identity, None)
                removed.append(identity)

        removed_ids = set(removed)
        added = []
        for identity, person in desired.items():
            if identity in rendered and identity not in removed_ids:
                continue
            self.surface.add_artifact(person)
            self._shown[identity] = person
            added.append(identity)

        result = ReconcileResult(added=tuple(added), removed=tuple(removed))
        if result.changed:
            logger.debug("reconciled: added=%s removed=%s", result.added, result.removed)
        return result

    def _is_stale(self, wanted: Person) -> bool:
        shown = self._shown.get(wanted.id)
        return shown is not None and shown != wanted

    def attach(self, pins: PinsStore) -> Subscription:
        """Reconcile on every pins event until the subscription is cancelled."""
        return pins.subscribe(self.reconcile)
