"""
pinmap Surfaces - In-Process Rendering Targets
==============================================

`MemorySurface` keeps artifacts in a dict and records every operation, which
is what tests and headless sessions need. `ConsoleSurface` adds a terminal
view of the same state using rich.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.markup import escape
from rich.table import Table, box

from .models import Location, Person


class MemorySurface:
    """
    Rendering surface backed by an insertion-ordered dict.

    Attributes:
        artifacts: identity -> the Person currently shown for it.
        operations: ("add" | "remove", identity) in the order they happened.
    """

    def __init__(self):
        self.artifacts: Dict[str, Person] = {}
        self.operations: List[Tuple[str, str]] = []

    def add_artifact(self, person: Person) -> None:
        if person.location is None:
            raise ValueError(f"{person.id!r} has no location to pin")
        if person.id in self.artifacts:
            raise ValueError(f"an artifact for {person.id!r} is already shown")
        self.artifacts[person.id] = person
        self.operations.append(("add", person.id))

    def remove_artifact(self, identity: str) -> None:
        if identity not in self.artifacts:
            raise KeyError(identity)
        del self.artifacts[identity]
        self.operations.append(("remove", identity))

    def list_artifacts(self) -> Sequence[Tuple[str, Location]]:
        return [(identity, person.location) for identity, person in self.artifacts.items()]

    def identities(self) -> List[str]:
        return list(self.artifacts)

    def title_of(self, identity: str) -> Optional[str]:
        person = self.artifacts.get(identity)
        return person.name if person else None

    def clear_operations(self) -> None:
        self.operations.clear()


class ConsoleSurface(MemorySurface):
    """A `MemorySurface` that echoes changes and can print a table of pins."""

    def __init__(self, console: Optional[Console] = None):
        super().__init__()
        self.console = console or Console()

    def add_artifact(self, person: Person) -> None:
        super().add_artifact(person)
        lat, long = person.location.as_tuple()
        self.console.print(
            f"[green]+ pin[/green] {escape(person.name)} [dim]({escape(person.id)})[/dim] "
            f"at {lat:.5f}, {long:.5f}"
        )

    def remove_artifact(self, identity: str) -> None:
        name = self.title_of(identity)
        super().remove_artifact(identity)
        self.console.print(
            f"[red]- pin[/red] {escape(str(name))} [dim]({escape(identity)})[/dim]"
        )

    def render(self, title: str = "Pins") -> Table:
        table = Table(title=title, box=box.SIMPLE, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Name")
        table.add_column("Latitude", justify="right")
        table.add_column("Longitude", justify="right")
        table.add_column("Needs")

        for person in self.artifacts.values():
            table.add_row(
                escape(person.id),
                escape(person.name),
                f"{person.location.lat:.5f}",
                f"{person.location.long:.5f}",
                escape(", ".join(person.needs)),
            )

        self.console.print(table)
        return table
