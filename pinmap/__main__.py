#!/usr/bin/env python3
"""
pinmap Demo - A Scripted Map Session in the Terminal

Runs the flow the map screen goes through: load the pins, sign the local user
in, drop their pin, then move it. Each pin added or removed is echoed, and
the final pins are printed as a table.

Usage:
    python -m pinmap                          # Run the demo
    python -m pinmap --log-level DEBUG        # Show notifications and deltas
    python -m pinmap --max-cascade-depth 0    # Forbid the current-user → pins hop
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.markup import escape

from . import (
    CascadeDepthExceededError,
    ConsoleSurface,
    Person,
    Session,
    SessionConfig,
    reactive,
)

SAMPLE_PINS = [
    {
        "id": "p1",
        "name": "Ayşe",
        "location": {"lat": 37.5801, "long": 36.9302},
        "needs": ["Blankets", "Baby formula"],
    },
    {
        "id": "p2",
        "name": "Mehmet",
        "location": {"lat": 37.5712, "long": 36.9155},
        "needs": ["Tent"],
    },
    {"id": "p3", "name": "Zeynep", "location": None, "needs": ["Medicine"]},
]


def _parse_args(argv):
    parser = argparse.ArgumentParser(
        prog="pinmap", description="Run a scripted pinmap session."
    )
    parser.add_argument("--log-level", help="Logging level (default from PINMAP_LOG_LEVEL)")
    parser.add_argument(
        "--max-cascade-depth",
        type=lambda v: None if v.lower() == "none" else int(v),
        default=argparse.SUPPRESS,
        help="Nested notification limit, or 'none' for unbounded",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)

    overrides = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if hasattr(args, "max_cascade_depth"):
        overrides["max_cascade_depth"] = args.max_cascade_depth
    config = SessionConfig.from_env(**overrides)

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    console = Console()
    surface = ConsoleSurface(console)

    with Session(config, surface=surface) as session:
        region = session.default_region()
        console.print(
            f"[bold]Map centered on[/bold] {region.center.lat}, {region.center.long} "
            f"(span {region.lat_span}°)"
        )

        @reactive(session.current_user.observable)
        def announce(user):
            console.print(f"[cyan]current user[/cyan] {escape(user.name)}")

        session.fetch_pins(lambda: SAMPLE_PINS)

        try:
            session.sign_in(
                Person(
                    id=config.current_user_id,
                    name="John Doe",
                    phone="+90 555 111 22 33",
                    address="8 Jockey Hollow Dr.\nGeorgetown, SC 29440",
                    needs=("Need 1", "Need 2", "Need 3"),
                )
            )
            session.drop_pin(37.5760, 36.9240)
            session.drop_pin(37.5772, 36.9251)
        except CascadeDepthExceededError as exc:
            console.print(f"[red]{escape(str(exc))}[/red]")
            return 1
        finally:
            announce.unsubscribe()

        surface.render()
    return 0


if __name__ == "__main__":
    sys.exit(main())
