"""
Shared pytest fixtures and configuration for pinmap tests.
"""

import pytest

from pinmap import CURRENT_USER_ID, Location, MemorySurface, Person, Session
from pinmap.observable import NotificationContext


@pytest.fixture(autouse=True)
def reset_notification_context():
    """Reset the per-thread notification stack so a failing test cannot leak into the next."""
    NotificationContext._reset_state()
    yield
    NotificationContext._reset_state()


@pytest.fixture
def surface():
    """Provide an empty in-memory rendering surface."""
    return MemorySurface()


@pytest.fixture
def session(surface):
    """Provide a session rendering into the `surface` fixture."""
    with Session(surface=surface) as s:
        yield s


@pytest.fixture
def people():
    """Two pinned people and one without a location."""
    return [
        Person(id="a", name="A", location=Location(1, 1)),
        Person(id="b", name="B", location=Location(2, 2)),
        Person(id="c", name="C"),
    ]


@pytest.fixture
def current_user():
    """The local user, not yet pinned."""
    return Person(id=CURRENT_USER_ID, name="John Doe", phone="+90 555 111 22 33")
