"""Test configuration and fixtures for the library circulation engine.

Every test gets:
1. A fresh configuration - the config singleton is reset around each test
2. Its own registry - registries are plain objects, never shared globals
3. A recording notifier - so tests can assert exactly who was told what
4. A fixed clock - operations take an explicit ``now`` for deterministic dates
"""

import os
from collections.abc import Generator
from datetime import datetime

import pytest

from library_circulation.config import CirculationConfig, reset_config
from library_circulation.core import BranchInventory, LibraryRegistry, RecordingNotifier
from library_circulation.models import Book, Patron

# === Configuration Fixtures ===


@pytest.fixture
def test_config() -> Generator[CirculationConfig, None, None]:
    """Provide an isolated configuration with the default policy."""
    reset_config()

    config = CirculationConfig(
        loan_period_days=14,
        checkout_limit=5,
        reservation_hold_hours=72,
        transfer_lock_timeout_seconds=0.5,
        log_level="DEBUG",
    )

    yield config

    reset_config()


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide an environment without LIBRARY_CIRCULATION_* variables."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("LIBRARY_CIRCULATION_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# === Clock ===


@pytest.fixture
def now() -> datetime:
    """A fixed point in time for deterministic due dates."""
    return datetime(2024, 3, 1, 10, 30)


# === Registry Fixtures ===


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def registry(test_config: CirculationConfig) -> LibraryRegistry:
    """An empty registry with the test configuration."""
    return LibraryRegistry(test_config)


@pytest.fixture
def branch(registry: LibraryRegistry, notifier: RecordingNotifier) -> BranchInventory:
    """The central branch, seeded with three books and three patrons."""
    central = registry.create_branch("central", "Central Library", "1 Main St", notifier=notifier)

    central.add_book(Book(isbn="B1", title="Dune", author="Frank Herbert", publication_year=1965))
    central.add_book(
        Book(isbn="B2", title="Clean Code", author="Robert C. Martin", publication_year=2008)
    )
    central.add_book(
        Book(isbn="B3", title="Dune Messiah", author="Frank Herbert", publication_year=1969)
    )

    central.add_patron(Patron(id="P1", name="Alice Reader", email="alice@example.com"))
    central.add_patron(Patron(id="P2", name="Bob Borrower", email="bob@example.com"))
    central.add_patron(Patron(id="P3", name="Carol Waiting"))

    return central


@pytest.fixture
def east_branch(registry: LibraryRegistry, notifier: RecordingNotifier) -> BranchInventory:
    """A second, empty branch."""
    return registry.create_branch("east", "East Branch", "200 East Ave", notifier=notifier)


@pytest.fixture
def make_book():
    """Factory for standalone books."""

    def _make(isbn: str = "B1", title: str = "Dune", **kwargs) -> Book:
        kwargs.setdefault("author", "Frank Herbert")
        kwargs.setdefault("publication_year", 1965)
        return Book(isbn=isbn, title=title, **kwargs)

    return _make


@pytest.fixture
def make_patron():
    """Factory for standalone patrons."""

    def _make(patron_id: str = "P1", name: str = "Alice Reader", **kwargs) -> Patron:
        kwargs.setdefault("checkout_limit", 5)
        return Patron(id=patron_id, name=name, **kwargs)

    return _make


# === Cleanup Fixtures ===


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Reset the global configuration after each test."""
    yield
    reset_config()
