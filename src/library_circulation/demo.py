"""Scripted walk through the circulation engine.

Builds a two-branch registry, seeds a few books and patrons, and runs the
main flows end to end: checkout, a rejected second checkout, a reservation,
a return that notifies the waiting patron, their checkout, and a
cross-branch transfer. Everything is reported through logging.
"""

import logging
import sys

from .config import get_config
from .core import CirculationError, LibraryRegistry
from .models import Book, Patron

logger = logging.getLogger(__name__)


def seed_demo_data(registry: LibraryRegistry) -> None:
    """Create the demo branches, books and patrons."""
    central = registry.create_branch("central", "Central Library", "1 Main St")
    east = registry.create_branch("east", "East Branch", "200 East Ave")

    central.add_book(Book(isbn="9780441172719", title="Dune", author="Frank Herbert",
                          publication_year=1965))
    central.add_book(Book(isbn="9780132350884", title="Clean Code", author="Robert C. Martin",
                          publication_year=2008))
    east.add_book(Book(isbn="9780590353427", title="Harry Potter and the Sorcerer's Stone",
                       author="J.K. Rowling", publication_year=1997))

    central.add_patron(Patron(id="P1", name="Alice Reader", email="alice@example.com"))
    central.add_patron(Patron(id="P2", name="Bob Borrower", email="bob@example.com"))
    east.add_patron(Patron(id="P3", name="Ava Admin"))


def demo_flow(registry: LibraryRegistry) -> None:
    """Run the scripted scenario against a seeded registry."""
    central = registry.get_branch("central")
    dune = "9780441172719"

    central.checkout(dune, "P1")
    try:
        central.checkout(dune, "P2")
    except CirculationError as e:
        logger.info("As expected, second checkout failed: %s", e)

    central.reserve(dune, "P2")
    logger.info("Waitlist for Dune: %d", central.waitlist_size(dune))

    central.return_book(dune, "P1")
    logger.info("Dune is now %s", central.get_book(dune).status)

    central.checkout(dune, "P2")
    logger.info("Waitlist for Dune after pickup: %d", central.waitlist_size(dune))

    record = registry.transfer("9780132350884", "central", "east")
    logger.info("Transfer %s finished in state %s", record.id, record.state)

    logger.info("Statistics: %s", registry.statistics().model_dump())


def main() -> None:
    config = get_config()
    logging.basicConfig(
        level=config.effective_log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    registry = LibraryRegistry(config)
    seed_demo_data(registry)
    demo_flow(registry)


if __name__ == "__main__":
    main()
