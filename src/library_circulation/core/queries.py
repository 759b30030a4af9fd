"""
Read-only helpers over branch state: catalog search and system statistics.

Nothing here mutates a book or patron; the functions take plain lists so
they can be used on a single branch or on every branch at once.
"""

import enum
from collections.abc import Iterable

from pydantic import BaseModel

from ..models.book import Book


class SearchField(str, enum.Enum):
    """Book attribute a catalog search matches against."""

    TITLE = "title"
    AUTHOR = "author"
    ISBN = "isbn"
    YEAR = "year"


class SystemStatistics(BaseModel):
    """Catalog-wide counters for dashboards and reporting."""

    total_branches: int
    total_books: int
    available_books: int
    total_patrons: int
    total_transactions: int


def search_books(books: Iterable[Book], field: SearchField | str, query: str) -> list[Book]:
    """
    Filter books by one attribute.

    Title and author match case-insensitive substrings, ISBN must match
    exactly, and year must equal the integer given in ``query``. A blank
    query or a non-numeric year matches nothing.

    Raises:
        ValueError: If ``field`` is not a known SearchField
    """
    field = SearchField(field)
    text = query.strip()
    if not text:
        return []

    if field == SearchField.TITLE:
        needle = text.lower()
        return [b for b in books if needle in b.title.lower()]
    if field == SearchField.AUTHOR:
        needle = text.lower()
        return [b for b in books if needle in b.author.lower()]
    if field == SearchField.ISBN:
        return [b for b in books if b.isbn == text]

    try:
        year = int(text)
    except ValueError:
        return []
    return [b for b in books if b.publication_year == year]
