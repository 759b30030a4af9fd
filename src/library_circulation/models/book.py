"""
Book model for the library circulation engine.

A book is a single circulating copy identified by its catalog key (an
ISBN-like string). The descriptive attributes never change after creation;
only the circulation ``status`` and the owning branch move as the book goes
through its lifecycle:

    available -> checked_out -> reserved | available -> in_transit -> available
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class BookStatus(str, Enum):
    """Circulation status of a book."""

    AVAILABLE = "available"
    CHECKED_OUT = "checked_out"
    RESERVED = "reserved"
    IN_TRANSIT = "in_transit"


class Book(BaseModel):
    """
    Represents one circulating book in a branch inventory.

    Identity is the ``isbn`` field; two books with the same key are the same
    book as far as the branch maps are concerned.
    """

    isbn: str = Field(
        ...,
        description="Unique catalog key (ISBN-like string)",
        min_length=1,
        frozen=True,
        examples=["9780134685479", "B1"],
    )

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        frozen=True,
        examples=["The Great Gatsby", "Dune"],
    )

    author: str = Field(
        default="",
        description="Author name as printed on the title page",
        max_length=200,
        frozen=True,
        examples=["F. Scott Fitzgerald", "Frank Herbert"],
    )

    publication_year: int = Field(
        ...,
        description="Year the book was published",
        ge=1450,  # After Gutenberg printing press
        le=datetime.now().year + 1,
        frozen=True,
        examples=[1925, 1965],
    )

    status: BookStatus = Field(
        default=BookStatus.AVAILABLE,
        description="Current circulation status",
    )

    current_branch_id: str | None = Field(
        None,
        description="Branch whose inventory currently owns this book",
    )

    created_at: datetime = Field(
        default_factory=datetime.now,
        description="Timestamp when the book was catalogued",
    )

    updated_at: datetime = Field(
        default_factory=datetime.now,
        description="Timestamp of the last status or branch change",
    )

    @property
    def is_available(self) -> bool:
        """Check if the book can be checked out by anyone."""
        return self.status == BookStatus.AVAILABLE

    def set_status(self, status: BookStatus) -> None:
        """Move the book to a new circulation status."""
        old_status = self.status
        self.status = status
        self.updated_at = datetime.now()
        logger.debug(
            "Book %s status changed from %s to %s",
            self.isbn,
            BookStatus(old_status).value,
            BookStatus(status).value,
        )

    def move_to(self, branch_id: str | None) -> None:
        """Re-home the book to another branch."""
        self.current_branch_id = branch_id
        self.updated_at = datetime.now()

    def with_details(self, **changes: Any) -> "Book":
        """
        Build a replacement record with new descriptive details.

        The catalog key, circulation status and owning branch are carried
        over; only title, author and publication year may change.

        Raises:
            ValueError: If a field other than the descriptive ones is given
        """
        allowed = {"title", "author", "publication_year"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        data = self.model_dump()
        data.update(changes)
        data["updated_at"] = datetime.now()
        return Book.model_validate(data)

    def update_details(self, **changes: Any) -> None:
        """
        Change descriptive details on this record in place.

        All changes are validated together through ``with_details`` before
        any of them is written, so a rejected update leaves the book as it
        was and every existing reference keeps seeing the same object.

        Raises:
            ValueError: If a non-descriptive field is given or a value is invalid
        """
        validated = self.with_details(**changes)
        # Descriptive fields are frozen against plain assignment.
        for field in changes:
            self.__dict__[field] = getattr(validated, field)
        self.updated_at = validated.updated_at
        logger.debug("Book %s details updated: %s", self.isbn, ", ".join(sorted(changes)))

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=True,
        populate_by_name=True,
        validate_default=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "isbn": "9780441172719",
                "title": "Dune",
                "author": "Frank Herbert",
                "publication_year": 1965,
                "status": "available",
                "current_branch_id": "central",
            }
        },
    )
