"""
Patron model for the library circulation engine.

A patron borrows books from one branch. The model owns two pieces of
circulation state:

- ``current_checkouts``: the catalog keys the patron holds right now,
  bounded by ``checkout_limit``
- ``borrowing_history``: an append-only list of BorrowingRecord entries;
  every key in ``current_checkouts`` has exactly one open record here
"""

import logging

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from ..config import get_config
from .circulation import BorrowingRecord

logger = logging.getLogger(__name__)


class Patron(BaseModel):
    """
    Represents a library patron who can borrow books.

    The checkout bound is validated on every assignment, and the mutating
    helpers below check it before touching the checkout set, so a patron
    can never hold more than ``checkout_limit`` books.
    """

    id: str = Field(
        ...,
        description="Unique identifier for the patron",
        min_length=1,
        frozen=True,
        examples=["P1", "patron_smith001"],
    )

    name: str = Field(
        ...,
        description="Full name of the patron",
        min_length=1,
        max_length=200,
        examples=["John Smith", "Jane Doe"],
    )

    email: EmailStr | None = Field(
        None,
        description="Email address for availability notifications",
        examples=["john.smith@example.com"],
    )

    phone: str | None = Field(
        None,
        description="Phone number for urgent notifications",
        pattern=r"^\+?[\d\s\-\(\)]+$",
        examples=["+1234567890", "555-123-4567"],
    )

    checkout_limit: int = Field(
        default_factory=lambda: get_config().checkout_limit,
        description="Maximum number of books the patron can hold at once",
        ge=1,
        le=50,
    )

    current_checkouts: set[str] = Field(
        default_factory=set,
        description="Catalog keys of books currently checked out",
    )

    borrowing_history: list[BorrowingRecord] = Field(
        default_factory=list,
        description="Every loan this patron has taken, oldest first",
    )

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, v: str | None) -> str | None:
        """Normalize phone number by removing common formatting."""
        if v is None:
            return v
        return (
            v.replace("-", "").replace(" ", "").replace("(", "").replace(")", "").replace("+", "")
        )

    @model_validator(mode="after")
    def validate_checkout_bound(self) -> "Patron":
        """Current checkouts can never exceed the checkout limit."""
        if len(self.current_checkouts) > self.checkout_limit:
            raise ValueError("Current checkouts cannot exceed checkout limit")
        return self

    @property
    def can_checkout(self) -> bool:
        """Check if the patron can take another book."""
        return len(self.current_checkouts) < self.checkout_limit

    @property
    def available_checkouts(self) -> int:
        """Calculate how many more books the patron can take."""
        return max(0, self.checkout_limit - len(self.current_checkouts))

    def holds(self, isbn: str) -> bool:
        """Check if the patron currently has the given book."""
        return isbn in self.current_checkouts

    def open_record_for(self, isbn: str) -> BorrowingRecord | None:
        """Return the first unreturned borrowing record for a book, if any."""
        return next(
            (r for r in self.borrowing_history if r.isbn == isbn and not r.is_returned),
            None,
        )

    def last_record_for(self, isbn: str) -> BorrowingRecord | None:
        """Return the most recent borrowing record for a book, if any."""
        return next((r for r in reversed(self.borrowing_history) if r.isbn == isbn), None)

    def add_checkout(self, isbn: str) -> None:
        """
        Add a book to the patron's current checkouts.

        Raises:
            ValueError: If the patron is already at the checkout limit
        """
        if not self.can_checkout:
            raise ValueError(f"Checkout limit of {self.checkout_limit} reached")
        self.current_checkouts.add(isbn)
        logger.debug("Patron %s now holds %s", self.id, isbn)

    def remove_checkout(self, isbn: str) -> None:
        """Remove a book from the patron's current checkouts."""
        self.current_checkouts.discard(isbn)
        logger.debug("Patron %s no longer holds %s", self.id, isbn)

    def record_borrowing(self, record: BorrowingRecord) -> None:
        """Append a borrowing record to the history."""
        self.borrowing_history.append(record)

    def update_contact(
        self,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> None:
        """
        Change the patron's mutable contact details.

        The new values are validated together before any is assigned, so an
        invalid email or phone leaves the patron unchanged.

        Raises:
            ValidationError: If any of the new values is invalid
        """
        changes = {
            field: value
            for field, value in (("name", name), ("email", email), ("phone", phone))
            if value is not None
        }
        if not changes:
            return

        validated = Patron.model_validate({**self.model_dump(), **changes})
        for field in changes:
            setattr(self, field, getattr(validated, field))

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=True,
        populate_by_name=True,
        validate_default=True,
        json_schema_extra={
            "example": {
                "id": "P1",
                "name": "John Smith",
                "email": "john.smith@example.com",
                "phone": "+1234567890",
                "checkout_limit": 5,
                "current_checkouts": [],
                "borrowing_history": [],
            }
        },
        extra="forbid",
        str_strip_whitespace=True,
    )
