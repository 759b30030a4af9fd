"""
Tests for circulation records.

These tests verify:
1. BorrowingRecord open/close semantics and date validation
2. Transaction construction, due dates and overdue calculation
3. TransferRecord state tracking
"""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from library_circulation.models import (
    BorrowingRecord,
    Transaction,
    TransactionType,
    TransferRecord,
    TransferState,
)


class TestBorrowingRecord:
    """Test suite for the BorrowingRecord model."""

    def test_open_record(self, now):
        """Test a freshly opened loan."""
        record = BorrowingRecord(isbn="B1", checkout_date=now)

        assert record.isbn == "B1"
        assert record.checkout_date == now
        assert record.return_date is None
        assert record.is_returned is False

    def test_close_and_reopen(self, now):
        """Test closing a loan and undoing the close."""
        record = BorrowingRecord(isbn="B1", checkout_date=now)

        record.close(now + timedelta(days=3))
        assert record.is_returned is True
        assert record.return_date == now + timedelta(days=3)

        with pytest.raises(ValueError, match="already closed"):
            record.close(now + timedelta(days=4))

        record.reopen()
        assert record.is_returned is False

    def test_return_before_checkout_rejected(self, now):
        """Test that the return cannot precede the checkout."""
        with pytest.raises(ValidationError, match="Return date cannot be before checkout date"):
            BorrowingRecord(isbn="B1", checkout_date=now, return_date=now - timedelta(hours=1))

        record = BorrowingRecord(isbn="B1", checkout_date=now)
        with pytest.raises(ValidationError):
            record.close(now - timedelta(minutes=1))

    def test_checkout_date_is_frozen(self, now):
        """Test that the checkout timestamp cannot be rewritten."""
        record = BorrowingRecord(isbn="B1", checkout_date=now)
        with pytest.raises(ValidationError):
            record.checkout_date = now - timedelta(days=1)


class TestTransaction:
    """Test suite for the Transaction model."""

    def test_checkout_transaction(self, now):
        """Test creating a checkout with a computed due date."""
        txn = Transaction.checkout("B1", "P1", when=now, loan_period_days=14)

        assert txn.id.startswith("txn_")
        assert len(txn.id) == 4 + 32
        assert txn.type == TransactionType.CHECKOUT
        assert txn.transaction_date == now
        assert txn.due_date == now + timedelta(days=14)
        assert txn.return_date is None
        assert txn.is_open is True

    def test_return_transaction(self, now):
        """Test creating a return transaction."""
        txn = Transaction.return_("B1", "P1", when=now)

        assert txn.type == TransactionType.RETURN
        assert txn.due_date is None
        assert txn.is_open is False
        assert txn.is_overdue(now + timedelta(days=100)) is False

    def test_ids_are_unique(self, now):
        """Test that each transaction gets its own id."""
        ids = {Transaction.checkout("B1", "P1", when=now).id for _ in range(20)}
        assert len(ids) == 20

    def test_invalid_id_rejected(self, now):
        """Test the transaction id format."""
        with pytest.raises(ValidationError):
            Transaction(
                id="checkout-1",
                isbn="B1",
                patron_id="P1",
                type=TransactionType.RETURN,
                transaction_date=now,
            )

    def test_checkout_requires_due_date(self, now):
        """Test that checkouts must carry a due date after the event."""
        with pytest.raises(ValidationError, match="require a due date"):
            Transaction(isbn="B1", patron_id="P1", type=TransactionType.CHECKOUT)

        with pytest.raises(ValidationError, match="Due date must be after"):
            Transaction(
                isbn="B1",
                patron_id="P1",
                type=TransactionType.CHECKOUT,
                transaction_date=now,
                due_date=now,
            )

    def test_return_rejects_due_date(self, now):
        """Test that return transactions have no due date."""
        with pytest.raises(ValidationError, match="do not have a due date"):
            Transaction(
                isbn="B1",
                patron_id="P1",
                type=TransactionType.RETURN,
                transaction_date=now,
                due_date=now + timedelta(days=1),
            )

    def test_log_fields_are_frozen(self, now):
        """Test that logged facts cannot be rewritten."""
        txn = Transaction.checkout("B1", "P1", when=now)
        with pytest.raises(ValidationError):
            txn.patron_id = "P2"
        with pytest.raises(ValidationError):
            txn.due_date = now + timedelta(days=30)

    def test_overdue_calculation(self, now):
        """Test overdue detection against an explicit clock."""
        txn = Transaction.checkout("B1", "P1", when=now, loan_period_days=14)

        assert txn.is_overdue(now + timedelta(days=14)) is False
        assert txn.days_overdue(now + timedelta(days=10)) == 0

        later = now + timedelta(days=17, hours=2)
        assert txn.is_overdue(later) is True
        assert txn.days_overdue(later) == 3

    def test_returned_checkout_is_never_overdue(self, now):
        """Test that closing a checkout clears the overdue flag."""
        txn = Transaction.checkout("B1", "P1", when=now, loan_period_days=14)
        txn.return_date = now + timedelta(days=20)

        assert txn.is_open is False
        assert txn.is_overdue(now + timedelta(days=30)) is False
        assert txn.days_overdue(now + timedelta(days=30)) == 0

    def test_return_date_before_transaction_rejected(self, now):
        """Test that a checkout cannot be closed before it happened."""
        txn = Transaction.checkout("B1", "P1", when=now)
        with pytest.raises(ValidationError):
            txn.return_date = now - timedelta(days=1)


class TestTransferRecord:
    """Test suite for the TransferRecord model."""

    def test_defaults(self, now):
        """Test a freshly started transfer."""
        record = TransferRecord(
            isbn="B1", from_branch_id="central", to_branch_id="east", started_at=now
        )

        assert record.id.startswith("transfer_")
        assert record.state == TransferState.STARTED
        assert record.completed_at is None
        assert record.is_anomalous is False

    def test_in_transit_is_anomalous(self, now):
        """Test that a transfer stuck in transit is flagged."""
        record = TransferRecord(
            isbn="B1", from_branch_id="central", to_branch_id="east", started_at=now
        )

        record.state = TransferState.IN_TRANSIT
        assert record.is_anomalous is True

        record.state = TransferState.COMPLETED
        assert record.is_anomalous is False

    def test_unknown_state_rejected(self, now):
        """Test transfer state validation."""
        record = TransferRecord(isbn="B1", from_branch_id="central", to_branch_id="east")
        with pytest.raises(ValidationError):
            record.state = "lost"
