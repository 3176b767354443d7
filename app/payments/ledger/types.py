"""
Data types for ledger operations.

This module defines dataclasses used throughout the ledger system
for type-safe data transfer between layers.

Types:
    Money: A monetary amount in minor units with currency
    Balance: Available / held / total view of one account
    PostingLeg: One side of a posting (one account, one bucket, one direction)
    PostingResult: Outcome of LedgerService.post

Usage:
    from payments.ledger.types import PostingLeg

    legs = [
        PostingLeg.debit(gateway.id, 50000),
        PostingLeg.credit(escrow.id, 50000),
    ]
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .models import Bucket, Direction

if TYPE_CHECKING:
    from .models import LedgerEntry


@dataclass
class Money:
    """
    Represents a monetary amount.

    All amounts are stored in minor units (paise for INR) to avoid
    floating-point precision issues. The currency is stored as a
    3-letter ISO 4217 code.

    Example:
        amount = Money(cents=50000, currency="inr")
        print(amount)  # "500.00 INR"
    """

    cents: int
    currency: str = "inr"

    def __str__(self) -> str:
        """Format as a currency string (e.g., '500.00 INR')."""
        return f"{self.cents / 100:.2f} {self.currency.upper()}"

    def __add__(self, other: Money) -> Money:
        """Add two Money objects (must have same currency)."""
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot add Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )
        return Money(cents=self.cents + other.cents, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        """Subtract two Money objects (must have same currency)."""
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot subtract Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )
        return Money(cents=self.cents - other.cents, currency=self.currency)


@dataclass(frozen=True)
class Balance:
    """
    Balance of one account, split by bucket.

    Attributes:
        available: Spendable amount in minor units
        held: Amount reserved against pending withdrawals
        currency: ISO 4217 currency code

    ``total`` is always ``available + held``.
    """

    available: int
    held: int
    currency: str = "inr"

    @property
    def total(self) -> int:
        return self.available + self.held

    def to_dict(self) -> dict[str, int | str]:
        return {
            "available_cents": self.available,
            "held_cents": self.held,
            "total_cents": self.total,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class PostingLeg:
    """
    One side of a ledger posting.

    A posting is a list of legs whose credits and debits net to zero.
    A plain transfer has two legs on two accounts; a withdrawal hold has
    two legs on the same account (debit available, credit held).

    Attributes:
        account_id: Account the leg applies to
        direction: Direction.CREDIT (money in) or Direction.DEBIT (money out)
        amount_cents: Positive amount in minor units
        bucket: Bucket.AVAILABLE (default) or Bucket.HELD
    """

    account_id: uuid.UUID
    direction: str
    amount_cents: int
    bucket: str = Bucket.AVAILABLE

    def __post_init__(self) -> None:
        """Validate leg after initialization."""
        if self.direction not in Direction.values:
            raise ValueError(f"Unknown direction: {self.direction!r}")
        if self.bucket not in Bucket.values:
            raise ValueError(f"Unknown bucket: {self.bucket!r}")

    @classmethod
    def credit(
        cls, account_id: uuid.UUID, amount_cents: int, bucket: str = Bucket.AVAILABLE
    ) -> PostingLeg:
        return cls(account_id, Direction.CREDIT, amount_cents, bucket)

    @classmethod
    def debit(
        cls, account_id: uuid.UUID, amount_cents: int, bucket: str = Bucket.AVAILABLE
    ) -> PostingLeg:
        return cls(account_id, Direction.DEBIT, amount_cents, bucket)

    @property
    def signed_amount(self) -> int:
        """Amount with credits positive and debits negative."""
        if self.direction == Direction.CREDIT:
            return self.amount_cents
        return -self.amount_cents


@dataclass
class PostingResult:
    """
    Outcome of a committed (or replayed) posting.

    Attributes:
        posting_id: Id shared by all entries of the posting
        entries: The ledger entries, one per leg
        replayed: True if the reference + idempotency key was already
            recorded and nothing new was written
    """

    posting_id: uuid.UUID
    entries: list[LedgerEntry] = field(default_factory=list)
    replayed: bool = False
