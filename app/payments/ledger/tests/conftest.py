"""
Pytest fixtures for ledger tests.

Sections:
    - Account Fixtures: Pre-configured ledger accounts
    - Funding Fixtures: Helpers that put money into accounts via real postings
    - Test Data Fixtures: UUIDs and other test data
"""

import uuid

import pytest

from payments.ledger.models import AccountType, ReferenceKind
from payments.ledger.services import LedgerService
from payments.ledger.tests.factories import LedgerAccountFactory
from payments.ledger.types import PostingLeg


# ==========================================================================
# Account Fixtures
# ==========================================================================


@pytest.fixture
def gateway_account(db):
    """
    External gateway account that can go negative.

    Represents money coming in from or going out to the payment gateway.
    """
    return LedgerAccountFactory(
        type=AccountType.EXTERNAL_GATEWAY,
        owner_id=None,
        allow_negative=True,
    )


@pytest.fixture
def escrow_account(db):
    """Platform escrow account. Cannot go negative."""
    return LedgerAccountFactory(
        type=AccountType.PLATFORM_ESCROW,
        owner_id=None,
    )


@pytest.fixture
def revenue_account(db):
    """Platform revenue account. Cannot go negative."""
    return LedgerAccountFactory(
        type=AccountType.PLATFORM_REVENUE,
        owner_id=None,
    )


@pytest.fixture
def client_wallet(db):
    """Client wallet with its own owner."""
    return LedgerAccountFactory(type=AccountType.CLIENT_WALLET)


@pytest.fixture
def fulfiller_wallet(db):
    """Fulfiller wallet with its own owner."""
    return LedgerAccountFactory(type=AccountType.FULFILLER_WALLET)


@pytest.fixture
def inactive_account(db):
    """Deactivated wallet, used to check postings are rejected."""
    return LedgerAccountFactory(is_active=False)


# ==========================================================================
# Funding Fixtures
# ==========================================================================


@pytest.fixture
def fund(gateway_account):
    """
    Credit an account from the gateway with a real posting.

    Usage:
        fund(wallet, 50000)
    """

    def _fund(account, amount_cents):
        LedgerService.post(
            [
                PostingLeg.debit(gateway_account.id, amount_cents),
                PostingLeg.credit(account.id, amount_cents),
            ],
            reference_kind=ReferenceKind.ADJUSTMENT,
            reference_id=uuid.uuid4(),
            idempotency_key="fund",
            created_by="test",
        )
        return account

    return _fund


@pytest.fixture
def funded_escrow_account(escrow_account, fund):
    """Escrow account holding 100000 (1000.00 INR)."""
    return fund(escrow_account, 100000)


@pytest.fixture
def funded_fulfiller_wallet(fulfiller_wallet, fund):
    """Fulfiller wallet holding 100000 (1000.00 INR)."""
    return fund(fulfiller_wallet, 100000)


# ==========================================================================
# Test Data Fixtures
# ==========================================================================


@pytest.fixture
def random_uuid():
    """Generate a random UUID for testing."""
    return uuid.uuid4()
