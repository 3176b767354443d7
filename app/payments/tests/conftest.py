"""
Pytest fixtures for payment tests.

Sections:
    - Actor Fixtures: ids of project parties and staff
    - Account Fixtures: platform accounts and wallets, created the way
      the services create them
    - Project Fixtures: quoted projects for escrow operations
    - Funding Fixtures: real postings that put money into accounts

Usage:
    def test_release(quoted_project, paid_escrow, fulfiller_wallet):
        EscrowService.release_to_fulfiller(quoted_project, fulfiller_wallet.id, 40000)
"""

import uuid

import pytest

from payments.escrow import EscrowService
from payments.ledger.models import AccountType, ReferenceKind
from payments.ledger.services import LedgerService
from payments.ledger.types import PostingLeg
from projects.states import ProjectStatus
from projects.tests.factories import ProjectFactory

QUOTED_PRICE_CENTS = 50000
FULFILLER_PAYOUT_CENTS = 40000
SUPERVISOR_COMMISSION_CENTS = 6000


# =============================================================================
# Actor Fixtures
# =============================================================================


@pytest.fixture
def client_id():
    return uuid.uuid4()


@pytest.fixture
def fulfiller_id():
    return uuid.uuid4()


@pytest.fixture
def staff_id():
    """Platform staff actor resolving withdrawals."""
    return uuid.uuid4()


# =============================================================================
# Account Fixtures
# =============================================================================


@pytest.fixture
def gateway(db):
    return LedgerService.gateway_account()


@pytest.fixture
def escrow(db):
    return LedgerService.escrow_account()


@pytest.fixture
def revenue(db):
    return LedgerService.revenue_account()


@pytest.fixture
def client_wallet(db, client_id):
    return LedgerService.wallet_for(client_id, AccountType.CLIENT_WALLET)


@pytest.fixture
def fulfiller_wallet(db, fulfiller_id):
    return LedgerService.wallet_for(fulfiller_id, AccountType.FULFILLER_WALLET)


# =============================================================================
# Funding Fixtures
# =============================================================================


@pytest.fixture
def fund(gateway):
    """
    Credit an account from the gateway with a real posting.

    Usage:
        fund(wallet, 100000)
    """

    def _fund(account, amount_cents):
        LedgerService.post(
            [
                PostingLeg.debit(gateway.id, amount_cents),
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
def funded_client_wallet(client_wallet, fund):
    """Client wallet holding 100000 (1000.00 INR)."""
    return fund(client_wallet, 100000)


# =============================================================================
# Project Fixtures
# =============================================================================


@pytest.fixture
def quoted_project(db, client_id, fulfiller_id):
    """
    Project with a quote and an assigned fulfiller.

    Built with ProjectFactory; escrow operations only read its ids,
    price and currency.
    """
    return ProjectFactory(
        client_id=client_id,
        fulfiller_id=fulfiller_id,
        status=ProjectStatus.PAYMENT_PENDING,
        quoted_price_cents=QUOTED_PRICE_CENTS,
        fulfiller_payout_cents=FULFILLER_PAYOUT_CENTS,
    )


@pytest.fixture
def paid_escrow(quoted_project, client_wallet, client_id, gateway, escrow):
    """Escrow funded with the quoted project's price from the gateway."""
    EscrowService.receive_payment(
        quoted_project,
        amount_cents=QUOTED_PRICE_CENTS,
        external_ref="pay-1",
        payer_account_id=client_wallet.id,
        actor_id=client_id,
    )
    return escrow
