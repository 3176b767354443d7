"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import WithdrawalRequestFactory

    # A pending withdrawal row (no ledger hold is posted)
    withdrawal = WithdrawalRequestFactory(account=wallet)

Withdrawals that must move money are created through
WithdrawalService.request instead, so the hold exists in the ledger.
"""

import factory
from django.utils import timezone

from payments.ledger.tests.factories import LedgerAccountFactory
from payments.models import EscrowSettlement, WithdrawalRequest
from payments.state_machines import SettlementKind, WithdrawalState


class WithdrawalRequestFactory(factory.django.DjangoModelFactory):
    """Factory for WithdrawalRequest. Default is a pending 80000 request."""

    class Meta:
        model = WithdrawalRequest
        skip_postgeneration_save = True

    account = factory.SubFactory(LedgerAccountFactory)
    amount_cents = 80000
    currency = "inr"
    status = WithdrawalState.PENDING
    requested_by = factory.LazyAttribute(lambda o: o.account.owner_id)
    requested_at = factory.LazyFunction(timezone.now)


class EscrowSettlementFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = EscrowSettlement

    project_id = factory.Faker("uuid4", cast_to=None)
    kind = SettlementKind.RELEASE
    amount_cents = 40000
    account = factory.SubFactory(LedgerAccountFactory)
