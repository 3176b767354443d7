"""
Tests for payments API views.

Request bodies go through the serializers; the ledger effects are
checked through LedgerService.
"""

import uuid

import pytest
from rest_framework import status

from payments.ledger.services import LedgerService
from payments.models import WithdrawalRequest
from payments.state_machines import WithdrawalState
from payments.tests.conftest import FULFILLER_PAYOUT_CENTS, QUOTED_PRICE_CENTS
from projects.models import Project
from projects.states import ProjectStatus

BASE_URL = "/api/v1/payments"


class TestConfirmPayment:
    def url(self, project):
        return f"{BASE_URL}/projects/{project.id}/confirm-payment/"

    def test_client_confirms(self, authenticated_client_factory, quoted_project, client_id):
        client = authenticated_client_factory(client_id)

        response = client.post(
            self.url(quoted_project),
            {"amount_cents": QUOTED_PRICE_CENTS, "external_ref": "pay-1"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == ProjectStatus.PAID
        assert response.data["payment_reference"] == "pay-1"
        escrow = LedgerService.escrow_account()
        assert LedgerService.get_balance(escrow.id).available == QUOTED_PRICE_CENTS

    def test_retry_with_same_reference(
        self, authenticated_client_factory, quoted_project, client_id
    ):
        client = authenticated_client_factory(client_id)
        body = {"amount_cents": QUOTED_PRICE_CENTS, "external_ref": "pay-1"}
        client.post(self.url(quoted_project), body, format="json")

        response = client.post(self.url(quoted_project), body, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == ProjectStatus.PAID
        escrow = LedgerService.escrow_account()
        assert LedgerService.get_balance(escrow.id).available == QUOTED_PRICE_CENTS

    def test_wrong_amount(self, authenticated_client_factory, quoted_project, client_id):
        client = authenticated_client_factory(client_id)

        response = client.post(
            self.url(quoted_project),
            {"amount_cents": 100, "external_ref": "pay-1"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        project = Project.objects.get(id=quoted_project.id)
        assert project.status == ProjectStatus.PAYMENT_PENDING

    def test_other_actor_forbidden(self, authenticated_client_factory, quoted_project):
        client = authenticated_client_factory(uuid.uuid4())

        response = client.post(
            self.url(quoted_project),
            {"amount_cents": QUOTED_PRICE_CENTS, "external_ref": "pay-1"},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "UNAUTHORIZED"

    def test_missing_reference(self, authenticated_client_factory, quoted_project, client_id):
        client = authenticated_client_factory(client_id)

        response = client.post(
            self.url(quoted_project),
            {"amount_cents": QUOTED_PRICE_CENTS},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestWallets:
    def test_list_creates_wallets(self, authenticated_client_factory, db):
        actor_id = uuid.uuid4()
        client = authenticated_client_factory(actor_id)

        response = client.get(f"{BASE_URL}/wallets/")

        assert response.status_code == status.HTTP_200_OK
        assert {row["type"] for row in response.data} == {
            "client_wallet",
            "fulfiller_wallet",
            "supervisor_wallet",
        }
        assert all(row["total_cents"] == 0 for row in response.data)

    def test_top_up(self, authenticated_client_factory, client_wallet, client_id):
        client = authenticated_client_factory(client_id)
        url = f"{BASE_URL}/wallets/{client_wallet.id}/top-up/"
        body = {"amount_cents": 20000, "external_ref": "topup-1"}

        first = client.post(url, body, format="json")
        second = client.post(url, body, format="json")

        assert first.status_code == status.HTTP_201_CREATED
        assert first.data["available_cents"] == 20000
        assert second.status_code == status.HTTP_200_OK
        assert second.data["available_cents"] == 20000

    def test_top_up_other_wallet(self, authenticated_client_factory, client_wallet):
        client = authenticated_client_factory(uuid.uuid4())

        response = client.post(
            f"{BASE_URL}/wallets/{client_wallet.id}/top-up/",
            {"amount_cents": 20000, "external_ref": "topup-1"},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestAccountReads:
    def test_own_balance(self, authenticated_client_factory, funded_client_wallet, client_id):
        client = authenticated_client_factory(client_id)

        response = client.get(f"{BASE_URL}/accounts/{funded_client_wallet.id}/balance/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["available_cents"] == 100000
        assert response.data["held_cents"] == 0
        assert response.data["currency"] == "inr"

    def test_other_wallet_forbidden(self, authenticated_client_factory, funded_client_wallet):
        client = authenticated_client_factory(uuid.uuid4())

        response = client.get(f"{BASE_URL}/accounts/{funded_client_wallet.id}/balance/")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_platform_account_needs_staff(self, authenticated_client_factory, paid_escrow):
        url = f"{BASE_URL}/accounts/{paid_escrow.id}/balance/"

        denied = authenticated_client_factory(uuid.uuid4()).get(url)
        allowed = authenticated_client_factory(uuid.uuid4(), is_staff=True).get(url)

        assert denied.status_code == status.HTTP_403_FORBIDDEN
        assert allowed.status_code == status.HTTP_200_OK
        assert allowed.data["available_cents"] == QUOTED_PRICE_CENTS

    def test_unknown_account(self, authenticated_client_factory, db):
        client = authenticated_client_factory(uuid.uuid4(), is_staff=True)

        response = client.get(f"{BASE_URL}/accounts/{uuid.uuid4()}/balance/")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "ACCOUNT_NOT_FOUND"

    def test_entries(self, authenticated_client_factory, funded_client_wallet, client_id):
        client = authenticated_client_factory(client_id)

        response = client.get(f"{BASE_URL}/accounts/{funded_client_wallet.id}/entries/")

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert response.data[0]["direction"] == "credit"
        assert response.data[0]["amount_cents"] == 100000

    def test_entries_bad_paging(self, authenticated_client_factory, funded_client_wallet, client_id):
        client = authenticated_client_factory(client_id)

        response = client.get(
            f"{BASE_URL}/accounts/{funded_client_wallet.id}/entries/", {"limit": "many"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.parametrize(
        "params",
        [{"limit": -5}, {"limit": 0}, {"limit": 500}, {"offset": -1}],
    )
    def test_entries_out_of_range_paging(
        self, authenticated_client_factory, funded_client_wallet, client_id, params
    ):
        client = authenticated_client_factory(client_id)

        response = client.get(f"{BASE_URL}/accounts/{funded_client_wallet.id}/entries/", params)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert set(params) <= set(response.data)

    def test_entries_paging_window(
        self, authenticated_client_factory, funded_client_wallet, client_id
    ):
        client = authenticated_client_factory(client_id)

        response = client.get(
            f"{BASE_URL}/accounts/{funded_client_wallet.id}/entries/", {"limit": 1, "offset": 1}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data == []


class TestWithdrawals:
    @pytest.fixture
    def earned_wallet(self, fulfiller_wallet, fund):
        return fund(fulfiller_wallet, FULFILLER_PAYOUT_CENTS * 2)

    def request_withdrawal(self, client, wallet, amount_cents):
        return client.post(
            f"{BASE_URL}/withdrawals/",
            {"account_id": str(wallet.id), "amount_cents": amount_cents},
            format="json",
        )

    def test_request(self, authenticated_client_factory, earned_wallet, fulfiller_id):
        client = authenticated_client_factory(fulfiller_id)

        response = self.request_withdrawal(client, earned_wallet, 60000)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == WithdrawalState.PENDING
        balance = LedgerService.get_balance(earned_wallet.id)
        assert (balance.available, balance.held) == (20000, 60000)

    def test_request_exceeding_balance(
        self, authenticated_client_factory, earned_wallet, fulfiller_id
    ):
        client = authenticated_client_factory(fulfiller_id)

        response = self.request_withdrawal(client, earned_wallet, 90000)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["error_code"] == "INSUFFICIENT_FUNDS"
        assert not WithdrawalRequest.objects.exists()

    def test_list_own(self, authenticated_client_factory, earned_wallet, fulfiller_id):
        client = authenticated_client_factory(fulfiller_id)
        self.request_withdrawal(client, earned_wallet, 60000)

        mine = client.get(f"{BASE_URL}/withdrawals/")
        theirs = authenticated_client_factory(uuid.uuid4()).get(f"{BASE_URL}/withdrawals/")

        assert len(mine.data) == 1
        assert theirs.data == []

    def test_staff_approves(self, authenticated_client_factory, earned_wallet, fulfiller_id):
        created = self.request_withdrawal(
            authenticated_client_factory(fulfiller_id), earned_wallet, 60000
        )
        staff = authenticated_client_factory(uuid.uuid4(), is_staff=True)
        url = f"{BASE_URL}/withdrawals/{created.data['id']}/resolve/"

        response = staff.post(url, {"outcome": "approved"}, format="json")
        again = staff.post(url, {"outcome": "rejected"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == WithdrawalState.PAID
        assert again.status_code == status.HTTP_409_CONFLICT
        balance = LedgerService.get_balance(earned_wallet.id)
        assert (balance.available, balance.held) == (20000, 0)

    def test_non_staff_cannot_resolve(
        self, authenticated_client_factory, earned_wallet, fulfiller_id
    ):
        client = authenticated_client_factory(fulfiller_id)
        created = self.request_withdrawal(client, earned_wallet, 60000)

        response = client.post(
            f"{BASE_URL}/withdrawals/{created.data['id']}/resolve/",
            {"outcome": "approved"},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert WithdrawalRequest.objects.get().status == WithdrawalState.PENDING
