"""
DRF views for payments app.

This module provides API views for:
- Payment confirmation (funds a project's escrow, moves it to paid)
- Wallet lookup, top-up, balance and entry history
- Withdrawal requests and staff resolution

Related files:
    - escrow.py: EscrowService
    - withdrawals.py: WithdrawalService
    - wallets.py: WalletService
    - serializers.py: Request/response serializers
    - urls.py: URL routing

Endpoints:
    POST /api/v1/payments/projects/<id>/confirm-payment/ - Confirm payment
    GET  /api/v1/payments/wallets/ - Caller's wallets with balances
    POST /api/v1/payments/wallets/<id>/top-up/ - Top up own wallet
    GET  /api/v1/payments/accounts/<id>/balance/ - Account balance
    GET  /api/v1/payments/accounts/<id>/entries/ - Account entries
    GET  /api/v1/payments/withdrawals/ - Caller's withdrawals
    POST /api/v1/payments/withdrawals/ - Request withdrawal
    POST /api/v1/payments/withdrawals/<id>/resolve/ - Resolve (staff only)

Security:
    - All endpoints require a JWT access token
    - Credited and debited wallets are derived from the token's actor id
    - Platform accounts are only readable by staff
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.helpers import get_actor_id, is_staff_actor
from payments.exceptions import Unauthorized
from payments.ledger.models import WALLET_TYPES
from payments.ledger.services import LedgerService
from payments.models import WithdrawalRequest
from payments.wallets import WalletService
from payments.withdrawals import WithdrawalService
from projects.serializers import ProjectSerializer
from projects.workflow import Event, WorkflowEngine

from .serializers import (
    BalanceSerializer,
    ConfirmPaymentSerializer,
    EntriesQuerySerializer,
    LedgerEntrySerializer,
    TopUpSerializer,
    WithdrawalCreateSerializer,
    WithdrawalResolveSerializer,
    WithdrawalSerializer,
)

logger = logging.getLogger(__name__)


def _readable_account(request, account_id):
    """Load an account the caller may read: their own wallet, or any for staff."""
    account = LedgerService.get_account(account_id)
    if is_staff_actor(request):
        return account
    if account.type not in WALLET_TYPES or account.owner_id != get_actor_id(request):
        raise Unauthorized(
            "You can only view your own wallet",
            details={"account_id": str(account_id)},
        )
    return account


class ConfirmPaymentView(APIView):
    """
    Confirm the client's payment for a project.

    POST /api/v1/payments/projects/<id>/confirm-payment/

    Called by the payment integration once the gateway has verified the
    transaction, on behalf of the paying client. Retrying with the same
    external_ref is safe and returns the same project state.

    Request body:
        {"amount_cents": 50000, "external_ref": "pay-1"}

    Returns:
        The project, now in ``paid``
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="payments_confirm_payment",
        summary="Confirm project payment",
        request=ConfirmPaymentSerializer,
        responses={
            200: OpenApiResponse(response=ProjectSerializer),
            403: OpenApiResponse(description="Caller is not the project's client"),
            409: OpenApiResponse(description="Project not awaiting payment, or paid with another reference"),
            503: OpenApiResponse(description="Project busy, retry"),
        },
        tags=["Payments - Escrow"],
    )
    def post(self, request, project_id):
        """Record payment and move the project to paid."""
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project = WorkflowEngine.transition(
            project_id,
            Event.CONFIRM_PAYMENT,
            actor_id=get_actor_id(request),
            payload=serializer.validated_data,
        )
        return Response(ProjectSerializer(project).data)


class WalletListView(APIView):
    """
    List the caller's wallets with balances.

    GET /api/v1/payments/wallets/

    Wallets are created on first access.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="payments_wallets_list",
        summary="List my wallets",
        responses={200: BalanceSerializer(many=True)},
        tags=["Payments - Wallets"],
    )
    def get(self, request):
        """Return client and fulfiller wallet balances."""
        actor_id = get_actor_id(request)
        data = []
        for account_type in WALLET_TYPES:
            wallet = WalletService.get_wallet(actor_id, account_type)
            balance = LedgerService.get_balance(wallet.id)
            data.append(
                {"account_id": wallet.id, "type": wallet.type, **balance.to_dict()}
            )
        return Response(data)


class WalletTopUpView(APIView):
    """
    Credit the caller's own wallet from the payment gateway.

    POST /api/v1/payments/wallets/<id>/top-up/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="payments_wallet_top_up",
        summary="Top up wallet",
        request=TopUpSerializer,
        responses={
            201: OpenApiResponse(response=BalanceSerializer),
            200: OpenApiResponse(description="Replay of an earlier top-up"),
            403: OpenApiResponse(description="Wallet belongs to someone else"),
        },
        tags=["Payments - Wallets"],
    )
    def post(self, request, account_id):
        """Top up and return the new balance."""
        serializer = TopUpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = WalletService.top_up(
            account_id,
            serializer.validated_data["amount_cents"],
            external_ref=serializer.validated_data["external_ref"],
            actor_id=get_actor_id(request),
        )
        balance = LedgerService.get_balance(account_id)
        return Response(
            {"account_id": account_id, **balance.to_dict()},
            status=status.HTTP_200_OK if result.replayed else status.HTTP_201_CREATED,
        )


class AccountBalanceView(APIView):
    """
    Balance of one account, computed from its entries.

    GET /api/v1/payments/accounts/<id>/balance/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="payments_account_balance",
        summary="Get account balance",
        responses={
            200: OpenApiResponse(response=BalanceSerializer),
            403: OpenApiResponse(description="Not your wallet"),
            404: OpenApiResponse(description="Account not found"),
        },
        tags=["Payments - Wallets"],
    )
    def get(self, request, account_id):
        """Return available, held and total."""
        account = _readable_account(request, account_id)
        balance = LedgerService.get_balance(account.id)
        return Response({"account_id": account.id, **balance.to_dict()})


class AccountEntriesView(APIView):
    """
    Ledger entries of one account, newest first.

    GET /api/v1/payments/accounts/<id>/entries/?limit=50&offset=0
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="payments_account_entries",
        summary="List account entries",
        parameters=[EntriesQuerySerializer],
        responses={200: LedgerEntrySerializer(many=True)},
        tags=["Payments - Wallets"],
    )
    def get(self, request, account_id):
        account = _readable_account(request, account_id)
        query = EntriesQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        entries = LedgerService.get_entries_for_account(
            account.id,
            limit=query.validated_data["limit"],
            offset=query.validated_data["offset"],
        )
        return Response(LedgerEntrySerializer(entries, many=True).data)


class WithdrawalListCreateView(APIView):
    """
    List or request withdrawals.

    GET  /api/v1/payments/withdrawals/ - Withdrawals from the caller's wallets
    POST /api/v1/payments/withdrawals/ - Request a withdrawal

    Request body (POST):
        {"account_id": "<wallet uuid>", "amount_cents": 80000}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="payments_withdrawals_list",
        summary="List my withdrawals",
        responses={200: WithdrawalSerializer(many=True)},
        tags=["Payments - Withdrawals"],
    )
    def get(self, request):
        withdrawals = WithdrawalRequest.objects.filter(
            account__owner_id=get_actor_id(request),
            account__type__in=WALLET_TYPES,
        )
        return Response(WithdrawalSerializer(withdrawals, many=True).data)

    @extend_schema(
        operation_id="payments_withdrawals_create",
        summary="Request withdrawal",
        request=WithdrawalCreateSerializer,
        responses={
            201: OpenApiResponse(response=WithdrawalSerializer),
            403: OpenApiResponse(description="Wallet belongs to someone else"),
            422: OpenApiResponse(description="Amount exceeds available balance"),
            503: OpenApiResponse(description="Wallet busy, retry"),
        },
        tags=["Payments - Withdrawals"],
    )
    def post(self, request):
        """Hold the amount and create a pending withdrawal."""
        serializer = WithdrawalCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        withdrawal = WithdrawalService.request(
            serializer.validated_data["account_id"],
            serializer.validated_data["amount_cents"],
            actor_id=get_actor_id(request),
        )
        return Response(
            WithdrawalSerializer(withdrawal).data,
            status=status.HTTP_201_CREATED,
        )


class WithdrawalResolveView(APIView):
    """
    Approve (pay out) or reject a pending withdrawal.

    POST /api/v1/payments/withdrawals/<id>/resolve/

    Staff only. Resolving an already resolved request returns 409.
    """

    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(
        operation_id="payments_withdrawals_resolve",
        summary="Resolve withdrawal",
        request=WithdrawalResolveSerializer,
        responses={
            200: OpenApiResponse(response=WithdrawalSerializer),
            404: OpenApiResponse(description="Withdrawal not found"),
            409: OpenApiResponse(description="Already resolved"),
        },
        tags=["Payments - Withdrawals"],
    )
    def post(self, request, withdrawal_id):
        serializer = WithdrawalResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        withdrawal = WithdrawalService.resolve(
            withdrawal_id,
            serializer.validated_data["outcome"],
            reviewer_id=get_actor_id(request),
            reason=serializer.validated_data["reason"],
            external_payout_ref=serializer.validated_data["external_payout_ref"],
        )
        return Response(WithdrawalSerializer(withdrawal).data)

