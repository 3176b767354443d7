"""
Workflow engine: the only code that changes a project's status.

Every legal move is one row of TRANSITIONS, keyed by (from_status, event).
WorkflowEngine.transition looks the row up, checks the actor's role,
runs the row's ledger/bookkeeping effect and moves the project, all in
one database transaction. If the effect raises (for example the escrow
posting fails), nothing is committed and the error reaches the caller.

Serialization:
    - Redis DistributedLock("project:<id>") bounds concurrent callers for
      one project to WORKFLOW_LOCK_TIMEOUT_SECONDS, then raises Busy
    - SELECT ... FOR UPDATE on the project row inside the transaction
    - Ledger postings lock their accounts in id order (LedgerService.post)

Usage:
    from projects.workflow import Event, WorkflowEngine

    project = WorkflowEngine.transition(
        project.id,
        Event.SEND_QUOTE,
        actor_id=supervisor_id,
        payload={"quoted_price_cents": 50000, "fulfiller_payout_cents": 40000},
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models, transaction
from django.utils import timezone

from core.helpers import parse_uuid
from payments.escrow import EscrowService
from payments.exceptions import Busy, DuplicateReference, LockAcquisitionError, Unauthorized
from payments.ledger.models import AccountType
from payments.ledger.services import LedgerService
from payments.locks import DistributedLock, bounded_lock_wait, row_lock_timeout_as_busy
from payments.state_machines import SettlementKind
from projects.events import emit_status_change
from projects.exceptions import InvalidTransition, ProjectNotFound, ProjectValidationError
from projects.models import Project, ProjectStatusHistory
from projects.states import (
    PRE_PAYMENT_STATUSES,
    REFUNDABLE_STATUSES,
    TERMINAL_STATUSES,
    ActorRole,
    ProjectStatus,
    QCStatus,
)

if TYPE_CHECKING:
    import uuid
    from collections.abc import Callable
    from typing import Any

logger = logging.getLogger(__name__)


class Event(models.TextChoices):
    START_ANALYSIS = "start_analysis", "Start analysis"
    SEND_QUOTE = "send_quote", "Send quote"
    ACCEPT_QUOTE = "accept_quote", "Accept quote"
    REJECT_QUOTE = "reject_quote", "Reject quote"
    REQUEST_PAYMENT = "request_payment", "Request payment"
    CONFIRM_PAYMENT = "confirm_payment", "Confirm payment"
    OPEN_ASSIGNMENT = "open_assignment", "Open assignment"
    ASSIGN = "assign", "Assign fulfiller"
    START_WORK = "start_work", "Start work"
    UPDATE_PROGRESS = "update_progress", "Update progress"
    DELIVER = "deliver", "Deliver"
    START_REVIEW = "start_review", "Start review"
    APPROVE = "approve", "Approve"
    REQUEST_REVISION = "request_revision", "Request revision"
    START_REVISION = "start_revision", "Start revision"
    DELIVER_TO_CLIENT = "deliver_to_client", "Deliver to client"
    OPEN_CLIENT_REVIEW = "open_client_review", "Open client review"
    REQUEST_CLIENT_REVISION = "request_client_revision", "Request client revision"
    COMPLETE = "complete", "Complete"
    CANCEL = "cancel", "Cancel"
    REFUND = "refund", "Refund"


# =============================================================================
# Effects
#
# Each effect runs inside the transition's transaction with the project row
# locked, before the status changes. Signature: (project, actor_id, role, payload).
# =============================================================================


def _positive_int(payload: dict, key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ProjectValidationError(
            f"{key} must be a positive integer",
            details={key: value},
        )
    return value


def _quote(project: Project, actor_id, role, payload) -> None:
    price = _positive_int(payload, "quoted_price_cents")
    payout = _positive_int(payload, "fulfiller_payout_cents")
    commission = payload.get("supervisor_commission_cents", 0)
    if isinstance(commission, bool) or not isinstance(commission, int) or commission < 0:
        raise ProjectValidationError(
            "supervisor_commission_cents must be a non-negative integer",
            details={"supervisor_commission_cents": commission},
        )
    if payout + commission > price:
        raise ProjectValidationError(
            "fulfiller_payout_cents plus supervisor_commission_cents cannot exceed "
            "quoted_price_cents",
            details={
                "quoted_price_cents": price,
                "fulfiller_payout_cents": payout,
                "supervisor_commission_cents": commission,
            },
        )
    project.quoted_price_cents = price
    project.fulfiller_payout_cents = payout
    project.supervisor_commission_cents = commission


def _receive_payment(project: Project, actor_id, role, payload) -> None:
    external_ref = payload.get("external_ref") or ""
    amount = _positive_int(payload, "amount_cents")
    # The paying wallet is always the acting client's own
    wallet = LedgerService.wallet_for(actor_id, AccountType.CLIENT_WALLET, project.currency)
    EscrowService.receive_payment(
        project,
        amount_cents=amount,
        external_ref=external_ref,
        payer_account_id=wallet.id,
        actor_id=actor_id,
        from_wallet=bool(payload.get("from_wallet", False)),
    )
    project.payment_reference = external_ref


def _assign(project: Project, actor_id, role, payload) -> None:
    fulfiller_id = parse_uuid(payload.get("fulfiller_id"))
    if fulfiller_id is None:
        raise ProjectValidationError(
            "fulfiller_id must be a UUID",
            details={"fulfiller_id": payload.get("fulfiller_id")},
        )
    if fulfiller_id in (project.client_id, project.supervisor_id):
        raise ProjectValidationError(
            "The client or supervisor cannot fulfil their own project",
            details={"fulfiller_id": str(fulfiller_id)},
        )
    project.fulfiller_id = fulfiller_id


def _update_progress(project: Project, actor_id, role, payload) -> None:
    progress = payload.get("progress_percent")
    if isinstance(progress, bool) or not isinstance(progress, int) or not 0 <= progress <= 100:
        raise ProjectValidationError(
            "progress_percent must be an integer between 0 and 100",
            details={"progress_percent": progress},
        )
    project.progress_percent = progress


def _require_pending_deliverable(project: Project, actor_id, role, payload) -> None:
    latest = project.latest_deliverable()
    if latest is None or latest.qc_status != QCStatus.PENDING:
        raise InvalidTransition(
            "Submit a new deliverable version before delivering",
            details={"project_id": str(project.id), "status": project.status},
        )
    project.progress_percent = 100


def _approve(project: Project, actor_id, role, payload) -> None:
    latest = project.latest_deliverable()
    if latest is None:
        raise InvalidTransition(
            "Submit a deliverable before approving",
            details={"project_id": str(project.id)},
        )
    if latest.qc_status == QCStatus.REJECTED:
        raise InvalidTransition(
            "The latest deliverable was rejected and cannot be approved",
            details={"project_id": str(project.id)},
        )
    now = timezone.now()
    project.deliverables.exclude(pk=latest.pk).filter(is_final=True).update(is_final=False)
    latest.qc_status = QCStatus.APPROVED
    latest.qc_by = actor_id
    latest.qc_at = latest.qc_at or now
    latest.is_final = True
    latest.save(update_fields=["qc_status", "qc_by", "qc_at", "is_final"])

    # One release per project; a re-approval after a client revision moves no money
    settlement = EscrowService.get_settlement(project)
    if settlement is not None and settlement.kind == SettlementKind.RELEASE:
        return
    wallet = LedgerService.wallet_for(
        project.fulfiller_id, AccountType.FULFILLER_WALLET, project.currency
    )
    EscrowService.release_to_fulfiller(
        project,
        fulfiller_account_id=wallet.id,
        amount_cents=project.fulfiller_payout_cents,
        actor_id=actor_id,
    )


def _reject_latest_deliverable(project: Project, actor_id, role, payload) -> None:
    latest = project.latest_deliverable()
    if latest is not None and latest.qc_status == QCStatus.PENDING:
        latest.qc_status = QCStatus.REJECTED
        latest.qc_by = actor_id
        latest.qc_at = timezone.now()
        latest.qc_notes = payload.get("notes", "") or ""
        latest.save(update_fields=["qc_status", "qc_by", "qc_at", "qc_notes"])


def _complete(project: Project, actor_id, role, payload) -> None:
    EscrowService.collect_remainder(project, actor_id=actor_id)


def _refund_remainder(project: Project, actor_id, role, payload) -> None:
    settlement = EscrowService.get_settlement(project)
    if settlement is not None and settlement.kind == SettlementKind.RELEASE:
        raise InvalidTransition(
            "Escrow was already released to the fulfiller",
            details={"project_id": str(project.id), "status": project.status},
        )
    if settlement is None and EscrowService.escrow_balance(project) > 0:
        wallet = LedgerService.wallet_for(
            project.client_id, AccountType.CLIENT_WALLET, project.currency
        )
        EscrowService.refund(project, wallet.id, actor_id=actor_id)
    project.cancellation_reason = payload.get("reason", "") or ""


def _cancel(project: Project, actor_id, role, payload) -> None:
    if project.status == ProjectStatus.IN_PROGRESS and payload.get("override") is not True:
        raise InvalidTransition(
            "Cancelling work in progress requires a supervisor override",
            details={"project_id": str(project.id), "status": project.status},
        )
    _refund_remainder(project, actor_id, role, payload)


# =============================================================================
# Transition Table
# =============================================================================


@dataclass(frozen=True)
class Rule:
    """
    One legal move.

    Attributes:
        target: Status after the transition
        roles: Roles allowed to fire the event (any one suffices)
        effect: Runs before the status changes; raising aborts the transition
    """

    target: str
    roles: frozenset[str]
    effect: Callable[[Project, Any, str, dict], None] | None = None


CLIENT = frozenset({ActorRole.CLIENT})
SUPERVISOR = frozenset({ActorRole.SUPERVISOR})
FULFILLER = frozenset({ActorRole.FULFILLER})
CLIENT_OR_SUPERVISOR = frozenset({ActorRole.CLIENT, ActorRole.SUPERVISOR})

S = ProjectStatus

TRANSITIONS: dict[tuple[str, str], Rule] = {
    (S.SUBMITTED, Event.START_ANALYSIS): Rule(S.ANALYZING, SUPERVISOR),
    (S.ANALYZING, Event.SEND_QUOTE): Rule(S.QUOTED, SUPERVISOR, _quote),
    (S.QUOTED, Event.ACCEPT_QUOTE): Rule(S.ACCEPTED, CLIENT),
    (S.QUOTED, Event.REJECT_QUOTE): Rule(S.ANALYZING, CLIENT),
    (S.ACCEPTED, Event.REQUEST_PAYMENT): Rule(S.PAYMENT_PENDING, CLIENT),
    (S.PAYMENT_PENDING, Event.CONFIRM_PAYMENT): Rule(S.PAID, CLIENT, _receive_payment),
    (S.PAID, Event.OPEN_ASSIGNMENT): Rule(S.READY_TO_ASSIGN, SUPERVISOR),
    (S.READY_TO_ASSIGN, Event.ASSIGN): Rule(S.ASSIGNED, SUPERVISOR, _assign),
    (S.ASSIGNED, Event.START_WORK): Rule(S.IN_PROGRESS, FULFILLER),
    (S.IN_PROGRESS, Event.UPDATE_PROGRESS): Rule(S.IN_PROGRESS, FULFILLER, _update_progress),
    (S.IN_PROGRESS, Event.DELIVER): Rule(S.DELIVERED, FULFILLER, _require_pending_deliverable),
    (S.DELIVERED, Event.START_REVIEW): Rule(S.FOR_REVIEW, SUPERVISOR),
    (S.FOR_REVIEW, Event.APPROVE): Rule(S.APPROVED, SUPERVISOR, _approve),
    (S.FOR_REVIEW, Event.REQUEST_REVISION): Rule(
        S.REVISION_REQUESTED, SUPERVISOR, _reject_latest_deliverable
    ),
    (S.REVISION_REQUESTED, Event.START_REVISION): Rule(S.IN_REVISION, FULFILLER),
    (S.IN_REVISION, Event.UPDATE_PROGRESS): Rule(S.IN_REVISION, FULFILLER, _update_progress),
    (S.IN_REVISION, Event.DELIVER): Rule(S.DELIVERED, FULFILLER, _require_pending_deliverable),
    (S.APPROVED, Event.DELIVER_TO_CLIENT): Rule(S.DELIVERED_TO_CLIENT, SUPERVISOR),
    (S.DELIVERED_TO_CLIENT, Event.OPEN_CLIENT_REVIEW): Rule(S.CLIENT_REVIEW, CLIENT),
    (S.DELIVERED_TO_CLIENT, Event.COMPLETE): Rule(S.COMPLETED, CLIENT_OR_SUPERVISOR, _complete),
    (S.CLIENT_REVIEW, Event.COMPLETE): Rule(S.COMPLETED, CLIENT_OR_SUPERVISOR, _complete),
    (S.CLIENT_REVIEW, Event.REQUEST_CLIENT_REVISION): Rule(
        S.CLIENT_REVISION, CLIENT, _reject_latest_deliverable
    ),
    (S.CLIENT_REVISION, Event.START_REVISION): Rule(S.IN_REVISION, FULFILLER),
}

for _status in S:
    if _status in TERMINAL_STATUSES:
        continue
    TRANSITIONS[(_status, Event.CANCEL)] = Rule(
        S.CANCELLED,
        CLIENT_OR_SUPERVISOR if _status in PRE_PAYMENT_STATUSES else SUPERVISOR,
        _cancel,
    )
for _status in REFUNDABLE_STATUSES:
    TRANSITIONS[(_status, Event.REFUND)] = Rule(S.REFUNDED, SUPERVISOR, _refund_remainder)

del _status


def allowed_events(status: str) -> list[str]:
    """Events legal from ``status``, in table order."""
    return [event for (source, event) in TRANSITIONS if source == status]


# =============================================================================
# Engine
# =============================================================================


class WorkflowEngine:
    """
    Applies workflow events to projects.

    All methods are static - no instance state is maintained.
    """

    @staticmethod
    def _lock(project_id) -> DistributedLock:
        return DistributedLock(
            f"project:{project_id}",
            ttl=settings.WORKFLOW_LOCK_TTL_SECONDS,
            timeout=settings.WORKFLOW_LOCK_TIMEOUT_SECONDS,
        )

    @staticmethod
    def _load_for_update(project_id) -> Project:
        with row_lock_timeout_as_busy(f"project {project_id}"):
            project = Project.objects.select_for_update().filter(id=project_id).first()
        if project is None:
            raise ProjectNotFound(
                f"Project {project_id} not found",
                details={"project_id": str(project_id)},
            )
        return project

    @staticmethod
    def _authorize(project: Project, actor_id, roles: frozenset[str], event: str) -> str:
        """
        Return the role the actor acts in.

        Raises:
            Unauthorized: Actor holds none of ``roles`` on the project
        """
        held = project.roles_of(actor_id)
        for role in (ActorRole.SUPERVISOR, ActorRole.CLIENT, ActorRole.FULFILLER):
            if role in roles and role in held:
                return role
        raise Unauthorized(
            f"Actor may not fire '{event}' on this project",
            details={
                "project_id": str(project.id),
                "event": event,
                "allowed_roles": sorted(roles),
            },
        )

    @staticmethod
    def _replay(project: Project, event: str, actor_id, payload: dict) -> bool:
        """
        Whether ``event`` repeats an already applied one and is a no-op.

        Raises:
            DuplicateReference: A second, different payment reference
        """
        if event == Event.COMPLETE and project.status == ProjectStatus.COMPLETED:
            WorkflowEngine._authorize(project, actor_id, CLIENT_OR_SUPERVISOR, event)
            return True
        if event == Event.CONFIRM_PAYMENT and project.payment_reference:
            WorkflowEngine._authorize(project, actor_id, CLIENT, event)
            if payload.get("external_ref") == project.payment_reference:
                return True
            raise DuplicateReference(
                f"Project {project.id} was already paid with another reference",
                details={"project_id": str(project.id)},
            )
        return False

    @staticmethod
    def transition(
        project_id: uuid.UUID,
        event: str,
        actor_id: uuid.UUID,
        payload: dict | None = None,
    ) -> Project:
        """
        Apply ``event`` to a project on behalf of ``actor_id``.

        Args:
            project_id: Project to move
            event: One of Event
            actor_id: Authenticated actor; their role is derived from the project
            payload: Event data (quote amounts, fulfiller id, payment ref, ...)

        Returns:
            The project after the transition (unchanged for replays)

        Raises:
            ProjectNotFound: Unknown project
            InvalidTransition: Event not legal from the current status
            Unauthorized: Actor lacks a role allowed to fire the event
            ProjectValidationError: Bad payload
            Busy: Another transition of this project holds the lock
            Ledger/escrow errors from the event's effect (nothing is applied)
        """
        payload = dict(payload or {})
        lock = WorkflowEngine._lock(project_id)
        try:
            lock.acquire()
        except LockAcquisitionError as exc:
            raise Busy(
                f"Project {project_id} is being modified, retry later",
                details={"project_id": str(project_id)},
            ) from exc

        try:
            with transaction.atomic():
                bounded_lock_wait()
                project = WorkflowEngine._load_for_update(project_id)

                if WorkflowEngine._replay(project, event, actor_id, payload):
                    logger.info(
                        "Workflow event replayed",
                        extra={"project_id": str(project.id), "event": event},
                    )
                    return project

                rule = TRANSITIONS.get((project.status, event))
                if rule is None:
                    raise InvalidTransition(
                        f"Event '{event}' is not allowed from '{project.status}'",
                        details={
                            "project_id": str(project.id),
                            "status": project.status,
                            "event": event,
                            "allowed_events": allowed_events(project.status),
                        },
                    )
                role = WorkflowEngine._authorize(project, actor_id, rule.roles, event)

                from_status = project.status
                if rule.effect is not None:
                    rule.effect(project, actor_id, role, payload)

                now = timezone.now()
                project.apply_transition(rule.target, now=now)
                project.save()

                ProjectStatusHistory.objects.create(
                    project=project,
                    from_status=from_status,
                    to_status=project.status,
                    event=event,
                    actor_id=actor_id,
                    actor_role=role,
                    notes=payload.get("notes", "") or "",
                    metadata=WorkflowEngine._history_metadata(payload),
                    created_at=now,
                )
                emit_status_change(
                    Project,
                    project_id=project.id,
                    old_status=from_status,
                    new_status=project.status,
                    event=event,
                    actor_id=actor_id,
                    timestamp=now,
                )
        finally:
            lock.release()

        logger.info(
            "Project transitioned",
            extra={
                "project_id": str(project.id),
                "event": event,
                "from_status": from_status,
                "to_status": project.status,
                "actor_role": role,
            },
        )
        return project

    @staticmethod
    def _history_metadata(payload: dict) -> dict:
        """JSON-safe copy of the payload for the history row."""
        return {
            key: value if isinstance(value, (str, int, float, bool, type(None))) else str(value)
            for key, value in payload.items()
            if key != "notes"
        }
