"""
Pytest fixtures for projects tests.

Sections:
    - Actor Fixtures: ids of the three parties of a project
    - Project Fixtures: projects driven through the real workflow
    - Helpers: fire events and advance along the happy path

Projects are moved with WorkflowEngine so escrow postings, history rows
and timestamps are all real.
"""

import uuid

import pytest

from projects.deliverables import DeliverableService
from projects.services import ProjectService
from projects.states import ProjectStatus
from projects.workflow import Event, WorkflowEngine

QUOTED_PRICE_CENTS = 50000
FULFILLER_PAYOUT_CENTS = 40000
SUPERVISOR_COMMISSION_CENTS = 6000
PAYMENT_REF = "pay-1"

# Happy path: status -> (event, acting party)
HAPPY_PATH = {
    ProjectStatus.SUBMITTED: (Event.START_ANALYSIS, "supervisor"),
    ProjectStatus.ANALYZING: (Event.SEND_QUOTE, "supervisor"),
    ProjectStatus.QUOTED: (Event.ACCEPT_QUOTE, "client"),
    ProjectStatus.ACCEPTED: (Event.REQUEST_PAYMENT, "client"),
    ProjectStatus.PAYMENT_PENDING: (Event.CONFIRM_PAYMENT, "client"),
    ProjectStatus.PAID: (Event.OPEN_ASSIGNMENT, "supervisor"),
    ProjectStatus.READY_TO_ASSIGN: (Event.ASSIGN, "supervisor"),
    ProjectStatus.ASSIGNED: (Event.START_WORK, "fulfiller"),
    ProjectStatus.IN_PROGRESS: (Event.DELIVER, "fulfiller"),
    ProjectStatus.DELIVERED: (Event.START_REVIEW, "supervisor"),
    ProjectStatus.FOR_REVIEW: (Event.APPROVE, "supervisor"),
    ProjectStatus.APPROVED: (Event.DELIVER_TO_CLIENT, "supervisor"),
    ProjectStatus.DELIVERED_TO_CLIENT: (Event.OPEN_CLIENT_REVIEW, "client"),
    ProjectStatus.CLIENT_REVIEW: (Event.COMPLETE, "client"),
}


# =============================================================================
# Actor Fixtures
# =============================================================================


@pytest.fixture
def client_id():
    return uuid.uuid4()


@pytest.fixture
def supervisor_id():
    return uuid.uuid4()


@pytest.fixture
def fulfiller_id():
    return uuid.uuid4()


@pytest.fixture
def outsider_id():
    """Actor with no role on any project."""
    return uuid.uuid4()


# =============================================================================
# Helpers
# =============================================================================


@pytest.fixture
def actors(client_id, supervisor_id, fulfiller_id):
    return {
        "client": client_id,
        "supervisor": supervisor_id,
        "fulfiller": fulfiller_id,
    }


@pytest.fixture
def default_payload(fulfiller_id):
    """Payload each happy-path event is fired with."""
    return {
        Event.SEND_QUOTE: {
            "quoted_price_cents": QUOTED_PRICE_CENTS,
            "fulfiller_payout_cents": FULFILLER_PAYOUT_CENTS,
            "supervisor_commission_cents": SUPERVISOR_COMMISSION_CENTS,
        },
        Event.CONFIRM_PAYMENT: {
            "amount_cents": QUOTED_PRICE_CENTS,
            "external_ref": PAYMENT_REF,
        },
        Event.ASSIGN: {"fulfiller_id": str(fulfiller_id)},
    }


@pytest.fixture
def submit_deliverable(fulfiller_id):
    """
    Upload a new deliverable version as the fulfiller.

    Usage:
        deliverable = submit_deliverable(project)
    """

    def _submit(project, file_url="s3://deliverables/essay.docx"):
        return DeliverableService.submit(
            project.id,
            uploader_id=fulfiller_id,
            file_meta={"file_url": file_url, "file_name": "essay.docx"},
        )

    return _submit


@pytest.fixture
def advance_to(actors, default_payload, submit_deliverable):
    """
    Drive a project along the happy path until it reaches ``status``.

    A deliverable is submitted before each deliver event.

    Usage:
        project = advance_to(project, ProjectStatus.FOR_REVIEW)
    """
    def _advance(project, status):
        while project.status != status:
            if project.status not in HAPPY_PATH:
                raise ValueError(f"{status} is not reachable from {project.status}")
            event, party = HAPPY_PATH[project.status]
            if event == Event.DELIVER:
                submit_deliverable(project)
            project = WorkflowEngine.transition(
                project.id,
                event,
                actor_id=actors[party],
                payload=default_payload.get(event, {}),
            )
        return project

    return _advance


# =============================================================================
# Project Fixtures
# =============================================================================


@pytest.fixture
def project(db, client_id, supervisor_id):
    """Freshly submitted project."""
    return ProjectService.submit_project(
        client_id=client_id,
        supervisor_id=supervisor_id,
        title="Literature review on soil microbiomes",
    )


@pytest.fixture
def payment_pending_project(project, advance_to):
    return advance_to(project, ProjectStatus.PAYMENT_PENDING)


@pytest.fixture
def paid_project(project, advance_to):
    return advance_to(project, ProjectStatus.PAID)


@pytest.fixture
def in_progress_project(project, advance_to):
    return advance_to(project, ProjectStatus.IN_PROGRESS)


@pytest.fixture
def for_review_project(project, advance_to):
    return advance_to(project, ProjectStatus.FOR_REVIEW)


@pytest.fixture
def approved_project(project, advance_to):
    return advance_to(project, ProjectStatus.APPROVED)


@pytest.fixture
def client_review_project(project, advance_to):
    return advance_to(project, ProjectStatus.CLIENT_REVIEW)
