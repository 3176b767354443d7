"""
Deliverable tracker: versioned work artifacts of a project.

Files are uploaded to storage by the client app; this service only
records the location it was given. Each submission is a new version
(max + 1, starting at 1) allocated while the project row is locked, so
concurrent uploads cannot produce gaps or duplicates.

Usage:
    from projects.deliverables import DeliverableService

    deliverable = DeliverableService.submit(
        project.id,
        uploader_id=fulfiller_id,
        file_meta={"file_url": "s3://bucket/key", "file_name": "essay.docx"},
    )
    DeliverableService.set_qc_status(deliverable.id, "approved", reviewer_id=supervisor_id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from core.services import BaseService
from payments.exceptions import Unauthorized
from payments.locks import bounded_lock_wait, row_lock_timeout_as_busy
from projects.exceptions import (
    InvalidTransition,
    NotReviewable,
    ProjectNotFound,
    ProjectValidationError,
)
from projects.models import Deliverable, Project
from projects.states import WORKING_STATUSES, ProjectStatus, QCStatus

if TYPE_CHECKING:
    import uuid

logger = logging.getLogger(__name__)

# Project status in which QC is open, and the project field holding the reviewer
REVIEWER_BY_STATUS = {
    ProjectStatus.FOR_REVIEW: "supervisor_id",
    ProjectStatus.CLIENT_REVIEW: "client_id",
}


class DeliverableService(BaseService):
    """Service for submitting and reviewing deliverables."""

    @staticmethod
    def _lock_project(project_id) -> Project:
        bounded_lock_wait()
        with row_lock_timeout_as_busy(f"project {project_id}"):
            project = Project.objects.select_for_update().filter(id=project_id).first()
        if project is None:
            raise ProjectNotFound(
                f"Project {project_id} not found",
                details={"project_id": str(project_id)},
            )
        return project

    @classmethod
    def submit(
        cls,
        project_id: uuid.UUID,
        uploader_id: uuid.UUID,
        file_meta: dict,
    ) -> Deliverable:
        """
        Record a new deliverable version.

        Args:
            project_id: Project the work belongs to
            uploader_id: Authenticated actor; must be the assigned fulfiller
            file_meta: ``file_url`` (required), ``file_name``, ``file_type``,
                ``file_size_bytes``

        Returns:
            The new Deliverable with qc_status pending

        Raises:
            Unauthorized: Uploader is not the assigned fulfiller
            InvalidTransition: Project is not in progress or in revision
            ProjectValidationError: Missing file_url
        """
        file_url = (file_meta or {}).get("file_url")
        if not file_url:
            raise ProjectValidationError("file_url is required")

        with cls.atomic():
            project = cls._lock_project(project_id)
            if project.fulfiller_id is None or uploader_id != project.fulfiller_id:
                raise Unauthorized(
                    "Only the assigned fulfiller can submit deliverables",
                    details={"project_id": str(project.id)},
                )
            if project.status not in WORKING_STATUSES:
                raise InvalidTransition(
                    f"Deliverables cannot be submitted while the project is '{project.status}'",
                    details={"project_id": str(project.id), "status": project.status},
                )

            current = project.deliverables.aggregate(max_version=Max("version"))["max_version"]
            deliverable = Deliverable.objects.create(
                project=project,
                version=(current or 0) + 1,
                file_url=file_url,
                file_name=file_meta.get("file_name", "") or "",
                file_type=file_meta.get("file_type", "") or "",
                file_size_bytes=file_meta.get("file_size_bytes"),
                uploaded_by=uploader_id,
            )

        cls.get_logger().info(
            "Deliverable submitted",
            extra={
                "project_id": str(project_id),
                "deliverable_id": str(deliverable.id),
                "version": deliverable.version,
            },
        )
        return deliverable

    @classmethod
    def set_qc_status(
        cls,
        deliverable_id: uuid.UUID,
        status: str,
        reviewer_id: uuid.UUID,
        notes: str = "",
    ) -> Deliverable:
        """
        Record a QC decision on a deliverable.

        Legal while the project is for_review (reviewer: supervisor) or
        client_review (reviewer: client).

        Raises:
            ProjectNotFound: Unknown deliverable
            ProjectValidationError: status is not approved/rejected
            NotReviewable: Project is not in a review status
            Unauthorized: Reviewer is not the party reviewing in this status
        """
        if status not in (QCStatus.APPROVED, QCStatus.REJECTED):
            raise ProjectValidationError(
                "QC status must be approved or rejected",
                details={"qc_status": status},
            )

        with transaction.atomic():
            deliverable = Deliverable.objects.filter(id=deliverable_id).first()
            if deliverable is None:
                raise ProjectNotFound(
                    f"Deliverable {deliverable_id} not found",
                    error_code="DELIVERABLE_NOT_FOUND",
                    details={"deliverable_id": str(deliverable_id)},
                )
            project = cls._lock_project(deliverable.project_id)

            reviewer_field = REVIEWER_BY_STATUS.get(project.status)
            if reviewer_field is None:
                raise NotReviewable(
                    f"Deliverables cannot be reviewed while the project is '{project.status}'",
                    details={"project_id": str(project.id), "status": project.status},
                )
            if reviewer_id != getattr(project, reviewer_field):
                raise Unauthorized(
                    "Actor is not the reviewer for this stage",
                    details={"project_id": str(project.id), "status": project.status},
                )

            deliverable.qc_status = status
            deliverable.qc_by = reviewer_id
            deliverable.qc_at = timezone.now()
            deliverable.qc_notes = notes or ""
            deliverable.save(update_fields=["qc_status", "qc_by", "qc_at", "qc_notes"])

        logger.info(
            "Deliverable reviewed",
            extra={
                "deliverable_id": str(deliverable.id),
                "qc_status": status,
                "project_status": project.status,
            },
        )
        return deliverable

    @staticmethod
    def history(project_id: uuid.UUID) -> list[Deliverable]:
        """All versions of a project's deliverables, oldest first."""
        return list(Deliverable.objects.filter(project_id=project_id).order_by("version"))
