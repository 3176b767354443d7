"""
Project service: submission and read access.

Status changes after submission go through projects.workflow.WorkflowEngine.

Usage:
    from projects.services import ProjectService

    project = ProjectService.submit_project(
        client_id=client_id,
        supervisor_id=supervisor_id,
        title="Literature review",
        service_type=ServiceType.NEW_PROJECT,
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db.models import Q
from django.utils import timezone

from core.services import BaseService
from payments.exceptions import Unauthorized
from projects.events import emit_status_change
from projects.exceptions import ProjectNotFound, ProjectValidationError
from projects.models import Project, ProjectStatusHistory
from projects.states import ActorRole, ProjectStatus, ServiceType

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

SUBMIT_EVENT = "submit"


class ProjectService(BaseService):
    """Service for creating projects and reading them back."""

    @classmethod
    def submit_project(
        cls,
        client_id: uuid.UUID,
        supervisor_id: uuid.UUID,
        title: str,
        service_type: str = ServiceType.NEW_PROJECT,
        deadline: datetime | None = None,
        description: str = "",
        currency: str | None = None,
    ) -> Project:
        """
        Create a project in ``submitted`` with its first history row.

        Raises:
            ProjectValidationError: Empty title, unknown service type, or the
                client supervising their own project
        """
        if not title or not title.strip():
            raise ProjectValidationError("title is required")
        if service_type not in ServiceType.values:
            raise ProjectValidationError(
                f"Unknown service type: {service_type}",
                details={"service_type": service_type},
            )
        if client_id == supervisor_id:
            raise ProjectValidationError(
                "A client cannot supervise their own project",
                details={"client_id": str(client_id)},
            )

        now = timezone.now()
        fields = {
            "client_id": client_id,
            "supervisor_id": supervisor_id,
            "title": title.strip(),
            "service_type": service_type,
            "deadline": deadline,
            "description": description or "",
            "status_changed_at": now,
        }
        if currency:
            fields["currency"] = currency

        with cls.atomic():
            project = Project.objects.create(**fields)
            ProjectStatusHistory.objects.create(
                project=project,
                from_status=None,
                to_status=ProjectStatus.SUBMITTED,
                event=SUBMIT_EVENT,
                actor_id=client_id,
                actor_role=ActorRole.CLIENT,
                created_at=now,
            )
            emit_status_change(
                Project,
                project_id=project.id,
                old_status=None,
                new_status=ProjectStatus.SUBMITTED,
                event=SUBMIT_EVENT,
                actor_id=client_id,
                timestamp=now,
            )

        cls.get_logger().info(
            "Project submitted",
            extra={
                "project_id": str(project.id),
                "project_number": project.project_number,
                "service_type": service_type,
            },
        )
        return project

    @staticmethod
    def get_project(project_id: uuid.UUID) -> Project:
        """
        Raises:
            ProjectNotFound: If the project doesn't exist
        """
        project = Project.objects.filter(id=project_id).first()
        if project is None:
            raise ProjectNotFound(
                f"Project {project_id} not found",
                details={"project_id": str(project_id)},
            )
        return project

    @staticmethod
    def get_for_actor(project_id: uuid.UUID, actor_id: uuid.UUID) -> Project:
        """
        Load a project the actor takes part in.

        Raises:
            ProjectNotFound: Unknown project
            Unauthorized: Actor holds no role on the project
        """
        project = ProjectService.get_project(project_id)
        if not project.roles_of(actor_id):
            raise Unauthorized(
                "You are not a participant of this project",
                details={"project_id": str(project_id)},
            )
        return project

    @staticmethod
    def list_for_actor(actor_id: uuid.UUID):
        """Projects where the actor is client, supervisor or fulfiller, newest first."""
        return Project.objects.filter(
            Q(client_id=actor_id) | Q(supervisor_id=actor_id) | Q(fulfiller_id=actor_id)
        )

    @staticmethod
    def get_history(project_id: uuid.UUID) -> list[ProjectStatusHistory]:
        """Status history in time order, for audit and dispute replay."""
        return list(
            ProjectStatusHistory.objects.filter(project_id=project_id).order_by(
                "created_at", "id"
            )
        )


def submit_project(client_id, supervisor_id, title, service_type, deadline=None, description=""):
    """Module-level shortcut for ProjectService.submit_project."""
    return ProjectService.submit_project(
        client_id=client_id,
        supervisor_id=supervisor_id,
        title=title,
        service_type=service_type,
        deadline=deadline,
        description=description,
    )
