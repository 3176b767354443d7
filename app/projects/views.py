"""
Views for projects API.

URL Structure:
    /api/v1/projects/                           GET, POST
    /api/v1/projects/{id}/                      GET
    /api/v1/projects/{id}/transitions/          POST
    /api/v1/projects/{id}/history/              GET
    /api/v1/projects/{id}/deliverables/         GET, POST
    /api/v1/projects/deliverables/{id}/qc/      POST

Design Decisions:
    - All writes go through the service layer (WorkflowEngine,
      DeliverableService, ProjectService)
    - The actor is always the token's user id; roles are derived from
      the project, never from the request body
    - Domain errors are rendered by core.views.api_exception_handler
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.helpers import get_actor_id
from projects.deliverables import DeliverableService
from projects.serializers import (
    DeliverableCreateSerializer,
    DeliverableSerializer,
    ProjectCreateSerializer,
    ProjectSerializer,
    QCStatusSerializer,
    StatusHistorySerializer,
    TransitionSerializer,
)
from projects.services import ProjectService
from projects.workflow import WorkflowEngine


class ProjectListCreateView(APIView):
    """
    List the caller's projects or submit a new one.

    GET  /api/v1/projects/
    POST /api/v1/projects/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="projects_list",
        summary="List my projects",
        responses={200: ProjectSerializer(many=True)},
        tags=["Projects"],
    )
    def get(self, request):
        projects = ProjectService.list_for_actor(get_actor_id(request))
        return Response(ProjectSerializer(projects, many=True).data)

    @extend_schema(
        operation_id="projects_submit",
        summary="Submit project",
        description="Create a project in the submitted state. The caller becomes its client.",
        request=ProjectCreateSerializer,
        responses={
            201: OpenApiResponse(response=ProjectSerializer),
            400: OpenApiResponse(description="Invalid project data"),
        },
        tags=["Projects"],
    )
    def post(self, request):
        serializer = ProjectCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project = ProjectService.submit_project(
            client_id=get_actor_id(request),
            **serializer.validated_data,
        )
        return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)


class ProjectDetailView(APIView):
    """GET /api/v1/projects/{id}/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="projects_retrieve",
        summary="Get project",
        responses={
            200: ProjectSerializer,
            403: OpenApiResponse(description="Not a participant"),
            404: OpenApiResponse(description="Project not found"),
        },
        tags=["Projects"],
    )
    def get(self, request, project_id):
        project = ProjectService.get_for_actor(project_id, get_actor_id(request))
        return Response(ProjectSerializer(project).data)


class ProjectTransitionView(APIView):
    """
    Fire a workflow event.

    POST /api/v1/projects/{id}/transitions/

    Payload:
        event: Workflow event name
        payload: Event data
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="projects_transition",
        summary="Transition project",
        description=(
            "Apply a workflow event. Illegal events return 409 and leave the "
            "project unchanged; events the caller's role may not fire return 403."
        ),
        request=TransitionSerializer,
        responses={
            200: ProjectSerializer,
            403: OpenApiResponse(description="Actor may not fire this event"),
            409: OpenApiResponse(description="Event not legal from the current status"),
            503: OpenApiResponse(description="Project busy, retry"),
        },
        tags=["Projects - Workflow"],
    )
    def post(self, request, project_id):
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project = WorkflowEngine.transition(
            project_id,
            serializer.validated_data["event"],
            actor_id=get_actor_id(request),
            payload=serializer.validated_data["payload"],
        )
        return Response(ProjectSerializer(project).data)


class ProjectHistoryView(APIView):
    """GET /api/v1/projects/{id}/history/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="projects_history",
        summary="Project status history",
        responses={200: StatusHistorySerializer(many=True)},
        tags=["Projects - Workflow"],
    )
    def get(self, request, project_id):
        ProjectService.get_for_actor(project_id, get_actor_id(request))
        history = ProjectService.get_history(project_id)
        return Response(StatusHistorySerializer(history, many=True).data)


class DeliverableListCreateView(APIView):
    """
    List versions or submit a new one.

    GET  /api/v1/projects/{id}/deliverables/
    POST /api/v1/projects/{id}/deliverables/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="projects_deliverables_list",
        summary="List deliverables",
        responses={200: DeliverableSerializer(many=True)},
        tags=["Projects - Deliverables"],
    )
    def get(self, request, project_id):
        ProjectService.get_for_actor(project_id, get_actor_id(request))
        deliverables = DeliverableService.history(project_id)
        return Response(DeliverableSerializer(deliverables, many=True).data)

    @extend_schema(
        operation_id="projects_deliverables_submit",
        summary="Submit deliverable",
        request=DeliverableCreateSerializer,
        responses={
            201: DeliverableSerializer,
            403: OpenApiResponse(description="Not the assigned fulfiller"),
            409: OpenApiResponse(description="Project not accepting deliverables"),
        },
        tags=["Projects - Deliverables"],
    )
    def post(self, request, project_id):
        serializer = DeliverableCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        deliverable = DeliverableService.submit(
            project_id,
            uploader_id=get_actor_id(request),
            file_meta=serializer.validated_data,
        )
        return Response(
            DeliverableSerializer(deliverable).data,
            status=status.HTTP_201_CREATED,
        )


class DeliverableQCView(APIView):
    """POST /api/v1/projects/deliverables/{id}/qc/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="projects_deliverables_qc",
        summary="Set deliverable QC status",
        request=QCStatusSerializer,
        responses={
            200: DeliverableSerializer,
            403: OpenApiResponse(description="Not the reviewer for this stage"),
            409: OpenApiResponse(description="Project not in a review status"),
        },
        tags=["Projects - Deliverables"],
    )
    def post(self, request, deliverable_id):
        serializer = QCStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        deliverable = DeliverableService.set_qc_status(
            deliverable_id,
            serializer.validated_data["qc_status"],
            reviewer_id=get_actor_id(request),
            notes=serializer.validated_data["notes"],
        )
        return Response(DeliverableSerializer(deliverable).data)
