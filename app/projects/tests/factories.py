"""
Factory Boy factories for projects test data.

Usage:
    from projects.tests.factories import ProjectFactory

    project = ProjectFactory()
    in_progress = ProjectFactory(status=ProjectStatus.IN_PROGRESS, fulfiller_id=uuid.uuid4())

Projects built with a non-initial status skip the workflow engine, so no
escrow postings exist for them. Tests that move money drive the project
through WorkflowEngine instead (see the ``advance_to`` fixture).
"""

import uuid

import factory

from projects.models import Deliverable, Project, ProjectStatusHistory
from projects.states import ProjectStatus, QCStatus, ServiceType


class ProjectFactory(factory.django.DjangoModelFactory):
    """Factory for Project. Default creates a submitted project."""

    class Meta:
        model = Project
        skip_postgeneration_save = True

    client_id = factory.LazyFunction(uuid.uuid4)
    supervisor_id = factory.LazyFunction(uuid.uuid4)
    fulfiller_id = None
    title = factory.Faker("sentence", nb_words=4)
    service_type = ServiceType.NEW_PROJECT
    description = factory.Faker("paragraph")
    status = ProjectStatus.SUBMITTED
    currency = "inr"


class DeliverableFactory(factory.django.DjangoModelFactory):
    """Factory for Deliverable. Versions count up from 1 across the factory."""

    class Meta:
        model = Deliverable
        skip_postgeneration_save = True

    project = factory.SubFactory(ProjectFactory)
    version = factory.Sequence(lambda n: n + 1)
    file_url = factory.Sequence(lambda n: f"s3://deliverables/file-{n}.docx")
    file_name = "essay.docx"
    file_type = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    file_size_bytes = 2048
    uploaded_by = factory.LazyAttribute(lambda o: o.project.fulfiller_id or uuid.uuid4())
    qc_status = QCStatus.PENDING


class ProjectStatusHistoryFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ProjectStatusHistory

    project = factory.SubFactory(ProjectFactory)
    from_status = ProjectStatus.SUBMITTED
    to_status = ProjectStatus.ANALYZING
    event = "start_analysis"
    actor_id = factory.LazyAttribute(lambda o: o.project.supervisor_id)
    actor_role = "supervisor"
