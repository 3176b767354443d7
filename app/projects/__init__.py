"""
Projects app: the lifecycle of commissioned work.

Provides:
- Project model with a django-fsm status driven by a transition table
- Workflow engine applying events under a per-project lock
- Deliverable tracking with QC review
- Status-change signal consumed by notifications
"""
