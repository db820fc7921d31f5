"""Admin-side controllers for the dashboard and the form editor."""

from .api import AdminAPI, AdminAPIError
from .dashboard import DashboardController
from .editor import EditorController, reconcile_email_question
from .optimistic import OptimisticUpdate

__all__ = [
    "AdminAPI",
    "AdminAPIError",
    "DashboardController",
    "EditorController",
    "OptimisticUpdate",
    "reconcile_email_question",
]
