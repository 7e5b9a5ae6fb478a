"""Task domain package consolidating scheduling, session and analytics logic.

Only the pure domain modules are re-exported here. ``TaskService`` lives in
``tasktracker.tasks.service`` and depends on the repository, which itself
imports the task models from this package.
"""

from .models import Task, TaskSession, TaskTemplate, TemplateTask
from .sessions import is_overtime, live_elapsed, session_count
from .templates import PlannedTask, plan_template_week

__all__ = [
    "Task",
    "TaskSession",
    "TaskTemplate",
    "TemplateTask",
    "is_overtime",
    "live_elapsed",
    "session_count",
    "PlannedTask",
    "plan_template_week",
]
