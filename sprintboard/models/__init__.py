"""
ORM model package. Import all models here so Alembic autogenerate
can discover every table through the shared Base metadata.
"""
from sprintboard.models.sprint import Sprint  # noqa: F401
from sprintboard.models.task import Task  # noqa: F401
from sprintboard.models.task_image import TaskImage  # noqa: F401
from sprintboard.models.execution_log import ExecutionLog  # noqa: F401
from sprintboard.models.activity_log import ActivityLog  # noqa: F401
