"""Enums for the tasklog system - these define the valid values for audit actions and task fields."""
from enum import Enum


class AuditAction(str, Enum):
    """The three mutations that are recorded. No other actions are allowed."""
    CREATE_TASK = "Create Task"
    UPDATE_TASK = "Update Task"
    DELETE_TASK = "Delete Task"


class TaskField(str, Enum):
    """Task fields a client may write; the keys of an audit entry's updated_content."""
    TITLE = "title"
    DESCRIPTION = "description"
