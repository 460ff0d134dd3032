"""
Mission Control Tracker Package
===============================

Domain model and storage for agents, tasks, projects and reports.
"""

from .models import (
    AgentStatus,
    TaskStatus,
    TaskPriority,
    ProjectStatus,
    ReportType,
    ReportStatus,
    LogLevel,
    ValidationError,
    InvalidValueError,
    NotFoundError,
)

from .store import (
    TrackerStore,
    get_store,
    reset_store,
    UNSET,
)

__all__ = [
    'AgentStatus',
    'TaskStatus',
    'TaskPriority',
    'ProjectStatus',
    'ReportType',
    'ReportStatus',
    'LogLevel',
    'ValidationError',
    'InvalidValueError',
    'NotFoundError',
    'TrackerStore',
    'get_store',
    'reset_store',
    'UNSET',
]
