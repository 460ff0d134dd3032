"""
Mission Control Domain Model
============================

Status enumerations, row dataclasses and the error types raised by the
store. Every status column is drawn from one of the enums below and is
checked before it reaches the database.
"""

import json
import secrets
import string
import time
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, Type, TypeVar


# ==================== Errors ====================

class ValidationError(ValueError):
    """Request data is missing, malformed or references a missing row."""


class InvalidValueError(ValidationError):
    """A value is not a member of its closed enumeration."""

    def __init__(self, field_name: str, value: Any, allowed):
        self.field_name = field_name
        self.value = value
        self.allowed = list(allowed)
        super().__init__(
            f"Invalid {field_name} '{value}'. Allowed: {', '.join(self.allowed)}"
        )


class NotFoundError(LookupError):
    """The addressed row does not exist."""


# ==================== Enums ====================

E = TypeVar('E', bound='StrEnum')


class StrEnum(Enum):
    """Enum whose members are stored by value."""

    @classmethod
    def values(cls):
        return [member.value for member in cls]

    @classmethod
    def parse(cls: Type[E], value: Any, field_name: str = None) -> E:
        """Return the member for ``value`` or raise InvalidValueError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidValueError(field_name or cls.__name__, value, cls.values()) from None


class AgentStatus(StrEnum):
    """Agent lifecycle states."""
    IDLE = "idle"
    PENDING = "pending"  # reserved while a remote session is being spawned
    WORKING = "working"
    ERROR = "error"
    TERMINATED = "terminated"


class TaskStatus(StrEnum):
    """Task lifecycle states."""
    BACKLOG = "backlog"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    COMPLETED = "completed"


class TaskPriority(StrEnum):
    """Task priorities, most urgent first."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ProjectStatus(StrEnum):
    """Project lifecycle states."""
    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"


class ReportType(StrEnum):
    """Kinds of report an agent can submit."""
    PROGRESS = "progress"
    COMPLETION = "completion"
    QUESTION = "question"
    ERROR = "error"


class ReportStatus(StrEnum):
    """Reader-side state of a report."""
    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"


class LogLevel(StrEnum):
    """Severity of an agent log entry."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# ==================== Helpers ====================

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id(prefix: str) -> str:
    """Time-plus-random identifier, e.g. ``agent-1718000000000-k3j9x0a2b``."""
    suffix = ''.join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_json_field(value):
    """Parse JSON field handling both string (SQLite) and dict (PostgreSQL JSONB)."""
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return value


def _to_text(value) -> Optional[str]:
    # PostgreSQL may hand back datetime objects
    if value is None:
        return None
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)


# ==================== Data Classes ====================

@dataclass
class Agent:
    """A worker that takes tasks and files reports."""
    id: str
    name: str
    status: str = AgentStatus.IDLE.value
    current_task: Optional[str] = None
    model: str = "default"
    started_at: str = field(default_factory=utcnow)
    last_ping: str = field(default_factory=utcnow)
    session_key: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row) -> 'Agent':
        row = dict(row)
        return cls(
            id=row['id'],
            name=row['name'],
            status=row.get('status') or AgentStatus.IDLE.value,
            current_task=row.get('current_task'),
            model=row.get('model') or 'default',
            started_at=_to_text(row.get('started_at')),
            last_ping=_to_text(row.get('last_ping')),
            session_key=row.get('session_key'),
            metadata=parse_json_field(row.get('metadata')) or {},
        )


@dataclass
class Task:
    """A unit of trackable work."""
    id: str
    title: str
    description: str = ""
    status: str = TaskStatus.BACKLOG.value
    priority: str = TaskPriority.MEDIUM.value
    assigned_to: Optional[str] = None
    project_id: Optional[str] = None
    parent_task_id: Optional[str] = None
    issue_number: Optional[int] = None
    created_at: str = field(default_factory=utcnow)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row) -> 'Task':
        row = dict(row)
        return cls(
            id=row['id'],
            title=row['title'],
            description=row.get('description') or "",
            status=row.get('status') or TaskStatus.BACKLOG.value,
            priority=row.get('priority') or TaskPriority.MEDIUM.value,
            assigned_to=row.get('assigned_to'),
            project_id=row.get('project_id'),
            parent_task_id=row.get('parent_task_id'),
            issue_number=row.get('issue_number'),
            created_at=_to_text(row.get('created_at')),
            started_at=_to_text(row.get('started_at')),
            completed_at=_to_text(row.get('completed_at')),
        )


@dataclass
class Project:
    """A project, optionally linked to a GitHub repository."""
    id: str
    name: str
    description: str = ""
    status: str = ProjectStatus.PLANNING.value
    github_repo: Optional[str] = None
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Report:
    """A message submitted by an agent."""
    id: str
    agent_id: str
    type: str
    title: str
    content: str = ""
    task_id: Optional[str] = None
    status: str = ReportStatus.UNREAD.value
    created_at: str = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def row_to_dict(row) -> Dict[str, Any]:
    """Plain dict for a DB row with timestamps and JSON columns normalized."""
    data = dict(row)
    for key, value in data.items():
        if hasattr(value, 'isoformat'):
            data[key] = value.isoformat()
    if 'metadata' in data:
        data['metadata'] = parse_json_field(data['metadata']) or {}
    return data
