"""
Mission Control Store
=====================

Persistence for agents, tasks, projects, reports and agent logs.

- PostgreSQL support (with SQLite fallback)
- One connection and one transaction per operation
- Status values validated against the enums in tracker.models
- Multi-row writes (agent + initial task, report + task transition)
  commit together or not at all
"""

import json
import os
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple

from .models import (
    Agent,
    AgentStatus,
    LogLevel,
    NotFoundError,
    Project,
    ProjectStatus,
    Report,
    ReportStatus,
    ReportType,
    Task,
    TaskPriority,
    TaskStatus,
    ValidationError,
    generate_id,
    row_to_dict,
    utcnow,
)

logger = logging.getLogger(__name__)

# Try to import PostgreSQL driver
try:
    import psycopg2
    import psycopg2.extras
    POSTGRES_AVAILABLE = True
except ImportError:
    POSTGRES_AVAILABLE = False
    logger.warning("psycopg2 not installed, PostgreSQL unavailable")

# SQLite fallback
import sqlite3

DEFAULT_SQLITE_PATH = "data/dashboard.db"

# Marks "argument not given" where None is a meaningful value (clearing a column)
UNSET = object()


# ==================== Database Abstraction ====================

class DatabaseConnection:
    """
    Database abstraction layer supporting PostgreSQL and SQLite.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize database connection.

        Config should have:
        - type: 'postgresql' or 'sqlite'
        - For PostgreSQL: host, port, name, user, password
        - For SQLite: path
        """
        self.config = config
        self.db_type = config.get('type', 'sqlite')
        if self.db_type == 'postgresql' and not POSTGRES_AVAILABLE:
            raise RuntimeError("PostgreSQL configured but psycopg2 is not installed")

        if self.db_type != 'postgresql':
            path = Path(self.config.get('path', DEFAULT_SQLITE_PATH))
            path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self):
        """Get a database connection; commits on success, rolls back on error."""
        if self.db_type == 'postgresql':
            conn = psycopg2.connect(
                host=self.config.get('host', 'localhost'),
                port=self.config.get('port', 5432),
                dbname=self.config.get('name', 'mission_control'),
                user=self.config.get('user', 'mission_control'),
                password=self._get_password(),
                cursor_factory=psycopg2.extras.RealDictCursor
            )
        else:
            conn = sqlite3.connect(self.config.get('path', DEFAULT_SQLITE_PATH))
            conn.row_factory = sqlite3.Row
            # Needed for ON DELETE CASCADE / SET NULL
            conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _get_password(self) -> str:
        """Get database password from config or environment."""
        if 'password' in self.config:
            return self.config['password']

        password_env = self.config.get('password_env', 'DB_PASSWORD')
        return os.environ.get(password_env, '')

    def execute(self, query: str, params: tuple = None) -> List[Any]:
        """Execute a query and return all rows."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)
            return cursor.fetchall()

    def execute_one(self, query: str, params: tuple = None) -> Any:
        """Execute a query and return single result."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)
            return cursor.fetchone()

    @property
    def placeholder(self) -> str:
        """Get the parameter placeholder for this DB type."""
        return '%s' if self.db_type == 'postgresql' else '?'


# ==================== Store ====================

class TrackerStore:
    """
    Reads and writes every Mission Control table.

    Each public method runs in its own transaction.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the store.

        Args:
            config: Database configuration (see DatabaseConnection)
        """
        self.config = config
        self.db = DatabaseConnection(config.get('database', {}))
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        if self.db.db_type == 'postgresql':
            log_id = "id SERIAL PRIMARY KEY"
        else:
            log_id = "id INTEGER PRIMARY KEY AUTOINCREMENT"

        with self.db.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS projects (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    status TEXT DEFAULT 'planning',
                    github_repo TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    target_completion TEXT,
                    metadata TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS agents (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    status TEXT DEFAULT 'idle',
                    current_task TEXT,
                    model TEXT,
                    started_at TEXT NOT NULL,
                    last_ping TEXT NOT NULL,
                    session_key TEXT,
                    metadata TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT,
                    status TEXT DEFAULT 'backlog',
                    priority TEXT DEFAULT 'medium',
                    assigned_to TEXT REFERENCES agents(id) ON DELETE SET NULL,
                    project_id TEXT REFERENCES projects(id) ON DELETE CASCADE,
                    parent_task_id TEXT REFERENCES tasks(id) ON DELETE SET NULL,
                    issue_number INTEGER,
                    created_at TEXT NOT NULL,
                    started_at TEXT,
                    completed_at TEXT,
                    estimated_hours INTEGER,
                    actual_hours INTEGER,
                    metadata TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS reports (
                    id TEXT PRIMARY KEY,
                    agent_id TEXT NOT NULL REFERENCES agents(id) ON DELETE CASCADE,
                    task_id TEXT REFERENCES tasks(id) ON DELETE SET NULL,
                    type TEXT NOT NULL,
                    title TEXT NOT NULL,
                    content TEXT NOT NULL,
                    status TEXT DEFAULT 'unread',
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS agent_logs (
                    {log_id},
                    agent_id TEXT REFERENCES agents(id) ON DELETE CASCADE,
                    task_id TEXT REFERENCES tasks(id) ON DELETE SET NULL,
                    level TEXT DEFAULT 'info',
                    message TEXT NOT NULL,
                    timestamp TEXT NOT NULL
                )
            """)

            # Back the per-agent counts computed in list_agents()
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_assigned_to ON tasks(assigned_to)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_reports_agent_status ON reports(agent_id, status)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_reports_created ON reports(created_at DESC)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_agent_logs_agent ON agent_logs(agent_id)")

        logger.info(f"Store ready ({self.db.db_type})")

    # ==================== Shared Helpers ====================

    def _require(self, cursor, table: str, row_id: str, label: str) -> Dict[str, Any]:
        """Fetch a row inside the current transaction or raise ValidationError."""
        cursor.execute(
            f"SELECT * FROM {table} WHERE id = {self.db.placeholder}",
            (row_id,)
        )
        row = cursor.fetchone()
        if not row:
            raise ValidationError(f"Unknown {label}: {row_id}")
        return dict(row)

    def _log(
        self,
        cursor,
        agent_id: str,
        message: str,
        level: LogLevel = LogLevel.INFO,
        task_id: Optional[str] = None
    ) -> None:
        """Append an agent log entry inside the current transaction."""
        p = self.db.placeholder
        cursor.execute(f"""
            INSERT INTO agent_logs (agent_id, task_id, level, message, timestamp)
            VALUES ({p}, {p}, {p}, {p}, {p})
        """, (agent_id, task_id, LogLevel.parse(level, 'level').value, message, utcnow()))

    # ==================== Agents ====================

    def list_agents(self) -> List[Dict[str, Any]]:
        """List agents, most recently pinged first, with derived counts."""
        p = self.db.placeholder
        rows = self.db.execute(f"""
            SELECT a.*,
                (SELECT COUNT(*) FROM tasks t
                 WHERE t.assigned_to = a.id AND t.status != {p}) AS active_tasks,
                (SELECT COUNT(*) FROM reports r
                 WHERE r.agent_id = a.id AND r.status = {p}) AS unread_reports
            FROM agents a
            ORDER BY a.last_ping DESC
        """, (TaskStatus.COMPLETED.value, ReportStatus.UNREAD.value))
        return [row_to_dict(row) for row in rows]

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        """Get an agent by ID."""
        row = self.db.execute_one(
            f"SELECT * FROM agents WHERE id = {self.db.placeholder}",
            (agent_id,)
        )
        if not row:
            return None
        return Agent.from_row(row)

    def create_agent(
        self,
        name: str,
        task: Optional[str] = None,
        model: Optional[str] = None,
        reserve: bool = False
    ) -> Tuple[Agent, Optional[Task]]:
        """
        Create an agent and, when ``task`` is given, its first task.

        The agent starts idle. With an initial task it is moved to working,
        or to pending when ``reserve`` is set (a remote spawn will decide
        the final state via confirm_spawn / fail_spawn).

        Returns:
            (agent, initial task or None)
        """
        if not name or not name.strip():
            raise ValidationError("Agent name is required")
        task = task.strip() if task else None
        if reserve and not task:
            raise ValidationError("A task is required to spawn a remote agent")

        now = utcnow()
        agent = Agent(
            id=generate_id('agent'),
            name=name.strip(),
            current_task=task or None,
            model=model or 'default',
            started_at=now,
            last_ping=now
        )
        initial_task = None

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            p = self.db.placeholder
            cursor.execute(f"""
                INSERT INTO agents (id, name, status, current_task, model, started_at, last_ping, metadata)
                VALUES ({p}, {p}, {p}, {p}, {p}, {p}, {p}, {p})
            """, (
                agent.id, agent.name, AgentStatus.IDLE.value, agent.current_task,
                agent.model, agent.started_at, agent.last_ping, json.dumps(agent.metadata)
            ))

            if task:
                initial_task = Task(
                    id=generate_id('task'),
                    title=task,
                    status=TaskStatus.IN_PROGRESS.value,
                    priority=TaskPriority.HIGH.value,
                    assigned_to=agent.id,
                    created_at=now,
                    started_at=now
                )
                cursor.execute(f"""
                    INSERT INTO tasks (id, title, description, status, priority, assigned_to, created_at, started_at)
                    VALUES ({p}, {p}, {p}, {p}, {p}, {p}, {p}, {p})
                """, (
                    initial_task.id, initial_task.title, initial_task.description,
                    initial_task.status, initial_task.priority, initial_task.assigned_to,
                    initial_task.created_at, initial_task.started_at
                ))

                agent.status = (AgentStatus.PENDING if reserve else AgentStatus.WORKING).value
                cursor.execute(
                    f"UPDATE agents SET status = {p} WHERE id = {p}",
                    (agent.status, agent.id)
                )

            self._log(
                cursor, agent.id, f"Agent created: {agent.name}",
                task_id=initial_task.id if initial_task else None
            )

        logger.info(f"Created agent {agent.name} ({agent.id}) status={agent.status}")
        return agent, initial_task

    def update_agent(
        self,
        agent_id: str,
        status: Optional[str] = None,
        current_task: Any = UNSET,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Agent:
        """Heartbeat: bump last_ping and apply any given fields."""
        p = self.db.placeholder
        sets = [f"last_ping = {p}"]
        params: List[Any] = [utcnow()]

        if status is not None:
            sets.append(f"status = {p}")
            params.append(AgentStatus.parse(status, 'status').value)
        if current_task is not UNSET:
            sets.append(f"current_task = {p}")
            params.append(current_task)
        if metadata is not None:
            sets.append(f"metadata = {p}")
            params.append(json.dumps(metadata))

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE agents SET {', '.join(sets)} WHERE id = {p}",
                (*params, agent_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Agent not found: {agent_id}")
            cursor.execute(f"SELECT * FROM agents WHERE id = {p}", (agent_id,))
            return Agent.from_row(cursor.fetchone())

    def confirm_spawn(self, agent_id: str, session_key: Optional[str]) -> None:
        """Commit a reserved agent to working once its remote session exists."""
        p = self.db.placeholder
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"""
                UPDATE agents SET status = {p}, session_key = {p}, last_ping = {p}
                WHERE id = {p} AND status = {p}
            """, (
                AgentStatus.WORKING.value, session_key, utcnow(),
                agent_id, AgentStatus.PENDING.value
            ))
            if cursor.rowcount == 0:
                raise NotFoundError(f"No pending agent: {agent_id}")
            self._log(cursor, agent_id, f"Remote session started: {session_key}")
        logger.info(f"Agent {agent_id} spawned remotely (session {session_key})")

    def fail_spawn(self, agent_id: str, error: str) -> int:
        """
        Roll a reserved agent back after a failed remote spawn.

        The agent goes to error and its in-progress tasks return to the
        backlog unassigned.

        Returns:
            Number of tasks returned to the backlog
        """
        p = self.db.placeholder
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"""
                UPDATE agents SET status = {p}, last_ping = {p}
                WHERE id = {p} AND status = {p}
            """, (AgentStatus.ERROR.value, utcnow(), agent_id, AgentStatus.PENDING.value))
            if cursor.rowcount == 0:
                raise NotFoundError(f"No pending agent: {agent_id}")
            cursor.execute(f"""
                UPDATE tasks SET status = {p}, assigned_to = NULL
                WHERE assigned_to = {p} AND status = {p}
            """, (TaskStatus.BACKLOG.value, agent_id, TaskStatus.IN_PROGRESS.value))
            released = cursor.rowcount
            self._log(cursor, agent_id, f"Remote spawn failed: {error}", level=LogLevel.ERROR)
        logger.warning(f"Agent {agent_id} spawn failed, released {released} task(s): {error}")
        return released

    def terminate_agent(self, agent_id: str) -> int:
        """
        Mark an agent terminated and unassign its open tasks.

        Completed tasks keep their assignment. A remote session, if any,
        is left running.

        Returns:
            Number of tasks unassigned
        """
        p = self.db.placeholder
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE agents SET status = {p} WHERE id = {p}",
                (AgentStatus.TERMINATED.value, agent_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Agent not found: {agent_id}")
            cursor.execute(f"""
                UPDATE tasks SET assigned_to = NULL
                WHERE assigned_to = {p} AND status != {p}
            """, (agent_id, TaskStatus.COMPLETED.value))
            unassigned = cursor.rowcount

            cursor.execute(f"SELECT session_key FROM agents WHERE id = {p}", (agent_id,))
            session_key = dict(cursor.fetchone()).get('session_key')
            message = f"Agent terminated, {unassigned} task(s) unassigned"
            if session_key:
                message += f"; remote session {session_key} left running"
            self._log(cursor, agent_id, message, level=LogLevel.WARNING)

        logger.info(f"Terminated agent {agent_id} ({unassigned} task(s) unassigned)")
        return unassigned

    def delete_agent(self, agent_id: str) -> bool:
        """Delete an agent; its reports and logs go with it, its tasks are unassigned."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"DELETE FROM agents WHERE id = {self.db.placeholder}",
                (agent_id,)
            )
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted agent {agent_id}")
        return deleted

    def list_logs(self, agent_id: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        """Agent log entries, newest first."""
        p = self.db.placeholder
        where, params = "", []
        if agent_id:
            where = f"WHERE agent_id = {p}"
            params.append(agent_id)
        params.append(max(1, min(limit, 1000)))
        rows = self.db.execute(f"""
            SELECT * FROM agent_logs {where}
            ORDER BY timestamp DESC, id DESC
            LIMIT {p}
        """, tuple(params))
        return [row_to_dict(row) for row in rows]

    # ==================== Tasks ====================

    def list_tasks(
        self,
        status: Optional[str] = None,
        agent_id: Optional[str] = None,
        project_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """List tasks by priority rank, newest first within a rank."""
        p = self.db.placeholder
        conditions = []
        params: List[Any] = []

        if status:
            conditions.append(f"t.status = {p}")
            params.append(TaskStatus.parse(status, 'status').value)
        if agent_id:
            conditions.append(f"t.assigned_to = {p}")
            params.append(agent_id)
        if project_id:
            conditions.append(f"t.project_id = {p}")
            params.append(project_id)

        where_clause = ' AND '.join(conditions) if conditions else '1=1'
        rows = self.db.execute(f"""
            SELECT t.*, a.name AS assigned_name
            FROM tasks t
            LEFT JOIN agents a ON t.assigned_to = a.id
            WHERE {where_clause}
            ORDER BY
                CASE t.priority
                    WHEN 'critical' THEN 1
                    WHEN 'high' THEN 2
                    WHEN 'medium' THEN 3
                    ELSE 4
                END,
                t.created_at DESC
        """, tuple(params))
        return [row_to_dict(row) for row in rows]

    def task_stats(self) -> Dict[str, int]:
        """Task counts per status."""
        rows = self.db.execute("SELECT status, COUNT(*) AS count FROM tasks GROUP BY status")
        return {row['status']: row['count'] for row in rows}

    def get_task(self, task_id: str) -> Optional[Task]:
        """Get a task by ID."""
        row = self.db.execute_one(
            f"SELECT * FROM tasks WHERE id = {self.db.placeholder}",
            (task_id,)
        )
        if not row:
            return None
        return Task.from_row(row)

    def create_task(
        self,
        title: str,
        description: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Optional[str] = None,
        project_id: Optional[str] = None,
        issue_number: Optional[int] = None
    ) -> Task:
        """Create a backlog task."""
        if not title or not title.strip():
            raise ValidationError("Task title is required")

        task = Task(
            id=generate_id('task'),
            title=title.strip(),
            description=description or "",
            priority=TaskPriority.parse(priority or TaskPriority.MEDIUM.value, 'priority').value,
            assigned_to=assigned_to or None,
            project_id=project_id or None,
            issue_number=issue_number
        )

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            p = self.db.placeholder
            if task.assigned_to:
                self._require(cursor, 'agents', task.assigned_to, 'agent')
            if task.project_id:
                self._require(cursor, 'projects', task.project_id, 'project')
            cursor.execute(f"""
                INSERT INTO tasks
                (id, title, description, status, priority, assigned_to, project_id, issue_number, created_at)
                VALUES ({p}, {p}, {p}, {p}, {p}, {p}, {p}, {p}, {p})
            """, (
                task.id, task.title, task.description, task.status, task.priority,
                task.assigned_to, task.project_id, task.issue_number, task.created_at
            ))

        logger.info(f"Created task {task.id} ({task.priority}): {task.title}")
        return task

    def update_task(
        self,
        task_id: str,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Any = UNSET
    ) -> Task:
        """
        Partially update a task.

        Moving to in-progress stamps started_at, moving to completed stamps
        completed_at. Pass ``assigned_to=None`` to clear the assignment;
        leave it out to keep it.
        """
        p = self.db.placeholder
        now = utcnow()
        sets: List[str] = []
        params: List[Any] = []

        if status is not None:
            new_status = TaskStatus.parse(status, 'status')
            sets.append(f"status = {p}")
            params.append(new_status.value)
            if new_status is TaskStatus.IN_PROGRESS:
                sets.append(f"started_at = {p}")
                params.append(now)
            elif new_status is TaskStatus.COMPLETED:
                sets.append(f"completed_at = {p}")
                params.append(now)
        if priority is not None:
            sets.append(f"priority = {p}")
            params.append(TaskPriority.parse(priority, 'priority').value)
        if assigned_to is not UNSET:
            sets.append(f"assigned_to = {p}")
            params.append(assigned_to or None)

        if not sets:
            raise ValidationError("No updates provided")

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            if assigned_to is not UNSET and assigned_to:
                self._require(cursor, 'agents', assigned_to, 'agent')
            cursor.execute(
                f"UPDATE tasks SET {', '.join(sets)} WHERE id = {p}",
                (*params, task_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Task not found: {task_id}")
            cursor.execute(f"SELECT * FROM tasks WHERE id = {p}", (task_id,))
            task = Task.from_row(cursor.fetchone())

        logger.info(f"Updated task {task_id}: status={task.status} assigned_to={task.assigned_to}")
        return task

    def delete_task(self, task_id: str) -> bool:
        """Delete a task."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"DELETE FROM tasks WHERE id = {self.db.placeholder}",
                (task_id,)
            )
            return cursor.rowcount > 0

    # ==================== Reports ====================

    def list_reports(
        self,
        status: Optional[str] = None,
        agent_id: Optional[str] = None,
        limit: int = 50
    ) -> List[Dict[str, Any]]:
        """List reports newest first with agent name and task title."""
        p = self.db.placeholder
        conditions = []
        params: List[Any] = []

        if status:
            conditions.append(f"r.status = {p}")
            params.append(ReportStatus.parse(status, 'status').value)
        if agent_id:
            conditions.append(f"r.agent_id = {p}")
            params.append(agent_id)

        where_clause = ' AND '.join(conditions) if conditions else '1=1'
        params.append(max(1, min(limit, 500)))

        rows = self.db.execute(f"""
            SELECT r.*, a.name AS agent_name, t.title AS task_title
            FROM reports r
            LEFT JOIN agents a ON r.agent_id = a.id
            LEFT JOIN tasks t ON r.task_id = t.id
            WHERE {where_clause}
            ORDER BY r.created_at DESC
            LIMIT {p}
        """, tuple(params))
        return [row_to_dict(row) for row in rows]

    def create_report(
        self,
        agent_id: str,
        report_type: str,
        title: str,
        content: Optional[str] = None,
        task_id: Optional[str] = None
    ) -> Report:
        """
        Store a report from an agent.

        A completion report tied to a task moves that task to review.
        """
        if not agent_id or not report_type or not title:
            raise ValidationError("Missing required fields: agent_id, type, title")

        report = Report(
            id=generate_id('report'),
            agent_id=agent_id,
            task_id=task_id or None,
            type=ReportType.parse(report_type, 'type').value,
            title=title,
            content=content or ""
        )

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            p = self.db.placeholder
            self._require(cursor, 'agents', report.agent_id, 'agent')
            if report.task_id:
                self._require(cursor, 'tasks', report.task_id, 'task')

            cursor.execute(f"""
                INSERT INTO reports (id, agent_id, task_id, type, title, content, status, created_at)
                VALUES ({p}, {p}, {p}, {p}, {p}, {p}, {p}, {p})
            """, (
                report.id, report.agent_id, report.task_id, report.type,
                report.title, report.content, report.status, report.created_at
            ))
            self._log(cursor, report.agent_id, f"Submitted report: {report.title}", task_id=report.task_id)

            if report.type == ReportType.COMPLETION.value and report.task_id:
                cursor.execute(
                    f"UPDATE tasks SET status = {p} WHERE id = {p}",
                    (TaskStatus.REVIEW.value, report.task_id)
                )
                logger.info(f"Task {report.task_id} moved to review by report {report.id}")

        logger.info(f"Report {report.id} ({report.type}) from {report.agent_id}: {report.title}")
        return report

    def set_report_status(self, report_id: str, status: str) -> None:
        """Mark a report read/unread/archived."""
        p = self.db.placeholder
        value = ReportStatus.parse(status, 'status').value
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE reports SET status = {p} WHERE id = {p}",
                (value, report_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Report not found: {report_id}")

    # ==================== Projects ====================

    def list_projects(self) -> List[Dict[str, Any]]:
        """Projects, most recently updated first, each with its tasks."""
        p = self.db.placeholder
        rows = self.db.execute(f"""
            SELECT pr.*,
                (SELECT COUNT(*) FROM tasks t
                 WHERE t.project_id = pr.id AND t.status != {p}) AS pending_tasks
            FROM projects pr
            ORDER BY pr.updated_at DESC
        """, (TaskStatus.COMPLETED.value,))
        projects = [row_to_dict(row) for row in rows]

        task_rows = self.db.execute(
            "SELECT * FROM tasks WHERE project_id IS NOT NULL ORDER BY created_at DESC"
        )
        by_project: Dict[str, List[Dict[str, Any]]] = {}
        for row in task_rows:
            task = row_to_dict(row)
            by_project.setdefault(task['project_id'], []).append(task)

        for project in projects:
            project['tasks'] = by_project.get(project['id'], [])
        return projects

    def get_project(self, project_id: str) -> Optional[Dict[str, Any]]:
        """Get a project row by ID."""
        row = self.db.execute_one(
            f"SELECT * FROM projects WHERE id = {self.db.placeholder}",
            (project_id,)
        )
        return row_to_dict(row) if row else None

    def create_project(
        self,
        name: str,
        description: Optional[str] = None,
        status: Optional[str] = None,
        github_repo: Optional[str] = None
    ) -> Project:
        """Create a project."""
        if not name or not name.strip():
            raise ValidationError("Project name is required")

        project = Project(
            id=generate_id('project'),
            name=name.strip(),
            description=description or "",
            status=ProjectStatus.parse(status or ProjectStatus.PLANNING.value, 'status').value,
            github_repo=github_repo or None
        )

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            p = self.db.placeholder
            cursor.execute(f"""
                INSERT INTO projects (id, name, description, status, github_repo, created_at, updated_at)
                VALUES ({p}, {p}, {p}, {p}, {p}, {p}, {p})
            """, (
                project.id, project.name, project.description, project.status,
                project.github_repo, project.created_at, project.updated_at
            ))

        logger.info(f"Created project {project.name} ({project.id})")
        return project

    def update_project(self, project_id: str, **updates) -> bool:
        """Update name, description, status or github_repo of a project."""
        allowed = {'name', 'description', 'status', 'github_repo'}
        unknown = set(updates) - allowed
        if unknown:
            raise ValidationError(f"Cannot update project fields: {', '.join(sorted(unknown))}")
        if not updates:
            raise ValidationError("No updates provided")
        if 'name' in updates and not (updates['name'] or '').strip():
            raise ValidationError("Project name is required")
        if 'status' in updates:
            updates['status'] = ProjectStatus.parse(updates['status'], 'status').value

        updates['updated_at'] = utcnow()
        p = self.db.placeholder
        set_clause = ', '.join(f"{k} = {p}" for k in updates.keys())

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE projects SET {set_clause} WHERE id = {p}",
                (*updates.values(), project_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Project not found: {project_id}")
        return True

    def delete_project(self, project_id: str) -> bool:
        """Delete a project together with its tasks."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"DELETE FROM projects WHERE id = {self.db.placeholder}",
                (project_id,)
            )
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted project {project_id}")
        return deleted

    def upsert_synced_project(
        self,
        project_id: str,
        name: str,
        description: Optional[str],
        github_repo: str
    ) -> None:
        """Insert a repository-backed project or refresh it if it already exists."""
        p = self.db.placeholder
        now = utcnow()
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"""
                INSERT INTO projects (id, name, description, status, github_repo, created_at, updated_at)
                VALUES ({p}, {p}, {p}, {p}, {p}, {p}, {p})
                ON CONFLICT (id) DO UPDATE SET
                    name = excluded.name,
                    description = excluded.description,
                    github_repo = excluded.github_repo,
                    updated_at = excluded.updated_at
            """, (
                project_id, name, description or "", ProjectStatus.ACTIVE.value,
                github_repo, now, now
            ))


# ==================== Singleton Access ====================

_store_instance: Optional[TrackerStore] = None
_store_lock = threading.Lock()


def database_config_from_env(db_path: Optional[str] = None) -> Dict[str, Any]:
    """Auto-detect database settings from the environment."""
    db_host = os.environ.get('DB_HOST')
    if db_host:
        return {
            'type': 'postgresql',
            'host': db_host,
            'port': int(os.environ.get('DB_PORT', '5432')),
            'name': os.environ.get('DB_NAME', 'mission_control'),
            'user': os.environ.get('DB_USER', 'mission_control'),
            'password': os.environ.get('DB_PASSWORD', '')
        }
    return {
        'type': 'sqlite',
        'path': db_path or os.environ.get('DASHBOARD_DB_PATH', DEFAULT_SQLITE_PATH)
    }


def get_store(config: Dict[str, Any] = None, db_path: str = None) -> TrackerStore:
    """Get or create the store singleton (thread-safe)."""
    global _store_instance

    # Double-checked locking pattern for thread safety
    if _store_instance is None:
        with _store_lock:
            if _store_instance is None:
                if config is None:
                    config = {'database': database_config_from_env(db_path)}
                _store_instance = TrackerStore(config)

    return _store_instance


def reset_store() -> None:
    """Drop the singleton so the next get_store() builds a fresh one."""
    global _store_instance
    with _store_lock:
        _store_instance = None
