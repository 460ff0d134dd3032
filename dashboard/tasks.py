"""
Task Endpoints
==============
"""

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from tracker.store import get_store, UNSET

from .errors import error_response

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class TaskCreate(BaseModel):
    """Create a new task."""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    project_id: Optional[str] = None
    issue_number: Optional[int] = None


class TaskUpdate(BaseModel):
    """Partial task update; ``assigned_to: null`` clears the assignment."""
    id: str = Field(..., min_length=1)
    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None


@router.get("")
async def list_tasks(
    status: Optional[str] = None,
    agent: Optional[str] = None,
    project: Optional[str] = None
):
    """List tasks, most urgent first, with per-status counts."""
    store = get_store()
    try:
        tasks = store.list_tasks(status=status, agent_id=agent, project_id=project)
        return {"tasks": tasks, "stats": store.task_stats()}
    except Exception as e:
        return error_response(e, "Error fetching tasks")


@router.post("")
async def create_task(task: TaskCreate):
    """Create a backlog task."""
    try:
        created = get_store().create_task(
            title=task.title,
            description=task.description,
            priority=task.priority,
            assigned_to=task.assigned_to,
            project_id=task.project_id,
            issue_number=task.issue_number
        )
        return {"success": True, "task": created.to_dict()}
    except Exception as e:
        return error_response(e, "Error creating task")


@router.patch("")
async def update_task(update: TaskUpdate):
    """Update status, priority and/or assignment of a task."""
    assigned_to = update.assigned_to if 'assigned_to' in update.model_fields_set else UNSET
    try:
        task = get_store().update_task(
            update.id,
            status=update.status,
            priority=update.priority,
            assigned_to=assigned_to
        )
        return {"success": True, "task": task.to_dict()}
    except Exception as e:
        return error_response(e, "Error updating task")


@router.delete("")
async def delete_task(id: Optional[str] = None):
    """Delete a task."""
    if not id:
        return JSONResponse({"error": "Task ID required"}, status_code=400)
    try:
        if not get_store().delete_task(id):
            return JSONResponse({"error": f"Task not found: {id}"}, status_code=404)
        return {"success": True}
    except Exception as e:
        return error_response(e, "Error deleting task")
