"""
Project Endpoints
=================

Project CRUD and the GitHub repository sync.
"""

import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from integrations.github_client import GitHubClient
from integrations.github_sync import SyncError, sync_github_projects
from tracker.store import get_store

from .config import get_settings
from .errors import error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["projects"])


class ProjectCreate(BaseModel):
    """Create a new project."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[str] = None
    github_repo: Optional[str] = Field(default=None, description="owner/repo")


class ProjectUpdate(BaseModel):
    """Update project fields."""
    id: str = Field(..., min_length=1)
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[str] = None
    github_repo: Optional[str] = None


def get_github_client(settings: Dict[str, Any]) -> GitHubClient:
    return GitHubClient.from_settings(settings.get('github', {}))


@router.get("/projects")
async def list_projects():
    """List projects with their tasks."""
    try:
        return {"projects": get_store().list_projects()}
    except Exception as e:
        return error_response(e, "Error fetching projects")


@router.post("/projects")
async def create_project(project: ProjectCreate):
    """Create a project."""
    try:
        created = get_store().create_project(
            name=project.name,
            description=project.description,
            status=project.status,
            github_repo=project.github_repo
        )
        return {"success": True, "project": created.to_dict()}
    except Exception as e:
        return error_response(e, "Error creating project")


@router.patch("/projects")
async def update_project(update: ProjectUpdate):
    """Update a project."""
    updates = update.model_dump(exclude_unset=True)
    updates.pop('id', None)
    try:
        get_store().update_project(update.id, **updates)
        return {"success": True, "project_id": update.id, "updates": updates}
    except Exception as e:
        return error_response(e, "Error updating project")


@router.delete("/projects")
async def delete_project(id: Optional[str] = None):
    """Delete a project and its tasks."""
    if not id:
        return JSONResponse({"error": "Project ID required"}, status_code=400)
    try:
        if not get_store().delete_project(id):
            return JSONResponse({"error": f"Project not found: {id}"}, status_code=404)
        return {"success": True}
    except Exception as e:
        return error_response(e, "Error deleting project")


# Blocking GitHub call; runs in the threadpool
@router.post("/sync-github")
def sync_github(settings: Dict[str, Any] = Depends(get_settings)):
    """Pull the user's GitHub repositories into projects."""
    try:
        synced = sync_github_projects(get_store(), get_github_client(settings))
    except SyncError as e:
        logger.error(f"Sync error: {e}")
        return JSONResponse({"error": str(e), "synced": e.synced}, status_code=500)
    except Exception as e:
        return error_response(e, "Sync error")

    return {
        "success": True,
        "synced": synced,
        "message": f"Synced {synced} repositories"
    }
