"""
Report Endpoints
================

Agents submit reports here; the dashboard reads and files them.
"""

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tracker.store import get_store

from .errors import error_response

router = APIRouter(prefix="/api/reports", tags=["reports"])


class ReportCreate(BaseModel):
    """Report submitted by an agent. agent_id, type and title are required."""
    agent_id: Optional[str] = None
    task_id: Optional[str] = None
    type: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None


class ReportStatusUpdate(BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None


@router.get("")
async def list_reports(
    status: Optional[str] = None,
    agent: Optional[str] = None,
    limit: int = 50
):
    """Get reports, newest first (optionally filtered by status or agent)."""
    try:
        return {"reports": get_store().list_reports(status=status, agent_id=agent, limit=limit)}
    except Exception as e:
        return error_response(e, "Error fetching reports")


@router.post("")
async def create_report(report: ReportCreate):
    """Submit a report; a completion report moves its task to review."""
    try:
        created = get_store().create_report(
            agent_id=report.agent_id,
            report_type=report.type,
            title=report.title,
            content=report.content,
            task_id=report.task_id
        )
        return {
            "success": True,
            "report": {"id": created.id, "title": created.title, "type": created.type}
        }
    except Exception as e:
        return error_response(e, "Error creating report")


@router.patch("")
async def update_report(update: ReportStatusUpdate):
    """Mark a report as read / unread / archived."""
    if not update.id or not update.status:
        return JSONResponse({"error": "Missing id or status"}, status_code=400)
    try:
        get_store().set_report_status(update.id, update.status)
        return {"success": True}
    except Exception as e:
        return error_response(e, "Error updating report")
