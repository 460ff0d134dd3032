"""
Agent Endpoints
===============

List, create (optionally spawning a remote session), heartbeat and
terminate agents, plus the agent audit log and gateway session relay.
"""

import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from integrations.gateway_client import GatewayClient, SpawnResult
from tracker.models import NotFoundError, ValidationError
from tracker.store import get_store, UNSET

from .config import get_settings
from .errors import error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["agents"])


class AgentCreate(BaseModel):
    """Create a new agent."""
    name: str = Field(..., min_length=1, max_length=200)
    task: Optional[str] = Field(default=None, description="Initial task title")
    model: Optional[str] = None
    remote: bool = Field(default=False, description="Also spawn a session on the gateway")


class AgentUpdate(BaseModel):
    """Heartbeat / status update sent by an agent."""
    id: str = Field(..., min_length=1)
    status: Optional[str] = None
    current_task: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class AgentMessage(BaseModel):
    """Message for an agent's remote session."""
    id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


def get_gateway_client(settings: Dict[str, Any]) -> GatewayClient:
    return GatewayClient.from_settings(settings.get('gateway', {}))


@router.get("/agents")
async def list_agents():
    """List all agents with active task and unread report counts."""
    try:
        return {"agents": get_store().list_agents()}
    except Exception as e:
        return error_response(e, "Error fetching agents")


# Gateway calls block; plain def handlers run in the threadpool
@router.post("/agents")
def create_agent(agent: AgentCreate, settings: Dict[str, Any] = Depends(get_settings)):
    """
    Create an agent with an optional initial task.

    With ``remote`` set the agent is reserved as pending, the gateway is
    asked for a session, and the agent is then committed to working or
    marked as error depending on the outcome.
    """
    store = get_store()
    try:
        if not agent.remote:
            created, task = store.create_agent(agent.name, task=agent.task, model=agent.model)
            return {
                "success": True,
                "agent": {"id": created.id, "name": created.name, "status": created.status},
                "task_id": task.id if task else None
            }

        if not agent.task:
            raise ValidationError("A task is required to spawn a remote agent")
        gateway = get_gateway_client(settings)
        created, task = store.create_agent(agent.name, task=agent.task, model=agent.model, reserve=True)
    except Exception as e:
        return error_response(e, "Error creating agent")

    try:
        result = gateway.spawn_session(name=created.name, task=task.title, agent_id=created.id)
    except Exception as e:
        logger.error(f"Error spawning agent {created.id}: {e}")
        result = SpawnResult(success=False, error=str(e))

    try:
        if not result.success:
            store.fail_spawn(created.id, result.error or "unknown error")
            return JSONResponse(
                {"error": result.error, "agent": {"id": created.id, "name": created.name, "status": "error"}},
                status_code=500
            )
        store.confirm_spawn(created.id, result.session_key)
    except Exception as e:
        return error_response(e, "Error recording spawn outcome")

    return {
        "success": True,
        "agent": {
            "id": created.id,
            "name": created.name,
            "status": "working",
            "session_key": result.session_key
        },
        "task_id": task.id,
        "message": result.message
    }


@router.patch("/agents")
async def update_agent(update: AgentUpdate):
    """Record a heartbeat and optionally change status/current task."""
    current_task = update.current_task if 'current_task' in update.model_fields_set else UNSET
    try:
        agent = get_store().update_agent(
            update.id,
            status=update.status,
            current_task=current_task,
            metadata=update.metadata
        )
        return {"success": True, "agent": agent.to_dict()}
    except Exception as e:
        return error_response(e, "Error updating agent")


@router.delete("/agents")
async def terminate_agent(id: Optional[str] = None, purge: bool = False):
    """Terminate an agent (or delete it outright with ``purge=true``)."""
    if not id:
        return JSONResponse({"error": "Agent ID required"}, status_code=400)

    store = get_store()
    try:
        if purge:
            if not store.delete_agent(id):
                raise NotFoundError(f"Agent not found: {id}")
            return {"success": True, "deleted": id}

        unassigned = store.terminate_agent(id)
        return {"success": True, "unassigned_tasks": unassigned}
    except Exception as e:
        return error_response(e, "Error terminating agent")


@router.post("/agents/message")
def message_agent(body: AgentMessage, settings: Dict[str, Any] = Depends(get_settings)):
    """Send a message to the agent's remote session."""
    try:
        agent = get_store().get_agent(body.id)
        if not agent:
            raise NotFoundError(f"Agent not found: {body.id}")
        if not agent.session_key:
            raise ValidationError(f"Agent {body.id} has no remote session")
        get_gateway_client(settings).send_message(agent.session_key, body.message)
        return {"success": True}
    except Exception as e:
        return error_response(e, "Error messaging agent")


@router.get("/agent-logs")
async def list_agent_logs(agent: Optional[str] = None, limit: int = 100):
    """Agent audit trail, newest first."""
    try:
        return {"logs": get_store().list_logs(agent_id=agent, limit=limit)}
    except Exception as e:
        return error_response(e, "Error fetching agent logs")


@router.get("/sessions")
def list_sessions(settings: Dict[str, Any] = Depends(get_settings)):
    """Sessions known to the gateway."""
    try:
        return {"sessions": get_gateway_client(settings).list_sessions()}
    except Exception as e:
        return error_response(e, "Error fetching sessions")
