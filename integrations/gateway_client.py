"""
OpenClaw Gateway Client
=======================

Starts and talks to remote agent sessions through the OpenClaw gateway.

Usage:
    client = GatewayClient.from_settings(settings["gateway"])
    result = client.spawn_session(name="Bot-1", task="Fix bug #42", agent_id=agent.id)
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

import httpx

from .errors import IntegrationError, IntegrationNotConfigured

logger = logging.getLogger(__name__)

RUN_TIMEOUT_SECONDS = 3600
CLEANUP_POLICY = "keep"


@dataclass
class GatewayConfig:
    """Gateway connection configuration."""
    url: str
    token: str
    run_timeout_seconds: int = RUN_TIMEOUT_SECONDS
    cleanup: str = CLEANUP_POLICY
    gateway_agent_id: str = "default"
    request_timeout: float = 30.0


@dataclass
class SpawnResult:
    """Outcome of a spawn request."""
    success: bool
    session_key: Optional[str] = None
    message: str = ""
    error: Optional[str] = None


def build_mission_prompt(name: str, task: str) -> str:
    """Instructions handed to the remote session."""
    return (
        f"You are {name}, an AI agent working on: {task}\n\n"
        f"Your mission:\n"
        f"1. Work on the assigned task\n"
        f"2. Report progress via POST to dashboard API\n"
        f"3. Ask for help when stuck\n\n"
        f"Task: {task}"
    )


class GatewayClient:
    """Client for the OpenClaw sessions API."""

    def __init__(self, config: GatewayConfig):
        if not config.url:
            raise IntegrationNotConfigured("Gateway", "OPENCLAW_GATEWAY_URL")
        if not config.token:
            raise IntegrationNotConfigured("Gateway", "OPENCLAW_GATEWAY_TOKEN")
        self.config = config
        self.base_url = config.url.rstrip('/')

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> 'GatewayClient':
        """Create client from the ``gateway`` section of the dashboard settings."""
        return cls(GatewayConfig(
            url=settings.get('url') or '',
            token=settings.get('token') or '',
            run_timeout_seconds=int(settings.get('run_timeout_seconds', RUN_TIMEOUT_SECONDS)),
            cleanup=settings.get('cleanup', CLEANUP_POLICY),
            gateway_agent_id=settings.get('agent_id', 'default'),
            request_timeout=float(settings.get('request_timeout', 30.0))
        ))

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.config.token}"}

    def spawn_session(self, name: str, task: str, agent_id: str) -> SpawnResult:
        """
        Ask the gateway for a new remote working session.

        Never raises for upstream failures; check ``SpawnResult.success``.
        """
        payload = {
            "label": f"agent-{agent_id}",
            "task": build_mission_prompt(name, task),
            "agentId": self.config.gateway_agent_id,
            "runTimeoutSeconds": self.config.run_timeout_seconds,
            "cleanup": self.config.cleanup,
        }

        try:
            response = httpx.post(
                f"{self.base_url}/v1/sessions/spawn",
                headers=self._headers,
                json=payload,
                timeout=self.config.request_timeout
            )
            if response.status_code >= 400:
                error = f"Failed to spawn agent: {response.status_code} {response.text}"
                logger.error(error)
                return SpawnResult(success=False, error=error)

            data = response.json()
            if not isinstance(data, dict):
                error = f"Failed to spawn agent: unexpected response {response.text[:200]}"
                logger.error(error)
                return SpawnResult(success=False, error=error)
            return SpawnResult(
                success=True,
                session_key=data.get("sessionKey"),
                message=f"Agent {name} spawned successfully"
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error spawning agent {agent_id}: {e}")
            return SpawnResult(success=False, error=str(e))

    def list_sessions(self) -> List[Dict[str, Any]]:
        """Sessions currently known to the gateway."""
        try:
            response = httpx.get(
                f"{self.base_url}/v1/sessions",
                headers=self._headers,
                timeout=self.config.request_timeout
            )
        except httpx.HTTPError as e:
            logger.error(f"Error fetching sessions: {e}")
            raise IntegrationError("Gateway", str(e)) from e

        if response.status_code >= 400:
            raise IntegrationError("Gateway", response.text, status_code=response.status_code)
        return response.json().get("sessions", [])

    def send_message(self, session_key: str, message: str) -> None:
        """Deliver a message to a running session."""
        try:
            response = httpx.post(
                f"{self.base_url}/v1/sessions/{session_key}/send",
                headers=self._headers,
                json={"message": message},
                timeout=self.config.request_timeout
            )
        except httpx.HTTPError as e:
            logger.error(f"Error sending message to {session_key}: {e}")
            raise IntegrationError("Gateway", str(e)) from e

        if response.status_code >= 400:
            raise IntegrationError("Gateway", response.text, status_code=response.status_code)
