"""
Mission Control Integrations Module

Outbound clients for GitHub and the OpenClaw gateway.
"""

from .errors import IntegrationError, IntegrationNotConfigured
from .gateway_client import GatewayClient, SpawnResult
from .github_client import GitHubClient
from .github_sync import SyncError, sync_github_projects

__all__ = [
    'IntegrationError',
    'IntegrationNotConfigured',
    'GatewayClient',
    'SpawnResult',
    'GitHubClient',
    'SyncError',
    'sync_github_projects',
]
