"""
GitHub → Project Sync
=====================

Pulls the user's repositories and upserts one project per repository,
keyed ``gh-<repository id>`` so repeated syncs update rather than
duplicate. Each repository is committed on its own: a failure part-way
leaves the earlier ones in place.
"""

import logging
from typing import Dict, Any

from .errors import IntegrationError
from .github_client import GitHubClient

logger = logging.getLogger(__name__)

PROJECT_ID_PREFIX = "gh-"


class SyncError(IntegrationError):
    """Sync stopped part-way; ``synced`` repositories were already stored."""

    def __init__(self, message: str, synced: int):
        self.synced = synced
        RuntimeError.__init__(self, message)
        self.service = "GitHub"
        self.status_code = None


def project_id_for(repo: Dict[str, Any]) -> str:
    return f"{PROJECT_ID_PREFIX}{repo['id']}"


def sync_github_projects(store, client: GitHubClient) -> int:
    """
    Upsert a project for every repository the client can list.

    Returns:
        Number of repositories synced
    """
    repos = client.list_user_repos()
    logger.info(f"Syncing {len(repos)} GitHub repositories")

    synced = 0
    for repo in repos:
        try:
            store.upsert_synced_project(
                project_id=project_id_for(repo),
                name=repo['name'],
                description=repo.get('description') or "",
                github_repo=repo.get('full_name') or repo['name']
            )
        except Exception as e:
            logger.error(f"Sync stopped at repository {repo.get('full_name')}: {e}")
            raise SyncError(f"Sync failed after {synced} repositories: {e}", synced) from e
        synced += 1

    logger.info(f"Synced {synced} repositories")
    return synced
