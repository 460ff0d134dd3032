"""
GitHub API Client for Mission Control

Reads the authenticated user's repositories so they can be tracked as
projects.
"""

import json
import logging
from typing import Optional, Dict, Any, List
from dataclasses import dataclass
import urllib.request
import urllib.error
import urllib.parse

from .errors import IntegrationError, IntegrationNotConfigured

logger = logging.getLogger(__name__)


@dataclass
class GitHubConfig:
    """GitHub connection configuration."""
    token: str
    api_url: str = "https://api.github.com"
    per_page: int = 100
    timeout: int = 30


class GitHubClient:
    """
    GitHub API client.

    Only the call the dashboard needs is implemented: listing the
    authenticated user's repositories.
    """

    def __init__(self, config: GitHubConfig):
        if not config.token:
            raise IntegrationNotConfigured("GitHub", "GITHUB_TOKEN")
        self.config = config
        self.base_url = config.api_url.rstrip('/')

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> 'GitHubClient':
        """Create client from the ``github`` section of the dashboard settings."""
        return cls(GitHubConfig(
            token=settings.get('token') or '',
            api_url=settings.get('api_url') or "https://api.github.com",
            per_page=int(settings.get('per_page', 100)),
            timeout=int(settings.get('timeout', 30))
        ))

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None
    ) -> Any:
        """Make an API request to GitHub."""
        url = endpoint if endpoint.startswith('http') else f"{self.base_url}{endpoint}"
        if params:
            url += '?' + urllib.parse.urlencode(params)

        headers = {
            'Authorization': f'Bearer {self.config.token}',
            'Accept': 'application/vnd.github.v3+json',
            'X-GitHub-Api-Version': '2022-11-28',
            'User-Agent': 'Mission-Control/1.0'
        }

        req = urllib.request.Request(url, headers=headers, method=method)

        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as response:
                content = response.read().decode('utf-8')
                return json.loads(content) if content else {}

        except urllib.error.HTTPError as e:
            error_body = e.read().decode('utf-8') if e.fp else ''
            logger.error(f"GitHub API error: {e.code} {e.reason} - {error_body}")
            raise IntegrationError("GitHub", e.reason, status_code=e.code) from e
        except urllib.error.URLError as e:
            logger.error(f"GitHub API connection error: {e.reason}")
            raise IntegrationError("GitHub", f"connection error: {e.reason}") from e

    # ==================== Repositories ====================

    def list_user_repos(self) -> List[Dict[str, Any]]:
        """List repositories the token's user can access (first page)."""
        repos = self._request('GET', '/user/repos', params={'per_page': self.config.per_page})
        if not isinstance(repos, list):
            raise IntegrationError("GitHub", "unexpected response for /user/repos")
        return repos

