"""Errors raised by the outbound integrations."""

from typing import Optional


class IntegrationError(RuntimeError):
    """An upstream service failed or answered with a non-success status."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.status_code = status_code
        detail = f"{service} API error"
        if status_code is not None:
            detail += f": {status_code}"
        super().__init__(f"{detail} - {message}" if message else detail)


class IntegrationNotConfigured(IntegrationError):
    """A required token or URL for an integration is missing."""

    def __init__(self, service: str, setting: str):
        self.setting = setting
        RuntimeError.__init__(self, f"{setting} not configured")
        self.service = service
        self.status_code = None
