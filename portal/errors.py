"""
Application error hierarchy.

Services raise these; the app factory renders them as JSON
(`{"success": false, "error": message}`) with the carried status code.
"""

from typing import Optional


class PortalError(Exception):
    """Base exception for expected business failures."""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None, **payload):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload
        super().__init__(message)

    def to_dict(self) -> dict:
        data = {'success': False, 'error': self.message}
        data.update(self.payload)
        return data


class ValidationFailed(PortalError):
    status_code = 400


class PermissionDenied(PortalError):
    status_code = 403


class NotFound(PortalError):
    status_code = 404


class Conflict(PortalError):
    status_code = 409
