"""
Error taxonomy shared by services and endpoints.

Every error carries the HTTP status it maps to; app.py turns them into
`{"error": <message>}` bodies.
"""

from __future__ import annotations


class IssuesRegisterError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(IssuesRegisterError):
    status_code = 400
    default_message = "Invalid input"


class AuthRequired(IssuesRegisterError):
    status_code = 401
    default_message = "Authentication required"


class Unauthorized(IssuesRegisterError):
    status_code = 401
    default_message = "Invalid email or password"


class Conflict(IssuesRegisterError):
    status_code = 409
    default_message = "Conflict"


class NotFound(IssuesRegisterError):
    status_code = 404
    default_message = "Not found"


class Internal(IssuesRegisterError):
    status_code = 500
