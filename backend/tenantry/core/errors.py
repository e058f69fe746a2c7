# core/errors.py
"""
Error kinds raised by services and routes.

Every error carries the HTTP status it maps to and a public message. The
internal ``detail`` is logged by the handler in main.py and never returned.
"""
from typing import Optional


class TenantryError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.public_message
        self.detail = detail
        super().__init__(self.message)


class Unauthenticated(TenantryError):
    status_code = 401
    public_message = "Not authenticated"


class Unauthorized(TenantryError):
    status_code = 401
    public_message = "Unauthorized"


class NotFound(TenantryError):
    status_code = 404
    public_message = "Not found"


class InvalidInput(TenantryError):
    status_code = 400
    public_message = "Invalid request"


class InvalidState(TenantryError):
    status_code = 400
    public_message = "Operation not allowed in the current state"


class UpstreamFailure(TenantryError):
    status_code = 500
    public_message = "Upstream service failed"
