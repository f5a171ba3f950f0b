"""Stamp card exceptions.

Every error carries a stable ``code`` and the HTTP status it maps to, so
callers never need to inspect message text:

    try:
        await engine.add_stamp(identifier, token)
    except LoyaltyError as e:
        if e.code == "unauthorized":
            ...
"""


class LoyaltyError(Exception):
    code = "loyalty_error"
    status_code = 500
    default_message = "Loyalty operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(LoyaltyError):
    """Missing or malformed identifier; the client can correct it."""

    code = "validation_error"
    status_code = 400
    default_message = "Missing email or phone"


class Unauthorized(LoyaltyError):
    """Presented QR token does not match the shared secret."""

    code = "unauthorized"
    status_code = 401
    default_message = "Unauthorized: invalid token"


class NotFound(LoyaltyError):
    code = "not_found"
    status_code = 404
    default_message = "Customer not found"


class StorageError(LoyaltyError):
    """Backend unreachable or a query failed. Not retried by the engine."""

    code = "storage_error"
    status_code = 500
    default_message = "Storage operation failed"
