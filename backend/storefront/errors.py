class StoreError(Exception):
    """Base class for failures that are reported back to the caller."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(StoreError):
    status_code = 400


class AuthenticationRequired(StoreError):
    status_code = 401


class PermissionDenied(StoreError):
    status_code = 403


class NotFound(StoreError):
    status_code = 404


class Conflict(StoreError):
    status_code = 409
