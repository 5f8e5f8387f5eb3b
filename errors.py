"""
Error types raised by the stores and mapped to JSON responses by the API.
"""


class ApiError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    """A required field is missing or malformed."""
    status_code = 400


class NotFound(ApiError):
    status_code = 404


class StoreError(ApiError):
    """The database failed; the message is safe to show, the cause is logged."""
    status_code = 500

    def __init__(self, message: str = "Database error"):
        super().__init__(message)
