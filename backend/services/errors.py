"""
Service-layer errors.

Each error carries the HTTP status the API answers with; the application
exception handler in ``backend.app.main`` does the translation.
"""


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ServiceError):
    status_code = 400


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409


class InsufficientStock(Conflict):
    pass


class AmbiguousItem(Conflict):
    pass


class AdminRejected(ServiceError):
    status_code = 401


class AdminNotConfigured(ServiceError):
    status_code = 403


class AdminLocked(ServiceError):
    status_code = 423
