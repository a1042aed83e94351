"""Domain errors raised by the services and rendered by the API layer."""

from fastapi import status


class JerseyOrdersError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(JerseyOrdersError):
    """Input rejected before anything was written."""


class NotFound(JerseyOrdersError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidLink(JerseyOrdersError):
    """Customer portal link is incomplete, unknown, or carries the wrong token."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Invalid link. Please use the link provided by the administrator.", status_code: int = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class OrderLocked(JerseyOrdersError):
    status_code = status.HTTP_409_CONFLICT


class BackendUnavailable(JerseyOrdersError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class MailRelayError(JerseyOrdersError):
    """Mail relay failure.

    ``kind`` is ``delivery`` when the relay answered with ``success: false``,
    ``configuration`` when it did not answer with JSON at all, and
    ``transport`` when it could not be reached.
    """

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, kind: str = "delivery"):
        super().__init__(message)
        self.kind = kind
