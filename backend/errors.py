"""
Exceptions raised by the service layer and their HTTP status codes.
"""

from __future__ import annotations


class ServiceError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class BadRequestError(ServiceError):
    status_code = 400


class AccessDeniedError(ServiceError):
    status_code = 403


class UpgradeRequiredError(AccessDeniedError):
    pass


class NotFoundError(ServiceError):
    status_code = 404


class UpstreamUnavailableError(ServiceError):
    status_code = 503
