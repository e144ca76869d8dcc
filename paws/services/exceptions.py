"""Domain-specific exceptions.

Every error carries a machine-readable ``kind`` and the HTTP status the API maps
it to; ``extra`` is merged into the error payload.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    kind = "ServiceError"
    status_code = 500

    def __init__(self, message: str = "", **extra: Any) -> None:
        super().__init__(message or self.kind)
        self.extra = extra


class Unauthorized(ServiceError):
    kind = "Unauthorized"
    status_code = 401


class InsufficientCredits(ServiceError):
    kind = "InsufficientCredits"
    status_code = 403


class NoActiveCredits(ServiceError):
    kind = "NoActiveCredits"
    status_code = 403


class InvalidRequest(ServiceError):
    kind = "ValidationError"
    status_code = 400


class Conflict(ServiceError):
    kind = "Conflict"
    status_code = 409


class NotFound(ServiceError):
    kind = "NotFound"
    status_code = 404


class UpstreamProviderError(ServiceError):
    kind = "UpstreamProviderError"
    status_code = 502


class SubscriptionError(ServiceError):
    kind = "SubscriptionError"


__all__ = [
    "Conflict",
    "InsufficientCredits",
    "InvalidRequest",
    "NoActiveCredits",
    "NotFound",
    "ServiceError",
    "SubscriptionError",
    "Unauthorized",
    "UpstreamProviderError",
]
