"""Error hierarchy, service-key auth and request IDs."""

from bassball.middleware.auth import ServiceKeyAuthMiddleware
from bassball.middleware.error_handler import (
    AuthenticationError,
    BassballError,
    ConflictError,
    InsufficientFundsError,
    InvalidStateError,
    LimitExceededError,
    NoActiveEndpointError,
    NotFoundError,
    PermissionDeniedError,
    RpcRequestError,
    ValidationError,
    register_error_handlers,
)
from bassball.middleware.request_id import RequestIdMiddleware

__all__ = [
    "AuthenticationError",
    "BassballError",
    "ConflictError",
    "InsufficientFundsError",
    "InvalidStateError",
    "LimitExceededError",
    "NoActiveEndpointError",
    "NotFoundError",
    "PermissionDeniedError",
    "RequestIdMiddleware",
    "RpcRequestError",
    "ServiceKeyAuthMiddleware",
    "ValidationError",
    "register_error_handlers",
]
