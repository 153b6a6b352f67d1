"""Response envelope and view models."""

from bassball.models.responses import (
    ApiResponse,
    EndpointHealthView,
    EndpointView,
    FailoverStatusView,
)

__all__ = ["ApiResponse", "EndpointHealthView", "EndpointView", "FailoverStatusView"]
