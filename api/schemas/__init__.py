"""
API schemas for request and response models.

Domain models from ``trend_curator.types`` are returned directly; this
package only holds the API-specific envelopes.
"""

from api.schemas.common import ErrorResponse, HealthCheckResponse, SuccessResponse
from api.schemas.trends import MembershipRequest, TrendCreateRequest, TrendResponse

__all__ = [
    "ErrorResponse",
    "HealthCheckResponse",
    "SuccessResponse",
    "MembershipRequest",
    "TrendCreateRequest",
    "TrendResponse",
]
