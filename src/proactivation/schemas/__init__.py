"""Pydantic schemas for API requests/responses."""

from proactivation.schemas.activation import (
    ActivationDetails,
    DirectActivationResponse,
    EmailRequest,
    ProbeResponse,
    RedeemResponse,
    ResendResponse,
    TokenRequest,
    ValidationDetails,
    ValidationResponse,
    WebhookResponse,
)
from proactivation.schemas.common import ErrorResponse

__all__ = [
    "ActivationDetails",
    "DirectActivationResponse",
    "EmailRequest",
    "ErrorResponse",
    "ProbeResponse",
    "RedeemResponse",
    "ResendResponse",
    "TokenRequest",
    "ValidationDetails",
    "ValidationResponse",
    "WebhookResponse",
]
