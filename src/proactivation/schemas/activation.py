"""Request and response schemas for activation and subscription endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from proactivation.schemas.common import CamelModel


class EmailRequest(BaseModel):
    """Request body carrying the subscriber's email."""

    email: str | None = None


class TokenRequest(BaseModel):
    """Request body carrying an activation token."""

    token: str | None = None


class ActivationDetails(CamelModel):
    email: str
    subscription_status: str = Field(alias="subscriptionStatus")
    plan_name: str = Field(alias="planName")
    activated_at: datetime | None = Field(default=None, alias="activatedAt")


class ResendResponse(CamelModel):
    success: bool = True
    message: str
    details: ActivationDetails


class DirectActivationResponse(CamelModel):
    success: bool = True
    message: str
    token: str
    details: ActivationDetails


class RedeemResponse(CamelModel):
    success: bool = True
    message: str


class ValidationDetails(CamelModel):
    subscription_id: str = Field(alias="subscriptionId")
    status: str
    current_period_end: datetime | None = Field(default=None, alias="currentPeriodEnd")
    plan_name: str = Field(alias="planName")
    last_validated: datetime | None = Field(default=None, alias="lastValidated")


class ValidationResponse(CamelModel):
    success: bool = True
    message: str
    active: bool = True
    should_downgrade: bool = Field(default=False, alias="shouldDowngrade")
    details: ValidationDetails


class ProbeResponse(CamelModel):
    success: bool = True
    active: bool


class WebhookResponse(BaseModel):
    received: bool = True
