"""Common schemas used across the API."""

from pydantic import BaseModel, ConfigDict


class CamelModel(BaseModel):
    """Base for response bodies, which use camelCase keys on the wire."""

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    message: str
