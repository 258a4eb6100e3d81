"""Wire shape of structured errors returned by the chat API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorField(BaseModel):
    """Field-level validation detail."""

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error body: ``{statusCode, message, errors?}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status_code: int = Field(alias="statusCode")
    message: str
    errors: Optional[list[ErrorField]] = None
