"""Pydantic models for HTTP API requests, responses and reports."""

from typing import Optional
from pydantic import BaseModel, Field

from swupgrade.models.status import NotifyEvent, OutcomeEnum, StageEnum


class UpgradeRunRequest(BaseModel):
    """POST /api/v1.0/upgrade payload.

    Starts one upgrade run against a single element.

    Example:
        {
            "agent_id": 346,
            "element_id": 12,
            "image_location": "tftp://10.0.0.5/images/cat9k-17.9.4.bin"
        }
    """

    agent_id: int = Field(..., ge=0, description="Agent hosting the element", examples=[346])
    element_id: int = Field(..., ge=0, description="Element id within the agent", examples=[12])
    image_location: str = Field(
        ...,
        min_length=1,
        description="Image location written to the element",
        examples=["tftp://10.0.0.5/images/cat9k-17.9.4.bin"],
    )


class ProgressData(BaseModel):
    """Progress data nested in response."""

    stage: StageEnum = Field(..., description="Current run stage")
    progress: int = Field(..., ge=0, le=100, description="Percentage completion (0-100)")
    message: str = Field(..., description="Human-readable status description")
    error: Optional[str] = Field(
        None, description="Outcome code and message if stage == failed"
    )
    outcome: Optional[OutcomeEnum] = Field(
        None, description="Outcome of the last finished run"
    )


class ProgressResponse(BaseModel):
    """GET /api/v1.0/progress response.

    Returns current status with application-level status code.
    """

    code: int = Field(..., description="Application-level status code (200/500)")
    msg: str = Field(..., description="Status message or error description")
    data: ProgressData = Field(..., description="Progress data")
    stage: Optional[StageEnum] = Field(
        None, description="Current stage (for failed responses at root level)"
    )
    progress: Optional[int] = Field(
        None, description="Current progress (for failed responses at root level)"
    )


class SuccessResponse(BaseModel):
    """Success response for command endpoints.

    Used by POST /upgrade and POST /abort when the command is accepted.
    """

    code: int = Field(default=200, description="Application-level status code (200)")
    msg: str = Field(default="success", description="Success message")
    data: Optional[dict] = Field(None, description="Optional response data")


class ErrorResponse(BaseModel):
    """Error response for command endpoints.

    HTTP status code is always 200, real status in 'code' field.
    """

    code: int = Field(..., description="Application-level error code (404/409)")
    msg: str = Field(..., description="Error message")
    stage: Optional[StageEnum] = Field(
        None, description="Current stage (for operation state errors)"
    )
    progress: Optional[int] = Field(
        None, description="Current progress (for operation state errors)"
    )


class ReportPayload(BaseModel):
    """Payload for POST to the orchestrator /api/v1.0/upgrade/report."""

    event: NotifyEvent = Field(..., description="Process event")
    message: str = Field(..., description="Human-readable description")
    error: Optional[str] = Field(None, description="Failure description if event == failed")
