"""Run-scoped data models for one upgrade attempt."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from swupgrade.models.status import OutcomeEnum, StageEnum, StageResult


class UpgradeRequest(BaseModel):
    """Upgrade command as issued to the element.

    Created once by the dispatcher, immutable afterwards.
    """

    model_config = ConfigDict(frozen=True)

    image_location: str = Field(..., description="Image location written to the element")
    prior_version: Optional[str] = Field(
        None,
        description="Version reported before the upgrade (None if the read failed)",
    )


class StageReport(BaseModel):
    """Result of one executed workflow stage."""

    stage: StageEnum = Field(..., description="Stage that ran")
    result: StageResult = Field(..., description="Terminal stage result")
    elapsed: float = Field(..., ge=0, description="Seconds spent in the stage")
    bounded_by_overall: bool = Field(
        False,
        description="True if the stage window was cut short by the overall deadline",
    )


class UpgradeOutcome(BaseModel):
    """Tagged outcome of an upgrade run.

    Example:
        {
            "status": "transitionTimeout",
            "message": "Element never entered the transitional state",
            "last_observed": "0",
            "prior_version": "1.0",
            "stages": [...]
        }
    """

    status: OutcomeEnum = Field(..., description="Outcome tag")
    message: str = Field(..., description="Human-readable description")
    last_observed: Optional[str] = Field(
        None, description="Last value read from the element, for diagnostics"
    )
    prior_version: Optional[str] = Field(
        None, description="Version captured at dispatch time"
    )
    stages: list[StageReport] = Field(
        default_factory=list, description="Stages executed, in order"
    )

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeEnum.SUCCESS
