"""Tunable settings for the upgrade workflow."""

from pydantic import BaseModel, Field, field_validator, model_validator

from swupgrade.utils.logging import resolve_level


class RegisterMap(BaseModel):
    """Parameter ids of the element registers used by the workflow.

    Defaults match the managed element driver; other device classes may map
    the same roles to different ids.
    """

    version: int = Field(5, description="Reported software version (read)")
    element_state: int = Field(65008, description="Element state code (read)")
    image_location: int = Field(9901008, description="Image location command (write)")
    trigger: int = Field(9901007, description="Upgrade trigger command (write)")


class UpgradeSettings(BaseModel):
    """Timing budgets, register values and collaborator endpoints.

    All durations are in seconds.
    """

    poll_interval: float = Field(0.1, gt=0, description="Fixed poll interval")
    transition_timeout: float = Field(
        300.0, gt=0, description="Window to observe the transitional state"
    )
    recovery_timeout: float = Field(
        300.0, gt=0, description="Window to observe recovery from the transitional state"
    )
    overall_timeout: float = Field(
        900.0, gt=0, description="Overall bound on transition plus recovery"
    )
    version_confirm_timeout: float = Field(
        10.0, gt=0, description="Window to observe the new version after recovery"
    )
    # With the default timings 3 x 300s fills the 900s overall bound, so the
    # last window is always cut short: an element that never recovers ends as
    # overallTimeout. recoveryTimeout needs fewer attempts or a larger bound.
    recovery_attempts: int = Field(
        3,
        ge=1,
        description=(
            "Recovery windows granted within the overall bound; a window cut "
            "short by the overall bound is classified as overallTimeout"
        ),
    )
    transitional_state_code: int = Field(
        7, description="Element state code reported while the element is unreachable"
    )
    trigger_start: int = Field(1, description="Trigger value that starts the upgrade")
    trigger_idle: int = Field(0, description="Trigger value for the idle command state")
    abort_on_dispatch_failure: bool = Field(
        False,
        description=(
            "End the run when the upgrade command cannot be issued. "
            "When False the failure is reported and validation still runs."
        ),
    )
    registers: RegisterMap = Field(default_factory=RegisterMap)
    device_api_url: str = Field(
        "http://localhost:9080",
        pattern=r"^https?://.+",
        description="Base URL of the device-api exposing element parameters",
    )
    orchestrator_url: str = Field(
        "http://localhost:9090",
        pattern=r"^https?://.+",
        description="Base URL of the orchestration layer receiving process reports",
    )
    request_timeout: float = Field(5.0, gt=0, description="HTTP timeout for collaborators")
    log_file: str = Field("./logs/upgrader.log", description="Rotating log file path")
    log_level: str = Field("INFO", description="Service log level (DEBUG, INFO, WARNING, ERROR)")

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        """Normalize to an upper-case level name known to logging."""
        resolve_level(v)
        return v.upper()

    @model_validator(mode="after")
    def interval_below_timeouts(self) -> "UpgradeSettings":
        """Ensure every timeout allows more than one poll."""
        timeouts = {
            "transition_timeout": self.transition_timeout,
            "recovery_timeout": self.recovery_timeout,
            "overall_timeout": self.overall_timeout,
            "version_confirm_timeout": self.version_confirm_timeout,
        }
        for name, value in timeouts.items():
            if value <= self.poll_interval:
                raise ValueError(
                    f"{name} ({value}s) must be greater than poll_interval "
                    f"({self.poll_interval}s)"
                )
        return self
