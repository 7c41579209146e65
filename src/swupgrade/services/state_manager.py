"""In-memory status of the current upgrade run."""

from typing import Optional
import logging

from swupgrade.models.status import StageEnum
from swupgrade.models.upgrade import UpgradeOutcome
from swupgrade.api.models import ProgressData


class StateManager:
    """Tracks the status of the current run for GET /progress.

    One instance per host application (kept on app.state); the workflow
    creates a private one when none is supplied.
    """

    def __init__(self):
        """Initialize state manager in idle state."""
        self.logger = logging.getLogger("swupgrade.state_manager")

        self._current_stage: StageEnum = StageEnum.IDLE
        self._current_progress: int = 0
        self._current_message: str = "Upgrader ready"
        self._current_error: Optional[str] = None
        self._last_outcome: Optional[UpgradeOutcome] = None

        self.logger.debug("StateManager initialized")

    def get_status(self) -> ProgressData:
        """Get current status for GET /progress endpoint.

        Returns:
            ProgressData with current stage, progress, message, error
        """
        return ProgressData(
            stage=self._current_stage,
            progress=self._current_progress,
            message=self._current_message,
            error=self._current_error,
            outcome=self._last_outcome.status if self._last_outcome else None,
        )

    def update_status(
        self,
        stage: StageEnum,
        progress: int,
        message: str,
        error: Optional[str] = None,
    ) -> None:
        """Update in-memory status state.

        Args:
            stage: Current run stage
            progress: Percentage completion (0-100)
            message: Human-readable description
            error: Error message if stage == failed
        """
        self._current_stage = stage
        self._current_progress = progress
        self._current_message = message
        self._current_error = error
        self.logger.debug(
            f"Status updated: stage={stage.value}, progress={progress}%, message={message}"
        )

    def is_busy(self) -> bool:
        """True while a run is between dispatch and its terminal stage."""
        return self._current_stage not in (
            StageEnum.IDLE,
            StageEnum.SUCCESS,
            StageEnum.FAILED,
        )

    def record_outcome(self, outcome: UpgradeOutcome) -> None:
        """Store the terminal outcome and move to success or failed."""
        self._last_outcome = outcome
        if outcome.succeeded:
            self.update_status(stage=StageEnum.SUCCESS, progress=100, message=outcome.message)
        else:
            self.update_status(
                stage=StageEnum.FAILED,
                progress=0,
                message="Upgrade failed",
                error=f"{outcome.status.value}: {outcome.message}",
            )

    def reset(self) -> None:
        """Reset to idle state."""
        self._current_stage = StageEnum.IDLE
        self._current_progress = 0
        self._current_message = "Upgrader ready"
        self._current_error = None
        self._last_outcome = None
        self.logger.info("State reset to idle")
