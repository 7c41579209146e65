"""Exception hierarchy for upgrade runs.

Terminal run errors carry the UpgradeOutcome that produced them so the host
can inspect the stage reports and the last observed value.
"""

from typing import Optional

from swupgrade.models.status import OutcomeEnum
from swupgrade.models.upgrade import UpgradeOutcome, UpgradeRequest


class DeviceCommunicationError(Exception):
    """Raised when an element register cannot be read or written."""

    def __init__(self, message: str, register: Optional[int] = None):
        self.register = register
        super().__init__(message)


class UpgradeError(Exception):
    """Base exception for all terminal upgrade errors."""

    code = "UPGRADE_FAILED"

    def __init__(self, message: str, outcome: Optional[UpgradeOutcome] = None):
        self.message = message
        self.outcome = outcome
        super().__init__(f"{self.code}: {message}")


class DispatchError(UpgradeError):
    """Raised when the element does not accept the upgrade command."""

    code = "DISPATCH_FAILED"

    def __init__(
        self,
        message: str,
        request: Optional[UpgradeRequest] = None,
        outcome: Optional[UpgradeOutcome] = None,
    ):
        self.request = request
        super().__init__(message, outcome)


class UpgradeTimeout(UpgradeError, TimeoutError):
    """Base for timeouts while waiting on the element state."""

    code = "UPGRADE_TIMEOUT"


class TransitionTimeout(UpgradeTimeout):
    """Element never entered the transitional state."""

    code = "TRANSITION_TIMEOUT"


class RecoveryTimeout(UpgradeTimeout):
    """Element entered the transitional state but never left it."""

    code = "RECOVERY_TIMEOUT"


class OverallTimeout(UpgradeTimeout):
    """The overall transition and recovery budget elapsed."""

    code = "OVERALL_TIMEOUT"


class VersionMismatch(UpgradeError):
    """Element recovered but still reports the prior version."""

    code = "VERSION_MISMATCH"


class UpgradeAborted(UpgradeError):
    """Run was aborted by the host."""

    code = "ABORTED"


_OUTCOME_ERRORS = {
    OutcomeEnum.DISPATCH_ERROR: DispatchError,
    OutcomeEnum.TRANSITION_TIMEOUT: TransitionTimeout,
    OutcomeEnum.RECOVERY_TIMEOUT: RecoveryTimeout,
    OutcomeEnum.OVERALL_TIMEOUT: OverallTimeout,
    OutcomeEnum.VERSION_MISMATCH: VersionMismatch,
    OutcomeEnum.ABORTED: UpgradeAborted,
}


def error_for(outcome: UpgradeOutcome) -> UpgradeError:
    """Build the exception matching a failed outcome.

    Raises:
        ValueError: If the outcome is a success
    """
    if outcome.status == OutcomeEnum.SUCCESS:
        raise ValueError("Successful outcome has no matching error")

    error_cls = _OUTCOME_ERRORS[outcome.status]
    message = outcome.message
    if outcome.last_observed is not None:
        message = f"{message} (last retrieved value '{outcome.last_observed}')"
    return error_cls(message, outcome=outcome)
