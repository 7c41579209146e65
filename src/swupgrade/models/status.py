"""Status enums for the upgrade workflow."""

from enum import Enum


class StageEnum(str, Enum):
    """Upgrade run stages, as exposed on GET /progress.

    State transitions:
    idle → dispatching → awaitingTransitional → awaitingRecovery
         → clearingCommand → confirmingVersion → success
                 ↓                  ↓                   ↓
               failed ←──────────────────────────────────
    """

    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING_TRANSITIONAL = "awaitingTransitional"
    AWAITING_RECOVERY = "awaitingRecovery"
    CLEARING_COMMAND = "clearingCommand"
    CONFIRMING_VERSION = "confirmingVersion"
    SUCCESS = "success"
    FAILED = "failed"


class StageResult(str, Enum):
    """Terminal result of a single workflow stage."""

    SUCCEEDED = "succeeded"
    TIMED_OUT = "timedOut"
    DISPATCH_FAILED = "dispatchFailed"
    ABORTED = "aborted"


class OutcomeEnum(str, Enum):
    """Overall outcome of one upgrade run."""

    SUCCESS = "success"
    DISPATCH_ERROR = "dispatchError"
    TRANSITION_TIMEOUT = "transitionTimeout"
    RECOVERY_TIMEOUT = "recoveryTimeout"
    OVERALL_TIMEOUT = "overallTimeout"
    VERSION_MISMATCH = "versionMismatch"
    ABORTED = "aborted"


class NotifyEvent(str, Enum):
    """Process events reported to the orchestration layer."""

    STARTED = "started"
    SUCCESS = "success"
    FAILED = "failed"


# Host progress percentage reached when a stage starts
STAGE_PROGRESS = {
    StageEnum.IDLE: 0,
    StageEnum.DISPATCHING: 5,
    StageEnum.AWAITING_TRANSITIONAL: 20,
    StageEnum.AWAITING_RECOVERY: 50,
    StageEnum.CLEARING_COMMAND: 80,
    StageEnum.CONFIRMING_VERSION: 90,
    StageEnum.SUCCESS: 100,
    StageEnum.FAILED: 0,
}
