"""Run boundary: dispatch, validate and report one upgrade attempt."""

import asyncio
import logging
import time
from typing import Optional

from swupgrade.exceptions import DispatchError, error_for
from swupgrade.models.settings import UpgradeSettings
from swupgrade.models.status import STAGE_PROGRESS, OutcomeEnum, StageEnum, StageResult
from swupgrade.models.upgrade import StageReport, UpgradeOutcome
from swupgrade.services.device import DeviceRegisters
from swupgrade.services.dispatcher import UpgradeDispatcher
from swupgrade.services.poller import AbortSignal, Clock, Sleep
from swupgrade.services.reporter import ProcessNotifier
from swupgrade.services.state_manager import StateManager
from swupgrade.services.workflow import RunContext, ValidationWorkflow

ABORT_MESSAGE = "Script aborted"
DISPATCH_FAILURE_MESSAGE = "Failed to issue software update command to element"


class UpgradeRunner:
    """Executes one upgrade attempt against one element."""

    def __init__(
        self,
        notifier: ProcessNotifier,
        settings: Optional[UpgradeSettings] = None,
        state_manager: Optional[StateManager] = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize upgrade runner.

        Args:
            notifier: Receives started/success/failure reports
            settings: Timing and register settings (defaults if None)
            state_manager: StateManager receiving progress (private one if None)
            clock: Monotonic clock used for all deadlines
            sleep: Coroutine function used between polls
        """
        self.logger = logging.getLogger("swupgrade.runner")
        self.notifier = notifier
        self.settings = settings or UpgradeSettings()
        self.state_manager = state_manager or StateManager()
        self.clock = clock
        self.sleep = sleep
        self.dispatcher = UpgradeDispatcher(self.settings)
        self.workflow = ValidationWorkflow(self.state_manager)

    async def run(
        self,
        device: DeviceRegisters,
        image_location: str,
        abort: Optional[AbortSignal] = None,
    ) -> UpgradeOutcome:
        """Run the upgrade and report its outcome.

        Args:
            device: Element register access
            image_location: Image location to upgrade from
            abort: Optional abort signal set by the host

        Returns:
            Terminal UpgradeOutcome (already reported to the notifier)

        Raises:
            asyncio.CancelledError: If the task was cancelled (reported as aborted first)
            Exception: Any unexpected error, reported as failure first
        """
        self.logger.info(f"Starting software update with image {image_location}")
        await self.notifier.notify_started()

        try:
            outcome = await self._perform(device, image_location, abort)
        except asyncio.CancelledError:
            self.logger.warning("Upgrade run cancelled by host")
            self.state_manager.update_status(
                stage=StageEnum.FAILED,
                progress=0,
                message="Upgrade aborted",
                error=f"{OutcomeEnum.ABORTED.value}: {ABORT_MESSAGE}",
            )
            await self._notify_failure_best_effort(ABORT_MESSAGE)
            raise
        except Exception as e:
            self.logger.error(f"Upgrade run failed: {e}", exc_info=True)
            self.state_manager.update_status(
                stage=StageEnum.FAILED,
                progress=0,
                message="Upgrade failed",
                error=f"UPGRADE_FAILED: {e}",
            )
            await self.notifier.notify_failure(f"Exception thrown\n{e!r}")
            raise

        await self._report(outcome)
        self.state_manager.record_outcome(outcome)
        return outcome

    async def _perform(
        self,
        device: DeviceRegisters,
        image_location: str,
        abort: Optional[AbortSignal],
    ) -> UpgradeOutcome:
        self.state_manager.update_status(
            stage=StageEnum.DISPATCHING,
            progress=STAGE_PROGRESS[StageEnum.DISPATCHING],
            message=f"Pushing image {image_location}",
        )
        started = self.clock()
        try:
            request = await self.dispatcher.dispatch(device, image_location)
            dispatch_result = StageResult.SUCCEEDED
        except DispatchError as e:
            await self.notifier.notify_failure(f"{DISPATCH_FAILURE_MESSAGE}\n{e}")
            request = e.request
            dispatch_result = StageResult.DISPATCH_FAILED

        dispatch_report = StageReport(
            stage=StageEnum.DISPATCHING,
            result=dispatch_result,
            elapsed=max(self.clock() - started, 0.0),
        )

        if dispatch_result == StageResult.DISPATCH_FAILED:
            if self.settings.abort_on_dispatch_failure:
                return UpgradeOutcome(
                    status=OutcomeEnum.DISPATCH_ERROR,
                    message=DISPATCH_FAILURE_MESSAGE,
                    prior_version=request.prior_version,
                    stages=[dispatch_report],
                )
            self.logger.warning(
                "Upgrade command was not accepted, validating anyway "
                "(abort_on_dispatch_failure is off)"
            )

        ctx = RunContext(
            device=device,
            request=request,
            settings=self.settings,
            clock=self.clock,
            sleep=self.sleep,
            abort=abort,
            stages=[dispatch_report],
        )
        return await self.workflow.validate(ctx)

    async def _report(self, outcome: UpgradeOutcome) -> None:
        if outcome.succeeded:
            self.logger.info(f"Software update succeeded: {outcome.message}")
            await self.notifier.notify_success()
            return

        self.logger.error(f"Software update failed: {outcome.status.value}: {outcome.message}")
        if outcome.status == OutcomeEnum.DISPATCH_ERROR:
            # already reported when the command was rejected
            return
        if outcome.status == OutcomeEnum.ABORTED:
            await self.notifier.notify_failure(ABORT_MESSAGE)
            return
        await self.notifier.notify_failure(str(error_for(outcome)))

    async def _notify_failure_best_effort(self, message: str) -> None:
        try:
            await self.notifier.notify_failure(message)
        except Exception as e:
            self.logger.error(f"Failed to report aborted run: {e}")


async def run_upgrade(
    device: DeviceRegisters,
    image_location: str,
    notifier: ProcessNotifier,
    settings: Optional[UpgradeSettings] = None,
    abort: Optional[AbortSignal] = None,
    state_manager: Optional[StateManager] = None,
) -> None:
    """Host entry point: upgrade one element and validate the result.

    Args:
        device: Element register access
        image_location: Image location to upgrade from
        notifier: Receives started/success/failure reports
        settings: Timing and register settings (defaults if None)
        abort: Optional abort signal set by the host
        state_manager: StateManager receiving progress

    Raises:
        UpgradeError: Subclass matching the failed outcome (e.g. TransitionTimeout,
            VersionMismatch, UpgradeAborted), after it was reported
    """
    runner = UpgradeRunner(notifier, settings=settings, state_manager=state_manager)
    outcome = await runner.run(device, image_location, abort=abort)
    if not outcome.succeeded:
        raise error_for(outcome)
