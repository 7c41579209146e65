"""Validation workflow: confirm the element went down, came back and upgraded.

Stages, strictly in order:

    awaitingTransitional → awaitingRecovery   (under the overall bound)
            → clearingCommand → confirmingVersion

Every stage polls through poll_until against the run context. The overall
deadline is passed down explicitly: a stage never waits past it.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from swupgrade.models.settings import UpgradeSettings
from swupgrade.models.status import STAGE_PROGRESS, OutcomeEnum, StageEnum, StageResult
from swupgrade.models.upgrade import StageReport, UpgradeOutcome, UpgradeRequest
from swupgrade.services.device import DeviceRegisters
from swupgrade.services.poller import AbortSignal, Clock, Predicate, Sleep, poll_until
from swupgrade.services.state_manager import StateManager


@dataclass
class RunContext:
    """Everything one run needs; created per run and discarded afterwards."""

    device: DeviceRegisters
    request: UpgradeRequest
    settings: UpgradeSettings
    clock: Clock = time.monotonic
    sleep: Sleep = asyncio.sleep
    abort: Optional[AbortSignal] = None
    overall_deadline: Optional[float] = None
    last_observed: Optional[str] = None
    stages: list[StageReport] = field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return self.abort is not None and self.abort.is_set()

    def remaining(self) -> float:
        """Seconds left against the overall deadline (inf when unset)."""
        if self.overall_deadline is None:
            return float("inf")
        return self.overall_deadline - self.clock()


class ValidationWorkflow:
    """Runs the validation stages and classifies the outcome."""

    def __init__(self, state_manager: Optional[StateManager] = None):
        """Initialize validation workflow.

        Args:
            state_manager: StateManager receiving stage progress (private one if None)
        """
        self.logger = logging.getLogger("swupgrade.workflow")
        self.state_manager = state_manager or StateManager()

    async def validate(self, ctx: RunContext) -> UpgradeOutcome:
        """Run all stages after the upgrade command was issued.

        Args:
            ctx: Run context holding the device, request and settings

        Returns:
            UpgradeOutcome tagged with the first terminal result

        Raises:
            DeviceCommunicationError: If a register read or write fails
        """
        settings = ctx.settings
        ctx.overall_deadline = ctx.clock() + settings.overall_timeout
        self.logger.info(
            f"Validating upgrade: prior version '{ctx.request.prior_version}', "
            f"overall budget {settings.overall_timeout}s"
        )

        failure = await self._await_state_cycle(ctx)
        if failure is not None:
            return failure

        if ctx.aborted:
            return self._outcome(ctx, OutcomeEnum.ABORTED, "Script aborted")

        started = ctx.clock()
        self._enter(StageEnum.CLEARING_COMMAND, "Clearing upgrade command")
        await self.clear_command(ctx)
        ctx.stages.append(
            StageReport(
                stage=StageEnum.CLEARING_COMMAND,
                result=StageResult.SUCCEEDED,
                elapsed=max(ctx.clock() - started, 0.0),
            )
        )

        confirm = await self._poll_stage(
            ctx,
            StageEnum.CONFIRMING_VERSION,
            lambda: self._version_changed(ctx),
            settings.version_confirm_timeout,
            bounded=False,
        )
        if confirm.result == StageResult.ABORTED:
            return self._outcome(ctx, OutcomeEnum.ABORTED, "Script aborted")
        if confirm.result != StageResult.SUCCEEDED:
            return self._outcome(ctx, OutcomeEnum.VERSION_MISMATCH, "Failed to update")

        return self._outcome(
            ctx,
            OutcomeEnum.SUCCESS,
            f"Upgraded from '{ctx.request.prior_version}' to '{ctx.last_observed}'",
        )

    async def clear_command(self, ctx: RunContext) -> None:
        """Return the command registers to idle. Safe to repeat."""
        registers = ctx.settings.registers
        await ctx.device.set(registers.trigger, ctx.settings.trigger_idle)
        await ctx.device.set(registers.image_location, "")
        self.logger.info("Upgrade command registers cleared")

    async def _await_state_cycle(self, ctx: RunContext) -> Optional[UpgradeOutcome]:
        """Wait for the element to go transitional and recover.

        Recovery gets up to recovery_attempts windows while the overall
        deadline allows; each attempt re-confirms the transitional state.

        Returns:
            None once the element recovered, otherwise the failure outcome
        """
        settings = ctx.settings
        attempts = settings.recovery_attempts
        recovery = None

        for attempt in range(1, attempts + 1):
            if attempt > 1:
                self.logger.warning(
                    f"Could not perform software update to the device, "
                    f"starting recovery attempt {attempt}/{attempts} "
                    f"({ctx.remaining():.0f}s left in overall budget)"
                )

            transitional = await self._poll_stage(
                ctx,
                StageEnum.AWAITING_TRANSITIONAL,
                lambda: self._is_transitional(ctx),
                settings.transition_timeout,
            )
            if transitional.result != StageResult.SUCCEEDED:
                return self._stage_failure(
                    ctx,
                    transitional,
                    OutcomeEnum.TRANSITION_TIMEOUT,
                    "Element never entered the transitional state",
                )

            recovery = await self._poll_stage(
                ctx,
                StageEnum.AWAITING_RECOVERY,
                lambda: self._has_recovered(ctx),
                settings.recovery_timeout,
            )
            if recovery.result == StageResult.SUCCEEDED:
                return None

            if recovery.result == StageResult.ABORTED or recovery.bounded_by_overall:
                break
            if ctx.remaining() <= 0:
                return self._outcome(
                    ctx,
                    OutcomeEnum.OVERALL_TIMEOUT,
                    f"Overall budget of {settings.overall_timeout}s elapsed",
                )

        return self._stage_failure(
            ctx,
            recovery,
            OutcomeEnum.RECOVERY_TIMEOUT,
            "Element did not leave the transitional state",
        )

    async def _poll_stage(
        self,
        ctx: RunContext,
        stage: StageEnum,
        predicate: Predicate,
        inner_timeout: float,
        bounded: bool = True,
    ) -> StageReport:
        """Poll one stage predicate within min(inner timeout, overall time left)."""
        window = inner_timeout
        bounded_by_overall = False
        if bounded:
            remaining = ctx.remaining()
            if remaining < inner_timeout:
                window = max(remaining, 0.0)
                bounded_by_overall = True

        self._enter(stage, f"{stage.value} (window {window:.1f}s)")
        started = ctx.clock()

        if ctx.aborted:
            succeeded = False
        else:
            succeeded = await poll_until(
                predicate,
                window,
                ctx.settings.poll_interval,
                clock=ctx.clock,
                sleep=ctx.sleep,
                abort=ctx.abort,
            )

        if succeeded:
            result = StageResult.SUCCEEDED
        elif ctx.aborted:
            result = StageResult.ABORTED
        else:
            result = StageResult.TIMED_OUT

        report = StageReport(
            stage=stage,
            result=result,
            elapsed=max(ctx.clock() - started, 0.0),
            bounded_by_overall=bounded_by_overall,
        )
        ctx.stages.append(report)
        self.logger.info(
            f"Stage {stage.value} {result.value} after {report.elapsed:.1f}s "
            f"(last value '{ctx.last_observed}')"
        )
        return report

    def _stage_failure(
        self,
        ctx: RunContext,
        report: StageReport,
        timeout_status: OutcomeEnum,
        message: str,
    ) -> UpgradeOutcome:
        if report.result == StageResult.ABORTED:
            return self._outcome(ctx, OutcomeEnum.ABORTED, "Script aborted")
        if report.bounded_by_overall:
            return self._outcome(
                ctx,
                OutcomeEnum.OVERALL_TIMEOUT,
                f"Overall budget of {ctx.settings.overall_timeout}s elapsed "
                f"during {report.stage.value}",
            )
        self.logger.warning("Could not perform software update to the device.")
        return self._outcome(ctx, timeout_status, message)

    async def _read_state(self, ctx: RunContext) -> Optional[int]:
        """Read the element state code; None when the register holds no number."""
        value = await ctx.device.get(ctx.settings.registers.element_state)
        ctx.last_observed = None if value is None else str(value)
        try:
            return int(value)
        except (TypeError, ValueError):
            # unset while the element reboots; never the transitional code
            self.logger.debug(f"Element state {value!r} is not a state code")
            return None

    async def _is_transitional(self, ctx: RunContext) -> bool:
        return await self._read_state(ctx) == ctx.settings.transitional_state_code

    async def _has_recovered(self, ctx: RunContext) -> bool:
        return await self._read_state(ctx) != ctx.settings.transitional_state_code

    async def _version_changed(self, ctx: RunContext) -> bool:
        value = await ctx.device.get(ctx.settings.registers.version)
        current = None if value is None else str(value)
        ctx.last_observed = current
        return current != ctx.request.prior_version

    def _enter(self, stage: StageEnum, message: str) -> None:
        self.logger.debug(f"Entering stage {stage.value}")
        self.state_manager.update_status(
            stage=stage, progress=STAGE_PROGRESS[stage], message=message
        )

    def _outcome(self, ctx: RunContext, status: OutcomeEnum, message: str) -> UpgradeOutcome:
        return UpgradeOutcome(
            status=status,
            message=message,
            last_observed=ctx.last_observed,
            prior_version=ctx.request.prior_version,
            stages=list(ctx.stages),
        )
