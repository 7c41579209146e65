"""API route handlers for upgrade endpoints."""

import asyncio
import logging

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse

from swupgrade.api.models import (
    UpgradeRunRequest,
    ProgressResponse,
    SuccessResponse,
    ErrorResponse,
)
from swupgrade.exceptions import UpgradeError
from swupgrade.models.status import STAGE_PROGRESS, StageEnum
from swupgrade.services.device import HttpDeviceRegisters
from swupgrade.services.reporter import ReportService
from swupgrade.services.runner import run_upgrade

router = APIRouter(prefix="/api/v1.0")

logger = logging.getLogger("swupgrade.api")


@router.get("/progress", response_model=ProgressResponse)
async def get_progress(request: Request):
    """GET /api/v1.0/progress - Query current upgrade run status.

    Response format (success):
        {
            "code": 200,
            "msg": "success",
            "data": {
                "stage": "awaitingRecovery",
                "progress": 50,
                "message": "awaitingRecovery (window 300.0s)",
                "error": null,
                "outcome": null
            }
        }

    Response format (failed stage):
        {
            "code": 500,
            "msg": "Upgrade failed: transitionTimeout: Element never entered ...",
            "data": {...},
            "stage": "failed",
            "progress": 0
        }
    """
    status = request.app.state.state_manager.get_status()

    if status.stage.value == "failed":
        msg = f"Upgrade failed: {status.error}" if status.error else "Upgrade failed"
        return ProgressResponse(
            code=500,
            msg=msg,
            data=status,
            stage=status.stage,
            progress=status.progress,
        )
    return ProgressResponse(code=200, msg="success", data=status)


@router.post("/upgrade", response_model=SuccessResponse)
async def post_upgrade(
    body: UpgradeRunRequest, request: Request, background_tasks: BackgroundTasks
):
    """POST /api/v1.0/upgrade - Start an upgrade run in the background.

    Only one run may be active; a second request returns code 409. A new
    run clears the outcome of the previous one.
    """
    state = request.app.state
    state_manager = state.state_manager
    current_status = state_manager.get_status()

    # Check if a run is already in progress
    if state_manager.is_busy():
        return JSONResponse(
            status_code=200,
            content=ErrorResponse(
                code=409,
                msg=f"Upgrade already in progress: {current_status.stage.value}",
                stage=current_status.stage,
                progress=current_status.progress,
            ).model_dump(mode="json"),
        )

    # Busy from here on, before the background task starts
    state_manager.reset()
    state_manager.update_status(
        stage=StageEnum.DISPATCHING,
        progress=STAGE_PROGRESS[StageEnum.DISPATCHING],
        message=f"Upgrade queued for element {body.agent_id}/{body.element_id}",
    )
    abort = asyncio.Event()
    state.abort_event = abort
    logger.info(
        f"Upgrade requested for element {body.agent_id}/{body.element_id}: "
        f"{body.image_location}"
    )
    background_tasks.add_task(_upgrade_workflow, state, body, abort)

    return JSONResponse(
        status_code=200,
        content={"code": 200, "msg": "success", "data": None},
    )


@router.post("/abort", response_model=SuccessResponse)
async def post_abort(request: Request):
    """POST /api/v1.0/abort - Abort the active upgrade run.

    The run stops at its next poll and is reported as aborted.
    """
    abort = request.app.state.abort_event
    if abort is None:
        return JSONResponse(
            status_code=200,
            content=ErrorResponse(code=404, msg="No upgrade in progress").model_dump(
                mode="json", exclude_none=True
            ),
        )

    abort.set()
    logger.warning("Abort requested for active upgrade run")
    return JSONResponse(
        status_code=200,
        content={"code": 200, "msg": "success", "data": None},
    )


async def _upgrade_workflow(state, body: UpgradeRunRequest, abort: asyncio.Event) -> None:
    """Background task for one upgrade run."""
    settings = state.settings
    device = HttpDeviceRegisters(
        settings.device_api_url,
        body.agent_id,
        body.element_id,
        timeout=settings.request_timeout,
    )
    notifier = ReportService(settings.orchestrator_url, timeout=settings.request_timeout)

    try:
        await run_upgrade(
            device,
            body.image_location,
            notifier,
            settings=settings,
            abort=abort,
            state_manager=state.state_manager,
        )
        logger.info(f"Upgrade run for element {body.agent_id}/{body.element_id} succeeded")
    except UpgradeError as e:
        logger.error(f"Upgrade run for element {body.agent_id}/{body.element_id} failed: {e}")
    except Exception as e:
        # Already reported and recorded by the runner
        logger.error(f"Upgrade run for element {body.agent_id}/{body.element_id} errored: {e}")
    finally:
        if state.state_manager.is_busy():
            state.state_manager.update_status(
                stage=StageEnum.FAILED,
                progress=0,
                message="Upgrade failed",
                error="UPGRADE_FAILED: run ended without an outcome",
            )
        state.abort_event = None
