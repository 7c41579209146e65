"""Integration tests: full run over HTTP against the mock device-api.

HttpDeviceRegisters and ReportService talk to the mock app in-process
through httpx.ASGITransport; time is driven by the fake clock.
"""

import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "fixtures" / "mocks"))

from device_api_server import ElementSimulator, create_app  # noqa: E402

from swupgrade.models.settings import UpgradeSettings  # noqa: E402
from swupgrade.models.status import OutcomeEnum, StageEnum, StageResult  # noqa: E402
from swupgrade.services.device import HttpDeviceRegisters  # noqa: E402
from swupgrade.services.reporter import ReportService  # noqa: E402
from swupgrade.services.runner import UpgradeRunner  # noqa: E402
from swupgrade.services.state_manager import StateManager  # noqa: E402

IMAGE = "tftp://10.0.0.5/images/cat9k-17.9.4.bin"


def _wire(simulator, settings, clock):
    app = create_app(simulator)
    transport = httpx.ASGITransport(app=app)
    device = HttpDeviceRegisters("http://device-api:9080", 346, 12, transport=transport)
    notifier = ReportService("http://orchestrator:9090", transport=transport)
    state_manager = StateManager()
    runner = UpgradeRunner(
        notifier,
        settings=settings,
        state_manager=state_manager,
        clock=clock,
        sleep=clock.sleep,
    )
    return app, device, runner, state_manager


@pytest.mark.integration
class TestUpgradeOverHttp:

    @pytest.mark.asyncio
    async def test_successful_upgrade(self, fake_clock, settings, registers):
        simulator = ElementSimulator(version="1.0", target_version="1.1")
        app, device, runner, state_manager = _wire(simulator, settings, fake_clock)

        outcome = await runner.run(device, IMAGE)

        assert outcome.status == OutcomeEnum.SUCCESS
        assert outcome.prior_version == "1.0"
        assert outcome.last_observed == "1.1"
        assert simulator.writes == [
            (registers.image_location, IMAGE),
            (registers.trigger, 1),
            (registers.trigger, 0),
            (registers.image_location, ""),
        ]
        assert [r["event"] for r in app.state.reports] == ["started", "success"]
        assert state_manager.get_status().stage == StageEnum.SUCCESS

    @pytest.mark.asyncio
    async def test_version_unchanged_is_mismatch(self, fake_clock, settings):
        simulator = ElementSimulator(version="1.0", target_version=None)
        app, device, runner, _ = _wire(simulator, settings, fake_clock)

        outcome = await runner.run(device, IMAGE)

        assert outcome.status == OutcomeEnum.VERSION_MISMATCH
        assert outcome.last_observed == "1.0"
        reports = app.state.reports
        assert [r["event"] for r in reports] == ["started", "failed"]
        assert "Failed to update" in reports[-1]["error"]
        assert "'1.0'" in reports[-1]["error"]

    @pytest.mark.asyncio
    async def test_rejected_trigger_ends_run_when_fatal(self, fake_clock, registers):
        settings = UpgradeSettings(abort_on_dispatch_failure=True)
        simulator = ElementSimulator()
        simulator.rejected.add(registers.trigger)
        app, device, runner, state_manager = _wire(simulator, settings, fake_clock)

        outcome = await runner.run(device, IMAGE)

        assert outcome.status == OutcomeEnum.DISPATCH_ERROR
        assert outcome.stages[0].result == StageResult.DISPATCH_FAILED
        assert simulator.writes == [(registers.image_location, IMAGE)]
        reports = app.state.reports
        assert [r["event"] for r in reports] == ["started", "failed"]
        assert reports[-1]["error"].startswith(
            "Failed to issue software update command to element"
        )
        assert "rejected" in reports[-1]["error"]
        assert state_manager.get_status().stage == StageEnum.FAILED
