"""Process reporting to the orchestration layer."""

import logging
from typing import Optional, Protocol

import httpx

from swupgrade.api.models import ReportPayload
from swupgrade.models.status import NotifyEvent


class ProcessNotifier(Protocol):
    """Fire-and-forget reporting of one upgrade process."""

    async def notify_started(self) -> None: ...

    async def notify_success(self) -> None: ...

    async def notify_failure(self, message: str) -> None: ...


class ReportService:
    """Posts process events to the orchestrator."""

    def __init__(
        self,
        orchestrator_url: str = "http://localhost:9090",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize report service.

        Args:
            orchestrator_url: Base URL of the orchestration layer (default: http://localhost:9090)
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (tests use ASGITransport)
        """
        self.logger = logging.getLogger("swupgrade.reporter")
        self.orchestrator_url = orchestrator_url
        self.report_endpoint = f"{orchestrator_url}/api/v1.0/upgrade/report"
        self.timeout = timeout
        self._transport = transport

    async def notify_started(self) -> None:
        await self.report(NotifyEvent.STARTED, "Software update started")

    async def notify_success(self) -> None:
        await self.report(NotifyEvent.SUCCESS, "Software update succeeded")

    async def notify_failure(self, message: str) -> None:
        await self.report(NotifyEvent.FAILED, "Software update failed", error=message)

    async def report(
        self,
        event: NotifyEvent,
        message: str,
        error: Optional[str] = None,
    ) -> None:
        """Send a process report to the orchestrator.

        Args:
            event: Process event
            message: Human-readable status description
            error: Failure description if event == failed

        Note:
            Failures are logged but not raised to avoid blocking the upgrade run
        """
        payload = ReportPayload(event=event, message=message, error=error)

        self.logger.debug(f"Reporting to orchestrator: event={event.value}")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.report_endpoint,
                    json=payload.model_dump(mode="json"),
                )
                response.raise_for_status()
                self.logger.debug("Report sent successfully")

        except httpx.HTTPError as e:
            self.logger.warning(
                f"Failed to report {event.value} to orchestrator: {e}. "
                f"Continuing upgrade run..."
            )
        except Exception as e:
            self.logger.error(
                f"Unexpected error reporting to orchestrator: {e}",
                exc_info=True,
            )
