"""Element register access through the device-api."""

import logging
from typing import Any, Optional, Protocol

import httpx

from swupgrade.exceptions import DeviceCommunicationError


class DeviceRegisters(Protocol):
    """Keyed read/write access to a managed element.

    Owned by the host for the duration of one run; the workflow only borrows it.
    Both methods may raise DeviceCommunicationError.
    """

    async def get(self, key: int) -> Any: ...

    async def set(self, key: int, value: Any) -> None: ...


class HttpDeviceRegisters:
    """DeviceRegisters backed by the device-api parameter endpoints.

    GET/PUT {base}/api/v1.0/elements/{agent_id}/{element_id}/parameters/{pid}
    with responses shaped {"code": 200, "msg": "...", "data": {"value": ...}}.
    """

    def __init__(
        self,
        base_url: str,
        agent_id: int,
        element_id: int,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize register adapter.

        Args:
            base_url: Base URL of device-api (e.g. http://localhost:9080)
            agent_id: Agent hosting the element
            element_id: Element id within the agent
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (tests use MockTransport/ASGITransport)
        """
        self.logger = logging.getLogger("swupgrade.device")
        self.base_url = base_url.rstrip("/")
        self.agent_id = agent_id
        self.element_id = element_id
        self.timeout = timeout
        self._transport = transport
        self.parameters_url = (
            f"{self.base_url}/api/v1.0/elements/{agent_id}/{element_id}/parameters"
        )

    async def get(self, key: int) -> Any:
        """Read a parameter value.

        Raises:
            DeviceCommunicationError: If the element cannot be reached or rejects the read
        """
        data = await self._request("GET", key)
        if not isinstance(data, dict) or "value" not in data:
            raise DeviceCommunicationError(
                f"Parameter {key} response has no value: {data!r}", register=key
            )
        self.logger.debug(f"Read parameter {key} = {data['value']!r}")
        return data["value"]

    async def set(self, key: int, value: Any) -> None:
        """Write a parameter value.

        Raises:
            DeviceCommunicationError: If the element cannot be reached or rejects the value
        """
        self.logger.debug(f"Writing parameter {key} = {value!r}")
        await self._request("PUT", key, {"value": value})

    async def _request(self, method: str, key: int, payload: Optional[dict] = None) -> Any:
        url = f"{self.parameters_url}/{key}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, json=payload)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            raise DeviceCommunicationError(
                f"{method} parameter {key} failed: {e}", register=key
            ) from e
        except ValueError as e:
            raise DeviceCommunicationError(
                f"{method} parameter {key} returned invalid JSON: {e}", register=key
            ) from e

        code = body.get("code") if isinstance(body, dict) else None
        if code != 200:
            msg = body.get("msg") if isinstance(body, dict) else body
            raise DeviceCommunicationError(
                f"{method} parameter {key} rejected: code={code}, msg={msg}",
                register=key,
            )
        return body.get("data")
