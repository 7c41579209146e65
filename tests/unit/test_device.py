"""Unit tests for HttpDeviceRegisters."""

import json
import pytest
import httpx

from swupgrade.exceptions import DeviceCommunicationError
from swupgrade.services.device import HttpDeviceRegisters


def _registers(handler):
    return HttpDeviceRegisters(
        "http://device-api:9080/",
        agent_id=346,
        element_id=12,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.unit
class TestHttpDeviceRegisters:
    """Test the device-api adapter with httpx.MockTransport."""

    def test_parameters_url(self):
        """Base URL trailing slash is ignored."""
        registers = HttpDeviceRegisters("http://device-api:9080/", 346, 12)

        assert registers.parameters_url == (
            "http://device-api:9080/api/v1.0/elements/346/12/parameters"
        )

    @pytest.mark.asyncio
    async def test_get_returns_value(self):
        """GET returns data.value."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"code": 200, "msg": "success", "data": {"value": "17.9.4"}})

        value = await _registers(handler).get(5)

        assert value == "17.9.4"
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/api/v1.0/elements/346/12/parameters/5"

    @pytest.mark.asyncio
    async def test_set_puts_value(self):
        """PUT sends {"value": ...}."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"code": 200, "msg": "success", "data": None})

        await _registers(handler).set(9901007, 1)

        assert seen[0].method == "PUT"
        assert seen[0].url.path.endswith("/parameters/9901007")
        assert json.loads(seen[0].content) == {"value": 1}

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self):
        """Non-2xx HTTP status is a communication error."""
        registers = _registers(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(DeviceCommunicationError) as exc_info:
            await registers.get(65008)

        assert exc_info.value.register == 65008

    @pytest.mark.asyncio
    async def test_application_error_code_raises(self):
        """A rejected write (code != 200) is a communication error."""
        registers = _registers(
            lambda request: httpx.Response(200, json={"code": 400, "msg": "read-only parameter"})
        )

        with pytest.raises(DeviceCommunicationError, match="read-only parameter"):
            await registers.set(9901008, "img")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        """Connection failures are wrapped."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DeviceCommunicationError, match="connection refused"):
            await _registers(handler).get(5)

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        """A non-JSON body is wrapped."""
        registers = _registers(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(DeviceCommunicationError, match="invalid JSON"):
            await registers.get(5)

    @pytest.mark.asyncio
    async def test_missing_value_raises(self):
        """A read without data.value is a communication error."""
        registers = _registers(
            lambda request: httpx.Response(200, json={"code": 200, "msg": "success", "data": None})
        )

        with pytest.raises(DeviceCommunicationError, match="no value"):
            await registers.get(5)
