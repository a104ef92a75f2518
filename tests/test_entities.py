"""Tests for the entity platforms and the service handler."""

import json
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.device_registry import DeviceInfo

from custom_components.extron_dxp.binary_sensor import (
    ExtronDXPConnectionSensor,
    ExtronDXPOutputDisconnectedSensor,
)
from custom_components.extron_dxp.const import DOMAIN, MAX_PORTS, input_label_key, output_label_key
from custom_components.extron_dxp.coordinator import ExtronDXPCoordinator
from custom_components.extron_dxp.select import ExtronDXPInputSelector
from custom_components.extron_dxp.sensor import ExtronDXPOutputSourceSensor
from custom_components.extron_dxp.services import (
    SERVICE_DISCONNECT_OUTPUT,
    SERVICE_ROUTE_INPUT_OUTPUT,
    async_setup_services,
)

DEVICE = DeviceInfo(identifiers={(DOMAIN, "entry")})

LABELS = {
    "input_1_label": "Camera",
    "input_2_label": "Camera",
    "input_3_label": "No Input",
    "output_1_label": "Projector",
}


def make_coordinator(api, config=None):
    """Coordinator bound to a client without a running Home Assistant."""
    coordinator = ExtronDXPCoordinator.__new__(ExtronDXPCoordinator)
    coordinator.api = api
    coordinator._config = dict(config or {})
    coordinator.data = None
    return coordinator


def make_selector(coordinator, output_number=1):
    return ExtronDXPInputSelector(
        coordinator=coordinator,
        entry_id="entry",
        output_number=output_number,
        device_info=DEVICE,
    )


class TestInputSelector:
    def test_options_disambiguate_repeated_labels(self, client):
        selector = make_selector(make_coordinator(client, LABELS))

        assert selector.options == [
            "Camera",
            "Camera (2)",
            "No Input (3)",
            "Input 4",
            "No Input",
        ]
        assert selector.name == "Projector Input"

    def test_current_option_follows_matrix(self, client):
        selector = make_selector(make_coordinator(client, LABELS))
        assert selector.current_option == "No Input"

        client.handle_line("Out01 In02")
        assert selector.current_option == "Camera (2)"
        assert selector.extra_state_attributes["input_number"] == 2

    @pytest.mark.asyncio
    async def test_select_input_sends_route(self, connected_client, transport):
        selector = make_selector(make_coordinator(connected_client, LABELS), output_number=3)

        await selector.async_select_option("Camera (2)")
        await selector.async_select_option("Input 4")

        assert transport.commands == ["2*3!\r\n", "4*3!\r\n"]

    @pytest.mark.asyncio
    async def test_select_no_input_disconnects(self, connected_client, transport):
        selector = make_selector(make_coordinator(connected_client, LABELS), output_number=2)

        await selector.async_select_option("No Input")

        assert transport.commands == ["0*2!\r\n"]

    @pytest.mark.asyncio
    async def test_unknown_option_is_rejected(self, connected_client, transport):
        selector = make_selector(make_coordinator(connected_client))

        with pytest.raises(HomeAssistantError):
            await selector.async_select_option("Laptop")
        assert transport.written == []


class TestAvailability:
    def test_entities_unavailable_while_disconnected(self, client):
        coordinator = make_coordinator(client)

        assert not make_selector(coordinator).available
        assert not ExtronDXPOutputSourceSensor(coordinator, "entry", 1, DEVICE).available
        assert not ExtronDXPOutputDisconnectedSensor(coordinator, "entry", 1, DEVICE).available

        connection = ExtronDXPConnectionSensor(coordinator, "entry", DEVICE)
        assert connection.available
        assert connection.is_on is False

    def test_entities_available_when_connected(self, connected_client):
        coordinator = make_coordinator(connected_client)
        connected_client.handle_line("Out02 In04")

        source = ExtronDXPOutputSourceSensor(coordinator, "entry", 2, DEVICE)
        disconnected = ExtronDXPOutputDisconnectedSensor(coordinator, "entry", 1, DEVICE)

        assert source.available
        assert source.native_value == "Input 4"
        assert disconnected.available
        assert disconnected.is_on is True
        assert ExtronDXPConnectionSensor(coordinator, "entry", DEVICE).is_on is True


class TestServiceHandler:
    async def _handlers(self, domain_data):
        hass = MagicMock()
        hass.data = {DOMAIN: domain_data}
        await async_setup_services(hass)
        return {
            call.args[1]: call.args[2]
            for call in hass.services.async_register.call_args_list
        }

    @pytest.mark.asyncio
    async def test_command_error_becomes_home_assistant_error(self, connected_client, transport):
        handlers = await self._handlers({"entry": {"api": connected_client}})
        call = SimpleNamespace(
            service=SERVICE_ROUTE_INPUT_OUTPUT, data={"input": 9, "output": 1}
        )

        with pytest.raises(HomeAssistantError):
            await handlers[SERVICE_ROUTE_INPUT_OUTPUT](call)
        assert transport.written == []

    @pytest.mark.asyncio
    async def test_targets_requested_entry(self, connected_client, transport):
        other = MagicMock()
        handlers = await self._handlers(
            {"first": {"api": other}, "second": {"api": connected_client}}
        )
        call = SimpleNamespace(
            service=SERVICE_DISCONNECT_OUTPUT,
            data={"config_entry_id": "second", "output": 4},
        )

        await handlers[SERVICE_DISCONNECT_OUTPUT](call)

        assert transport.commands == ["0*4!\r\n"]
        other.disconnect_output.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_entry_configured(self):
        handlers = await self._handlers({})
        call = SimpleNamespace(service=SERVICE_DISCONNECT_OUTPUT, data={"output": 1})

        with pytest.raises(HomeAssistantError):
            await handlers[SERVICE_DISCONNECT_OUTPUT](call)


def test_label_fields_have_names():
    path = Path(__file__).parent.parent / "custom_components" / "extron_dxp" / "translations" / "en.json"
    strings = json.loads(path.read_text(encoding="utf-8"))
    fields = strings["options"]["step"]["labels"]["data"]

    for number in range(1, MAX_PORTS + 1):
        assert input_label_key(number) in fields
        assert output_label_key(number) in fields
