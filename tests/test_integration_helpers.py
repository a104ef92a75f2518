"""Tests for label resolution, published values, config and service helpers."""

import pytest
import voluptuous as vol

from custom_components.extron_dxp import _validate_model, _validate_reconnect_interval
from custom_components.extron_dxp.api import CommandError
from custom_components.extron_dxp.config_flow import ConfigFlow, build_labels_schema
from custom_components.extron_dxp.const import (
    DXP_MODELS,
    get_input_label,
    get_model_info,
    get_output_label,
)
from custom_components.extron_dxp.coordinator import ExtronDXPCoordinator, build_variables
from custom_components.extron_dxp.services import (
    SCHEMA_FRONT_PANEL_LOCK,
    SCHEMA_PRESET,
    SCHEMA_SET_VOLUME,
    SERVICE_FRONT_PANEL_LOCK,
    SERVICE_MUTE_OUTPUT,
    SERVICE_RESET_DEVICE,
    SERVICE_ROUTE_INPUT_OUTPUT,
    SERVICE_SET_VOLUME,
    SERVICES,
)


class TestModels:
    @pytest.mark.parametrize(
        "model,inputs,outputs",
        [("dxp44", 4, 4), ("dxp66", 6, 6), ("dxp84", 8, 4), ("dxp88", 8, 8),
         ("dxp1212", 12, 12), ("dxp1616", 16, 16)],
    )
    def test_dimensions(self, model, inputs, outputs):
        info = get_model_info(model)
        assert (info["inputs"], info["outputs"]) == (inputs, outputs)

    def test_unknown_model_falls_back_to_8x8(self):
        assert get_model_info("dxp99")["name"] == "DXP 88 HD 4K Plus"
        assert get_model_info(None)["inputs"] == 8

    def test_labels(self):
        config = {"input_2_label": "Laptop", "output_1_label": ""}
        assert get_input_label(config, 2) == "Laptop"
        assert get_input_label(config, 3) == "Input 3"
        assert get_output_label(config, 1) == "Output 1"


class TestBuildVariables:
    def test_published_values(self, client):
        client.handle_line("Out01 In02")
        client.handle_line("Out03 In02")
        client.handle_line("DXP 44 HD 4K Plus")

        variables = build_variables(client.to_dict(), {"input_2_label": "Laptop"})

        assert variables["connection_status"] == "Disconnected"
        assert variables["device_model"] == "DXP 44 HD 4K Plus"
        assert variables["device_version"] == "Unknown"
        assert variables["device_serial"] == "Unknown"
        assert variables["output_1_source"] == "Laptop"
        assert variables["output_2_source"] == "None"
        assert variables["output_3_source"] == "Laptop"
        assert variables["input_2_usage_count"] == 2
        assert variables["input_1_usage_count"] == 0
        assert variables["total_active_routes"] == 2
        assert variables["disconnected_outputs"] == 2
        assert variables["matrix_size"] == "4x4"

    def test_variables_follow_model(self, client):
        client.set_model("dxp1616")
        variables = build_variables(client.to_dict(), {})

        assert "output_16_source" in variables
        assert "input_16_usage_count" in variables
        assert variables["disconnected_outputs"] == 16

    def test_connected_status(self, connected_client):
        variables = build_variables(connected_client.to_dict(), {})
        assert variables["connection_status"] == "Connected"


class TestConfigValidation:
    def test_reconnect_interval(self):
        assert _validate_reconnect_interval(2500, "entry") == 2500
        assert _validate_reconnect_interval(10, "entry") == 1000
        assert _validate_reconnect_interval(60000, "entry") == 30000
        assert _validate_reconnect_interval(0, "entry") == 5000
        assert _validate_reconnect_interval(None, "entry") == 5000
        assert _validate_reconnect_interval("abc", "entry") == 5000

    def test_model(self):
        assert _validate_model("dxp1212", "entry") == "dxp1212"
        assert _validate_model("bogus", "entry") == "dxp88"

    @pytest.mark.parametrize("model", list(DXP_MODELS))
    def test_label_form_matches_model(self, model):
        info = DXP_MODELS[model]
        schema = build_labels_schema(model, {})
        assert len(schema.schema) == info["inputs"] + info["outputs"]

    def test_label_form_defaults(self):
        schema = build_labels_schema("dxp44", {"input_1_label": "Camera"})
        assert schema({}) == {
            "input_1_label": "Camera",
            "input_2_label": "Input 2",
            "input_3_label": "Input 3",
            "input_4_label": "Input 4",
            "output_1_label": "Output 1",
            "output_2_label": "Output 2",
            "output_3_label": "Output 3",
            "output_4_label": "Output 4",
        }


class TestServiceActions:
    def _run(self, service, api, **data):
        _, action = SERVICES[service]
        action(api, data)

    def test_route(self, connected_client, transport):
        self._run(SERVICE_ROUTE_INPUT_OUTPUT, connected_client, input=4, output=1)
        assert transport.commands == ["4*1!\r\n"]

    def test_route_out_of_range(self, connected_client):
        with pytest.raises(CommandError):
            self._run(SERVICE_ROUTE_INPUT_OUTPUT, connected_client, input=9, output=1)

    def test_reset_requires_confirmation(self, connected_client, transport):
        self._run(SERVICE_RESET_DEVICE, connected_client, confirm=False)
        assert transport.written == []

        self._run(SERVICE_RESET_DEVICE, connected_client, confirm=True)
        assert transport.commands == ["1Z\r\n"]

    def test_lock_volume_and_mute(self, connected_client, transport):
        self._run(SERVICE_FRONT_PANEL_LOCK, connected_client, lock="lock")
        self._run(SERVICE_FRONT_PANEL_LOCK, connected_client, lock="unlock")
        self._run(SERVICE_SET_VOLUME, connected_client, output=2, volume=100)
        self._run(SERVICE_MUTE_OUTPUT, connected_client, output=2, mute="mute")

        assert transport.commands == ["1X\r\n", "0X\r\n", "64*2V\r\n", "2*Z\r\n"]

    def test_schemas(self):
        assert SCHEMA_SET_VOLUME({"output": 1})["volume"] == 50
        assert SCHEMA_FRONT_PANEL_LOCK({})["lock"] == "unlock"
        with pytest.raises(vol.Invalid):
            SCHEMA_PRESET({"preset": 33})
        with pytest.raises(vol.Invalid):
            SCHEMA_SET_VOLUME({"output": 1, "volume": 101})


class TestFlowAndRefresh:
    def test_config_flow_has_no_yaml_import(self):
        assert "async_step_import" not in ConfigFlow.__dict__

    def test_refresh_only_requests_routing_status(self, connected_client, transport):
        coordinator = ExtronDXPCoordinator.__new__(ExtronDXPCoordinator)
        coordinator.api = connected_client

        coordinator.request_device_refresh()

        assert transport.commands == ["0*!\r\n"]
