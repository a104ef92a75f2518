"""Tests for the Extron DXP protocol client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from custom_components.extron_dxp.api import (
    CommandError,
    ConfigurationError,
    ConnectionError,
    ConnectionStatus,
    DXPCommand,
    ExtronDXPClient,
    MatrixState,
    StateParser,
    _DXPProtocol,
    volume_to_device,
)


class TestDXPCommand:
    def test_routing_commands(self):
        assert DXPCommand.route(2, 3) == "2*3!"
        assert DXPCommand.route_to_all(5) == "5*!"
        assert DXPCommand.disconnect_output(4) == "0*4!"

    def test_preset_commands(self):
        assert DXPCommand.save_preset(7) == "7,"
        assert DXPCommand.recall_preset(7) == "7."

    def test_lock_and_mute_commands(self):
        assert DXPCommand.front_panel(True) == "1X"
        assert DXPCommand.front_panel(False) == "0X"
        assert DXPCommand.mute(2, True) == "2*Z"
        assert DXPCommand.mute(2, False) == "2*z"

    def test_volume_command(self):
        assert DXPCommand.volume(1, 0) == "0*1V"
        assert DXPCommand.volume(1, 50) == "32*1V"
        assert DXPCommand.volume(3, 100) == "64*3V"


class TestVolumeMapping:
    @pytest.mark.parametrize(
        "volume,expected",
        [(0, 0), (1, 1), (25, 16), (39, 25), (50, 32), (75, 48), (100, 64)],
    )
    def test_linear_mapping(self, volume, expected):
        assert volume_to_device(volume) == expected

    def test_out_of_range_is_clamped(self):
        assert volume_to_device(-10) == 0
        assert volume_to_device(150) == 64


class TestMatrixState:
    def test_dimensions(self):
        matrix = MatrixState(inputs=8, outputs=4)
        assert len(matrix.routes) == 4
        assert all(len(row) == 8 for row in matrix.routes)
        assert matrix.size == "8x4"

    def test_set_route_is_exclusive(self):
        matrix = MatrixState(inputs=4, outputs=4)
        assert matrix.set_route(0, 1)
        assert matrix.set_route(0, 3)
        assert matrix.routes[0] == [0, 0, 0, 1]

    def test_set_route_out_of_range(self):
        matrix = MatrixState(inputs=4, outputs=4)
        assert not matrix.set_route(4, 0)
        assert not matrix.set_route(0, 4)
        assert not matrix.set_route(-1, 0)
        assert matrix.active_routes == 0

    def test_queries(self):
        matrix = MatrixState(inputs=4, outputs=4)
        matrix.set_route(0, 2)
        matrix.set_route(1, 2)
        matrix.set_route(3, 0)

        assert matrix.is_routed(3, 1)
        assert not matrix.is_routed(1, 1)
        assert matrix.routed_input(2) == 3
        assert matrix.routed_input(3) is None
        assert matrix.usage_count(3) == 2
        assert matrix.usage_count(2) == 0
        assert matrix.active_routes == 3
        assert matrix.disconnected_outputs == 1

    def test_out_of_range_queries(self):
        matrix = MatrixState(inputs=4, outputs=4)
        assert not matrix.is_routed(5, 1)
        assert matrix.routed_input(0) is None
        assert matrix.routed_input(9) is None
        assert matrix.usage_count(17) == 0

    def test_resize_clears_routes(self):
        matrix = MatrixState(inputs=4, outputs=4)
        matrix.set_route(0, 0)
        matrix.resize(16, 16)
        assert matrix.size == "16x16"
        assert len(matrix.routes) == 16
        assert matrix.active_routes == 0

    def test_copy_is_independent(self):
        matrix = MatrixState(inputs=4, outputs=4)
        snapshot = matrix.copy()
        matrix.set_route(0, 0)
        assert snapshot.routed_input(1) is None


class TestStateParser:
    def test_split_lines_keeps_last_segment(self):
        assert StateParser.split_lines("Out01 In02\r\n\r\nOut02 In03") == [
            "Out01 In02",
            "Out02 In03",
        ]
        assert StateParser.split_lines("\r\n  \r\n") == []

    def test_parse_route(self):
        assert StateParser.parse_route("Out02 In03") == (1, 2)
        assert StateParser.parse_route("Out12 In07 All") == (11, 6)
        assert StateParser.parse_route("Vrb3") is None
        assert StateParser.parse_route("Out In") is None


class TestResponseHandling:
    def test_route_line_updates_single_row(self, client):
        client.matrix.set_route(0, 0)
        client._on_data_received(b"Out02 In03\r\n")

        assert client.matrix.routes[1] == [0, 0, 1, 0]
        assert client.matrix.routes[0] == [1, 0, 0, 0]
        assert client.matrix.routes[2] == [0, 0, 0, 0]
        assert client.matrix.routes[3] == [0, 0, 0, 0]

    def test_new_route_clears_previous_input(self, client):
        client._on_data_received(b"Out01 In01\r\nOut01 In04\r\n")
        assert client.matrix.routes[0] == [0, 0, 0, 1]

    def test_out_of_range_route_is_ignored(self, client):
        client._on_data_received(b"Out05 In01\r\nOut01 In09\r\n")
        assert client.matrix.active_routes == 0

    def test_device_model_line(self, client):
        client._on_data_received(b"DXP 44 HD 4K Plus\r\n")
        assert client.device_info.model == "DXP 44 HD 4K Plus"
        assert client.device_info.version == ""

    def test_unrecognised_lines_are_ignored(self, client):
        assert not client.handle_line("(c) Copyright 2024, Extron Electronics")
        assert not client.handle_line("   ")
        assert client.device_info.model == ""
        assert client.matrix.active_routes == 0

    def test_route_without_terminator(self, client):
        client._on_data_received(b"Out02 In03")

        assert client.matrix.routes[1] == [0, 0, 1, 0]
        assert client.matrix.active_routes == 1

    def test_last_line_without_terminator(self, client):
        client._on_data_received(b"Out01 In01\r\nOut02 In03")

        assert client.matrix.routes[0] == [1, 0, 0, 0]
        assert client.matrix.routes[1] == [0, 0, 1, 0]

    def test_callback_runs_once_per_chunk(self, client):
        callback = MagicMock()
        client.set_change_callback(callback)

        client._on_data_received(b"Out01 In01\r\nOut02 In02\r\n\r\n")

        callback.assert_called_once()

    def test_callback_error_does_not_propagate(self, client):
        client.set_change_callback(MagicMock(side_effect=RuntimeError("boom")))
        client._on_data_received(b"Out01 In02\r\n")
        assert client.matrix.routed_input(1) == 2


class TestCommandSending:
    def test_bootstrap_commands_on_connect(self, client, transport):
        _DXPProtocol(client).connection_made(transport)

        assert client.is_connected
        assert client.status == ConnectionStatus.OK
        assert transport.commands == ["I\r\n", "0*!\r\n"]

    def test_send_when_connected(self, connected_client, transport):
        connected_client.route(2, 3)
        connected_client.set_volume(1, 50)
        connected_client.set_mute(4, False)

        assert transport.commands == ["2*3!\r\n", "32*1V\r\n", "4*z\r\n"]
        assert connected_client.pending_commands == []

    def test_send_when_disconnected_is_queued(self, client):
        client.recall_preset(3)
        client.request_routing_status()

        assert client.pending_commands == ["3.", "0*!"]

    def test_range_checks(self, connected_client, transport):
        with pytest.raises(CommandError):
            connected_client.route(5, 1)
        with pytest.raises(CommandError):
            connected_client.disconnect_output(0)
        with pytest.raises(CommandError):
            connected_client.save_preset(33)

        assert transport.written == []

    def test_set_model_resizes_matrix(self, client):
        client.matrix.set_route(0, 0)
        client.set_model("dxp84")

        assert client.input_count == 8
        assert client.output_count == 4
        assert client.matrix.active_routes == 0
        assert client.model_name == "DXP 84 HD 4K Plus"


class TestConnectionLifecycle:
    @pytest.mark.asyncio
    async def test_missing_host_is_bad_config(self):
        client = ExtronDXPClient("", 23)
        await client.async_connect()

        assert client.status == ConnectionStatus.BAD_CONFIG
        assert not client.reconnect_pending

    @pytest.mark.asyncio
    async def test_close_schedules_single_reconnect(self, connected_client):
        connected_client._on_connection_lost(None)

        assert not connected_client.is_connected
        assert connected_client.status == ConnectionStatus.DISCONNECTED
        assert connected_client.reconnect_pending

        first = connected_client._reconnect_handle
        connected_client._schedule_reconnect()

        assert first.cancelled()
        assert connected_client._reconnect_handle is not first
        await connected_client.async_disconnect()

    @pytest.mark.asyncio
    async def test_socket_error_is_connection_failure(self, connected_client):
        connected_client._on_connection_lost(OSError("reset by peer"))

        assert connected_client.status == ConnectionStatus.CONNECTION_FAILURE
        assert connected_client.status_message == "reset by peer"
        assert connected_client.reconnect_pending
        await connected_client.async_disconnect()

    @pytest.mark.asyncio
    async def test_failed_connect_schedules_reconnect(self, client, monkeypatch):
        loop = asyncio.get_running_loop()
        monkeypatch.setattr(
            loop, "create_connection", AsyncMock(side_effect=OSError("refused"))
        )

        await client.async_connect()
        assert client.status == ConnectionStatus.CONNECTION_FAILURE
        first = client._reconnect_handle
        assert first is not None

        await client.async_connect()
        assert first.cancelled()
        assert client.reconnect_pending
        await client.async_disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_stops_reconnect(self, connected_client, transport):
        await connected_client.async_disconnect()

        assert transport.closed
        assert not connected_client.is_connected
        assert not connected_client.reconnect_pending

        # a late close does not re-arm the timer
        connected_client._on_connection_lost(None)
        assert not connected_client.reconnect_pending

    @pytest.mark.asyncio
    async def test_test_connection_requires_host(self):
        with pytest.raises(ConfigurationError):
            await ExtronDXPClient(None, 23).test_connection()

    @pytest.mark.asyncio
    async def test_test_connection_refused(self, monkeypatch):
        monkeypatch.setattr(
            asyncio, "open_connection", AsyncMock(side_effect=OSError("refused"))
        )
        with pytest.raises(ConnectionError):
            await ExtronDXPClient("192.0.2.10", 23).test_connection()
