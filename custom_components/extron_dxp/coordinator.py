"""
Extron DXP Coordinator
Distribuye a las entidades el estado que el cliente recibe del switcher.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .api import ExtronDXPClient, MatrixState
from .const import DOMAIN, get_input_label, get_output_label

_LOGGER = logging.getLogger(__name__)

UNKNOWN = "Unknown"
NO_SOURCE = "None"
NO_INPUT = "No Input"


def build_variables(data: Mapping[str, Any], config: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Calcula los valores publicados a partir de una instantánea del cliente.

    Args:
        data: Instantánea devuelta por ExtronDXPClient.to_dict()
        config: Datos y opciones de la entrada (etiquetas personalizadas)

    Returns:
        Diccionario variable -> valor
    """
    device_info = data.get("device_info", {})
    matrix: MatrixState = data["matrix"]

    variables: Dict[str, Any] = {
        "connection_status": "Connected" if data.get("connected") else "Disconnected",
        "device_model": device_info.get("model") or UNKNOWN,
        "device_version": device_info.get("version") or UNKNOWN,
        "device_serial": device_info.get("serial_number") or UNKNOWN,
    }

    for output_num in range(1, matrix.outputs + 1):
        input_num = matrix.routed_input(output_num)
        if input_num is None:
            variables[f"output_{output_num}_source"] = NO_SOURCE
        else:
            variables[f"output_{output_num}_source"] = get_input_label(config, input_num)

    for input_num in range(1, matrix.inputs + 1):
        variables[f"input_{input_num}_usage_count"] = matrix.usage_count(input_num)

    variables["total_active_routes"] = matrix.active_routes
    variables["disconnected_outputs"] = matrix.disconnected_outputs
    variables["matrix_size"] = matrix.size

    return variables


class ExtronDXPCoordinator(DataUpdateCoordinator):
    """
    Coordinator que publica el estado del switcher.

    No hace polling: el cliente notifica cada cambio y el coordinador
    entrega una instantánea nueva a todas las entidades.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry: ConfigEntry,
        api: ExtronDXPClient,
    ) -> None:
        """
        Inicializa el coordinador.

        Args:
            hass: Instancia de Home Assistant
            entry: Entrada de configuración (etiquetas en data/options)
            api: Cliente del switcher
        """
        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=f"{DOMAIN}_coordinator",
            update_interval=None,
        )
        self.api = api
        self._config = {**entry.data, **entry.options}

        api.set_change_callback(self._handle_client_change)

        _LOGGER.debug("Coordinator initialized for %r", api)

    async def _async_update_data(self) -> Dict[str, Any]:
        """Devuelve el estado actual del cliente."""
        return self.api.to_dict()

    @callback
    def _handle_client_change(self) -> None:
        """Llamado por el cliente cuando cambia la conexión o la matriz."""
        self.async_set_updated_data(self.api.to_dict())

    def request_device_refresh(self) -> None:
        """
        Pide al switcher el estado de todas las rutas.

        Las respuestas llegan por el callback del cliente.
        """
        self.api.request_routing_status()

    # ========================================================================
    # CONSULTAS PARA ENTIDADES
    # ========================================================================

    @property
    def config(self) -> Mapping[str, Any]:
        return self._config

    @property
    def matrix(self) -> MatrixState:
        if self.data:
            return self.data["matrix"]
        return self.api.matrix

    @property
    def is_connected(self) -> bool:
        """Indica si hay conexión activa con el dispositivo."""
        if self.data:
            return bool(self.data.get("connected"))
        return self.api.is_connected

    @property
    def input_count(self) -> int:
        return self.matrix.inputs

    @property
    def output_count(self) -> int:
        return self.matrix.outputs

    def input_label(self, input_number: int) -> str:
        return get_input_label(self._config, input_number)

    def output_label(self, output_number: int) -> str:
        return get_output_label(self._config, output_number)

    def is_routed(self, input_number: int, output_number: int) -> bool:
        return self.matrix.is_routed(input_number, output_number)

    def get_output_input(self, output_number: int) -> Optional[int]:
        """Número de entrada enrutada a la salida, o None."""
        return self.matrix.routed_input(output_number)

    def get_output_source_label(self, output_number: int) -> str:
        """
        Texto de la fuente de una salida.

        Returns:
            Etiqueta de la entrada, "No Input" si no hay ninguna
        """
        input_num = self.get_output_input(output_number)
        if input_num is None:
            return NO_INPUT
        return self.input_label(input_num)

    def is_output_disconnected(self, output_number: int) -> bool:
        """True si la salida existe y no tiene entrada."""
        if not 1 <= output_number <= self.output_count:
            return False
        return self.get_output_input(output_number) is None

    def get_input_routing_count(self, input_number: int) -> int:
        return self.matrix.usage_count(input_number)

    def get_variables(self) -> Dict[str, Any]:
        """Valores publicados (estado, información y resumen de rutas)."""
        data = self.data or self.api.to_dict()
        return build_variables(data, self._config)

    async def async_shutdown(self) -> None:
        """Limpieza al cerrar el coordinador."""
        _LOGGER.debug("Shutting down coordinator")
        self.api.set_change_callback(None)
        await super().async_shutdown()
