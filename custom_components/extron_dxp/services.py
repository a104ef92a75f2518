"""
Extron DXP Services
Servicios para enrutamiento, presets, bloqueo y audio del switcher.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict

import voluptuous as vol

from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import HomeAssistantError
import homeassistant.helpers.config_validation as cv

from .api import CommandError, ExtronDXPClient
from .const import DOMAIN, MAX_PRESET, MIN_PRESET

_LOGGER = logging.getLogger(__name__)

ATTR_CONFIG_ENTRY_ID = "config_entry_id"
ATTR_INPUT = "input"
ATTR_OUTPUT = "output"
ATTR_PRESET = "preset"
ATTR_CONFIRM = "confirm"
ATTR_LOCK = "lock"
ATTR_VOLUME = "volume"
ATTR_MUTE = "mute"

SERVICE_ROUTE_INPUT_OUTPUT = "route_input_output"
SERVICE_ROUTE_INPUT_ALL = "route_input_all"
SERVICE_DISCONNECT_OUTPUT = "disconnect_output"
SERVICE_SAVE_PRESET = "save_preset"
SERVICE_RECALL_PRESET = "recall_preset"
SERVICE_GET_DEVICE_INFO = "get_device_info"
SERVICE_GET_ROUTING_STATUS = "get_routing_status"
SERVICE_RESET_DEVICE = "reset_device"
SERVICE_FRONT_PANEL_LOCK = "front_panel_lock"
SERVICE_SET_VOLUME = "set_volume"
SERVICE_MUTE_OUTPUT = "mute_output"

# Esquemas de validación para servicios
_BASE = {vol.Optional(ATTR_CONFIG_ENTRY_ID): cv.string}

SCHEMA_ROUTE_INPUT_OUTPUT = vol.Schema({
    **_BASE,
    vol.Required(ATTR_INPUT): cv.positive_int,
    vol.Required(ATTR_OUTPUT): cv.positive_int,
})

SCHEMA_ROUTE_INPUT_ALL = vol.Schema({
    **_BASE,
    vol.Required(ATTR_INPUT): cv.positive_int,
})

SCHEMA_DISCONNECT_OUTPUT = vol.Schema({
    **_BASE,
    vol.Required(ATTR_OUTPUT): cv.positive_int,
})

SCHEMA_PRESET = vol.Schema({
    **_BASE,
    vol.Required(ATTR_PRESET): vol.All(
        vol.Coerce(int),
        vol.Range(min=MIN_PRESET, max=MAX_PRESET)
    ),
})

SCHEMA_NO_ARGS = vol.Schema(_BASE)

SCHEMA_RESET_DEVICE = vol.Schema({
    **_BASE,
    vol.Optional(ATTR_CONFIRM, default=False): cv.boolean,
})

SCHEMA_FRONT_PANEL_LOCK = vol.Schema({
    **_BASE,
    vol.Required(ATTR_LOCK, default="unlock"): vol.In(["lock", "unlock"]),
})

SCHEMA_SET_VOLUME = vol.Schema({
    **_BASE,
    vol.Required(ATTR_OUTPUT): cv.positive_int,
    vol.Required(ATTR_VOLUME, default=50): vol.All(
        vol.Coerce(float),
        vol.Range(min=0, max=100)
    ),
})

SCHEMA_MUTE_OUTPUT = vol.Schema({
    **_BASE,
    vol.Required(ATTR_OUTPUT): cv.positive_int,
    vol.Required(ATTR_MUTE, default="mute"): vol.In(["mute", "unmute"]),
})


def _route_input_output(api: ExtronDXPClient, data: Dict[str, Any]) -> None:
    api.route(data[ATTR_INPUT], data[ATTR_OUTPUT])


def _route_input_all(api: ExtronDXPClient, data: Dict[str, Any]) -> None:
    api.route_to_all(data[ATTR_INPUT])


def _disconnect_output(api: ExtronDXPClient, data: Dict[str, Any]) -> None:
    api.disconnect_output(data[ATTR_OUTPUT])


def _save_preset(api: ExtronDXPClient, data: Dict[str, Any]) -> None:
    api.save_preset(data[ATTR_PRESET])


def _recall_preset(api: ExtronDXPClient, data: Dict[str, Any]) -> None:
    api.recall_preset(data[ATTR_PRESET])


def _get_device_info(api: ExtronDXPClient, data: Dict[str, Any]) -> None:
    api.request_device_info()


def _get_routing_status(api: ExtronDXPClient, data: Dict[str, Any]) -> None:
    api.request_routing_status()


def _reset_device(api: ExtronDXPClient, data: Dict[str, Any]) -> None:
    if not data.get(ATTR_CONFIRM):
        _LOGGER.warning("reset_device ignorado: falta confirm=true")
        return
    api.reset_device()


def _front_panel_lock(api: ExtronDXPClient, data: Dict[str, Any]) -> None:
    api.set_front_panel_lock(data[ATTR_LOCK] == "lock")


def _set_volume(api: ExtronDXPClient, data: Dict[str, Any]) -> None:
    api.set_volume(data[ATTR_OUTPUT], data[ATTR_VOLUME])


def _mute_output(api: ExtronDXPClient, data: Dict[str, Any]) -> None:
    api.set_mute(data[ATTR_OUTPUT], data[ATTR_MUTE] == "mute")


# servicio -> (esquema, acción)
SERVICES: Dict[str, tuple[vol.Schema, Callable[[ExtronDXPClient, Dict[str, Any]], None]]] = {
    SERVICE_ROUTE_INPUT_OUTPUT: (SCHEMA_ROUTE_INPUT_OUTPUT, _route_input_output),
    SERVICE_ROUTE_INPUT_ALL: (SCHEMA_ROUTE_INPUT_ALL, _route_input_all),
    SERVICE_DISCONNECT_OUTPUT: (SCHEMA_DISCONNECT_OUTPUT, _disconnect_output),
    SERVICE_SAVE_PRESET: (SCHEMA_PRESET, _save_preset),
    SERVICE_RECALL_PRESET: (SCHEMA_PRESET, _recall_preset),
    SERVICE_GET_DEVICE_INFO: (SCHEMA_NO_ARGS, _get_device_info),
    SERVICE_GET_ROUTING_STATUS: (SCHEMA_NO_ARGS, _get_routing_status),
    SERVICE_RESET_DEVICE: (SCHEMA_RESET_DEVICE, _reset_device),
    SERVICE_FRONT_PANEL_LOCK: (SCHEMA_FRONT_PANEL_LOCK, _front_panel_lock),
    SERVICE_SET_VOLUME: (SCHEMA_SET_VOLUME, _set_volume),
    SERVICE_MUTE_OUTPUT: (SCHEMA_MUTE_OUTPUT, _mute_output),
}


async def async_setup_services(hass: HomeAssistant) -> None:
    """
    Registra los servicios de la integración.

    Args:
        hass: Instancia de Home Assistant
    """
    _LOGGER.debug("Registrando servicios de %s", DOMAIN)

    async def handle_service(call: ServiceCall) -> None:
        """
        Ejecuta la acción asociada al servicio llamado.

        Args:
            call: Llamada al servicio
        """
        _, action = SERVICES[call.service]

        entry_data = _get_entry_data(hass, call.data.get(ATTR_CONFIG_ENTRY_ID))

        if not entry_data:
            raise HomeAssistantError(
                "No Extron DXP integration found. "
                "Please add the integration first."
            )

        api: ExtronDXPClient = entry_data["api"]

        _LOGGER.info("Servicio %s llamado: %s", call.service, dict(call.data))

        try:
            action(api, dict(call.data))
        except CommandError as err:
            _LOGGER.error("Error en servicio %s: %s", call.service, err)
            raise HomeAssistantError(str(err)) from err

    for service, (schema, _) in SERVICES.items():
        hass.services.async_register(DOMAIN, service, handle_service, schema=schema)

    _LOGGER.info("Servicios registrados: %s", ", ".join(SERVICES))


async def async_unload_services(hass: HomeAssistant) -> None:
    """
    Elimina los servicios cuando se descarga la integración.

    Args:
        hass: Instancia de Home Assistant
    """
    _LOGGER.debug("Eliminando servicios de %s", DOMAIN)

    for service in SERVICES:
        hass.services.async_remove(DOMAIN, service)

    _LOGGER.info("Servicios eliminados")


def _get_entry_data(hass: HomeAssistant, entry_id: str | None = None) -> Dict[str, Any] | None:
    """
    Obtiene los datos de una entrada de configuración.

    Args:
        hass: Instancia de Home Assistant
        entry_id: Entrada pedida; si es None se usa la primera

    Returns:
        Diccionario con datos de la entrada o None si no existe
    """
    domain_data = hass.data.get(DOMAIN, {})

    if not domain_data:
        return None

    if entry_id is not None:
        return domain_data.get(entry_id)

    # Retornar la primera entrada disponible
    for entry_data in domain_data.values():
        return entry_data

    return None
