"""
Extron DXP Binary Sensors
Estado de la conexión y salidas sin entrada.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, MANUFACTURER
from .coordinator import ExtronDXPCoordinator

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback
) -> None:
    """Configura los sensores binarios de la integración."""
    coordinator: ExtronDXPCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    device_info = _create_device_info(entry, coordinator)

    sensors = [
        ExtronDXPConnectionSensor(
            coordinator=coordinator,
            entry_id=entry.entry_id,
            device_info=device_info
        )
    ]

    for output_num in range(1, coordinator.output_count + 1):
        sensors.append(
            ExtronDXPOutputDisconnectedSensor(
                coordinator=coordinator,
                entry_id=entry.entry_id,
                output_number=output_num,
                device_info=device_info
            )
        )

    async_add_entities(sensors)

    _LOGGER.info(
        "Creados %d sensores binarios (entry: %s)",
        len(sensors),
        entry.entry_id
    )


class ExtronDXPConnectionSensor(CoordinatorEntity, BinarySensorEntity):
    """Indica si hay conexión TCP con el switcher."""

    _attr_has_entity_name = True
    _attr_name = "Connection Status"
    _attr_device_class = BinarySensorDeviceClass.CONNECTIVITY
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    def __init__(
        self,
        coordinator: ExtronDXPCoordinator,
        entry_id: str,
        device_info: DeviceInfo
    ) -> None:
        super().__init__(coordinator)

        self._attr_unique_id = f"{entry_id}_connection_status"
        self._attr_device_info = device_info

    @property
    def is_on(self) -> bool:
        return self.coordinator.is_connected

    @property
    def available(self) -> bool:
        # Siempre disponible: informa también de la desconexión
        return True

    @property
    def extra_state_attributes(self) -> Dict[str, Any]:
        """Estado detallado del cliente."""
        data = self.coordinator.data or {}
        return {
            "status": data.get("status"),
            "status_message": data.get("status_message"),
            "host": self.coordinator.api.host,
            "port": self.coordinator.api.port,
        }


class ExtronDXPOutputDisconnectedSensor(CoordinatorEntity, BinarySensorEntity):
    """Encendido cuando la salida no tiene ninguna entrada enrutada."""

    _attr_has_entity_name = True
    _attr_icon = "mdi:video-off"

    def __init__(
        self,
        coordinator: ExtronDXPCoordinator,
        entry_id: str,
        output_number: int,
        device_info: DeviceInfo
    ) -> None:
        super().__init__(coordinator)

        self._output_number = output_number
        self._attr_unique_id = f"{entry_id}_output_{output_number}_disconnected"
        self._attr_name = f"{coordinator.output_label(output_number)} Disconnected"
        self._attr_device_info = device_info

    @property
    def is_on(self) -> bool:
        return self.coordinator.is_output_disconnected(self._output_number)

    @property
    def available(self) -> bool:
        return self.coordinator.is_connected


def _create_device_info(entry: ConfigEntry, coordinator: ExtronDXPCoordinator) -> DeviceInfo:
    """Crea información del dispositivo."""
    return DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        name=f"Extron {coordinator.api.model_name}",
        manufacturer=MANUFACTURER,
        model=coordinator.api.model_name,
        configuration_url=f"http://{coordinator.api.host}",
    )
