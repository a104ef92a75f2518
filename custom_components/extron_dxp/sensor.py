"""
Extron DXP Sensors
Sensores con la fuente de cada salida, el uso de cada entrada y el resumen
de la matriz.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from homeassistant.components.sensor import SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, MANUFACTURER
from .coordinator import ExtronDXPCoordinator

_LOGGER = logging.getLogger(__name__)

# (clave, nombre, icono, categoría)
SUMMARY_SENSORS = [
    ("total_active_routes", "Total Active Routes", "mdi:video-switch", None),
    ("disconnected_outputs", "Disconnected Outputs", "mdi:video-off", None),
    ("matrix_size", "Matrix Size", "mdi:grid", EntityCategory.DIAGNOSTIC),
    ("device_model", "Device Model", "mdi:information-outline", EntityCategory.DIAGNOSTIC),
    ("device_version", "Device Version", "mdi:chip", EntityCategory.DIAGNOSTIC),
    ("device_serial", "Device Serial Number", "mdi:barcode", EntityCategory.DIAGNOSTIC),
]


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback
) -> None:
    """
    Configura los sensores de la integración.

    Args:
        hass: Instancia de Home Assistant
        entry: Entrada de configuración
        async_add_entities: Callback para agregar entidades
    """
    coordinator: ExtronDXPCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    device_info = _create_device_info(entry, coordinator)

    sensors = []
    for output_num in range(1, coordinator.output_count + 1):
        sensors.append(
            ExtronDXPOutputSourceSensor(
                coordinator=coordinator,
                entry_id=entry.entry_id,
                output_number=output_num,
                device_info=device_info
            )
        )

    for input_num in range(1, coordinator.input_count + 1):
        sensors.append(
            ExtronDXPInputUsageSensor(
                coordinator=coordinator,
                entry_id=entry.entry_id,
                input_number=input_num,
                device_info=device_info
            )
        )

    for key, name, icon, category in SUMMARY_SENSORS:
        sensors.append(
            ExtronDXPSummarySensor(
                coordinator=coordinator,
                entry_id=entry.entry_id,
                key=key,
                name=name,
                icon=icon,
                category=category,
                device_info=device_info
            )
        )

    async_add_entities(sensors)

    _LOGGER.info(
        "Creados %d sensores para %s (entry: %s)",
        len(sensors),
        coordinator.api.model_name,
        entry.entry_id
    )


class ExtronDXPOutputSourceSensor(CoordinatorEntity, SensorEntity):
    """
    Sensor con la entrada enrutada a una salida.

    El valor es la etiqueta de la entrada o "None".
    """

    _attr_has_entity_name = True
    _attr_icon = "mdi:video-input-hdmi"

    def __init__(
        self,
        coordinator: ExtronDXPCoordinator,
        entry_id: str,
        output_number: int,
        device_info: DeviceInfo
    ) -> None:
        """
        Inicializa el sensor.

        Args:
            coordinator: Coordinador de actualizaciones
            entry_id: ID de la entrada de configuración
            output_number: Número de salida (1-indexed)
            device_info: Información del dispositivo
        """
        super().__init__(coordinator)

        self._output_number = output_number
        self._attr_unique_id = f"{entry_id}_output_{output_number}_source"
        self._attr_name = f"{coordinator.output_label(output_number)} Source Input"
        self._attr_device_info = device_info

    @property
    def native_value(self) -> Optional[str]:
        return self.coordinator.get_variables().get(f"output_{self._output_number}_source")

    @property
    def available(self) -> bool:
        return self.coordinator.is_connected

    @property
    def extra_state_attributes(self) -> Dict[str, Any]:
        """Número de salida y, si hay ruta, número de entrada."""
        attributes: Dict[str, Any] = {"output_number": self._output_number}

        input_num = self.coordinator.get_output_input(self._output_number)
        if input_num is not None:
            attributes["input_number"] = input_num

        return attributes


class ExtronDXPInputUsageSensor(CoordinatorEntity, SensorEntity):
    """Sensor con el número de salidas que reciben una entrada."""

    _attr_has_entity_name = True
    _attr_icon = "mdi:counter"
    _attr_native_unit_of_measurement = "outputs"

    def __init__(
        self,
        coordinator: ExtronDXPCoordinator,
        entry_id: str,
        input_number: int,
        device_info: DeviceInfo
    ) -> None:
        super().__init__(coordinator)

        self._input_number = input_number
        self._attr_unique_id = f"{entry_id}_input_{input_number}_usage_count"
        self._attr_name = f"{coordinator.input_label(input_number)} Usage Count"
        self._attr_device_info = device_info

    @property
    def native_value(self) -> int:
        return self.coordinator.get_input_routing_count(self._input_number)

    @property
    def available(self) -> bool:
        return self.coordinator.is_connected

    @property
    def extra_state_attributes(self) -> Dict[str, Any]:
        routed_to = [
            output_num
            for output_num in range(1, self.coordinator.output_count + 1)
            if self.coordinator.is_routed(self._input_number, output_num)
        ]
        return {"input_number": self._input_number, "outputs": routed_to}


class ExtronDXPSummarySensor(CoordinatorEntity, SensorEntity):
    """Sensor de resumen de la matriz o de información del dispositivo."""

    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: ExtronDXPCoordinator,
        entry_id: str,
        key: str,
        name: str,
        icon: str,
        category: Optional[EntityCategory],
        device_info: DeviceInfo
    ) -> None:
        super().__init__(coordinator)

        self._key = key
        self._attr_unique_id = f"{entry_id}_{key}"
        self._attr_name = name
        self._attr_icon = icon
        self._attr_entity_category = category
        self._attr_device_info = device_info

    @property
    def native_value(self) -> Any:
        return self.coordinator.get_variables().get(self._key)

    @property
    def available(self) -> bool:
        return self.coordinator.is_connected


def _create_device_info(entry: ConfigEntry, coordinator: ExtronDXPCoordinator) -> DeviceInfo:
    """
    Crea información del dispositivo para agrupar entidades.

    Args:
        entry: Entrada de configuración
        coordinator: Coordinador (modelo y host del cliente)

    Returns:
        Información del dispositivo
    """
    return DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        name=f"Extron {coordinator.api.model_name}",
        manufacturer=MANUFACTURER,
        model=coordinator.api.model_name,
        configuration_url=f"http://{coordinator.api.host}",
    )
