"""
Extron DXP Select Entities
Controles de selección para cambiar la entrada de cada salida de la matriz.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from homeassistant.components.select import SelectEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .api import CommandError
from .const import DOMAIN, MANUFACTURER
from .coordinator import NO_INPUT, ExtronDXPCoordinator

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback
) -> None:
    """
    Configura los selectores de entrada de la integración.

    Args:
        hass: Instancia de Home Assistant
        entry: Entrada de configuración
        async_add_entities: Callback para agregar entidades
    """
    coordinator: ExtronDXPCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    device_info = _create_device_info(entry, coordinator)

    selectors = [
        ExtronDXPInputSelector(
            coordinator=coordinator,
            entry_id=entry.entry_id,
            output_number=output_num,
            device_info=device_info
        )
        for output_num in range(1, coordinator.output_count + 1)
    ]

    async_add_entities(selectors)

    _LOGGER.info(
        "Creados %d selectores para %s (entry: %s)",
        len(selectors),
        coordinator.api.model_name,
        entry.entry_id
    )


class ExtronDXPInputSelector(CoordinatorEntity, SelectEntity):
    """
    Selector de la entrada enrutada a una salida.

    Las opciones son las etiquetas de las entradas más "No Input", que
    desconecta la salida.
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
        Inicializa el selector.

        Args:
            coordinator: Coordinador de actualizaciones
            entry_id: ID de la entrada de configuración
            output_number: Número de salida (1-indexed)
            device_info: Información del dispositivo
        """
        super().__init__(coordinator)

        self._output_number = output_number

        self._attr_unique_id = f"{entry_id}_input_select_output_{output_number}"
        self._attr_name = f"{coordinator.output_label(output_number)} Input"
        self._attr_device_info = device_info

        self._input_options = self._generate_input_options()
        self._attr_options = [*self._input_options, NO_INPUT]

        _LOGGER.debug(
            "Selector inicializado: %s (output: %d, inputs: %d)",
            self._attr_unique_id,
            output_number,
            len(self._input_options)
        )

    def _generate_input_options(self) -> List[str]:
        """
        Genera una opción por entrada.

        Las etiquetas repetidas se distinguen con el número de entrada.

        Returns:
            Lista indexada por entrada-1
        """
        options: List[str] = []
        for input_num in range(1, self.coordinator.input_count + 1):
            label = self.coordinator.input_label(input_num)
            if label in options or label == NO_INPUT:
                label = f"{label} ({input_num})"
            options.append(label)
        return options

    @property
    def current_option(self) -> Optional[str]:
        input_num = self.coordinator.get_output_input(self._output_number)

        if input_num is None:
            return NO_INPUT

        return self._input_options[input_num - 1]

    async def async_select_option(self, option: str) -> None:
        """
        Cambia la entrada conectada a la salida.

        Args:
            option: Opción seleccionada

        Raises:
            HomeAssistantError: Si la opción o los puertos son inválidos
        """
        try:
            if option == NO_INPUT:
                _LOGGER.info("Desconectando salida %d", self._output_number)
                self.coordinator.api.disconnect_output(self._output_number)
                return

            if option not in self._input_options:
                raise HomeAssistantError(f"Invalid option: {option}")

            input_num = self._input_options.index(option) + 1

            _LOGGER.info(
                "Cambiando ruta: Entrada %d → Salida %d",
                input_num,
                self._output_number
            )
            self.coordinator.api.route(input_num, self._output_number)

        except CommandError as err:
            _LOGGER.error(
                "Error al cambiar ruta (Output %d): %s",
                self._output_number,
                err
            )
            raise HomeAssistantError(str(err)) from err

    @property
    def available(self) -> bool:
        return self.coordinator.is_connected

    @property
    def extra_state_attributes(self) -> Dict[str, Any]:
        attributes: Dict[str, Any] = {
            "output_number": self._output_number,
            "total_inputs": len(self._input_options),
        }

        input_num = self.coordinator.get_output_input(self._output_number)
        if input_num is not None:
            attributes["input_number"] = input_num

        return attributes


def _create_device_info(entry: ConfigEntry, coordinator: ExtronDXPCoordinator) -> DeviceInfo:
    """Crea información del dispositivo."""
    return DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        name=f"Extron {coordinator.api.model_name}",
        manufacturer=MANUFACTURER,
        model=coordinator.api.model_name,
        configuration_url=f"http://{coordinator.api.host}",
    )
