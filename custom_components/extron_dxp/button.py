"""
Extron DXP Button Entities
Botones para consultas de estado, bloqueo del panel frontal y reinicio.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from homeassistant.components.button import ButtonDeviceClass, ButtonEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .api import ExtronDXPClient
from .const import DOMAIN, MANUFACTURER
from .coordinator import ExtronDXPCoordinator

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback
) -> None:
    """Configura los botones de la integración."""
    coordinator: ExtronDXPCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    device_info = _create_device_info(entry, coordinator)

    buttons = [
        ExtronDXPRefreshButton(
            coordinator=coordinator,
            entry_id=entry.entry_id,
            device_info=device_info
        ),
        ExtronDXPCommandButton(
            coordinator=coordinator,
            entry_id=entry.entry_id,
            device_info=device_info,
            key="get_device_info",
            name="Get Device Information",
            icon="mdi:information-outline",
            action=lambda api: api.request_device_info(),
            category=EntityCategory.DIAGNOSTIC,
        ),
        ExtronDXPCommandButton(
            coordinator=coordinator,
            entry_id=entry.entry_id,
            device_info=device_info,
            key="front_panel_lock",
            name="Lock Front Panel",
            icon="mdi:lock",
            action=lambda api: api.set_front_panel_lock(True),
            category=EntityCategory.CONFIG,
        ),
        ExtronDXPCommandButton(
            coordinator=coordinator,
            entry_id=entry.entry_id,
            device_info=device_info,
            key="front_panel_unlock",
            name="Unlock Front Panel",
            icon="mdi:lock-open-variant",
            action=lambda api: api.set_front_panel_lock(False),
            category=EntityCategory.CONFIG,
        ),
        # Reinicia el equipo: deshabilitado hasta que el usuario lo active
        ExtronDXPCommandButton(
            coordinator=coordinator,
            entry_id=entry.entry_id,
            device_info=device_info,
            key="reset_device",
            name="Reset Device",
            icon="mdi:restart",
            action=lambda api: api.reset_device(),
            category=EntityCategory.CONFIG,
            device_class=ButtonDeviceClass.RESTART,
            enabled_default=False,
        ),
    ]

    async_add_entities(buttons)

    _LOGGER.info(
        "Creados %d botones (entry: %s)",
        len(buttons),
        entry.entry_id
    )


class ExtronDXPRefreshButton(CoordinatorEntity, ButtonEntity):
    """Botón que pide al switcher el estado de todas las rutas."""

    _attr_has_entity_name = True
    _attr_name = "Get Routing Status"
    _attr_icon = "mdi:refresh"

    def __init__(
        self,
        coordinator: ExtronDXPCoordinator,
        entry_id: str,
        device_info: DeviceInfo
    ) -> None:
        super().__init__(coordinator)

        self._attr_unique_id = f"{entry_id}_get_routing_status"
        self._attr_device_info = device_info

    async def async_press(self) -> None:
        _LOGGER.info("Solicitando estado de rutas")
        self.coordinator.request_device_refresh()

    @property
    def available(self) -> bool:
        return self.coordinator.is_connected


class ExtronDXPCommandButton(CoordinatorEntity, ButtonEntity):
    """Botón que envía un comando fijo al switcher."""

    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: ExtronDXPCoordinator,
        entry_id: str,
        device_info: DeviceInfo,
        key: str,
        name: str,
        icon: str,
        action: Callable[[ExtronDXPClient], None],
        category: Optional[EntityCategory] = None,
        device_class: Optional[ButtonDeviceClass] = None,
        enabled_default: bool = True
    ) -> None:
        super().__init__(coordinator)

        self._action = action
        self._attr_unique_id = f"{entry_id}_{key}"
        self._attr_name = name
        self._attr_icon = icon
        self._attr_entity_category = category
        self._attr_device_class = device_class
        self._attr_entity_registry_enabled_default = enabled_default
        self._attr_device_info = device_info

    async def async_press(self) -> None:
        _LOGGER.info("Ejecutando %s", self._attr_name)
        self._action(self.coordinator.api)

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
