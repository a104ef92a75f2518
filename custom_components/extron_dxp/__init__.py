"""
Extron DXP Integration para Home Assistant
Integración para controlar matrices Extron DXP HD 4K Plus por TCP/Telnet.
"""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryError

from .api import ExtronDXPClient
from .const import (
    CONF_DEVICE_MODEL,
    CONF_HOST,
    CONF_PORT,
    CONF_RECONNECT_INTERVAL,
    DEFAULT_MODEL,
    DEFAULT_RECONNECT_INTERVAL,
    DOMAIN,
    DXP_MODELS,
    MAX_RECONNECT_INTERVAL,
    MIN_RECONNECT_INTERVAL,
    PLATFORMS,
)
from .coordinator import ExtronDXPCoordinator
from .services import async_setup_services, async_unload_services

_LOGGER = logging.getLogger(__name__)


async def async_setup(hass: HomeAssistant, config: dict) -> bool:
    """
    Configuración inicial de la integración.

    Args:
        hass: Instancia de Home Assistant
        config: Configuración desde configuration.yaml

    Returns:
        True si la configuración es exitosa
    """
    _LOGGER.debug("Inicializando integración %s", DOMAIN)
    hass.data.setdefault(DOMAIN, {})
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """
    Configura la integración desde una entrada de configuración.

    La conexión se abre en segundo plano: si el switcher no responde, las
    entidades quedan no disponibles y el cliente reintenta por su cuenta.

    Args:
        hass: Instancia de Home Assistant
        entry: Entrada de configuración

    Returns:
        True si la configuración es exitosa

    Raises:
        ConfigEntryError: Si falta IP o puerto
    """
    _LOGGER.debug("Configurando %s (entry_id=%s)", DOMAIN, entry.entry_id)

    config = {**entry.data, **entry.options}

    host = config.get(CONF_HOST)
    port = config.get(CONF_PORT)
    if not host or not port:
        _LOGGER.error("IP y puerto son obligatorios (entry: %s)", entry.entry_id)
        raise ConfigEntryError("IP and Port must be configured")

    model = _validate_model(config.get(CONF_DEVICE_MODEL), entry.entry_id)
    reconnect_interval = _validate_reconnect_interval(
        config.get(CONF_RECONNECT_INTERVAL, DEFAULT_RECONNECT_INTERVAL),
        entry.entry_id,
    )

    _LOGGER.info(
        "Configurando %s - Host: %s:%s, Reintento: %dms",
        DXP_MODELS[model]["name"],
        host,
        port,
        reconnect_interval
    )

    api = ExtronDXPClient(
        host,
        int(port),
        model=model,
        reconnect_interval=reconnect_interval,
    )

    coordinator = ExtronDXPCoordinator(hass, entry, api)

    # Guardar datos en hass.data
    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = {
        "api": api,
        "coordinator": coordinator,
        "entry": entry,
    }

    # Registrar listener para cambios en opciones
    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    # Conectar; un fallo deja programado el reintento
    await api.async_connect()

    try:
        await coordinator.async_config_entry_first_refresh()
    except Exception:
        hass.data[DOMAIN].pop(entry.entry_id, None)
        await api.async_disconnect()
        raise

    # Configurar servicios (solo una vez, en la primera entrada)
    if len(hass.data[DOMAIN]) == 1:
        await async_setup_services(hass)
        _LOGGER.debug("Servicios configurados")

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    _LOGGER.info(
        "Integración %s configurada correctamente (entry_id=%s)",
        DOMAIN,
        entry.entry_id
    )

    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """
    Descarga la integración cuando se elimina la entrada.

    Args:
        hass: Instancia de Home Assistant
        entry: Entrada de configuración

    Returns:
        True si la descarga es exitosa
    """
    _LOGGER.debug("Descargando %s (entry_id=%s)", DOMAIN, entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if not unload_ok:
        _LOGGER.warning(
            "No se pudieron descargar todas las plataformas de %s",
            DOMAIN
        )
        return False

    entry_data = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)

    if entry_data:
        coordinator: ExtronDXPCoordinator = entry_data["coordinator"]
        api: ExtronDXPClient = entry_data["api"]

        try:
            await coordinator.async_shutdown()
            _LOGGER.debug("Coordinador detenido correctamente")
        except Exception as e:
            _LOGGER.exception("Error al detener coordinador: %s", e)

        await api.async_disconnect()
        _LOGGER.debug("Conexión con %s cerrada", api.host)

    # Descargar servicios si no quedan más entradas
    if not hass.data.get(DOMAIN):
        await async_unload_services(hass)
        _LOGGER.debug("Servicios descargados")

    _LOGGER.info("Integración %s descargada (entry_id=%s)", DOMAIN, entry.entry_id)
    return True


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """
    Recarga la integración cuando cambian las opciones.

    La recarga crea un cliente nuevo, de modo que la matriz toma las
    dimensiones del modelo seleccionado.

    Args:
        hass: Instancia de Home Assistant
        entry: Entrada de configuración
    """
    _LOGGER.debug(
        "Recargando entry %s de %s tras cambio de opciones",
        entry.entry_id,
        DOMAIN
    )
    await hass.config_entries.async_reload(entry.entry_id)


def _validate_model(model: Any, entry_id: str) -> str:
    """
    Valida el modelo configurado.

    Args:
        model: Clave del modelo
        entry_id: ID de la entrada (para logging)

    Returns:
        Clave de un modelo soportado
    """
    if model in DXP_MODELS:
        return model

    _LOGGER.warning(
        "Modelo desconocido '%s', usando %s (entry: %s)",
        model,
        DEFAULT_MODEL,
        entry_id
    )
    return DEFAULT_MODEL


def _validate_reconnect_interval(reconnect_interval: Any, entry_id: str) -> int:
    """
    Valida y normaliza el intervalo de reconexión.

    Args:
        reconnect_interval: Valor a validar (milisegundos)
        entry_id: ID de la entrada (para logging)

    Returns:
        Intervalo validado entre 1000 y 30000 ms, o 5000 si no se configuró
    """
    try:
        interval = int(reconnect_interval)

        # 0 equivale a no configurado
        if interval == 0:
            return DEFAULT_RECONNECT_INTERVAL

        if interval < MIN_RECONNECT_INTERVAL:
            _LOGGER.warning(
                "reconnect_interval %d es muy bajo, usando %d ms (entry: %s)",
                interval,
                MIN_RECONNECT_INTERVAL,
                entry_id
            )
            return MIN_RECONNECT_INTERVAL

        if interval > MAX_RECONNECT_INTERVAL:
            _LOGGER.warning(
                "reconnect_interval %d es muy alto, usando %d ms (entry: %s)",
                interval,
                MAX_RECONNECT_INTERVAL,
                entry_id
            )
            return MAX_RECONNECT_INTERVAL

        return interval

    except (ValueError, TypeError):
        _LOGGER.warning(
            "reconnect_interval inválido '%s', usando %d ms por defecto (entry: %s)",
            reconnect_interval,
            DEFAULT_RECONNECT_INTERVAL,
            entry_id
        )
        return DEFAULT_RECONNECT_INTERVAL
