"""
Extron DXP Config Flow
Flujo de configuración para la integración de matrices Extron DXP.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult

from .api import ConfigurationError, ConnectionError, ExtronDXPClient
from .const import (
    CONF_DEVICE_MODEL,
    CONF_HOST,
    CONF_PORT,
    CONF_RECONNECT_INTERVAL,
    DEFAULT_HOST,
    DEFAULT_MODEL,
    DEFAULT_PORT,
    DEFAULT_RECONNECT_INTERVAL,
    DOMAIN,
    DXP_MODELS,
    MAX_PORT,
    MAX_RECONNECT_INTERVAL,
    MIN_PORT,
    MIN_RECONNECT_INTERVAL,
    get_model_info,
    input_label_key,
    output_label_key,
)

_LOGGER = logging.getLogger(__name__)

MODEL_CHOICES = {key: info["name"] for key, info in DXP_MODELS.items()}


def _connection_schema(defaults: Dict[str, Any]) -> vol.Schema:
    """Esquema de host, puerto, modelo e intervalo de reconexión."""
    return vol.Schema({
        vol.Required(
            CONF_HOST,
            default=defaults.get(CONF_HOST, DEFAULT_HOST)
        ): str,
        vol.Required(
            CONF_PORT,
            default=defaults.get(CONF_PORT, DEFAULT_PORT)
        ): vol.All(vol.Coerce(int), vol.Range(min=MIN_PORT, max=MAX_PORT)),
        vol.Required(
            CONF_DEVICE_MODEL,
            default=defaults.get(CONF_DEVICE_MODEL, DEFAULT_MODEL)
        ): vol.In(MODEL_CHOICES),
        vol.Required(
            CONF_RECONNECT_INTERVAL,
            default=defaults.get(CONF_RECONNECT_INTERVAL, DEFAULT_RECONNECT_INTERVAL)
        ): vol.All(
            vol.Coerce(int),
            vol.Range(min=MIN_RECONNECT_INTERVAL, max=MAX_RECONNECT_INTERVAL)
        ),
    })


def build_labels_schema(model: str, current: Dict[str, Any]) -> vol.Schema:
    """
    Esquema con una etiqueta por entrada y por salida del modelo.

    Args:
        model: Clave del modelo seleccionado
        current: Valores actuales de las etiquetas

    Returns:
        Esquema voluptuous del formulario de etiquetas
    """
    info = get_model_info(model)
    fields: Dict[Any, Any] = {}

    for number in range(1, info["inputs"] + 1):
        key = input_label_key(number)
        fields[vol.Optional(key, default=current.get(key) or f"Input {number}")] = str

    for number in range(1, info["outputs"] + 1):
        key = output_label_key(number)
        fields[vol.Optional(key, default=current.get(key) or f"Output {number}")] = str

    return vol.Schema(fields)


class ConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """
    Flujo de configuración para Extron DXP.

    Pide la dirección del switcher y el modelo, y comprueba que el puerto
    TCP acepta conexiones.
    """

    VERSION = 1
    CONNECTION_CLASS = config_entries.CONN_CLASS_LOCAL_PUSH

    async def async_step_user(
        self,
        user_input: Optional[Dict[str, Any]] = None
    ) -> FlowResult:
        """
        Maneja el paso inicial de configuración del usuario.

        Args:
            user_input: Datos ingresados por el usuario

        Returns:
            Resultado del flujo (formulario o entrada creada)
        """
        errors: Dict[str, str] = {}

        if user_input is not None:
            host = user_input[CONF_HOST].strip()
            port = user_input[CONF_PORT]
            user_input[CONF_HOST] = host

            await self.async_set_unique_id(f"{host}:{port}")
            self._abort_if_unique_id_configured()

            api = ExtronDXPClient(host, port, model=user_input[CONF_DEVICE_MODEL])

            try:
                _LOGGER.debug("Intentando conectar a %s:%s", host, port)
                await api.test_connection()

            except ConfigurationError as err:
                _LOGGER.error("Configuración incompleta: %s", err)
                errors["base"] = "invalid_host"

            except ConnectionError as err:
                _LOGGER.error("Error de conexión: %s", err)
                errors["base"] = "cannot_connect"

            except Exception as err:
                _LOGGER.exception("Error inesperado durante configuración: %s", err)
                errors["base"] = "unknown"

            else:
                _LOGGER.info("Conexión exitosa con %s", api.model_name)

                return self.async_create_entry(
                    title=f"{api.model_name} ({host})",
                    data=user_input
                )

        return self.async_show_form(
            step_id="user",
            data_schema=_connection_schema(user_input or {}),
            errors=errors,
            description_placeholders={
                "port_info": "Extron devices typically use port 23 (Telnet)",
                "reconnect_info": "Time between reconnection attempts (ms)",
            }
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry
    ) -> OptionsFlow:
        """
        Retorna el flujo de opciones para esta entrada.

        Args:
            config_entry: Entrada de configuración

        Returns:
            Flujo de opciones
        """
        return OptionsFlow()


class OptionsFlow(config_entries.OptionsFlow):
    """
    Flujo de opciones para modificar configuración existente.

    Primero se eligen modelo e intervalo de reconexión; después las
    etiquetas de las entradas y salidas que tiene ese modelo.
    """

    def __init__(self) -> None:
        self._options: Dict[str, Any] = {}

    def _current(self) -> Dict[str, Any]:
        return {**self.config_entry.data, **self.config_entry.options}

    async def async_step_init(
        self,
        user_input: Optional[Dict[str, Any]] = None
    ) -> FlowResult:
        """
        Maneja la modificación de modelo e intervalo de reconexión.

        Args:
            user_input: Datos ingresados por el usuario

        Returns:
            Resultado del flujo
        """
        current = self._current()

        if user_input is not None:
            self._options = {**self.config_entry.options, **user_input}
            return await self.async_step_labels()

        options_schema = vol.Schema({
            vol.Required(
                CONF_DEVICE_MODEL,
                default=current.get(CONF_DEVICE_MODEL, DEFAULT_MODEL)
            ): vol.In(MODEL_CHOICES),
            vol.Required(
                CONF_RECONNECT_INTERVAL,
                default=current.get(CONF_RECONNECT_INTERVAL, DEFAULT_RECONNECT_INTERVAL)
            ): vol.All(
                vol.Coerce(int),
                vol.Range(min=MIN_RECONNECT_INTERVAL, max=MAX_RECONNECT_INTERVAL)
            ),
        })

        return self.async_show_form(step_id="init", data_schema=options_schema)

    async def async_step_labels(
        self,
        user_input: Optional[Dict[str, Any]] = None
    ) -> FlowResult:
        """
        Maneja las etiquetas personalizadas.

        Args:
            user_input: Etiquetas ingresadas por el usuario

        Returns:
            Resultado del flujo
        """
        model = self._options.get(CONF_DEVICE_MODEL, DEFAULT_MODEL)

        if user_input is not None:
            _LOGGER.info(
                "Actualizando opciones de configuración (entry: %s, modelo: %s)",
                self.config_entry.entry_id,
                model
            )
            return self.async_create_entry(title="", data={**self._options, **user_input})

        return self.async_show_form(
            step_id="labels",
            data_schema=build_labels_schema(model, self._current()),
            description_placeholders={"model": get_model_info(model)["name"]}
        )
