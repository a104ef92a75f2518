"""
Extron DXP Constants
Constantes utilizadas en toda la integración.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

# Identificador del dominio de la integración
DOMAIN = "extron_dxp"

# Plataformas soportadas
PLATFORMS = ["sensor", "binary_sensor", "select", "button"]

# Claves de configuración
CONF_HOST = "host"
CONF_PORT = "port"
CONF_RECONNECT_INTERVAL = "reconnect_interval"
CONF_DEVICE_MODEL = "device_model"

# Valores por defecto
DEFAULT_HOST = "192.168.1.100"
DEFAULT_PORT = 23  # Telnet
DEFAULT_RECONNECT_INTERVAL = 5000  # milisegundos
DEFAULT_MODEL = "dxp88"
DEFAULT_TIMEOUT = 10  # segundos

# Límites de configuración
MIN_PORT = 1
MAX_PORT = 65535
MIN_RECONNECT_INTERVAL = 1000  # milisegundos
MAX_RECONNECT_INTERVAL = 30000  # milisegundos
MAX_PORTS = 16
MIN_PRESET = 1
MAX_PRESET = 32

# Información del dispositivo
MANUFACTURER = "Extron"

# Modelos DXP HD 4K Plus soportados
DXP_MODELS: Dict[str, Dict[str, Any]] = {
    "dxp44": {"name": "DXP 44 HD 4K Plus", "inputs": 4, "outputs": 4},
    "dxp66": {"name": "DXP 66 HD 4K Plus", "inputs": 6, "outputs": 6},
    "dxp84": {"name": "DXP 84 HD 4K Plus", "inputs": 8, "outputs": 4},
    "dxp88": {"name": "DXP 88 HD 4K Plus", "inputs": 8, "outputs": 8},
    "dxp1212": {"name": "DXP 1212 HD 4K Plus", "inputs": 12, "outputs": 12},
    "dxp1616": {"name": "DXP 1616 HD 4K Plus", "inputs": 16, "outputs": 16},
}


def get_model_info(model: Optional[str]) -> Dict[str, Any]:
    """
    Obtiene nombre y dimensiones de un modelo.

    Un modelo desconocido o vacío se trata como el modelo por defecto (8x8).

    Args:
        model: Clave del modelo (ej: "dxp44")

    Returns:
        Diccionario con "name", "inputs" y "outputs"
    """
    return DXP_MODELS.get(model or DEFAULT_MODEL, DXP_MODELS[DEFAULT_MODEL])


def input_label_key(number: int) -> str:
    """Clave de configuración de la etiqueta de una entrada."""
    return f"input_{number}_label"


def output_label_key(number: int) -> str:
    """Clave de configuración de la etiqueta de una salida."""
    return f"output_{number}_label"


def get_input_label(config: Mapping[str, Any], number: int) -> str:
    """
    Devuelve la etiqueta personalizada de una entrada.

    Args:
        config: Opciones de la entrada de configuración
        number: Número de entrada (1-indexed)

    Returns:
        Etiqueta configurada o "Input N"
    """
    return config.get(input_label_key(number)) or f"Input {number}"


def get_output_label(config: Mapping[str, Any], number: int) -> str:
    """
    Devuelve la etiqueta personalizada de una salida.

    Args:
        config: Opciones de la entrada de configuración
        number: Número de salida (1-indexed)

    Returns:
        Etiqueta configurada o "Output N"
    """
    return config.get(output_label_key(number)) or f"Output {number}"
