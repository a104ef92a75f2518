"""
Extron DXP API Client
Cliente TCP para el protocolo SIS de las matrices Extron DXP HD 4K Plus.
"""
from __future__ import annotations

import asyncio
import logging
import re
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Protocol, Tuple

from .const import (
    DEFAULT_MODEL,
    DEFAULT_RECONNECT_INTERVAL,
    DEFAULT_TIMEOUT,
    MAX_PRESET,
    MIN_PRESET,
    get_model_info,
)

_LOGGER = logging.getLogger(__name__)


# ============================================================================
# CONSTANTES Y CONFIGURACIÓN
# ============================================================================

class ConnectionStatus(str, Enum):
    """Estados de la conexión con el switcher."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OK = "ok"
    CONNECTION_FAILURE = "connection_failure"
    BAD_CONFIG = "bad_config"


# Terminador de línea del protocolo (comandos y respuestas)
LINE_TERMINATOR = "\r\n"

# Respuesta de ruta: "Out02 In03" significa salida 2 conectada a entrada 3
ROUTE_RESPONSE = re.compile(r"Out(\d+)\s+In(\d+)")

# Prefijo de las respuestas de información del dispositivo
DEVICE_INFO_PREFIX = "DXP"

# Rango de volumen del dispositivo
VOLUME_MAX = 64

# Comandos pendientes guardados mientras no hay conexión
MAX_PENDING_COMMANDS = 100


# ============================================================================
# MODELOS DE DATOS
# ============================================================================

@dataclass
class DeviceInfo:
    """Información del dispositivo reportada por el switcher."""
    model: str = ""
    version: str = ""
    serial_number: str = ""

    def to_dict(self) -> Dict[str, str]:
        """Convierte la información a diccionario."""
        return {
            "model": self.model,
            "version": self.version,
            "serial_number": self.serial_number,
        }


@dataclass
class MatrixState:
    """
    Estado de enrutamiento de la matriz.

    Tabla indexada por salida: routes[salida][entrada] vale 1 si la entrada
    está enrutada a la salida. Cada fila tiene como máximo un 1.
    """
    inputs: int
    outputs: int
    routes: List[List[int]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.routes:
            self.reset()

    def reset(self) -> None:
        """Limpia todas las rutas."""
        self.routes = [[0] * self.inputs for _ in range(self.outputs)]

    def resize(self, inputs: int, outputs: int) -> None:
        """Redimensiona la matriz; el estado anterior se descarta."""
        self.inputs = inputs
        self.outputs = outputs
        self.reset()

    def set_route(self, output_idx: int, input_idx: int) -> bool:
        """
        Marca una entrada como enrutada a una salida.

        Args:
            output_idx: Índice de salida (0-indexed)
            input_idx: Índice de entrada (0-indexed)

        Returns:
            True si los índices están dentro de la matriz
        """
        if not (0 <= output_idx < self.outputs and 0 <= input_idx < self.inputs):
            return False

        row = self.routes[output_idx]
        for idx in range(self.inputs):
            row[idx] = 1 if idx == input_idx else 0
        return True

    def is_routed(self, input_number: int, output_number: int) -> bool:
        """Indica si una entrada está enrutada a una salida (1-indexed)."""
        if 1 <= input_number <= self.inputs and 1 <= output_number <= self.outputs:
            return self.routes[output_number - 1][input_number - 1] == 1
        return False

    def routed_input(self, output_number: int) -> Optional[int]:
        """Número de entrada enrutada a una salida, o None."""
        if not 1 <= output_number <= self.outputs:
            return None
        for idx, flag in enumerate(self.routes[output_number - 1]):
            if flag == 1:
                return idx + 1
        return None

    def usage_count(self, input_number: int) -> int:
        """Número de salidas que reciben una entrada."""
        if not 1 <= input_number <= self.inputs:
            return 0
        return sum(row[input_number - 1] for row in self.routes)

    @property
    def active_routes(self) -> int:
        """Número de salidas con alguna entrada enrutada."""
        return sum(1 for row in self.routes if any(row))

    @property
    def disconnected_outputs(self) -> int:
        """Número de salidas sin entrada."""
        return self.outputs - self.active_routes

    @property
    def size(self) -> str:
        """Tamaño de la matriz como "entradasxsalidas"."""
        return f"{self.inputs}x{self.outputs}"

    def copy(self) -> MatrixState:
        """Copia independiente del estado."""
        return MatrixState(
            inputs=self.inputs,
            outputs=self.outputs,
            routes=[row[:] for row in self.routes],
        )


# ============================================================================
# PROTOCOLOS Y CALLBACKS
# ============================================================================

class ChangeCallback(Protocol):
    """Protocolo para callbacks de cambios en el estado."""
    def __call__(self) -> None:
        """Llamado cuando cambia el estado de la conexión o de la matriz."""
        ...


# ============================================================================
# EXCEPCIONES PERSONALIZADAS
# ============================================================================

class ExtronDXPError(Exception):
    """Excepción base para errores del cliente Extron DXP."""
    pass


class ConnectionError(ExtronDXPError):
    """Error de conexión con el dispositivo."""
    pass


class CommandError(ExtronDXPError):
    """Parámetros inválidos para un comando."""
    pass


class ConfigurationError(ExtronDXPError):
    """Falta host o puerto en la configuración."""
    pass


# ============================================================================
# UTILIDADES
# ============================================================================

def volume_to_device(volume: float) -> int:
    """
    Convierte un volumen 0-100 al rango 0-64 del dispositivo.

    El valor se limita a 0-100 y se redondea al entero más cercano
    (las mitades hacia arriba).
    """
    volume = max(0.0, min(100.0, float(volume)))
    return int(volume * VOLUME_MAX / 100 + 0.5)


class DXPCommand:
    """Construye los comandos SIS del switcher."""

    GET_DEVICE_INFO = "I"
    GET_ROUTING_STATUS = "0*!"
    RESET_DEVICE = "1Z"
    FRONT_PANEL_LOCK = "1X"
    FRONT_PANEL_UNLOCK = "0X"

    @staticmethod
    def route(input_port: int, output_port: int) -> str:
        """Enruta una entrada a una salida."""
        return f"{input_port}*{output_port}!"

    @staticmethod
    def route_to_all(input_port: int) -> str:
        """Enruta una entrada a todas las salidas."""
        return f"{input_port}*!"

    @staticmethod
    def disconnect_output(output_port: int) -> str:
        """Desconecta una salida (entrada 0)."""
        return f"0*{output_port}!"

    @staticmethod
    def save_preset(preset: int) -> str:
        return f"{preset},"

    @staticmethod
    def recall_preset(preset: int) -> str:
        return f"{preset}."

    @staticmethod
    def front_panel(locked: bool) -> str:
        return DXPCommand.FRONT_PANEL_LOCK if locked else DXPCommand.FRONT_PANEL_UNLOCK

    @staticmethod
    def volume(output_port: int, volume: float) -> str:
        """Fija el volumen de una salida de audio (volumen 0-100)."""
        return f"{volume_to_device(volume)}*{output_port}V"

    @staticmethod
    def mute(output_port: int, muted: bool) -> str:
        return f"{output_port}*Z" if muted else f"{output_port}*z"


class StateParser:
    """Interpreta las líneas de respuesta del switcher."""

    @staticmethod
    def split_lines(data: str) -> List[str]:
        """
        Separa un bloque recibido en líneas.

        Cada bloque se trata como completo: el último segmento se procesa
        aunque no termine en CRLF.

        Args:
            data: Texto recibido

        Returns:
            Líneas no vacías, sin espacios en los extremos
        """
        lines = (line.strip() for line in data.strip().split(LINE_TERMINATOR))
        return [line for line in lines if line]

    @staticmethod
    def parse_route(line: str) -> Optional[Tuple[int, int]]:
        """
        Parsea una respuesta de ruta con formato "OutNN InMM".

        Returns:
            Tupla (índice de salida, índice de entrada) 0-indexed, o None
        """
        if "Out" not in line or "In" not in line:
            return None
        match = ROUTE_RESPONSE.search(line)
        if not match:
            return None
        return int(match.group(1)) - 1, int(match.group(2)) - 1

    @staticmethod
    def is_device_info(line: str) -> bool:
        return line.startswith(DEVICE_INFO_PREFIX)


class _DXPProtocol(asyncio.Protocol):
    """Protocolo asyncio que reenvía los eventos del socket al cliente."""

    def __init__(self, client: ExtronDXPClient) -> None:
        self._client: Optional[ExtronDXPClient] = client

    def detach(self) -> None:
        """Desvincula el cliente; los eventos posteriores se ignoran."""
        self._client = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        if self._client is not None:
            self._client._on_connection_made(self, transport)
        else:
            transport.close()

    def data_received(self, data: bytes) -> None:
        if self._client is not None:
            self._client._on_data_received(data)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if self._client is not None:
            self._client._on_connection_lost(exc)


# ============================================================================
# CLIENTE PRINCIPAL
# ============================================================================

class ExtronDXPClient:
    """
    Cliente asíncrono para matrices Extron DXP HD 4K Plus.

    Mantiene una única conexión TCP, envía comandos de texto terminados en
    CRLF y refleja en memoria el estado de enrutamiento a partir de las
    respuestas del dispositivo. Si la conexión cae se programa un único
    reintento tras el intervalo configurado.
    """

    def __init__(
        self,
        host: Optional[str],
        port: Optional[int],
        model: str = DEFAULT_MODEL,
        reconnect_interval: int = DEFAULT_RECONNECT_INTERVAL,
    ) -> None:
        """
        Inicializa el cliente.

        Args:
            host: Dirección IP o nombre del switcher
            port: Puerto TCP (normalmente 23)
            model: Clave del modelo (ej: "dxp88")
            reconnect_interval: Espera entre reintentos en milisegundos
        """
        self._host = host
        self._port = port
        self._model = model
        self._reconnect_interval = reconnect_interval

        info = get_model_info(model)
        self.matrix = MatrixState(inputs=info["inputs"], outputs=info["outputs"])
        self.device_info = DeviceInfo()

        self._protocol: Optional[_DXPProtocol] = None
        self._transport: Optional[asyncio.WriteTransport] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._pending: Deque[str] = deque(maxlen=MAX_PENDING_COMMANDS)
        self._connected = False
        self._closing = False
        self._status = ConnectionStatus.DISCONNECTED
        self._status_message: Optional[str] = None
        self._change_callback: Optional[ChangeCallback] = None

        _LOGGER.debug("Client initialized for %s:%s (%s)", host, port, info["name"])

    # ========================================================================
    # PROPIEDADES Y CONFIGURACIÓN
    # ========================================================================

    @property
    def host(self) -> Optional[str]:
        return self._host

    @property
    def port(self) -> Optional[int]:
        return self._port

    @property
    def model(self) -> str:
        return self._model

    @property
    def model_name(self) -> str:
        return get_model_info(self._model)["name"]

    @property
    def input_count(self) -> int:
        return self.matrix.inputs

    @property
    def output_count(self) -> int:
        return self.matrix.outputs

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def status_message(self) -> Optional[str]:
        return self._status_message

    @property
    def reconnect_pending(self) -> bool:
        """Indica si hay un reintento de conexión programado."""
        return self._reconnect_handle is not None

    @property
    def pending_commands(self) -> List[str]:
        """Comandos que no se enviaron por falta de conexión."""
        return list(self._pending)

    def set_change_callback(self, callback: Optional[ChangeCallback]) -> None:
        """
        Registra un callback para notificaciones de cambios.

        Args:
            callback: Función a llamar cuando hay cambios, o None para limpiar
        """
        self._change_callback = callback
        _LOGGER.debug("Change callback %s", "registered" if callback else "cleared")

    def set_model(self, model: str) -> None:
        """
        Cambia el modelo y redimensiona la matriz.

        Args:
            model: Clave del nuevo modelo
        """
        info = get_model_info(model)
        self._model = model
        self.matrix.resize(info["inputs"], info["outputs"])
        _LOGGER.info("Matrix resized to %s for %s", self.matrix.size, info["name"])
        self._notify_change()

    def to_dict(self) -> Dict[str, Any]:
        """Instantánea del estado para el coordinador."""
        return {
            "connected": self._connected,
            "status": self._status.value,
            "status_message": self._status_message,
            "model": self._model,
            "model_name": self.model_name,
            "device_info": self.device_info.to_dict(),
            "inputs": self.matrix.inputs,
            "outputs": self.matrix.outputs,
            "matrix": self.matrix.copy(),
        }

    def _notify_change(self) -> None:
        """Ejecuta el callback registrado."""
        if self._change_callback:
            try:
                self._change_callback()
            except Exception as e:
                _LOGGER.exception("Error in change callback: %s", e)

    def _set_status(self, status: ConnectionStatus, message: Optional[str] = None) -> None:
        self._status = status
        self._status_message = message
        self._notify_change()

    # ========================================================================
    # CICLO DE VIDA DE LA CONEXIÓN
    # ========================================================================

    async def async_connect(self) -> None:
        """
        Abre la conexión con el switcher.

        Cancela cualquier reintento pendiente y descarta la conexión previa.
        Sin host o puerto no se intenta conectar y el estado queda en
        BAD_CONFIG. Un fallo de conexión programa un reintento.
        """
        self._closing = False
        self._teardown()

        if not self._host or not self._port:
            _LOGGER.error("IP and Port must be configured")
            self._set_status(ConnectionStatus.BAD_CONFIG, "IP and Port must be configured")
            return

        self._set_status(ConnectionStatus.CONNECTING, f"Connecting to {self.model_name}")
        _LOGGER.debug("Connecting to %s:%s", self._host, self._port)

        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                loop.create_connection(lambda: _DXPProtocol(self), self._host, self._port),
                timeout=DEFAULT_TIMEOUT,
            )
        except asyncio.TimeoutError:
            self._handle_socket_error(f"Connection timeout after {DEFAULT_TIMEOUT}s")
        except OSError as err:
            self._handle_socket_error(str(err))

    async def async_disconnect(self) -> None:
        """Cierra la conexión sin programar reintentos."""
        _LOGGER.debug("Disconnecting from %s:%s", self._host, self._port)
        self._closing = True

        task = self._connect_task
        self._connect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

        self._teardown()
        self._status = ConnectionStatus.DISCONNECTED
        self._status_message = None

    async def test_connection(self) -> bool:
        """
        Prueba que el switcher acepta conexiones TCP.

        Returns:
            True si la conexión es exitosa

        Raises:
            ConfigurationError: Falta host o puerto
            ConnectionError: No se pudo abrir el socket
        """
        if not self._host or not self._port:
            raise ConfigurationError("IP and Port must be configured")

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=DEFAULT_TIMEOUT,
            )
        except asyncio.TimeoutError as e:
            raise ConnectionError(
                f"Connection timeout after {DEFAULT_TIMEOUT}s"
            ) from e
        except OSError as e:
            raise ConnectionError(f"Connection error: {e}") from e

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            _LOGGER.debug("Error closing test connection: %s", e)

        _LOGGER.info("Connection test successful (%s:%s)", self._host, self._port)
        return True

    def _teardown(self) -> None:
        """Cancela el reintento y descarta el socket actual."""
        self._cancel_reconnect()

        if self._protocol is not None:
            self._protocol.detach()
            self._protocol = None

        if self._transport is not None:
            self._transport.close()
            self._transport = None

        self._connected = False

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _schedule_reconnect(self) -> None:
        """Programa un único reintento de conexión."""
        if self._closing:
            return

        self._cancel_reconnect()
        delay = (self._reconnect_interval or DEFAULT_RECONNECT_INTERVAL) / 1000
        self._reconnect_handle = asyncio.get_running_loop().call_later(
            delay, self._reconnect
        )
        _LOGGER.debug("Reconnect scheduled in %.1fs", delay)

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        _LOGGER.info("Attempting to reconnect...")
        self._connect_task = asyncio.get_running_loop().create_task(self.async_connect())

    def _handle_socket_error(self, message: str) -> None:
        _LOGGER.error("Socket error: %s", message)
        self._teardown()
        self._set_status(ConnectionStatus.CONNECTION_FAILURE, message)
        self._schedule_reconnect()

    # ========================================================================
    # EVENTOS DEL PROTOCOLO
    # ========================================================================

    def _on_connection_made(
        self, protocol: _DXPProtocol, transport: asyncio.BaseTransport
    ) -> None:
        if self._closing:
            protocol.detach()
            transport.close()
            return

        if self._protocol is not None and self._protocol is not protocol:
            self._teardown()

        self._protocol = protocol
        self._transport = transport
        self._connected = True

        _LOGGER.info("Connected to %s at %s:%s", self.model_name, self._host, self._port)
        self._set_status(ConnectionStatus.OK)

        # Información del dispositivo y estado de todas las rutas
        self.send_command(DXPCommand.GET_DEVICE_INFO)
        self.send_command(DXPCommand.GET_ROUTING_STATUS)

    def _on_connection_lost(self, exc: Optional[Exception]) -> None:
        self._protocol = None
        self._transport = None
        self._connected = False

        if exc is not None:
            self._handle_socket_error(str(exc) or exc.__class__.__name__)
            return

        _LOGGER.warning("Connection closed")
        self._set_status(ConnectionStatus.DISCONNECTED)
        self._schedule_reconnect()

    def _on_data_received(self, data: bytes) -> None:
        text = data.decode("ascii", errors="ignore")
        _LOGGER.debug("Received: %r", text)

        for line in StateParser.split_lines(text):
            self.handle_line(line)

        self._notify_change()

    def handle_line(self, line: str) -> bool:
        """
        Aplica una línea de respuesta al estado.

        Args:
            line: Línea sin terminador

        Returns:
            True si la línea actualizó la matriz o la información del dispositivo
        """
        line = line.strip()
        if not line:
            return False

        route = StateParser.parse_route(line)
        if route is not None:
            output_idx, input_idx = route
            if self.matrix.set_route(output_idx, input_idx):
                _LOGGER.debug("Route: Input %d → Output %d", input_idx + 1, output_idx + 1)
                return True
            _LOGGER.debug("Route out of range for %s: %s", self.matrix.size, line)
            return False

        if StateParser.is_device_info(line):
            self.device_info.model = line
            return True

        _LOGGER.debug("Ignoring response: %s", line)
        return False

    # ========================================================================
    # ENVÍO DE COMANDOS
    # ========================================================================

    def send_command(self, command: str) -> None:
        """
        Envía un comando al switcher.

        Sin conexión el comando se guarda en la cola de pendientes, que no
        se reenvía al reconectar.

        Args:
            command: Comando SIS sin terminador
        """
        if self._connected and self._transport is not None:
            _LOGGER.debug("Sending command: %s", command)
            self._transport.write((command + LINE_TERMINATOR).encode("ascii"))
        else:
            _LOGGER.warning('Cannot send command "%s" - not connected', command)
            self._pending.append(command)

    def _check_input(self, input_port: int) -> None:
        if not 1 <= input_port <= self.matrix.inputs:
            raise CommandError(
                f"Input {input_port} is out of range (1-{self.matrix.inputs})"
            )

    def _check_output(self, output_port: int) -> None:
        if not 1 <= output_port <= self.matrix.outputs:
            raise CommandError(
                f"Output {output_port} is out of range (1-{self.matrix.outputs})"
            )

    def _check_preset(self, preset: int) -> None:
        if not MIN_PRESET <= preset <= MAX_PRESET:
            raise CommandError(
                f"Preset {preset} is out of range ({MIN_PRESET}-{MAX_PRESET})"
            )

    def route(self, input_port: int, output_port: int) -> None:
        """
        Enruta una entrada a una salida.

        Raises:
            CommandError: Entrada o salida fuera de rango
        """
        self._check_input(input_port)
        self._check_output(output_port)
        self.send_command(DXPCommand.route(input_port, output_port))

    def route_to_all(self, input_port: int) -> None:
        self._check_input(input_port)
        self.send_command(DXPCommand.route_to_all(input_port))

    def disconnect_output(self, output_port: int) -> None:
        self._check_output(output_port)
        self.send_command(DXPCommand.disconnect_output(output_port))

    def save_preset(self, preset: int) -> None:
        self._check_preset(preset)
        self.send_command(DXPCommand.save_preset(preset))

    def recall_preset(self, preset: int) -> None:
        self._check_preset(preset)
        self.send_command(DXPCommand.recall_preset(preset))

    def request_device_info(self) -> None:
        self.send_command(DXPCommand.GET_DEVICE_INFO)

    def request_routing_status(self) -> None:
        self.send_command(DXPCommand.GET_ROUTING_STATUS)

    def reset_device(self) -> None:
        """Reinicia el switcher."""
        _LOGGER.warning("Resetting %s at %s", self.model_name, self._host)
        self.send_command(DXPCommand.RESET_DEVICE)

    def set_front_panel_lock(self, locked: bool) -> None:
        self.send_command(DXPCommand.front_panel(locked))

    def set_volume(self, output_port: int, volume: float) -> None:
        """
        Fija el volumen de una salida de audio.

        Args:
            output_port: Número de salida (1-indexed)
            volume: Nivel 0-100, convertido al rango 0-64 del dispositivo
        """
        self._check_output(output_port)
        self.send_command(DXPCommand.volume(output_port, volume))

    def set_mute(self, output_port: int, muted: bool) -> None:
        self._check_output(output_port)
        self.send_command(DXPCommand.mute(output_port, muted))

    def __repr__(self) -> str:
        """Representación string del cliente."""
        return f"ExtronDXPClient(host='{self._host}', port={self._port}, model='{self._model}')"
