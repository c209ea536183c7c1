# Overview: Serial cash-drawer driver with a software simulation mode; runs outside request context.

"""
Cash Drawer Service

WHY: The bar's till drawer is opened by an ESC/POS pulse over a serial
line. The POS must keep selling when the cable is unplugged, the port is
busy or pyserial is missing, so every hardware failure degrades to a
simulated drawer that produces the same event sequence.

PROTOCOL (ESC/POS):
- open:   ESC p 0 <pulse> <margin>   -> 1B 70 00 19 FA
- close:  ESC p 1 0 0                -> 1B 70 01 00 00
- status: ESC s                      -> 1B 73 (reply contains OPEN/CLOSE)

THREADING:
- One polling thread (sensor mode only)
- One reconnect timer at a time
- Short-lived auto-close timers in simulation mode
Shared state is guarded by a single re-entrant lock. Listeners are invoked
outside the lock.

EVENTS: Every transition is emitted as a DrawerEvent to "event" listeners
and to listeners registered for the lower-case event type
(e.g. on("drawer_opened", fn)).
"""

from __future__ import annotations

import logging
import sys
import threading
import time
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Callable

try:
    import serial
except ImportError:  # pyserial not installed: simulation only
    serial = None


logger = logging.getLogger(__name__)


OPEN_DRAWER_COMMAND = bytes([0x1B, 0x70, 0x00, 0x19, 0xFA])
CLOSE_DRAWER_COMMAND = bytes([0x1B, 0x70, 0x01, 0x00, 0x00])
STATUS_COMMAND = bytes([0x1B, 0x73])

SIMULATION_PORT = "SIMULATION"
PULSE_DURATION_MS = 100
MAX_RECONNECT_ATTEMPTS = 3
RECONNECT_DELAY_MS = 2000

SUPPORTED_PLATFORMS = ("win32", "linux")

# Event types
CONNECTED = "CONNECTED"
DISCONNECTED = "DISCONNECTED"
ERROR = "ERROR"
DRAWER_OPENED = "DRAWER_OPENED"
DRAWER_CLOSED = "DRAWER_CLOSED"
DATA_RECEIVED = "DATA_RECEIVED"
EVENT_TYPES = (CONNECTED, DISCONNECTED, ERROR, DRAWER_OPENED, DRAWER_CLOSED, DATA_RECEIVED)


class DrawerError(Exception):
    """Base class for drawer failures."""
    pass


class SerialConnectionError(DrawerError):
    """The port could not be used (not connected, lost, or failed to open)."""
    pass


class DrawerCommandError(DrawerError):
    """A command could not be written to the drawer."""
    pass


class HardwareNotAvailableError(DrawerError):
    """Hardware mode requested where no serial support exists."""
    pass


def default_port(platform: str | None = None) -> str:
    platform = platform or sys.platform
    if platform == "win32":
        return "COM1"
    return "/dev/ttyUSB0"


@dataclass(frozen=True)
class DrawerConfig:
    port: str = field(default_factory=default_port)
    baud_rate: int = 9600
    open_pulse_ms: int = 200
    polling_interval_ms: int = 500
    max_drawer_open_ms: int = 5000
    sensor_enabled: bool = False

    @classmethod
    def from_mapping(cls, values: dict | None, *, platform: str | None = None) -> "DrawerConfig":
        """Build a config from a dict, ignoring unknown keys and None values."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in (values or {}).items() if k in known and v is not None}
        if "port" not in kwargs:
            kwargs["port"] = default_port(platform)
        return cls(**kwargs)


@dataclass(frozen=True)
class DrawerEvent:
    type: str
    port: str
    data: Any = None
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "port": self.port,
            "data": self.data,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }


class SerialDrawerService:
    """
    Drives one cash drawer on one serial port.

    Args:
        config: DrawerConfig, a dict of overrides, or None for defaults.
        simulation: Force simulation on/off. None means "hardware when possible".
        platform: Platform name used to pick the default port (defaults to
            sys.platform). Unsupported platforms force simulation.
        serial_factory: Callable(port, baudrate=, timeout=) returning a port
            object; defaults to serial.Serial.
        sleep: Callable(seconds) used between open/close pulses.
        reconnect_delay_ms: Base reconnect delay, multiplied by the attempt number.
    """

    def __init__(
        self,
        config: DrawerConfig | dict | None = None,
        *,
        simulation: bool | None = None,
        platform: str | None = None,
        serial_factory: Callable[..., Any] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        reconnect_delay_ms: int = RECONNECT_DELAY_MS,
    ):
        self._platform = platform or sys.platform
        if isinstance(config, DrawerConfig):
            self._config = config
        else:
            self._config = DrawerConfig.from_mapping(config, platform=self._platform)

        if serial_factory is None and serial is not None:
            serial_factory = serial.Serial
        self._serial_factory = serial_factory
        self._sleep = sleep
        self._reconnect_delay_ms = reconnect_delay_ms

        self._lock = threading.RLock()
        self._listeners: dict[str, list[Callable[[DrawerEvent], None]]] = {}

        self._port = None
        self._connected = False
        self._drawer_open = False
        self._reconnect_attempts = 0

        self._polling_thread: threading.Thread | None = None
        self._polling_stop = threading.Event()
        self._reconnect_timer: threading.Timer | None = None
        self._auto_close_timers: list[threading.Timer] = []

        if self._platform not in SUPPORTED_PLATFORMS:
            logger.warning("Platform %s has no serial drawer support, using simulation", self._platform)
            self._simulation = True
        elif simulation is None:
            self._simulation = False
        else:
            self._simulation = bool(simulation)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> DrawerConfig:
        return self._config

    @property
    def is_drawer_open(self) -> bool:
        with self._lock:
            return self._drawer_open

    @property
    def port_name(self) -> str:
        return SIMULATION_PORT if self._simulation else self._config.port

    @property
    def is_connected(self) -> bool:
        with self._lock:
            return self._connected

    @property
    def is_simulation(self) -> bool:
        return self._simulation

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event_name: str, listener: Callable[[DrawerEvent], None]) -> None:
        """Subscribe to "event" (everything) or a lower-case event type."""
        with self._lock:
            self._listeners.setdefault(event_name, []).append(listener)

    def off(self, event_name: str, listener: Callable[[DrawerEvent], None]) -> None:
        with self._lock:
            listeners = self._listeners.get(event_name, [])
            if listener in listeners:
                listeners.remove(listener)

    def _emit(self, event_type: str, *, data: Any = None, error: str | None = None) -> DrawerEvent:
        event = DrawerEvent(type=event_type, port=self.port_name, data=data, error=error)
        with self._lock:
            targets = list(self._listeners.get("event", [])) + list(self._listeners.get(event_type.lower(), []))
        for listener in targets:
            try:
                listener(event)
            except Exception:
                logger.exception("Drawer event listener failed for %s", event_type)
        return event

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """
        Acquire the port, or fall back to simulation.

        Always ends CONNECTED: a missing pyserial or an open failure switches
        to simulation and still emits CONNECTED("SIMULATION").
        """
        with self._lock:
            if self._connected:
                return

            if self._simulation:
                self._connected = True
                simulated = True
            elif self._serial_factory is None:
                logger.warning("pyserial is not installed, cash drawer runs in simulation mode")
                self._simulation = True
                self._connected = True
                simulated = True
            else:
                simulated = False
                try:
                    self._port = self._serial_factory(
                        self._config.port,
                        baudrate=self._config.baud_rate,
                        timeout=1,
                    )
                except Exception as exc:
                    logger.warning(
                        "Could not open cash drawer on %s (%s), switching to simulation",
                        self._config.port, exc,
                    )
                    self._port = None
                    self._simulation = True
                    self._connected = True
                    simulated = True
                else:
                    self._connected = True
                    self._reconnect_attempts = 0

        self._emit(CONNECTED)
        if not simulated:
            logger.info("Cash drawer connected on %s", self._config.port)
            if self._config.sensor_enabled:
                self.start_polling()

    def disconnect(self) -> None:
        self.stop_polling()
        with self._lock:
            if self._reconnect_timer is not None:
                self._reconnect_timer.cancel()
                self._reconnect_timer = None
            # A cancelled auto-close would otherwise leave the drawer OPEN forever
            closed_pending = bool(self._auto_close_timers) and self._drawer_open
            for timer in self._auto_close_timers:
                timer.cancel()
            self._auto_close_timers = []
            if closed_pending:
                self._drawer_open = False

            port, self._port = self._port, None
            was_connected = self._connected
            self._connected = False

        if port is not None:
            try:
                port.close()
            except Exception:
                logger.exception("Error closing serial port %s", self._config.port)

        if closed_pending:
            self._emit(DRAWER_CLOSED, data={"simulated": True})
        if was_connected:
            self._emit(DISCONNECTED)

    def _handle_connection_error(self, exc: Exception) -> None:
        """
        Mark the port lost and schedule a reconnect.

        Delay grows linearly (attempt x RECONNECT_DELAY_MS); each scheduled
        attempt emits DISCONNECTED. After MAX_RECONNECT_ATTEMPTS the service
        emits a terminal ERROR and stops.
        """
        self.stop_polling()
        with self._lock:
            port, self._port = self._port, None
            self._connected = False
            if self._reconnect_timer is not None:
                self._reconnect_timer.cancel()
                self._reconnect_timer = None

            if self._reconnect_attempts >= MAX_RECONNECT_ATTEMPTS:
                give_up = True
                attempt = self._reconnect_attempts
            else:
                give_up = False
                self._reconnect_attempts += 1
                attempt = self._reconnect_attempts
                delay_s = attempt * self._reconnect_delay_ms / 1000.0
                self._reconnect_timer = threading.Timer(delay_s, self._attempt_reconnect)
                self._reconnect_timer.daemon = True
                self._reconnect_timer.start()

        if port is not None:
            try:
                port.close()
            except Exception:
                logger.debug("Ignoring close failure on lost port", exc_info=True)

        if give_up:
            logger.error("Cash drawer on %s unreachable after %s attempts", self._config.port, attempt)
            self._emit(ERROR, error=f"Max reconnect attempts reached: {exc}")
        else:
            logger.warning(
                "Cash drawer connection error on %s (%s), reconnect attempt %s in %sms",
                self._config.port, exc, attempt, attempt * self._reconnect_delay_ms,
            )
            self._emit(DISCONNECTED, data={"reconnect_attempt": attempt}, error=str(exc))

    def _attempt_reconnect(self) -> None:
        with self._lock:
            self._reconnect_timer = None
            if self._connected or self._simulation:
                return
            try:
                self._port = self._serial_factory(
                    self._config.port,
                    baudrate=self._config.baud_rate,
                    timeout=1,
                )
            except Exception as exc:
                failure = exc
            else:
                failure = None
                self._connected = True
                self._reconnect_attempts = 0

        if failure is not None:
            self._handle_connection_error(failure)
            return

        logger.info("Cash drawer reconnected on %s", self._config.port)
        self._emit(CONNECTED)
        if self._config.sensor_enabled:
            self.start_polling()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _write(self, payload: bytes) -> None:
        port = self._port
        if port is None:
            raise SerialConnectionError("Serial port is not open")
        try:
            port.write(payload)
            flush = getattr(port, "flush", None)
            if flush is not None:
                flush()
        except Exception as exc:
            self._handle_connection_error(exc)
            raise DrawerCommandError(f"Failed to write to {self._config.port}: {exc}") from exc

    def open_drawer(self, duration_ms: int | None = None) -> None:
        """
        Open the drawer.

        Hardware: open pulse, wait duration_ms (default open_pulse_ms), close pulse.
        Simulation: OPEN now, CLOSED automatically after max_drawer_open_ms.

        Raises:
            SerialConnectionError: hardware mode but not connected
            DrawerCommandError: write failed (a reconnect is scheduled)
        """
        if self._simulation:
            self._simulate_open()
            return

        if not self.is_connected:
            raise SerialConnectionError("Cash drawer is not connected")

        pulse_ms = self._config.open_pulse_ms if duration_ms is None else duration_ms
        self._write(OPEN_DRAWER_COMMAND)
        self._sleep(pulse_ms / 1000.0)
        self._write(CLOSE_DRAWER_COMMAND)

        with self._lock:
            was_open = self._drawer_open
            self._drawer_open = True
        if not was_open:
            self._emit(DRAWER_OPENED, data={"duration_ms": pulse_ms})

    def send_pulse(self) -> None:
        self.open_drawer(PULSE_DURATION_MS)

    def _simulate_open(self) -> None:
        with self._lock:
            self._drawer_open = True
            timer = threading.Timer(self._config.max_drawer_open_ms / 1000.0, self._simulate_close)
            timer.daemon = True
            self._auto_close_timers.append(timer)
        self._emit(DRAWER_OPENED, data={"simulated": True})
        timer.start()

    def _simulate_close(self) -> None:
        current = threading.current_thread()
        with self._lock:
            self._auto_close_timers = [t for t in self._auto_close_timers if t is not current]
            if not self._drawer_open:
                return
            # Another open is still pending its own auto-close
            if self._auto_close_timers:
                return
            self._drawer_open = False
        self._emit(DRAWER_CLOSED, data={"simulated": True})

    def get_drawer_status(self) -> dict:
        """
        Current drawer state: {"is_open", "is_sensor_connected"}.

        In hardware mode the status command is sent; an OPEN/CLOSE reply
        updates the known state.
        """
        if self._simulation or not self.is_connected:
            return {"is_open": self.is_drawer_open, "is_sensor_connected": False}

        self._write(STATUS_COMMAND)
        reply = self._read_reply()
        if reply:
            self._emit(DATA_RECEIVED, data=reply)
            self._apply_reply(reply)
        return {"is_open": self.is_drawer_open, "is_sensor_connected": self._config.sensor_enabled}

    def _read_reply(self) -> str:
        port = self._port
        if port is None:
            return ""
        waiting = getattr(port, "in_waiting", 0) or 0
        raw = port.read(waiting or 16)
        if not raw:
            return ""
        if isinstance(raw, bytes):
            return raw.decode("ascii", errors="ignore")
        return str(raw)

    def _apply_reply(self, reply: str) -> None:
        text = reply.upper()
        if "OPEN" in text:
            observed = True
        elif "CLOSE" in text:
            observed = False
        else:
            return

        with self._lock:
            changed = observed != self._drawer_open
            self._drawer_open = observed
        if changed:
            self._emit(DRAWER_OPENED if observed else DRAWER_CLOSED, data={"source": "sensor"})

    # ------------------------------------------------------------------
    # Sensor polling
    # ------------------------------------------------------------------

    def start_polling(self) -> None:
        with self._lock:
            if self._polling_thread is not None and self._polling_thread.is_alive():
                return
            self._polling_stop = threading.Event()
            self._polling_thread = threading.Thread(
                target=self._poll_loop,
                args=(self._polling_stop,),
                name="cash-drawer-poll",
                daemon=True,
            )
            self._polling_thread.start()

    def stop_polling(self) -> None:
        with self._lock:
            thread = self._polling_thread
            self._polling_thread = None
            self._polling_stop.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2)

    def _poll_loop(self, stop: threading.Event) -> None:
        interval = self._config.polling_interval_ms / 1000.0
        while not stop.wait(interval):
            try:
                self.get_drawer_status()
            except Exception:
                logger.debug("Drawer status poll failed", exc_info=True)

    # ------------------------------------------------------------------
    # Mode / config
    # ------------------------------------------------------------------

    def update_config(self, **changes) -> DrawerConfig:
        """
        Replace config values. Port or baud changes reconnect when connected.
        """
        known = {f.name for f in fields(DrawerConfig)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown drawer config keys: {', '.join(sorted(unknown))}")

        with self._lock:
            old = self._config
            self._config = replace(old, **{k: v for k, v in changes.items() if v is not None})
            needs_reconnect = self._connected and not self._simulation and (
                old.port != self._config.port or old.baud_rate != self._config.baud_rate
            )

        if needs_reconnect:
            self.disconnect()
            self.connect()
        return self._config

    def enable_simulation_mode(self) -> None:
        if self._simulation:
            return
        self.disconnect()
        self._simulation = True
        logger.info("Cash drawer simulation mode enabled")
        self.connect()

    def disable_simulation_mode(self) -> None:
        """
        Switch to hardware. If the port cannot be opened, connect() falls back
        to simulation again.
        """
        if self._platform not in SUPPORTED_PLATFORMS:
            raise HardwareNotAvailableError(f"No serial drawer support on {self._platform}")
        if not self._simulation:
            return
        self.disconnect()
        self._simulation = False
        self._reconnect_attempts = 0
        logger.info("Cash drawer simulation mode disabled")
        self.connect()

    def status(self) -> dict:
        return {
            "connected": self.is_connected,
            "simulation": self.is_simulation,
            "port": self.port_name,
            "is_open": self.is_drawer_open,
            "sensor_enabled": self._config.sensor_enabled,
            "reconnect_attempts": self._reconnect_attempts,
        }


_instance: SerialDrawerService | None = None
_instance_lock = threading.Lock()


def get_drawer_service(config: DrawerConfig | dict | None = None, **kwargs) -> SerialDrawerService:
    """Process-wide drawer; config is only used on first call."""
    global _instance
    with _instance_lock:
        if _instance is None:
            _instance = SerialDrawerService(config, **kwargs)
        return _instance


def create_drawer_service(config: DrawerConfig | dict | None = None, **kwargs) -> SerialDrawerService:
    return SerialDrawerService(config, **kwargs)


def reset_drawer_service() -> None:
    """Disconnect and drop the singleton (tests, config reload)."""
    global _instance
    with _instance_lock:
        instance, _instance = _instance, None
    if instance is not None:
        instance.disconnect()
