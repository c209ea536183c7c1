"""
Serial cash drawer driver, exercised against a fake port.
"""

import threading

import pytest

from barflow.services import drawer_service
from barflow.services.drawer_service import (
    CLOSE_DRAWER_COMMAND,
    OPEN_DRAWER_COMMAND,
    SIMULATION_PORT,
    STATUS_COMMAND,
    DrawerCommandError,
    DrawerConfig,
    HardwareNotAvailableError,
    SerialConnectionError,
    SerialDrawerService,
)


class FakePort:
    def __init__(self, port, baudrate=9600, timeout=1, fail_writes=False, reply=b""):
        self.port = port
        self.baudrate = baudrate
        self.written = []
        self.closed = False
        self.fail_writes = fail_writes
        self.reply = reply

    @property
    def in_waiting(self):
        return len(self.reply)

    def write(self, payload):
        if self.fail_writes:
            raise OSError("device unplugged")
        self.written.append(payload)

    def flush(self):
        pass

    def read(self, size):
        data, self.reply = self.reply, b""
        return data

    def close(self):
        self.closed = True


class FakeSerialFactory:
    def __init__(self, **port_kwargs):
        self.port_kwargs = port_kwargs
        self.ports = []
        self.fail_open = False

    def __call__(self, port, baudrate=9600, timeout=1):
        if self.fail_open:
            raise OSError(f"could not open {port}")
        fake = FakePort(port, baudrate=baudrate, timeout=timeout, **self.port_kwargs)
        self.ports.append(fake)
        return fake


def _service(factory=None, **kwargs):
    config = kwargs.pop("config", {"port": "/dev/ttyUSB0", "max_drawer_open_ms": 30})
    return SerialDrawerService(
        config,
        platform=kwargs.pop("platform", "linux"),
        serial_factory=factory,
        sleep=lambda seconds: None,
        reconnect_delay_ms=kwargs.pop("reconnect_delay_ms", 1),
        **kwargs,
    )


def _record(service):
    events = []
    service.on("event", events.append)
    return events


class TestConfig:
    def test_platform_default_ports(self):
        assert drawer_service.default_port("win32") == "COM1"
        assert drawer_service.default_port("linux") == "/dev/ttyUSB0"

    def test_from_mapping_ignores_unknown_and_none(self):
        config = DrawerConfig.from_mapping({"port": None, "baud_rate": 19200, "colour": "red"}, platform="win32")
        assert config.port == "COM1"
        assert config.baud_rate == 19200
        assert config.open_pulse_ms == 200


class TestConnection:
    def test_connect_opens_port(self):
        factory = FakeSerialFactory()
        service = _service(factory)
        events = _record(service)

        service.connect()

        assert service.is_connected
        assert not service.is_simulation
        assert factory.ports[0].port == "/dev/ttyUSB0"
        assert [e.type for e in events] == ["CONNECTED"]
        service.disconnect()

    def test_open_failure_falls_back_to_simulation(self):
        factory = FakeSerialFactory()
        factory.fail_open = True
        service = _service(factory)
        events = _record(service)

        service.connect()

        assert service.is_connected
        assert service.is_simulation
        assert service.port_name == SIMULATION_PORT
        assert events[0].port == SIMULATION_PORT
        service.disconnect()

    def test_missing_pyserial_falls_back_to_simulation(self, monkeypatch):
        monkeypatch.setattr(drawer_service, "serial", None)
        service = _service(None)
        service.connect()
        assert service.is_simulation
        service.disconnect()

    def test_unsupported_platform_forces_simulation(self):
        service = _service(FakeSerialFactory(), platform="darwin", simulation=False)
        assert service.is_simulation
        with pytest.raises(HardwareNotAvailableError):
            service.disable_simulation_mode()

    def test_disconnect_closes_port(self):
        factory = FakeSerialFactory()
        service = _service(factory)
        service.connect()
        events = _record(service)

        service.disconnect()

        assert factory.ports[0].closed
        assert not service.is_connected
        assert [e.type for e in events] == ["DISCONNECTED"]


class TestCommands:
    def test_open_sends_open_then_close(self):
        factory = FakeSerialFactory()
        service = _service(factory)
        service.connect()
        events = _record(service)

        service.open_drawer()

        assert factory.ports[0].written == [OPEN_DRAWER_COMMAND, CLOSE_DRAWER_COMMAND]
        assert service.is_drawer_open
        assert [e.type for e in events] == ["DRAWER_OPENED"]
        service.disconnect()

    def test_open_requires_connection(self):
        service = _service(FakeSerialFactory())
        with pytest.raises(SerialConnectionError):
            service.open_drawer()

    def test_write_failure_schedules_reconnect(self):
        factory = FakeSerialFactory(fail_writes=True)
        service = _service(factory, reconnect_delay_ms=60000)
        service.connect()
        events = _record(service)

        with pytest.raises(DrawerCommandError):
            service.open_drawer()

        assert not service.is_connected
        assert service.reconnect_attempts == 1
        assert events[-1].type == "DISCONNECTED"
        assert events[-1].data == {"reconnect_attempt": 1}
        service.disconnect()

    def test_reconnect_gives_up_after_three_attempts(self):
        factory = FakeSerialFactory(fail_writes=True)
        service = _service(factory)
        service.connect()
        factory.fail_open = True

        gave_up = threading.Event()
        errors = []

        def on_error(event):
            errors.append(event)
            gave_up.set()

        service.on("error", on_error)

        with pytest.raises(DrawerCommandError):
            service.open_drawer()

        assert gave_up.wait(timeout=5)
        assert service.reconnect_attempts == 3
        assert "Max reconnect attempts reached" in errors[0].error
        assert not service.is_connected

    def test_reconnect_recovers(self):
        factory = FakeSerialFactory(fail_writes=True)
        service = _service(factory)
        service.connect()
        factory.port_kwargs = {}

        connected = threading.Event()
        service.on("connected", lambda event: connected.set())

        with pytest.raises(DrawerCommandError):
            service.open_drawer()

        assert connected.wait(timeout=5)
        assert service.is_connected
        assert service.reconnect_attempts == 0
        service.disconnect()

    def test_status_reply_updates_state(self):
        factory = FakeSerialFactory(reply=b"OPEN")
        service = _service(factory, config={"port": "/dev/ttyS0", "sensor_enabled": False})
        service.connect()

        status = service.get_drawer_status()

        assert factory.ports[0].written == [STATUS_COMMAND]
        assert status["is_open"] is True
        service.disconnect()


class TestSimulation:
    def test_simulated_open_closes_itself(self):
        service = _service(None, simulation=True)
        service.connect()
        closed = threading.Event()
        service.on("drawer_closed", lambda event: closed.set())

        service.open_drawer()

        assert service.is_drawer_open
        assert closed.wait(timeout=5)
        assert not service.is_drawer_open
        service.disconnect()

    def test_disconnect_closes_pending_simulated_open(self):
        service = _service(None, simulation=True)
        service.connect()
        events = _record(service)

        service.open_drawer()
        service.disconnect()

        assert not service.is_drawer_open
        assert [e.type for e in events] == ["DRAWER_OPENED", "DRAWER_CLOSED", "DISCONNECTED"]

        service.connect()
        service.open_drawer()
        assert service.is_drawer_open
        assert events[-1].type == "DRAWER_OPENED"
        service.disconnect()
        assert not service.is_drawer_open

    def test_toggle_simulation_mode(self):
        factory = FakeSerialFactory()
        service = _service(factory)
        service.connect()

        service.enable_simulation_mode()
        assert service.is_simulation
        assert factory.ports[0].closed

        service.disable_simulation_mode()
        assert not service.is_simulation
        assert service.is_connected
        assert len(factory.ports) == 2
        service.disconnect()

    def test_update_config_reconnects_on_port_change(self):
        factory = FakeSerialFactory()
        service = _service(factory)
        service.connect()

        service.update_config(port="/dev/ttyUSB1", baud_rate=19200)

        assert factory.ports[0].closed
        assert factory.ports[1].port == "/dev/ttyUSB1"
        assert factory.ports[1].baudrate == 19200
        service.disconnect()

    def test_update_config_rejects_unknown_keys(self):
        service = _service(None, simulation=True)
        with pytest.raises(ValueError):
            service.update_config(parity="N")


class TestSingleton:
    def test_get_drawer_service_is_shared(self):
        drawer_service.reset_drawer_service()
        try:
            first = drawer_service.get_drawer_service({"port": "COM3"}, simulation=True, platform="win32")
            second = drawer_service.get_drawer_service({"port": "COM9"})
            assert first is second
            assert first.config.port == "COM3"
        finally:
            drawer_service.reset_drawer_service()
