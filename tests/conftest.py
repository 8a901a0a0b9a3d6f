import pytest

import ble_client
import ble_utils
from ble_utils import normalize_uuid

HEART_RATE_SERVICE = normalize_uuid("heart_rate")
HEART_RATE_MEASUREMENT = normalize_uuid("2a37")
HEART_RATE_CONTROL_POINT = normalize_uuid("2a39")


class FakeDevice:
    def __init__(self, name, address):
        self.name = name
        self.address = address


class FakeAdvertisement:
    def __init__(self, service_uuids=(), local_name=None):
        self.service_uuids = list(service_uuids)
        self.local_name = local_name


class FakeCharacteristic:
    def __init__(self, uuid, properties=("read",), description=""):
        self.uuid = uuid
        self.properties = list(properties)
        self.description = description


class FakeService:
    def __init__(self, uuid, characteristics):
        self.uuid = uuid
        self.characteristics = characteristics


class FakeServiceCollection:
    def __init__(self, services):
        self.services = services

    def get_service(self, uuid):
        return next((s for s in self.services if s.uuid == uuid), None)


class FakePlatform:
    """In-memory stand-in for the bleak scanner and GATT client."""

    def __init__(self):
        self.advertised = {}        # address -> (device, advertisement)
        self.services = []
        self.values = {}            # characteristic uuid -> bytes returned by reads
        self.writes = []            # (characteristic uuid, data, response)
        self.calls = []             # Names of every platform call, in order
        self.scan_calls = []
        self.connect_error = None
        self.read_error = None
        self.clients = []

    def advertise(self, name, address, service_uuids):
        device = FakeDevice(name, address)
        self.advertised[address] = (device, FakeAdvertisement(service_uuids, name))
        return device

    def add_heart_rate_device(self):
        device = self.advertise("Polar H10", "AA:BB:CC:DD:EE:01", [HEART_RATE_SERVICE])
        self.services = [FakeService(HEART_RATE_SERVICE, [
            FakeCharacteristic(HEART_RATE_MEASUREMENT, ("read", "notify"), "Heart Rate Measurement"),
            FakeCharacteristic(HEART_RATE_CONTROL_POINT, ("write",), "Heart Rate Control Point"),
        ])]
        self.values[HEART_RATE_MEASUREMENT] = bytearray([0x00, 0x48])
        return device

    @property
    def client(self):
        return self.clients[-1] if self.clients else None

    def make_scanner(self):
        platform = self

        class FakeScanner:
            @staticmethod
            async def discover(timeout=5.0, return_adv=False, **kwargs):
                platform.calls.append("discover")
                platform.scan_calls.append({
                    "timeout": timeout,
                    "return_adv": return_adv,
                    "service_uuids": kwargs.get("service_uuids"),
                })
                return dict(platform.advertised)

        return FakeScanner

    def make_client_class(self):
        platform = self

        class FakeBleakClient:
            def __init__(self, device, disconnected_callback=None):
                self.device = device
                self.disconnected_callback = disconnected_callback
                self.is_connected = False
                self.services = FakeServiceCollection(platform.services)
                self.notify_callbacks = {}
                platform.clients.append(self)

            async def connect(self):
                platform.calls.append("connect")
                if platform.connect_error is not None:
                    raise platform.connect_error
                self.is_connected = True

            async def disconnect(self):
                platform.calls.append("disconnect")
                self.is_connected = False
                if self.disconnected_callback is not None:
                    self.disconnected_callback(self)

            async def read_gatt_char(self, char):
                platform.calls.append("read_gatt_char")
                if platform.read_error is not None:
                    raise platform.read_error
                return platform.values[char.uuid]

            async def write_gatt_char(self, char, data, response=None):
                platform.calls.append("write_gatt_char")
                platform.writes.append((char.uuid, bytes(data), response))

            async def start_notify(self, char, callback):
                platform.calls.append("start_notify")
                self.notify_callbacks[char.uuid] = (char, callback)

            async def stop_notify(self, char):
                platform.calls.append("stop_notify")
                self.notify_callbacks.pop(char.uuid, None)

            def notify(self, uuid, data):
                """Simulate a value-changed event from the device."""
                char, callback = self.notify_callbacks[uuid]
                callback(char, bytearray(data))

        return FakeBleakClient


@pytest.fixture(scope="function")
def platform(monkeypatch):
    """A fake bleak platform patched into the client modules."""

    fake = FakePlatform()
    monkeypatch.setattr(ble_utils, "BleakScanner", fake.make_scanner())
    monkeypatch.setattr(ble_client, "BleakClient", fake.make_client_class())
    return fake


@pytest.fixture(scope="function")
def client():
    """A BleClient that always picks the first scanned device."""

    return ble_client.BleClient(chooser=lambda candidates: candidates[0])
