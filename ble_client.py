# Author: easyble contributors

"""
BleClient - a small asyncio façade over bleak.

Usage:
    client = BleClient()
    result = await client.connect("heart_rate")
    if result.ok:
        hr = await client.read("2a37", "number")
        await client.start_notifications("2a37", print, "array")

Every operation returns a BLEResult. Failures are logged and carried in
BLEResult.error with a BLEErrorKind; nothing is raised to the caller.
"""

import asyncio
from collections.abc import Mapping

from bleak import BleakClient, BleakError

from ble_config import BLEConfig
from ble_errors import BLEError, BLEErrorKind, BLEResult
from ble_session import BLESession
from ble_utils import build_scan_filters, normalize_uuid, request_device
from callbacks import call_callback
from data_parser import parse_data, to_utf8_bytes
from logging_setup import get_logger
from notification_handler import make_notification_listener

logger = get_logger(__name__)

# Exceptions bleak backends raise for platform-side failures
PLATFORM_ERRORS = (BleakError, asyncio.TimeoutError, OSError)


class BleClient:
    """Connects to one BLE device and exposes its service's characteristics."""

    def __init__(self, chooser=None, config: BLEConfig | None = None):
        """
        Args:
            chooser: Function (plain or async) picking one device from the
                     scan candidates, None to cancel. Defaults to a console prompt.
            config: BLEConfig, defaults to BLEConfig()
        """
        self.chooser = chooser
        self.config = config or BLEConfig()
        self._session: BLESession | None = None

    @property
    def session(self):
        return self._session

    @property
    def device(self):
        return self._session.device if self._session else None

    @property
    def server(self):
        return self._session.client if self._session else None

    @property
    def service(self):
        return self._session.service if self._session else None

    @property
    def characteristics(self):
        return list(self._session.characteristics) if self._session else []

    async def connect(self, selector, callback=None) -> BLEResult:
        """
        Discover a device offering a service, connect and list its characteristics.

        Args:
            selector: Service uuid/name string, or {"filters": [...]} mapping
            callback: Optional function receiving the BLEResult

        Returns:
            BLEResult whose value is the list of characteristics
        """
        return await call_callback(self._connect(selector), callback)

    async def _connect(self, selector) -> BLEResult:
        try:
            service_uuid, filters = build_scan_filters(selector)
        except BLEError as e:
            return self._fail(e)

        logger.info("[BLE] Requesting Bluetooth Device...")
        try:
            device = await request_device(filters, self.chooser, self.config.scan_timeout)
        except BLEError as e:
            return self._fail(e)
        except PLATFORM_ERRORS as e:
            return self._fail(BLEError(BLEErrorKind.OPERATION_FAILED, f"Scan failed: {e}"))

        session = BLESession(device, service_uuid)
        self._session = session
        logger.info("[BLE] Got device %s", device.name)

        client = BleakClient(device, disconnected_callback=session.handle_disconnected)
        try:
            await client.connect()
        except PLATFORM_ERRORS as e:
            return self._fail(BLEError(
                BLEErrorKind.CONNECTION_FAILED, f"Could not connect to {device.name}: {e}"))
        session.client = client

        logger.info("[BLE] Getting Service...")
        try:
            service = client.services.get_service(service_uuid)
        except BleakError as e:
            return self._fail(BLEError(BLEErrorKind.SERVICE_NOT_FOUND, str(e)))
        if service is None:
            return self._fail(BLEError(
                BLEErrorKind.SERVICE_NOT_FOUND, f"No service {service_uuid} on {device.name}"))
        session.service = service

        logger.info("[BLE] Getting Characteristics...")
        session.characteristics = list(service.characteristics)
        logger.info("[BLE] Got %d characteristic(s)", len(session.characteristics))
        return BLEResult.success(list(session.characteristics))

    async def read(self, characteristic, data_type=None, callback=None) -> BLEResult:
        """
        Read and decode a characteristic value.

        data_type may be given as the callback, in which case the raw value is returned.
        """
        if callable(data_type):
            callback, data_type = data_type, None
        return await call_callback(self._read(characteristic, data_type), callback)

    async def _read(self, characteristic, data_type) -> BLEResult:
        try:
            char = self._resolve(characteristic)
            value = await self._session.client.read_gatt_char(char)
            return BLEResult.success(parse_data(value, data_type))
        except BLEError as e:
            return self._fail(e)
        except PLATFORM_ERRORS as e:
            return self._fail(BLEError(BLEErrorKind.OPERATION_FAILED, f"Read failed: {e}"))

    async def write(self, characteristic, value, response=None) -> BLEResult:
        """Write value, as UTF-8 text, to a characteristic."""
        text = value if isinstance(value, str) else str(value)
        try:
            char = self._resolve(characteristic)
            data = to_utf8_bytes(text)
            logger.info("[BLE] Writing %s to Characteristic...", text)
            ack = await self._session.client.write_gatt_char(char, data, response=response)
            return BLEResult.success(ack)
        except BLEError as e:
            return self._fail(e)
        except PLATFORM_ERRORS as e:
            return self._fail(BLEError(BLEErrorKind.OPERATION_FAILED, f"Write failed: {e}"))

    async def start_notifications(self, characteristic, handler, data_type=None) -> BLEResult:
        """Subscribe to a characteristic; handler receives each decoded value."""
        try:
            char = self._resolve(characteristic)
            listener = make_notification_listener(handler, data_type, self._session.handler_tasks)
            await self._session.client.start_notify(char, listener)
        except BLEError as e:
            return self._fail(e)
        except PLATFORM_ERRORS as e:
            return self._fail(BLEError(BLEErrorKind.OPERATION_FAILED, f"Start notifications failed: {e}"))

        self._session.notification_handlers[normalize_uuid(char.uuid)] = listener
        logger.info("[BLE] > Notifications started")
        return BLEResult.success(True)

    async def stop_notifications(self, characteristic) -> BLEResult:
        try:
            char = self._resolve(characteristic)
            await self._session.client.stop_notify(char)
        except BLEError as e:
            return self._fail(e)
        except PLATFORM_ERRORS as e:
            return self._fail(BLEError(BLEErrorKind.OPERATION_FAILED, f"Stop notifications failed: {e}"))

        listener = self._session.notification_handlers.pop(normalize_uuid(char.uuid), None)
        logger.info("[BLE] > Notifications stopped")
        return BLEResult.success(listener is not None)

    async def disconnect(self) -> BLEResult:
        """
        Disconnect from the current device.

        Returns:
            BLEResult with True if a disconnect was requested, False if there
            was nothing to disconnect
        """
        if self._session is None:
            return BLEResult.success(False)

        logger.info("[BLE] Disconnecting from Bluetooth Device...")
        if not self._session.connected:
            logger.info("[BLE] > Bluetooth Device is already disconnected")
            return BLEResult.success(False)

        try:
            await self._session.client.disconnect()
        except EOFError:
            # D-Bus connection already closed
            logger.debug("[BLE] D-Bus connection closed during disconnect")
        except PLATFORM_ERRORS as e:
            return self._fail(BLEError(BLEErrorKind.OPERATION_FAILED, f"Disconnect error: {e}"))
        return BLEResult.success(True)

    def on_disconnected(self, handler) -> BLEResult:
        """Register handler(client) to be called when the device disconnects."""
        if self._session is None:
            return self._fail(BLEError(BLEErrorKind.NO_DEVICE, "There is no device connected."))
        self._session.disconnect_handlers.append(handler)
        return BLEResult.success(True)

    def is_connected(self) -> bool:
        if self._session is None:
            return False
        return self._session.connected

    def _resolve(self, characteristic):
        """Map a uuid, mapping or characteristic object onto a retained characteristic."""
        if isinstance(characteristic, str):
            uuid = characteristic
        elif isinstance(characteristic, Mapping):
            uuid = characteristic.get("uuid")
        else:
            uuid = getattr(characteristic, "uuid", None)

        char = None
        if uuid and self._session is not None:
            char = self._session.find_characteristic(uuid)
        if char is None:
            raise BLEError(BLEErrorKind.UNKNOWN_CHARACTERISTIC, "The characteristic does not exist.")
        return char

    def _fail(self, error: BLEError) -> BLEResult:
        logger.error("[BLE] Error: %s", error)
        return BLEResult.failure(error)
