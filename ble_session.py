# Author: easyble contributors

import inspect

from ble_utils import normalize_uuid
from callbacks import track_task
from logging_setup import get_logger

logger = get_logger(__name__)


class BLESession:
    """State of one connect() attempt: device, GATT server, service and characteristics."""

    def __init__(self, device, service_uuid):
        self.device = device                # bleak BLEDevice chosen during discovery
        self.service_uuid = service_uuid    # Normalized uuid of the requested service
        self.client = None                  # BleakClient (GATT server connection)
        self.service = None                 # Selected BleakGATTService
        self.characteristics = []           # Characteristics of the selected service
        self.notification_handlers = {}     # Characteristic uuid -> active listener
        self.disconnect_handlers = []       # Called when the platform reports a disconnect
        self.handler_tasks = set()          # Running async notification/disconnect handlers

    @property
    def name(self):
        return self.device.name

    @property
    def address(self):
        return self.device.address

    @property
    def connected(self) -> bool:
        return bool(self.client is not None and self.client.is_connected)

    def find_characteristic(self, uuid):
        """Return the retained characteristic with this uuid, or None."""
        try:
            wanted = normalize_uuid(uuid)
        except ValueError:
            return None
        for char in self.characteristics:
            if normalize_uuid(char.uuid) == wanted:
                return char
        return None

    def handle_disconnected(self, client):
        """disconnected_callback given to BleakClient; fans out to registered handlers."""
        logger.info("[BLE] Device %s (%s) disconnected", self.name, self.address)
        for handler in list(self.disconnect_handlers):
            outcome = handler(client)
            if inspect.isawaitable(outcome):
                track_task(outcome, self.handler_tasks, "Disconnect")
