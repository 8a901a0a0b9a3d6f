# Author: easyble contributors

"""
HTTP bridge exposing one BleClient over REST.

bleak is asyncio based while Flask views are synchronous, so the client's
coroutines run on an event loop owned by a background thread.
"""

import asyncio
import time
from threading import Lock, Thread

from flask import Flask, jsonify, request

from ble_client import BleClient
from ble_config import BLEConfig
from ble_errors import BLEErrorKind
from logging_setup import get_logger, setup_logging

logger = get_logger(__name__)

REQUEST_TIMEOUT = 60  # Seconds a view waits for a BLE coroutine

STATUS_CODES = {
    BLEErrorKind.INVALID_SELECTOR: 400,
    BLEErrorKind.UNKNOWN_CHARACTERISTIC: 400,
    BLEErrorKind.INVALID_VALUE: 400,
    BLEErrorKind.NO_DEVICE: 409,
    BLEErrorKind.DISCOVERY_CANCELLED: 409,
    BLEErrorKind.DEVICE_NOT_FOUND: 404,
    BLEErrorKind.SERVICE_NOT_FOUND: 404,
    BLEErrorKind.CONNECTION_FAILED: 502,
    BLEErrorKind.OPERATION_FAILED: 502,
}


class BackgroundLoop:
    """An asyncio event loop running forever in a daemon thread."""

    def __init__(self):
        self.loop = None
        self._thread = None
        self._lock = Lock()

    def start(self):
        with self._lock:
            if self._thread is not None:
                return
            self.loop = asyncio.new_event_loop()
            self._thread = Thread(target=self._run, name="ble-loop", daemon=True)
            self._thread.start()

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def run(self, coro, timeout=REQUEST_TIMEOUT):
        """Run a coroutine from sync context and wait for its result."""
        self.start()
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return future.result(timeout=timeout)

    def stop(self):
        with self._lock:
            if self._thread is None:
                return
            self.loop.call_soon_threadsafe(self.loop.stop)
            self._thread.join(timeout=5)
            self._thread = None


def choose_device(address=None):
    """Headless chooser: the device with the given address, else the first candidate."""
    def chooser(candidates):
        if address is None:
            return candidates[0]
        wanted = address.upper()
        return next((d for d in candidates if d.address.upper() == wanted), None)
    return chooser


def describe_characteristic(char):
    return {
        "uuid": char.uuid,
        "description": getattr(char, "description", ""),
        "properties": list(getattr(char, "properties", [])),
    }


def jsonable(value):
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return value


def error_response(result):
    return jsonify({
        "error": result.error.message,
        "kind": result.kind.value,
    }), STATUS_CODES.get(result.kind, 500)


def create_app(client=None, config=None):
    """
    Build the Flask app.

    Args:
        client: BleClient to expose, a new one by default
        config: BLEConfig, read from the environment by default
    """
    config = config or BLEConfig.from_env()
    client = client or BleClient(chooser=choose_device(), config=config)
    loop = BackgroundLoop()
    notifications = {}  # Characteristic uuid -> latest decoded value

    app = Flask(__name__)
    app.extensions["easyble"] = {"client": client, "loop": loop, "notifications": notifications}

    def body():
        return request.get_json(silent=True) or {}

    @app.route('/')
    def home():
        return jsonify({
            "status": "BLE bridge is running",
            "endpoints": [
                "/ble/connect", "/ble/characteristics", "/ble/read", "/ble/write",
                "/ble/notify/start", "/ble/notify/stop", "/ble/data",
                "/ble/disconnect", "/ble/status",
            ],
        })

    @app.route('/ble/connect', methods=['POST'])
    def ble_connect():
        """Discover and connect to a device offering a service"""
        data = body()
        selector = {"filters": data["filters"]} if "filters" in data else data.get("service")
        client.chooser = choose_device(data.get("address"))

        result = loop.run(client.connect(selector))
        if not result.ok:
            return error_response(result)

        return jsonify({
            "status": "connected",
            "device": {"name": client.device.name, "address": client.device.address},
            "characteristics": [describe_characteristic(c) for c in result.value],
        })

    @app.route('/ble/characteristics', methods=['GET'])
    def ble_characteristics():
        return jsonify({
            "characteristics": [describe_characteristic(c) for c in client.characteristics],
        })

    @app.route('/ble/read', methods=['POST'])
    def ble_read():
        data = body()
        if not data.get("uuid"):
            return jsonify({"error": "uuid required"}), 400

        result = loop.run(client.read(data["uuid"], data.get("type")))
        if not result.ok:
            return error_response(result)
        return jsonify({"uuid": data["uuid"], "value": jsonable(result.value)})

    @app.route('/ble/write', methods=['POST'])
    def ble_write():
        data = body()
        if not data.get("uuid") or "value" not in data:
            return jsonify({"error": "uuid and value required"}), 400

        result = loop.run(client.write(data["uuid"], data["value"]))
        if not result.ok:
            return error_response(result)
        return jsonify({
            "status": "success",
            "uuid": data["uuid"],
            "value": data["value"],
            "timestamp": time.time(),
        })

    @app.route('/ble/notify/start', methods=['POST'])
    def ble_notify_start():
        """Subscribe to a characteristic; values are kept for /ble/data"""
        data = body()
        uuid = data.get("uuid")
        if not uuid:
            return jsonify({"error": "uuid required"}), 400

        def store(value):
            notifications[uuid] = {"value": jsonable(value), "timestamp": time.time()}

        result = loop.run(client.start_notifications(uuid, store, data.get("type")))
        if not result.ok:
            return error_response(result)
        return jsonify({"status": "subscribed", "uuid": uuid})

    @app.route('/ble/notify/stop', methods=['POST'])
    def ble_notify_stop():
        data = body()
        if not data.get("uuid"):
            return jsonify({"error": "uuid required"}), 400

        result = loop.run(client.stop_notifications(data["uuid"]))
        if not result.ok:
            return error_response(result)
        return jsonify({"status": "unsubscribed", "uuid": data["uuid"]})

    @app.route('/ble/data', methods=['GET'])
    def ble_data():
        """Latest value received for each subscribed characteristic"""
        return jsonify({"data": dict(notifications)})

    @app.route('/ble/disconnect', methods=['POST'])
    def ble_disconnect():
        result = loop.run(client.disconnect())
        if not result.ok:
            return error_response(result)
        return jsonify({"status": "disconnected" if result.value else "not connected"})

    @app.route('/ble/status', methods=['GET'])
    def ble_status():
        device = client.device
        return jsonify({
            "connected": client.is_connected(),
            "device": {"name": device.name, "address": device.address} if device else None,
            "service": client.service.uuid if client.service else None,
        })

    return app


def main():
    config = BLEConfig.from_env()
    setup_logging(level=config.log_level)
    app = create_app(config=config)
    logger.info("Starting BLE bridge on %s:%d", config.host, config.port)
    app.run(host=config.host, port=config.port)


if __name__ == '__main__':
    main()
