# Author: easyble contributors

import inspect

from ble_errors import BLEError
from callbacks import track_task
from data_parser import parse_data
from logging_setup import get_logger

logger = get_logger(__name__)


def make_notification_listener(handler, data_type=None, tasks=None):
    """
    Build the callback passed to BleakClient.start_notify().

    Each notified value is decoded with parse_data(data_type) and forwarded
    to handler. Async handlers run as tasks kept in tasks until they finish.

    Args:
        handler: Function (plain or async) taking the decoded value
        data_type: Type tag understood by parse_data
        tasks: Set holding running handler tasks (the session's handler_tasks)

    Returns:
        A bleak notification callback taking (sender, data)
    """
    if tasks is None:
        tasks = set()

    def handle_notify(sender, data: bytearray):
        try:
            value = parse_data(data, data_type)
        except BLEError as e:
            logger.error("[BLE] Dropping notification from %s: %s", _describe(sender), e)
            return

        logger.debug("[BLE] Notification from %s: %s", _describe(sender), data.hex())
        outcome = handler(value)
        if inspect.isawaitable(outcome):
            track_task(outcome, tasks, f"Notification ({_describe(sender)})")

    return handle_notify


def _describe(sender):
    return getattr(sender, "uuid", sender)
