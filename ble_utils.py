# Author: easyble contributors

import asyncio
import inspect
from collections.abc import Mapping

from bleak import BleakScanner
from bleak.uuids import normalize_uuid_16, normalize_uuid_str, uuid16_dict

from ble_config import DEFAULT_SCAN_TIMEOUT
from ble_errors import BLEError, BLEErrorKind
from logging_setup import get_logger

logger = get_logger(__name__)

SELECTOR_HINT = "options = {'filters': [{'services': [service_uuid]}]}"

# GATT assigned names as used by Web Bluetooth, e.g. "heart_rate" -> 0x180d
ASSIGNED_NAMES = {}
for _number, _name in sorted(uuid16_dict.items()):
    ASSIGNED_NAMES.setdefault(_name.lower().replace(" ", "_"), normalize_uuid_16(_number))


def normalize_uuid(value) -> str:
    """
    Return the lower-case 128-bit form of a service or characteristic id.

    Accepts full UUIDs in any case, 16/32-bit short forms ("2A37",
    "0000180d") and GATT assigned names ("heart_rate").

    Raises:
        ValueError: value is not a recognisable UUID
    """
    text = str(value).strip().lower()
    if text in ASSIGNED_NAMES:
        return ASSIGNED_NAMES[text]
    if text.startswith("0x"):
        text = text[2:]
    return normalize_uuid_str(text)


# Criteria a filter may carry; "namePrefix" is accepted as written for Web Bluetooth
FILTER_KEYS = ("services", "name", "name_prefix")
FILTER_ALIASES = {"namePrefix": "name_prefix"}


def build_scan_filters(selector):
    """
    Turn a connect() selector into the target service and scan filters.

    Args:
        selector: A service id string, or a mapping
                  {"filters": [{"services": [...]}, {"name_prefix": "..."}]}

    Returns:
        (service_uuid, filters) with every service id normalized

    Raises:
        BLEError: INVALID_SELECTOR when the selector has no usable service
                  or a filter has no criterion
    """
    if isinstance(selector, str):
        service_uuid = _normalize_service(selector)
        return service_uuid, [{"services": [service_uuid]}]

    if not isinstance(selector, Mapping) or not selector.get("filters"):
        raise BLEError(
            BLEErrorKind.INVALID_SELECTOR,
            f"Please pass in a service uuid string or option object, e.g. {SELECTOR_HINT}",
        )
    if not isinstance(selector["filters"], (list, tuple)):
        raise BLEError(
            BLEErrorKind.INVALID_SELECTOR,
            f"filters must be a list, e.g. {SELECTOR_HINT}",
        )

    filters = []
    service_uuid = None
    for f in selector["filters"]:
        new_f = _normalize_filter(f)
        if "services" in new_f and service_uuid is None:
            service_uuid = new_f["services"][0]
        filters.append(new_f)

    if service_uuid is None:
        raise BLEError(
            BLEErrorKind.INVALID_SELECTOR,
            f"Please pass an option object in this format: {SELECTOR_HINT}",
        )
    return service_uuid, filters


def _normalize_filter(f):
    if not isinstance(f, Mapping):
        raise BLEError(BLEErrorKind.INVALID_SELECTOR, f"Filter {f!r} is not a mapping")

    new_f = {}
    for key, value in f.items():
        key = FILTER_ALIASES.get(key, key)
        if key not in FILTER_KEYS:
            raise BLEError(BLEErrorKind.INVALID_SELECTOR, f"Unknown filter key {key!r} in {dict(f)!r}")
        if value:
            new_f[key] = value

    if not new_f:
        raise BLEError(BLEErrorKind.INVALID_SELECTOR, f"Filter {dict(f)!r} has no criteria")

    if "services" in new_f:
        services = new_f["services"]
        if not isinstance(services, (list, tuple)):
            raise BLEError(BLEErrorKind.INVALID_SELECTOR, f"services must be a list, got {services!r}")
        new_f["services"] = [_normalize_service(s) for s in services]
    return new_f


def _normalize_service(value) -> str:
    try:
        return normalize_uuid(value)
    except ValueError as e:
        raise BLEError(BLEErrorKind.INVALID_SELECTOR, f"Invalid service uuid {value!r}") from e


def matches_filters(device, adv, filters) -> bool:
    """A device matches if any filter matches; a filter matches if all its criteria do."""
    name = device.name or (adv.local_name if adv is not None else None)
    advertised = set()
    if adv is not None:
        advertised = {s.lower() for s in adv.service_uuids}

    for f in filters:
        if not any(f.get(key) for key in FILTER_KEYS):
            continue
        if f.get("services") and not set(f["services"]) <= advertised:
            continue
        if f.get("name") and name != f["name"]:
            continue
        if f.get("name_prefix") and not (name and name.startswith(f["name_prefix"])):
            continue
        return True
    return False


async def prompt_for_device(candidates):
    """
    Let the user pick one of the discovered devices on the console.

    Returns:
        The chosen device, or None if the user cancelled
    """
    if len(candidates) == 1:
        return candidates[0]

    print(f"\nFound {len(candidates)} devices:")
    for idx, device in enumerate(candidates, 1):
        print(f"  {idx}. {device.name or 'Unknown'} - {device.address}")

    while True:
        try:
            choice = await asyncio.to_thread(input, f"\nSelect device (1-{len(candidates)}): ")
            choice_idx = int(choice) - 1
            if 0 <= choice_idx < len(candidates):
                return candidates[choice_idx]
            print("Invalid selection. Try again.")
        except ValueError:
            print("Please enter a number.")
        except (EOFError, KeyboardInterrupt):
            return None


async def request_device(filters, chooser=None, timeout=DEFAULT_SCAN_TIMEOUT):
    """
    Scan for BLE devices matching filters and let the user choose one.

    Args:
        filters: Filter list produced by build_scan_filters()
        chooser: Function (plain or async) taking the list of matching
                 devices and returning one of them, or None to cancel.
                 Defaults to prompt_for_device.
        timeout: Scan duration in seconds

    Returns:
        The selected bleak BLEDevice

    Raises:
        BLEError: DEVICE_NOT_FOUND or DISCOVERY_CANCELLED
    """
    # Only narrow the platform scan when every filter names services
    service_uuids = None
    if all(f.get("services") for f in filters):
        service_uuids = sorted({s for f in filters for s in f["services"]})

    found = await BleakScanner.discover(timeout=timeout, return_adv=True, service_uuids=service_uuids)
    candidates = [d for d, adv in found.values() if matches_filters(d, adv, filters)]
    logger.debug("[BLE] %d of %d scanned device(s) match %s", len(candidates), len(found), filters)

    if not candidates:
        raise BLEError(BLEErrorKind.DEVICE_NOT_FOUND, "No devices found matching the filters")

    selected = (chooser or prompt_for_device)(candidates)
    if inspect.isawaitable(selected):
        selected = await selected
    if selected is None:
        raise BLEError(BLEErrorKind.DISCOVERY_CANCELLED, "Device selection cancelled by user")
    return selected
