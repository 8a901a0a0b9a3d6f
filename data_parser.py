# Author: easyble contributors

"""
Conversions between raw characteristic values and Python values.

parse_data() turns the buffer read from (or notified by) a characteristic
into the representation named by a type tag. to_utf8_bytes() is the
inverse for text and is used on the write path.
"""

import struct

from ble_errors import BLEError, BLEErrorKind

# Fixed-width tags, read little-endian from offset 0 (GATT byte order)
STRUCT_FORMATS = {
    "uint8": "<B",
    "uint16": "<H",
    "uint32": "<I",
    "int8": "<b",
    "int16": "<h",
    "int32": "<i",
    "float32": "<f",
    "float64": "<d",
}


def parse_data(data, data_type=None):
    """
    Decode a characteristic value according to data_type.

    Args:
        data: Raw value (bytes, bytearray or memoryview)
        data_type: "string", "number", "array", one of STRUCT_FORMATS,
                   "float32array", or None for the raw buffer

    Returns:
        The decoded value. Unknown or missing tags return data unmodified.
    """
    tag = data_type.lower() if isinstance(data_type, str) else None

    if tag == "string":
        try:
            return bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise BLEError(BLEErrorKind.INVALID_VALUE, f"Value is not valid UTF-8: {e}") from e

    if tag == "number":
        if not len(data):
            raise BLEError(BLEErrorKind.INVALID_VALUE, "Cannot decode a number from an empty value")
        return int.from_bytes(bytes(data), "big")

    if tag == "array":
        return list(bytes(data))

    if tag == "float32array":
        count = len(data) // 4
        return list(struct.unpack(f"<{count}f", bytes(data)[:count * 4]))

    if tag in STRUCT_FORMATS:
        fmt = STRUCT_FORMATS[tag]
        try:
            return struct.unpack_from(fmt, bytes(data))[0]
        except struct.error as e:
            raise BLEError(
                BLEErrorKind.INVALID_VALUE,
                f"Value of {len(data)} byte(s) is too short for {tag}",
            ) from e

    return data


def to_utf8_bytes(text: str) -> bytes:
    """
    Encode text as UTF-8.

    Strings built from UTF-16 code units (e.g. "\\ud83d\\ude00") have their
    surrogate pairs joined into a single code point first, so those
    characters encode to 4 bytes. A lone surrogate cannot be encoded.
    """
    try:
        joined = text.encode("utf-16-le", "surrogatepass").decode("utf-16-le")
        return joined.encode("utf-8")
    except UnicodeError as e:
        raise BLEError(BLEErrorKind.INVALID_VALUE, f"Cannot encode {text!r} as UTF-8: {e}") from e
