#!/usr/bin/env python3
"""
gatt_codecs.py - Bit-level value codecs for GATT payloads

Bit addressing follows the Bluetooth convention: bit n of a payload is bit
(n % 8) of byte (n // 8), and multi-byte values are little-endian, so the
first bit of a range is the least significant bit of the value.

Provides:
- extract_bits(raw, offset, size)
- deserialize_integer(raw, offset, size, signed)
- deserialize_sfloat / deserialize_float / deserialize_double
- deserialize_string(raw, offset, encoding)
"""

import math
import struct
from typing import Union

from gatt_errors import EncodingError, RangeError


# Reserved values, keyed on the sign-extended mantissa and matched whatever
# the exponent. A 12-bit mantissa never reaches +2048, so SFLOAT has no NaN.
SFLOAT_SPECIAL = {
    2048: math.nan,
    2046: math.inf,
    -2048: -math.inf,
}

FLOAT_SPECIAL = {
    2 ** 23: math.nan,
    2 ** 23 - 2: math.inf,
    -2 ** 23: -math.inf,
}

Buffer = Union[bytes, bytearray, memoryview]


def extract_bits(raw: Buffer, offset: int, size: int) -> int:
    """
    Read `size` bits starting at bit `offset` as an unsigned integer.

    Raises RangeError when the range runs past the end of the payload.
    """
    end = offset + size
    available = len(raw) * 8
    if offset < 0 or end > available:
        raise RangeError(end, available)

    start_byte, shift = divmod(offset, 8)
    if shift == 0 and size % 8 == 0:
        # Byte aligned
        return int.from_bytes(raw[start_byte:start_byte + size // 8], 'little')

    end_byte = (end + 7) // 8
    chunk = int.from_bytes(raw[start_byte:end_byte], 'little')
    return (chunk >> shift) & ((1 << size) - 1)


def to_signed(value: int, size: int) -> int:
    """Two's complement interpretation of an unsigned `size`-bit value."""
    if value & (1 << (size - 1)):
        return value - (1 << size)
    return value


def deserialize_integer(raw: Buffer, offset: int, size: int, signed: bool) -> int:
    """Decode a `size`-bit integer at bit `offset`, sign extending if signed."""
    value = extract_bits(raw, offset, size)
    if signed:
        return to_signed(value, size)
    return value


def _medfloat(mantissa: int, exponent: int) -> float:
    if exponent < 0:
        # Division keeps 1234e-2 == 12.34 exactly as written
        return mantissa / 10 ** -exponent
    return float(mantissa * 10 ** exponent)


def deserialize_sfloat(raw: Buffer, offset: int = 0) -> float:
    """
    Decode an IEEE 11073 16-bit SFLOAT.

    Bits 0-11 hold a two's complement mantissa, bits 12-15 a two's complement
    base-10 exponent. Reserved mantissas map to +/-inf whatever the exponent.
    """
    mantissa = to_signed(extract_bits(raw, offset, 12), 12)
    exponent = to_signed(extract_bits(raw, offset + 12, 4), 4)
    if mantissa in SFLOAT_SPECIAL:
        return SFLOAT_SPECIAL[mantissa]
    return _medfloat(mantissa, exponent)


def deserialize_float(raw: Buffer, offset: int = 0) -> float:
    """Decode an IEEE 11073 32-bit FLOAT (24-bit mantissa, 8-bit exponent)."""
    mantissa = to_signed(extract_bits(raw, offset, 24), 24)
    exponent = to_signed(extract_bits(raw, offset + 24, 8), 8)
    if mantissa in FLOAT_SPECIAL:
        return FLOAT_SPECIAL[mantissa]
    return _medfloat(mantissa, exponent)


def deserialize_double(raw: Buffer, offset: int = 0) -> float:
    """Decode a little-endian IEEE 754 binary64 value."""
    bits = extract_bits(raw, offset, 64)
    return struct.unpack('<d', bits.to_bytes(8, 'little'))[0]


def _utf16_codec(data: bytes) -> str:
    if data[:2] in (b'\xff\xfe', b'\xfe\xff'):
        return 'utf-16'
    return 'utf-16-be'


def deserialize_string(raw: Buffer, offset: int, encoding: str) -> str:
    """
    Decode the bytes from bit `offset` to the end of the payload.

    encoding is 'utf-8' or 'utf-16'. UTF-16 honours a byte order mark and is
    big-endian otherwise. Trailing NULs are kept; see strip_nul().
    """
    available = len(raw) * 8
    if offset > available:
        raise RangeError(offset, available)

    data = bytes(raw[(offset + 7) // 8:])
    codec = _utf16_codec(data) if encoding == 'utf-16' else encoding
    try:
        return data.decode(codec)
    except UnicodeDecodeError as e:
        raise EncodingError(encoding, e.reason) from e


def strip_nul(text: str) -> str:
    """Drop the NUL padding some devices append to fixed-size strings."""
    return text.rstrip('\x00')
