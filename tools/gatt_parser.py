#!/usr/bin/env python3
"""
gatt_parser.py - Generic GATT characteristic value parser

Decodes raw characteristic values into {field name: value} using the
characteristic's field layout. The Flags field (when present) is read first;
its bit values enable requirement tags, and fields whose requirements are
not all enabled are absent from the payload.

Usage:
    from gatt_catalog import SpecificationReader
    from gatt_parser import GattParser

    parser = GattParser(SpecificationReader.from_directory())
    parser.parse('2A37', bytes([20, 74, 13, 3]))
    # {'Heart Rate Measurement Value (uint8)': 74, 'RR-Interval': 781}

    python tools/gatt_parser.py 2A37 144A0D03 --json
"""

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

# Add tools to path
sys.path.insert(0, str(Path(__file__).parent))
from gatt_catalog import SpecificationReader
from gatt_codecs import (
    deserialize_double, deserialize_float, deserialize_integer,
    deserialize_sfloat, deserialize_string, extract_bits,
)
from gatt_errors import (
    CharacteristicNotReadable, EncodingError, GattParserError,
    RangeError, SpecificationError,
)
from gatt_spec import Characteristic, Field, FieldType, characteristic_from_dict

logger = logging.getLogger(__name__)


@dataclass
class DecodeResult:
    """Result of decoding a characteristic value."""
    data: Dict[str, Any]
    bits_consumed: int = 0
    error: Optional[GattParserError] = None
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None


def parse_flags(flags_field: Field, raw: bytes) -> List[int]:
    """
    Read each bit of the Flags bit field as an unsigned integer.

    Bits are consecutive from bit 0 of the payload, in declared order.
    """
    size = flags_field.format.size
    available = len(raw) * 8
    if size > available:
        raise RangeError(size, available, flags_field.name)

    values = []
    offset = 0
    for bit in flags_field.bit_field.bits:
        values.append(deserialize_integer(raw, offset, bit.size, signed=False))
        offset += bit.size
    return values


def resolve_flags(characteristic: Characteristic, raw: bytes) -> Set[str]:
    """Requirement tags enabled by the characteristic's Flags field."""
    flags_field = characteristic.flags
    if flags_field is None or flags_field.bit_field is None:
        return set()

    tags = set()
    values = parse_flags(flags_field, raw)
    for bit, value in zip(flags_field.bit_field.bits, values):
        requires = bit.get_requires(value)
        if requires is not None:
            tags.add(requires)
    logger.debug("%s flags %s -> %s", characteristic.name, values, sorted(tags))
    return tags


def _deserialize_real(raw: bytes, offset: int, size: int, signed: bool) -> int:
    # Python ints have no width limit, so the 32/64/wider tiers decode alike
    return deserialize_integer(raw, offset, size, signed)


def _deserialize_floating(raw: bytes, offset: int, size: int) -> float:
    if size == 16:
        return deserialize_sfloat(raw, offset)
    if size == 32:
        return deserialize_float(raw, offset)
    if size == 64:
        return deserialize_double(raw, offset)
    raise SpecificationError(f"Unknown bit size for float numbers: {size}")


def decode_field(field_def: Field, raw: bytes, offset: int) -> Any:
    """Decode one field at bit offset according to its format."""
    fmt = field_def.format
    # decimal_exponent is not applied; values are returned unscaled
    if fmt.type is FieldType.BOOLEAN:
        # 1-bit field, but the whole byte holding it must equal 1
        return extract_bits(raw, offset - offset % 8, 8) == 1
    if fmt.type is FieldType.UINT:
        return _deserialize_real(raw, offset, fmt.size, signed=False)
    if fmt.type is FieldType.SINT:
        return _deserialize_real(raw, offset, fmt.size, signed=True)
    if fmt.type is FieldType.FLOAT:
        return _deserialize_floating(raw, offset, fmt.size)
    if fmt.type is FieldType.UTF8S:
        return deserialize_string(raw, offset, 'utf-8')
    if fmt.type is FieldType.UTF16S:
        return deserialize_string(raw, offset, 'utf-16')
    raise SpecificationError(f"Unsupported field format: {fmt.type}")


def _walk(characteristic: Characteristic, raw: bytes) -> Tuple[Dict[str, Any], int]:
    if not characteristic.valid_for_read:
        logger.error('Characteristic cannot be parsed: "%s".', characteristic.name)
        raise CharacteristicNotReadable(characteristic.name)

    raw = bytes(raw)
    requires = resolve_flags(characteristic, raw)
    result: Dict[str, Any] = {}
    offset = 0

    for field_def in characteristic.fields:
        if field_def.is_flags:
            # Already read by resolve_flags; account for its bits once
            offset += field_def.format.size
            continue

        if field_def.requirements and not requires.issuperset(field_def.requirements):
            logger.debug("Skipping '%s': requires %s", field_def.name, list(field_def.requirements))
            continue

        try:
            result[field_def.name] = decode_field(field_def, raw, offset)
        except (RangeError, EncodingError) as e:
            e.field = field_def.name
            raise
        except SpecificationError as e:
            e.characteristic = characteristic.name
            raise

        if field_def.format.is_full_size:
            # Variable length field takes the rest of the payload
            return result, len(raw) * 8
        offset += field_def.format.size

    return result, offset


def parse_characteristic(characteristic: Characteristic, raw: bytes) -> Dict[str, Any]:
    """
    Decode raw bytes against a characteristic specification.

    Raises CharacteristicNotReadable, SpecificationError, RangeError or
    EncodingError. No partial result is returned on failure.
    """
    result, _ = _walk(characteristic, raw)
    return result


class GattParser:
    """
    Decodes characteristic values looked up by UUID.

    Holds no per-call state; one instance can serve concurrent callers.
    """

    def __init__(self, reader: SpecificationReader):
        self.reader = reader

    def parse(self, uuid: str, raw: bytes) -> Dict[str, Any]:
        """Decode raw, raising a GattParserError subclass on failure."""
        return parse_characteristic(self.reader.get_characteristic(uuid), raw)

    def decode(self, uuid: str, raw: bytes) -> DecodeResult:
        """Decode raw, reporting failure in the returned DecodeResult."""
        try:
            characteristic = self.reader.get_characteristic(uuid)
            data, consumed = _walk(characteristic, raw)
        except GattParserError as e:
            return DecodeResult(data={}, error=e, errors=[str(e)])
        return DecodeResult(data=data, bits_consumed=consumed)

    def is_known_characteristic(self, uuid: str) -> bool:
        return self.reader.is_known_characteristic(uuid)

    def is_valid_for_read(self, uuid: str) -> bool:
        return self.reader.is_valid_for_read(uuid)


def decode_payload(spec: Dict[str, Any], payload: bytes) -> Dict[str, Any]:
    """Convenience function to decode payload against a dict specification."""
    return parse_characteristic(characteristic_from_dict(spec), payload)


def parse_payload(payload: str) -> bytes:
    """Parse hex payload text ('14 4A 0D 03', '0x14,0x4A', '144A0D03')."""
    clean = payload.lower().replace(' ', '').replace('0x', '').replace(',', '')
    return bytes.fromhex(clean)


def main():
    parser = argparse.ArgumentParser(
        description='Decode a GATT characteristic value'
    )
    parser.add_argument('uuid', help='Characteristic UUID (e.g. 2A37)')
    parser.add_argument('payload', help='Payload as hex')
    parser.add_argument('--catalog',
                        help='Characteristic catalog directory (default: $GATT_CATALOG_DIR or characteristics/)')
    parser.add_argument('--json', action='store_true',
                        help='Output decoded fields as JSON')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    try:
        reader = SpecificationReader.from_directory(args.catalog)
        payload = parse_payload(args.payload)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    result = GattParser(reader).decode(args.uuid, payload)
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(result.data, indent=2))
    else:
        characteristic = reader.get_characteristic(args.uuid)
        print(f"{characteristic.name} ({characteristic.uuid})")
        for name, value in result.data.items():
            print(f"  {name}: {value}")


if __name__ == '__main__':
    main()
