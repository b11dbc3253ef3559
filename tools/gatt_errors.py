"""
gatt_errors.py - Error types raised while decoding GATT characteristic values

All errors derive from ValueError, so code that only expects the plain
ValueError raised by the rest of the tools keeps working.
"""

from typing import Optional


class GattParserError(ValueError):
    """Base class for every decode failure."""


class SpecificationError(GattParserError):
    """Characteristic specification cannot be used for decoding."""

    def __init__(self, message: str, characteristic: Optional[str] = None):
        super().__init__(message)
        self.characteristic = characteristic


class CharacteristicNotReadable(SpecificationError):
    """Characteristic is not marked valid for read."""

    def __init__(self, characteristic: str):
        super().__init__(f'Characteristic cannot be parsed: "{characteristic}".',
                         characteristic)


class UnknownCharacteristicError(SpecificationError):
    """No specification is registered for the requested UUID."""

    def __init__(self, uuid: str):
        super().__init__(f"Unknown characteristic: {uuid}")
        self.uuid = uuid


class RangeError(GattParserError):
    """
    Requested bit range is not covered by the payload.

    expected and available are bit counts: expected is the end of the range
    that was requested, available is the payload length in bits.
    """

    def __init__(self, expected: int, available: int, field: Optional[str] = None):
        super().__init__(expected, available, field)
        self.expected = expected
        self.available = available
        self.field = field

    def __str__(self) -> str:
        where = f"field '{self.field}': " if self.field else ""
        return (f"{where}payload too short: need {self.expected} bits, "
                f"got {self.available}")


class EncodingError(GattParserError):
    """Text field could not be decoded with its declared encoding."""

    def __init__(self, encoding: str, reason: str, field: Optional[str] = None):
        super().__init__(encoding, reason, field)
        self.encoding = encoding
        self.reason = reason
        self.field = field

    def __str__(self) -> str:
        where = f"field '{self.field}': " if self.field else ""
        return f"{where}cannot decode {self.encoding} text: {self.reason}"
