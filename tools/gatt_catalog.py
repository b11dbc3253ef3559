#!/usr/bin/env python3
"""
gatt_catalog.py - Read-only characteristic specification lookup

Loads characteristic definitions (one YAML file per characteristic) and
serves them by UUID. The store is built once and never mutated afterwards,
so a single reader can back any number of concurrent parsers.

Usage:
    from gatt_catalog import SpecificationReader

    reader = SpecificationReader.from_directory('characteristics')
    characteristic = reader.get_characteristic('2A37')
"""

import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Optional, Union

import yaml

from gatt_errors import SpecificationError, UnknownCharacteristicError
from gatt_spec import Characteristic, characteristic_from_dict, normalize_uuid

logger = logging.getLogger(__name__)

CATALOG_ENV_VAR = 'GATT_CATALOG_DIR'


def default_catalog_dir() -> Path:
    """GATT_CATALOG_DIR if set, else the characteristics/ directory of the repo."""
    env_dir = os.environ.get(CATALOG_ENV_VAR)
    if env_dir:
        return Path(env_dir)
    return Path(__file__).resolve().parent.parent / 'characteristics'


def load_characteristic_file(path: Union[str, Path]) -> Characteristic:
    """Load one characteristic definition from a YAML (or JSON) file."""
    path = Path(path)
    try:
        with open(path) as f:
            spec = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SpecificationError(f"Cannot parse {path}: {e}") from e

    if not isinstance(spec, dict):
        raise SpecificationError(f"{path}: expected a mapping, got {type(spec).__name__}")
    return characteristic_from_dict(spec)


class SpecificationReader:
    """Immutable UUID -> Characteristic store."""

    def __init__(self, characteristics: Iterable[Characteristic] = ()):
        store: Dict[str, Characteristic] = {}
        for characteristic in characteristics:
            uuid = normalize_uuid(characteristic.uuid)
            if uuid in store:
                raise SpecificationError(
                    f"Duplicate characteristic {uuid}: "
                    f"'{store[uuid].name}' and '{characteristic.name}'",
                    characteristic.name,
                )
            store[uuid] = characteristic
        self._characteristics = MappingProxyType(store)

    @classmethod
    def from_directory(cls, directory: Optional[Union[str, Path]] = None) -> 'SpecificationReader':
        """Load every *.yaml / *.yml / *.json file in directory."""
        directory = Path(directory) if directory is not None else default_catalog_dir()
        if not directory.is_dir():
            raise SpecificationError(f"Characteristic catalog not found: {directory}")

        paths = sorted(p for p in directory.iterdir()
                       if p.suffix.lower() in ('.yaml', '.yml', '.json'))
        reader = cls(load_characteristic_file(p) for p in paths)
        logger.info("Loaded %d characteristics from %s", len(reader), directory)
        return reader

    @classmethod
    def from_dicts(cls, specs: Iterable[Dict[str, Any]]) -> 'SpecificationReader':
        return cls(characteristic_from_dict(spec) for spec in specs)

    def get_characteristic(self, uuid: Any) -> Characteristic:
        key = normalize_uuid(uuid)
        try:
            return self._characteristics[key]
        except KeyError:
            raise UnknownCharacteristicError(str(uuid)) from None

    def is_known_characteristic(self, uuid: Any) -> bool:
        return normalize_uuid(uuid) in self._characteristics

    def is_valid_for_read(self, uuid: Any) -> bool:
        return self.is_known_characteristic(uuid) and self.get_characteristic(uuid).valid_for_read

    def __contains__(self, uuid: Any) -> bool:
        return self.is_known_characteristic(uuid)

    def __len__(self) -> int:
        return len(self._characteristics)

    def __iter__(self) -> Iterator[Characteristic]:
        return iter(self._characteristics.values())
