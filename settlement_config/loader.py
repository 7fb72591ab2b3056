"""
Configuration Loader (``settlement_config.loader``).

Responsibility
--------------
Loads YAML settings files and parses them into the kernel's frozen
``EngineSettings``.  Callers obtain runtime settings through
``settlement_config.get_active_settings()``; this module is the parsing
step behind it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``engine`` section  -> ``KeyError`` propagates.
* Unparseable numbers  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from settlement_kernel.domain.settings import EngineSettings
from settlement_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(name: str, value: Any) -> Decimal:
    """Parse a Decimal from YAML; strings are preferred to avoid float drift."""
    if isinstance(value, bool):
        raise ConfigurationError(name, f"expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ConfigurationError(name, f"expected a number, got {value!r}") from exc


def parse_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ConfigurationError(name, f"expected an integer, got {value!r}")
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(name, f"expected an integer, got {value!r}") from exc


def parse_engine_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse ``EngineSettings`` from the ``engine`` section of a settings dict.

    Keys absent from the section keep their ``EngineSettings`` defaults.
    """
    section = data["engine"] or {}
    defaults = EngineSettings()
    return EngineSettings(
        epsilon=parse_decimal("epsilon", section.get("epsilon", defaults.epsilon)),
        infinite_capacity=parse_decimal(
            "infinite_capacity",
            section.get("infinite_capacity", defaults.infinite_capacity),
        ),
        augmentation_floor=parse_int(
            "augmentation_floor",
            section.get("augmentation_floor", defaults.augmentation_floor),
        ),
        transaction_id_prefix=str(
            section.get("transaction_id_prefix", defaults.transaction_id_prefix)
        ),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
