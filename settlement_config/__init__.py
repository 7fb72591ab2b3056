"""
settlement_config -- single public entrypoint for engine settings.

Responsibility:
    Provides ``get_active_settings()``, the only way services obtain
    ``EngineSettings`` from configuration files.  Engines never read files;
    they receive the settings object as an argument.

Architecture position:
    Configuration -- YAML-driven, sits above ``settlement_kernel`` and below
    ``settlement_services``.  The kernel MUST NEVER import from here.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``ConfigurationError`` -- values failed parsing or validation.

Audit relevance:
    Every successful call emits a ``SETTLEMENT_CONFIG_TRACE`` log entry with
    the config id, version and checksum of the source document.
"""

from __future__ import annotations

import logging
from pathlib import Path

from settlement_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_engine_settings,
)
from settlement_config.validator import validate_engine_settings
from settlement_kernel.domain.settings import EngineSettings

_logger = logging.getLogger("settlement_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_settings(
    set_name: str = "default",
    config_dir: Path | None = None,
    path: Path | None = None,
) -> EngineSettings:
    """Load, validate and return engine settings.

    Args:
        set_name: Settings file stem inside ``config_dir``.
        config_dir: Override directory. Defaults to settlement_config/sets/.
        path: Explicit file path; takes precedence over ``set_name``.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        ConfigurationError: If a value is malformed or out of range.
    """
    source = path or (config_dir or _DEFAULT_CONFIG_DIR) / f"{set_name}.yaml"
    data = load_yaml_file(source)
    settings = validate_engine_settings(parse_engine_settings(data))

    _logger.info(
        "SETTLEMENT_CONFIG_TRACE",
        extra={
            "trace_type": "SETTLEMENT_CONFIG_TRACE",
            "config_id": data.get("config_id", source.stem),
            "config_version": data.get("version"),
            "checksum": compute_checksum(data),
            "source": str(source),
        },
    )
    return settings


__all__ = [
    "get_active_settings",
    "validate_engine_settings",
    "parse_engine_settings",
]
