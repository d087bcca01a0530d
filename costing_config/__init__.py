"""
costing_config -- single public entrypoint for costing configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``CostingConfig`` by constructor injection and never read YAML files
    themselves.

Architecture position:
    Configuration -- sits above ``costing_kernel`` and ``costing_engines``
    and below ``costing_services``.  The kernel and engines MUST NEVER
    import from ``costing_config``; ``costing_config.bridges`` translates
    the configuration into engine inputs.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Deterministic checksum: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``KeyError`` / ``ValueError`` -- missing or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``COSTING_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying every recompute to the configuration that governed it.
"""

from __future__ import annotations

from pathlib import Path

from costing_config.loader import load_yaml_file, parse_config
from costing_config.schema import CostingConfig
from costing_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> CostingConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to the bundled defaults.yaml.

    Returns:
        A frozen, validated ``CostingConfig``.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value fails validation.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(config_path))

    _logger.info(
        "COSTING_CONFIG_TRACE",
        extra={
            "trace_type": "COSTING_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(config_path),
        },
    )
    return config


__all__ = ["CostingConfig", "DEFAULT_CONFIG_PATH", "get_active_config"]
