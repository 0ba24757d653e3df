"""
stock_config -- single entrypoint for stock reporting configuration.

Responsibility:
    ``load_config()`` reads a YAML file (the packaged ``defaults.yaml``
    when no path is given) and returns a frozen ``StockConfiguration``
    holding the reporting and raw materials configs.

Architecture position:
    Configuration -- sits above ``stock_kernel`` and beside
    ``stock_modules``.  The kernel MUST NEVER import from ``stock_config``.

Invariants enforced:
    - Deterministic: the same YAML content always yields the same checksum.
    - Every section is validated by its dataclass ``__post_init__``.

Failure modes:
    - ``FileNotFoundError`` -- the path does not exist.
    - ``ValueError`` -- unknown sections or keys, or out-of-range values.

Audit relevance:
    Every successful ``load_config()`` call emits a ``STOCK_CONFIG_TRACE``
    log entry with the config_id, version, checksum and source path, tying
    a generated report to the configuration that shaped it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from stock_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_raw_materials,
    parse_reporting,
    validate_top_level,
)
from stock_kernel.logging_config import get_logger
from stock_modules.raw_materials.config import RawMaterialsConfig
from stock_modules.reporting.config import ReportingConfig

logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


@dataclass(frozen=True)
class StockConfiguration:
    """The loaded configuration set."""

    config_id: str
    version: int
    reporting: ReportingConfig
    raw_materials: RawMaterialsConfig
    checksum: str
    source_path: str


def load_config(path: Path | str | None = None) -> StockConfiguration:
    """
    Load and validate a configuration file.

    Args:
        path: YAML file to read.  Defaults to the packaged defaults.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file has unknown sections or keys, or a value
            fails validation.
    """
    source = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    data = load_yaml_file(source)
    validate_top_level(data)

    config = StockConfiguration(
        config_id=str(data.get("config_id", source.stem)),
        version=int(data.get("version", 1)),
        reporting=parse_reporting(data),
        raw_materials=parse_raw_materials(data),
        checksum=compute_checksum(data),
        source_path=str(source),
    )

    logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source_path": config.source_path,
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "StockConfiguration",
    "compute_checksum",
    "load_config",
]
