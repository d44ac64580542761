"""
stock_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the only way the scripts and applications
    obtain configuration.  The kernel never imports this package; callers
    pass the relevant values (database URL, lock_balance_rows, default
    units) into kernel constructors.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- unknown keys or wrongly typed values.

Audit relevance:
    Every successful load emits a ``STOCK_CONFIG_TRACE`` log entry with the
    config id, version, source path and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from stock_config.loader import compute_checksum, load_config_file
from stock_config.schema import (
    DatabaseConfig,
    LedgerConfig,
    LoggingConfig,
    StockConfig,
    UomConfig,
)

_logger = logging.getLogger("stock_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> StockConfig:
    """
    Load and validate the active configuration.

    Args:
        config_path: YAML file to load.  Defaults to
            stock_config/sets/default.yaml.

    Returns:
        Frozen StockConfig with its checksum filled in.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config_file(path)

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "config_path": str(path),
            "checksum": config.checksum,
        },
    )
    return config


__all__ = [
    "get_active_config",
    "compute_checksum",
    "StockConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "LedgerConfig",
    "UomConfig",
    "DEFAULT_CONFIG_PATH",
]
