"""
Stock configuration schema.

Frozen dataclasses the YAML configuration is parsed into.  Every field has
a default, so a section (or the whole file) may be omitted.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """Engine settings passed to stock_kernel.db.init_engine_from_url()."""

    url: str = "sqlite:///stock_ledger.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_pre_ping: bool = True
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerConfig:
    """
    Ledger behaviour.

    lock_balance_rows: take SELECT ... FOR UPDATE locks on the master rows
        whose balances a workflow checks.
    install_triggers: install the PostgreSQL immutability triggers when
        creating tables.
    """

    lock_balance_rows: bool = True
    install_triggers: bool = True


@dataclass(frozen=True)
class UomConfig:
    """Units used when master data or a request line does not name one."""

    packaging_default: str = "pcs"
    finished_goods_default: str = "cartons"


@dataclass(frozen=True)
class StockConfig:
    """Complete runtime configuration."""

    config_id: str = "default"
    version: int = 1
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    uom: UomConfig = field(default_factory=UomConfig)
    checksum: str = ""
