"""
Tests for YAML configuration loading (stock_config).
"""

import pytest
import yaml

from stock_config import DEFAULT_CONFIG_PATH, StockConfig, get_active_config
from stock_config.loader import compute_checksum, parse_config


def _write(tmp_path, data, name="config.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaultConfig:

    def test_default_file_loads(self):
        config = get_active_config()

        assert config.config_id == "default"
        assert config.version == 1
        assert config.database.url.startswith("sqlite:///")
        assert config.ledger.lock_balance_rows is True
        assert config.uom.packaging_default == "pcs"
        assert config.uom.finished_goods_default == "cartons"
        assert len(config.checksum) == 64

    def test_default_file_matches_dataclass_defaults(self):
        from_file = get_active_config(DEFAULT_CONFIG_PATH)
        from_nothing = parse_config({})

        assert from_file == from_nothing

    def test_load_is_traced(self, captured_logs):
        config = get_active_config()

        (trace,) = [r for r in captured_logs() if r["message"] == "STOCK_CONFIG_TRACE"]
        assert trace["checksum"] == config.checksum
        assert trace["config_id"] == "default"


class TestParsing:

    def test_partial_section_keeps_other_defaults(self, tmp_path):
        path = _write(tmp_path, {"database": {"url": "postgresql://u:p@db/stock"}})

        config = get_active_config(path)

        assert config.database.url == "postgresql://u:p@db/stock"
        assert config.database.pool_size == 20
        assert config.ledger == StockConfig().ledger

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert get_active_config(path).config_id == "default"

    def test_unknown_key(self, tmp_path):
        path = _write(tmp_path, {"ledger": {"lock_rows": False}})
        with pytest.raises(ValueError, match="unknown key"):
            get_active_config(path)

    def test_unknown_section(self, tmp_path):
        path = _write(tmp_path, {"metrics": {"enabled": True}})
        with pytest.raises(ValueError, match="unknown top-level key"):
            get_active_config(path)

    def test_wrong_type(self, tmp_path):
        path = _write(tmp_path, {"database": {"pool_size": "twenty"}})
        with pytest.raises(ValueError, match="database.pool_size"):
            get_active_config(path)

    @pytest.mark.parametrize(
        "section,key,value",
        [
            ("ledger", "lock_balance_rows", 1),
            ("database", "pool_size", True),
        ],
    )
    def test_bool_and_int_not_interchangeable(self, tmp_path, section, key, value):
        path = _write(tmp_path, {section: {key: value}})
        with pytest.raises(ValueError):
            get_active_config(path)

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            get_active_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_config_is_frozen(self):
        config = parse_config({})
        with pytest.raises(AttributeError):
            config.version = 2


class TestChecksum:

    def test_deterministic(self):
        assert parse_config({}).checksum == parse_config({}).checksum

    def test_key_order_irrelevant(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_changes_with_content(self):
        base = parse_config({})
        changed = parse_config({"ledger": {"lock_balance_rows": False}})
        assert base.checksum != changed.checksum

    def test_spelled_out_defaults_hash_the_same(self):
        explicit = parse_config({"uom": {"packaging_default": "pcs"}})
        assert explicit.checksum == parse_config({}).checksum
