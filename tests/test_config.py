"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from dataflow_bridge import DType, Table
from dataflow_bridge.config import MAX_LIMIT, get_settings, reset_settings
from dataflow_bridge.native import NativeColumn


class TestSettings:
    """Tests for BridgeSettings."""

    def test_defaults(self):
        settings = get_settings()
        assert settings.default_limit == MAX_LIMIT
        assert settings.pretty_print_rows == 20
        assert settings.initial_capacity == 16
        assert settings.growth_factor == 2
        assert settings.log_level == "WARNING"

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_default_limit_from_env(self, monkeypatch):
        monkeypatch.setenv("DATAFLOW_BRIDGE_DEFAULT_LIMIT", "2")
        reset_settings()
        with Table.new(["a"], [DType.INT64], None, "a") as table:
            assert table.limit == 2
            table.update({"a": [1, 2, 3]})
            table.process()
            assert table.size() == 2

    def test_pretty_print_rows_from_env(self, monkeypatch, trades):
        monkeypatch.setenv("DATAFLOW_BRIDGE_PRETTY_PRINT_ROWS", "1")
        reset_settings()
        assert "(1 of 3 rows)" in trades.pretty_print()

    def test_initial_capacity_from_env(self, monkeypatch):
        monkeypatch.setenv("DATAFLOW_BRIDGE_INITIAL_CAPACITY", "3")
        reset_settings()
        assert NativeColumn(DType.INT64).capacity == 3

    @pytest.mark.parametrize(
        "var,value",
        [
            ("DATAFLOW_BRIDGE_DEFAULT_LIMIT", "0"),
            ("DATAFLOW_BRIDGE_DEFAULT_LIMIT", str(MAX_LIMIT + 1)),
            ("DATAFLOW_BRIDGE_GROWTH_FACTOR", "1"),
            ("DATAFLOW_BRIDGE_INITIAL_CAPACITY", "many"),
        ],
    )
    def test_invalid_env(self, monkeypatch, var, value):
        monkeypatch.setenv(var, value)
        reset_settings()
        with pytest.raises(ValidationError):
            get_settings()
