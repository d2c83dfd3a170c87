"""Shared fixtures."""

import pytest

from dataflow_bridge import Pool, Table
from dataflow_bridge.config import reset_settings


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Start every test from default settings, unaffected by the caller's environment."""
    for var in (
        "DATAFLOW_BRIDGE_DEFAULT_LIMIT",
        "DATAFLOW_BRIDGE_PRETTY_PRINT_ROWS",
        "DATAFLOW_BRIDGE_INITIAL_CAPACITY",
        "DATAFLOW_BRIDGE_GROWTH_FACTOR",
        "DATAFLOW_BRIDGE_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def pool():
    with Pool.create() as p:
        yield p


@pytest.fixture
def trades():
    """A processed table keyed by id with three rows."""
    with Table.new(["id", "sym", "price"], ["int64", "str", "float64"], 100, "id") as table:
        table.update(
            [
                {"id": 1, "sym": "AAPL", "price": 190.5},
                {"id": 2, "sym": "MSFT", "price": 410.25},
                {"id": 3, "sym": "AAPL", "price": 191.0},
            ]
        )
        table.process()
        yield table
