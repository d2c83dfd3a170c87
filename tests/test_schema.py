"""Tests for the Schema snapshot."""

import pytest

from dataflow_bridge import ColumnNotFoundError, ConstructionError, DType, Schema, Table


class TestSchema:
    """Tests for schema construction and lookup."""

    def test_from_pairs(self):
        schema = Schema.from_pairs(["a", "b"], [DType.INT64, DType.STR])
        assert schema.columns() == ["a", "b"]
        assert schema.types() == [DType.INT64, DType.STR]
        assert len(schema) == 2
        assert list(schema) == [("a", DType.INT64), ("b", DType.STR)]
        assert "a" in schema
        assert "c" not in schema
        assert repr(schema) == "Schema(a: int64, b: str)"

    @pytest.mark.parametrize(
        "names,types",
        [
            (["a"], []),
            ([], []),
            (["a", "a"], [DType.INT64, DType.INT64]),
            ([""], [DType.INT64]),
            ([1], [DType.INT64]),
            (["a"], ["int64"]),
            (["a"], [DType.LAST_VLEN]),
            ("ab", [DType.INT64, DType.INT64]),
        ],
    )
    def test_from_pairs_invalid(self, names, types):
        with pytest.raises(ConstructionError):
            Schema.from_pairs(names, types)

    def test_dtype_of(self):
        schema = Schema.from_pairs(["a"], [DType.DATE])
        assert schema.dtype_of("a") is DType.DATE
        with pytest.raises(ColumnNotFoundError):
            schema.dtype_of("b")

    def test_equality(self):
        assert Schema.from_pairs(["a"], [DType.INT8]) == Schema.from_pairs(["a"], [DType.INT8])
        assert Schema.from_pairs(["a"], [DType.INT8]) != Schema.from_pairs(["a"], [DType.UINT8])

    def test_snapshot(self, trades):
        """Test a schema taken from a table is independent of it."""
        schema = trades.schema()
        schema.native.add_column("extra", DType.BOOL)
        assert "extra" in schema
        assert "extra" not in trades.schema()
        assert trades.columns() == ["id", "sym", "price"]

    def test_outlives_table(self):
        table = Table.new(["a"], [DType.INT64], 10, "a")
        schema = table.schema()
        table.close()
        assert schema.columns() == ["a"]
