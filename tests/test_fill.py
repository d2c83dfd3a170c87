"""Tests for bulk column fills and tables built from data tables."""

import struct
from datetime import date, datetime, timezone

import pytest

from dataflow_bridge import (
    ConstructionError,
    ConversionError,
    DType,
    DTypeMismatchError,
    HandleReleasedError,
    OutOfBoundsError,
    Schema,
    Table,
)
from dataflow_bridge.fill import (
    fill_column_date,
    fill_column_dict,
    fill_column_memcpy,
    fill_column_time,
    is_not_null,
    make_data_table,
    table_extend,
)
from dataflow_bridge.native import GNode, Status


@pytest.fixture
def schema():
    return Schema.from_pairs(
        ["x", "day", "ts", "name"],
        [DType.INT32, DType.DATE, DType.TIME, DType.STR],
    )


@pytest.fixture
def data_table(schema):
    handle = make_data_table(schema, 4)
    yield handle
    handle.reset()


class TestNullmask:
    """Tests for LSB-first validity bitmaps."""

    def test_bits(self):
        mask = bytes([0b00000101, 0b00000001])
        assert [is_not_null(mask, i) for i in range(10)] == [
            True, False, True, False, False, False, False, False, True, False,
        ]


class TestMakeDataTable:
    """Tests for data table allocation."""

    def test_rows_start_absent(self, data_table):
        table = data_table.get()
        assert table.num_rows() == 4
        column = table.get_column("x")
        assert [column.get_nth_status(i) for i in range(4)] == [Status.INVALID] * 4

    def test_schema_is_copied(self, schema, data_table):
        assert data_table.get().get_schema() == schema.native
        assert data_table.get().get_schema() is not schema.native

    def test_table_extend(self, data_table):
        assert table_extend(data_table, 10) is data_table
        assert data_table.get().num_rows() == 10
        assert data_table.get().get_column("name").size() == 10


class TestFillMemcpy:
    """Tests for fixed-width raw fills."""

    def test_without_nullmask(self, data_table):
        column = data_table.get().get_column("x")
        fill_column_memcpy(column, struct.pack("<4i", 1, 2, 3, 4), None, 0, 4)
        assert [column.get_value(i) for i in range(4)] == [1, 2, 3, 4]

    def test_with_nullmask(self, data_table):
        """Test rows with a clear validity bit stay absent."""
        column = data_table.get().get_column("x")
        fill_column_memcpy(column, struct.pack("<3i", 7, 8, 9), bytes([0b101]), 1, 3)
        assert [column.get_value(i) for i in range(4)] == [None, 7, None, 9]

    def test_range_checked(self, data_table):
        column = data_table.get().get_column("x")
        with pytest.raises(OutOfBoundsError):
            fill_column_memcpy(column, struct.pack("<4i", 1, 2, 3, 4), None, 1, 4)

    def test_short_buffer(self, data_table):
        column = data_table.get().get_column("x")
        with pytest.raises(ConversionError):
            fill_column_memcpy(column, struct.pack("<2i", 1, 2), None, 0, 4)

    def test_rejects_date(self, data_table):
        """Test DATE cells must go through the day-count fill."""
        column = data_table.get().get_column("day")
        with pytest.raises(DTypeMismatchError, match="fill_column_date"):
            fill_column_memcpy(column, struct.pack("<4i", 19782, 0, 0, 0), None, 0, 4)
        assert column.get_value(0) is None

    def test_rejects_str(self, data_table):
        column = data_table.get().get_column("name")
        with pytest.raises(DTypeMismatchError):
            fill_column_memcpy(column, bytes(32), None, 0, 4)


class TestFillDateTime:
    """Tests for date and time fills."""

    def test_date_from_days(self, data_table):
        column = data_table.get().get_column("day")
        fill_column_date(column, [0, 19782, 0, -1], bytes([0b1011]), 0, 4)
        assert column.get_value(0) == date(1970, 1, 1)
        assert column.get_value(1) == date(2024, 2, 29)
        assert column.get_value(2) is None
        assert column.get_value(3) == date(1969, 12, 31)

    def test_date_wrong_type(self, data_table):
        with pytest.raises(DTypeMismatchError):
            fill_column_date(data_table.get().get_column("x"), [0], None, 0, 1)

    def test_time_from_millis(self, data_table):
        column = data_table.get().get_column("ts")
        fill_column_time(column, [0, 1_709_296_215_250], None, 0, 2)
        assert column.get_value(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert column.get_value(1) == datetime(2024, 3, 1, 12, 30, 15, 250000, tzinfo=timezone.utc)

    def test_time_wrong_type(self, data_table):
        with pytest.raises(DTypeMismatchError):
            fill_column_time(data_table.get().get_column("day"), [0], None, 0, 1)


class TestFillDict:
    """Tests for dictionary-encoded string fills."""

    def test_dict(self, data_table):
        column = data_table.get().get_column("name")
        fill_column_dict(column, b"foobarbaz", [0, 3, 6, 9], [2, 0, 2, 1], None, 0, 4)
        assert [column.get_value(i) for i in range(4)] == ["baz", "foo", "baz", "bar"]

    def test_every_entry_interned(self, data_table):
        """Test unreferenced dictionary entries still reach the vocab."""
        column = data_table.get().get_column("name")
        fill_column_dict(column, b"abc", [0, 1, 2, 3], [1], None, 0, 1)
        assert column.vocab.strings() == ["a", "b", "c"]

    def test_nullmask(self, data_table):
        column = data_table.get().get_column("name")
        fill_column_dict(column, b"ab", [0, 1, 2], [0, 0, 1], bytes([0b110]), 0, 3)
        assert [column.get_value(i) for i in range(3)] == [None, "a", "b"]

    def test_bad_index(self, data_table):
        column = data_table.get().get_column("name")
        with pytest.raises(OutOfBoundsError):
            fill_column_dict(column, b"ab", [0, 1, 2], [5], None, 0, 1)

    def test_wrong_type(self, data_table):
        with pytest.raises(DTypeMismatchError):
            fill_column_dict(data_table.get().get_column("x"), b"a", [0, 1], [0], None, 0, 1)


class TestFromDataTable:
    """Tests for tables that take over a filled data table."""

    def _filled(self):
        schema = Schema.from_pairs(["k", "v"], [DType.INT64, DType.STR])
        handle = make_data_table(schema, 3)
        table = handle.get()
        fill_column_memcpy(table.get_column("k"), struct.pack("<3q", 10, 20, 30), None, 0, 3)
        fill_column_dict(table.get_column("v"), b"xy", [0, 1, 2], [0, 1, 0], None, 0, 3)
        return handle

    def test_without_index(self):
        """Test rows are keyed by position and readable at once."""
        handle = self._filled()
        with Table.from_data_table(handle) as table:
            assert table.is_processed
            assert table.index is None
            assert table.size() == 3
            assert table.get_column("k").to_list() == [10, 20, 30]
            assert table.get_column("v").to_list() == ["x", "y", "x"]
            table.update({"k": [40]})
            table.process()
            assert table.size() == 4

    def test_with_index(self):
        handle = self._filled()
        with Table.from_data_table(handle, "k") as table:
            table.update({"k": [20], "v": ["z"]})
            table.process()
            assert table.size() == 3
            assert table.get_column("v").to_list() == ["x", "z", "x"]

    def test_takes_ownership(self):
        handle = self._filled()
        Table.from_data_table(handle).close()
        assert handle.is_valid is False
        with pytest.raises(HandleReleasedError):
            handle.get()

    def test_unknown_index(self):
        handle = self._filled()
        with pytest.raises(ConstructionError):
            Table.from_data_table(handle, "nope")
        assert handle.is_valid
        handle.reset()

    def test_failed_process_destroys_data(self, monkeypatch):
        """Test the consumed data table is freed even when processing fails."""

        def fail(self):
            raise RuntimeError("boom")

        handle = self._filled()
        column = handle.get().get_column("k")
        monkeypatch.setattr(GNode, "process_all", fail)
        with pytest.raises(RuntimeError, match="boom"):
            Table.from_data_table(handle)
        assert handle.is_valid is False
        assert column.destroyed
