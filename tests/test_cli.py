"""Tests for the command-line entry point."""

import json

from dataflow_bridge.cli import main


class TestCli:
    """Tests for main()."""

    def test_dtypes(self, capsys):
        assert main(["--dtypes"]) == 0
        out = capsys.readouterr().out
        assert "DTYPE_INT64" in out
        assert "DTYPE_USER_VLEN" in out
        assert "DTYPE_LAST" not in out

    def test_definition_with_rows(self, capsys):
        rows = json.dumps([{"a": 1, "b": "x"}, {"a": 2, "b": "y"}])
        assert main(["table t (a: int64, b: str)", "--rows", rows]) == 0
        out = capsys.readouterr().out
        assert out.splitlines()[0].split(" | ")[0].strip() == "a"
        assert "(2 of 2 rows)" in out

    def test_single_row_object(self, capsys):
        assert main(["table t (a: int64)", "-r", '{"a": 7}', "-n", "0"]) == 0
        assert "(0 of 1 row)" in capsys.readouterr().out

    def test_rows_file(self, tmp_path, capsys):
        path = tmp_path / "rows.json"
        path.write_text(json.dumps([{"k": i} for i in range(5)]))
        assert main(["table t (k: int32) limit 3", "-f", str(path)]) == 0
        assert "(3 of 3 rows)" in capsys.readouterr().out

    def test_missing_definition(self, capsys):
        assert main([]) == 1
        assert "definition is required" in capsys.readouterr().err

    def test_missing_rows_file(self, tmp_path, capsys):
        assert main(["table t (a: int64)", "-f", str(tmp_path / "nope.json")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_bad_definition(self, capsys):
        assert main(["table t (a int64)"]) == 1
        assert capsys.readouterr().err.startswith("Error:")

    def test_bad_rows(self, capsys):
        assert main(["table t (a: int64)", "-r", "[1, 2]"]) == 1
        assert "JSON object" in capsys.readouterr().err

    def test_unconvertible_value(self, capsys):
        assert main(["table t (a: int64, b: int8)", "-r", '{"a": 1, "b": 1000}']) == 1
        assert "Error:" in capsys.readouterr().err
