import json
from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from fileconnector.cli import app


runner = CliRunner()


def _data(tmp_path: Path) -> Path:
    d = tmp_path / "data"
    d.mkdir()
    (d / "a.csv").write_text("id,symbol\n1,ABC\n2,DEF\n", encoding="utf-8")
    (d / "b.csv").write_text("id,symbol\n3,GHI\n", encoding="utf-8")
    return d


def _json_lines(output: str):
    return [json.loads(l) for l in output.splitlines() if l.startswith("{")]


# ==========================================================
# plan / infer
# ==========================================================

def test_plan_prints_json(tmp_path: Path):
    result = runner.invoke(app, ["plan", "-o", "path=/data", "-o", "format=csv", "-o", "glob=*.csv"])

    assert result.exit_code == 0, result.output
    d = json.loads(result.output)
    assert d["path"] == "/data"
    assert d["format"]["id"] == "csv"


def test_plan_writes_file(tmp_path: Path):
    out = tmp_path / "plan.json"
    result = runner.invoke(app, ["plan", "-o", "path=/data", "-o", "format=lines", "--out", str(out)])

    assert result.exit_code == 0, result.output
    assert json.loads(out.read_text())["format"]["id"] == "lines"


def test_plan_rejects_malformed_option():
    result = runner.invoke(app, ["plan", "-o", "path"])

    assert result.exit_code != 0
    assert "key=value" in result.output


def test_plan_reports_configuration_error():
    result = runner.invoke(app, ["plan", "-o", "path=/data", "-o", "format=avro"])

    assert result.exit_code == 1
    assert "Unknown file format" in result.output


def test_infer_from_header(tmp_path: Path):
    d = _data(tmp_path)
    result = runner.invoke(app, ["infer", "-o", f"path={d}", "-o", "format=csv"])

    assert result.exit_code == 0, result.output
    assert [f["name"] for f in json.loads(result.output)] == ["id", "symbol"]


# ==========================================================
# read / export
# ==========================================================

def test_read_prints_records(tmp_path: Path):
    d = _data(tmp_path)
    result = runner.invoke(
        app, ["read", "-o", f"path={d}", "-o", "format=csv", "-o", "includesHeader=true", "-p", "1"]
    )

    assert result.exit_code == 0, result.output
    assert _json_lines(result.output) == [
        {"id": "1", "symbol": "ABC"},
        {"id": "2", "symbol": "DEF"},
        {"id": "3", "symbol": "GHI"},
    ]


def test_read_from_source_yaml_to_jsonl(tmp_path: Path):
    d = _data(tmp_path)
    src = tmp_path / "source.yaml"
    src.write_text(
        f"name: t\noptions:\n  path: {d}\n  format: csv\n  includesHeader: true\n"
        "fields:\n  - {name: id, type: BIGINT}\n",
        encoding="utf-8",
    )
    out = tmp_path / "out" / "rows.jsonl"

    result = runner.invoke(app, ["read", "--source", str(src), "--out-jsonl", str(out)])

    assert result.exit_code == 0, result.output
    rows = [json.loads(l) for l in out.read_text().splitlines()]
    assert sorted(r["id"] for r in rows) == [1, 2, 3]


def test_read_missing_data_fails(tmp_path: Path):
    result = runner.invoke(app, ["read", "-o", f"path={tmp_path / 'nothing'}", "-o", "format=csv"])

    assert result.exit_code == 1
    assert "No data found" in result.output


def test_export_parquet(tmp_path: Path):
    d = _data(tmp_path)
    out = tmp_path / "rows.parquet"
    result = runner.invoke(
        app, ["export-parquet", str(out), "-o", f"path={d}", "-o", "format=csv", "-o", "includesHeader=true"]
    )

    assert result.exit_code == 0, result.output
    df = pd.read_parquet(out)
    assert list(df.columns) == ["id", "symbol"]
    assert len(df) == 3
