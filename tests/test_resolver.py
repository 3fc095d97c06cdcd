import json
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from fileconnector.errors import ConfigurationError, NoDataError, UnknownFormatError
from fileconnector.metadata.fields import FieldType, MappingField, RowProjector
from fileconnector.metadata.resolver import resolve_fields, resolve_metadata


def _csv_dir(tmp_path: Path, text="id,symbol,price\n1,ABC,10.5\n") -> Path:
    d = tmp_path / "data"
    d.mkdir()
    (d / "trades.csv").write_text(text, encoding="utf-8")
    return d


# ==========================================================
# INFERENCE
# ==========================================================

def test_csv_fields_from_header(tmp_path: Path):
    d = _csv_dir(tmp_path)

    fields = resolve_fields([], {"path": str(d), "glob": "*.csv", "format": "csv"})

    assert [(f.name, f.type, f.external_name) for f in fields] == [
        ("id", FieldType.VARCHAR, "id"),
        ("symbol", FieldType.VARCHAR, "symbol"),
        ("price", FieldType.VARCHAR, "price"),
    ]


def test_csv_inference_ignores_typed_record_option(tmp_path: Path):
    d = _csv_dir(tmp_path)
    opts = {"path": str(d), "format": "csv", "recordType": "no_such_module:Nope"}

    # the sample is read untyped, so the record type is never imported
    assert [f.name for f in resolve_fields([], opts)] == ["id", "symbol", "price"]


def test_csv_duplicate_header_rejected(tmp_path: Path):
    d = _csv_dir(tmp_path, "id,id\n1,2\n")

    with pytest.raises(ConfigurationError, match="duplicate column 'id'"):
        resolve_fields([], {"path": str(d), "format": "csv"})


def test_json_fields_with_inferred_types(tmp_path: Path):
    d = tmp_path / "data"
    d.mkdir()
    rec = {"id": 1, "price": 2.5, "ok": True, "name": "x", "tags": ["a"], "missing": None}
    (d / "a.jsonl").write_text(json.dumps(rec) + "\n", encoding="utf-8")

    fields = resolve_fields([], {"path": str(d), "format": "json"})

    assert {f.name: f.type for f in fields} == {
        "id": FieldType.BIGINT,
        "price": FieldType.DOUBLE,
        "ok": FieldType.BOOLEAN,
        "name": FieldType.VARCHAR,
        "tags": FieldType.OBJECT,
        "missing": FieldType.OBJECT,
    }


def test_parquet_fields(tmp_path: Path):
    d = tmp_path / "data"
    d.mkdir()
    pq.write_table(pa.table({"id": [1], "symbol": ["A"]}), d / "t.parquet")

    fields = resolve_fields([], {"path": str(d), "format": "parquet"})

    assert [(f.name, f.type) for f in fields] == [("id", FieldType.BIGINT), ("symbol", FieldType.VARCHAR)]


def test_lines_single_field(tmp_path: Path):
    d = tmp_path / "data"
    d.mkdir()
    (d / "log.txt").write_text("hello\n", encoding="utf-8")

    fields = resolve_fields([], {"path": str(d), "format": "lines"})
    assert fields == [MappingField("line", FieldType.VARCHAR, "line")]


def test_no_files_means_no_data(tmp_path: Path):
    d = tmp_path / "empty"
    d.mkdir()

    with pytest.raises(NoDataError, match="No data found to infer schema"):
        resolve_fields([], {"path": str(d), "format": "csv"})


def test_empty_file_means_no_data(tmp_path: Path):
    d = _csv_dir(tmp_path, "")

    with pytest.raises(NoDataError, match="No data found to infer schema"):
        resolve_fields([], {"path": str(d), "format": "csv"})


def test_bad_options_fail_before_io(tmp_path: Path):
    with pytest.raises(UnknownFormatError):
        resolve_fields([], {"path": str(tmp_path / "nowhere"), "format": "avro"})


# ==========================================================
# USER FIELDS
# ==========================================================

def test_user_fields_get_default_external_name(tmp_path: Path):
    fields = resolve_fields(
        [MappingField("id", FieldType.BIGINT), MappingField("sym", FieldType.VARCHAR, "symbol")],
        {"path": str(tmp_path / "nowhere"), "format": "csv"},
    )

    assert [(f.name, f.external_name) for f in fields] == [("id", "id"), ("sym", "symbol")]


def test_user_fields_duplicate_name(tmp_path: Path):
    with pytest.raises(ConfigurationError, match="more than once"):
        resolve_fields(
            [MappingField("id"), MappingField("id", FieldType.INT)],
            {"path": str(tmp_path), "format": "json"},
        )


def test_nested_external_name_rejected(tmp_path: Path):
    with pytest.raises(ConfigurationError, match="Nested fields are not supported"):
        resolve_fields([MappingField("city", external_name="address.city")], {"path": str(tmp_path), "format": "json"})


def test_single_field_format_rejects_other_names(tmp_path: Path):
    with pytest.raises(ConfigurationError, match="only 'line'"):
        resolve_fields([MappingField("msg", external_name="message")], {"path": str(tmp_path), "format": "lines"})


# ==========================================================
# METADATA / PROJECTION
# ==========================================================

def test_metadata_projects_records(tmp_path: Path):
    opts = {"path": str(tmp_path), "format": "json"}
    fields = [MappingField("id", FieldType.INT), MappingField("px", FieldType.DOUBLE, "price")]

    meta = resolve_metadata(resolve_fields(fields, opts), opts)

    assert meta.plan.format_id == "json"
    assert meta.projector().project({"id": "7", "price": 1, "other": "x"}) == (7, 1.0)


def test_projector_addresses_csv_rows_by_header_name():
    proj = RowProjector([MappingField("a", FieldType.TINYINT), MappingField("b")])

    assert proj.project({"b": "x", "a": "5"}) == (5, "x")
    assert proj.project({"a": "5"}) == (5, None)
    with pytest.raises(ValueError, match="TINYINT"):
        proj.project({"a": "300", "b": "x"})


def test_csv_metadata_reads_with_header(tmp_path: Path):
    d = _csv_dir(tmp_path)
    opts = {"path": str(d), "format": "csv", "includesHeader": "false"}

    meta = resolve_metadata(resolve_fields([], opts), opts)

    assert meta.plan.format.includes_header is True
    assert meta.plan.format.named_rows is True


def test_csv_declared_field_missing_from_header(tmp_path: Path):
    d = _csv_dir(tmp_path)

    with pytest.raises(ConfigurationError, match=r"no column\(s\) 'qty'"):
        resolve_fields(
            [MappingField("id"), MappingField("qty", FieldType.INT)],
            {"path": str(d), "format": "csv"},
        )


def test_csv_header_with_utf8_bom(tmp_path: Path):
    d = tmp_path / "data"
    d.mkdir()
    (d / "bom.csv").write_bytes(b"\xef\xbb\xbfid,symbol\n1,ABC\n")
    opts = {"path": str(d), "format": "csv"}

    assert [f.name for f in resolve_fields([], opts)] == ["id", "symbol"]
    assert [f.name for f in resolve_fields([MappingField("id")], opts)] == ["id"]
