from pathlib import Path

from fileconnector.engine.local import LocalEngine, map_stage
from fileconnector.metadata.fields import FieldType, MappingField
from fileconnector.metadata.resolver import resolve_fields, resolve_metadata


def _data_dir(tmp_path: Path) -> Path:
    d = tmp_path / "data"
    d.mkdir()
    (d / "jan.csv").write_text("id,city,amount\n1,Oslo,10\n2,Rome,20\n", encoding="utf-8")
    (d / "feb.csv").write_text("id,city,amount\n3,Lima,30\n", encoding="utf-8")
    (d / "readme.md").write_text("# not data\n", encoding="utf-8")
    return d


def test_csv_directory_inference_then_read(tmp_path: Path):
    """
    /data + *.csv: infer fields from the first file, then read all
    files and get one record per data row.
    """
    d = _data_dir(tmp_path)
    options = {"path": str(d), "glob": "*.csv", "format": "csv"}

    fields = resolve_fields([], options)
    assert [f.name for f in fields] == ["id", "city", "amount"]

    meta = resolve_metadata(fields, options)
    projector = meta.projector()
    rows = LocalEngine(local_parallelism=2).collect(meta.plan, [map_stage(projector.project)])

    assert sorted(rows) == [("1", "Oslo", "10"), ("2", "Rome", "20"), ("3", "Lima", "30")]


def test_declared_fields_convert_values(tmp_path: Path):
    d = _data_dir(tmp_path)
    options = {"path": str(d), "glob": "*.csv", "format": "csv", "includesHeader": "true"}
    declared = [
        MappingField("id", FieldType.BIGINT),
        MappingField("city"),
        MappingField("amount", FieldType.DECIMAL),
    ]

    meta = resolve_metadata(resolve_fields(declared, options), options)
    rows = LocalEngine().collect(meta.plan, [map_stage(meta.projector().project)])

    assert sorted(r[0] for r in rows) == [1, 2, 3]
    assert {str(r[2]) for r in rows} == {"10", "20", "30"}


def test_declared_fields_follow_header_names_not_positions(tmp_path: Path):
    d = _data_dir(tmp_path)
    options = {"path": str(d), "glob": "*.csv", "format": "csv"}
    declared = [MappingField("amount", FieldType.BIGINT), MappingField("place", external_name="city")]

    meta = resolve_metadata(resolve_fields(declared, options), options)
    rows = LocalEngine().collect(meta.plan, [map_stage(meta.projector().project)])

    assert sorted(rows) == [(10, "Oslo"), (20, "Rome"), (30, "Lima")]


def test_json_source_end_to_end(tmp_path: Path):
    d = tmp_path / "events"
    d.mkdir()
    (d / "e1.jsonl").write_text('{"user": "a", "n": 1}\n{"user": "b", "n": 2}\n', encoding="utf-8")
    options = {"path": str(d), "format": "json"}

    fields = resolve_fields([], options)
    assert {f.name: f.type for f in fields} == {"user": FieldType.VARCHAR, "n": FieldType.BIGINT}

    meta = resolve_metadata(fields, options)
    rows = LocalEngine().collect(meta.plan, [map_stage(meta.projector().project)])
    assert rows == [("a", 1), ("b", 2)]
