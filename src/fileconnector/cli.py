from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from fileconnector.config import ConnectorSettings, load_source_yaml
from fileconnector.data.io import jsonl_append, records_to_parquet, rows_to_records
from fileconnector.engine.local import LocalEngine, map_stage
from fileconnector.errors import ConnectorError
from fileconnector.log import setup_logging
from fileconnector.metadata.fields import MappingField
from fileconnector.metadata.resolver import resolve_fields, resolve_metadata
from fileconnector.plans.builder import build_plan
from fileconnector.plans.load import dump_plan

app = typer.Typer(help="fileconnector CLI")


# ---- option helpers ----
def _parse_kv(items: Optional[List[str]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for kv in items or []:
        if "=" not in kv:
            raise typer.BadParameter(f"--option expects key=value, got: {kv}")
        k, v = kv.split("=", 1)
        if not k.strip():
            raise typer.BadParameter(f"--option has an empty key: {kv}")
        out[k.strip()] = v
    return out


def _source(option: Optional[List[str]], source: Optional[Path]):
    """Merge --source YAML (if any) with --option overrides."""
    options: Dict[str, Any] = {}
    fields: List[MappingField] = []
    if source is not None:
        sdef = load_source_yaml(source)
        options.update(sdef.options)
        fields = sdef.to_mapping_fields()
    options.update(_parse_kv(option))
    if not options:
        raise typer.BadParameter("Give connector options with --option key=value or --source")
    return options, fields


def _fail(e: Exception):
    typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _rows(options, fields, settings: ConnectorSettings):
    """Resolve fields and start a local read; returns (columns, projected row iterator)."""
    options = settings.apply_defaults(options)
    resolved = resolve_fields(fields, options)
    meta = resolve_metadata(resolved, options)
    projector = meta.projector()
    engine = LocalEngine.from_settings(settings)
    columns = [f.name for f in meta.fields]
    return columns, engine.read(meta.plan, [map_stage(projector.project)])


OPTION_HELP = "Connector option key=value (repeatable)"


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at INFO")):
    setup_logging("INFO" if verbose else None)


@app.command("plan")
def plan_cmd(
    option: List[str] = typer.Option(None, "--option", "-o", help=OPTION_HELP),
    source: Optional[Path] = typer.Option(None, "--source", "-s", help="Source definition YAML"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write plan JSON here"),
):
    """Build a read plan from connector options and print it."""
    try:
        options, _ = _source(option, source)
        plan = build_plan(options)
    except (ConnectorError, FileNotFoundError) as e:
        _fail(e)
    if out:
        dump_plan(plan, out)
        typer.secho(f"Wrote {out} ({plan.plan_id})", fg=typer.colors.GREEN)
    else:
        typer.echo(json.dumps(plan.to_dict(), indent=2, sort_keys=True))


@app.command("infer")
def infer_cmd(
    option: List[str] = typer.Option(None, "--option", "-o", help=OPTION_HELP),
    source: Optional[Path] = typer.Option(None, "--source", "-s", help="Source definition YAML"),
):
    """Validate declared fields, or infer them from one sampled record."""
    try:
        options, fields = _source(option, source)
        resolved = resolve_fields(fields, options)
    except (ConnectorError, FileNotFoundError) as e:
        _fail(e)
    typer.echo(json.dumps([f.to_dict() for f in resolved], indent=2))


@app.command("read")
def read_cmd(
    option: List[str] = typer.Option(None, "--option", "-o", help=OPTION_HELP),
    source: Optional[Path] = typer.Option(None, "--source", "-s", help="Source definition YAML"),
    out_jsonl: Optional[Path] = typer.Option(None, "--out-jsonl", help="Append records to this JSONL"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Settings profile: lenient | strict"),
    parallelism: int = typer.Option(2, "--parallelism", "-p", help="Reader threads"),
    limit: int = typer.Option(0, "--limit", help="Stop after N records (0 = no limit)"),
):
    """Read every matching file and print one JSON object per record."""
    n = 0
    try:
        options, fields = _source(option, source)
        settings = ConnectorSettings.from_config({"profile": profile, "local_parallelism": parallelism})
        columns, rows = _rows(options, fields, settings)
        for rec in rows_to_records(rows, columns):
            if out_jsonl:
                jsonl_append(str(out_jsonl), rec)
            else:
                typer.echo(json.dumps(rec, ensure_ascii=False, default=str))
            n += 1
            if limit and n >= limit:
                rows.close()
                break
    except (ConnectorError, FileNotFoundError) as e:
        _fail(e)
    if out_jsonl:
        typer.secho(f"Appended {n} record(s) to {out_jsonl}", fg=typer.colors.GREEN)


@app.command("export-parquet")
def export_parquet_cmd(
    out: Path = typer.Argument(..., help="Output parquet file"),
    option: List[str] = typer.Option(None, "--option", "-o", help=OPTION_HELP),
    source: Optional[Path] = typer.Option(None, "--source", "-s", help="Source definition YAML"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Settings profile: lenient | strict"),
):
    """Read every matching file into a single parquet table."""
    try:
        options, fields = _source(option, source)
        settings = ConnectorSettings.from_config({"profile": profile})
        columns, rows = _rows(options, fields, settings)
        n = records_to_parquet(rows_to_records(rows, columns), str(out), columns=columns)
    except (ConnectorError, FileNotFoundError) as e:
        _fail(e)
    typer.secho(f"Wrote {out} ({n} rows)", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
