"""Tabular export helpers used by the CLI."""
from .io import jsonl_append, records_to_parquet, rows_to_records
