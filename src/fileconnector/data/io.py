from __future__ import annotations
import json, pathlib
from typing import Any, Dict, Iterable, Sequence
import pandas as pd

def jsonl_append(path: str, rec: Dict[str, Any]):
    p = pathlib.Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("a", encoding="utf-8") as f:
        f.write(json.dumps(rec, ensure_ascii=False, default=str) + "\n")

def rows_to_records(rows: Iterable[Sequence[Any]], columns: Sequence[str]):
    # projected tuples -> dicts keyed by field name
    for row in rows:
        yield dict(zip(columns, row))

def records_to_parquet(records: Iterable[Dict[str, Any]], parquet_path: str, columns: Sequence[str] | None = None) -> int:
    df = pd.DataFrame(list(records), columns=list(columns) if columns else None)
    p = pathlib.Path(parquet_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    df.to_parquet(p, index=False)
    return len(df)
