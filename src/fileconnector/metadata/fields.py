from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fileconnector.errors import ConfigurationError, DecodeError


class FieldType(Enum):
    VARCHAR = "VARCHAR"
    BOOLEAN = "BOOLEAN"
    TINYINT = "TINYINT"
    SMALLINT = "SMALLINT"
    INT = "INT"
    BIGINT = "BIGINT"
    DECIMAL = "DECIMAL"
    REAL = "REAL"
    DOUBLE = "DOUBLE"
    DATE = "DATE"
    TIME = "TIME"
    TIMESTAMP = "TIMESTAMP"
    OBJECT = "OBJECT"

    @classmethod
    def parse(cls, raw) -> "FieldType":
        if isinstance(raw, FieldType):
            return raw
        key = str(raw).strip().upper()
        key = _TYPE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ConfigurationError(f"Unknown field type: {raw!r}") from None


_TYPE_ALIASES = {
    "STRING": "VARCHAR",
    "TEXT": "VARCHAR",
    "BOOL": "BOOLEAN",
    "INTEGER": "INT",
    "FLOAT": "REAL",
    "DOUBLE PRECISION": "DOUBLE",
    "DATETIME": "TIMESTAMP",
}

_INT_RANGES = {
    FieldType.TINYINT: (-(2 ** 7), 2 ** 7 - 1),
    FieldType.SMALLINT: (-(2 ** 15), 2 ** 15 - 1),
    FieldType.INT: (-(2 ** 31), 2 ** 31 - 1),
    FieldType.BIGINT: (-(2 ** 63), 2 ** 63 - 1),
}


@dataclass(frozen=True)
class MappingField:
    """
    A logical field. ``external_name`` is the on-disk name when it differs
    from ``name``; resolved field lists always carry one.
    """

    name: str
    type: FieldType = FieldType.VARCHAR
    external_name: Optional[str] = None

    @property
    def source_name(self) -> str:
        return self.external_name if self.external_name is not None else self.name

    def with_default_external_name(self) -> "MappingField":
        if self.external_name is not None:
            return self
        return MappingField(self.name, self.type, self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type.value, "external_name": self.external_name}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MappingField":
        if "name" not in d:
            raise ConfigurationError(f"Field definition missing 'name': {d}")
        return cls(
            name=str(d["name"]),
            type=FieldType.parse(d.get("type", "VARCHAR")),
            external_name=d.get("external_name") or d.get("externalName"),
        )


# ---------------------------------------------------------------------------
# Type inference
# ---------------------------------------------------------------------------
def infer_type(value: Any) -> FieldType:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, int):
        return FieldType.BIGINT
    if isinstance(value, float):
        return FieldType.DOUBLE
    if isinstance(value, Decimal):
        return FieldType.DECIMAL
    if isinstance(value, str):
        return FieldType.VARCHAR
    if isinstance(value, _dt.datetime):
        return FieldType.TIMESTAMP
    if isinstance(value, _dt.date):
        return FieldType.DATE
    if isinstance(value, _dt.time):
        return FieldType.TIME
    return FieldType.OBJECT


# ---------------------------------------------------------------------------
# Value conversion
# ---------------------------------------------------------------------------
def convert_value(value: Any, typ: FieldType) -> Any:
    if value is None:
        return None
    if typ is FieldType.OBJECT:
        return value
    if typ is FieldType.VARCHAR:
        return value if isinstance(value, str) else str(value)
    if typ is FieldType.BOOLEAN:
        if isinstance(value, bool):
            return value
        s = str(value).strip().lower()
        if s in ("true", "false"):
            return s == "true"
        raise ValueError(f"not a boolean: {value!r}")
    if typ in _INT_RANGES:
        if isinstance(value, bool):
            raise ValueError(f"not an integer: {value!r}")
        n = int(value) if not isinstance(value, str) else int(value.strip())
        lo, hi = _INT_RANGES[typ]
        if not lo <= n <= hi:
            raise ValueError(f"{n} out of range for {typ.value}")
        return n
    if typ in (FieldType.REAL, FieldType.DOUBLE):
        return float(value)
    if typ is FieldType.DECIMAL:
        try:
            return value if isinstance(value, Decimal) else Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"not a decimal: {value!r}") from None
    if typ is FieldType.TIMESTAMP:
        if isinstance(value, _dt.datetime):
            return value
        return _dt.datetime.fromisoformat(str(value).strip())
    if typ is FieldType.DATE:
        if isinstance(value, _dt.datetime):
            return value.date()
        if isinstance(value, _dt.date):
            return value
        return _dt.date.fromisoformat(str(value).strip())
    if typ is FieldType.TIME:
        if isinstance(value, _dt.time):
            return value
        return _dt.time.fromisoformat(str(value).strip())
    return value


class RowProjector:
    """
    Turns decoded records into tuples in field order.

    dict records (JSON objects, CSV rows read with their header) are
    addressed by external name, bare sequences by position, anything else
    by attribute.
    """

    def __init__(self, fields: Sequence[MappingField]) -> None:
        self.fields = [f.with_default_external_name() for f in fields]

    def project(self, record: Any, path=None, position: Optional[int] = None) -> Tuple[Any, ...]:
        out: List[Any] = []
        for i, f in enumerate(self.fields):
            raw = self._get(record, f, i)
            try:
                out.append(convert_value(raw, f.type))
            except (TypeError, ValueError) as e:
                raise DecodeError(
                    f"cannot convert field '{f.name}' to {f.type.value}: {e}",
                    path=path,
                    position=position,
                ) from e
        return tuple(out)

    @staticmethod
    def _get(record: Any, f: MappingField, index: int) -> Any:
        if isinstance(record, dict):
            return record.get(f.source_name)
        if isinstance(record, (list, tuple)):
            return record[index] if index < len(record) else None
        if isinstance(record, (str, bytes)):
            return record if index == 0 else None
        return getattr(record, f.source_name, None)
