from __future__ import annotations

import importlib
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from fileconnector.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Format identifiers
# ---------------------------------------------------------------------------
FORMAT_CSV = "csv"
FORMAT_JSON = "json"
FORMAT_LINES = "lines"
FORMAT_TEXT = "text"
FORMAT_BYTES = "bytes"
FORMAT_PARQUET = "parquet"

UNKNOWN_FIELDS_POLICIES = ("ignore", "fail")
DECODE_ERROR_POLICIES = ("fail", "skip")


# ---------------------------------------------------------------------------
# Option helpers
# ---------------------------------------------------------------------------
def parse_bool_option(options: Mapping[str, Any], key: str, default: bool) -> bool:
    raw = options.get(key)
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    val = str(raw).strip().lower()
    if val not in ("true", "false"):
        raise ConfigurationError(f"Option '{key}' must be 'true' or 'false', got {raw!r}")
    return val == "true"


def parse_choice_option(options: Mapping[str, Any], key: str, choices, default: str) -> str:
    raw = options.get(key)
    if raw is None:
        return default
    val = str(raw).strip().lower()
    if val not in choices:
        raise ConfigurationError(f"Option '{key}' must be one of {list(choices)}, got {raw!r}")
    return val


def parse_int_option(options: Mapping[str, Any], key: str, default: int) -> int:
    raw = options.get(key)
    if raw is None:
        return default
    try:
        val = int(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Option '{key}' must be an integer, got {raw!r}") from None
    if val <= 0:
        raise ConfigurationError(f"Option '{key}' must be positive, got {val}")
    return val


def resolve_record_type(ref: Optional[str]):
    """
    Resolve a ``"package.module:ClassName"`` reference to the class.

    Only the string crosses the plan boundary; each worker resolves it
    locally when it opens a file.
    """
    if ref is None:
        return None
    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(
            f"recordType must look like 'package.module:ClassName', got {ref!r}"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import recordType module {module_name!r}: {e}") from e
    obj = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise ConfigurationError(f"recordType {ref!r} not found") from None
    if not isinstance(obj, type):
        raise ConfigurationError(f"recordType {ref!r} is not a class")
    return obj


def record_type_ref(cls: type) -> str:
    return f"{cls.__module__}:{cls.__qualname__}"


# ---------------------------------------------------------------------------
# Format specs (immutable, primitive configuration only)
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class FileFormatSpec:
    """
    Base for all format specs.

    Every field besides ``format_id`` must be a primitive (str/int/bool/None)
    so a format spec can ride inside a ReadPlan across process boundaries.
    """

    format_id: str

    def config(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "format_id"}

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.format_id, "config": self.config()}

    @property
    def record_class(self):
        return resolve_record_type(getattr(self, "record_type", None))


@dataclass(frozen=True)
class CsvFormat(FileFormatSpec):
    format_id: str = FORMAT_CSV
    record_type: Optional[str] = None
    includes_header: bool = False
    named_rows: bool = False
    delimiter: str = ","
    quote_char: str = '"'
    charset: str = "utf-8"
    unknown_fields: str = "ignore"
    on_decode_error: str = "fail"

    def __post_init__(self):
        if self.record_type is not None and not self.includes_header:
            raise ConfigurationError(
                "CSV with a typed recordType requires includesHeader=true "
                "(fields are matched by header name)"
            )
        if self.named_rows and not self.includes_header:
            raise ConfigurationError("CSV namedRows requires includesHeader=true")
        if len(self.delimiter) != 1:
            raise ConfigurationError(f"CSV delimiter must be one character, got {self.delimiter!r}")
        if len(self.quote_char) != 1:
            raise ConfigurationError(f"CSV quoteChar must be one character, got {self.quote_char!r}")
        _check_policies(self)


@dataclass(frozen=True)
class JsonLinesFormat(FileFormatSpec):
    format_id: str = FORMAT_JSON
    record_type: Optional[str] = None
    charset: str = "utf-8"
    unknown_fields: str = "ignore"
    on_decode_error: str = "fail"

    def __post_init__(self):
        _check_policies(self)


@dataclass(frozen=True)
class LinesFormat(FileFormatSpec):
    format_id: str = FORMAT_LINES
    charset: str = "utf-8"


@dataclass(frozen=True)
class TextFormat(FileFormatSpec):
    format_id: str = FORMAT_TEXT
    charset: str = "utf-8"


@dataclass(frozen=True)
class BytesFormat(FileFormatSpec):
    format_id: str = FORMAT_BYTES


@dataclass(frozen=True)
class ParquetFormat(FileFormatSpec):
    format_id: str = FORMAT_PARQUET
    record_type: Optional[str] = None
    batch_size: int = 1024
    unknown_fields: str = "ignore"

    def __post_init__(self):
        if self.unknown_fields not in UNKNOWN_FIELDS_POLICIES:
            raise ConfigurationError(f"Invalid unknownFields policy {self.unknown_fields!r}")
        if self.batch_size <= 0:
            raise ConfigurationError("batchSize must be positive")


def _check_policies(spec) -> None:
    if spec.unknown_fields not in UNKNOWN_FIELDS_POLICIES:
        raise ConfigurationError(f"Invalid unknownFields policy {spec.unknown_fields!r}")
    if spec.on_decode_error not in DECODE_ERROR_POLICIES:
        raise ConfigurationError(f"Invalid onDecodeError policy {spec.on_decode_error!r}")
