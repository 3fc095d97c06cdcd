"""
Pluggable file formats.

Exports the public API:
- FormatPlugin, open_file
- FormatRegistry, default_registry
- RecordStream
- the format specs
"""
from .base import FormatPlugin, open_file
from .registry import FormatRegistry, default_registry
from .stream import RecordStream
from .types import (
    BytesFormat,
    CsvFormat,
    FileFormatSpec,
    JsonLinesFormat,
    LinesFormat,
    ParquetFormat,
    TextFormat,
)
