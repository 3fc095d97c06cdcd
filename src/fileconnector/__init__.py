"""
fileconnector: pluggable file-format source connector.

Exports the public API:
- FileSourceBuilder, build_plan, ReadPlan
- open_file, default_registry, FormatPlugin
- resolve_fields, resolve_metadata, MappingField, FieldType
- LocalEngine
"""
from .engine import LocalEngine, discover_files
from .errors import (
    ConfigurationError,
    ConnectorError,
    DecodeError,
    FileReadError,
    NoDataError,
    UnknownFormatError,
)
from .formats import FormatPlugin, FormatRegistry, RecordStream, default_registry, open_file
from .metadata import FieldType, MappingField, resolve_fields, resolve_metadata
from .plans import FileSourceBuilder, ReadPlan, build_plan, build_sampling_plan

__version__ = "0.1.0"
