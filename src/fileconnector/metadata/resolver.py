"""
Schema resolution for file sources.

User-declared fields are validated against what the format can address.
With no declared fields, one record is sampled from the first matching
file and the field list is derived from its structure.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from fileconnector.engine.discovery import discover_files
from fileconnector.errors import ConfigurationError, NoDataError
from fileconnector.formats.base import open_file
from fileconnector.formats.types import (
    FORMAT_BYTES,
    FORMAT_CSV,
    FORMAT_JSON,
    FORMAT_LINES,
    FORMAT_PARQUET,
    FORMAT_TEXT,
    FileFormatSpec,
)
from fileconnector.metadata.fields import FieldType, MappingField, RowProjector, infer_type
from fileconnector.plans.builder import build_plan, build_sampling_plan
from fileconnector.plans.types import ReadPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metadata:
    fields: List[MappingField]
    plan: ReadPlan

    def projector(self) -> RowProjector:
        return RowProjector(self.fields)


class MetadataResolver:
    """
    Base resolver. Subclasses describe how one format exposes fields.

    ``single_field`` marks formats whose records are one opaque value
    (lines, text, bytes): only that field name can be addressed.
    """

    format_id: str = ""
    single_field: Optional[MappingField] = None

    # ------------------------------------------------------------------
    def resolve_and_validate_fields(
        self,
        user_fields: Sequence[MappingField],
        options: Mapping[str, Any],
        registry=None,
    ) -> List[MappingField]:
        if user_fields:
            return self.validate_fields(user_fields)
        return self.infer_fields(options, registry)

    def validate_fields(self, user_fields: Sequence[MappingField]) -> List[MappingField]:
        seen = set()
        out: List[MappingField] = []
        for f in user_fields:
            if f.name in seen:
                raise ConfigurationError(f"Column '{f.name}' specified more than once")
            seen.add(f.name)
            f = f.with_default_external_name()
            self.check_external_name(f)
            out.append(f)
        return out

    def check_external_name(self, f: MappingField) -> None:
        ext = f.external_name
        if not ext:
            raise ConfigurationError(f"Invalid field external name for '{f.name}': empty")
        if "." in ext:
            raise ConfigurationError(
                f"Invalid field external name - '{ext}'. Nested fields are not supported"
            )
        if self.single_field is not None and ext != self.single_field.name:
            raise ConfigurationError(
                f"Format '{self.format_id}' cannot address external name '{ext}' "
                f"(only '{self.single_field.name}')"
            )

    # ------------------------------------------------------------------
    def infer_fields(self, options: Mapping[str, Any], registry=None) -> List[MappingField]:
        record = self.fetch_record(options, registry)
        fields = self.fields_from_record(record)
        if not fields:
            raise NoDataError("No data found to infer schema: sampled record has no fields")
        logger.info("Inferred %d field(s) for format '%s'", len(fields), self.format_id)
        return fields

    def sampling_format(self, spec: FileFormatSpec) -> FileFormatSpec:
        """Format used for the sample read; untyped so structure is visible."""
        if hasattr(spec, "record_type"):
            return dataclasses.replace(spec, record_type=None)
        return spec

    def fetch_record(self, options: Mapping[str, Any], registry=None) -> Any:
        """Read exactly one record from the first matching file."""
        plan = build_sampling_plan(options, registry=registry)
        plan = dataclasses.replace(plan, format=self.sampling_format(plan.format))

        files = discover_files(plan)
        with open_file(files[0], plan.format, registry) as stream:
            record = stream.first()
        if record is None:
            raise NoDataError(f"No data found to infer schema: {files[0]} has no records")
        return record

    def fields_from_record(self, record: Any) -> List[MappingField]:
        if self.single_field is not None:
            return [self.single_field]
        if isinstance(record, dict):
            return [MappingField(str(k), infer_type(v), str(k)) for k, v in record.items()]
        return [MappingField("value", infer_type(record), "value")]

    # ------------------------------------------------------------------
    def resolve_metadata(
        self,
        resolved_fields: Sequence[MappingField],
        options: Mapping[str, Any],
        registry=None,
    ) -> Metadata:
        plan = build_plan(options, registry=registry)
        return Metadata(fields=[f.with_default_external_name() for f in resolved_fields], plan=plan)


class CsvMetadataResolver(MetadataResolver):
    """
    CSV sources are always read with their header: fields address columns
    by header name, never by position.
    """

    format_id = FORMAT_CSV

    def resolve_and_validate_fields(self, user_fields, options, registry=None):
        if not user_fields:
            return self.infer_fields(options, registry)
        fields = self.validate_fields(user_fields)
        try:
            header = {f.name for f in self.infer_fields(options, registry)}
        except NoDataError as e:
            logger.debug("CSV header not checked: %s", e)
            return fields
        missing = [f.external_name for f in fields if f.external_name not in header]
        if missing:
            raise ConfigurationError(
                f"CSV header has no column(s) {', '.join(repr(m) for m in missing)}; "
                f"header is {sorted(header)}"
            )
        return fields

    def resolve_metadata(self, resolved_fields, options, registry=None) -> Metadata:
        plan = build_plan(options, registry=registry)
        spec = plan.format
        if spec.record_type is None:
            spec = dataclasses.replace(spec, includes_header=True, named_rows=True)
        return Metadata(
            fields=[f.with_default_external_name() for f in resolved_fields],
            plan=dataclasses.replace(plan, format=spec),
        )

    def sampling_format(self, spec):
        # the first physical row is the header: read it as data
        return dataclasses.replace(spec, record_type=None, includes_header=False)

    def fields_from_record(self, record: Any) -> List[MappingField]:
        names = [str(c).strip() for c in record]
        seen = set()
        for n in names:
            if not n:
                raise ConfigurationError("CSV header contains an empty column name")
            if n in seen:
                raise ConfigurationError(f"CSV header contains duplicate column '{n}'")
            seen.add(n)
        return [MappingField(n, FieldType.VARCHAR, n) for n in names]


class JsonMetadataResolver(MetadataResolver):
    format_id = FORMAT_JSON


class ParquetMetadataResolver(MetadataResolver):
    format_id = FORMAT_PARQUET


class LinesMetadataResolver(MetadataResolver):
    format_id = FORMAT_LINES
    single_field = MappingField("line", FieldType.VARCHAR, "line")


class TextMetadataResolver(MetadataResolver):
    format_id = FORMAT_TEXT
    single_field = MappingField("text", FieldType.VARCHAR, "text")


class BytesMetadataResolver(MetadataResolver):
    format_id = FORMAT_BYTES
    single_field = MappingField("bytes", FieldType.OBJECT, "bytes")


RESOLVERS: Dict[str, type] = {
    r.format_id: r
    for r in (
        CsvMetadataResolver,
        JsonMetadataResolver,
        ParquetMetadataResolver,
        LinesMetadataResolver,
        TextMetadataResolver,
        BytesMetadataResolver,
    )
}


def resolver_for(format_id: str, registry=None) -> MetadataResolver:
    cls = RESOLVERS.get(format_id)
    if cls is not None:
        return cls()

    # installed plugin: derive from what its records look like
    from fileconnector.formats.registry import default_registry

    plugin = (registry or default_registry()).create(format_id)
    resolver = MetadataResolver()
    resolver.format_id = format_id
    if not plugin.supports_named_fields:
        resolver.single_field = MappingField("value", FieldType.OBJECT, "value")
    return resolver


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------
def resolve_fields(
    user_fields: Sequence[MappingField],
    options: Mapping[str, Any],
    registry=None,
) -> List[MappingField]:
    """
    Validate ``user_fields`` or, when empty, infer them from one record.

    Options are validated (and the format looked up) before any file is
    touched, so configuration errors never cost I/O.
    """
    plan = build_plan(options, registry=registry)
    resolver = resolver_for(plan.format_id, registry)
    return resolver.resolve_and_validate_fields(list(user_fields), options, registry)


def resolve_metadata(
    resolved_fields: Sequence[MappingField],
    options: Mapping[str, Any],
    registry=None,
) -> Metadata:
    plan = build_plan(options, registry=registry)
    return resolver_for(plan.format_id, registry).resolve_metadata(resolved_fields, options, registry)
