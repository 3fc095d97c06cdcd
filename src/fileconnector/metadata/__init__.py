from .fields import FieldType, MappingField, RowProjector, convert_value, infer_type
from .resolver import Metadata, MetadataResolver, resolve_fields, resolve_metadata, resolver_for

__all__ = [
    "FieldType",
    "MappingField",
    "RowProjector",
    "convert_value",
    "infer_type",
    "Metadata",
    "MetadataResolver",
    "resolve_fields",
    "resolve_metadata",
    "resolver_for",
]
