"""
Format plugin SPI.

A plugin turns a binary handle into a RecordStream. It never opens files
itself; ``open_file`` does that so I/O errors surface on open and the handle
is closed if the plugin fails to build its stream.
"""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ValidationError

from fileconnector.errors import ConfigurationError, DecodeError
from fileconnector.formats.stream import RecordStream, open_binary
from fileconnector.formats.types import FileFormatSpec

logger = logging.getLogger(__name__)

Report = Callable[[DecodeError], None]


class FormatPlugin(ABC):
    """Decoder for one file format, registered under ``format_id``."""

    format_id: str = ""
    spec_class: type = FileFormatSpec
    # typed targets are matched by header name, so a header row is mandatory
    requires_header_for_typed: bool = False
    # records expose named fields; otherwise each record is one opaque value
    supports_named_fields: bool = False

    @abstractmethod
    def parse_format(self, options: Mapping[str, Any]) -> FileFormatSpec:
        """Build the immutable format spec from string options."""

    @abstractmethod
    def open(self, handle: BinaryIO, spec: FileFormatSpec, path: Optional[Path] = None) -> RecordStream:
        """Decode ``handle`` from its current position."""

    # ------------------------------------------------------------------
    def check_spec(self, spec: FileFormatSpec) -> None:
        if spec.format_id != self.format_id:
            raise ConfigurationError(
                f"{type(self).__name__} cannot decode format {spec.format_id!r}"
            )
        if (
            self.requires_header_for_typed
            and getattr(spec, "record_type", None) is not None
            and not getattr(spec, "includes_header", False)
        ):
            raise ConfigurationError(f"Format {self.format_id!r} requires a header row for typed records")

    def spec_from_config(self, config: Mapping[str, Any]) -> FileFormatSpec:
        """Rebuild a spec from its serialized ``config()`` dict."""
        return self.spec_class(**dict(config))

    def stream(
        self,
        decode: Callable[[Report], Iterator[Any]],
        resources: Sequence[Any],
        path: Optional[Path],
    ) -> RecordStream:
        skipped: List[DecodeError] = []

        def report(err: DecodeError) -> None:
            logger.warning("Skipping malformed record %s", err)
            skipped.append(err)

        return RecordStream(decode(report), resources, path=path, skipped=skipped)


def open_file(path, spec: FileFormatSpec, registry=None) -> RecordStream:
    """
    Open one discovered file and return its record stream.

    The caller owns the returned stream and must close it (or exhaust it).
    """
    from fileconnector.formats.registry import default_registry

    registry = registry or default_registry()
    plugin = registry.create(spec.format_id)
    plugin.check_spec(spec)

    path = Path(path)
    handle = open_binary(path)
    try:
        return plugin.open(handle, spec, path=path)
    except BaseException:
        try:
            handle.close()
        except Exception:
            logger.exception("Error closing %s after failed open", path)
        raise


# ---------------------------------------------------------------------------
# Typed record construction (shared by csv / json / parquet)
# ---------------------------------------------------------------------------
def known_field_names(cls: type) -> Optional[set]:
    if isinstance(cls, type) and issubclass(cls, BaseModel):
        names = set()
        for name, info in cls.model_fields.items():
            names.add(name)
            if info.alias:
                names.add(info.alias)
        return names
    if dataclasses.is_dataclass(cls):
        return {f.name for f in dataclasses.fields(cls)}
    return None


def build_record(
    cls: type,
    data: Dict[str, Any],
    *,
    unknown_fields: str,
    path: Optional[Path],
    position: Optional[int],
) -> Any:
    known = known_field_names(cls)
    if known is not None:
        extra = [k for k in data if k not in known]
        if extra:
            if unknown_fields == "fail":
                raise DecodeError(
                    f"unknown field(s) {extra} for {cls.__name__}",
                    path=path,
                    position=position,
                )
            data = {k: v for k, v in data.items() if k in known}

    try:
        if isinstance(cls, type) and issubclass(cls, BaseModel):
            return cls.model_validate(data)
        return cls(**data)
    except ValidationError as e:
        raise DecodeError(
            f"cannot build {cls.__name__}: {e.error_count()} validation error(s): "
            + "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()),
            path=path,
            position=position,
        ) from e
    except TypeError as e:
        raise DecodeError(f"cannot build {cls.__name__}: {e}", path=path, position=position) from e
