"""
CSV format plugin.

Untyped target: each record is the list of string cells of one row, the
first physical row is data unless ``includesHeader`` is set.

Named rows (``namedRows``): each record is a dict keyed by header name.

Typed target (``recordType``): the header row is mandatory and cells are
matched to fields by header name. Extra columns are dropped or rejected per
``unknownFields``; rows the parser cannot read fail the stream or are
skipped per ``onDecodeError``.
"""

from __future__ import annotations

import csv as _csv
import io
from pathlib import Path
from typing import Any, BinaryIO, Iterator, List, Mapping, Optional

from fileconnector.errors import DecodeError
from fileconnector.formats.base import FormatPlugin, Report, build_record
from fileconnector.formats.stream import RecordStream
from fileconnector.formats.types import (
    DECODE_ERROR_POLICIES,
    FORMAT_CSV,
    UNKNOWN_FIELDS_POLICIES,
    CsvFormat,
    parse_bool_option,
    parse_choice_option,
)


class CsvPlugin(FormatPlugin):
    format_id = FORMAT_CSV
    spec_class = CsvFormat
    requires_header_for_typed = True
    supports_named_fields = True

    def parse_format(self, options: Mapping[str, Any]) -> CsvFormat:
        record_type = options.get("recordType") or None
        return CsvFormat(
            record_type=record_type,
            includes_header=parse_bool_option(options, "includesHeader", record_type is not None),
            delimiter=str(options.get("delimiter", ",")),
            quote_char=str(options.get("quoteChar", '"')),
            named_rows=parse_bool_option(options, "namedRows", False),
            charset=str(options.get("charset", "utf-8")),
            unknown_fields=parse_choice_option(options, "unknownFields", UNKNOWN_FIELDS_POLICIES, "ignore"),
            on_decode_error=parse_choice_option(options, "onDecodeError", DECODE_ERROR_POLICIES, "fail"),
        )

    def open(self, handle: BinaryIO, spec: CsvFormat, path: Optional[Path] = None) -> RecordStream:
        self.check_spec(spec)
        cls = spec.record_class

        text = io.TextIOWrapper(handle, encoding=_text_encoding(spec.charset), newline="")
        reader = _csv.reader(text, delimiter=spec.delimiter, quotechar=spec.quote_char, strict=True)

        if cls is not None:
            def build(data, position):
                return build_record(cls, data, unknown_fields=spec.unknown_fields, path=path, position=position)

            def decode(report: Report) -> Iterator[Any]:
                return _keyed_rows(reader, build, spec, path, report)
        elif spec.named_rows:
            def decode(report: Report) -> Iterator[Any]:
                return _keyed_rows(reader, lambda data, position: data, spec, path, report)
        else:
            def decode(report: Report) -> Iterator[Any]:
                return _untyped_rows(reader, spec, path, report)

        return self.stream(decode, [handle, text], path)


def _text_encoding(charset: str) -> str:
    # a leading BOM must not end up in the first header name
    if charset.lower().replace("_", "-") in ("utf-8", "utf8"):
        return "utf-8-sig"
    return charset


# ---------------------------------------------------------------------------
# Row iteration
# ---------------------------------------------------------------------------
def _next_row(reader, spec: CsvFormat, path, report: Report) -> Optional[List[str]]:
    """Next non-blank row; None at end of file."""
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return None
        except _csv.Error as e:
            err = DecodeError(f"malformed CSV: {e}", path=path, position=reader.line_num)
            if spec.on_decode_error == "skip":
                report(err)
                continue
            raise err from e
        except UnicodeDecodeError as e:
            # the text layer cannot resynchronize, so this is fatal for the file
            raise DecodeError(
                f"cannot decode as {spec.charset}: {e.reason}", path=path, position=reader.line_num
            ) from e
        if row:
            return row


def _untyped_rows(reader, spec: CsvFormat, path, report: Report) -> Iterator[List[str]]:
    if spec.includes_header and _next_row(reader, spec, path, report) is None:
        return
    while True:
        row = _next_row(reader, spec, path, report)
        if row is None:
            return
        yield row


def _keyed_rows(reader, build, spec: CsvFormat, path, report: Report) -> Iterator[Any]:
    """Rows after the header as ``{header cell: value}``, passed through ``build``."""
    header = _next_row(reader, spec, path, report)
    if header is None:
        return
    header = [h.strip() for h in header]
    width = len(header)

    while True:
        row = _next_row(reader, spec, path, report)
        if row is None:
            return
        position = reader.line_num
        try:
            if len(row) > width and spec.unknown_fields == "fail":
                raise DecodeError(
                    f"row has {len(row)} columns, header has {width}",
                    path=path,
                    position=position,
                )
            rec = build(dict(zip(header, row)), position)
        except DecodeError as err:
            if spec.on_decode_error == "skip":
                report(err)
                continue
            raise
        yield rec
