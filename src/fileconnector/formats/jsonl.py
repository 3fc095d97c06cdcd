from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any, BinaryIO, Iterator, Mapping, Optional

from fileconnector.errors import DecodeError
from fileconnector.formats.base import FormatPlugin, Report, build_record
from fileconnector.formats.stream import RecordStream
from fileconnector.formats.types import (
    DECODE_ERROR_POLICIES,
    FORMAT_JSON,
    UNKNOWN_FIELDS_POLICIES,
    JsonLinesFormat,
    parse_choice_option,
)


class JsonLinesPlugin(FormatPlugin):
    """One JSON object per line. Blank lines are skipped."""

    format_id = FORMAT_JSON
    spec_class = JsonLinesFormat
    supports_named_fields = True

    def parse_format(self, options: Mapping[str, Any]) -> JsonLinesFormat:
        return JsonLinesFormat(
            record_type=options.get("recordType") or None,
            charset=str(options.get("charset", "utf-8")),
            unknown_fields=parse_choice_option(options, "unknownFields", UNKNOWN_FIELDS_POLICIES, "ignore"),
            on_decode_error=parse_choice_option(options, "onDecodeError", DECODE_ERROR_POLICIES, "fail"),
        )

    def open(self, handle: BinaryIO, spec: JsonLinesFormat, path: Optional[Path] = None) -> RecordStream:
        self.check_spec(spec)
        cls = spec.record_class
        text = io.TextIOWrapper(handle, encoding=spec.charset)

        def decode(report: Report) -> Iterator[Any]:
            for lineno, line in enumerate(_lines(text, spec, path), start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    rec = _decode_line(line, cls, spec, path, lineno)
                except DecodeError as err:
                    if spec.on_decode_error == "skip":
                        report(err)
                        continue
                    raise
                yield rec

        return self.stream(decode, [handle, text], path)


def _lines(text, spec: JsonLinesFormat, path) -> Iterator[str]:
    lineno = 0
    while True:
        try:
            line = text.readline()
        except UnicodeDecodeError as e:
            raise DecodeError(
                f"cannot decode as {spec.charset}: {e.reason}", path=path, position=lineno + 1
            ) from e
        if not line:
            return
        lineno += 1
        yield line


def _decode_line(line: str, cls, spec: JsonLinesFormat, path, lineno: int) -> Any:
    try:
        obj = json.loads(line)
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON: {e.msg}", path=path, position=lineno) from e
    if not isinstance(obj, dict):
        raise DecodeError(
            f"expected a JSON object, got {type(obj).__name__}", path=path, position=lineno
        )
    if cls is None:
        return obj
    return build_record(cls, obj, unknown_fields=spec.unknown_fields, path=path, position=lineno)
