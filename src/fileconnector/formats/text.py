"""Line, whole-text and raw-bytes formats."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, BinaryIO, Iterator, Mapping, Optional

from fileconnector.errors import DecodeError
from fileconnector.formats.base import FormatPlugin, Report
from fileconnector.formats.stream import RecordStream
from fileconnector.formats.types import (
    FORMAT_BYTES,
    FORMAT_LINES,
    FORMAT_TEXT,
    BytesFormat,
    LinesFormat,
    TextFormat,
)


class LinesPlugin(FormatPlugin):
    format_id = FORMAT_LINES
    spec_class = LinesFormat

    def parse_format(self, options: Mapping[str, Any]) -> LinesFormat:
        return LinesFormat(charset=str(options.get("charset", "utf-8")))

    def open(self, handle: BinaryIO, spec: LinesFormat, path: Optional[Path] = None) -> RecordStream:
        self.check_spec(spec)
        text = io.TextIOWrapper(handle, encoding=spec.charset, newline=None)

        def decode(report: Report) -> Iterator[str]:
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
                yield line.rstrip("\n")

        return self.stream(decode, [handle, text], path)


class TextPlugin(FormatPlugin):
    format_id = FORMAT_TEXT
    spec_class = TextFormat

    def parse_format(self, options: Mapping[str, Any]) -> TextFormat:
        return TextFormat(charset=str(options.get("charset", "utf-8")))

    def open(self, handle: BinaryIO, spec: TextFormat, path: Optional[Path] = None) -> RecordStream:
        self.check_spec(spec)

        def decode(report: Report) -> Iterator[str]:
            raw = handle.read()
            try:
                yield raw.decode(spec.charset)
            except UnicodeDecodeError as e:
                raise DecodeError(f"cannot decode as {spec.charset}: {e.reason}", path=path) from e

        return self.stream(decode, [handle], path)


class BytesPlugin(FormatPlugin):
    format_id = FORMAT_BYTES
    spec_class = BytesFormat

    def parse_format(self, options: Mapping[str, Any]) -> BytesFormat:
        return BytesFormat()

    def open(self, handle: BinaryIO, spec: BytesFormat, path: Optional[Path] = None) -> RecordStream:
        self.check_spec(spec)

        def decode(report: Report) -> Iterator[bytes]:
            yield handle.read()

        return self.stream(decode, [handle], path)
