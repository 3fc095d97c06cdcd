from __future__ import annotations

from pathlib import Path
from typing import Any, BinaryIO, Iterator, Mapping, Optional

import pyarrow as pa
import pyarrow.parquet as pq

from fileconnector.errors import DecodeError
from fileconnector.formats.base import FormatPlugin, Report, build_record
from fileconnector.formats.stream import RecordStream
from fileconnector.formats.types import (
    FORMAT_PARQUET,
    UNKNOWN_FIELDS_POLICIES,
    ParquetFormat,
    parse_choice_option,
    parse_int_option,
)


class ParquetPlugin(FormatPlugin):
    """
    Parquet via pyarrow, read one record batch at a time.

    Parquet cannot localize a corrupt page to a row, so any pyarrow error
    fails the whole stream.
    """

    format_id = FORMAT_PARQUET
    spec_class = ParquetFormat
    supports_named_fields = True

    def parse_format(self, options: Mapping[str, Any]) -> ParquetFormat:
        return ParquetFormat(
            record_type=options.get("recordType") or None,
            batch_size=parse_int_option(options, "batchSize", 1024),
            unknown_fields=parse_choice_option(options, "unknownFields", UNKNOWN_FIELDS_POLICIES, "ignore"),
        )

    def open(self, handle: BinaryIO, spec: ParquetFormat, path: Optional[Path] = None) -> RecordStream:
        self.check_spec(spec)
        cls = spec.record_class

        def decode(report: Report) -> Iterator[Any]:
            row = 0
            try:
                pf = pq.ParquetFile(handle)
                batches = pf.iter_batches(batch_size=spec.batch_size)
                for batch in batches:
                    for obj in batch.to_pylist():
                        row += 1
                        if cls is None:
                            yield obj
                        else:
                            yield build_record(
                                cls,
                                obj,
                                unknown_fields=spec.unknown_fields,
                                path=path,
                                position=row,
                            )
            except (pa.ArrowException, OSError) as e:
                raise DecodeError(f"invalid parquet data: {e}", path=path) from e

        return self.stream(decode, [handle], path)
