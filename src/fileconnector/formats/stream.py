from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, BinaryIO, Iterator, List, Optional, Sequence

from fileconnector.errors import DecodeError

logger = logging.getLogger(__name__)


def open_binary(path: Path) -> BinaryIO:
    """Open a discovered file for decoding. Raises OSError right away."""
    return Path(path).open("rb")


class RecordStream:
    """
    Lazy, single-pass, closeable sequence of records decoded from one file.

    The stream owns ``resources`` (the OS handle and any text wrapper around
    it). They are released exactly once: on close(), on exhaustion, or when
    decoding raises. Records are yielded in on-disk order.
    """

    def __init__(
        self,
        records: Iterator[Any],
        resources: Sequence[Any] = (),
        *,
        path: Optional[Path] = None,
        skipped: Optional[List[DecodeError]] = None,
    ) -> None:
        self._records = records
        self._resources: List[Any] = list(resources)
        self._closed = False
        self.path = path
        self.skipped: List[DecodeError] = skipped if skipped is not None else []
        self.position = 0

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------
    def __iter__(self) -> "RecordStream":
        return self

    def __next__(self) -> Any:
        if self._closed:
            raise StopIteration
        try:
            rec = next(self._records)
        except StopIteration:
            self.close()
            raise
        except BaseException:
            self._close_quietly()
            raise
        self.position += 1
        return rec

    def first(self) -> Any:
        """Decode at most one record, then release the file."""
        try:
            return next(self)
        except StopIteration:
            return None
        finally:
            self.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close_gen = getattr(self._records, "close", None)
        try:
            if close_gen is not None:
                close_gen()
        finally:
            resources, self._resources = self._resources, []
            _close_all(resources)

    def _close_quietly(self) -> None:
        # never let a failing close replace the decode error in flight
        try:
            self.close()
        except Exception:
            logger.exception("Error while releasing %s", self.path or "stream")

    def __enter__(self) -> "RecordStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self._close_quietly()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<RecordStream {self.path or '?'} {state} at={self.position}>"


def _close_all(resources: Sequence[Any]) -> None:
    """Close in reverse acquisition order; re-raise the first failure."""
    first_error: Optional[BaseException] = None
    for res in reversed(resources):
        try:
            res.close()
        except Exception as e:
            if first_error is None:
                first_error = e
            else:
                logger.exception("Additional error while closing %r", res)
    if first_error is not None:
        raise first_error
