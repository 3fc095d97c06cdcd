from pathlib import Path

import pytest

import fileconnector.formats.base as base_mod
from fileconnector.errors import DecodeError
from fileconnector.formats.base import open_file
from fileconnector.formats.stream import RecordStream
from fileconnector.formats.types import CsvFormat, JsonLinesFormat, LinesFormat


@pytest.fixture
def opened(monkeypatch):
    """Record every binary handle open_file acquires."""
    handles = []
    real = base_mod.open_binary

    def _tracking(path):
        h = real(path)
        handles.append(h)
        return h

    monkeypatch.setattr(base_mod, "open_binary", _tracking)
    return handles


# ==========================================================
# HANDLE LIFECYCLE
# ==========================================================

def test_open_then_close_without_reading_releases_handle(tmp_path: Path, opened):
    p = tmp_path / "a.csv"
    p.write_text("x,y\n1,2\n", encoding="utf-8")

    stream = open_file(p, CsvFormat())
    assert len(opened) == 1 and not opened[0].closed

    stream.close()

    assert stream.closed
    assert opened[0].closed


def test_close_is_idempotent(tmp_path: Path, opened):
    p = tmp_path / "a.txt"
    p.write_text("one\ntwo\n", encoding="utf-8")

    stream = open_file(p, LinesFormat())
    stream.close()
    stream.close()

    assert opened[0].closed
    assert list(stream) == []


def test_exhaustion_releases_handle(tmp_path: Path, opened):
    p = tmp_path / "a.txt"
    p.write_text("one\ntwo\n", encoding="utf-8")

    stream = open_file(p, LinesFormat())
    assert list(stream) == ["one", "two"]

    assert stream.closed
    assert opened[0].closed


def test_decode_error_releases_handle(tmp_path: Path, opened):
    p = tmp_path / "a.jsonl"
    p.write_text('{"a": 1}\nnot json\n', encoding="utf-8")

    stream = open_file(p, JsonLinesFormat())
    assert next(stream) == {"a": 1}
    with pytest.raises(DecodeError):
        next(stream)

    assert stream.closed
    assert opened[0].closed


def test_first_reads_one_record_and_closes(tmp_path: Path, opened):
    p = tmp_path / "a.txt"
    p.write_text("one\ntwo\n", encoding="utf-8")

    stream = open_file(p, LinesFormat())
    assert stream.first() == "one"
    assert stream.position == 1
    assert opened[0].closed


def test_missing_file_raises_on_open(tmp_path: Path, opened):
    with pytest.raises(FileNotFoundError):
        open_file(tmp_path / "missing.csv", CsvFormat())
    assert opened == []


def test_failed_plugin_open_closes_handle(tmp_path: Path, opened):
    p = tmp_path / "a.csv"
    p.write_text("id\n1\n", encoding="utf-8")
    spec = CsvFormat(record_type="nowhere_at_all:Model", includes_header=True)

    with pytest.raises(ValueError):
        open_file(p, spec)

    assert opened[0].closed


# ==========================================================
# RecordStream directly
# ==========================================================

class _Res:
    def __init__(self, log, name, fail=False):
        self.log, self.name, self.fail = log, name, fail

    def close(self):
        self.log.append(self.name)
        if self.fail:
            raise OSError(f"close failed: {self.name}")


def test_resources_closed_in_reverse_order():
    log = []
    stream = RecordStream(iter([1, 2]), [_Res(log, "handle"), _Res(log, "wrapper")])

    assert list(stream) == [1, 2]
    assert log == ["wrapper", "handle"]


def test_close_failure_does_not_mask_decode_error():
    log = []

    def boom():
        yield 1
        raise DecodeError("broken", position=2)

    stream = RecordStream(boom(), [_Res(log, "handle", fail=True)])
    assert next(stream) == 1
    with pytest.raises(DecodeError, match="broken"):
        next(stream)
    assert log == ["handle"]


def test_explicit_close_surfaces_close_failure():
    log = []
    stream = RecordStream(iter([]), [_Res(log, "a", fail=True), _Res(log, "b")])

    with pytest.raises(OSError, match="close failed: a"):
        stream.close()
    assert log == ["b", "a"]
    assert stream.closed
