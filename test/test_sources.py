from __future__ import annotations

import gzip
import io
import logging
from pathlib import Path
from zipfile import ZipFile

import pytest

from procmail_logtool.reader import LogReader
from procmail_logtool.sources import (
    HandleSource,
    PathSource,
    SourceOpenError,
    as_source,
    decode_line,
)


ABSTRACT = (
    "From book@cpan.org  Sat Feb  9 01:02:03 2002\n"
    " Subject: compressed\n"
    "  Folder: Mail/perl  512\n"
)


def write_zip(path: Path, members: dict[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with ZipFile(path, "w") as archive:
        for name, content in members.items():
            archive.writestr(name, content)


def test_as_source_keeps_string_label(tmp_path):
    value = str(tmp_path / "log")

    source = as_source(value)

    assert isinstance(source, PathSource)
    assert source.name == value
    assert source.path == Path(value)


def test_as_source_accepts_path_objects(tmp_path):
    source = as_source(tmp_path / "log", encoding="latin-1")

    assert isinstance(source, PathSource)
    assert source.name == str(tmp_path / "log")
    assert source.encoding == "latin-1"


def test_as_source_wraps_handles():
    handle = io.StringIO(ABSTRACT)

    source = as_source(handle)

    assert isinstance(source, HandleSource)
    assert source.open() is handle
    assert source.name == repr(handle)


def test_handle_source_uses_file_name(tmp_path):
    log_path = tmp_path / "log"
    log_path.write_text(ABSTRACT, encoding="utf-8")

    with log_path.open("r", encoding="utf-8") as handle:
        assert HandleSource(handle).name == str(log_path)


def test_as_source_keeps_existing_sources(tmp_path):
    source = PathSource(tmp_path / "log")

    assert as_source(source) is source


def test_as_source_rejects_unreadable_values():
    with pytest.raises(TypeError, match="int"):
        as_source(42)


def test_closed_handle_cannot_be_opened():
    handle = io.StringIO(ABSTRACT)
    handle.close()

    with pytest.raises(SourceOpenError, match="Closed filehandle"):
        HandleSource(handle).open()


def test_path_source_reads_gzip(tmp_path):
    log_path = tmp_path / "log.1.gz"
    with gzip.open(log_path, "wt", encoding="utf-8") as handle:
        handle.write(ABSTRACT)

    record = LogReader(log_path).next().record

    assert record.subject == "compressed"
    assert record.source == str(log_path)


def test_path_source_reads_single_member_zip(tmp_path):
    zip_path = tmp_path / "log.1.zip"
    write_zip(zip_path, {"log.1": ABSTRACT})

    handle = PathSource(zip_path).open()
    try:
        assert handle.readline().startswith("From book@cpan.org")
    finally:
        handle.close()


def test_path_source_rejects_multi_member_zip(tmp_path):
    zip_path = tmp_path / "log.1.zip"
    write_zip(zip_path, {"log.1": ABSTRACT, "log.2": ABSTRACT})

    with pytest.raises(SourceOpenError, match="multiple members"):
        PathSource(zip_path).open()


def test_path_source_rejects_corrupt_zip(tmp_path):
    zip_path = tmp_path / "log.1.zip"
    zip_path.write_text("not a zip", encoding="utf-8")

    with pytest.raises(SourceOpenError, match="Not a zip file"):
        PathSource(zip_path).open()


def test_path_source_replaces_undecodable_bytes(tmp_path):
    log_path = tmp_path / "log"
    log_path.write_bytes(ABSTRACT.replace("compressed", "caf\xe9").encode(
        "latin-1"
    ))

    record = LogReader(log_path).next().record

    assert record.subject == "caf\ufffd"


def test_decode_line_strips_terminators():
    assert decode_line("text\r\n") == "text"
    assert decode_line(b"text\n") == "text"
    assert decode_line("  Folder: x  1") == "  Folder: x  1"


def test_truncated_gzip_rotation_is_reported_and_skipped(tmp_path, caplog):
    rotated = tmp_path / "log.1.gz"
    payload = gzip.compress((ABSTRACT * 200).encode("utf-8"))
    rotated.write_bytes(payload[: len(payload) // 2])
    live = tmp_path / "log"
    live.write_text(
        ABSTRACT.replace("book@cpan.org", "live@example.com"),
        encoding="utf-8",
    )

    with caplog.at_level(logging.WARNING, logger="procmail_logtool.reader"):
        records = list(LogReader(rotated, live).records())

    assert records[-1].sender == "live@example.com"
    assert records[-1].source == str(live)
    assert all(record.folder == "Mail/perl" for record in records)
    assert "Can't read" in caplog.text
    assert str(rotated) in caplog.text
