"""Readable inputs for the procmail log reader.

A source is anything the reader can turn into a line-readable handle: a
path on disk (plain, gzip or single-member zip) or a handle the caller has
already opened.
"""

from __future__ import annotations

from dataclasses import dataclass
import gzip
import io
import os
from pathlib import Path
from typing import IO, Any, Protocol, Union, runtime_checkable
from zipfile import BadZipFile, ZipFile


DEFAULT_ENCODING = "utf-8"


class SourceOpenError(OSError):
    """Raised when a source exists but cannot be read as a log."""


@runtime_checkable
class LogSource(Protocol):
    """Capability interface the reader depends on."""

    @property
    def name(self) -> str:
        """Identifier stamped on records read from this source."""

    def open(self) -> IO[Any]:
        """Return a line-readable, closeable handle."""


@dataclass(frozen=True)
class PathSource:
    """Log file addressed by path, opened lazily by the reader."""

    path: Path
    encoding: str = DEFAULT_ENCODING
    label: str | None = None

    @property
    def name(self) -> str:
        """Return the path as it was given to the reader."""

        return self.label if self.label is not None else str(self.path)

    def open(self) -> IO[str]:
        """Open the file for text reading, decompressing if needed."""

        suffix = self.path.suffix.lower()
        if suffix == ".gz":
            return gzip.open(
                self.path,
                "rt",
                encoding=self.encoding,
                errors="replace",
            )
        if suffix == ".zip":
            return _open_single_member_zip(self.path, self.encoding)
        return self.path.open("r", encoding=self.encoding, errors="replace")


@dataclass(frozen=True)
class HandleSource:
    """Wrap a handle the caller opened; the reader only reads from it."""

    handle: Any
    encoding: str = DEFAULT_ENCODING

    @property
    def name(self) -> str:
        """Return the handle's ``name`` attribute or its ``repr``."""

        name = getattr(self.handle, "name", None)
        if isinstance(name, (str, bytes, os.PathLike)):
            return os.fsdecode(name)
        return repr(self.handle)

    @property
    def closed(self) -> bool:
        """Return ``True`` if the wrapped handle reports itself closed."""

        return bool(getattr(self.handle, "closed", False))

    def open(self) -> IO[Any]:
        """Return the wrapped handle, refusing one that is already closed."""

        if self.closed:
            raise SourceOpenError(f"Closed filehandle {self.name}")
        return self.handle


SourceLike = Union[str, os.PathLike, LogSource, IO[Any]]


def as_source(
    value: SourceLike,
    encoding: str = DEFAULT_ENCODING,
) -> LogSource:
    """Return the ``LogSource`` variant matching ``value``.

    Strings and path-like objects become ``PathSource``; existing sources are
    kept; anything with a ``readline`` method becomes ``HandleSource``.
    """

    if isinstance(value, str):
        return PathSource(Path(value), encoding=encoding, label=value)
    if isinstance(value, os.PathLike):
        path = Path(os.fsdecode(value))
        return PathSource(path, encoding=encoding)
    if isinstance(value, (PathSource, HandleSource)):
        return value
    if callable(getattr(value, "readline", None)):
        return HandleSource(value, encoding=encoding)
    if isinstance(value, LogSource):
        return value
    typename = type(value).__name__
    raise TypeError(f"Cannot read procmail log from {typename} object")


def decode_line(line: str | bytes, encoding: str = DEFAULT_ENCODING) -> str:
    """Return ``line`` as text with its line terminator removed."""

    if isinstance(line, bytes):
        line = line.decode(encoding, errors="replace")
    return line.rstrip("\r\n")


def _open_single_member_zip(zip_path: Path, encoding: str) -> IO[str]:
    try:
        with ZipFile(zip_path) as archive:
            members = [
                member
                for member in archive.namelist()
                if not member.endswith("/")
            ]
            if not members:
                raise SourceOpenError(f"Zip file {zip_path} contains no files")
            if len(members) > 1:
                raise SourceOpenError(
                    f"Zip file {zip_path} contains multiple members; "
                    "expected one"
                )
            raw = archive.open(members[0])
    except BadZipFile as exc:
        raise SourceOpenError(f"Not a zip file: {zip_path}") from exc
    return io.TextIOWrapper(raw, encoding=encoding, errors="replace")
