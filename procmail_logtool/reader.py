"""Incremental reader for procmail log files.

Procmail writes one abstract per delivered message::

    From karen644552@btinternet.com  Fri Feb  8 20:37:24 2002
     Subject: Stock Market Volatility Beating You Up? (18@2)
      Folder: /var/spool/mail/book                              2840

``LogReader`` assembles those lines into ``Abstract`` objects, reading a
queue of files in order. The last file is never closed by ``next()``, so a
later call returns abstracts procmail appended in the meantime.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
import logging
import re
import zlib
from typing import IO, Any, Deque, Iterator, Optional, Union

from .abstract import DATE_PATTERN, Abstract
from .sources import (
    DEFAULT_ENCODING,
    LogSource,
    SourceLike,
    as_source,
    decode_line,
)


logger = logging.getLogger(__name__)

_FROM_PATTERN = re.compile(
    rf"^From (?P<sender>.+?) +(?P<date>{DATE_PATTERN})$"
)
_SUBJECT_PATTERN = re.compile(r"^ Subject: (?P<subject>.*)", re.IGNORECASE)
# procmail pads the size column with a mix of tabs and spaces
_FOLDER_PATTERN = re.compile(
    r"^  Folder: (?P<folder>.*?)\s+(?P<size>\d+)$"
)


@dataclass(frozen=True)
class Completed:
    """A fully assembled abstract."""

    record: Abstract


@dataclass(frozen=True)
class RawLine:
    """A log line that is not part of an abstract (error mode only)."""

    text: str


ReadResult = Union[Completed, RawLine]


class LogReader:
    """Pull abstracts out of one or more procmail log files.

    Sources are paths, already-open handles or ``LogSource`` objects. They
    are opened one at a time, in the order they were given, when the
    previous one runs out.
    """

    def __init__(
        self,
        *sources: SourceLike,
        error_mode: bool = False,
        encoding: str = DEFAULT_ENCODING,
    ) -> None:
        self._encoding = encoding
        self._pending: Deque[LogSource] = deque()
        self._handle: Optional[IO[Any]] = None
        self._buffer: Deque[Abstract] = deque()
        self._error_mode = bool(error_mode)
        self._source: Optional[str] = None
        self._partial = ""
        self.push_sources(*sources)

    @property
    def error_mode(self) -> bool:
        """Return whether unrecognized lines are returned as ``RawLine``."""

        return self._error_mode

    @error_mode.setter
    def error_mode(self, value: bool) -> None:
        """Enable or disable returning unrecognized lines."""

        self._error_mode = bool(value)

    @property
    def source(self) -> Optional[str]:
        """Return the identifier of the source currently being read."""

        return self._source

    @property
    def pending(self) -> tuple[str, ...]:
        """Return identifiers of the sources not opened yet, in order."""

        return tuple(source.name for source in self._pending)

    def push_sources(self, *sources: SourceLike) -> None:
        """Queue ``sources`` after every source already queued."""

        for value in sources:
            self._pending.append(as_source(value, self._encoding))

    def next(self) -> Optional[ReadResult]:
        """Return the next abstract, raw line, or ``None`` at end of data.

        ``None`` does not mean the reader is finished: once the last source
        grows, or more sources are pushed, ``next()`` returns new results.
        """

        while True:
            if self._handle is None:
                if not self._pending:
                    return None
                self._open(self._pending.popleft())
                continue

            result = self._read_result()
            if result is not None:
                return result

            # The active source is exhausted.
            if not self._pending:
                return None
            self._close()

    def records(self) -> Iterator[Abstract]:
        """Yield completed abstracts until the sources are exhausted."""

        for result in self:
            if isinstance(result, Completed):
                yield result.record

    def close(self) -> None:
        """Close the active source, if any."""

        self._close()
        self._buffer.clear()

    def __iter__(self) -> Iterator[ReadResult]:
        while True:
            result = self.next()
            if result is None:
                return
            yield result

    def __enter__(self) -> LogReader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _read_result(self) -> Optional[ReadResult]:
        while True:
            line = self._readline()
            if line is None:
                break

            match = _FROM_PATTERN.match(line)
            if match:
                self._buffer.append(
                    Abstract(
                        sender=match.group("sender"),
                        date=match.group("date"),
                    )
                )
                if len(self._buffer) > 1:
                    # The older abstract never got its Folder line.
                    self._discard(self._buffer.popleft())
                continue

            match = _SUBJECT_PATTERN.match(line)
            if match:
                self._current().subject = match.group("subject")
                continue

            match = _FOLDER_PATTERN.match(line)
            if match:
                record = self._current()
                record.folder = match.group("folder")
                record.size = int(match.group("size"))
                return self._complete(self._buffer.popleft())

            if not line.strip() or not self._error_mode:
                continue
            return RawLine(line)

        if not self._partial:
            while self._buffer:
                self._discard(self._buffer.popleft())
        return None

    def _readline(self) -> Optional[str]:
        assert self._handle is not None
        try:
            line = self._handle.readline()
        except (OSError, ValueError, EOFError, zlib.error) as exc:
            logger.warning("Can't read %s: %s", self._source, exc)
            self._close()
            return None
        if isinstance(line, bytes):
            line = line.decode(self._encoding, errors="replace")
        text = self._partial + line
        if not text:
            return None
        if not text.endswith("\n") and not self._pending:
            # procmail may still be writing this line
            self._partial = text
            return None
        self._partial = ""
        return decode_line(text, self._encoding)

    def _current(self) -> Abstract:
        if not self._buffer:
            self._buffer.append(Abstract())
        return self._buffer[0]

    def _complete(self, record: Abstract) -> Completed:
        record.source = self._source
        return Completed(record)

    def _discard(self, record: Abstract) -> None:
        logger.debug(
            "Discarding abstract without Folder line from %s: %r",
            self._source,
            record,
        )

    def _open(self, source: LogSource) -> None:
        self._source = source.name
        try:
            self._handle = source.open()
        except (OSError, ValueError) as exc:
            logger.warning("Can't open %s: %s", source.name, exc)
            self._handle = None
            return
        logger.debug("Reading procmail log %s", source.name)

    def _close(self) -> None:
        handle, self._handle = self._handle, None
        self._partial = ""
        if handle is None:
            return
        try:
            handle.close()
        except OSError as exc:
            logger.warning("Can't close %s: %s", self._source, exc)
