"""Helpers for working with rotated procmail log files."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
import re
from typing import List, Optional

from .config import AppConfig
from .reader import LogReader
from .sources import DEFAULT_ENCODING


_ROTATED_SUFFIX = (
    r"(?:\.(?P<generation>\d+)|-(?P<stamp>\d{8}))?"
    r"(?P<compressed>\.gz|\.zip)?$"
)


@dataclass(frozen=True)
class LogFileInfo:
    """Parsed details about a live or rotated log path.

    The live log has neither ``generation`` nor ``stamp``. Files rotated by
    number (``log.1``, ``log.2.gz``) carry ``generation``; files rotated by
    date (``log-20240131``) carry ``stamp``.
    """

    path: Path
    generation: Optional[int]
    stamp: Optional[date]
    is_compressed: bool

    @property
    def is_live(self) -> bool:
        """Return ``True`` for the log procmail is still writing to."""

        return self.generation is None and self.stamp is None


def parse_log_filename(path: Path, base: str) -> Optional[LogFileInfo]:
    """Parse ``path`` as ``base`` or one of its rotated copies.

    Returns ``None`` when the name belongs to some other file, including a
    compressed file without a rotation suffix.
    """

    pattern = re.compile(rf"^{re.escape(base)}{_ROTATED_SUFFIX}")
    match = pattern.match(path.name)
    if not match:
        return None

    generation = match.group("generation")
    stamp = match.group("stamp")
    is_compressed = bool(match.group("compressed"))
    if generation is None and stamp is None and is_compressed:
        return None

    parsed_stamp: Optional[date] = None
    if stamp is not None:
        try:
            parsed_stamp = datetime.strptime(stamp, "%Y%m%d").date()
        except ValueError:
            return None

    return LogFileInfo(
        path=path,
        generation=int(generation) if generation is not None else None,
        stamp=parsed_stamp,
        is_compressed=is_compressed,
    )


def discover_rotated_logs(log_path: Path) -> List[LogFileInfo]:
    """Return ``log_path`` and its rotated copies, oldest first.

    Date-stamped copies come first (by date), then numbered copies from the
    highest number down, then the live log itself when it exists.
    """

    logs_dir = log_path.parent
    if not logs_dir.is_dir():
        return []

    infos: list[LogFileInfo] = []
    for path in logs_dir.iterdir():
        if not path.is_file():
            continue
        info = parse_log_filename(path, log_path.name)
        if info is None:
            continue
        infos.append(info)

    infos.sort(key=_age_key)
    return infos


def reader_for_log(
    log_path: Path,
    *,
    include_rotated: bool = True,
    error_mode: bool = False,
    encoding: str = DEFAULT_ENCODING,
) -> LogReader:
    """Return a ``LogReader`` that ends on, and keeps tailing, ``log_path``.

    The live log is queued last even if it does not exist yet, so the reader
    reports it once and callers can push it again after procmail creates it.
    """

    sources: list[Path] = []
    if include_rotated:
        sources.extend(
            info.path
            for info in discover_rotated_logs(log_path)
            if not info.is_live
        )
    sources.append(log_path)
    return LogReader(*sources, error_mode=error_mode, encoding=encoding)


def reader_from_config(config: AppConfig) -> LogReader:
    """Return a ``LogReader`` for the log named in ``config``."""

    return reader_for_log(
        config.log_file,
        include_rotated=config.include_rotated,
        error_mode=config.error_mode,
        encoding=config.encoding,
    )


def _age_key(info: LogFileInfo) -> tuple[int, date, int]:
    if info.stamp is not None:
        return (0, info.stamp, 0)
    if info.generation is not None:
        return (1, date.min, -info.generation)
    return (2, date.min, 0)
