"""Delivery abstracts parsed from procmail logs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import re
from typing import Final, Optional


class ReadOnlyFieldError(AttributeError):
    """Raised when assigning a value derived from other fields."""


MONTHS: Final[dict[str, int]] = {
    name: index
    for index, name in enumerate(
        (
            "Jan", "Feb", "Mar", "Apr", "May", "Jun",
            "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
        )
    )
}

WEEKDAYS: Final[tuple[str, ...]] = (
    "Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun",
)

# Weekday, month, day of month, h, m, s, then the year somewhere after the
# time (procmail may put a timezone between the two).
DATE_PATTERN: Final[str] = (
    rf"(?:{'|'.join(WEEKDAYS)}) "
    rf"(?P<month>{'|'.join(MONTHS)}) "
    r"(?P<day>[ \d]\d) "
    r"(?P<hour>\d\d):(?P<minute>\d\d):(?P<second>\d\d) "
    r".*(?P<year>\d\d\d\d)"
)

_DATE_RE = re.compile(rf"^{DATE_PATTERN}$")


@dataclass
class Abstract:
    """One delivery entry from a procmail log.

    ``sender`` holds the address of the ``From`` line. Every field stays
    ``None`` until the matching log line has been read; ``source`` is set by
    the reader to the identifier of the log the entry came from.
    """

    sender: Optional[str] = None
    date: Optional[str] = None
    subject: Optional[str] = None
    folder: Optional[str] = None
    size: Optional[int] = None
    source: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        """Return ``True`` once the ``Folder`` line has been seen."""

        return self.folder is not None

    @property
    def ymd(self) -> Optional[str]:
        """Return the date as ``YYYYMMDDhhmmss`` or ``None``.

        The value is derived from ``date`` on every access and cannot be
        assigned.
        """

        match = _match_date(self.date)
        if match is None:
            return None
        return (
            f"{int(match.group('year')):04d}"
            f"{MONTHS[match.group('month')] + 1:02d}"
            f"{int(match.group('day')):02d}"
            f"{match.group('hour')}"
            f"{match.group('minute')}"
            f"{match.group('second')}"
        )

    @ymd.setter
    def ymd(self, value: object) -> None:
        """Reject assignment; ``ymd`` is derived from ``date``."""

        raise ReadOnlyFieldError(
            "Abstract.ymd cannot be used to set the date"
        )

    @property
    def timestamp(self) -> Optional[datetime]:
        """Return the date as a naive ``datetime`` or ``None``."""

        stamp = self.ymd
        if stamp is None:
            return None
        try:
            return datetime.strptime(stamp, "%Y%m%d%H%M%S")
        except ValueError:
            # Grammar matched but the values are out of range (Feb 31).
            return None


def _match_date(value: Optional[str]) -> Optional[re.Match[str]]:
    if value is None:
        return None
    return _DATE_RE.match(value)
