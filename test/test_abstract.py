from __future__ import annotations

from datetime import datetime

import pytest

from procmail_logtool.abstract import MONTHS, Abstract, ReadOnlyFieldError


def test_ymd_from_space_padded_day():
    record = Abstract(date="Fri Feb  8 20:37:24 2002")

    assert record.ymd == "20020208203724"


def test_ymd_ignores_tokens_between_time_and_year():
    record = Abstract(date="Tue Dec 31 23:59:01 CET 2013")

    assert record.ymd == "20131231235901"


def test_ymd_maps_every_month_to_its_number():
    for name, index in MONTHS.items():
        record = Abstract(date=f"Mon {name} 01 00:00:00 2020")
        assert record.ymd == f"2020{index + 1:02d}01000000"


def test_ymd_is_none_without_date():
    assert Abstract().ymd is None


def test_ymd_is_none_for_unrecognized_date():
    assert Abstract(date="2002-02-08 20:37:24").ymd is None
    assert Abstract(date="Fri Fev  8 20:37:24 2002").ymd is None
    assert Abstract(date="Fri Feb  8 20:37 2002").ymd is None


def test_ymd_is_stable_across_accesses():
    record = Abstract(date="Sat Mar  2 10:00:00 2002")

    assert record.ymd == record.ymd == "20020302100000"


def test_ymd_follows_date_changes():
    record = Abstract(date="Sat Mar  2 10:00:00 2002")
    record.date = "Sun Mar  3 11:00:00 2002"

    assert record.ymd == "20020303110000"


def test_ymd_cannot_be_assigned():
    record = Abstract(date="Fri Feb  8 20:37:24 2002")

    with pytest.raises(ReadOnlyFieldError, match="cannot be used"):
        record.ymd = "20020208203724"

    assert record.date == "Fri Feb  8 20:37:24 2002"


def test_read_only_error_is_an_attribute_error():
    with pytest.raises(AttributeError):
        Abstract().ymd = "19700101000000"


def test_timestamp_returns_datetime():
    record = Abstract(date="Fri Feb  8 20:37:24 2002")

    assert record.timestamp == datetime(2002, 2, 8, 20, 37, 24)


def test_timestamp_is_none_for_impossible_date():
    record = Abstract(date="Thu Feb 31 10:00:00 2002")

    assert record.ymd == "20020231100000"
    assert record.timestamp is None


def test_fields_are_plain_attributes():
    record = Abstract()
    assert not record.is_complete

    record.sender = "book@cpan.org"
    record.subject = "Hello"
    record.folder = "inbox"
    record.size = 1024

    assert record.is_complete
    assert record == Abstract(
        sender="book@cpan.org",
        subject="Hello",
        folder="inbox",
        size=1024,
    )
