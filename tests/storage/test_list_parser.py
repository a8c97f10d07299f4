from datetime import datetime, timezone

from infrastructure.external.storage.list_parser import parse_last_modified, parse_list_response

NOW = datetime(2024, 6, 1, 0, 0, 0, tzinfo=timezone.utc)

LISTING = b"""<?xml version="1.0" encoding="UTF-8"?>
<ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
  <Name>my-bucket</Name>
  <KeyCount>2</KeyCount>
  <Contents>
    <Key>a.txt</Key>
    <LastModified>2024-01-01T00:00:00.000Z</LastModified>
    <Size>10</Size>
  </Contents>
  <Contents>
    <Key>b.txt</Key>
    <LastModified>2024-02-01T00:00:00Z</LastModified>
    <Size>20</Size>
  </Contents>
</ListBucketResult>"""


def test_sorted_newest_first():
    objects = parse_list_response(LISTING, now=NOW)
    assert [obj.key for obj in objects] == ["b.txt", "a.txt"]
    assert [obj.size for obj in objects] == [20, 10]
    assert objects[0].last_modified == datetime(2024, 2, 1, tzinfo=timezone.utc)


def test_missing_size_defaults_to_zero():
    body = "<ListBucketResult><Contents><Key>k</Key><LastModified>2024-01-01T00:00:00Z</LastModified></Contents></ListBucketResult>"
    [obj] = parse_list_response(body, now=NOW)
    assert obj.size == 0


def test_missing_or_bad_last_modified_uses_now():
    body = (
        "<ListBucketResult>"
        "<Contents><Key>no-date</Key><Size>1</Size></Contents>"
        "<Contents><Key>bad-date</Key><LastModified>yesterday</LastModified><Size>2</Size></Contents>"
        "</ListBucketResult>"
    )
    objects = parse_list_response(body, now=NOW)
    assert {obj.key for obj in objects} == {"no-date", "bad-date"}
    assert all(obj.last_modified == NOW for obj in objects)


def test_entry_without_key_is_skipped():
    body = "<ListBucketResult><Contents><Size>5</Size></Contents><Contents><Key>k</Key></Contents></ListBucketResult>"
    assert [obj.key for obj in parse_list_response(body, now=NOW)] == ["k"]


def test_escaped_keys_are_unescaped():
    body = "<ListBucketResult><Contents><Key>img/a &amp; b.png</Key></Contents></ListBucketResult>"
    [obj] = parse_list_response(body, now=NOW)
    assert obj.key == "img/a & b.png"
    assert obj.filename == "a & b.png"


def test_empty_listing():
    assert parse_list_response(b"<ListBucketResult><KeyCount>0</KeyCount></ListBucketResult>", now=NOW) == []


def test_fractional_and_whole_second_timestamps():
    assert parse_last_modified("2024-01-01T10:00:00.123Z") == datetime(2024, 1, 1, 10, 0, 0, 123000, tzinfo=timezone.utc)
    assert parse_last_modified("2024-01-01T10:00:00Z") == datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
    assert parse_last_modified("2024-01-01T12:00:00+02:00") == datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
    assert parse_last_modified("not a date") is None


def test_nanosecond_timestamps_are_truncated_not_dropped():
    assert parse_last_modified("2020-01-01T00:00:00.123456789Z") == datetime(2020, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)
    listing = b"<Contents><Key>old.txt</Key><LastModified>2020-01-01T00:00:00.123456789Z</LastModified></Contents>"
    [obj] = parse_list_response(listing, now=NOW)
    assert obj.last_modified.year == 2020
