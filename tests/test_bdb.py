from __future__ import annotations

import struct
from io import BytesIO
from typing import TYPE_CHECKING

import pytest

from dissect.rpmdb.bdb import HashDB, RawEntry
from dissect.rpmdb.exceptions import FormatError, ReadError
from tests._utils import build_hash_db

if TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.parametrize(
    ("page_size", "endian"),
    [
        (512, "<"),
        (4096, "<"),
        (512, ">"),
    ],
)
def test_hash_db_round_trip(page_size: int, endian: str) -> None:
    values = [
        b"single page value",
        bytes(range(256)) * 5,  # spans three overflow pages of 512 bytes
        b"",
        b"\xff" * (page_size - 26),  # exactly fills one page
    ]
    db = HashDB(BytesIO(build_hash_db(values, page_size=page_size, endian=endian)))

    assert db.page_size == page_size
    assert db.swapped == (endian == ">")

    entries = list(db.read())
    assert entries == [*(RawEntry(value) for value in values), RawEntry()]
    assert entries[-1].is_end
    assert sum(entry.is_end for entry in entries) == 1

    assert list(db.records()) == values


def test_hash_db_metadata() -> None:
    db = HashDB(BytesIO(build_hash_db([b"a", b"b"], page_size=1024)))

    assert db.meta.dbmeta.version == 9
    assert db.meta.dbmeta.record_count == 2
    assert db.meta.nelem == 2
    assert db.meta.ffactor == 40
    assert db.last_pgno == 3
    assert "page_size=1024" in repr(db)


def test_hash_db_skips_inline_items() -> None:
    db = HashDB(BytesIO(build_hash_db([b"first", b"second"], inline=[b"\x01\x00\x00\x00"])))
    assert list(db.records()) == [b"first", b"second"]


def test_hash_db_empty() -> None:
    db = HashDB(BytesIO(build_hash_db([])))
    assert list(db.read()) == [RawEntry()]


def test_hash_db_odd_index_count() -> None:
    buf = bytearray(build_hash_db([b"value"]))
    # Entry count of the hash page at page 1
    struct.pack_into("<H", buf, 512 + 20, 3)

    entries = list(HashDB(BytesIO(bytes(buf))).read())

    assert len(entries) == 2
    assert isinstance(entries[0].error, FormatError)
    assert "odd number of entries" in str(entries[0].error)
    assert entries[1].is_end

    with pytest.raises(FormatError):
        list(HashDB(BytesIO(bytes(buf))).records())


def test_hash_db_short_page() -> None:
    values = [b"first", b"x" * 1000]
    buf = build_hash_db(values)[:-10]

    entries = list(HashDB(BytesIO(buf)).read())

    assert entries[0] == RawEntry(b"first")
    assert isinstance(entries[1].error, ReadError)
    assert entries[2].is_end
    assert len(entries) == 3


def test_hash_db_short_metadata() -> None:
    with pytest.raises(ReadError):
        HashDB(BytesIO(b"\x00" * 100))


def test_hash_db_invalid_magic() -> None:
    buf = bytearray(build_hash_db([b"value"]))
    struct.pack_into("<I", buf, 12, 0x00053162)

    with pytest.raises(FormatError, match="Invalid hash database magic"):
        HashDB(BytesIO(bytes(buf)))


def test_hash_db_invalid_page_size() -> None:
    buf = bytearray(build_hash_db([b"value"]))
    struct.pack_into("<I", buf, 20, 1000)

    with pytest.raises(FormatError, match="Unexpected page size"):
        HashDB(BytesIO(bytes(buf)))


def test_hash_db_encrypted() -> None:
    buf = bytearray(build_hash_db([b"value"]))
    buf[24] = 1

    with pytest.raises(FormatError, match="encryption"):
        HashDB(BytesIO(bytes(buf)))


def test_hash_db_overflow_cycle() -> None:
    buf = bytearray(build_hash_db([b"x" * 1000]))
    # Let the second overflow page (page 3) point back to the first one (page 2)
    struct.pack_into("<I", buf, 3 * 512 + 16, 2)

    entries = list(HashDB(BytesIO(bytes(buf))).read())

    assert isinstance(entries[0].error, FormatError)
    assert entries[1].is_end


def test_hash_db_overflow_wrong_page_type() -> None:
    buf = bytearray(build_hash_db([b"x" * 1000]))
    buf[3 * 512 + 25] = 13

    entries = list(HashDB(BytesIO(bytes(buf))).read())

    assert isinstance(entries[0].error, FormatError)
    assert "Expected an overflow page" in str(entries[0].error)


def test_hash_db_big_endian() -> None:
    buf = bytearray(build_hash_db([b"x" * 1000, b"value"], endian=">"))
    db = HashDB(BytesIO(bytes(buf)))

    assert db.swapped
    assert db.meta.dbmeta.record_count == 2
    assert list(db.records()) == [b"x" * 1000, b"value"]

    # A hash page where an overflow page is expected
    buf[3 * 512 + 25] = 13
    entries = list(HashDB(BytesIO(bytes(buf))).read())

    assert "Expected an overflow page" in str(entries[0].error)


def test_hash_db_open(tmp_path: Path) -> None:
    path = tmp_path.joinpath("Packages")
    path.write_bytes(build_hash_db([b"value"]))

    with HashDB.open(path) as db:
        assert list(db.records()) == [b"value"]

    assert db.fh.closed


def test_hash_db_open_missing(tmp_path: Path) -> None:
    with pytest.raises(ReadError):
        HashDB.open(tmp_path.joinpath("Packages"))


def test_hash_db_caller_owns_fh() -> None:
    fh = BytesIO(build_hash_db([b"value"]))

    with HashDB(fh) as db:
        list(db.read())

    assert not fh.closed
