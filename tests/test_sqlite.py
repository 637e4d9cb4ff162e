from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

import pytest

from dissect.rpmdb.exceptions import FormatError
from dissect.rpmdb.sqlite import RpmSQLite

if TYPE_CHECKING:
    from pathlib import Path


def _create(path: Path, statements: list[tuple[str, tuple]]) -> Path:
    con = sqlite3.connect(path)
    try:
        for statement, params in statements:
            con.execute(statement, params)
        con.commit()
    finally:
        con.close()
    return path


def test_sqlite_records(tmp_path: Path) -> None:
    path = _create(
        tmp_path.joinpath("rpmdb.sqlite"),
        [
            ("CREATE TABLE Packages (hnum INTEGER PRIMARY KEY AUTOINCREMENT, blob BLOB NOT NULL)", ()),
            ("INSERT INTO Packages (blob) VALUES (?)", (b"first",)),
            ("INSERT INTO Packages (blob) VALUES (?)", (b"second" * 1000,)),
        ],
    )

    with path.open("rb") as fh:
        assert list(RpmSQLite(fh).records()) == [b"first", b"second" * 1000]


def test_sqlite_missing_table(tmp_path: Path) -> None:
    path = _create(tmp_path.joinpath("rpmdb.sqlite"), [("CREATE TABLE Other (id INTEGER)", ())])

    with path.open("rb") as fh, pytest.raises(FormatError, match="No Packages table"):
        list(RpmSQLite(fh).records())
