from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO

from dissect.database.exception import Error as DatabaseError
from dissect.database.sqlite3 import SQLite3

from dissect.rpmdb.exceptions import FormatError

if TYPE_CHECKING:
    from collections.abc import Iterator


class RpmSQLite:
    """RPM SQLite database, the ``rpmdb.sqlite`` file.

    Every row of the ``Packages`` table holds one header blob.
    """

    TABLE = "Packages"

    def __init__(self, fh: BinaryIO):
        self.fh = fh

        try:
            self.db = SQLite3(fh)
        except DatabaseError as e:
            raise FormatError("Invalid SQLite3 database", cause=e)

    def __repr__(self) -> str:
        return f"<RpmSQLite fh={self.fh!r}>"

    def records(self) -> Iterator[bytes]:
        try:
            if (table := self.db.table(self.TABLE)) is None:
                raise FormatError(f"No {self.TABLE} table in SQLite3 database")

            for row in table.rows():
                yield row.blob
        except DatabaseError as e:
            raise FormatError("Error reading SQLite3 database", cause=e)
