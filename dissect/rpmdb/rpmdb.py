from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from dissect.cstruct.utils import u32

from dissect.rpmdb.bdb import HashDB
from dissect.rpmdb.c_bdb import c_bdb
from dissect.rpmdb.c_ndb import c_ndb
from dissect.rpmdb.exceptions import FormatError, ReadError
from dissect.rpmdb.header import header_import
from dissect.rpmdb.helpers.logging import DatabaseLogAdapter, get_logger
from dissect.rpmdb.ndb import NDB
from dissect.rpmdb.package import PackageInfo, get_nevra
from dissect.rpmdb.sqlite import RpmSQLite

if TYPE_CHECKING:
    from collections.abc import Iterator

    from typing_extensions import Self

log = get_logger(__name__)

SQLITE_MAGIC = b"SQLite format 3\x00"


class DatabaseFormat(Enum):
    BDB = "bdb"
    NDB = "ndb"
    SQLITE = "sqlite"


FILENAMES = {
    "Packages": DatabaseFormat.BDB,
    "Packages.db": DatabaseFormat.NDB,
    "rpmdb.sqlite": DatabaseFormat.SQLITE,
}

BACKENDS = {
    DatabaseFormat.BDB: HashDB,
    DatabaseFormat.NDB: NDB,
    DatabaseFormat.SQLITE: RpmSQLite,
}


def detect_format(fh: BinaryIO, name: str | None = None) -> DatabaseFormat:
    """Detect the format of an RPM database from its first bytes, or else from its file name.

    Raises:
        FormatError: If the format could not be determined.
    """
    try:
        fh.seek(0)
        buf = fh.read(len(SQLITE_MAGIC))
    except OSError as e:
        raise ReadError("Unable to read database signature", cause=e)

    if buf.startswith(SQLITE_MAGIC):
        return DatabaseFormat.SQLITE

    if len(buf) >= 4 and u32(buf[:4]) == c_ndb.NDB_HEADER_MAGIC:
        return DatabaseFormat.NDB

    if len(buf) >= 16 and u32(buf[12:16]) in (c_bdb.HASH_MAGIC, c_bdb.HASH_MAGIC_SWAPPED):
        return DatabaseFormat.BDB

    if name and (fmt := FILENAMES.get(Path(name).name)):
        log.debug("Unknown signature for %s, assuming %s based on its name", name, fmt.value)
        return fmt

    raise FormatError(f"Unknown RPM database format: {name or fh!r}")


class RpmDatabase:
    """An RPM database of any of the supported formats.

    Args:
        fh: A file-like object of the database.
        name: An optional name of the database, used in log messages and as a format hint.
    """

    def __init__(self, fh: BinaryIO, name: str | None = None):
        self.fh = fh
        self.name = name or getattr(fh, "name", None) or repr(fh)
        self.format = detect_format(fh, self.name)
        self.db = BACKENDS[self.format](fh)
        self._close_fh = False

        self.log = DatabaseLogAdapter(log, {"database": self.name})

    @classmethod
    def open(cls, path: Path | str) -> Self:
        """Open the RPM database at ``path``. The file handle is closed by :meth:`close`."""
        try:
            fh = Path(path).open("rb")
        except OSError as e:
            raise ReadError(f"Unable to open {path}", cause=e)

        try:
            db = cls(fh, str(path))
        except Exception:
            fh.close()
            raise

        db._close_fh = True
        return db

    def __repr__(self) -> str:
        return f"<RpmDatabase name={self.name!r} format={self.format.value} db={self.db!r}>"

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args, **kwargs) -> None:
        self.close()

    def close(self) -> None:
        if self._close_fh:
            self.fh.close()

    def records(self) -> Iterator[bytes]:
        """Yield the raw header blobs in database order."""
        yield from self.db.records()

    def packages(self, skip_invalid: bool = False) -> Iterator[PackageInfo]:
        """Yield a :class:`PackageInfo` for every header blob in the database.

        Errors of the underlying database always propagate. A malformed header raises a
        :class:`FormatError`, or is logged and skipped when ``skip_invalid`` is set.
        """
        for idx, blob in enumerate(self.records()):
            try:
                package = parse_blob(blob)
                # Consumers rebuild the file list, reject inconsistent arrays here
                package.installed_file_names()
            except FormatError as e:
                if not skip_invalid:
                    raise

                self.log.warning("Skipping invalid package header #%d: %s", idx, e)
                self.log.debug("", exc_info=e)
                continue

            self.log.trace("Parsed package %s", package.full_name)
            yield package


def open_database(path_or_fh: Path | str | BinaryIO) -> RpmDatabase:
    """Open an RPM database from a path or an already opened file-like object."""
    if isinstance(path_or_fh, (Path, str)):
        return RpmDatabase.open(path_or_fh)
    return RpmDatabase(path_or_fh)


def parse_blob(blob: bytes) -> PackageInfo:
    """Decode an RPM header blob into a :class:`PackageInfo`."""
    return get_nevra(header_import(blob))


def iter_packages(path: Path | str | BinaryIO, skip_invalid: bool = False) -> Iterator[PackageInfo]:
    """Yield the packages of the RPM database at ``path``.

    See :meth:`RpmDatabase.packages` for the error policy.
    """
    with open_database(path) as db:
        yield from db.packages(skip_invalid=skip_invalid)
