from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from dissect.cstruct.utils import u32

from dissect.rpmdb.c_bdb import (
    HASH_INDEX_ENTRY_SIZE,
    HASH_OFF_PAGE_SIZE,
    HASH_PAGE_TYPES,
    PAGE_HEADER_SIZE,
    VALID_PAGE_SIZES,
    c_bdb,
    c_bdb_be,
)
from dissect.rpmdb.exceptions import Error, FormatError, ReadError
from dissect.rpmdb.helpers.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator

    from dissect.cstruct import cstruct
    from typing_extensions import Self

log = get_logger(__name__)


@dataclass(frozen=True)
class RawEntry:
    """A value read from the hash database, or a sentinel.

    ``RawEntry(value)`` holds one reassembled value, ``RawEntry(error=e)`` carries the error that ended
    the scan and ``RawEntry()`` marks the end of the stream.
    """

    value: bytes | None = None
    error: Error | None = None

    @property
    def is_end(self) -> bool:
        return self.value is None and self.error is None


class HashDB:
    """Berkeley DB hash database reader, as used for the RPM ``Packages`` file.

    Only values stored on overflow pages are returned, which is where RPM stores its header blobs.
    The one small inline value in a ``Packages`` file (the header instance counter) is skipped.

    References:
        - https://github.com/berkeleydb/libdb/blob/master/src/dbinc/db_page.h
        - https://github.com/knqyf263/go-rpmdb/blob/master/pkg/bdb/bdb.go
    """

    def __init__(self, fh: BinaryIO):
        self.fh = fh
        self._close_fh = False

        buf = self._read_at(0, c_bdb.METADATA_PAGE_SIZE)
        if len(buf) != c_bdb.METADATA_PAGE_SIZE:
            raise ReadError(f"Short metadata page read: {len(buf)} != {c_bdb.METADATA_PAGE_SIZE}")

        # The magic is stored in the byte order of the host that created the database
        magic = u32(buf[12:16])
        if magic == c_bdb.HASH_MAGIC:
            self.swapped = False
        elif magic == c_bdb.HASH_MAGIC_SWAPPED:
            self.swapped = True
        else:
            raise FormatError(f"Invalid hash database magic: {magic:#010x}")

        self.c_bdb: cstruct = c_bdb_be if self.swapped else c_bdb
        self.meta = self.c_bdb.HashMeta(buf)

        dbmeta = self.meta.dbmeta
        if dbmeta.encrypt_alg != c_bdb.NO_ENCRYPTION:
            raise FormatError(f"Unsupported encryption algorithm: {dbmeta.encrypt_alg}")

        # Enum members of the two byte order definitions never compare equal
        if dbmeta.type != self.c_bdb.PageType.HASHMETA:
            raise FormatError(f"Unexpected metadata page type: {dbmeta.type}")

        if dbmeta.pagesize not in VALID_PAGE_SIZES:
            raise FormatError(f"Unexpected page size: {dbmeta.pagesize}")

        self.page_size = dbmeta.pagesize
        self.last_pgno = dbmeta.last_pgno

    @classmethod
    def open(cls, path: Path | str) -> Self:
        """Open the hash database at ``path``. The file handle is closed by :meth:`close`."""
        try:
            fh = Path(path).open("rb")
        except OSError as e:
            raise ReadError(f"Unable to open {path}", cause=e)

        try:
            db = cls(fh)
        except Exception:
            fh.close()
            raise

        db._close_fh = True
        return db

    def __repr__(self) -> str:
        return (
            f"<HashDB fh={self.fh!r} "
            f"version={self.meta.dbmeta.version} "
            f"page_size={self.page_size} "
            f"last_pgno={self.last_pgno} "
            f"swapped={self.swapped}>"
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args, **kwargs) -> None:
        self.close()

    def close(self) -> None:
        if self._close_fh:
            self.fh.close()

    def read(self) -> Iterator[RawEntry]:
        """Yield every off-page value in on-disk page and slot order.

        A failure is yielded as ``RawEntry(error=...)``. The stream always ends with ``RawEntry()``.
        """
        try:
            for pgno in range(self.last_pgno + 1):
                page = self._read_page(pgno)
                header = self.c_bdb.PageHeader(page)

                if header.type not in HASH_PAGE_TYPES:
                    continue

                for offset in self._value_offsets(page, header):
                    if page[offset] != c_bdb.HashItemType.OFFPAGE:
                        log.trace("Skipping inline item of type %d on page %d", page[offset], pgno)
                        continue

                    yield RawEntry(self._read_off_page_value(page, offset))
        except Error as e:
            log.debug("Error while reading hash database %r", self, exc_info=e)
            yield RawEntry(error=e)

        yield RawEntry()

    def records(self) -> Iterator[bytes]:
        """Yield the values of :meth:`read`, raising the error that ended the scan, if any."""
        for entry in self.read():
            if entry.error is not None:
                raise entry.error

            if entry.is_end:
                break

            yield entry.value

    def _value_offsets(self, page: bytes, header: c_bdb.PageHeader) -> list[int]:
        """Return the in-page offsets of the value items of a hash page."""
        if header.entries % 2 != 0:
            raise FormatError(f"Invalid hash index on page {header.pgno}: odd number of entries ({header.entries})")

        if not header.entries:
            return []

        index_end = PAGE_HEADER_SIZE + header.entries * HASH_INDEX_ENTRY_SIZE
        if index_end > len(page):
            raise FormatError(f"Hash index on page {header.pgno} exceeds the page size ({header.entries} entries)")

        # Items come in key/value pairs, only the values are of interest
        index = self.c_bdb.uint16[header.entries](page[PAGE_HEADER_SIZE:index_end])
        offsets = index[1::2]

        for offset in offsets:
            if offset < index_end or offset >= len(page):
                raise FormatError(f"Hash index on page {header.pgno} points outside of the page: {offset}")

        return offsets

    def _read_off_page_value(self, page: bytes, offset: int) -> bytes:
        """Reassemble a value that is spread over a chain of overflow pages."""
        if offset + HASH_OFF_PAGE_SIZE > len(page):
            raise FormatError(f"Truncated off-page item at offset {offset}")

        entry = self.c_bdb.HashOffPage(page[offset : offset + HASH_OFF_PAGE_SIZE])

        chunks = []
        seen = set()
        pgno = entry.pgno

        while pgno != 0:
            if pgno in seen or pgno > self.last_pgno:
                raise FormatError(f"Invalid overflow page reference {pgno} (chain starting at {entry.pgno})")
            seen.add(pgno)

            buf = self._read_page(pgno)
            header = self.c_bdb.PageHeader(buf)

            if header.type != self.c_bdb.PageType.OVERFLOW:
                raise FormatError(f"Expected an overflow page at page {pgno}, got {header.type}")

            if header.next_pgno == 0:
                end = PAGE_HEADER_SIZE + header.hf_offset
                if end > len(buf):
                    raise FormatError(f"Overflow page {pgno} claims more data than fits in a page ({header.hf_offset})")
                chunks.append(buf[PAGE_HEADER_SIZE:end])
            else:
                chunks.append(buf[PAGE_HEADER_SIZE:])

            pgno = header.next_pgno

        value = b"".join(chunks)
        if len(value) != entry.tlen:
            log.warning("Off-page value length %d does not match the stored length %d", len(value), entry.tlen)

        return value

    def _read_page(self, pgno: int) -> bytes:
        buf = self._read_at(pgno * self.page_size, self.page_size)
        if len(buf) != self.page_size:
            raise ReadError(f"Short page read for page {pgno}: {len(buf)} != {self.page_size}")
        return buf

    def _read_at(self, offset: int, size: int) -> bytes:
        try:
            self.fh.seek(offset)
            return self.fh.read(size)
        except OSError as e:
            raise ReadError(f"Error reading {size} bytes at offset {offset:#x}", cause=e)
