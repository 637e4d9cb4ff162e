from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO

from dissect.rpmdb.c_ndb import (
    BLOB_HEADER_SIZE,
    HEADER_SIZE,
    HEADER_SLOTS,
    SLOT_SIZE,
    SLOTS_PER_PAGE,
    c_ndb,
)
from dissect.rpmdb.exceptions import FormatError, ReadError
from dissect.rpmdb.helpers.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator

log = get_logger(__name__)


class NDB:
    """RPM NDB (native database) implementation, the ``Packages.db`` file.

    References:
        - https://github.com/rpm-software-management/rpm/blob/rpm-4.17.0-release/lib/backend/ndb/rpmpkg.c
    """

    def __init__(self, fh: BinaryIO):
        self.fh = fh
        self.header = c_ndb.Header(self._read_at(0, HEADER_SIZE))

        if self.header.magic != c_ndb.NDB_HEADER_MAGIC:
            raise FormatError(f"Invalid header magic {self.header.magic:#x}")

        if self.header.version > c_ndb.NDB_DB_VERSION:
            raise FormatError(f"Unsupported database version {self.header.version!r}")

        if not 0 < self.header.num_pages <= c_ndb.NDB_MAX_SLOT_PAGES:
            raise FormatError(f"Invalid number of slot pages: {self.header.num_pages!r}")

        num_slots = self.header.num_pages * SLOTS_PER_PAGE - HEADER_SLOTS
        self.slots = c_ndb.SlotEntry[num_slots](self._read_at(HEADER_SIZE, num_slots * SLOT_SIZE))

    def __repr__(self) -> str:
        return (
            f"<NDB fh={self.fh!r} "
            f"version={self.header.version} "
            f"generation={self.header.generation} "
            f"num_pages={self.header.num_pages}>"
        )

    def records(self) -> Iterator[bytes]:
        for slot_num, slot in enumerate(self.slots):
            if slot.magic != c_ndb.NDB_SLOT_MAGIC:
                raise FormatError(f"Invalid slot magic for slot {slot_num}: {slot.magic:#x}")

            # This slot is empty and does not contain a pointer to a blob
            if slot.pkg_index == 0:
                continue

            offset = slot.blk_offset * c_ndb.NDB_BLOCK_SIZE
            blob = c_ndb.Blob(self._read_at(offset, BLOB_HEADER_SIZE))

            if blob.magic != c_ndb.NDB_BLOB_MAGIC:
                raise FormatError(f"Invalid blob magic at offset {offset:#x}: {blob.magic:#x}")

            if blob.pkg_index != slot.pkg_index:
                raise FormatError(f"Package index mismatch for blob {blob.pkg_index} and slot {slot.pkg_index}")

            log.trace("Reading package %d (%d bytes) at offset %#x", blob.pkg_index, blob.size, offset)
            yield self._read_at(offset + BLOB_HEADER_SIZE, blob.size)

    def _read_at(self, offset: int, size: int) -> bytes:
        try:
            self.fh.seek(offset)
            buf = self.fh.read(size)
        except OSError as e:
            raise ReadError(f"Error reading {size} bytes at offset {offset:#x}", cause=e)

        if len(buf) != size:
            raise ReadError(f"Short read at offset {offset:#x}: {len(buf)} != {size}")

        return buf
