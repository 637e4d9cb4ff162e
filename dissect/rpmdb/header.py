from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from dissect.rpmdb.c_rpm import REGION_TAGS, STRING_TYPES, TYPE_ALIGN, TYPE_SIZES, c_rpm
from dissect.rpmdb.exceptions import FormatError
from dissect.rpmdb.helpers.logging import get_logger

log = get_logger(__name__)

HEADER_SIZE = len(c_rpm.Header)
ENTRY_INFO_SIZE = len(c_rpm.EntryInfo)


class EntryInfo(NamedTuple):
    tag: int
    type: int
    offset: int
    count: int

    @classmethod
    def from_struct(cls, entry: c_rpm.EntryInfo) -> EntryInfo:
        return cls(int(entry.tag), int(entry.type), entry.offset, entry.count)


@dataclass(frozen=True)
class IndexEntry:
    """A resolved header index entry.

    ``length`` is the size of ``data`` as stored, ``rdlen`` the running data length of the
    header up to and including this entry (alignment padding included).
    """

    info: EntryInfo
    data: bytes
    length: int
    rdlen: int

    @property
    def tag(self) -> int:
        return self.info.tag

    @property
    def type(self) -> int:
        return self.info.type

    @property
    def count(self) -> int:
        return self.info.count


def align_diff(type: int, unaligned: int) -> int:
    """Return the padding needed to align ``unaligned`` to the natural size of ``type``."""
    size = TYPE_SIZES[int(type)]
    if size > 1:
        diff = size - (unaligned % size)
        if diff != size:
            return diff
    return 0


def data_length(data: bytes, type: int, count: int, start: int, end: int) -> int:
    """Return the number of bytes occupied by ``count`` values of ``type`` at ``data[start:]``.

    The data may not extend past ``end``.

    Raises:
        FormatError: If the data is not properly terminated or does not fit.
    """
    if type in STRING_TYPES:
        if type == c_rpm.TagType.STRING and count != 1:
            raise FormatError(f"String tag with a count of {count}")

        pos = start
        for _ in range(count):
            if (nul := data.find(b"\x00", pos, end)) == -1:
                raise FormatError(f"Unterminated string at offset {pos}")
            pos = nul + 1
        return pos - start

    if (size := TYPE_SIZES.get(int(type), -1)) == -1:
        raise FormatError(f"Unknown tag type: {type}")

    length = size * count
    if start + length > end:
        raise FormatError(f"Data of {length} bytes at offset {start} exceeds the data segment")

    return length


class HdrBlob:
    """A raw RPM header blob: an index of entries followed by a data segment.

    Construction validates the index and the (optional) immutable region, :meth:`entries`
    resolves the entries to their data.

    References:
        - https://github.com/rpm-software-management/rpm/blob/master/lib/header.cc
        - https://github.com/knqyf263/go-rpmdb/blob/master/pkg/rpmdb.go
    """

    def __init__(self, blob: bytes):
        self.blob = blob

        if len(blob) < HEADER_SIZE:
            raise FormatError(f"Header blob too small: {len(blob)} bytes")

        header = c_rpm.Header(blob[:HEADER_SIZE])
        self.il = header.il
        self.dl = header.dl

        if self.il < 1:
            raise FormatError(f"Header has no index entries (il={self.il})")

        self.data_start = HEADER_SIZE + self.il * ENTRY_INFO_SIZE
        self.data_end = self.data_start + self.dl
        self.pvlen = self.data_end

        if self.pvlen >= c_rpm.HEADER_MAX_BYTES:
            raise FormatError(f"Header blob too large: {self.pvlen} bytes (il={self.il}, dl={self.dl})")

        if len(blob) < self.data_start:
            raise FormatError(f"Header blob truncated: {len(blob)} bytes, index needs {self.data_start}")

        index = c_rpm.EntryInfo[self.il](blob[HEADER_SIZE : self.data_start])
        self.pe = [EntryInfo.from_struct(entry) for entry in index]

        self.region_tag = None
        self.ril = 0
        self.rdl = 0

        self.verify_region()
        self.verify_info()

    def __repr__(self) -> str:
        return f"<HdrBlob il={self.il} dl={self.dl} region_tag={self.region_tag} ril={self.ril} rdl={self.rdl}>"

    @property
    def data(self) -> bytes:
        return self.blob[self.data_start : self.data_end]

    def verify_region(self) -> None:
        """Validate the region entry and its trailer, if the header has one."""
        info = self.pe[0]
        if info.tag not in REGION_TAGS:
            return

        region_tag = info.tag

        if info.type != c_rpm.TagType.BIN or info.count != c_rpm.REGION_TAG_COUNT:
            raise FormatError(f"Invalid region tag: {info}")

        if not 0 <= info.offset + c_rpm.REGION_TAG_COUNT <= self.dl:
            raise FormatError(f"Invalid region offset: {info}")

        trailer_start = self.data_start + info.offset
        trailer_end = trailer_start + c_rpm.REGION_TAG_COUNT
        if trailer_end > len(self.blob):
            raise FormatError(f"Region trailer lies outside of the header blob: {info}")

        trailer = EntryInfo.from_struct(c_rpm.EntryInfo(self.blob[trailer_start:trailer_end]))
        self.rdl = trailer_end - self.data_start

        # Some old packages carry HEADERIMAGE in the trailer of the signature region
        trailer_tag = trailer.tag
        if region_tag == c_rpm.Tag.HEADERSIGNATURES and trailer_tag == c_rpm.Tag.HEADERIMAGE:
            trailer_tag = c_rpm.Tag.HEADERSIGNATURES

        if (
            trailer_tag != region_tag
            or trailer.type != c_rpm.TagType.BIN
            or trailer.count != c_rpm.REGION_TAG_COUNT
        ):
            raise FormatError(f"Invalid region trailer: {trailer}")

        # The trailer offset is negative and counts the entries in the region
        region_size = -trailer.offset
        self.ril = region_size // ENTRY_INFO_SIZE
        if region_size % ENTRY_INFO_SIZE or not 0 <= self.ril <= self.il or not 0 <= self.rdl <= self.dl:
            raise FormatError(f"Invalid region size: {trailer} (il={self.il}, dl={self.dl}, rdl={self.rdl})")

        self.region_tag = region_tag

    def verify_info(self) -> None:
        """Validate every non-region index entry against the data segment."""
        end = 0
        start = 1 if self.region_tag is not None else 0

        for info in self.pe[start:]:
            if end > info.offset:
                raise FormatError(f"Overlapping data for entry: {info}")

            if info.tag < c_rpm.Tag.HEADERI18NTABLE:
                raise FormatError(f"Invalid tag for entry: {info}")

            if info.type not in TYPE_SIZES:
                raise FormatError(f"Invalid type for entry: {info}")

            if info.offset & (TYPE_ALIGN[info.type] - 1):
                raise FormatError(f"Invalid align info: {info}")

            if not 0 <= info.offset <= self.dl:
                raise FormatError(f"Invalid offset info: {info}")

            try:
                length = data_length(self.blob, info.type, info.count, self.data_start + info.offset, self.data_end)
            except FormatError as e:
                raise FormatError(f"Invalid data length for entry: {info}", cause=e)

            end = info.offset + length
            if length <= 0 or not 0 <= end <= self.dl:
                raise FormatError(f"Invalid data length for entry: {info} (length={length})")

            if self.region_tag is not None and end > self.rdl - c_rpm.REGION_TAG_COUNT and info.offset < self.rdl:
                raise FormatError(f"Entry data overlaps the region trailer: {info}")

    def region_swab(self, entries: list[EntryInfo], rdlen: int) -> tuple[list[IndexEntry], int]:
        """Resolve ``entries`` to their data, continuing the running data length ``rdlen``."""
        data = self.data
        result = []

        for idx, info in enumerate(entries):
            if info.type not in TYPE_SIZES:
                raise FormatError(f"Invalid type for entry: {info}")

            if info.offset & (TYPE_ALIGN[info.type] - 1):
                raise FormatError(f"Invalid align info: {info}")

            if not 0 <= info.offset < self.dl:
                raise FormatError(f"Entry data lies outside of the data segment: {info}")

            # Variable sized data runs up to the next entry
            if idx < len(entries) - 1 and TYPE_SIZES[info.type] == -1:
                length = entries[idx + 1].offset - info.offset
            else:
                length = data_length(self.blob, info.type, info.count, self.data_start + info.offset, self.data_end)

            end = info.offset + length
            if length <= 0 or end > len(data):
                raise FormatError(f"Invalid data length for entry: {info} (length={length})")

            rdlen += align_diff(info.type, rdlen) + length
            result.append(IndexEntry(info, data[info.offset : end], length, rdlen))

        return result, rdlen

    def entries(self) -> list[IndexEntry]:
        """Resolve all index entries of this header.

        Entries appended after the immutable region (dribble entries) replace region entries with
        the same tag. The region entry itself is not returned.

        Raises:
            FormatError: If the resolved data does not add up to the data segment length.
        """
        first = self.pe[0]

        # A legacy header without a region
        if first.tag >= c_rpm.Tag.HEADERI18NTABLE:
            entries, rdlen = self.region_swab(self.pe, 0)
            if rdlen != self.dl:
                raise FormatError(f"Header data length mismatch: {rdlen} != {self.dl}")
            return entries

        ril = self.ril if first.offset != 0 else self.il

        entries, rdlen = self.region_swab(self.pe[1:ril], 0)

        if ril < self.il:
            dribble, rdlen = self.region_swab(self.pe[ril:], rdlen)
            log.trace("Merging %d dribble entries into %d region entries", len(dribble), len(entries))

            merged = {entry.tag: entry for entry in entries}
            merged.update({entry.tag: entry for entry in dribble})
            entries = list(merged.values())

        rdlen += c_rpm.REGION_TAG_COUNT
        if rdlen != self.dl:
            raise FormatError(f"Header data length mismatch: {rdlen} != {self.dl}")

        return entries


def header_import(blob: bytes) -> list[IndexEntry]:
    """Decode an RPM header blob into its index entries."""
    return HdrBlob(blob).entries()
