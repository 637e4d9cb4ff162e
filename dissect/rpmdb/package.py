from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any, NamedTuple

from dissect.cstruct.utils import u32

from dissect.rpmdb.c_rpm import c_rpm
from dissect.rpmdb.exceptions import FormatError, UnsupportedValueError
from dissect.rpmdb.helpers.logging import get_logger
from dissect.rpmdb.pgp import PGPSignature, parse_pgp_signature

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from dissect.rpmdb.header import IndexEntry

log = get_logger(__name__)

NONE_VALUE = "(none)"


@dataclass
class FileInfo:
    path: str
    mode: int | None = None
    digest: str | None = None
    size: int | None = None
    username: str | None = None
    groupname: str | None = None
    flags: int | None = None

    @property
    def is_config(self) -> bool:
        return bool(self.flags and self.flags & c_rpm.FileFlags.CONFIG)

    @property
    def is_doc(self) -> bool:
        return bool(self.flags and self.flags & c_rpm.FileFlags.DOC)

    @property
    def is_ghost(self) -> bool:
        return bool(self.flags and self.flags & c_rpm.FileFlags.GHOST)


@dataclass
class PackageInfo:
    """An installed package, as described by its RPM header."""

    name: str | None = None
    epoch: int | None = None
    version: str | None = None
    release: str | None = None
    arch: str | None = None
    nevra: str | None = None
    source_rpm: str | None = None

    vendor: str | None = None
    distribution: str | None = None
    disttag: str | None = None
    disturl: str | None = None
    platform: str | None = None
    os: str | None = None
    group: str | None = None
    url: str | None = None
    license: str | None = None
    summary: str | None = None
    description: str | None = None

    size: int | None = None
    install_time: int | None = None
    build_time: int | None = None
    build_host: str | None = None
    packager: str | None = None
    rpm_version: str | None = None
    modularity_label: str | None = None

    digest_algorithm: c_rpm.HashAlgo | None = None
    sig_md5: str | None = None
    pgp: PGPSignature | None = None
    sha1_header: str | None = None
    sha256_header: str | None = None

    provides: list[str] | None = None
    requires: list[str] | None = None

    dir_indexes: list[int] | None = None
    dir_names: list[str] | None = None
    base_names: list[str] | None = None
    file_digests: list[str] | None = None
    file_sizes: list[int] | None = None
    file_modes: list[int] | None = None
    file_flags: list[int] | None = None
    user_names: list[str] | None = None
    group_names: list[str] | None = None

    @property
    def full_name(self) -> str:
        return f"{self.name}-{self.version}-{self.release}.{self.arch}"

    @property
    def epoch_num(self) -> int:
        return self.epoch or 0

    @property
    def evr(self) -> str:
        evr = f"{self.version}-{self.release}"
        return f"{self.epoch}:{evr}" if self.epoch else evr

    def installed_file_names(self) -> list[str]:
        """Rebuild the absolute paths of the files owned by this package.

        Raises:
            FormatError: If the directory and base name arrays are incomplete or inconsistent.
        """
        arrays = (self.dir_names, self.dir_indexes, self.base_names)
        if all(array is None for array in arrays):
            return []

        if any(array is None for array in arrays):
            raise FormatError(f"Incomplete file list for package {self.full_name}")

        if len(self.dir_indexes) != len(self.base_names):
            raise FormatError(
                f"Mismatch between directory indexes ({len(self.dir_indexes)}) "
                f"and base names ({len(self.base_names)}) for package {self.full_name}"
            )

        paths = []
        for idx, base_name in zip(self.dir_indexes, self.base_names):
            if idx >= len(self.dir_names):
                raise FormatError(f"Directory index {idx} out of range for package {self.full_name}")

            dir_name = self.dir_names[idx]
            paths.append(dir_name + base_name if dir_name.endswith("/") else f"{dir_name}/{base_name}")

        return paths

    def installed_files(self) -> list[FileInfo]:
        """Return the files owned by this package, missing attributes are ``None``."""
        return [
            FileInfo(
                path=path,
                mode=_at(self.file_modes, idx),
                digest=_at(self.file_digests, idx),
                size=_at(self.file_sizes, idx),
                username=_at(self.user_names, idx),
                groupname=_at(self.group_names, idx),
                flags=_at(self.file_flags, idx),
            )
            for idx, path in enumerate(self.installed_file_names())
        ]


def _at(values: list | None, idx: int) -> Any:
    if values is None or idx >= len(values):
        return None
    return values[idx]


def _decode(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def _string(entry: IndexEntry) -> str:
    # I18N strings hold one string per locale, the first one is the default
    return _decode(entry.data.split(b"\x00", 1)[0]).strip()


def _string_none(entry: IndexEntry) -> str:
    value = _string(entry)
    return "" if value == NONE_VALUE else value


def _string_array(entry: IndexEntry) -> list[str]:
    # Empty strings are kept, positions matter for the file arrays
    return [_decode(value) for value in entry.data.split(b"\x00")[: entry.count]]


def _int32(entry: IndexEntry) -> int:
    return u32(entry.data[:4], "big")


def _int32_array(entry: IndexEntry) -> list[int]:
    return list(c_rpm.uint32[entry.count](entry.data))


def _int16_array(entry: IndexEntry) -> list[int]:
    return list(c_rpm.uint16[entry.count](entry.data))


def _hex(entry: IndexEntry) -> str:
    return entry.data.hex()


def _hash_algo(entry: IndexEntry) -> c_rpm.HashAlgo:
    value = _int32(entry)
    algo = c_rpm.HashAlgo(value)
    if algo.name is None:
        raise UnsupportedValueError(f"Unknown file digest algorithm: {value}")
    return algo


def _pgp(entry: IndexEntry) -> PGPSignature:
    return parse_pgp_signature(entry.data)


class TagHandler(NamedTuple):
    field: str
    types: tuple[int, ...]
    parse: Callable[[IndexEntry], Any]


STRING = (c_rpm.TagType.STRING,)
I18N = (c_rpm.TagType.STRING, c_rpm.TagType.I18NSTRING)
STRING_ARRAY = (c_rpm.TagType.STRING_ARRAY,)
INT16 = (c_rpm.TagType.INT16,)
INT32 = (c_rpm.TagType.INT32,)
BIN = (c_rpm.TagType.BIN,)

TAG_HANDLERS: dict[int, TagHandler] = {
    c_rpm.Tag.NAME.value: TagHandler("name", STRING, _string),
    c_rpm.Tag.VERSION.value: TagHandler("version", STRING, _string),
    c_rpm.Tag.RELEASE.value: TagHandler("release", STRING, _string),
    c_rpm.Tag.EPOCH.value: TagHandler("epoch", INT32, _int32),
    c_rpm.Tag.ARCH.value: TagHandler("arch", STRING, _string),
    c_rpm.Tag.NEVRA.value: TagHandler("nevra", STRING, _string),
    c_rpm.Tag.SOURCERPM.value: TagHandler("source_rpm", STRING, _string_none),
    c_rpm.Tag.VENDOR.value: TagHandler("vendor", STRING, _string_none),
    c_rpm.Tag.DISTRIBUTION.value: TagHandler("distribution", STRING, _string_none),
    c_rpm.Tag.DISTTAG.value: TagHandler("disttag", STRING, _string_none),
    c_rpm.Tag.DISTURL.value: TagHandler("disturl", STRING, _string_none),
    c_rpm.Tag.PLATFORM.value: TagHandler("platform", STRING, _string_none),
    c_rpm.Tag.OS.value: TagHandler("os", STRING, _string_none),
    c_rpm.Tag.GROUP.value: TagHandler("group", I18N, _string_none),
    c_rpm.Tag.URL.value: TagHandler("url", STRING, _string_none),
    c_rpm.Tag.LICENSE.value: TagHandler("license", STRING, _string_none),
    c_rpm.Tag.SUMMARY.value: TagHandler("summary", I18N, _string),
    c_rpm.Tag.DESCRIPTION.value: TagHandler("description", I18N, _string),
    c_rpm.Tag.SIZE.value: TagHandler("size", INT32, _int32),
    c_rpm.Tag.INSTALLTIME.value: TagHandler("install_time", INT32, _int32),
    c_rpm.Tag.BUILDTIME.value: TagHandler("build_time", INT32, _int32),
    c_rpm.Tag.BUILDHOST.value: TagHandler("build_host", STRING, _string),
    c_rpm.Tag.PACKAGER.value: TagHandler("packager", STRING, _string),
    c_rpm.Tag.RPMVERSION.value: TagHandler("rpm_version", STRING, _string),
    c_rpm.Tag.MODULARITYLABEL.value: TagHandler("modularity_label", STRING, _string),
    c_rpm.Tag.FILEDIGESTALGO.value: TagHandler("digest_algorithm", INT32, _hash_algo),
    c_rpm.Tag.SIGMD5.value: TagHandler("sig_md5", BIN, _hex),
    c_rpm.Tag.SIGPGP.value: TagHandler("pgp", BIN, _pgp),
    c_rpm.Tag.RSAHEADER.value: TagHandler("pgp", BIN, _pgp),
    c_rpm.Tag.DSAHEADER.value: TagHandler("pgp", BIN, _pgp),
    c_rpm.Tag.SHA1HEADER.value: TagHandler("sha1_header", STRING, _string),
    c_rpm.Tag.SHA256HEADER.value: TagHandler("sha256_header", STRING, _string),
    c_rpm.Tag.PROVIDENAME.value: TagHandler("provides", STRING_ARRAY, _string_array),
    c_rpm.Tag.REQUIRENAME.value: TagHandler("requires", STRING_ARRAY, _string_array),
    c_rpm.Tag.DIRINDEXES.value: TagHandler("dir_indexes", INT32, _int32_array),
    c_rpm.Tag.DIRNAMES.value: TagHandler("dir_names", STRING_ARRAY, _string_array),
    c_rpm.Tag.BASENAMES.value: TagHandler("base_names", STRING_ARRAY, _string_array),
    c_rpm.Tag.FILEDIGESTS.value: TagHandler("file_digests", STRING_ARRAY, _string_array),
    c_rpm.Tag.FILESIZES.value: TagHandler("file_sizes", INT32, _int32_array),
    c_rpm.Tag.FILEMODES.value: TagHandler("file_modes", INT16, _int16_array),
    c_rpm.Tag.FILEFLAGS.value: TagHandler("file_flags", INT32, _int32_array),
    c_rpm.Tag.FILEUSERNAME.value: TagHandler("user_names", STRING_ARRAY, _string_array),
    c_rpm.Tag.FILEGROUPNAME.value: TagHandler("group_names", STRING_ARRAY, _string_array),
}


def _check_handlers() -> None:
    known = {field.name for field in fields(PackageInfo)}
    for tag, handler in TAG_HANDLERS.items():
        if handler.field not in known:
            raise TypeError(f"Tag handler for {tag!r} targets unknown PackageInfo field {handler.field!r}")


_check_handlers()


def get_nevra(entries: Iterable[IndexEntry]) -> PackageInfo:
    """Project decoded header entries onto a :class:`PackageInfo`.

    Raises:
        UnsupportedValueError: If a known tag carries an unexpected type or value.
    """
    package = PackageInfo()

    for entry in entries:
        if (handler := TAG_HANDLERS.get(int(entry.tag))) is None:
            log.trace("Ignoring RPM tag %d", entry.tag)
            continue

        if entry.type not in handler.types:
            raise UnsupportedValueError(
                f"Invalid type {entry.type} for tag {c_rpm.Tag(entry.tag).name} ({entry.tag})"
            )

        setattr(package, handler.field, handler.parse(entry))

    return package
