from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dissect.rpmdb.c_rpm import c_rpm
from tests._utils import SHA256_BASH, SHA256_PROFILE, build_hash_db, build_package

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def bash_blob() -> bytes:
    return build_package(
        "bash",
        extra=[
            (c_rpm.Tag.SUMMARY, c_rpm.TagType.I18NSTRING, "The GNU Bourne Again shell"),
            (c_rpm.Tag.INSTALLTIME, c_rpm.TagType.INT32, 1700000000),
            (c_rpm.Tag.SIZE, c_rpm.TagType.INT32, 7738634),
            (c_rpm.Tag.LICENSE, c_rpm.TagType.STRING, "GPLv3+"),
            (c_rpm.Tag.VENDOR, c_rpm.TagType.STRING, "(none)"),
            (c_rpm.Tag.FILESIZES, c_rpm.TagType.INT32, [1234, 0, 56]),
            (c_rpm.Tag.FILEMODES, c_rpm.TagType.INT16, [0o100755, 0o40755, 0o100644]),
            (c_rpm.Tag.FILEDIGESTS, c_rpm.TagType.STRING_ARRAY, [SHA256_BASH, "", SHA256_PROFILE]),
            (c_rpm.Tag.FILEFLAGS, c_rpm.TagType.INT32, [0, 0, 1]),
            (c_rpm.Tag.FILEUSERNAME, c_rpm.TagType.STRING_ARRAY, ["root", "root", "root"]),
            (c_rpm.Tag.FILEGROUPNAME, c_rpm.TagType.STRING_ARRAY, ["root", "root", "root"]),
            (c_rpm.Tag.SOURCERPM, c_rpm.TagType.STRING, "bash-5.1.8-6.el9.src.rpm"),
            (c_rpm.Tag.DIRINDEXES, c_rpm.TagType.INT32, [0, 1, 2]),
            (c_rpm.Tag.BASENAMES, c_rpm.TagType.STRING_ARRAY, ["bash", "bash", "profile"]),
            (c_rpm.Tag.DIRNAMES, c_rpm.TagType.STRING_ARRAY, ["/usr/bin/", "/usr/share/doc/", "/etc/"]),
            (c_rpm.Tag.FILEDIGESTALGO, c_rpm.TagType.INT32, 8),
        ],
    )


@pytest.fixture
def coreutils_blob() -> bytes:
    return build_package("coreutils", version="8.32", release="34.el9")


@pytest.fixture
def packages_path(tmp_path: Path, bash_blob: bytes, coreutils_blob: bytes) -> Path:
    path = tmp_path.joinpath("Packages")
    path.write_bytes(build_hash_db([bash_blob, coreutils_blob]))
    return path
