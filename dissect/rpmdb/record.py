from __future__ import annotations

from typing import TYPE_CHECKING

from dissect.util.ts import from_unix
from flow.record import RecordDescriptor
from flow.record.fieldtypes import digest

from dissect.rpmdb.c_rpm import c_rpm

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime
    from pathlib import Path

    from flow.record import Record

    from dissect.rpmdb.package import PackageInfo

# Digest algorithms a flow.record digest field can hold
RECORD_DIGESTS = (c_rpm.HashAlgo.MD5, c_rpm.HashAlgo.SHA1, c_rpm.HashAlgo.SHA256)

RpmPackageRecord = RecordDescriptor(
    "rpm/package",
    [
        ("datetime", "ts"),
        ("string", "name"),
        ("varint", "epoch"),
        ("string", "version"),
        ("string", "release"),
        ("string", "arch"),
        ("string", "full_name"),
        ("string", "nevra"),
        ("string", "source_rpm"),
        ("string", "vendor"),
        ("string", "distribution"),
        ("string", "packager"),
        ("string", "license"),
        ("string", "group"),
        ("string", "url"),
        ("string", "summary"),
        ("varint", "size"),
        ("datetime", "build_time"),
        ("string", "build_host"),
        ("string", "rpm_version"),
        ("string", "modularity_label"),
        ("string", "digest_algorithm"),
        ("string", "sig_md5"),
        ("string", "signature"),
        ("string", "sha1_header"),
        ("string", "sha256_header"),
        ("string[]", "provides"),
        ("string[]", "requires"),
        ("string[]", "files"),
        ("path", "source"),
    ],
)

RpmPackageFileRecord = RecordDescriptor(
    "rpm/package/file",
    [
        ("datetime", "ts"),
        ("string", "package_name"),
        ("string", "package_name_full"),
        ("path", "path"),
        ("varint", "mode"),
        ("varint", "size"),
        ("string", "username"),
        ("string", "groupname"),
        ("digest", "digest"),
        ("string", "stored_digest"),
        ("string[]", "flags"),
        ("boolean", "is_config"),
        ("path", "source"),
    ],
)


def _ts(value: int | None) -> datetime | None:
    return from_unix(value) if value is not None else None


def _digest(algo: c_rpm.HashAlgo | None, hexdigest: str | None) -> digest | None:
    if not hexdigest or algo not in RECORD_DIGESTS:
        return None

    value = digest()
    setattr(value, algo.name.lower(), hexdigest)
    return value


def _flag_names(value: int | None) -> list[str]:
    if not value:
        return []
    return [flag.name.lower() for flag in c_rpm.FileFlags if value & flag]


def package_record(package: PackageInfo, source: Path | str | None = None) -> Record:
    """Build a ``rpm/package`` record for an installed package."""
    return RpmPackageRecord(
        ts=_ts(package.install_time),
        name=package.name,
        epoch=package.epoch,
        version=package.version,
        release=package.release,
        arch=package.arch,
        full_name=package.full_name,
        nevra=package.nevra,
        source_rpm=package.source_rpm,
        vendor=package.vendor,
        distribution=package.distribution,
        packager=package.packager,
        license=package.license,
        group=package.group,
        url=package.url,
        summary=package.summary,
        size=package.size,
        build_time=_ts(package.build_time),
        build_host=package.build_host,
        rpm_version=package.rpm_version,
        modularity_label=package.modularity_label,
        digest_algorithm=package.digest_algorithm.name if package.digest_algorithm is not None else None,
        sig_md5=package.sig_md5,
        signature=str(package.pgp) if package.pgp else None,
        sha1_header=package.sha1_header,
        sha256_header=package.sha256_header,
        provides=package.provides,
        requires=package.requires,
        files=package.installed_file_names(),
        source=source,
    )


def file_records(package: PackageInfo, source: Path | str | None = None) -> Iterator[Record]:
    """Yield a ``rpm/package/file`` record for every file owned by a package.

    File digests without an algorithm tag are MD5, as in RPM itself.
    """
    algo = package.digest_algorithm if package.digest_algorithm is not None else c_rpm.HashAlgo.MD5
    ts = _ts(package.install_time)

    for file in package.installed_files():
        yield RpmPackageFileRecord(
            ts=ts,
            package_name=package.name,
            package_name_full=package.full_name,
            path=file.path,
            mode=file.mode,
            size=file.size,
            username=file.username,
            groupname=file.groupname,
            digest=_digest(algo, file.digest),
            stored_digest=file.digest or None,
            flags=_flag_names(file.flags),
            is_config=file.is_config,
            source=source,
        )
