from dissect.rpmdb.bdb import HashDB, RawEntry
from dissect.rpmdb.exceptions import Error, FormatError, ReadError, UnsupportedValueError
from dissect.rpmdb.header import HdrBlob, IndexEntry, header_import
from dissect.rpmdb.ndb import NDB
from dissect.rpmdb.package import FileInfo, PackageInfo, get_nevra
from dissect.rpmdb.pgp import PGPSignature, parse_pgp_signature
from dissect.rpmdb.rpmdb import RpmDatabase, iter_packages, open_database, parse_blob
from dissect.rpmdb.sqlite import RpmSQLite

__all__ = [
    "NDB",
    "Error",
    "FileInfo",
    "FormatError",
    "HashDB",
    "HdrBlob",
    "IndexEntry",
    "PGPSignature",
    "PackageInfo",
    "RawEntry",
    "ReadError",
    "RpmDatabase",
    "RpmSQLite",
    "UnsupportedValueError",
    "get_nevra",
    "header_import",
    "iter_packages",
    "open_database",
    "parse_blob",
    "parse_pgp_signature",
]
