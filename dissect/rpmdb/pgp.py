from __future__ import annotations

from dataclasses import dataclass
from email.utils import format_datetime
from typing import TYPE_CHECKING

from dissect.util.ts import from_unix

from dissect.rpmdb.c_rpm import c_rpm
from dissect.rpmdb.exceptions import FormatError

if TYPE_CHECKING:
    from datetime import datetime

PUBKEY_ALGORITHMS = {
    1: "RSA",
    17: "DSA",
    19: "ECDSA",
    22: "EdDSA",
}

HASH_ALGORITHMS = {
    1: "MD5",
    2: "SHA1",
    8: "SHA256",
    9: "SHA384",
    10: "SHA512",
    11: "SHA224",
}


@dataclass(frozen=True)
class PGPSignature:
    pubkey_algo: str
    hash_algo: str
    key_id: str
    created: datetime

    def __str__(self) -> str:
        created = format_datetime(self.created, usegmt=True)
        return f"{self.pubkey_algo}/{self.hash_algo}, {created}, Key ID {self.key_id}"


def parse_pgp_signature(data: bytes) -> PGPSignature:
    """Parse the OpenPGP signature packet stored in the ``SIGPGP``, ``RSAHEADER`` or ``DSAHEADER`` tags.

    Only the fields needed to describe the signature are extracted, the layout is selected on the
    signature type and version bytes that follow the packet tag.

    References:
        - https://www.rfc-editor.org/rfc/rfc4880#section-5.2
        - https://github.com/knqyf263/go-rpmdb/blob/master/pkg/package.go
    """
    if len(data) < 3:
        raise FormatError(f"Truncated PGP signature: {len(data)} bytes")

    sig_type, version = data[1], data[2]

    if sig_type == 0x01 and version == 0x1C:
        struct = c_rpm.PGPSignatureV3Long
    elif sig_type == 0x02 and version == 0x33:
        struct = c_rpm.PGPSignatureV4
    else:
        struct = c_rpm.PGPSignatureV3

    if len(data) < len(struct):
        raise FormatError(f"Truncated PGP signature: {len(data)} bytes, expected at least {len(struct)}")

    sig = struct(data)
    return PGPSignature(
        pubkey_algo=PUBKEY_ALGORITHMS.get(sig.pubkey_algo, "Unknown"),
        hash_algo=HASH_ALGORITHMS.get(sig.hash_algo, "Unknown"),
        key_id=sig.key_id.hex(),
        created=from_unix(sig.date),
    )
