"""Core ``.pkpass`` primitives: member names, manifest and signing identity."""

from passforge.pkpass.constants import (
    MANIFEST_MEMBER,
    PASS_MEMBER,
    RESERVED_MEMBERS,
    SIGNATURE_MEMBER,
)
from passforge.pkpass.identity import SigningIdentity
from passforge.pkpass.manifest import Manifest, digest_member

__all__ = [
    "MANIFEST_MEMBER",
    "PASS_MEMBER",
    "RESERVED_MEMBERS",
    "SIGNATURE_MEMBER",
    "Manifest",
    "SigningIdentity",
    "digest_member",
]
