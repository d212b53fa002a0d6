"""Hashing utilities for bundle members and audit records."""

import hashlib


def compute_sha1(content: bytes) -> str:
    """Compute SHA-1 hash of content.

    SHA-1 is mandated by the pass manifest format consumed by wallet
    applications. Do not substitute another algorithm here.

    Args:
        content: Bytes to hash

    Returns:
        Lowercase hexadecimal hash string
    """
    return hashlib.sha1(content).hexdigest()


def compute_sha256(content: bytes) -> str:
    """Compute SHA-256 hash of content.

    Args:
        content: Bytes to hash

    Returns:
        Hexadecimal hash string
    """
    return hashlib.sha256(content).hexdigest()

