"""Utility modules for common operations."""

from passforge.utils.crypto import decode_base64_text, load_or_create_hmac_key
from passforge.utils.hashing import compute_sha1, compute_sha256
from passforge.utils.log_setup import configure_logging

__all__ = [
    "compute_sha1",
    "compute_sha256",
    "configure_logging",
    "decode_base64_text",
    "load_or_create_hmac_key",
]
