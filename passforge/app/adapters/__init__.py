"""Concrete adapters wiring application ports to built-in implementations."""

from __future__ import annotations

from .assets import DirectoryAssetLoader
from .bundle import ZipBundleWriter
from .openssl_verifier import OpenSSLSignatureVerifier
from .pkcs7_signer import PKCS7Signer, inspect_signature

__all__ = [
    "DirectoryAssetLoader",
    "OpenSSLSignatureVerifier",
    "PKCS7Signer",
    "ZipBundleWriter",
    "inspect_signature",
]
