"""passforge - Apple Wallet pass signing and packaging.

Builds the SHA-1 manifest, detached PKCS#7 signature and ZIP bundle that make
up a ``.pkpass`` file.
"""

__version__ = "0.1.0"
__author__ = "passforge Contributors"

from passforge.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
