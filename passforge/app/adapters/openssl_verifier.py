"""Detached signature verification through the ``openssl cms`` command."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from passforge.app.ports import SignatureVerifierPort

logger = logging.getLogger(__name__)


class OpenSSLSignatureVerifier(SignatureVerifierPort):
    """Check a DER CMS signature against content with the openssl CLI.

    Only the signature over the content is checked (``-noverify``); the
    certificate chain is not validated against a trust store.
    """

    def __init__(self, binary: str = "openssl", *, timeout: float = 10.0) -> None:
        self._binary = binary
        self._timeout = timeout

    def available(self) -> bool:
        return shutil.which(self._binary) is not None

    def verify(self, content: bytes, signature: bytes) -> bool:
        if not self.available():
            raise RuntimeError(f"'{self._binary}' executable not found on PATH")

        with tempfile.TemporaryDirectory(prefix="passforge-verify-") as tmp:
            content_path = Path(tmp) / "content"
            signature_path = Path(tmp) / "signature.der"
            content_path.write_bytes(content)
            signature_path.write_bytes(signature)

            result = subprocess.run(
                [
                    self._binary,
                    "cms",
                    "-verify",
                    "-binary",
                    "-noverify",
                    "-inform",
                    "DER",
                    "-in",
                    str(signature_path),
                    "-content",
                    str(content_path),
                    "-out",
                    os.devnull,
                ],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )

        if result.returncode != 0:
            logger.debug("openssl rejected signature: %s", result.stderr.strip())
            return False
        return True
