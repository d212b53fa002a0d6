"""Fixed member names and media types of the ``.pkpass`` container."""

import re

PASS_MEMBER = "pass.json"
MANIFEST_MEMBER = "manifest.json"
SIGNATURE_MEMBER = "signature"

# Members the bundle writer owns; assets may never use these names.
RESERVED_MEMBERS = frozenset({PASS_MEMBER, MANIFEST_MEMBER, SIGNATURE_MEMBER})

# Members the manifest does not describe.
UNDIGESTED_MEMBERS = frozenset({MANIFEST_MEMBER, SIGNATURE_MEMBER})

ASSET_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._@-]+$")

DEFAULT_BUNDLE_FILENAME = "pass.pkpass"
