"""Stand-in for the homomorphic encryption step.

This is NOT encryption. It wraps the plain fields in base64 so the rest of
the system has an opaque payload to carry. A real deployment swaps in an FHE
library behind the same ``encrypt`` signature.
"""

import base64
import json
from typing import Any, Dict

PAYLOAD_PREFIX = "FHE-ENCRYPTED-"


class PlaceholderEncryptor:
    """Produces opaque payload strings from plain record fields."""

    def __init__(self, prefix: str = PAYLOAD_PREFIX):
        self.prefix = prefix

    def encrypt(self, fields: Dict[str, Any]) -> str:
        encoded = base64.b64encode(json.dumps(fields, sort_keys=True).encode("utf-8"))
        return self.prefix + encoded.decode("ascii")
