"""Random squad names.

Names are "<prefix> XXXXX" with a 5-character A-Z0-9 suffix from a
cryptographic random source. They are display labels, not identifiers,
so uniqueness is not enforced.
"""

from __future__ import annotations

import secrets
import string

NAME_CHARSET = string.ascii_uppercase + string.digits  # A-Z, 0-9
NAME_SUFFIX_LENGTH = 5


def generate_squad_name(prefix: str = "Squad") -> str:
    """Generate a display name such as ``Squad K7Q2M``."""
    suffix = "".join(secrets.choice(NAME_CHARSET) for _ in range(NAME_SUFFIX_LENGTH))
    return f"{prefix} {suffix}"
