from __future__ import annotations

import secrets
import string
from typing import Callable, Optional

_ALPHABET = string.digits + string.ascii_lowercase
_ID_LENGTH = 9


def generate_registry_id(is_taken: Optional[Callable[[str], bool]] = None) -> str:
    """
    Generate a random registry identifier of the form ``registry-xxxxxxxxx``.

    The suffix is nine base-36 characters. When ``is_taken`` is given, IDs it
    reports as already in use are discarded and a new one is drawn.
    """
    while True:
        suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_ID_LENGTH))
        registry_id = f"registry-{suffix}"
        if is_taken is None or not is_taken(registry_id):
            return registry_id
