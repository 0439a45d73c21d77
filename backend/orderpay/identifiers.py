# Overview: Random code generation for externally visible numbers and gateway references.

import secrets
import string

UPPER_ALNUM = string.ascii_uppercase + string.digits


def random_code(length: int, alphabet: str = UPPER_ALNUM) -> str:
    """Uppercase alphanumeric code from the CSPRNG (safe to call from any thread)."""
    return "".join(secrets.choice(alphabet) for _ in range(length))
