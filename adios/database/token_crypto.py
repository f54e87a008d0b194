"""Encryption at rest for a user's provider OAuth credentials.

`TOKEN_ENCRYPTION_KEY` holds one or more comma-separated Fernet keys. The
first key encrypts; every key is tried when decrypting, so a new key can be
prepended and old rows still read until they are next rewritten.

Raw tokens must never be logged.
"""

import os
from typing import List, Tuple

from cryptography.fernet import Fernet, InvalidToken, MultiFernet


def _configured_keys() -> List[str]:
    raw = os.getenv("TOKEN_ENCRYPTION_KEY", "")
    keys = [k.strip() for k in raw.split(",") if k.strip()]
    if not keys:
        raise RuntimeError(
            "TOKEN_ENCRYPTION_KEY is not set. "
            "Set it to one or more comma-separated Fernet keys to store provider tokens."
        )
    return keys


def _cipher() -> MultiFernet:
    try:
        return MultiFernet([Fernet(key) for key in _configured_keys()])
    except ValueError as e:
        raise RuntimeError("TOKEN_ENCRYPTION_KEY contains an invalid Fernet key.") from e


def encrypt_tokens(access_token: str, refresh_token: str) -> Tuple[str, str]:
    """Encrypt an access/refresh token pair with the primary key."""
    cipher = _cipher()
    return (
        cipher.encrypt(access_token.encode("utf-8")).decode("utf-8"),
        cipher.encrypt(refresh_token.encode("utf-8")).decode("utf-8"),
    )


def decrypt_tokens(access_token_enc: str, refresh_token_enc: str) -> Tuple[str, str]:
    """Decrypt a stored access/refresh token pair."""
    cipher = _cipher()
    try:
        return (
            cipher.decrypt(access_token_enc.encode("utf-8")).decode("utf-8"),
            cipher.decrypt(refresh_token_enc.encode("utf-8")).decode("utf-8"),
        )
    except InvalidToken as e:
        raise RuntimeError("Stored tokens could not be decrypted; TOKEN_ENCRYPTION_KEY may be wrong.") from e
