"""
Field-level encryption for sensitive patient data (IC number, diagnosis,
appointment reason).

Values are sealed with AES-GCM under a key derived from
``settings.ENCRYPTION_KEY`` (PBKDF2-HMAC-SHA256, salted with
``settings.ENCRYPTION_SALT``) and stored as base64 text: ``nonce || ciphertext``.
The same derivation yields a second, independent key for IC digests.
"""

import base64
import hashlib
import hmac
import os
import re
from functools import lru_cache
from typing import Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from django.conf import settings

NONCE_SIZE = 12
KDF_ITERATIONS = 100_000

IC_FORMATTED_RE = re.compile(r"^\d{6}-\d{2}-\d{4}$")
IC_DIGITS_RE = re.compile(r"^\d{12}$")
PHONE_RE = re.compile(r"^\d{10,15}$")


class DecryptionError(Exception):
    """Stored ciphertext could not be opened with the configured key."""


@lru_cache(maxsize=8)
def _derive_keys(passphrase: str, salt: str) -> Tuple[bytes, bytes]:
    """
    PBKDF2-HMAC-SHA256 over the configured passphrase.
    Returns (AES-256 key, HMAC key for IC digests).
    """
    dk = hashlib.pbkdf2_hmac(
        "sha256",
        passphrase.encode("utf-8"),
        hashlib.sha256(salt.encode("utf-8")).digest(),
        KDF_ITERATIONS,
        dklen=64,
    )
    return dk[:32], dk[32:]


def _key() -> bytes:
    return _derive_keys(settings.ENCRYPTION_KEY, settings.ENCRYPTION_SALT)[0]


def _digest_key() -> bytes:
    return _derive_keys(settings.ENCRYPTION_KEY, settings.ENCRYPTION_SALT)[1]


def encrypt_text(plaintext: str) -> str:
    nonce = os.urandom(NONCE_SIZE)
    sealed = AESGCM(_key()).encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(nonce + sealed).decode("ascii")


def decrypt_text(token: str) -> str:
    try:
        raw = base64.b64decode(token.encode("ascii"), validate=True)
    except (ValueError, UnicodeEncodeError) as exc:
        raise DecryptionError("value is not valid base64 ciphertext") from exc

    if len(raw) <= NONCE_SIZE:
        raise DecryptionError("ciphertext too short")

    nonce, sealed = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
    try:
        return AESGCM(_key()).decrypt(nonce, sealed, None).decode("utf-8")
    except InvalidTag as exc:
        raise DecryptionError("authentication tag mismatch (wrong key?)") from exc


def normalize_ic(value: str) -> str:
    """
    Accept 'XXXXXX-XX-XXXX' or 12 bare digits (spaces/dashes ignored) and
    return the dashed form. Raises ValueError for anything else.
    """
    value = (value or "").strip()
    if IC_FORMATTED_RE.match(value):
        return value

    digits = re.sub(r"[\s-]", "", value)
    if not IC_DIGITS_RE.match(digits):
        raise ValueError("IC number must be 12 digits (XXXXXX-XX-XXXX).")
    return f"{digits[:6]}-{digits[6:8]}-{digits[8:]}"


def ic_digest(ic_number: str) -> str:
    """Keyed digest of a normalized IC, used for uniqueness and exact search."""
    return hmac.new(_digest_key(), normalize_ic(ic_number).encode("utf-8"), hashlib.sha256).hexdigest()


def mask_ic(ic_number: str) -> str:
    """Hide the last four characters: '900101-14-5678' -> '900101-14-XXXX'."""
    if not ic_number or len(ic_number) < 4:
        return ic_number
    return ic_number[:-4] + "XXXX"


def is_valid_phone(phone: str) -> bool:
    digits = re.sub(r"[\s\-+]", "", phone or "")
    return bool(PHONE_RE.match(digits))
