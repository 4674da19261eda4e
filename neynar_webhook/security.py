"""Utilities for validating Neynar webhook signatures."""

from __future__ import annotations

import hmac
import re
from hashlib import sha256

NEYNAR_SIGNATURE_HEADER = "x-neynar-signature"
DIGEST_SIZE = sha256().digest_size

_HEX_PATTERN = re.compile(r"[0-9a-fA-F]*")


def compute_signature(secret: bytes | str, raw_body: bytes) -> str:
    """Return the lowercase hex HMAC-SHA256 of *raw_body* under *secret*."""

    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return hmac.new(secret, raw_body, sha256).hexdigest()


def _decode_signature(provided: str | None) -> bytes | None:
    if not provided:
        return None
    if len(provided) % 2 or not _HEX_PATTERN.fullmatch(provided):
        return None
    return bytes.fromhex(provided)


def verify_signature(secret: bytes | str | None, raw_body: bytes, provided_signature: str | None) -> bool:
    """Return True when *provided_signature* is the HMAC of the exact *raw_body* bytes.

    Never raises. Missing or malformed input still runs a full-length
    constant-time comparison against a placeholder so rejection timing does
    not reveal why the signature was refused.
    """

    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    has_secret = bool(secret)

    expected = hmac.new(secret or b"\x00", raw_body, sha256).digest()
    decoded = _decode_signature(provided_signature)

    well_formed = decoded is not None and len(decoded) == DIGEST_SIZE
    candidate = decoded if well_formed else bytes(DIGEST_SIZE)

    matches = hmac.compare_digest(expected, candidate)
    return matches and well_formed and has_secret
