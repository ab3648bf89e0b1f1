"""Short SHA-1 content hashes for stable identifiers."""

import hashlib


def short_sha1(text: str, length: int = 10) -> str:
    """Return the first `length` hex characters of SHA-1(text) (UTF-8)."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:length]


def seed_from_text(text: str) -> int:
    """Derive a 32-bit integer seed from text."""
    return int(short_sha1(text, 8), 16)
