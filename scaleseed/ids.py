"""Deterministic, content-addressed identifiers."""

import hashlib


def stable_id(namespace: str, key: str) -> str:
    """
    Derive a UUID-shaped identifier from a namespace and a key.

    SHA-1 of ``"{namespace}:{key}"`` reshaped to 8-4-4-4-12 with version
    nibble 5 and the RFC 4122 variant bits, so the same inputs always map to
    the same id and reseeding can rely on ``ON CONFLICT`` for idempotency.

    Args:
        namespace: Entity namespace (e.g. "org", "task")
        key: Locally derived key, normally "<seed>:<index>"

    Returns:
        Lowercase UUID string

    Example:
        >>> stable_id("org", "42:scale-seed") == stable_id("org", "42:scale-seed")
        True
    """
    digest = hashlib.sha1(f"{namespace}:{key}".encode()).hexdigest()

    time_low = digest[0:8]
    time_mid = digest[8:12]
    time_hi = "5" + digest[13:16]
    variant = f"{(int(digest[16:18], 16) & 0x3F) | 0x80:02x}" + digest[18:20]
    node = digest[20:32]

    return f"{time_low}-{time_mid}-{time_hi}-{variant}-{node}"
