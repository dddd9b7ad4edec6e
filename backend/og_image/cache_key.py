"""
Cache key derivation.

A key is the MD5 hex digest of ``"{url}-{width}-{height}"``. It is stable
across restarts and safe to use directly as a file name.

MD5 is not used for integrity here. Two different requests hashing to the
same key would silently share an image; at 128 bits that is an accepted risk
for a cache.
"""

import hashlib

KEY_LENGTH = 32


def derive_key(url: str, width: int, height: int) -> str:
    """Map a normalized target URL and viewport size to a cache key."""
    return hashlib.md5(f"{url}-{width}-{height}".encode("utf-8")).hexdigest()
