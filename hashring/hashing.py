"""Hashing primitives shared by the ring and its lookups.

Every position on the ring is an unsigned 32-bit integer read from an MD5
digest in little-endian order.
"""
import hashlib

POINTS_PER_NODE = 40  # virtual-node factor before weighting
HASHES_PER_DIGEST = 3  # the fourth 4-byte window is never used
POINT_BYTES = 4


def hash_digest(key: str) -> bytes:
    """Return the 16-byte MD5 digest of ``key``."""
    return hashlib.md5(key.encode("utf-8")).digest()


def hash_val(b_key: bytes) -> int:
    """Decode a 4-byte little-endian window into a ring point."""
    return int.from_bytes(b_key[:POINT_BYTES], "little")


def gen_key(key: str) -> int:
    """Return the ring point for a lookup ``key``."""
    return hash_val(hash_digest(key))


def ring_points(node_key: str) -> list[int]:
    """Return the points produced by one virtual node key such as ``"a-0"``."""
    digest = hash_digest(node_key)
    return [
        hash_val(digest[i * POINT_BYTES:(i + 1) * POINT_BYTES])
        for i in range(HASHES_PER_DIGEST)
    ]
