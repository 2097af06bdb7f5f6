import hashlib
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from hashring.hashing import HASHES_PER_DIGEST, gen_key, hash_digest, hash_val, ring_points


def test_digest_is_stable():
    val = hash_digest("whatever")
    for _ in range(10):
        assert hash_digest("whatever") == val
    assert val == hashlib.md5(b"whatever").digest()
    assert len(val) == 16


def test_hash_val_is_little_endian():
    assert hash_val(bytes([0x01, 0x02, 0x03, 0x04])) == 0x04030201
    assert hash_val(b"\xff\xff\xff\xff") == 2 ** 32 - 1
    assert hash_val(b"\x00\x00\x00\x00") == 0


def test_hash_val_reads_first_window_only():
    assert hash_val(bytes([0x01, 0x00, 0x00, 0x00, 0xff, 0xff])) == 1


def test_gen_key_uses_first_window():
    digest = hashlib.md5(b"test").digest()
    assert gen_key("test") == int.from_bytes(digest[:4], "little")


def test_ring_points_skip_last_window():
    digest = hash_digest("a-0")
    points = ring_points("a-0")
    assert len(points) == HASHES_PER_DIGEST == 3
    assert points == [
        int.from_bytes(digest[0:4], "little"),
        int.from_bytes(digest[4:8], "little"),
        int.from_bytes(digest[8:12], "little"),
    ]


def test_points_fit_in_32_bits():
    for i in range(50):
        for point in ring_points(f"node-{i}"):
            assert 0 <= point < 2 ** 32
