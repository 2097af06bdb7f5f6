"""Consistent hashing with weighted virtual nodes."""

from .hash_ring import HashRing
from .hashing import gen_key, hash_digest, hash_val
from .partitioning import ConsistentHashPartitioner, Partitioner
