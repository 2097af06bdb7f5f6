import logging
import math
from bisect import bisect_right
from typing import Iterable, Iterator

from .hashing import POINTS_PER_NODE, gen_key, ring_points

logger = logging.getLogger(__name__)


def _positive_weights(weights: dict[str, int]) -> dict[str, int]:
    accepted = {}
    for node, weight in weights.items():
        if weight <= 0:
            logger.warning(f"Ignoring node {node!r} with non-positive weight {weight}")
            continue
        accepted[node] = weight
    return accepted


class HashRing:
    """Consistent hashing ring with weighted virtual nodes (libketama layout).

    Points are stored in ascending order and a key belongs to the owner of
    the first point strictly greater than the key's own point, wrapping to
    the first point past the end of the ring.

    A ring is a snapshot: ``add_node``, ``add_weighted_node``,
    ``update_weighted_node`` and ``remove_node`` return either ``self``
    (nothing to change) or a freshly built ring, so a ring already handed to
    readers never changes underneath them. ``update_with_weights`` is the one
    exception and rewrites the receiver in place.
    """

    def __init__(self, nodes: Iterable[str] | None = None, *, weights: dict[str, int] | None = None) -> None:
        self._ring: dict[int, str] = {}
        self._sorted_keys: tuple[int, ...] = ()
        if isinstance(nodes, str):
            raise TypeError("nodes must be an iterable of node ids, not a single str")
        nodes = tuple(nodes or ())
        given = weights or {}
        # weights only count for listed nodes; listed nodes with a
        # non-positive weight stay off the ring
        self._weights: dict[str, int] = _positive_weights(
            {node: given[node] for node in dict.fromkeys(nodes) if node in given}
        )
        self._nodes: tuple[str, ...] = tuple(
            node for node in nodes if node not in given or node in self._weights
        )
        self._generate_circle()

    @classmethod
    def from_weights(cls, weights: dict[str, int]) -> "HashRing":
        """Build a ring from a ``{node: weight}`` table."""
        return cls(list(weights), weights=weights)

    def _generate_circle(self) -> None:
        total_weight = 0
        for node in self._nodes:
            if node in self._weights:
                total_weight += self._weights[node]
            else:
                total_weight += 1
                self._weights[node] = 1

        points = []
        for node in self._nodes:
            weight = self._weights[node]
            # ceil keeps at least one virtual node for tiny weights
            factor = math.ceil(POINTS_PER_NODE * len(self._nodes) * weight / total_weight)
            for j in range(factor):
                for key in ring_points(f"{node}-{j}"):
                    self._ring[key] = node
                    points.append(key)

        points.sort()
        self._sorted_keys = tuple(points)
        logger.debug(
            f"Ring built with {len(self._weights)} nodes and {len(self._sorted_keys)} points"
        )

    # -- read accessors -------------------------------------------------

    def size(self) -> int:
        """Return the number of entries in the node list."""
        return len(self._nodes)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, node: str) -> bool:
        return node in self._weights

    def __repr__(self) -> str:
        return f"HashRing(nodes={len(self._weights)}, points={len(self._sorted_keys)})"

    @property
    def nodes(self) -> tuple[str, ...]:
        return self._nodes

    @property
    def weights(self) -> dict[str, int]:
        return dict(self._weights)

    @property
    def points(self) -> tuple[int, ...]:
        return self._sorted_keys

    # -- lookups --------------------------------------------------------

    def gen_key(self, key: str) -> int:
        """Return the 32-bit ring point of ``key``."""
        return gen_key(key)

    def get_node_pos(self, key: str) -> int | None:
        """Return the index in :attr:`points` that ``key`` belongs to.

        ``None`` is returned when the ring is empty.
        """
        if not self._sorted_keys:
            return None
        pos = bisect_right(self._sorted_keys, self.gen_key(key))
        if pos == len(self._sorted_keys):
            # past the largest point: wrap to the first one
            return 0
        return pos

    def get_node(self, key: str) -> str | None:
        """Return the node owning ``key`` or ``None`` if the ring is empty."""
        pos = self.get_node_pos(key)
        if pos is None:
            return None
        return self.get_node_at(pos)

    def get_node_at(self, pos: int) -> str:
        """Return the owner of the point at index ``pos`` in :attr:`points`."""
        return self._ring[self._sorted_keys[pos]]

    def iterate_nodes(self, key: str, distinct: bool = True) -> Iterator[str]:
        """Yield owners clockwise from ``key``'s position, once around the ring.

        With ``distinct`` each node is yielded only the first time it is met.
        """
        pos = self.get_node_pos(key)
        if pos is None:
            return
        seen = set()
        count = len(self._sorted_keys)
        for i in range(pos, pos + count):
            node = self.get_node_at(i % count)
            if distinct:
                if node in seen:
                    continue
                seen.add(node)
            yield node

    def get_nodes(self, key: str, size: int) -> list[str]:
        """Return ``size`` distinct nodes for ``key``, primary owner first.

        An empty list means the request cannot be satisfied: ``size`` is not
        positive, exceeds the number of distinct nodes, or the ring is empty.
        """
        if size <= 0 or size > len(self._weights):
            return []
        result = []
        for node in self.iterate_nodes(key):
            result.append(node)
            if len(result) == size:
                return result
        return []

    def get_node_from(self, key: str, nodes: Iterable[str]) -> str | None:
        """Return the first node clockwise from ``key`` that is in ``nodes``."""
        allowed = set(nodes)
        for node in self.iterate_nodes(key):
            if node in allowed:
                return node
        return None

    # -- membership -----------------------------------------------------

    def add_node(self, node: str) -> "HashRing":
        return self.add_weighted_node(node, 1)

    def add_weighted_node(self, node: str, weight: int) -> "HashRing":
        """Return a ring with ``node`` added, or ``self`` if nothing changes."""
        if weight <= 0 or node in self._weights:
            logger.debug(f"add_weighted_node({node!r}, {weight}) left the ring unchanged")
            return self
        weights = dict(self._weights)
        weights[node] = weight
        return HashRing([*self._nodes, node], weights=weights)

    def update_weighted_node(self, node: str, weight: int) -> "HashRing":
        """Return a ring with ``node`` re-weighted, or ``self`` if nothing changes."""
        if weight <= 0 or node not in self._weights or self._weights[node] == weight:
            logger.debug(f"update_weighted_node({node!r}, {weight}) left the ring unchanged")
            return self
        weights = dict(self._weights)
        weights[node] = weight
        return HashRing(list(self._nodes), weights=weights)

    def remove_node(self, node: str) -> "HashRing":
        """Return a ring without ``node``, or ``self`` if it is not a member."""
        if node not in self._weights:
            logger.debug(f"remove_node({node!r}) left the ring unchanged")
            return self
        nodes = [n for n in self._nodes if n != node]
        weights = {n: w for n, w in self._weights.items() if n != node}
        return HashRing(nodes, weights=weights)

    def update_with_weights(self, weights: dict[str, int]) -> None:
        """Rebuild this ring in place from ``weights`` when they differ.

        Unlike the other mutators this rewrites the receiver, so callers must
        keep readers away from the ring while it runs.
        """
        if {n: w for n, w in weights.items() if w > 0} == self._weights:
            return
        fresh = HashRing.from_weights(weights)
        self._weights = fresh._weights
        self._nodes = fresh._nodes
        self._ring = fresh._ring
        self._sorted_keys = fresh._sorted_keys
