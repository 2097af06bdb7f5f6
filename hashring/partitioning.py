import logging
from abc import ABC, abstractmethod
from typing import Iterable

from .hash_ring import HashRing

logger = logging.getLogger(__name__)


class Partitioner(ABC):
    """Abstract base for partitioning strategies."""

    @abstractmethod
    def get_partition_id(self, key: str) -> int:
        """Return partition id for ``key``."""

    @abstractmethod
    def add_node(self, node) -> None:
        """Add a node to the partitioner."""

    @abstractmethod
    def remove_node(self, node) -> None:
        """Remove ``node`` from the partitioner."""


class ConsistentHashPartitioner(Partitioner):
    """Partitioner backed by :class:`HashRing` snapshots.

    Nodes are any objects exposing ``node_id``. Every membership change builds
    a new ring and swaps it into :attr:`ring`; a ring obtained earlier keeps
    answering lookups with the membership it was built from.
    """

    def __init__(self, nodes: list | None = None, *, weights: dict[str, int] | None = None, event_logger=None) -> None:
        self.event_logger = event_logger
        self.nodes: list = []
        self.nodes_by_id: dict = {}
        self.ring = HashRing()
        weights = weights or {}
        ring_weights = {}
        for node in nodes or []:
            if node.node_id in self.nodes_by_id:
                continue
            self.nodes.append(node)
            self.nodes_by_id[node.node_id] = node
            ring_weights[node.node_id] = weights.get(node.node_id, 1)
        if ring_weights:
            self.ring = HashRing.from_weights(ring_weights)
            # from_weights drops non-positive weights
            self.nodes = [n for n in self.nodes if n.node_id in self.ring]
            self.nodes_by_id = {n.node_id: n for n in self.nodes}
        self._log(f"Partitioner criado com {len(self.nodes)} nós.")

    def _log(self, msg: str) -> None:
        if self.event_logger:
            self.event_logger.log(msg)
        else:
            logger.info(msg)

    def get_partition_id(self, key: str) -> int:
        pos = self.ring.get_node_pos(key)
        return 0 if pos is None else pos

    def get_partition_map(self) -> dict[int, str]:
        ring = self.ring
        return {i: ring.get_node_at(i) for i in range(len(ring.points))}

    def get_preference_list(self, key: str, n: int) -> list[str]:
        """Return up to ``n`` distinct node ids responsible for ``key``."""
        ring = self.ring
        n = min(n, len(ring.weights))
        if n <= 0:
            return []
        return ring.get_nodes(key, n)

    def get_owner(self, key: str):
        node_id = self.ring.get_node(key)
        if node_id is None:
            return None
        return self.nodes_by_id.get(node_id)

    def get_fallback_owner(self, key: str, alive_ids: Iterable[str]):
        """Return the first node clockwise from ``key`` among ``alive_ids``."""
        node_id = self.ring.get_node_from(key, alive_ids)
        if node_id is None:
            return None
        return self.nodes_by_id.get(node_id)

    def add_node(self, node, weight: int = 1) -> None:
        ring = self.ring.add_weighted_node(node.node_id, weight)
        if ring is self.ring:
            return
        self.nodes.append(node)
        self.nodes_by_id[node.node_id] = node
        self.ring = ring
        self._log(f"Node {node.node_id} adicionado ao anel com peso {weight}.")

    def remove_node(self, node) -> None:
        ring = self.ring.remove_node(node.node_id)
        if ring is self.ring:
            return
        self.nodes = [n for n in self.nodes if n.node_id != node.node_id]
        self.nodes_by_id.pop(node.node_id, None)
        self.ring = ring
        self._log(f"Node {node.node_id} removido do anel.")

    def update_weight(self, node, weight: int) -> None:
        ring = self.ring.update_weighted_node(node.node_id, weight)
        if ring is self.ring:
            return
        self.ring = ring
        self._log(f"Peso do node {node.node_id} atualizado para {weight}.")
