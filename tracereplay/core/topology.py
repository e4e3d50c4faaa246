"""
Topology Engine
===============

Structural analysis of the replayed graph using networkx.

This engine reports GEOMETRY of the current state only.

ALLOWED:
- Connected components
- Path finding between nodes
- Structural metrics (density, diameter)

NOT PROVIDED:
- Any mutation of the replayed graph
- Layout or rendering hints
"""

from __future__ import annotations
import logging
from typing import List, Set, Optional
from dataclasses import dataclass
import networkx as nx

from ..contracts.graph import GraphSnapshot, scalar_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphMetrics:
    """Immutable structural metrics for a graph snapshot."""
    node_count: int
    edge_count: int
    density: float
    is_connected: bool
    connected_components_count: int
    diameter: Optional[int] = None  # Only for connected graphs

    def to_dict(self) -> dict:
        return {
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "density": self.density,
            "is_connected": self.is_connected,
            "connected_components_count": self.connected_components_count,
            "diameter": self.diameter,
        }


class TopologyEngine:
    """
    Undirected projection of a graph snapshot.

    Parallel links between the same pair of nodes collapse into one edge.
    Links whose endpoints are not present as nodes are ignored.
    """

    def __init__(self):
        self._graph = nx.Graph()

    def build_graph(self, snapshot: GraphSnapshot) -> None:
        """
        Build graph from a snapshot.

        Replaces internal graph state.
        """
        self._graph = nx.Graph()

        for node in snapshot.nodes:
            self._graph.add_node(node.id, label=node.label)

        for link in snapshot.links:
            if link.source not in self._graph or link.target not in self._graph:
                logger.debug("Ignoring dangling link %s", link.id)
                continue
            self._graph.add_edge(
                link.source,
                link.target,
                link_id=link.id,
                weight=scalar_value(link.value)
            )

    def get_connected_components(self) -> List[Set[int]]:
        """Disjoint node sets, in arbitrary order."""
        if not self._graph:
            return []
        return [set(c) for c in nx.connected_components(self._graph)]

    def compute_metrics(self) -> GraphMetrics:
        if not self._graph:
            return GraphMetrics(0, 0, 0.0, False, 0, None)

        is_connected = nx.is_connected(self._graph)

        diameter = None
        if is_connected and len(self._graph) > 1:
            diameter = nx.diameter(self._graph)

        return GraphMetrics(
            node_count=self._graph.number_of_nodes(),
            edge_count=self._graph.number_of_edges(),
            density=nx.density(self._graph),
            is_connected=is_connected,
            connected_components_count=nx.number_connected_components(self._graph),
            diameter=diameter
        )

    def get_shortest_path(self, start_id: int, end_id: int) -> Optional[List[int]]:
        """Shortest path between two nodes, or None when unreachable."""
        try:
            return nx.shortest_path(self._graph, source=start_id, target=end_id)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None

    def clear(self) -> None:
        self._graph.clear()


def compute_metrics(snapshot: GraphSnapshot) -> GraphMetrics:
    """One-shot metrics for a snapshot."""
    engine = TopologyEngine()
    engine.build_graph(snapshot)
    return engine.compute_metrics()
