"""
Similarity graph over entities.

Two entities are joined when the fraction of their features that coincide
(within a small epsilon) reaches a threshold. This is a coincidence count,
not a geometric distance: features on different scales should be
normalised by the caller first.
"""

import logging
import networkx as nx
import numpy as np
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from cohortmath.data.entities import Entity, entity_matrix
from cohortmath.math.distance import Vector
from cohortmath.utils.errors import DimensionMismatch, InvalidInput

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.5
DEFAULT_EPSILON = 0.001


class SimilarityGraph:
    """
    Undirected simple graph over node indices 0..n_nodes-1.

    Backed by a networkx.Graph, so adding an edge twice has no effect.
    Self-loops are rejected.
    """

    def __init__(self, n_nodes: int = 0, edges: Optional[Iterable[Tuple[int, int]]] = None):
        self.graph = nx.Graph()
        self.graph.add_nodes_from(range(n_nodes))
        for a, b in edges or []:
            self.add_edge(a, b)

    @property
    def nodes(self) -> List[int]:
        return sorted(self.graph.nodes)

    def __len__(self) -> int:
        return self.graph.number_of_nodes()

    def __contains__(self, node: int) -> bool:
        return self.graph.has_node(node)

    def add_edge(self, a: int, b: int) -> None:
        """
        Add an undirected edge between two existing nodes.

        Args:
            a: First node
            b: Second node

        Raises:
            KeyError: If either node is not in the graph
            ValueError: If a == b
        """
        if a == b:
            raise ValueError(f"Self-loop on node {a} not allowed")
        if a not in self.graph:
            raise KeyError(f"Node {a} not found")
        if b not in self.graph:
            raise KeyError(f"Node {b} not found")

        self.graph.add_edge(a, b)

    def remove_node(self, node: int) -> None:
        """Remove a node and all of its edges."""
        self.graph.remove_node(node)

    def remove_nodes(self, nodes: Iterable[int]) -> None:
        """Remove several nodes at once."""
        self.graph.remove_nodes_from(list(nodes))

    def neighbors(self, node: int) -> Set[int]:
        return set(self.graph.neighbors(node))

    def degree(self, node: int) -> int:
        return self.graph.degree(node)

    def degrees(self) -> Dict[int, int]:
        """Degree of every node."""
        return dict(self.graph.degree())

    def edges(self) -> List[Tuple[int, int]]:
        """All edges as sorted (low, high) pairs."""
        return sorted((min(a, b), max(a, b)) for a, b in self.graph.edges())

    def edge_count(self) -> int:
        return self.graph.number_of_edges()

    def copy(self) -> 'SimilarityGraph':
        """Independent working copy of the graph."""
        g = SimilarityGraph()
        g.graph = self.graph.copy()
        return g

    def to_dict(self) -> Dict[str, List[int]]:
        """Adjacency with sorted keys and neighbour lists, for serialization."""
        return {str(node): sorted(self.graph.neighbors(node)) for node in self.nodes}

    def __eq__(self, other) -> bool:
        if not isinstance(other, SimilarityGraph):
            return NotImplemented
        return self.nodes == other.nodes and self.edges() == other.edges()

    def __repr__(self) -> str:
        return f"SimilarityGraph(nodes={len(self)}, edges={self.edge_count()})"


def similarity(a: Vector, b: Vector, epsilon: float = DEFAULT_EPSILON) -> float:
    """
    Fraction of dimensions where two vectors agree to within epsilon.

    Args:
        a: First vector
        b: Second vector
        epsilon: Largest difference still counted as a match (exclusive)

    Returns:
        Similarity in [0, 1]

    Raises:
        DimensionMismatch: If the vectors differ in length
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise DimensionMismatch(f"Vectors have different shapes: {a.shape} vs {b.shape}")
    if a.size == 0:
        return 0.0
    return float(np.count_nonzero(np.abs(a - b) < epsilon) / a.size)


def build_graph(entities: Sequence[Entity],
               threshold: float = DEFAULT_THRESHOLD,
               epsilon: float = DEFAULT_EPSILON) -> SimilarityGraph:
    """
    Build the similarity graph for a population.

    Every unordered pair of distinct entities is compared; pairs with
    similarity >= threshold are joined by an edge.

    Args:
        entities: Entities, one node each (node i is entities[i])
        threshold: Minimum similarity for an edge
        epsilon: Per-dimension match tolerance

    Returns:
        SimilarityGraph with len(entities) nodes
    """
    if epsilon < 0:
        raise InvalidInput(f"epsilon must be non-negative, got {epsilon}")

    graph = SimilarityGraph(len(entities))
    if len(entities) < 2:
        return graph

    data = entity_matrix(entities)
    n_points, n_features = data.shape

    for i in range(n_points - 1):
        # Compare entity i with every later entity at once
        matches = np.abs(data[i + 1:] - data[i]) < epsilon
        if n_features:
            sims = np.count_nonzero(matches, axis=1) / n_features
        else:
            sims = np.zeros(n_points - i - 1)
        for offset in np.flatnonzero(sims >= threshold):
            graph.add_edge(i, i + 1 + int(offset))

    logger.debug(f"Built similarity graph with {len(graph)} nodes and "
                 f"{graph.edge_count()} edges (threshold={threshold}, epsilon={epsilon})")
    return graph
