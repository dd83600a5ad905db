"""
K-core decomposition by iterative peeling.

Nodes with fewer than k neighbours are removed in rounds until every
remaining node has degree >= k. Removals within a round are simultaneous:
degrees are read for all nodes before any of that round's removals apply.
"""

import logging
from typing import Dict, List, Optional, Set

from cohortmath.math.graph import SimilarityGraph
from cohortmath.utils.errors import InvalidInput

logger = logging.getLogger(__name__)


def peel(graph: SimilarityGraph, k: int) -> int:
    """
    Remove low-degree nodes from a graph in place until none remain.

    Args:
        graph: Working graph, modified in place
        k: Minimum degree a node needs to survive

    Returns:
        Number of peeling rounds that removed at least one node
    """
    rounds = 0
    while True:
        marked = [node for node, degree in graph.degrees().items() if degree < k]
        if not marked:
            return rounds
        graph.remove_nodes(marked)
        rounds += 1


def k_core_decomposition(graph: SimilarityGraph, k: int) -> List[Set[int]]:
    """
    Decompose a graph into successive k-cores.

    Each pass peels the working graph to its fixpoint, takes the surviving
    nodes as the next core, strips them, and repeats while nodes remain.
    A pass that peels every node yields an empty core; empty cores are not
    emitted.

    Args:
        graph: Graph to decompose (not modified)
        k: Minimum degree within a core, k >= 1

    Returns:
        Disjoint node sets in extraction order

    Raises:
        InvalidInput: If k < 1
    """
    if k < 1:
        raise InvalidInput(f"k must be >= 1, got {k}")

    working = graph.copy()
    cores = []

    while len(working):
        rounds = peel(working, k)
        core = {node for node, degree in working.degrees().items() if degree > 0}
        logger.debug(f"Peeled {rounds} round(s) at k={k}, core of {len(core)} node(s)")

        if not core:
            break

        cores.append(core)
        working.remove_nodes(core)

    return cores


def nested_cores(graph: SimilarityGraph, max_k: Optional[int] = None) -> Dict[int, Set[int]]:
    """
    Compute the k-core for k = 1, 2, ... until it is empty.

    Each k-core contains the next, so the result describes the onion
    layers of the graph from the outside in.

    Args:
        graph: Graph to decompose (not modified)
        max_k: Optional upper bound on k

    Returns:
        Mapping from k to the nodes of the k-core (only non-empty cores)
    """
    result = {}
    k = 1
    while max_k is None or k <= max_k:
        cores = k_core_decomposition(graph, k)
        if not cores:
            break
        result[k] = set().union(*cores)
        k += 1
    return result
