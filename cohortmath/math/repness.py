"""
Representative selection for clusters.

For each cluster, picks the member whose mean absolute deviation from the
cluster centroid is smallest. Representatives are always real entities,
never interpolated points.
"""

import numpy as np
from typing import List, Optional, Sequence, Tuple

from cohortmath.data.entities import Entity
from cohortmath.math.distance import mean_absolute_deviation
from cohortmath.utils.errors import InvalidInput

Representative = Tuple[Tuple[float, ...], int]


def best_member(centroid: Sequence[float], members: Sequence[Entity]) -> Optional[int]:
    """
    Find the member closest to a centroid by mean absolute deviation.

    Ties go to the first member encountered.

    Args:
        centroid: Cluster centroid
        members: Cluster members

    Returns:
        Position of the best member in members, or None if members is empty
    """
    best_idx = None
    best_dev = float('inf')

    for i, member in enumerate(members):
        dev = mean_absolute_deviation(member.features, centroid)
        if dev < best_dev:
            best_dev = dev
            best_idx = i

    return best_idx


def representative_indices(centroids: Sequence[Sequence[float]],
                          clusters: Sequence[Sequence[Entity]]) -> List[Optional[int]]:
    """
    Locate the representative of every cluster.

    Args:
        centroids: One centroid per cluster
        clusters: Members of each cluster

    Returns:
        For each cluster, the position of its representative, or None if empty

    Raises:
        InvalidInput: If centroids and clusters differ in count
    """
    if len(centroids) != len(clusters):
        raise InvalidInput(
            f"Got {len(centroids)} centroids for {len(clusters)} clusters"
        )

    return [best_member(np.asarray(c, dtype=float), members)
            for c, members in zip(centroids, clusters)]


def select_representatives(centroids: Sequence[Sequence[float]],
                          clusters: Sequence[Sequence[Entity]]) -> List[Representative]:
    """
    Select one representative (features, label) pair per non-empty cluster.

    Empty clusters contribute nothing, so the result can be shorter than
    the number of clusters. Use representative_indices to keep the
    cluster positions.

    Args:
        centroids: One centroid per cluster
        clusters: Members of each cluster

    Returns:
        List of (features, label) pairs in cluster order
    """
    result = []
    for members, idx in zip(clusters, representative_indices(centroids, clusters)):
        if idx is None:
            continue
        chosen = members[idx]
        result.append((chosen.features, chosen.label))
    return result
