"""
K-means clustering implementation for cohort analysis.

This module provides a Lloyd-style K-means with per-dimension random
initialization, lowest-index tie breaking during assignment, and a
clone-largest policy for clusters that lose all their members.
"""

import logging
import numpy as np
from typing import Any, Dict, List, Optional, Sequence, Union

from cohortmath.data.entities import Entity, entity_matrix
from cohortmath.math.distance import euclidean_distance
from cohortmath.utils.errors import DimensionMismatch, InvalidInput

logger = logging.getLogger(__name__)

RandomSource = Optional[Union[int, np.random.Generator]]


class Cluster:
    """
    Represents a cluster in K-means clustering.
    """

    def __init__(self,
                center: np.ndarray,
                members: Optional[List[int]] = None,
                id: Optional[int] = None,
                n_iter: int = 0):
        """
        Initialize a cluster with a center and optional members.

        Args:
            center: The center of the cluster
            members: Indices of members belonging to the cluster
            id: Unique identifier for the cluster
            n_iter: K-means iterations run to produce the center
        """
        self.center = np.array(center, dtype=float)
        self.members = [] if members is None else list(members)
        self.id = id
        self.n_iter = n_iter

    def __len__(self) -> int:
        return len(self.members)

    def __repr__(self) -> str:
        """String representation of the cluster."""
        return f"Cluster(id={self.id}, members={len(self.members)})"


def make_rng(rng: RandomSource = None) -> np.random.Generator:
    """
    Resolve a random source into a numpy Generator.

    Args:
        rng: A Generator (used as is), an integer seed, or None for fresh entropy

    Returns:
        numpy Generator
    """
    return np.random.default_rng(rng)


def init_centroids(data: np.ndarray, k: int, rng: RandomSource = None) -> np.ndarray:
    """
    Draw k random centroids inside the bounding box of the data.

    Each coordinate of each centroid is drawn independently and uniformly
    between the minimum and maximum observed for that dimension, so
    centroids need not coincide with any data point.

    Args:
        data: Data matrix of shape (n_points, n_features)
        k: Number of centroids
        rng: Random source

    Returns:
        Matrix of shape (k, n_features)
    """
    rng = make_rng(rng)
    mins = data.min(axis=0)
    maxs = data.max(axis=0)

    centroids = np.empty((k, data.shape[1]))
    for i in range(k):
        centroids[i] = rng.uniform(mins, maxs)

    # Keep draws inside the closed [min, max] range under rounding
    return np.clip(centroids, mins, maxs)


def assign_points(data: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Assign each data point to the nearest centroid.

    Ties go to the centroid with the lowest index.

    Args:
        data: Data matrix
        centroids: Centroid matrix

    Returns:
        Array of centroid indices, one per data point
    """
    assignment = np.zeros(data.shape[0], dtype=int)

    for i, point in enumerate(data):
        min_dist = float('inf')
        nearest = 0

        for j, center in enumerate(centroids):
            dist = euclidean_distance(point, center)
            if dist < min_dist:
                min_dist = dist
                nearest = j

        assignment[i] = nearest

    return assignment


def largest_cluster(assignment: np.ndarray, k: int) -> int:
    """Index of the cluster with the most members, lowest index on ties."""
    counts = np.bincount(assignment, minlength=k)
    return int(np.argmax(counts))


def update_centroids(data: np.ndarray,
                    centroids: np.ndarray,
                    assignment: np.ndarray) -> np.ndarray:
    """
    Compute new centroids from an assignment.

    Non-empty clusters move to the mean of their members. An empty cluster
    takes a copy of the new centroid of the largest cluster, so no centroid
    is left stranded away from the data.

    Args:
        data: Data matrix
        centroids: Current centroid matrix
        assignment: Centroid index for each data point

    Returns:
        New centroid matrix (the input is not modified)
    """
    k = centroids.shape[0]
    new_centroids = centroids.copy()
    empty = []

    for i in range(k):
        member_data = data[assignment == i]
        if member_data.shape[0] == 0:
            empty.append(i)
        else:
            new_centroids[i] = np.mean(member_data, axis=0)

    if empty:
        source = largest_cluster(assignment, k)
        for i in empty:
            logger.debug(f"Cluster {i} is empty, cloning centroid of cluster {source}")
            new_centroids[i] = new_centroids[source]

    return new_centroids


def same_centroids(a: np.ndarray, b: np.ndarray) -> bool:
    """Exact equality of two centroid matrices."""
    return np.array_equal(a, b)


def _validate(k: int, data: np.ndarray, max_iters: int) -> None:
    n_points = data.shape[0]
    if n_points == 0:
        raise InvalidInput("Cannot cluster an empty entity set")
    if k < 1:
        raise InvalidInput(f"k must be >= 1, got {k}")
    if k > n_points:
        raise InvalidInput(f"k ({k}) cannot exceed number of entities ({n_points})")
    if max_iters < 0:
        raise InvalidInput(f"max_iters must be >= 0, got {max_iters}")


def kmeans(data: np.ndarray,
          k: int,
          max_iters: int = 100,
          rng: RandomSource = None,
          centroids: Optional[np.ndarray] = None) -> List[Cluster]:
    """
    Perform K-means clustering on the data.

    Args:
        data: Data matrix of shape (n_points, n_features)
        k: Number of clusters
        max_iters: Maximum number of iterations
        rng: Random source for initialization
        centroids: Optional starting centroids, bypassing random initialization

    Returns:
        List of k clusters. Members are the points nearest each final center.
        Each cluster records the number of iterations run.
    """
    data = np.asarray(data, dtype=float)
    _validate(k, data, max_iters)

    if centroids is None:
        centroids = init_centroids(data, k, rng)
    else:
        centroids = np.array(centroids, dtype=float)
        if centroids.shape != (k, data.shape[1]):
            raise DimensionMismatch(
                f"Starting centroids have shape {centroids.shape}, expected {(k, data.shape[1])}"
            )

    n_iter = 0
    converged = False

    # Iteratively refine centroids
    for _ in range(max_iters):
        n_iter += 1
        assignment = assign_points(data, centroids)
        new_centroids = update_centroids(data, centroids, assignment)

        if same_centroids(centroids, new_centroids):
            converged = True
            break

        centroids = new_centroids

    if converged:
        logger.debug(f"K-means converged after {n_iter} iterations (k={k})")
    else:
        assignment = assign_points(data, centroids)
        logger.debug(f"K-means stopped after {n_iter} iterations without converging (k={k})")

    clusters = []
    for i, center in enumerate(centroids):
        clusters.append(Cluster(center, np.flatnonzero(assignment == i).tolist(), i, n_iter))

    return clusters


def cluster(k: int,
           entities: Sequence[Entity],
           max_iterations: int = 100,
           rng: RandomSource = None) -> List[np.ndarray]:
    """
    Cluster entities and return the final centroids.

    Args:
        k: Number of clusters, 1 <= k <= len(entities)
        entities: Non-empty sequence of same-length entities
        max_iterations: Iteration budget (0 returns the random initial centroids)
        rng: Random source; pass a seed or Generator for reproducible output

    Returns:
        List of exactly k centroids

    Raises:
        InvalidInput: If the entity set is empty or k is out of range
        DimensionMismatch: If entities have different lengths
    """
    data = entity_matrix(entities)
    return [c.center for c in kmeans(data, k, max_iterations, rng)]


def group_by_cluster(entities: Sequence[Entity],
                    centroids: Sequence[np.ndarray]) -> List[List[Entity]]:
    """
    Partition entities by their nearest centroid.

    Args:
        entities: Entities to partition
        centroids: Centroids, one per output group

    Returns:
        One list of entities per centroid, in entity order (possibly empty)
    """
    data = entity_matrix(entities)
    assignment = assign_points(data, np.asarray(centroids, dtype=float))

    groups = [[] for _ in range(len(centroids))]
    for entity, idx in zip(entities, assignment):
        groups[idx].append(entity)
    return groups


def inertia(data: np.ndarray, clusters: List[Cluster]) -> float:
    """
    Total squared distance of every member to its cluster center.

    Args:
        data: Data matrix
        clusters: Clusters with members indexing into data

    Returns:
        Sum of squared distances
    """
    total = 0.0
    for c in clusters:
        for idx in c.members:
            total += euclidean_distance(data[idx], c.center) ** 2
    return total


def clusters_to_dict(clusters: List[Cluster]) -> List[Dict[str, Any]]:
    """
    Convert clusters to a dictionary format for serialization.

    Args:
        clusters: List of clusters

    Returns:
        List of cluster dictionaries
    """
    return [
        {
            'id': c.id,
            'center': c.center.tolist(),
            'members': list(c.members),
        }
        for c in clusters
    ]
