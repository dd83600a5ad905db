"""
Tests for the clustering module.
"""

import pytest
import numpy as np
import sys
import os

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cohortmath.data.entities import Entity, entity_matrix, make_entities
from cohortmath.math.clusters import (
    Cluster, init_centroids, assign_points, largest_cluster, update_centroids,
    same_centroids, kmeans, cluster, group_by_cluster, inertia, clusters_to_dict
)
from cohortmath.math.distance import euclidean_distance
from cohortmath.utils.errors import DimensionMismatch, InvalidInput


@pytest.fixture
def staircase():
    """Four entities on a diagonal line."""
    return make_entities([
        ([1.0, 2.0], 0),
        ([2.0, 3.0], 1),
        ([3.0, 4.0], 0),
        ([4.0, 5.0], 1),
    ])


class TestCluster:
    """Tests for the Cluster class."""

    def test_init(self):
        """Test Cluster initialization."""
        cluster_obj = Cluster(np.array([1.0, 2.0]), [1, 3, 5], 0)

        assert np.array_equal(cluster_obj.center, [1.0, 2.0])
        assert cluster_obj.members == [1, 3, 5]
        assert cluster_obj.id == 0
        assert len(cluster_obj) == 3
        assert cluster_obj.n_iter == 0

        # Test with defaults
        cluster_default = Cluster([1.0, 2.0])
        assert cluster_default.members == []
        assert cluster_default.id is None


class TestInitialization:
    """Tests for random centroid initialization."""

    def test_within_bounds(self):
        """Every coordinate lies between the per-dimension min and max."""
        rng = np.random.default_rng(0)
        data = rng.normal(size=(50, 3)) * [1.0, 10.0, 100.0]

        centroids = init_centroids(data, 5, rng)

        assert centroids.shape == (5, 3)
        assert np.all(centroids >= data.min(axis=0))
        assert np.all(centroids <= data.max(axis=0))

    def test_constant_dimension(self):
        """A dimension with a single observed value yields that value."""
        data = np.array([[1.0, 7.0], [2.0, 7.0], [3.0, 7.0]])

        centroids = init_centroids(data, 3, 1)

        assert np.all(centroids[:, 1] == 7.0)

    def test_seeded(self):
        """The same seed gives the same centroids."""
        data = np.array([[0.0, 0.0], [10.0, 5.0], [3.0, 1.0]])

        assert np.array_equal(init_centroids(data, 2, 42), init_centroids(data, 2, 42))
        assert np.array_equal(
            init_centroids(data, 2, np.random.default_rng(3)),
            init_centroids(data, 2, np.random.default_rng(3)),
        )


class TestAssignment:
    """Tests for the assignment step."""

    def test_nearest(self):
        """Test assigning points to clusters."""
        data = np.array([
            [1.0, 1.0],
            [2.0, 2.0],
            [5.0, 5.0],
            [6.0, 6.0]
        ])
        centroids = np.array([[1.5, 1.5], [5.5, 5.5]])

        assert assign_points(data, centroids).tolist() == [0, 0, 1, 1]

    def test_tie_goes_to_lowest_index(self):
        """Equidistant centroids resolve to the first one."""
        data = np.array([[0.0, 0.0]])
        centroids = np.array([[1.0, 0.0], [-1.0, 0.0], [0.0, 1.0]])

        assert assign_points(data, centroids).tolist() == [0]

        # Duplicated centroids: the lower index takes every point
        data = np.array([[0.0, 0.0], [3.0, 3.0]])
        centroids = np.array([[9.0, 9.0], [1.0, 1.0], [1.0, 1.0]])
        assert assign_points(data, centroids).tolist() == [1, 1]

    def test_minimum_by_brute_force(self):
        """Each point goes to a minimum-distance centroid, lowest index first."""
        rng = np.random.default_rng(7)
        data = rng.integers(0, 4, size=(40, 2)).astype(float)
        centroids = rng.integers(0, 4, size=(5, 2)).astype(float)

        assignment = assign_points(data, centroids)

        assert len(assignment) == len(data)
        for point, idx in zip(data, assignment):
            dists = [euclidean_distance(point, c) for c in centroids]
            assert dists[idx] == min(dists)
            assert idx == dists.index(min(dists))


class TestUpdate:
    """Tests for the update step."""

    def test_mean_of_members(self):
        """Test updating cluster centers."""
        data = np.array([[1.0, 1.0], [2.0, 2.0], [5.0, 5.0], [6.0, 6.0]])
        centroids = np.zeros((2, 2))

        new = update_centroids(data, centroids, np.array([0, 0, 1, 1]))

        assert np.allclose(new, [[1.5, 1.5], [5.5, 5.5]])
        # Input untouched
        assert np.array_equal(centroids, np.zeros((2, 2)))

    def test_empty_cluster_clones_largest(self):
        """An empty cluster takes the new centroid of the largest cluster."""
        data = np.array([[0.0, 0.0], [2.0, 0.0], [10.0, 0.0]])
        centroids = np.array([[1.0, 0.0], [10.0, 0.0], [100.0, 100.0]])

        new = update_centroids(data, centroids, np.array([0, 0, 1]))

        assert np.array_equal(new[0], [1.0, 0.0])
        assert np.array_equal(new[1], [10.0, 0.0])
        assert np.array_equal(new[2], [1.0, 0.0])

    def test_largest_cluster_tie(self):
        """Ties for the largest cluster go to the lowest index."""
        assert largest_cluster(np.array([0, 1]), 3) == 0
        assert largest_cluster(np.array([2, 1, 2, 1]), 3) == 1
        assert largest_cluster(np.array([2, 2, 0]), 3) == 2

    def test_same_centroids(self):
        """Convergence uses exact equality."""
        a = np.array([[1.0, 2.0], [3.0, 4.0]])
        assert same_centroids(a, a.copy())
        assert not same_centroids(a, a + 1e-12)


class TestKMeans:
    """Tests for the K-means driver."""

    def test_known_start(self, staircase):
        """Starting from two data points converges to the pair means."""
        data = entity_matrix(staircase)

        clusters = kmeans(data, 2, 100, centroids=[[1.0, 2.0], [4.0, 5.0]])

        assert len(clusters) == 2
        assert np.allclose(clusters[0].center, [1.5, 2.5])
        assert np.allclose(clusters[1].center, [3.5, 4.5])
        assert clusters[0].members == [0, 1]
        assert clusters[1].members == [2, 3]
        assert [c.id for c in clusters] == [0, 1]
        # One move, then one pass confirming nothing changed
        assert [c.n_iter for c in clusters] == [2, 2]

    def test_iteration_budget(self, staircase):
        """Running out of iterations is recorded on every cluster."""
        data = entity_matrix(staircase)

        clusters = kmeans(data, 2, 1, centroids=[[1.0, 2.0], [4.0, 5.0]])

        assert [c.n_iter for c in clusters] == [1, 1]
        assert clusters[0].members == [0, 1]

        clusters = kmeans(data, 2, 0, centroids=[[1.0, 2.0], [4.0, 5.0]])
        assert [c.n_iter for c in clusters] == [0, 0]
        assert np.array_equal(clusters[0].center, [1.0, 2.0])

    def test_starved_centroid_is_revived(self):
        """A centroid far from all data is moved onto the largest cluster."""
        data = np.array([[0.0, 0.0], [0.0, 1.0], [10.0, 10.0], [10.0, 11.0]])
        start = [[0.0, 0.5], [10.0, 10.5], [100.0, 100.0]]

        clusters = kmeans(data, 3, 10, centroids=start)

        assert np.array_equal(clusters[2].center, [0.0, 0.5])
        assert clusters[2].members == []
        assert clusters[0].members == [0, 1]

    def test_identical_points(self):
        """All points equal: every centroid ends on that point."""
        data = np.ones((3, 2))

        clusters = kmeans(data, 2, 10, rng=0)

        assert len(clusters) == 2
        for c in clusters:
            assert np.array_equal(c.center, [1.0, 1.0])
        assert clusters[0].members == [0, 1, 2]

    def test_zero_iterations(self, staircase):
        """With no iterations the random initial centroids are returned."""
        data = entity_matrix(staircase)

        centroids = cluster(2, staircase, 0, rng=7)

        assert np.array_equal(np.array(centroids), init_centroids(data, 2, 7))

    def test_bad_start_shape(self, staircase):
        """Starting centroids must match k and the dimensionality."""
        with pytest.raises(DimensionMismatch):
            kmeans(entity_matrix(staircase), 2, 5, centroids=[[1.0, 2.0, 3.0], [1.0, 2.0, 3.0]])


class TestClusterEntryPoint:
    """Tests for the entity-level cluster() entry point."""

    @pytest.mark.parametrize("k", [1, 2, 3, 4])
    def test_returns_k_centroids(self, staircase, k):
        """Exactly k centroids of the input dimensionality."""
        centroids = cluster(k, staircase, 100, rng=11)

        assert len(centroids) == k
        for c in centroids:
            assert len(c) == 2

    def test_reproducible(self, staircase):
        """The same seed reproduces the same centroids."""
        a = cluster(2, staircase, 100, rng=5)
        b = cluster(2, staircase, 100, rng=5)

        assert all(np.array_equal(x, y) for x, y in zip(a, b))

    def test_separated_groups(self):
        """Two well separated groups each get their own centroid."""
        rng = np.random.default_rng(1)
        left = rng.normal(0.0, 0.1, size=(20, 2))
        right = rng.normal(10.0, 0.1, size=(20, 2))
        data = np.vstack([left, right])

        clusters = kmeans(data, 2, 100, centroids=[left[0], right[0]])

        assert np.allclose(clusters[0].center, left.mean(axis=0))
        assert np.allclose(clusters[1].center, right.mean(axis=0))
        assert clusters[0].members == list(range(20))
        assert clusters[1].members == list(range(20, 40))

    def test_invalid_input(self, staircase):
        """Bad arguments raise InvalidInput."""
        with pytest.raises(InvalidInput):
            cluster(2, [], 10)
        with pytest.raises(InvalidInput):
            cluster(0, staircase, 10)
        with pytest.raises(InvalidInput):
            cluster(5, staircase, 10)
        with pytest.raises(InvalidInput):
            cluster(2, staircase, -1)

    def test_ragged_entities(self):
        """Entities of different length raise DimensionMismatch."""
        entities = [Entity((1.0, 2.0), 0), Entity((1.0,), 1)]
        with pytest.raises(DimensionMismatch):
            cluster(1, entities, 10)


class TestHelpers:
    """Tests for grouping, inertia and serialization."""

    def test_group_by_cluster(self, staircase):
        """Entities are partitioned by nearest centroid."""
        groups = group_by_cluster(staircase, [np.array([1.5, 2.5]), np.array([3.5, 4.5]), np.array([50.0, 50.0])])

        assert groups[0] == staircase[:2]
        assert groups[1] == staircase[2:]
        assert groups[2] == []

    def test_inertia(self):
        """Total squared distance to centers."""
        data = np.array([[0.0, 0.0], [2.0, 0.0]])
        clusters = [Cluster([1.0, 0.0], [0, 1], 0)]

        assert np.isclose(inertia(data, clusters), 2.0)

    def test_clusters_to_dict(self):
        """Clusters serialize to plain lists."""
        clusters = [Cluster(np.array([1.0, 2.0]), [0, 2], 0), Cluster(np.array([3.0, 4.0]), [], 1)]

        assert clusters_to_dict(clusters) == [
            {'id': 0, 'center': [1.0, 2.0], 'members': [0, 2]},
            {'id': 1, 'center': [3.0, 4.0], 'members': []},
        ]
