"""
Cohort analysis over a population of labelled entities.

This module ties the two pipelines together: k-means cohorts with their
representatives, and the similarity graph with its k-core decomposition,
plus the descriptive statistics reported next to them.
"""

import logging
import time
from copy import deepcopy
from typing import Any, Dict, List, Optional, Sequence, Set

import numpy as np

from cohortmath.components.config import Config
from cohortmath.data.entities import Entity, entity_matrix
from cohortmath.math.clusters import Cluster, clusters_to_dict, inertia, kmeans
from cohortmath.math.graph import SimilarityGraph, build_graph
from cohortmath.math.kcore import k_core_decomposition
from cohortmath.math.repness import representative_indices
from cohortmath.math.stats import feature_medians, split_by_label

logger = logging.getLogger(__name__)


class CohortAnalysis:
    """
    Holds a population and the results computed from it.
    """

    def __init__(self,
                entities: Sequence[Entity],
                k: int = 2,
                max_iters: int = 100,
                threshold: float = 0.5,
                epsilon: float = 0.001,
                kcore_k: int = 1,
                seed: Optional[int] = None):
        """
        Initialize an analysis.

        Args:
            entities: Population to analyse
            k: Number of k-means cohorts
            max_iters: K-means iteration budget
            threshold: Similarity threshold for graph edges
            epsilon: Per-feature match tolerance for similarity
            kcore_k: Minimum degree for k-core decomposition
            seed: Seed for centroid initialization
        """
        self.entities = list(entities)
        self.k = k
        self.max_iters = max_iters
        self.threshold = threshold
        self.epsilon = epsilon
        self.kcore_k = kcore_k
        self.seed = seed

        # Results, filled in by recompute()
        self.label_counts: Dict[int, int] = {}
        self.medians: Dict[str, List[float]] = {}
        self.clusters: List[Cluster] = []
        self.inertia: Optional[float] = None
        self.representatives: List[Dict[str, Any]] = []
        self.graph: Optional[SimilarityGraph] = None
        self.cores: List[Set[int]] = []

    @classmethod
    def from_config(cls, entities: Sequence[Entity], config: Config) -> 'CohortAnalysis':
        """
        Create an analysis with parameters read from configuration.

        Args:
            entities: Population to analyse
            config: Configuration

        Returns:
            New analysis
        """
        return cls(
            entities,
            k=config.get('clustering.k', 2),
            max_iters=config.get('clustering.max-iters', 100),
            threshold=config.get('graph.threshold', 0.5),
            epsilon=config.get('graph.epsilon', 0.001),
            kcore_k=config.get('kcore.k', 1),
            seed=config.get('clustering.seed'),
        )

    def _compute_stats(self) -> None:
        """
        Compute label counts and per-label feature medians.
        """
        positive, negative = split_by_label(self.entities)

        labels, counts = np.unique([e.label for e in self.entities], return_counts=True)
        self.label_counts = {int(label): int(count) for label, count in zip(labels, counts)}

        self.medians = {}
        if positive:
            self.medians['positive'] = feature_medians(positive)
        if negative:
            self.medians['negative'] = feature_medians(negative)

    def _compute_clusters(self) -> None:
        """
        Run k-means and select one representative per non-empty cohort.
        """
        data = entity_matrix(self.entities)
        rng = np.random.default_rng(self.seed)

        self.clusters = kmeans(data, self.k, self.max_iters, rng)
        self.inertia = inertia(data, self.clusters)

        members = [[self.entities[i] for i in c.members] for c in self.clusters]
        centers = [c.center for c in self.clusters]

        self.representatives = []
        for c, group, idx in zip(self.clusters, members, representative_indices(centers, members)):
            if idx is None:
                logger.warning(f"Cohort {c.id} is empty, no representative selected")
                continue
            chosen = group[idx]
            self.representatives.append({
                'cluster': c.id,
                'entity': c.members[idx],
                'features': list(chosen.features),
                'label': chosen.label,
            })

    def _compute_cores(self) -> None:
        """
        Build the similarity graph and decompose it into k-cores.
        """
        self.graph = build_graph(self.entities, self.threshold, self.epsilon)
        self.cores = k_core_decomposition(self.graph, self.kcore_k)

    def recompute(self) -> 'CohortAnalysis':
        """
        Recompute all derived data.

        Returns:
            New analysis with results filled in (this one is left untouched)
        """
        result = deepcopy(self)
        start_time = time.time()

        logger.info(f"Analysing {len(result.entities)} entities")

        result._compute_stats()
        logger.info(f"[{time.time() - start_time:.2f}s] Label counts: {result.label_counts}")

        result._compute_clusters()
        logger.info(f"[{time.time() - start_time:.2f}s] Clustered into {len(result.clusters)} cohorts, "
                    f"inertia {result.inertia:.4f}")

        result._compute_cores()
        logger.info(f"[{time.time() - start_time:.2f}s] Similarity graph has "
                    f"{result.graph.edge_count()} edges, {len(result.cores)} core(s) at k={result.kcore_k}")

        return result

    def get_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the analysis.

        Returns:
            Dictionary with counts
        """
        return {
            'entity_count': len(self.entities),
            'feature_count': self.entities[0].n_features if self.entities else 0,
            'label_counts': dict(self.label_counts),
            'cohort_count': len(self.clusters),
            'iterations': self.clusters[0].n_iter if self.clusters else 0,
            'representative_count': len(self.representatives),
            'edge_count': self.graph.edge_count() if self.graph is not None else 0,
            'core_count': len(self.cores),
        }

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the analysis to a JSON-serialisable dictionary.

        Returns:
            Dictionary with parameters and results
        """
        return {
            'parameters': {
                'k': self.k,
                'max_iters': self.max_iters,
                'threshold': self.threshold,
                'epsilon': self.epsilon,
                'kcore_k': self.kcore_k,
                'seed': self.seed,
            },
            'summary': self.get_summary(),
            'medians': deepcopy(self.medians),
            'clusters': clusters_to_dict(self.clusters),
            'inertia': self.inertia,
            'representatives': deepcopy(self.representatives),
            'cores': [sorted(core) for core in self.cores],
        }
