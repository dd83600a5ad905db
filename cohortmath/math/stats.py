"""
Descriptive statistics for entity populations.

This module provides the summaries reported alongside the clustering:
label split, per-feature medians, correlation and Jaccard similarity.
"""

import numpy as np
from typing import Hashable, List, Sequence, Set, Tuple
from scipy import stats as scipy_stats

from cohortmath.data.entities import Entity, entity_matrix
from cohortmath.utils.errors import DimensionMismatch


def split_by_label(entities: Sequence[Entity],
                  positive_label: int = 1) -> Tuple[List[Entity], List[Entity]]:
    """
    Split entities into those with the positive label and the rest.

    Args:
        entities: Entities to split
        positive_label: Label value that counts as positive

    Returns:
        Tuple of (positive, negative) entity lists, each in input order
    """
    positive = []
    negative = []
    for entity in entities:
        if entity.label == positive_label:
            positive.append(entity)
        else:
            negative.append(entity)
    return positive, negative


def feature_medians(entities: Sequence[Entity]) -> List[float]:
    """
    Median of every feature across entities.

    For an even number of entities the median is the mean of the two
    middle values.

    Args:
        entities: Non-empty sequence of entities

    Returns:
        List of medians, one per feature
    """
    return np.median(entity_matrix(entities), axis=0).tolist()


def correlation(x: Sequence[float], y: Sequence[float], method: str = 'pearson') -> float:
    """
    Correlation coefficient between two equally long samples.

    Args:
        x: First sample
        y: Second sample
        method: 'pearson' or 'spearman'

    Returns:
        Correlation coefficient, or nan when a sample is constant or too short
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape:
        raise DimensionMismatch(f"Samples have different lengths: {len(x)} vs {len(y)}")

    if method not in ('pearson', 'spearman'):
        raise ValueError(f"Unknown correlation method: {method}")

    if len(x) < 2 or np.ptp(x) == 0 or np.ptp(y) == 0:
        return float('nan')

    if method == 'pearson':
        r, _ = scipy_stats.pearsonr(x, y)
    else:
        r, _ = scipy_stats.spearmanr(x, y)
    return float(r)


def feature_label_correlations(entities: Sequence[Entity], method: str = 'pearson') -> List[float]:
    """
    Correlation of each feature with the label.

    Args:
        entities: Non-empty sequence of entities
        method: 'pearson' or 'spearman'

    Returns:
        List of coefficients, one per feature
    """
    data = entity_matrix(entities)
    labels = [e.label for e in entities]
    return [correlation(data[:, j], labels, method) for j in range(data.shape[1])]


def jaccard_similarity(a: Set[Hashable], b: Set[Hashable]) -> float:
    """
    Jaccard similarity of two sets.

    Args:
        a: First set
        b: Second set

    Returns:
        |a & b| / |a | b|, or 1.0 when both sets are empty
    """
    a = set(a)
    b = set(b)
    union = a | b
    if not union:
        return 1.0
    return len(a & b) / len(union)
