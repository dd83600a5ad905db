"""
Distance metrics over feature vectors.

Both metrics validate that the two vectors have the same length and raise
DimensionMismatch otherwise.
"""

import numpy as np
from typing import Sequence, Tuple, Union

from cohortmath.utils.errors import DimensionMismatch

Vector = Union[np.ndarray, Sequence[float]]


def _as_pair(a: Vector, b: Vector) -> Tuple[np.ndarray, np.ndarray]:
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise DimensionMismatch(f"Vectors have different shapes: {a.shape} vs {b.shape}")
    return a, b


def euclidean_distance(a: Vector, b: Vector) -> float:
    """
    Calculate Euclidean distance between two vectors.
    
    Args:
        a: First vector
        b: Second vector
        
    Returns:
        Euclidean distance
        
    Raises:
        DimensionMismatch: If the vectors differ in length
    """
    a, b = _as_pair(a, b)
    return float(np.sqrt(np.sum((a - b) ** 2)))


def mean_absolute_deviation(a: Vector, b: Vector) -> float:
    """
    Calculate the mean absolute per-dimension difference between two vectors.
    
    This is the L1 distance divided by the number of dimensions.
    
    Args:
        a: First vector
        b: Second vector
        
    Returns:
        Mean absolute deviation
        
    Raises:
        DimensionMismatch: If the vectors differ in length
    """
    a, b = _as_pair(a, b)
    if a.size == 0:
        return 0.0
    return float(np.sum(np.abs(a - b)) / a.size)
