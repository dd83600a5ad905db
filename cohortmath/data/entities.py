"""
Entity records and conversion to numeric matrices.

An entity is an immutable feature vector plus a small non-negative label.
All entities in a population must share the same number of features.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import numpy as np

from cohortmath.utils.errors import DimensionMismatch, InvalidInput


@dataclass(frozen=True)
class Entity:
    """A single record: an ordered feature vector and an outcome label."""

    features: Tuple[float, ...]
    label: int = 0

    def __post_init__(self):
        # Normalise to an immutable tuple of floats
        object.__setattr__(self, 'features', tuple(float(x) for x in self.features))

        try:
            label = int(self.label)
        except (TypeError, ValueError):
            raise InvalidInput(f"Entity label must be an integer, got {self.label!r}")
        if label != self.label:
            raise InvalidInput(f"Entity label must be an integer, got {self.label!r}")
        if label < 0:
            raise InvalidInput(f"Entity label must be non-negative, got {label}")
        object.__setattr__(self, 'label', label)

    @property
    def n_features(self) -> int:
        return len(self.features)

    def to_dict(self) -> Dict[str, Any]:
        return {'features': list(self.features), 'label': self.label}


def make_entities(rows: Iterable[Tuple[Sequence[float], int]]) -> List[Entity]:
    """
    Build entities from (features, label) pairs.
    
    Args:
        rows: Iterable of (features, label) pairs
        
    Returns:
        List of entities
    """
    return [Entity(tuple(features), label) for features, label in rows]


def entity_matrix(entities: Sequence[Entity]) -> np.ndarray:
    """
    Stack entity features into an (n_entities, n_features) matrix.
    
    Args:
        entities: Non-empty sequence of entities
        
    Returns:
        Float matrix with one row per entity
        
    Raises:
        InvalidInput: If there are no entities
        DimensionMismatch: If the entities do not all have the same length
    """
    if len(entities) == 0:
        raise InvalidInput("Entity set is empty")
    
    n_features = entities[0].n_features
    for i, entity in enumerate(entities):
        if entity.n_features != n_features:
            raise DimensionMismatch(
                f"Entity {i} has {entity.n_features} features, expected {n_features}"
            )
    
    return np.array([entity.features for entity in entities], dtype=float).reshape(
        len(entities), n_features
    )


def entity_labels(entities: Sequence[Entity]) -> np.ndarray:
    """Return the labels of the entities as an integer array."""
    return np.array([entity.label for entity in entities], dtype=int)
