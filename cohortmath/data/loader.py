"""
CSV reader producing typed entities.

Every column but the last is read as a real-valued feature and the last
column as the outcome label.
"""

import logging
import os
from typing import List, Union

import numpy as np
import pandas as pd

from cohortmath.data.entities import Entity
from cohortmath.utils.errors import MalformedRecord

logger = logging.getLogger(__name__)


def _parse_label(value, row_number: int) -> int:
    try:
        label = float(value)
    except (TypeError, ValueError):
        raise MalformedRecord(f"Row {row_number}: label {value!r} is not a number")
    
    if np.isnan(label) or label < 0 or not label.is_integer():
        raise MalformedRecord(f"Row {row_number}: label {value!r} is not a non-negative integer")
    
    return int(label)


def records_from_frame(df: pd.DataFrame) -> List[Entity]:
    """
    Convert a DataFrame into entities.
    
    Args:
        df: Frame whose last column holds labels and the rest features
        
    Returns:
        List of entities, in row order
        
    Raises:
        MalformedRecord: If a cell cannot be parsed
    """
    if df.shape[1] < 2:
        raise MalformedRecord(
            f"Expected at least one feature column and a label column, got {df.shape[1]} column(s)"
        )

    if len(df) == 0:
        return []

    feature_frame = df.iloc[:, :-1].apply(pd.to_numeric, errors='coerce')
    labels = df.iloc[:, -1].tolist()
    
    entities = []
    for i, (features, label) in enumerate(zip(feature_frame.itertuples(index=False), labels)):
        row_number = i + 1
        values = [float(x) for x in features]
        bad = [col for col, x in zip(feature_frame.columns, values) if np.isnan(x)]
        if bad:
            raise MalformedRecord(
                f"Row {row_number}: missing or non-numeric value in column(s) {bad}"
            )
        entities.append(Entity(tuple(values), _parse_label(label, row_number)))
    
    return entities


def load_records(file_path: Union[str, os.PathLike], has_header: bool = True) -> List[Entity]:
    """
    Load entities from a CSV file.
    
    Args:
        file_path: Path to the CSV file
        has_header: Whether the first line holds column names
        
    Returns:
        List of entities
        
    Raises:
        FileNotFoundError: If the file does not exist
        MalformedRecord: If a row cannot be parsed
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Data file not found: {file_path}")
    
    try:
        df = pd.read_csv(
            file_path,
            header=0 if has_header else None,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
        )
    except pd.errors.EmptyDataError:
        logger.warning(f"Data file {file_path} is empty")
        return []
    except pd.errors.ParserError as e:
        raise MalformedRecord(f"Could not parse {file_path}: {e}") from e
    
    entities = records_from_frame(df)
    logger.info(f"Loaded {len(entities)} records with "
                f"{df.shape[1] - 1} features from {file_path}")
    return entities
