"""
Record model and CSV reader for cohort analysis.
"""

from cohortmath.data.entities import Entity, entity_matrix, entity_labels
from cohortmath.data.loader import load_records, records_from_frame
