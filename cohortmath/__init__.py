"""
Cohortmath package for cohort clustering and similarity-graph analysis.

Segments labelled records into k-means cohorts with one representative
each, and finds densely connected subgroups through a similarity graph
and its k-core decomposition.
"""

__version__ = '0.1.0'

from cohortmath.analysis import CohortAnalysis
from cohortmath.components.config import Config, ConfigManager
from cohortmath.data import Entity, load_records
