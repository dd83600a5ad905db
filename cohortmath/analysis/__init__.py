"""
Cohort analysis over a loaded population.
"""

from cohortmath.analysis.cohort import CohortAnalysis
