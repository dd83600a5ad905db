"""
Supporting components for cohort analysis.
"""

from cohortmath.components.config import Config, ConfigManager
