"""
Main entry point for cohort analysis.

Loads a CSV population, runs the analysis and prints the result as JSON.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from cohortmath.analysis import CohortAnalysis
from cohortmath.components.config import Config, ConfigManager
from cohortmath.data import load_records
from cohortmath.utils.errors import InvalidInput, MalformedRecord

logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO') -> None:
    """
    Set up logging.

    Args:
        level: Logging level
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description='Cohort clustering and k-core analysis')

    parser.add_argument(
        '--config',
        help='Path to configuration file (JSON or YAML)'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level'
    )

    parser.add_argument(
        '--data',
        help='Path to the CSV file of records'
    )

    parser.add_argument(
        '--k',
        type=int,
        help='Number of cohorts'
    )

    parser.add_argument(
        '--max-iters',
        type=int,
        help='K-means iteration budget'
    )

    parser.add_argument(
        '--seed',
        type=int,
        help='Random seed for centroid initialization'
    )

    parser.add_argument(
        '--threshold',
        type=float,
        help='Similarity threshold for graph edges'
    )

    parser.add_argument(
        '--kcore-k',
        type=int,
        help='Minimum degree for k-core decomposition'
    )

    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> dict:
    """
    Turn command line arguments into configuration overrides.

    Args:
        args: Parsed arguments

    Returns:
        Nested overrides dictionary (only arguments that were given)
    """
    overrides = {}

    def put(section: str, key: str, value) -> None:
        if value is not None:
            overrides.setdefault(section, {})[key] = value

    put('data', 'path', args.data)
    put('clustering', 'k', args.k)
    put('clustering', 'max-iters', args.max_iters)
    put('clustering', 'seed', args.seed)
    put('graph', 'threshold', args.threshold)
    put('kcore', 'k', args.kcore_k)
    put('logging', 'level', args.log_level.lower() if args.log_level else None)

    return overrides


def load_run_config(args: argparse.Namespace) -> Config:
    """
    Build the configuration for one run.

    Defaults and environment come first, then the config file, then the
    command line. The shared instance is rebuilt so nothing carries over
    from an earlier run in the same process.

    Args:
        args: Parsed arguments

    Returns:
        Config instance
    """
    ConfigManager.reset()
    config = ConfigManager.get_config()
    if args.config:
        config.load_from_file(args.config)

    # Command line arguments win over file and environment
    overrides = build_overrides(args)
    if overrides:
        merged = config.to_dict()
        for section, values in overrides.items():
            merged.setdefault(section, {}).update(values)
        config.load_config(merged)

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.
    """
    args = parse_args(argv)

    try:
        config = load_run_config(args)
        setup_logging(config.get('logging.level', 'info'))

        entities = load_records(config.get('data.path'), config.get('data.has-header', True))
        analysis = CohortAnalysis.from_config(entities, config).recompute()
    except (FileNotFoundError, MalformedRecord, InvalidInput) as e:
        logger.error(str(e))
        return 1

    json.dump(analysis.to_dict(), sys.stdout, indent=2)
    sys.stdout.write('\n')
    return 0


if __name__ == '__main__':
    sys.exit(main())
