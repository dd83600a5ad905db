"""
Configuration management for cohort analysis.

This module provides functionality for managing configuration,
including loading from environment variables, files and default values.
"""

import os
import json
import logging
import threading
from typing import Any, Callable, Dict, Optional
from copy import deepcopy
import yaml

from cohortmath.utils.errors import InvalidInput

# Set up logging
logger = logging.getLogger(__name__)


def to_int(value: Any) -> Optional[int]:
    """
    Convert a value to an integer.

    Args:
        value: Value to convert

    Returns:
        Integer value, or None if conversion failed
    """
    if value is None:
        return None

    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def to_float(value: Any) -> Optional[float]:
    """
    Convert a value to a float.

    Args:
        value: Value to convert

    Returns:
        Float value, or None if conversion failed
    """
    if value is None:
        return None

    try:
        return float(value)
    except (ValueError, TypeError):
        return None


class Config:
    """
    Configuration for a cohort analysis run.
    """

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            overrides: Optional configuration overrides
        """
        self._lock = threading.RLock()
        self._config = {}
        self._initialized = False

        # Load configuration
        self.load_config(overrides)

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> None:
        """
        Load configuration from all sources.

        Args:
            overrides: Optional configuration overrides
        """
        with self._lock:
            # Start with default configuration
            config = self._get_defaults()

            # Apply environment variables
            config = self._apply_env_vars(config)

            # Apply overrides
            if overrides:
                config = self._apply_overrides(config, overrides)

            # Store configuration
            self._config = config
            self._initialized = True

            logger.info("Configuration loaded")

    def _get_defaults(self) -> Dict[str, Any]:
        """
        Get default configuration values.

        Returns:
            Default configuration
        """
        return {
            # Input
            'data': {
                'path': 'heart_disease.csv',
                'has-header': True,
            },

            # K-means
            'clustering': {
                'k': 2,
                'max-iters': 100,
                'seed': None,           # None draws fresh entropy
            },

            # Similarity graph
            'graph': {
                'threshold': 0.5,
                'epsilon': 0.001,
            },

            # K-core decomposition
            'kcore': {
                'k': 1,
            },

            # Logging
            'logging': {
                'level': 'info'
            }
        }

    def _apply_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variables to configuration.

        Args:
            config: Current configuration

        Returns:
            Updated configuration
        """
        # Make a copy
        config = deepcopy(config)

        # Input
        config['data']['path'] = os.environ.get('DATA_PATH', config['data']['path'])

        # K-means
        config['clustering']['k'] = self._env_number('COHORT_K', config['clustering']['k'], to_int)
        config['clustering']['max-iters'] = self._env_number('COHORT_MAX_ITERS', config['clustering']['max-iters'], to_int)
        config['clustering']['seed'] = self._env_number('COHORT_SEED', config['clustering']['seed'], to_int)

        # Similarity graph
        config['graph']['threshold'] = self._env_number('GRAPH_THRESHOLD', config['graph']['threshold'], to_float)
        config['graph']['epsilon'] = self._env_number('GRAPH_EPSILON', config['graph']['epsilon'], to_float)

        # K-core decomposition
        config['kcore']['k'] = self._env_number('KCORE_K', config['kcore']['k'], to_int)

        # Logging
        config['logging']['level'] = os.environ.get('LOG_LEVEL', config['logging']['level']).lower()

        return config

    @staticmethod
    def _env_number(name: str, default: Any, convert: Callable[[Any], Any]) -> Any:
        """
        Read a numeric environment variable.

        Args:
            name: Variable name
            default: Value used when the variable is unset
            convert: to_int or to_float

        Returns:
            Converted value, or default if unset

        Raises:
            InvalidInput: If the variable is set but cannot be converted
        """
        raw = os.environ.get(name)
        if raw is None:
            return default

        value = convert(raw)
        if value is None:
            raise InvalidInput(f"Environment variable {name}={raw!r} is not a valid number")
        return value

    def _apply_overrides(self, config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply configuration overrides.

        Args:
            config: Current configuration
            overrides: Configuration overrides

        Returns:
            Updated configuration
        """
        # Make a copy
        config = deepcopy(config)

        # Helper function for deep update
        def deep_update(d, u):
            for k, v in u.items():
                if isinstance(v, dict) and k in d and isinstance(d[k], dict):
                    d[k] = deep_update(d[k], v)
                else:
                    d[k] = v
            return d

        return deep_update(config, overrides)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            path: Configuration path (dot-separated)
            default: Default value if not found

        Returns:
            Configuration value, or default if not found
        """
        if not self._initialized:
            self.load_config()

        value = self._config
        for component in path.split('.'):
            if isinstance(value, dict) and component in value:
                value = value[component]
            else:
                return default

        return value

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            path: Configuration path (dot-separated)
            value: Configuration value
        """
        with self._lock:
            if not self._initialized:
                self.load_config()

            components = path.split('.')
            config = self._config
            for component in components[:-1]:
                if component not in config:
                    config[component] = {}
                config = config[component]

            config[components[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to a dictionary.

        Returns:
            Configuration dictionary
        """
        if not self._initialized:
            self.load_config()

        return deepcopy(self._config)

    def save_to_file(self, filepath: str) -> None:
        """
        Save configuration to a JSON or YAML file.

        Args:
            filepath: Path to save configuration
        """
        if not self._initialized:
            self.load_config()

        # Determine file format from extension
        if filepath.endswith('.json'):
            with open(filepath, 'w') as f:
                json.dump(self._config, f, indent=2)
        elif filepath.endswith('.yaml') or filepath.endswith('.yml'):
            with open(filepath, 'w') as f:
                yaml.dump(self._config, f, default_flow_style=False)
        else:
            raise ValueError(f"Unsupported file format: {filepath}")

    def load_from_file(self, filepath: str) -> None:
        """
        Merge configuration from a JSON or YAML file onto the current values.

        Values already set, including earlier overrides, are kept unless the
        file sets them too.

        Args:
            filepath: Path to load configuration from
        """
        if filepath.endswith('.json'):
            with open(filepath, 'r') as f:
                overrides = json.load(f)
        elif filepath.endswith('.yaml') or filepath.endswith('.yml'):
            with open(filepath, 'r') as f:
                overrides = yaml.safe_load(f)
        else:
            raise ValueError(f"Unsupported file format: {filepath}")

        with self._lock:
            if not self._initialized:
                self.load_config()

            self._config = self._apply_overrides(self._config, overrides or {})
            logger.info(f"Configuration merged from {filepath}")


class ConfigManager:
    """
    Singleton manager for configuration.
    """

    _instance = None
    _lock = threading.RLock()

    @classmethod
    def get_config(cls, overrides: Optional[Dict[str, Any]] = None) -> Config:
        """
        Get the configuration instance.

        Args:
            overrides: Optional configuration overrides

        Returns:
            Config instance
        """
        with cls._lock:
            if cls._instance is None:
                cls._instance = Config(overrides)
            elif overrides:
                cls._instance.load_config(overrides)

            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared instance so the next call reloads from scratch."""
        with cls._lock:
            cls._instance = None
