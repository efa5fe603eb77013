import json
import os
import logging
import jsonschema
import psutil
from pathlib import Path
from typing import Dict, Any

from utils.exceptions import ConfigurationError
from utils import constants

DEFAULT_SCHEMA_PATH = Path(__file__).parent / "config_schema.json"

class ConfigurationManager:
    """
    Manages system configuration loading, validation, and access.
    Acts as the single source of truth for the grid search run.
    """

    DEFAULTS: Dict[str, Dict[str, Any]] = {
        'tasks': {'input_path': None},
        'execution': {
            'threads': constants.DEFAULT_THREADS,
            'batch_size': constants.DEFAULT_BATCH_SIZE,
            'reader_fraction': constants.DEFAULT_READER_FRACTION,
        },
        'resources': {'max_grid_permutations': constants.DEFAULT_MAX_GRID_PERMUTATIONS},
        'outputs': {'base_results_dir': '.', 'results_subdir': ''},
        'logging': {
            'level': 'INFO',
            'log_to_console': True,
            'log_to_file': False,
            'colorful_console': True,
            'log_dir': constants.LOG_DIR,
        },
    }

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: str = str(DEFAULT_SCHEMA_PATH)):
        """
        Initialize the ConfigurationManager.

        Args:
            config_path (str): Path to the user configuration JSON.
            schema_path (str): Path to the JSON schema definition.
        """
        self.config_path = config_path
        self.schema_path = schema_path
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Main entry point. Loads config, validates schema/logic/resources
        and applies defaults.

        Returns:
            Dict[str, Any]: The fully validated and hydrated configuration.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        # 1. Load Files
        self.config = self._load_json(self.config_path)
        self.schema = self._load_json(self.schema_path)

        # 2. Structural Validation (Schema)
        self._validate_schema()

        # 3. Defaults for every optional section
        self._apply_defaults()

        # 4. Logical Validation (Bounds)
        self._validate_logic()

        # 5. Resource Validation (thread budget vs. CPUs)
        self._validate_resources()

        return self.config

    def _load_json(self, path: str) -> Dict[str, Any]:
        """Safely load a JSON file."""
        if not os.path.exists(path):
            raise ConfigurationError(f"File not found: {path}")
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {str(e)}")

    def _validate_schema(self) -> None:
        """Validate config structure against JSON schema."""
        try:
            jsonschema.validate(instance=self.config, schema=self.schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Schema validation failed: {e.message}")

    def _apply_defaults(self) -> None:
        for section, defaults in self.DEFAULTS.items():
            merged = dict(defaults)
            merged.update(self.config.get(section) or {})
            self.config[section] = merged

    def _validate_logic(self) -> None:
        """Bounds checking on execution and resource settings."""
        execution = self.config['execution']

        threads = execution['threads']
        if threads < -1:
            raise ConfigurationError(
                f"execution.threads must be -1 (all cores), 0 (sequential) or a positive integer, got {threads}"
            )

        batch_size = execution['batch_size']
        if batch_size < 1:
            raise ConfigurationError(f"execution.batch_size must be >= 1, got {batch_size}")

        reader_fraction = execution['reader_fraction']
        if not (0.0 < reader_fraction <= 1.0):
            raise ConfigurationError(f"execution.reader_fraction must be in (0, 1], got {reader_fraction}")

        max_permutations = self.config['resources']['max_grid_permutations']
        if max_permutations < 1:
            raise ConfigurationError(f"resources.max_grid_permutations must be >= 1, got {max_permutations}")

    def _validate_resources(self) -> None:
        self.resolve_thread_budget()

    def resolve_thread_budget(self) -> None:
        """
        Resolve threads == -1 to the logical CPU count and warn when the
        configured budget oversubscribes the machine.
        """
        cpu_count = psutil.cpu_count(logical=True) or 1
        execution = self.config['execution']

        if execution['threads'] == -1:
            execution['threads'] = cpu_count
            self.logger.info(f"execution.threads resolved to {cpu_count} logical CPUs")
        elif execution['threads'] > cpu_count:
            self.logger.warning(
                f"Configured threads ({execution['threads']}) exceeds logical CPUs ({cpu_count}). "
                "Sub-workers will share cores."
            )
