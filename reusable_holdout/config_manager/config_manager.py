import copy
import json
import os
import hashlib
import sys
import logging
import jsonschema
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from reusable_holdout.utils.exceptions import ConfigurationError
from reusable_holdout.utils import constants

DEFAULT_SCHEMA_PATH = str(Path(__file__).parent / "schema.json")

# Unbounded Thresholdout budget and Gaussian noise unless overridden.
DEFAULT_CONFIG: Dict[str, Any] = {
    'simulation': {
        'n_adapt_rounds': 10,
        'signif_level': 0.0001,
        'thresholdout_threshold': 0.02,
        'thresholdout_sigma': 0.03,
        'thresholdout_noise_distribution': 'norm',
        'thresholdout_budget': None,
        'verbose': True,
        'sanity_checks': False,
        'show_progress': False,
    },
    'fitter': {
        'cv_folds': 5,
        'cv_repeats': 2,
        'max_candidates': None,
        'classifier_params': {},
    },
    'data': {
        'source': 'demo',
        'file_path': None,
        'target_column': None,
        'baseline_label': None,
        'synthetic': {
            'n_samples': 400,
            'n_features': 20,
            'n_informative': 4,
            'class_sep': 1.0,
        },
    },
    'splitting': {
        'train_total_fraction': 0.5,
        'initial_train_fraction': 0.5,
        'holdout_fraction': 0.25,
        'seed': 42,
    },
    'logging': {
        'level': 'INFO',
        'log_to_console': True,
        'log_to_file': True,
        'colorful_console': True,
        'log_dir': 'logs',
    },
    'outputs': {
        'base_results_dir': 'results',
        'save_results': False,
        'save_excel_copy': False,
        'save_splits': False,
    },
    'visualization': {
        'enabled': False,
        'dpi': 150,
    },
}

# Option names accepted at the top level of a flat configuration (run_sim style).
FLAT_SIMULATION_KEYS = (
    'n_adapt_rounds',
    'signif_level',
    'thresholdout_threshold',
    'thresholdout_sigma',
    'thresholdout_noise_distribution',
    'thresholdout_budget',
    'verbose',
    'sanity_checks',
    'show_progress',
)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigurationManager:
    """
    Manages simulation configuration loading, validation, and access.
    Acts as the single source of truth for every run parameter.

    Responsibilities:
    - Load a JSON config file or accept an in-memory dict.
    - Fold flat option names into the 'simulation' section.
    - Merge defaults, validate against the JSON schema, then check bounds.
    - Propagate the master seed to the split and simulation streams.
    """

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: str = DEFAULT_SCHEMA_PATH):
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
        self.run_id: Optional[str] = None
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Main entry point. Loads the config file and validates it.

        Returns:
            Dict[str, Any]: The fully validated and hydrated configuration.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        raw = self._load_json(self.config_path)
        return self.validate(raw)

    def validate(self, raw_config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate an in-memory configuration (flat or sectioned).
        """
        if not isinstance(raw_config, dict):
            raise ConfigurationError(f"Configuration must be a mapping, got {type(raw_config).__name__}")

        # 1. Normalize + Defaults
        self.config = _deep_merge(DEFAULT_CONFIG, self._normalize(raw_config))
        self.schema = self._load_json(self.schema_path)

        # 2. Structural Validation (Schema)
        self._validate_schema()

        # 3. Logical Validation (Bounds)
        self._validate_logic()

        # 4. Internal Seed Propagation (Reproducibility)
        self._propagate_seeds()

        return self.config

    @classmethod
    def from_dict(cls, raw_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Convenience wrapper: validate a dict (or the defaults when None)."""
        return cls().validate(raw_config or {})

    def generate_run_id(self) -> str:
        """
        Generate or retrieve a unique run identifier based on timestamp.
        """
        if not self.run_id:
            self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.run_id

    def save_artifacts(self, output_dir: str) -> None:
        """
        Save configuration artifacts to the run directory.

        Saves:
        1. config_used.json: The exact config object in memory.
        2. config_hash.txt: SHA256 hash for versioning.
        3. run_metadata.json: Environment details.
        """
        config_dir = Path(output_dir) / constants.CONFIG_DIR
        config_dir.mkdir(parents=True, exist_ok=True)

        with open(config_dir / constants.CONFIG_USED_FILE, 'w') as f:
            json.dump(self.config, f, indent=2, default=str)

        config_str = json.dumps(self.config, sort_keys=True, default=str)
        config_hash = hashlib.sha256(config_str.encode()).hexdigest()

        with open(config_dir / constants.CONFIG_HASH_FILE, 'w') as f:
            f.write(config_hash)

        metadata = {
            'run_id': self.run_id,
            'start_time': datetime.now().isoformat(),
            'python_version': sys.version,
            'platform': sys.platform,
            'config_hash': config_hash,
            'working_directory': os.getcwd()
        }

        with open(config_dir / constants.RUN_METADATA_FILE, 'w') as f:
            json.dump(metadata, f, indent=2)

    @staticmethod
    def _normalize(raw_config: Dict[str, Any]) -> Dict[str, Any]:
        """Move flat simulation options (run_sim style) into the 'simulation' section."""
        normalized = {k: v for k, v in raw_config.items() if k not in FLAT_SIMULATION_KEYS}
        flat = {k: raw_config[k] for k in FLAT_SIMULATION_KEYS if k in raw_config}
        if flat:
            section = dict(normalized.get('simulation', {}))
            section.update(flat)
            normalized['simulation'] = section
        return normalized

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

    def _validate_logic(self) -> None:
        """Bounds checking for every numeric option."""
        # --- Simulation Section ---
        sim = self.config['simulation']
        n_rounds = sim['n_adapt_rounds']
        if isinstance(n_rounds, bool) or not isinstance(n_rounds, int) or n_rounds < 0:
            raise ConfigurationError(f"n_adapt_rounds must be a non-negative integer, got {n_rounds!r}")

        signif = sim['signif_level']
        if not (0.0 < signif < 1.0):
            raise ConfigurationError(f"signif_level must be between 0 and 1 (exclusive), got {signif}")

        if sim['thresholdout_threshold'] < 0:
            raise ConfigurationError(f"thresholdout_threshold must be >= 0, got {sim['thresholdout_threshold']}")
        if sim['thresholdout_sigma'] <= 0:
            raise ConfigurationError(f"thresholdout_sigma must be > 0, got {sim['thresholdout_sigma']}")

        budget = sim.get('thresholdout_budget')
        if budget is not None and budget <= 0:
            raise ConfigurationError(f"thresholdout_budget must be > 0 when provided, got {budget}")

        # --- Fitter Section ---
        fitter = self.config['fitter']
        if fitter['cv_folds'] < 2:
            raise ConfigurationError(f"cv_folds must be >= 2, got {fitter['cv_folds']}.")
        if fitter['cv_repeats'] < 1:
            raise ConfigurationError(f"cv_repeats must be >= 1, got {fitter['cv_repeats']}.")
        max_candidates = fitter.get('max_candidates')
        if max_candidates is not None and max_candidates < 1:
            raise ConfigurationError(f"max_candidates must be >= 1 when provided, got {max_candidates}.")

        # --- Data Section ---
        data = self.config['data']
        if data['source'] == 'csv':
            for key in ['file_path', 'target_column']:
                if not data.get(key):
                    raise ConfigurationError(f"Data '{key}' must be specified for the csv source.")

        # --- Splitting Section ---
        split = self.config['splitting']
        for key in ['train_total_fraction', 'initial_train_fraction', 'holdout_fraction']:
            if not (0.0 < split[key] < 1.0):
                raise ConfigurationError(f"{key} must be between 0 and 1 (exclusive), got {split[key]}")
        if split['train_total_fraction'] + split['holdout_fraction'] >= 1.0:
            raise ConfigurationError(
                f"Sum of train_total_fraction ({split['train_total_fraction']}) and holdout_fraction "
                f"({split['holdout_fraction']}) must be < 1.0 to leave room for test data."
            )
        if split['seed'] < 0:
            raise ConfigurationError("Splitting seed must be non-negative.")

    def _propagate_seeds(self) -> None:
        """
        Propagate the master seed to the two random streams.
        The split stream is used once by the provisioner; every draw of a
        simulation run (permutation, fitter seeds, oracle noise) comes from the
        simulation stream.
        """
        master_seed = self.config['splitting']['seed']

        self.config['_internal_seeds'] = {
            'split': master_seed,
            'simulation': master_seed + 1000,
        }
        self.logger.debug(f"Seeds propagated from master ({master_seed}): {self.config['_internal_seeds']}")
