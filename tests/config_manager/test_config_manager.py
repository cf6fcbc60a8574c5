import pytest
import json
from pathlib import Path
from unittest.mock import patch

from reusable_holdout.config_manager.config_manager import (
    ConfigurationManager,
    DEFAULT_CONFIG,
    DEFAULT_SCHEMA_PATH,
)
from reusable_holdout.utils import constants
from reusable_holdout.utils.exceptions import ConfigurationError

@pytest.fixture
def valid_config(tmp_path):
    return {
        "simulation": {
            "n_adapt_rounds": 3,
            "signif_level": 0.01,
            "thresholdout_threshold": 0.02,
            "thresholdout_sigma": 0.03,
            "thresholdout_noise_distribution": "laplace"
        },
        "splitting": {"seed": 7},
        "outputs": {"base_results_dir": str(tmp_path / "results")}
    }

@pytest.fixture
def config_file(tmp_path, valid_config):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(valid_config))
    return path

# --- Test Cases ---

def test_load_and_validate_success(config_file):
    manager = ConfigurationManager(str(config_file))
    config = manager.load_and_validate()

    assert config['simulation']['n_adapt_rounds'] == 3
    assert config['simulation']['thresholdout_noise_distribution'] == 'laplace'
    # Defaults are merged in
    assert config['simulation']['thresholdout_budget'] is None
    assert config['fitter']['cv_folds'] == DEFAULT_CONFIG['fitter']['cv_folds']
    assert config['splitting']['train_total_fraction'] == 0.5

def test_seed_propagation(config_file):
    config = ConfigurationManager(str(config_file)).load_and_validate()
    assert config['_internal_seeds'] == {'split': 7, 'simulation': 1007}

def test_from_dict_defaults():
    config = ConfigurationManager.from_dict()
    assert config['simulation']['n_adapt_rounds'] == 10
    assert config['simulation']['signif_level'] == 0.0001
    assert config['outputs']['save_results'] is False

def test_from_dict_flat_keys_are_folded():
    config = ConfigurationManager.from_dict({
        'n_adapt_rounds': 4,
        'thresholdout_sigma': 0.05,
        'fitter': {'cv_folds': 3},
    })
    assert config['simulation']['n_adapt_rounds'] == 4
    assert config['simulation']['thresholdout_sigma'] == 0.05
    assert config['fitter']['cv_folds'] == 3
    assert 'n_adapt_rounds' not in config

def test_defaults_are_not_mutated():
    config = ConfigurationManager.from_dict({'n_adapt_rounds': 2})
    config['simulation']['n_adapt_rounds'] = 99
    assert DEFAULT_CONFIG['simulation']['n_adapt_rounds'] == 10

def test_zero_rounds_allowed():
    config = ConfigurationManager.from_dict({'n_adapt_rounds': 0})
    assert config['simulation']['n_adapt_rounds'] == 0

@pytest.mark.parametrize("overrides", [
    {'n_adapt_rounds': -1},
    {'n_adapt_rounds': 2.5},
    {'n_adapt_rounds': True},
    {'signif_level': 0.0},
    {'signif_level': 1.0},
    {'thresholdout_threshold': -0.1},
    {'thresholdout_sigma': 0.0},
    {'thresholdout_noise_distribution': 'cauchy'},
    {'thresholdout_budget': 0},
    {'fitter': {'cv_folds': 1}},
    {'splitting': {'train_total_fraction': 0.8, 'holdout_fraction': 0.3}},
    {'data': {'source': 'csv'}},
])
def test_invalid_values_raise(overrides):
    with pytest.raises(ConfigurationError):
        ConfigurationManager.from_dict(overrides)

def test_non_mapping_rejected():
    with pytest.raises(ConfigurationError, match="mapping"):
        ConfigurationManager().validate(["not", "a", "dict"])

def test_missing_file_raises(tmp_path):
    manager = ConfigurationManager(str(tmp_path / "missing.json"))
    with pytest.raises(ConfigurationError, match="File not found"):
        manager.load_and_validate()

def test_invalid_json_raises(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError, match="Invalid JSON"):
        ConfigurationManager(str(path)).load_and_validate()

def test_schema_violation_message(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"simulation": {"n_adapt_rounds": 2}}))
    with patch('reusable_holdout.config_manager.config_manager._deep_merge', side_effect=lambda base, override: override):
        with pytest.raises(ConfigurationError, match="Schema validation failed"):
            ConfigurationManager(str(path)).load_and_validate()

def test_run_id_is_stable():
    manager = ConfigurationManager()
    run_id = manager.generate_run_id()
    assert manager.generate_run_id() == run_id

def test_save_artifacts(config_file, tmp_path):
    manager = ConfigurationManager(str(config_file))
    manager.load_and_validate()
    manager.run_id = "test_run"
    manager.save_artifacts(str(tmp_path / "run"))

    config_dir = tmp_path / "run" / constants.CONFIG_DIR
    saved = json.loads((config_dir / constants.CONFIG_USED_FILE).read_text())
    assert saved['simulation']['n_adapt_rounds'] == 3
    assert len((config_dir / constants.CONFIG_HASH_FILE).read_text()) == 64
    metadata = json.loads((config_dir / constants.RUN_METADATA_FILE).read_text())
    assert metadata['run_id'] == "test_run"

def test_bundled_schema_exists():
    assert Path(DEFAULT_SCHEMA_PATH).is_file()
