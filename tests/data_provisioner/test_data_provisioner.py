import pytest
import json
import numpy as np
import pandas as pd
from unittest.mock import Mock

from reusable_holdout.config_manager import ConfigurationManager
from reusable_holdout.data_provisioner import DataProvisioner, DatasetBundle
from reusable_holdout.utils import constants
from reusable_holdout.utils.exceptions import CollaboratorFailure, DataValidationError

@pytest.fixture
def mock_logger():
    """Provides a mock logger instance."""
    return Mock()

@pytest.fixture
def synthetic_config(tmp_path):
    return ConfigurationManager.from_dict({
        'data': {'source': 'synthetic', 'synthetic': {'n_samples': 200, 'n_features': 6, 'n_informative': 2}},
        'outputs': {'base_results_dir': str(tmp_path)},
    })

@pytest.fixture
def frame():
    rng = np.random.RandomState(0)
    df = pd.DataFrame(rng.normal(size=(120, 4)), columns=['a', 'b', 'c', 'd'])
    df['label'] = ['no', 'yes'] * 60
    return df

def _bundle(**overrides):
    x = pd.DataFrame({'a': [0.1, 0.2, 0.3, 0.4], 'b': [1.0, 0.0, 1.0, 0.0]})
    y = pd.Series(['n', 'p', 'n', 'p'])
    kwargs = dict(
        x_train_total=x, y_train_total=y,
        x_holdout=x.copy(), y_holdout=y.copy(),
        x_test=x.copy(), y_test=y.copy(),
        target_name='t', baseline_label='n', n_features=2, n_train=2,
    )
    kwargs.update(overrides)
    return DatasetBundle(**kwargs)

# --- Provisioner ---

def test_synthetic_split_sizes(synthetic_config, mock_logger):
    bundle = DataProvisioner(synthetic_config, mock_logger).execute()

    assert bundle.n_train_total == 100
    assert bundle.n_train == 50
    assert len(bundle.x_holdout) == 50
    assert len(bundle.x_test) == 50
    assert bundle.n_features == 6
    assert bundle.feature_names == [f"x{i:02d}" for i in range(6)]
    assert bundle.target_name == 'y'
    assert bundle.baseline_label == 0

def test_splits_are_deterministic(synthetic_config, mock_logger):
    first = DataProvisioner(synthetic_config, mock_logger).execute()
    second = DataProvisioner(synthetic_config, mock_logger).execute()
    pd.testing.assert_frame_equal(first.x_train_total, second.x_train_total)
    pd.testing.assert_series_equal(first.y_test, second.y_test)

def test_call_splits_with_given_conf(frame, mock_logger):
    config = ConfigurationManager.from_dict({'data': {'target_column': 'label'}})
    provisioner = DataProvisioner(config, mock_logger)
    other = {**config, '_internal_seeds': {**config['_internal_seeds'], 'split': config['_internal_seeds']['split'] + 1}}

    own = provisioner(instance=frame, conf=config)
    shifted = provisioner(instance=frame, conf=other)

    pd.testing.assert_frame_equal(own.x_holdout, provisioner.execute(frame).x_holdout)
    assert not own.x_holdout.equals(shifted.x_holdout)

def test_dataframe_instance(frame, mock_logger):
    config = ConfigurationManager.from_dict({'data': {'target_column': 'label'}})
    provisioner = DataProvisioner(config, mock_logger)

    bundle = provisioner(instance=frame, conf=config)

    assert bundle.baseline_label == 'no'
    assert bundle.n_train_total + len(bundle.x_holdout) + len(bundle.x_test) == len(frame)
    assert list(bundle.binarize(pd.Series(['no', 'yes']))) == [0, 1]
    # Stratified: both classes everywhere
    for y in (bundle.y_train_total, bundle.y_holdout, bundle.y_test):
        assert set(y) == {'no', 'yes'}

def test_explicit_baseline_label(frame, mock_logger):
    config = ConfigurationManager.from_dict({'data': {'target_column': 'label', 'baseline_label': 'yes'}})
    bundle = DataProvisioner(config, mock_logger).execute(frame)
    assert bundle.baseline_label == 'yes'
    assert list(bundle.binarize(pd.Series(['no', 'yes']))) == [1, 0]

def test_instance_requires_target_column(frame, mock_logger):
    config = ConfigurationManager.from_dict()
    with pytest.raises(DataValidationError, match="target_column"):
        DataProvisioner(config, mock_logger).execute(frame)

def test_non_binary_target_rejected(frame, mock_logger):
    frame['label'] = ['a', 'b', 'c'] * 40
    config = ConfigurationManager.from_dict({'data': {'target_column': 'label'}})
    with pytest.raises(DataValidationError, match="binary"):
        DataProvisioner(config, mock_logger).execute(frame)

def test_missing_values_rejected(frame, mock_logger):
    frame.loc[3, 'a'] = np.nan
    config = ConfigurationManager.from_dict({'data': {'target_column': 'label'}})
    with pytest.raises(DataValidationError, match="missing"):
        DataProvisioner(config, mock_logger).execute(frame)

def test_single_feature_rejected(frame, mock_logger):
    config = ConfigurationManager.from_dict({'data': {'target_column': 'label'}})
    with pytest.raises(DataValidationError, match="two feature columns"):
        DataProvisioner(config, mock_logger).execute(frame[['a', 'label']])

def test_unreadable_file_is_collaborator_failure(tmp_path, mock_logger):
    path = tmp_path / "data.txt"
    path.write_text("a,b\n1,2\n")
    config = ConfigurationManager.from_dict({
        'data': {'source': 'csv', 'file_path': str(path), 'target_column': 'b'}
    })
    with pytest.raises(CollaboratorFailure, match="Data Provisioning failed"):
        DataProvisioner(config, mock_logger).execute()

def test_csv_source(tmp_path, frame, mock_logger):
    path = tmp_path / "data.csv"
    frame.to_csv(path, index=False)
    config = ConfigurationManager.from_dict({
        'data': {'source': 'csv', 'file_path': str(path), 'target_column': 'label'}
    })
    bundle = DataProvisioner(config, mock_logger).execute()
    assert bundle.feature_names == ['a', 'b', 'c', 'd']

def test_save_splits(tmp_path, synthetic_config, mock_logger):
    synthetic_config['outputs'].update({'save_results': True, 'save_splits': True})
    provisioner = DataProvisioner(synthetic_config, mock_logger)
    provisioner.execute()

    out = tmp_path / constants.MASTER_SPLITS_DIR
    for name in ('train_total', 'holdout', 'test'):
        assert (out / f"{name}.parquet").exists()
    summary = json.loads((out / "split_summary.json").read_text())
    assert summary['n_train'] == 50
    assert summary['n_train_total'] == 100

# --- DatasetBundle ---

def test_bundle_valid():
    bundle = _bundle()
    assert bundle.n_train_total == 4
    assert bundle.feature_names == ['a', 'b']

def test_bundle_column_mismatch():
    with pytest.raises(DataValidationError, match="columns"):
        _bundle(x_test=pd.DataFrame({'a': [1, 2, 3, 4], 'z': [1, 2, 3, 4]}))

def test_bundle_length_mismatch():
    with pytest.raises(DataValidationError, match="labels"):
        _bundle(y_holdout=pd.Series(['n', 'p', 'n']))

def test_bundle_single_class_split():
    with pytest.raises(DataValidationError):
        _bundle(y_test=pd.Series(['n', 'n', 'n', 'n']))

def test_bundle_n_features_mismatch():
    with pytest.raises(DataValidationError, match="n_features"):
        _bundle(n_features=3)

@pytest.mark.parametrize("n_train", [0, 5])
def test_bundle_initial_size_bounds(n_train):
    with pytest.raises(DataValidationError, match="Initial training size"):
        _bundle(n_train=n_train)
