import pytest
from unittest.mock import Mock, patch
import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg') # Use the Agg backend for testing plots

from reusable_holdout.utils import constants
from reusable_holdout.visualization import SimulationVisualizer

@pytest.fixture
def mock_logger():
    """Provides a mock logger instance."""
    return Mock()

@pytest.fixture
def visualizer(mock_logger):
    return SimulationVisualizer({"visualization": {"enabled": True, "dpi": 60}}, mock_logger)

@pytest.fixture
def report():
    rows = []
    for round_ind in range(4):
        for score_name in constants.SCORE_NAMES:
            value = np.nan if (round_ind == 0 and score_name == constants.THRESHOLDOUT_AUC) else 0.7 + 0.02 * round_ind
            rows.append({
                'round': round_ind,
                'n_train': 50 + 10 * round_ind,
                'score_name': score_name,
                'score_value': value,
                'method': 'glm',
                'num_features': 2 + round_ind,
                'holdout_access_count': 0 if round_ind == 0 else 3,
                'cum_holdout_access_count': 3 * round_ind,
                'cum_budget_consumption': round_ind // 2,
            })
    return pd.DataFrame(rows, columns=constants.REPORT_COLUMNS)

def test_plot_scores_by_round(visualizer, report, tmp_path):
    path = tmp_path / "plots" / constants.SCORES_PLOT_FILE
    assert visualizer.plot_scores_by_round(report, path) is True
    assert path.exists()

def test_plot_holdout_usage(visualizer, report, tmp_path):
    path = tmp_path / constants.USAGE_PLOT_FILE
    assert visualizer.plot_holdout_usage(report, path) is True
    assert path.exists()

def test_plot_failure_only_warns(visualizer, mock_logger, report, tmp_path):
    with patch('reusable_holdout.visualization.simulation_visualizer.sns.lineplot', side_effect=RuntimeError("no")):
        assert visualizer.plot_scores_by_round(report, tmp_path / "x.png") is False
    mock_logger.warning.assert_called_once()
    assert not (tmp_path / "x.png").exists()
