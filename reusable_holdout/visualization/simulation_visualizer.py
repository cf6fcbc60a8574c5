import matplotlib
matplotlib.use("Agg")  # Non-interactive backend; plots are only written to disk
import matplotlib.pyplot as plt
import seaborn as sns
import pandas as pd
import logging
from pathlib import Path

from reusable_holdout.utils import constants


class SimulationVisualizer:
    """
    Plots for a simulation report.

    Covers:
    1. Score trajectories by round (train / cv / holdout / test / thresholdout).
    2. Feature count and cumulative holdout access by round.

    Plot failures are logged and never abort the run.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger

        sns.set_theme(style="whitegrid")
        vis_config = config.get('visualization', {})
        self.dpi = vis_config.get('dpi', 150)
        self.palette = {
            constants.TRAIN_AUC: '#7f7f7f',
            constants.CV_AUC: '#ff7f0e',
            constants.HOLDOUT_AUC: '#d62728',
            constants.TEST_AUC: '#1f77b4',
            constants.THRESHOLDOUT_AUC: '#2ca02c',
        }

    def plot_scores_by_round(self, report: pd.DataFrame, path: Path) -> bool:
        """
        Line plot of every score against round, one line per score_name.
        Round 0 has no thresholdout score and is simply missing from that line.

        Returns:
            True when the figure was written.
        """
        try:
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
            data = report.dropna(subset=['score_value'])

            plt.figure(figsize=(10, 6))
            sns.lineplot(
                data=data, x='round', y='score_value', hue='score_name',
                hue_order=[s for s in constants.SCORE_NAMES if s in set(data['score_name'])],
                palette=self.palette, marker='o', errorbar=None,
            )
            method = report['method'].iloc[0] if len(report) else ''
            plt.title(f"AUC by adaptive round ({method})")
            plt.xlabel("Round")
            plt.ylabel("AUC")
            plt.legend(title="Score")
            return self._save_and_close(path)
        except Exception as e:  # noqa: BLE001
            self.logger.warning(f"Failed to plot scores by round: {e}")
            plt.close('all')
            return False

    def plot_holdout_usage(self, report: pd.DataFrame, path: Path) -> bool:
        """Feature count and cumulative holdout access on twin axes."""
        try:
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
            per_round = report.drop_duplicates('round').sort_values('round')

            fig, ax1 = plt.subplots(figsize=(10, 6))
            ax1.plot(per_round['round'], per_round['num_features'], marker='o', color='#1f77b4')
            ax1.set_xlabel("Round")
            ax1.set_ylabel("Selected features", color='#1f77b4')

            ax2 = ax1.twinx()
            ax2.step(per_round['round'], per_round['cum_holdout_access_count'],
                     where='post', color='#d62728', label='holdout accesses')
            ax2.step(per_round['round'], per_round['cum_budget_consumption'],
                     where='post', color='#2ca02c', linestyle='--', label='budget consumed')
            ax2.set_ylabel("Cumulative count")
            ax2.legend(loc='upper left')
            plt.title("Holdout usage by round")
            return self._save_and_close(path)
        except Exception as e:  # noqa: BLE001
            self.logger.warning(f"Failed to plot holdout usage: {e}")
            plt.close('all')
            return False

    def _save_and_close(self, path: Path) -> bool:
        """Helper to save figure and clean memory."""
        try:
            plt.savefig(path, dpi=self.dpi, bbox_inches='tight')
            self.logger.info(f"Saved plot: {path}")
            return True
        except Exception as e:  # noqa: BLE001
            self.logger.warning(f"Failed to save plot {path}: {e}")
            return False
        finally:
            plt.close('all')
