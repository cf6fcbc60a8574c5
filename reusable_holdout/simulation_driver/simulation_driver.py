"""
SimulationDriver for the reusable-holdout simulator.

Wires configuration, data provisioning and the adaptive selection loop, then
reshapes the per-round records into a flat report keyed by
(round, score_name).
"""
import copy
import logging
from typing import Any, Callable, Dict, Optional

import pandas as pd
from joblib import Parallel, delayed

from reusable_holdout.adaptive_selection import AdaptiveSelectionLoop, SimulationResult
from reusable_holdout.base.base_engine import BaseEngine
from reusable_holdout.config_manager import ConfigurationManager
from reusable_holdout.data_provisioner import DataProvisioner, DatasetBundle
from reusable_holdout.logging_config import LoggingConfigurator
from reusable_holdout.utils.exceptions import DataValidationError
from reusable_holdout.utils import constants

Provisioner = Callable[..., DatasetBundle]


def build_report(result: SimulationResult, method: str) -> pd.DataFrame:
    """
    Flatten round records into one row per (round, score_name), then
    left-join the per-round feature-count and holdout-access series.
    """
    rounds = result.to_frame()

    scores = rounds[['round', 'n_train'] + constants.SCORE_NAMES].melt(
        id_vars=['round', 'n_train'],
        value_vars=constants.SCORE_NAMES,
        var_name='score_name',
        value_name='score_value',
    )
    scores['method'] = method

    num_features_df = pd.DataFrame({
        'round': rounds['round'],
        'num_features': result.num_features_by_round,
    })
    holdout_access_df = pd.DataFrame({
        'round': rounds['round'],
        'holdout_access_count': result.holdout_access_by_round,
        'cum_holdout_access_count': result.cum_holdout_access,
        'cum_budget_consumption': result.cum_budget_by_round,
    })

    report = scores.merge(num_features_df, on='round', how='left')
    report = report.merge(holdout_access_df, on='round', how='left')
    report = report.sort_values(['round', 'score_name'], kind='mergesort', key=_score_order)
    return report[constants.REPORT_COLUMNS].reset_index(drop=True)


def _score_order(column: pd.Series) -> pd.Series:
    if column.name == 'score_name':
        return column.map({name: i for i, name in enumerate(constants.SCORE_NAMES)})
    return column


class SimulationDriver(BaseEngine):
    """
    Thin glue around provisioner + loop.

    Responsibilities:
    1. Obtain the fixed DatasetBundle from a provisioner.
    2. Run the adaptive selection loop.
    3. Build the flat report and optionally persist it with plots.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.last_result: Optional[SimulationResult] = None

    def _get_engine_directory_name(self) -> str:
        return constants.SIMULATION_DIR

    def execute(self,
                provisioner: Optional[Provisioner] = None,
                classifier: str = "glm",
                instance: Any = None) -> pd.DataFrame:
        """
        Run one simulation.

        Args:
            provisioner: Callable (instance, conf) -> DatasetBundle; defaults to DataProvisioner.
            classifier: Classifier identifier.
            instance: Optional dataset handle forwarded to the provisioner.

        Returns:
            Flat report DataFrame.
        """
        bundle = self._provision(provisioner, instance)

        loop = AdaptiveSelectionLoop(self.config, self.logger)
        result = loop.run(bundle, classifier)
        self.last_result = result

        report = build_report(result, classifier)
        self.logger.info(f"Simulation report built: {len(report)} rows over {result.n_rounds} rounds")

        if self.persistence_enabled:
            self._save_results(report, result)

        return report

    def execute_replicates(self,
                           n_replicates: int,
                           provisioner: Optional[Provisioner] = None,
                           classifier: str = "glm",
                           n_jobs: int = 1) -> pd.DataFrame:
        """
        Run independent replicates, each with its own split and random stream.

        Replicates are dispatched with joblib; every replicate is itself a
        strictly sequential run.
        """
        if n_replicates < 1:
            raise DataValidationError(f"n_replicates must be >= 1, got {n_replicates}")

        self.logger.info(f"Running {n_replicates} replicate(s) of '{classifier}' with n_jobs={n_jobs}")
        configs = [self._replicate_config(i) for i in range(n_replicates)]
        reports = Parallel(n_jobs=n_jobs)(
            delayed(_run_replicate)(cfg, provisioner, classifier, i, self.logger.name)
            for i, cfg in enumerate(configs)
        )

        combined = pd.concat(reports, ignore_index=True)
        if self.persistence_enabled:
            self.save_frame(combined, constants.REPLICATES_REPORT_FILE)
        return combined

    def _replicate_config(self, replicate: int) -> Dict[str, Any]:
        cfg = copy.deepcopy(self.config)
        seeds = cfg.setdefault('_internal_seeds', {})
        seeds['split'] = seeds.get('split', 0) + replicate
        seeds['simulation'] = seeds.get('simulation', 1000) + replicate
        cfg.setdefault('outputs', {})['save_results'] = False
        cfg['simulation'] = {**cfg.get('simulation', {}), 'show_progress': False}
        return cfg

    def _provision(self, provisioner: Optional[Provisioner], instance: Any) -> DatasetBundle:
        if provisioner is None:
            provisioner = DataProvisioner(self.config, self.logger)
        bundle = provisioner(instance=instance, conf=self.config)
        if not isinstance(bundle, DatasetBundle):
            raise DataValidationError(
                f"Provisioner must return a DatasetBundle, got {type(bundle).__name__}"
            )
        return bundle

    def _save_results(self, report: pd.DataFrame, result: SimulationResult) -> None:
        self.save_frame(report, constants.REPORT_FILE)
        self.save_frame(result.to_frame(), constants.ROUNDS_FILE)
        self.save_json(result.summary(), constants.SELECTED_FEATURES_FILE)
        self.logger.info(f"Simulation results saved to {self.output_dir}")

        if self.config.get('visualization', {}).get('enabled', False):
            from reusable_holdout.visualization import SimulationVisualizer
            visualizer = SimulationVisualizer(self.config, self.logger)
            plots_dir = self.base_dir / constants.PLOTS_DIR
            visualizer.plot_scores_by_round(report, plots_dir / constants.SCORES_PLOT_FILE)
            visualizer.plot_holdout_usage(report, plots_dir / constants.USAGE_PLOT_FILE)


def _run_replicate(config: Dict[str, Any], provisioner: Optional[Provisioner], classifier: str,
                   replicate: int, logger_name: str) -> pd.DataFrame:
    logger = logging.getLogger(logger_name)
    driver = SimulationDriver(config, logger)
    report = driver.execute(provisioner, classifier)
    report.insert(0, 'replicate', replicate)
    return report


def run_sim(data_fun: Optional[Provisioner] = None,
            method: str = "glm",
            conf: Optional[Dict[str, Any]] = None,
            instance: Any = None) -> pd.DataFrame:
    """
    Functional entry point: validate ``conf`` (flat or sectioned, defaults when
    None), provision data with ``data_fun(instance=..., conf=...)`` and return
    the flat report.

    When the host application has not configured logging, a console handler
    is installed from ``config['logging']`` (no log file) so verbose rounds
    are visible.
    """
    config = ConfigurationManager.from_dict(conf)
    _ensure_console_logging(config)
    logger = logging.getLogger("simulation")
    driver = SimulationDriver(config, logger)
    return driver.execute(data_fun, method, instance)


def _ensure_console_logging(config: Dict[str, Any]) -> None:
    if logging.getLogger().handlers:
        return
    LoggingConfigurator({'logging': {**config.get('logging', {}), 'log_to_file': False}}).setup()
