"""
DataProvisioner for the reusable-holdout simulator.

Builds the single train-total / holdout / test split that a simulation run
reuses for every adaptive round. The proportions default to the classic
demo setup: half of the rows for training (a quarter of all rows available at
round 0), a quarter as holdout and the remainder as test.
"""
import logging
from typing import Any, Optional, Tuple

import pandas as pd
from sklearn.datasets import load_breast_cancer, make_classification
from sklearn.model_selection import train_test_split

from reusable_holdout.base.base_engine import BaseEngine
from reusable_holdout.data_provisioner.dataset_bundle import DatasetBundle
from reusable_holdout.utils.error_handling import handle_collaborator_errors
from reusable_holdout.utils.exceptions import DataValidationError
from reusable_holdout.utils.file_io import read_dataframe
from reusable_holdout.utils import constants


class DataProvisioner(BaseEngine):
    """
    Loads a binary classification dataset and splits it once.

    Sources:
    - 'demo': scikit-learn's breast cancer dataset.
    - 'csv': a file given by data.file_path (CSV, Parquet or Excel).
    - 'synthetic': sklearn.datasets.make_classification.
    - an in-memory DataFrame passed as ``instance`` (overrides the source).
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.data_config = self.config.get('data', {})
        self.split_config = self.config.get('splitting', {})

    def _get_engine_directory_name(self) -> str:
        return constants.MASTER_SPLITS_DIR

    def __call__(self, instance: Any = None, conf: Optional[dict] = None) -> DatasetBundle:
        # A caller-supplied conf (e.g. a replicate's offset seeds) drives the split.
        if conf is not None and conf is not self.config:
            return DataProvisioner(conf, self.logger).execute(instance)
        return self.execute(instance)

    @handle_collaborator_errors("Data Provisioning")
    def execute(self, instance: Any = None) -> DatasetBundle:
        """
        Load, validate and split the dataset.

        Args:
            instance: Optional DataFrame handle to split instead of the configured source.

        Returns:
            DatasetBundle with the fixed split.
        """
        df, target = self._load(instance)
        self._validate_frame(df, target)

        baseline_label = self.data_config.get('baseline_label')
        if baseline_label is None:
            baseline_label = sorted(pd.unique(df[target]))[0]

        bundle = self._split(df, target, baseline_label)

        self.logger.info(
            f"Dataset provisioned: train-total={bundle.n_train_total} (initial {bundle.n_train}), "
            f"holdout={len(bundle.x_holdout)}, test={len(bundle.x_test)}, features={bundle.n_features}, "
            f"baseline label={baseline_label!r}"
        )

        if self.persistence_enabled and self.config.get('outputs', {}).get('save_splits', False):
            self._save_splits(bundle)

        return bundle

    def _load(self, instance: Any) -> Tuple[pd.DataFrame, str]:
        if isinstance(instance, pd.DataFrame):
            target = self.data_config.get('target_column')
            if not target:
                raise DataValidationError("data.target_column must be set when a DataFrame instance is supplied.")
            return instance.copy(), target
        if instance is not None:
            raise DataValidationError(
                f"Unsupported dataset instance of type {type(instance).__name__}; pass a DataFrame or None."
            )

        source = self.data_config.get('source', 'demo')
        if source == 'demo':
            frame = load_breast_cancer(as_frame=True).frame
            return frame, 'target'
        if source == 'csv':
            path = self.data_config.get('file_path')
            self.logger.info(f"Loading dataset from {path}")
            return read_dataframe(path), self.data_config['target_column']
        if source == 'synthetic':
            return self._make_synthetic(), 'y'

        raise DataValidationError(f"Unknown data source: {source}")

    def _make_synthetic(self) -> pd.DataFrame:
        params = self.data_config.get('synthetic', {})
        n_features = params.get('n_features', 20)
        X, y = make_classification(
            n_samples=params.get('n_samples', 400),
            n_features=n_features,
            n_informative=params.get('n_informative', 4),
            n_redundant=0,
            class_sep=params.get('class_sep', 1.0),
            random_state=self._split_seed(),
        )
        frame = pd.DataFrame(X, columns=[f"x{i:02d}" for i in range(n_features)])
        frame['y'] = y
        return frame

    def _validate_frame(self, df: pd.DataFrame, target: str) -> None:
        if target not in df.columns:
            raise DataValidationError(f"Target column '{target}' not found in dataset.")

        features = df.drop(columns=[target])
        if features.shape[1] < 2:
            raise DataValidationError(f"At least two feature columns are required, found {features.shape[1]}.")

        non_numeric = [c for c in features.columns if not pd.api.types.is_numeric_dtype(features[c])]
        if non_numeric:
            raise DataValidationError(f"Non-numeric feature columns: {non_numeric}")

        if features.isna().any().any() or df[target].isna().any():
            raise DataValidationError("Dataset contains missing values.")

        n_classes = df[target].nunique()
        if n_classes != 2:
            raise DataValidationError(f"Target '{target}' must be binary, found {n_classes} classes.")

    def _split(self, df: pd.DataFrame, target: str, baseline_label: Any) -> DatasetBundle:
        n_all = len(df)
        n_train_total = int(n_all * self.split_config.get('train_total_fraction', 0.5))
        n_holdout = int(n_all * self.split_config.get('holdout_fraction', 0.25))
        n_test = n_all - n_train_total - n_holdout
        n_train = int(n_train_total * self.split_config.get('initial_train_fraction', 0.5))

        if min(n_train, n_holdout, n_test) <= 0:
            raise DataValidationError(
                f"Dataset of {n_all} rows is too small: train={n_train}, holdout={n_holdout}, test={n_test}."
            )

        seed = self._split_seed()
        try:
            train_total, rest = train_test_split(
                df, train_size=n_train_total, stratify=df[target], random_state=seed
            )
            holdout, test = train_test_split(
                rest, train_size=n_holdout, stratify=rest[target], random_state=seed
            )
        except ValueError as e:
            raise DataValidationError(f"Stratified split failed: {e}") from e

        def _xy(part: pd.DataFrame):
            part = part.reset_index(drop=True)
            return part.drop(columns=[target]), part[target]

        x_train_total, y_train_total = _xy(train_total)
        x_holdout, y_holdout = _xy(holdout)
        x_test, y_test = _xy(test)

        return DatasetBundle(
            x_train_total=x_train_total,
            y_train_total=y_train_total,
            x_holdout=x_holdout,
            y_holdout=y_holdout,
            x_test=x_test,
            y_test=y_test,
            target_name=target,
            baseline_label=baseline_label,
            n_features=x_train_total.shape[1],
            n_train=n_train,
        )

    def _split_seed(self) -> int:
        return self.config.get('_internal_seeds', {}).get('split', self.split_config.get('seed', 42))

    def _save_splits(self, bundle: DatasetBundle) -> None:
        for name, x, y in bundle.splits():
            frame = x.assign(**{bundle.target_name: y.values})
            self.save_frame(frame, f"{name.replace('-', '_')}.parquet")

        self.save_json({
            'n_train': bundle.n_train,
            'n_train_total': bundle.n_train_total,
            'n_holdout': len(bundle.x_holdout),
            'n_test': len(bundle.x_test),
            'n_features': bundle.n_features,
            'target': bundle.target_name,
            'baseline_label': str(bundle.baseline_label),
        }, constants.SPLIT_SUMMARY_FILE)
        self.logger.info(f"Master splits saved to {self.output_dir}")
