import abc
import logging
from pathlib import Path
from typing import Any, Dict

import pandas as pd

from reusable_holdout.utils.file_io import save_dataframe, save_json


class BaseEngine(abc.ABC):
    """
    Abstract base class for the simulator's artifact-producing engines.

    Each engine owns one numbered directory under ``outputs.base_results_dir``.
    Nothing touches the filesystem unless ``outputs.save_results`` is set, so
    library callers (run_sim, tests) get pure in-memory runs by default.
    """

    def __init__(self, config: Dict[str, Any], logger: logging.Logger):
        self.config = config
        self.logger = logger
        outputs = self.config.get('outputs', {})
        self.base_dir = Path(outputs.get('base_results_dir', 'results'))
        self.output_dir = self.base_dir / self._get_engine_directory_name()

        if self.persistence_enabled:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self.logger.info(f"Output directory for {self.__class__.__name__}: {self.output_dir}")

    @abc.abstractmethod
    def _get_engine_directory_name(self) -> str:
        """Numbered directory name, e.g. '02_MasterDataSplits'."""
        raise NotImplementedError("Subclasses must implement _get_engine_directory_name.")

    @property
    def persistence_enabled(self) -> bool:
        outputs = self.config.get('outputs', {})
        return bool(outputs.get('save_results', False)) and not outputs.get('skip_dir_creation', False)

    @property
    def excel_copy(self) -> bool:
        return bool(self.config.get('outputs', {}).get('save_excel_copy', False))

    def save_frame(self, df: pd.DataFrame, filename: str) -> Path:
        """Persist a table into this engine's directory (Parquet, optional Excel copy)."""
        return save_dataframe(df, self.output_dir / filename, excel_copy=self.excel_copy)

    def save_json(self, payload: Dict[str, Any], filename: str) -> Path:
        return save_json(payload, self.output_dir / filename)

    @abc.abstractmethod
    def execute(self, *args, **kwargs) -> Any:
        """Run the engine. Must be implemented by all subclasses."""
        pass
