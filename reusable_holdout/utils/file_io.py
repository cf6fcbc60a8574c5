import json
from pathlib import Path
from typing import Any, Dict

import numpy as np
import pandas as pd

READERS = {
    ".parquet": pd.read_parquet,
    ".csv": pd.read_csv,
    ".xlsx": pd.read_excel,
    ".xls": pd.read_excel,
}

_COLLECTIONS = (list, tuple, set, frozenset)


def _encode_collection(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return json.dumps(sorted(value))
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value))
    return value


def save_dataframe(df: pd.DataFrame, path: Path, *, excel_copy: bool = False, index: bool = False) -> Path:
    """
    Save a DataFrame to Parquet with an optional Excel copy for human readability.

    Cells holding feature collections are written as JSON strings so both
    formats accept them; the caller's frame is left untouched.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    frame = df
    for column in df.select_dtypes(include="object").columns:
        if df[column].map(lambda v: isinstance(v, _COLLECTIONS)).any():
            if frame is df:
                frame = df.copy()
            frame[column] = df[column].map(_encode_collection)

    frame.to_parquet(path, index=index)
    if excel_copy:
        frame.to_excel(path.with_suffix(".xlsx"), index=index)

    return path


def read_dataframe(path: Path) -> pd.DataFrame:
    """Load a DataFrame from Parquet/Excel/CSV based on file extension."""
    path = Path(path)
    reader = READERS.get(path.suffix.lower())
    if reader is None:
        raise ValueError(
            f"Unsupported file extension for reading: {path.suffix} (expected one of {sorted(READERS)})"
        )
    return reader(path)


def _json_default(value: Any) -> Any:
    if isinstance(value, (np.integer,)):
        return int(value)
    if isinstance(value, (np.floating,)):
        return None if np.isnan(value) else float(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


def save_json(payload: Dict[str, Any], path: Path) -> Path:
    """Write a summary dict as indented JSON; numpy scalars and sets are converted."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(payload, f, indent=2, default=_json_default)
    return path
