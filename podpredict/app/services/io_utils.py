from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import pandas as pd


def load_table(
    csv_path: str | Path,
    parquet_path: Optional[str | Path] = None,
    **csv_kwargs: Any,
) -> pd.DataFrame:
    """Load a metrics table preferring Parquet with CSV fallback.

    Every cell is returned as text so callers apply their own parsing rules;
    empty cells become ``""`` rather than ``NaN``.

    Parameters
    ----------
    csv_path:
        Location of the canonical CSV file.
    parquet_path:
        Optional explicit Parquet path. When omitted we look for ``<csv>.parquet``.
    csv_kwargs:
        Additional keyword arguments forwarded to :func:`pandas.read_csv`.
    """

    csv_path = Path(csv_path)
    pq_path = Path(parquet_path) if parquet_path is not None else csv_path.with_suffix(".parquet")

    if pq_path.exists():
        frame = pd.read_parquet(pq_path)
        return frame.astype("string").fillna("").astype(object)

    csv_kwargs.setdefault("dtype", str)
    csv_kwargs.setdefault("keep_default_na", False)
    csv_kwargs.setdefault("skipinitialspace", True)
    return pd.read_csv(csv_path, **csv_kwargs)
