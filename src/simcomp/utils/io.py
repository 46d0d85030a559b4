"""
File IO for model definitions and report tables.

Models are stored as JSON (the ``to_dict`` form of the component tree);
report tables are written to CSV through pandas.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path

import pandas as pd

from simcomp.core.component import Component
from simcomp.reporting.table import TimeSeriesTable

logger = logging.getLogger(__name__)


def save_model(model: Component, filepath: str | Path) -> Path:
    """
    Write a component tree's configuration to a JSON file.

    Parameters
    ----------
    model : Component
        Root of the tree (normally a Model)
    filepath : str | Path
        Destination path; parent directories are created

    Returns
    -------
    Path
        The written file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(model.to_dict(), f, indent=2)
    logger.info("Model '%s' saved to %s", model.name, path.absolute())
    return path


def load_model(filepath: str | Path) -> Component:
    """Rebuild a component tree written by ``save_model``."""
    with open(Path(filepath), encoding="utf-8") as f:
        data = json.load(f)
    return Component.from_dict(data)


def save_report(table: TimeSeriesTable, filepath: str | Path) -> Path:
    """
    Save a report table to CSV with a leading ``time`` column.

    Raises
    ------
    ValueError
        If the table has no rows
    """
    if table.num_rows == 0:
        raise ValueError("Report table is empty. Nothing to save.")

    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_dataframe().to_csv(path)
    logger.info("Report saved to %s", path.absolute())
    return path


def load_report(filepath: str | Path) -> pd.DataFrame:
    """Read a CSV written by ``save_report``; the index is ``time``."""
    return pd.read_csv(filepath, index_col="time")
