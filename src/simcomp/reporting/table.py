"""
Append-only time-series table with a fixed column schema.
"""
from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray


class TimeSeriesTable:
    """
    Rows of ``(time, value_1, ..., value_n)`` appended in time order.

    Parameters
    ----------
    column_labels : Sequence[str]
        One label per value column (the time column is implicit)

    Notes
    -----
    ``view()`` returns a read-only table that shares storage with this one:
    it sees rows appended later but cannot append itself.
    """

    def __init__(self, column_labels: Sequence[str]) -> None:
        labels = list(column_labels)
        if len(set(labels)) != len(labels):
            raise ValueError(f"Column labels must be unique, got {labels}")
        self._labels = labels
        self._times: list[float] = []
        self._rows: list[list[float]] = []
        self._read_only = False

    @property
    def column_labels(self) -> list[str]:
        return list(self._labels)

    @property
    def num_columns(self) -> int:
        return len(self._labels)

    @property
    def num_rows(self) -> int:
        return len(self._times)

    def __len__(self) -> int:
        return len(self._times)

    @property
    def read_only(self) -> bool:
        return self._read_only

    def append_row(self, time: float, values: Sequence[float]) -> None:
        """
        Append one row.

        Raises
        ------
        TypeError
            If this table is a read-only view
        ValueError
            If the row width does not match the schema or time decreases
        """
        if self._read_only:
            raise TypeError("Cannot append to a read-only table view")
        row = [float(v) for v in values]
        if len(row) != len(self._labels):
            raise ValueError(
                f"Row has {len(row)} values but the table has {len(self._labels)} columns"
            )
        time = float(time)
        if self._times and time < self._times[-1]:
            raise ValueError(
                f"Row time {time} is earlier than the last row time {self._times[-1]}"
            )
        self._times.append(time)
        self._rows.append(row)

    def clear(self) -> None:
        if self._read_only:
            raise TypeError("Cannot clear a read-only table view")
        self._times.clear()
        self._rows.clear()

    @property
    def times(self) -> NDArray[np.float64]:
        arr = np.array(self._times, dtype=np.float64)
        arr.flags.writeable = False
        return arr

    @property
    def values(self) -> NDArray[np.float64]:
        """Values as a (num_rows, num_columns) read-only array."""
        arr = np.array(self._rows, dtype=np.float64).reshape(len(self._rows), len(self._labels))
        arr.flags.writeable = False
        return arr

    def get_row(self, index: int) -> tuple[float, list[float]]:
        return self._times[index], list(self._rows[index])

    def get_column(self, label: str) -> NDArray[np.float64]:
        try:
            col = self._labels.index(label)
        except ValueError:
            raise KeyError(f"No column '{label}'. Valid options: {self._labels}") from None
        return self.values[:, col]

    def view(self) -> TimeSeriesTable:
        """Read-only view sharing this table's storage."""
        other = TimeSeriesTable.__new__(TimeSeriesTable)
        other._labels = self._labels
        other._times = self._times
        other._rows = self._rows
        other._read_only = True
        return other

    def to_dataframe(self) -> pd.DataFrame:
        df = pd.DataFrame(self.values, columns=self._labels, index=self.times.copy())
        df.index.name = "time"
        return df

    def __repr__(self) -> str:
        return f"TimeSeriesTable(columns={self._labels}, rows={len(self._times)})"
