"""
Bilateral migrant-stock tables.

A stock table maps (origin, destination, period) to the number of people
born in ``origin`` living in ``destination`` at ``period``. Pairs absent from
the table have zero stock.
"""

from dataclasses import dataclass
from typing import Hashable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from migspat.exceptions import InputError

COLUMNS = ["origin", "destination", "period", "stock"]


@dataclass(frozen=True, eq=False)
class StockTable:
    """
    Long-format migrant-stock table.

    Parameters
    ----------
    data : pandas.DataFrame
        Columns ``origin``, ``destination``, ``period``, ``stock``; one row
        per key. Use ``from_frame`` or ``from_mapping`` to build one from
        raw data.

    Examples
    --------
    >>> table = StockTable.from_mapping({("MEX", "USA", 2010): 100.0})
    >>> float(table.matrix(2010).loc["MEX", "USA"])
    100.0
    """

    data: pd.DataFrame

    def __post_init__(self):
        missing = [c for c in COLUMNS if c not in self.data.columns]
        if missing:
            raise InputError(f"Stock table is missing columns: {missing}")

        stock = pd.to_numeric(self.data["stock"], errors="coerce").to_numpy(dtype=np.float64)
        if not np.all(np.isfinite(stock)):
            bad = self.data.loc[~np.isfinite(stock), ["origin", "destination", "period"]]
            raise InputError(f"Non-finite stock values:\n{bad.head(10)}")
        if np.any(stock < 0):
            bad = self.data.loc[stock < 0, ["origin", "destination", "period"]]
            raise InputError(f"Negative stock values:\n{bad.head(10)}")

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        origin: str = "origin",
        destination: str = "destination",
        period: str = "period",
        stock: str = "stock",
    ) -> "StockTable":
        """
        Build a table from a DataFrame with arbitrary column names.

        Duplicate (origin, destination, period) keys are summed.
        """
        for col in (origin, destination, period, stock):
            if col not in df.columns:
                raise InputError(f"Column '{col}' not found. Available: {list(df.columns)}")

        data = df[[origin, destination, period, stock]].copy()
        data.columns = COLUMNS
        data["stock"] = pd.to_numeric(data["stock"], errors="coerce")
        data = data.groupby(["origin", "destination", "period"], as_index=False, sort=False)[
            "stock"
        ].sum(min_count=1)
        return cls(data=data.reset_index(drop=True))

    @classmethod
    def from_mapping(cls, mapping: Mapping) -> "StockTable":
        """Build a table from ``{(origin, destination, period): stock}``."""
        rows = [(o, d, t, v) for (o, d, t), v in mapping.items()]
        return cls.from_frame(pd.DataFrame(rows, columns=COLUMNS))

    @property
    def periods(self) -> list:
        return sorted(pd.unique(self.data["period"]).tolist())

    @property
    def regions(self) -> list:
        """Origins and destinations in first-appearance order."""
        return pd.unique(pd.concat([self.data["origin"], self.data["destination"]])).tolist()

    def matrix(self, period: Hashable, regions: Optional[Sequence] = None) -> pd.DataFrame:
        """
        Origin x destination stock matrix for one period.

        Parameters
        ----------
        period : hashable
            Period to extract.
        regions : sequence, optional
            Row/column order. Default: all regions of the table. Regions
            absent from the table get zero rows and columns.

        Returns
        -------
        pandas.DataFrame
            Stocks with origins as rows and destinations as columns.
        """
        if period not in set(self.data["period"]):
            raise InputError(f"Unknown period {period!r}. Available: {self.periods}")

        regions = list(self.regions if regions is None else regions)
        subset = self.data[self.data["period"] == period]
        wide = subset.pivot_table(
            index="origin", columns="destination", values="stock", aggfunc="sum", fill_value=0.0
        )
        wide = wide.reindex(index=regions, columns=regions, fill_value=0.0).astype(np.float64)
        wide.index.name = "origin"
        wide.columns.name = "destination"
        return wide

    def foreign_born(self, period: Hashable, regions: Optional[Sequence] = None) -> pd.Series:
        """Total foreign-born stock per destination (diagonal excluded)."""
        mat = self.matrix(period, regions)
        values = mat.to_numpy().copy()
        np.fill_diagonal(values, 0.0)
        return pd.Series(values.sum(axis=0), index=mat.columns, name="foreign_born")
