"""
Bilateral flow estimation from stock snapshots.

Methods:
- DENNETT: distribute a global flow volume M over origin-destination pairs
  in proportion to the origin shares of each destination's foreign-born
  stock at the start of the interval

      r[g, h] = s[g, h, t] / sum_{g' != h} s[g', h, t]
      M       = sum_h | T_h(t+1) - T_h(t) |,  T_h = foreign-born stock in h
      F[g, h] = M * r[g, h]

  F does not reproduce per-pair stock changes; it rescales the relative
  origin distribution by a single global volume.

- STOCK_DIFFERENCE: the positive part of each pair's stock change,
  F[g, h] = max(s[g, h, t+1] - s[g, h, t], 0).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Hashable, Optional, Sequence, Union

import numpy as np
import pandas as pd

from migspat.flows.stock import StockTable

logger = logging.getLogger(__name__)


class FlowMethod(Enum):
    """Flow estimation method."""

    DENNETT = "dennett"
    STOCK_DIFFERENCE = "stock-difference"


@dataclass(frozen=True, eq=False)
class FlowEstimate:
    """
    Estimated origin-destination flows for one interval.

    Attributes
    ----------
    flows : pandas.DataFrame
        Estimated flows, origins as rows and destinations as columns.
    total : float
        Scalar flow volume (M for the Dennett method).
    method : FlowMethod
        Method that produced the estimate.
    period_from, period_to : hashable
        Interval bounds.
    rates : pandas.DataFrame, optional
        Origin shares of destination foreign-born stock (Dennett only).
    """

    flows: pd.DataFrame
    total: float
    method: FlowMethod
    period_from: Hashable
    period_to: Hashable
    rates: Optional[pd.DataFrame] = None

    @property
    def regions(self) -> list:
        return list(self.flows.index)

    def get(self, origin: Hashable, destination: Hashable) -> float:
        """Estimated flow from ``origin`` to ``destination``."""
        return float(self.flows.loc[origin, destination])

    def inflow(self) -> pd.Series:
        """Total estimated inflow per destination."""
        return self.flows.sum(axis=0).rename("inflow")

    def outflow(self) -> pd.Series:
        """Total estimated outflow per origin."""
        return self.flows.sum(axis=1).rename("outflow")

    def to_long(self, include_diagonal: bool = False) -> pd.DataFrame:
        """Flows as a long table with ``origin``, ``destination``, ``flow``."""
        long = self.flows.rename_axis(index="origin", columns=None).reset_index().melt(
            id_vars="origin", var_name="destination", value_name="flow"
        )
        if not include_diagonal:
            long = long[long["origin"] != long["destination"]]
        return long.reset_index(drop=True)


def dennett_rates(stock_t: np.ndarray) -> np.ndarray:
    """
    Origin shares of each destination's foreign-born stock.

    Columns with no foreign-born stock get zero rates.
    """
    s = np.array(stock_t, dtype=np.float64)
    np.fill_diagonal(s, 0.0)
    denom = s.sum(axis=0)
    safe = np.where(denom > 0, denom, 1.0)
    return np.where(denom > 0, s / safe, 0.0)


def foreign_born_totals(stock: np.ndarray) -> np.ndarray:
    s = np.array(stock, dtype=np.float64)
    np.fill_diagonal(s, 0.0)
    return s.sum(axis=0)


def dennett_total(stock_t: np.ndarray, stock_t1: np.ndarray) -> float:
    """Global flow volume M: summed absolute change of foreign-born totals."""
    return float(np.sum(np.abs(foreign_born_totals(stock_t1) - foreign_born_totals(stock_t))))


def _dennett(stock_t: np.ndarray, stock_t1: np.ndarray):
    rates = dennett_rates(stock_t)
    total = dennett_total(stock_t, stock_t1)
    return total * rates, total, rates


def _stock_difference(stock_t: np.ndarray, stock_t1: np.ndarray):
    flows = np.maximum(np.asarray(stock_t1) - np.asarray(stock_t), 0.0)
    np.fill_diagonal(flows, 0.0)
    return flows, float(flows.sum()), None


_ESTIMATORS: dict[FlowMethod, Callable] = {
    FlowMethod.DENNETT: _dennett,
    FlowMethod.STOCK_DIFFERENCE: _stock_difference,
}


def estimate_flows(
    stocks: StockTable,
    period_from: Hashable,
    period_to: Hashable,
    method: Union[FlowMethod, str] = FlowMethod.DENNETT,
    regions: Optional[Sequence] = None,
) -> FlowEstimate:
    """
    Estimate bilateral flows between two stock snapshots.

    Parameters
    ----------
    stocks : StockTable
        Stock table containing both periods.
    period_from, period_to : hashable
        Start and end of the interval.
    method : FlowMethod or str, default=FlowMethod.DENNETT
        Estimation method.
    regions : sequence, optional
        Regions and order of the output. Default: all regions in the table.
        Rates and the total are always computed on the full table, so a
        subset selects pairs without changing denominators or the total.

    Returns
    -------
    FlowEstimate
        A new estimate; inputs are not modified.

    Examples
    --------
    >>> stocks = StockTable.from_mapping({("X", "Y", 0): 100, ("X", "Y", 1): 150})
    >>> est = estimate_flows(stocks, 0, 1)
    >>> est.total, est.get("X", "Y")
    (50.0, 50.0)
    """
    method = FlowMethod(method)
    table_regions = stocks.regions
    known = set(table_regions)
    regions = list(table_regions if regions is None else regions)
    universe = table_regions + [r for r in dict.fromkeys(regions) if r not in known]

    s_t = stocks.matrix(period_from, universe).to_numpy()
    s_t1 = stocks.matrix(period_to, universe).to_numpy()

    flows, total, rates = _ESTIMATORS[method](s_t, s_t1)

    position = {r: i for i, r in enumerate(universe)}
    pick = np.ix_([position[r] for r in regions], [position[r] for r in regions])
    flows = flows[pick]
    rates = None if rates is None else rates[pick]

    index = pd.Index(regions, name="origin")
    columns = pd.Index(regions, name="destination")
    logger.info(
        f"Estimated flows {period_from}->{period_to} ({method.value}): "
        f"{len(regions)} regions, total {total:,.0f}"
    )

    return FlowEstimate(
        flows=pd.DataFrame(flows, index=index, columns=columns),
        total=total,
        method=method,
        period_from=period_from,
        period_to=period_to,
        rates=None if rates is None else pd.DataFrame(rates, index=index, columns=columns),
    )
