"""
Origin-destination dyad tables for gravity-type models.

Attributes of both ends of a pair are kept in two explicit column groups,
"origin" and "destination", instead of suffixed copies of each column:

    dyads["pair"]         origin, destination, flow[, distance_km]
    dyads["origin"]       attributes of the origin region
    dyads["destination"]  attributes of the destination region
"""

from typing import Optional

import numpy as np
import pandas as pd

from migspat.exceptions import InputError
from migspat.flows.estimators import FlowEstimate
from migspat.geometry.resolver import RegionSet
from migspat.neighbors.kdtree import DistanceMetric, pairwise_distance


def build_dyads(
    flows: FlowEstimate,
    attributes: Optional[pd.DataFrame] = None,
    regions: Optional[RegionSet] = None,
    distance: DistanceMetric = DistanceMetric.GREAT_CIRCLE,
    include_diagonal: bool = False,
) -> pd.DataFrame:
    """
    Build a dyad table from estimated flows and region attributes.

    Parameters
    ----------
    flows : FlowEstimate
        Estimated flows.
    attributes : pandas.DataFrame, optional
        Region attributes indexed by region id. Regions without a row get
        NaN attributes.
    regions : RegionSet, optional
        When given, adds centroid distance between origin and destination
        (km for great-circle). Pairs involving a region absent from the set
        get NaN distance.
    distance : DistanceMetric, default=DistanceMetric.GREAT_CIRCLE
        Metric for the centroid distance.
    include_diagonal : bool, default=False
        Whether to keep origin == destination rows.

    Returns
    -------
    pandas.DataFrame
        One row per pair with two-level columns.

    Examples
    --------
    >>> dyads = build_dyads(estimate, attributes=gdp_frame)
    >>> dyads["origin"]["gdp"]
    """
    long = flows.to_long(include_diagonal=include_diagonal)

    pair = long[["origin", "destination", "flow"]].copy()
    if regions is not None:
        position = {rid: i for i, rid in enumerate(regions.ids)}
        o_idx = pair["origin"].map(position)
        d_idx = pair["destination"].map(position)
        known = o_idx.notna() & d_idx.notna()
        dist = np.full(len(pair), np.nan)
        if known.any():
            o = regions.centroids[o_idx[known].astype(int).to_numpy()]
            d = regions.centroids[d_idx[known].astype(int).to_numpy()]
            dist[known.to_numpy()] = pairwise_distance(o, d, DistanceMetric(distance))
        name = "distance_km" if DistanceMetric(distance) is DistanceMetric.GREAT_CIRCLE else "distance"
        pair[name] = dist

    groups = {"pair": pair.reset_index(drop=True)}

    if attributes is not None:
        if not attributes.index.is_unique:
            raise InputError("Region attributes must have one row per region id.")
        groups["origin"] = attributes.reindex(pair["origin"]).reset_index(drop=True)
        groups["destination"] = attributes.reindex(pair["destination"]).reset_index(drop=True)

    return pd.concat(groups, axis=1)
