"""Bilateral migration flow estimation from stock tables."""

from migspat.flows.estimators import (
    FlowEstimate,
    FlowMethod,
    dennett_rates,
    dennett_total,
    estimate_flows,
)
from migspat.flows.stock import StockTable

__all__ = [
    "FlowEstimate",
    "FlowMethod",
    "StockTable",
    "dennett_rates",
    "dennett_total",
    "estimate_flows",
]
