"""Tests for stock tables and bilateral flow estimation."""

import numpy as np
import pandas as pd
import pytest

from migspat.exceptions import InputError
from migspat.flows.estimators import (
    FlowMethod,
    dennett_rates,
    dennett_total,
    estimate_flows,
)
from migspat.flows.stock import StockTable


@pytest.fixture
def three_country_stocks():
    return StockTable.from_mapping(
        {
            ("MEX", "USA", 2010): 120.0,
            ("CAN", "USA", 2010): 30.0,
            ("USA", "CAN", 2010): 40.0,
            ("MEX", "CAN", 2010): 10.0,
            ("USA", "USA", 2010): 9000.0,
            ("MEX", "USA", 2020): 130.0,
            ("CAN", "USA", 2020): 35.0,
            ("USA", "CAN", 2020): 45.0,
            ("MEX", "CAN", 2020): 20.0,
            ("USA", "USA", 2020): 9900.0,
        }
    )


class TestStockTable:
    """Tests for StockTable."""

    def test_matrix_absent_pairs_zero(self, three_country_stocks):
        mat = three_country_stocks.matrix(2010)

        assert mat.loc["MEX", "USA"] == 120.0
        assert mat.loc["CAN", "MEX"] == 0.0
        assert mat.index.name == "origin"
        assert mat.columns.name == "destination"

    def test_periods_and_regions(self, three_country_stocks):
        assert three_country_stocks.periods == [2010, 2020]
        assert three_country_stocks.regions == ["MEX", "CAN", "USA"]

    def test_matrix_custom_order(self, three_country_stocks):
        mat = three_country_stocks.matrix(2010, regions=["USA", "MEX", "CAN", "BRA"])

        assert list(mat.index) == ["USA", "MEX", "CAN", "BRA"]
        assert mat.loc["BRA"].sum() == 0.0

    def test_foreign_born_excludes_diagonal(self, three_country_stocks):
        fb = three_country_stocks.foreign_born(2010)
        assert fb["USA"] == 150.0
        assert fb["CAN"] == 50.0

    def test_from_frame_sums_duplicates(self):
        df = pd.DataFrame(
            {
                "orig": ["A", "A", "B"],
                "dest": ["B", "B", "A"],
                "year": [2000, 2000, 2000],
                "migrants": [5.0, 7.0, 1.0],
            }
        )
        table = StockTable.from_frame(df, origin="orig", destination="dest", period="year", stock="migrants")

        assert table.matrix(2000).loc["A", "B"] == 12.0
        assert len(table.data) == 2

    def test_missing_column(self):
        with pytest.raises(InputError, match="not found"):
            StockTable.from_frame(pd.DataFrame({"origin": ["A"]}))

    def test_negative_stock(self):
        with pytest.raises(InputError, match="Negative"):
            StockTable.from_mapping({("A", "B", 0): -1.0})

    def test_non_finite_stock(self):
        with pytest.raises(InputError, match="Non-finite"):
            StockTable.from_mapping({("A", "B", 0): np.nan})

    def test_unknown_period(self, three_country_stocks):
        with pytest.raises(InputError, match="Unknown period"):
            three_country_stocks.matrix(1990)


class TestDennett:
    """Tests for the Dennett estimator."""

    def test_single_pair_scenario(self):
        """X->Y stock grows from 100 to 150: M = 50, r = 1, F = 50."""
        stocks = StockTable.from_mapping({("X", "Y", 0): 100.0, ("X", "Y", 1): 150.0})
        est = estimate_flows(stocks, 0, 1)

        assert est.total == 50.0
        assert est.rates.loc["X", "Y"] == 1.0
        assert est.get("X", "Y") == 50.0
        assert est.get("Y", "X") == 0.0
        assert est.method is FlowMethod.DENNETT

    def test_unchanged_stock_no_flows(self, three_country_stocks):
        data = three_country_stocks.data.copy()
        data.loc[data["period"] == 2020, "stock"] = data.loc[data["period"] == 2010, "stock"].to_numpy()
        est = estimate_flows(StockTable(data), 2010, 2020)

        assert est.total == 0.0
        assert (est.flows.to_numpy() == 0.0).all()

    def test_rates_sum_to_one(self, three_country_stocks):
        est = estimate_flows(three_country_stocks, 2010, 2020)
        col_sums = est.rates.sum(axis=0)

        assert col_sums["USA"] == pytest.approx(1.0)
        assert col_sums["CAN"] == pytest.approx(1.0)
        # MEX receives nobody
        assert col_sums["MEX"] == 0.0

    def test_native_stock_ignored(self, three_country_stocks):
        """Diagonal stock changes (900 here) do not enter M."""
        est = estimate_flows(three_country_stocks, 2010, 2020)

        # Foreign-born: USA 150 -> 165, CAN 50 -> 65
        assert est.total == pytest.approx(30.0)
        assert np.allclose(np.diag(est.flows.to_numpy()), 0.0)

    def test_flows_proportional_to_rates(self, three_country_stocks):
        est = estimate_flows(three_country_stocks, 2010, 2020)

        assert est.get("MEX", "USA") == pytest.approx(30.0 * 120.0 / 150.0)
        assert est.get("MEX", "CAN") == pytest.approx(30.0 * 10.0 / 50.0)
        assert est.flows.to_numpy().sum() == pytest.approx(2 * 30.0)

    def test_zero_denominator(self):
        rates = dennett_rates(np.array([[5.0, 0.0], [0.0, 7.0]]))
        assert np.array_equal(rates, np.zeros((2, 2)))

    def test_total_absolute_changes(self):
        s_t = np.array([[0.0, 10.0], [10.0, 0.0]])
        s_t1 = np.array([[0.0, 4.0], [13.0, 0.0]])
        assert dennett_total(s_t, s_t1) == 9.0

    def test_inputs_not_modified(self, three_country_stocks):
        before = three_country_stocks.data.copy()
        estimate_flows(three_country_stocks, 2010, 2020)
        pd.testing.assert_frame_equal(three_country_stocks.data, before)


class TestFlowEstimate:
    """Tests for FlowEstimate accessors and other methods."""

    def test_stock_difference(self, three_country_stocks):
        est = estimate_flows(three_country_stocks, 2010, 2020, method="stock-difference")

        assert est.method is FlowMethod.STOCK_DIFFERENCE
        assert est.get("MEX", "CAN") == 10.0
        assert est.get("USA", "USA") == 0.0
        assert est.rates is None
        assert est.total == pytest.approx(10 + 5 + 5 + 10)

    def test_unknown_method(self, three_country_stocks):
        with pytest.raises(ValueError):
            estimate_flows(three_country_stocks, 2010, 2020, method="gravity")

    def test_to_long(self, three_country_stocks):
        est = estimate_flows(three_country_stocks, 2010, 2020)
        long = est.to_long()

        assert list(long.columns) == ["origin", "destination", "flow"]
        assert len(long) == 6
        assert (long["origin"] != long["destination"]).all()
        assert len(est.to_long(include_diagonal=True)) == 9

    def test_inflow_outflow(self, three_country_stocks):
        est = estimate_flows(three_country_stocks, 2010, 2020)

        assert est.inflow().sum() == pytest.approx(est.outflow().sum())
        assert est.inflow()["MEX"] == 0.0

    def test_region_order(self, three_country_stocks):
        est = estimate_flows(three_country_stocks, 2010, 2020, regions=["USA", "CAN", "MEX"])
        assert est.regions == ["USA", "CAN", "MEX"]

    def test_region_subset_keeps_full_denominators(self, three_country_stocks):
        """CAN still counts in USA's foreign-born total and in M."""
        est = estimate_flows(three_country_stocks, 2010, 2020, regions=["USA", "MEX", "BRA"])

        assert est.regions == ["USA", "MEX", "BRA"]
        assert est.total == pytest.approx(30.0)
        assert est.rates.loc["MEX", "USA"] == pytest.approx(120.0 / 150.0)
        assert est.get("MEX", "USA") == pytest.approx(24.0)
        assert est.flows.loc["BRA"].sum() == 0.0
