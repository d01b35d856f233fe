"""Tests for region geometry resolution."""

import logging

import numpy as np
import pandas as pd
import pytest
from shapely.geometry import LineString, Polygon, box

from migspat.exceptions import GeometryError, InputError
from migspat.geometry.resolver import align_values, repair_geometry, resolve_regions


class TestRepairGeometry:
    """Tests for repair_geometry."""

    def test_valid_polygon_unchanged(self):
        geom = box(0, 0, 1, 1)
        assert repair_geometry(geom).equals(geom)

    def test_bowtie_repaired(self):
        """Self-intersecting polygon becomes a valid polygonal geometry."""
        bowtie = Polygon([(0, 0), (2, 2), (2, 0), (0, 2)])
        assert not bowtie.is_valid

        repaired = repair_geometry(bowtie)
        assert repaired.is_valid
        assert not repaired.is_empty
        assert repaired.geom_type in ("Polygon", "MultiPolygon")
        assert np.isclose(repaired.area, 2.0)

    def test_line_has_no_polygonal_part(self):
        assert repair_geometry(LineString([(0, 0), (1, 1)])).is_empty

    def test_none_is_empty(self):
        assert repair_geometry(None).is_empty

    def test_wkt_input(self):
        geom = repair_geometry("POLYGON ((0 0, 1 0, 1 1, 0 1, 0 0))")
        assert np.isclose(geom.area, 1.0)

    def test_bad_wkt_raises(self):
        with pytest.raises(GeometryError, match="Cannot parse"):
            repair_geometry("POLYGON ((not a polygon")

    def test_unsupported_type_raises(self):
        with pytest.raises(GeometryError, match="Unsupported"):
            repair_geometry(42)


class TestResolveRegions:
    """Tests for resolve_regions."""

    def test_centroids(self, line_regions):
        assert line_regions.ids == ("A", "B", "C")
        assert np.allclose(line_regions.centroids, [[0.5, 0.5], [1.5, 0.5], [2.5, 0.5]])
        assert line_regions.excluded == {}

    def test_parts_merged_in_first_appearance_order(self):
        regions = resolve_regions(
            ["A", "B", "A"],
            [box(0, 0, 1, 1), box(5, 5, 6, 6), box(2, 0, 3, 1)],
        )
        assert regions.ids == ("A", "B")
        assert regions.geometries[0].geom_type == "MultiPolygon"
        assert np.allclose(regions.centroids[0], [1.5, 0.5])

    def test_empty_region_excluded(self, caplog):
        with caplog.at_level(logging.WARNING, logger="migspat.geometry.resolver"):
            regions = resolve_regions(
                ["A", "X", "B"],
                [box(0, 0, 1, 1), Polygon(), box(1, 0, 2, 1)],
            )

        assert regions.ids == ("A", "B")
        assert "X" in regions.excluded
        assert len(regions) == 2
        assert regions.centroids.shape == (2, 2)
        assert "Excluding region 'X'" in caplog.text

    def test_non_polygonal_region_excluded(self):
        regions = resolve_regions(["A", "L"], [box(0, 0, 1, 1), LineString([(0, 0), (1, 1)])])
        assert regions.ids == ("A",)
        assert "L" in regions.excluded

    def test_unparsable_region_excluded(self, caplog):
        with caplog.at_level(logging.WARNING, logger="migspat.geometry.resolver"):
            regions = resolve_regions(
                ["A", "B", "C"],
                [box(0, 0, 1, 1), "POLYGON ((0 0, 1", box(1, 0, 2, 1)],
            )

        assert regions.ids == ("A", "C")
        assert list(regions.excluded) == ["B"]
        assert "unresolvable" in regions.excluded["B"]
        assert "Excluding region 'B'" in caplog.text

    def test_unsupported_part_excludes_whole_region(self):
        regions = resolve_regions(["A", "B", "B"], [box(0, 0, 1, 1), box(1, 0, 2, 1), 42])
        assert regions.ids == ("A",)
        assert "B" in regions.excluded

    def test_length_mismatch(self):
        with pytest.raises(InputError):
            resolve_regions(["A", "B"], [box(0, 0, 1, 1)])

    def test_index_of(self, line_regions):
        assert line_regions.index_of("C") == 2
        with pytest.raises(KeyError):
            line_regions.index_of("Z")


class TestAlignValues:
    """Tests for aligning attributes onto region order."""

    def test_dict_missing_is_nan(self):
        out = align_values(("A", "B", "C"), {"C": 3.0, "A": 1.0})
        assert out[0] == 1.0
        assert np.isnan(out[1])
        assert out[2] == 3.0

    def test_series_reindexed(self, line_regions):
        s = pd.Series({"C": 3.0, "B": 2.0, "A": 1.0})
        assert np.allclose(line_regions.align(s), [1.0, 2.0, 3.0])

    def test_array_length_checked(self):
        with pytest.raises(InputError, match="2 values for 3 regions"):
            align_values(("A", "B", "C"), [1.0, 2.0])
