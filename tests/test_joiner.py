"""Tests for src.denial_maps.joiner."""

import sys
from pathlib import Path

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from src.denial_maps.joiner import (
    JoinDirection,
    compare_ethnicities,
    join_geometry,
    normalize_county_code,
    percent_denied,
    summarize,
)
from src.denial_maps.reader import Ethnicity


def _pct(codes, pcts) -> pd.DataFrame:
    return pd.DataFrame({"county_code": codes, "pct_denied": pcts})


def _per_ethnicity() -> dict:
    return {
        Ethnicity.LATINO: _pct(["06001", "06003", "99999"], [50.0, 20.0, 10.0]),
        Ethnicity.NOT_LATINO: _pct(["06001", "06003", "36061"], [0.0, 10.0, 5.0]),
    }


# --- percent_denied ---


def test_percent_denied_basic():
    all_counts = pd.DataFrame({"county_code": ["06001"], "all_loans": [4]})
    denied = pd.DataFrame({"county_code": ["06001"], "denied_loans": [1]})
    out = percent_denied(all_counts, denied)
    assert out["pct_denied"].tolist() == [25.0]


def test_percent_denied_missing_denials_are_zero():
    all_counts = pd.DataFrame({"county_code": ["06001", "06003"], "all_loans": [2, 3]})
    denied = pd.DataFrame({"county_code": ["06001"], "denied_loans": [1]})
    out = percent_denied(all_counts, denied)
    assert out["county_code"].tolist() == ["06001", "06003"]
    assert out["denied_loans"].tolist() == [1, 0]
    assert out["pct_denied"].tolist() == [50.0, 0.0]


def test_percent_denied_keeps_every_left_county():
    all_counts = pd.DataFrame({"county_code": ["a", "b", "c"], "all_loans": [1, 1, 1]})
    denied = pd.DataFrame({"county_code": ["b", "z"], "denied_loans": [1, 5]})
    out = percent_denied(all_counts, denied)
    assert set(out["county_code"]) == {"a", "b", "c"}


def test_percent_denied_zero_total_is_nan():
    all_counts = pd.DataFrame({"county_code": ["06001"], "all_loans": [0]})
    denied = pd.DataFrame({"county_code": pd.Series(dtype=object), "denied_loans": pd.Series(dtype="int64")})
    out = percent_denied(all_counts, denied)
    assert np.isnan(out["pct_denied"].iloc[0])


# --- compare_ethnicities ---


def test_compare_not_latino_drives():
    out = compare_ethnicities(_per_ethnicity())
    assert out["county_code"].tolist() == ["06001", "06003", "36061"]
    row = out.set_index("county_code").loc["36061"]
    assert np.isnan(row["pct_denied_latino"])
    assert row["pct_denied_not_latino"] == 5.0


def test_compare_latino_drives():
    out = compare_ethnicities(_per_ethnicity(), how=JoinDirection.LATINO)
    assert out["county_code"].tolist() == ["06001", "06003", "99999"]


def test_compare_outer_keeps_both():
    out = compare_ethnicities(_per_ethnicity(), how="outer")
    assert out["county_code"].tolist() == ["06001", "06003", "36061", "99999"]


def test_compare_unknown_direction_raises():
    with pytest.raises(ValueError):
        compare_ethnicities(_per_ethnicity(), how="inner")


def test_compare_pct_diff():
    out = compare_ethnicities(_per_ethnicity(), how="outer").set_index("county_code")
    assert out.loc["06001", "pct_diff"] == 50.0
    assert out.loc["06003", "pct_diff"] == 10.0


def test_compare_pct_diff_null_iff_operand_null():
    out = compare_ethnicities(_per_ethnicity(), how="outer")
    operand_null = out["pct_denied_latino"].isna() | out["pct_denied_not_latino"].isna()
    assert out["pct_diff"].isna().tolist() == operand_null.tolist()
    assert operand_null.sum() == 2


# --- summarize ---


def test_summarize_columns():
    out = summarize(compare_ethnicities(_per_ethnicity()))
    assert list(out.columns) == ["pct_denied_latino", "pct_denied_not_latino", "pct_diff"]
    assert out.loc["count", "pct_denied_not_latino"] == 3


# --- normalize_county_code ---


def test_normalize_county_code_pads():
    out = normalize_county_code(pd.Series(["123", "4567"]), width=5)
    assert out.tolist() == ["00123", "04567"]


def test_normalize_county_code_float_artifact_and_whitespace():
    out = normalize_county_code(pd.Series(["6001.0", " 6001 ", "06001"]))
    assert out.tolist() == ["06001", "06001", "06001"]


def test_normalize_county_code_keeps_missing():
    out = normalize_county_code(pd.Series(["6001", None]))
    assert out.iloc[0] == "06001"
    assert pd.isna(out.iloc[1])


def test_normalize_county_code_idempotent():
    once = normalize_county_code(pd.Series(["123", "4567"]))
    assert normalize_county_code(once).tolist() == once.tolist()


# --- join_geometry ---


def _counties() -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        {"county_code": ["06001", "06003", "02013"], "REGION": ["CA", "CA", "AK"]},
        geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1), box(2, 0, 3, 1)],
        crs="EPSG:4326",
    )


def test_join_geometry_pads_and_keeps_every_polygon():
    comparison = pd.DataFrame({
        "county_code": ["6001", "36061"],
        "pct_denied_latino": [50.0, 10.0],
        "pct_denied_not_latino": [0.0, 5.0],
        "pct_diff": [50.0, 5.0],
    })
    out = join_geometry(_counties(), comparison)
    assert isinstance(out, gpd.GeoDataFrame)
    assert out.crs == _counties().crs
    assert out["county_code"].tolist() == ["06001", "06003", "02013"]
    by_code = out.set_index("county_code")
    assert by_code.loc["06001", "pct_denied_latino"] == 50.0
    assert np.isnan(by_code.loc["06003", "pct_denied_latino"])
    assert np.isnan(by_code.loc["02013", "pct_diff"])
