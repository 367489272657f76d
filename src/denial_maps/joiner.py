"""
Joins: counts -> percent denied, Latino vs NotLatino comparison, and the
geometry-driven join onto county polygons.

None of these joins raise on unmatched keys; unmatched rows carry NaN.
"""

import logging
from enum import Enum

import geopandas as gpd
import numpy as np
import pandas as pd

from src.denial_maps.aggregator import CountyCounts
from src.denial_maps.reader import Ethnicity, normalize_county_code

logger = logging.getLogger(__name__)

PCT_COLUMNS = {
    Ethnicity.LATINO: "pct_denied_latino",
    Ethnicity.NOT_LATINO: "pct_denied_not_latino",
}


class JoinDirection(str, Enum):
    """Which side drives the Latino / NotLatino merge."""

    NOT_LATINO = "not_latino"
    LATINO = "latino"
    OUTER = "outer"


def percent_denied(all_counts: pd.DataFrame, denied_counts: pd.DataFrame) -> pd.DataFrame:
    """Left-join denied counts onto all counts and compute pct_denied.

    A county missing from denied_counts had zero denials. pct_denied is NaN
    when all_loans is 0.
    """
    out = all_counts.merge(denied_counts, on="county_code", how="left")
    out["denied_loans"] = out["denied_loans"].fillna(0).astype("int64")
    total = out["all_loans"].astype("float64")
    out["pct_denied"] = (out["denied_loans"] * 100 / total.replace(0, np.nan)).astype("float64")
    return out.sort_values("county_code").reset_index(drop=True)


def percent_denied_by_ethnicity(counts: dict[Ethnicity, CountyCounts]) -> dict[Ethnicity, pd.DataFrame]:
    return {e: percent_denied(c.all_loans, c.denied_loans) for e, c in counts.items()}


def compare_ethnicities(
    per_ethnicity: dict[Ethnicity, pd.DataFrame],
    how: JoinDirection | str = JoinDirection.NOT_LATINO,
) -> pd.DataFrame:
    """Merge Latino and NotLatino percent denied into one row per county.

    Args:
        per_ethnicity: Output of percent_denied_by_ethnicity.
        how: NOT_LATINO keeps every county with NotLatino data (Latino-only
            counties are dropped); LATINO is the mirror; OUTER keeps both.

    Returns:
        DataFrame[county_code, pct_denied_latino, pct_denied_not_latino, pct_diff],
        pct_diff = latino - not_latino in percentage points, NaN if either is NaN.
    """
    how = JoinDirection(how)
    latino = per_ethnicity[Ethnicity.LATINO][["county_code", "pct_denied"]].rename(
        columns={"pct_denied": PCT_COLUMNS[Ethnicity.LATINO]}
    )
    not_latino = per_ethnicity[Ethnicity.NOT_LATINO][["county_code", "pct_denied"]].rename(
        columns={"pct_denied": PCT_COLUMNS[Ethnicity.NOT_LATINO]}
    )

    if how == JoinDirection.NOT_LATINO:
        out = not_latino.merge(latino, on="county_code", how="left")
        dropped = set(latino["county_code"]) - set(not_latino["county_code"])
        if dropped:
            logger.warning(f"{len(dropped)} counties with only Latino data dropped by join direction")
    elif how == JoinDirection.LATINO:
        out = latino.merge(not_latino, on="county_code", how="left")
        dropped = set(not_latino["county_code"]) - set(latino["county_code"])
        if dropped:
            logger.warning(f"{len(dropped)} counties with only NotLatino data dropped by join direction")
    else:
        out = not_latino.merge(latino, on="county_code", how="outer")

    out = out[["county_code", PCT_COLUMNS[Ethnicity.LATINO], PCT_COLUMNS[Ethnicity.NOT_LATINO]]].copy()
    out["pct_diff"] = out[PCT_COLUMNS[Ethnicity.LATINO]] - out[PCT_COLUMNS[Ethnicity.NOT_LATINO]]
    logger.info(f"Comparison ({how.value}): {len(out)} counties")
    return out.sort_values("county_code").reset_index(drop=True)


def summarize(comparison: pd.DataFrame) -> pd.DataFrame:
    """describe() over the three percent columns."""
    return comparison[list(PCT_COLUMNS.values()) + ["pct_diff"]].describe()


def join_geometry(
    counties: gpd.GeoDataFrame,
    comparison: pd.DataFrame,
    width: int = 5,
) -> gpd.GeoDataFrame:
    """Left-join the comparison table onto county polygons by county_code.

    Every polygon is kept; polygons without loan data have NaN metrics.
    """
    geo = counties.copy()
    geo["county_code"] = normalize_county_code(geo["county_code"], width)
    data = comparison.copy()
    data["county_code"] = normalize_county_code(data["county_code"], width)

    unmatched = set(data["county_code"].dropna()) - set(geo["county_code"].dropna())
    if unmatched:
        logger.warning(f"{len(unmatched)} loan counties have no polygon, e.g. {sorted(unmatched)[:5]}")

    out = geo.merge(data, on="county_code", how="left")
    n_missing = int(out[PCT_COLUMNS[Ethnicity.NOT_LATINO]].isna().sum())
    logger.info(f"Joined geometry: {len(out)} polygons, {n_missing} without NotLatino data")
    return gpd.GeoDataFrame(out, geometry=counties.geometry.name, crs=counties.crs)
