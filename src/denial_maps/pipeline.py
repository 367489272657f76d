"""
End-to-end builders: loans -> per-county comparison -> counties with loan data.

Each step is a pure function of its inputs; running twice on the same files
gives identical tables.
"""

import logging
from pathlib import Path

import geopandas as gpd
import pandas as pd

from src.configs.sources_hmda import SOURCES_HMDA
from src.denial_maps.aggregator import CountyCounts, aggregate, aggregate_chunks
from src.denial_maps.joiner import (
    JoinDirection,
    compare_ethnicities,
    join_geometry,
    percent_denied_by_ethnicity,
)
from src.denial_maps.reader import Ethnicity, read_counties, read_loans, read_loans_chunked

logger = logging.getLogger(__name__)


def count_loans(loans_spec: dict | None = None, base_path: Path | None = None) -> dict[Ethnicity, CountyCounts]:
    """Read the loan table and count applications and denials per county."""
    spec = loans_spec or SOURCES_HMDA["loans"]
    if spec.get("chunksize"):
        return aggregate_chunks(read_loans_chunked(spec, base_path), spec)
    return aggregate(read_loans(spec, base_path))


def build_comparison(
    loans_spec: dict | None = None,
    base_path: Path | None = None,
    how: JoinDirection | str = JoinDirection.NOT_LATINO,
) -> tuple[pd.DataFrame, dict[Ethnicity, pd.DataFrame]]:
    """Loader -> Aggregator -> Joiner.

    Returns:
        (comparison, per_ethnicity): one row per county with both percentages and
        their difference, plus the per-ethnicity count/percent tables.
    """
    per_ethnicity = percent_denied_by_ethnicity(count_loans(loans_spec, base_path))
    comparison = compare_ethnicities(per_ethnicity, how=how)
    return comparison, per_ethnicity


def build_enriched(
    comparison: pd.DataFrame,
    counties_spec: dict | None = None,
    base_path: Path | None = None,
) -> gpd.GeoDataFrame:
    """GeoLoader -> GeoJoiner: county polygons with the comparison columns."""
    spec = counties_spec or SOURCES_HMDA["counties"]
    counties = read_counties(spec, base_path)
    return join_geometry(counties, comparison, width=spec.get("code_width", 5))


def write_tables(
    comparison: pd.DataFrame,
    per_ethnicity: dict[Ethnicity, pd.DataFrame],
    out_dir: Path,
) -> list[Path]:
    """Write per-ethnicity and comparison tables as CSV (county_code kept as string)."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    names = {
        Ethnicity.LATINO: "latino_per_county.csv",
        Ethnicity.NOT_LATINO: "not_latino_per_county.csv",
    }
    written = []
    for ethnicity, name in names.items():
        path = out_dir / name
        per_ethnicity[ethnicity].to_csv(path, index=False, float_format="%.6f")
        written.append(path)
    path = out_dir / "county_comparison.csv"
    comparison.to_csv(path, index=False, float_format="%.6f")
    written.append(path)
    for p in written:
        logger.info(f"Saved {p}")
    return written
