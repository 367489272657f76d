"""Denial maps: HMDA denial rates by county and ethnicity, joined onto county polygons."""

from src.denial_maps.errors import SchemaError, UnrecognizedCategory
from src.denial_maps.reader import Ethnicity, read_loans, read_counties
from src.denial_maps.aggregator import ActionTaken, aggregate, aggregate_chunks
from src.denial_maps.joiner import (
    JoinDirection,
    percent_denied,
    compare_ethnicities,
    normalize_county_code,
    join_geometry,
)
from src.denial_maps.pipeline import build_comparison, build_enriched, write_tables

__all__ = [
    "SchemaError",
    "UnrecognizedCategory",
    "Ethnicity",
    "read_loans",
    "read_counties",
    "ActionTaken",
    "aggregate",
    "aggregate_chunks",
    "JoinDirection",
    "percent_denied",
    "compare_ethnicities",
    "normalize_county_code",
    "join_geometry",
    "build_comparison",
    "build_enriched",
    "write_tables",
]
