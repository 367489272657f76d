"""
Loaders for the HMDA loan table and the county boundary table.

Loans are read with the dtypes declared in SOURCES_HMDA, projected onto
county_code / ethnicity / action_taken by name, stripped of incomplete rows and
recoded into the two ethnicity categories. Counties are read with geopandas and
keyed by county_code.
"""

import codecs
import logging
from enum import Enum
from pathlib import Path
from typing import Iterator

import geopandas as gpd
import pandas as pd

from src.denial_maps.errors import SchemaError, UnrecognizedCategory

logger = logging.getLogger(__name__)

PROJECTED_COLUMNS = ["county_code", "ethnicity", "action_taken"]


class Ethnicity(str, Enum):
    LATINO = "Latino"
    NOT_LATINO = "NotLatino"


def _resolve_path(path_str: str, base_path: Path | None) -> Path:
    p = Path(path_str)
    if not p.is_absolute() and base_path is not None:
        return base_path / p
    return p


def _existing_path(spec: dict, base_path: Path | None) -> Path:
    path = _resolve_path(spec["path"], base_path)
    if not path.exists():
        raise FileNotFoundError(f"Data not found: {path}")
    return path


def _parse_read_dtypes(read_dtypes: dict) -> dict:
    """Convert schema dtype names to types usable by read_csv/read_excel."""
    type_map = {"string": str, "str": str, "float64": float, "float": float, "int64": int, "int": int}
    return {col: type_map.get(dtype, dtype) for col, dtype in read_dtypes.items()}


def _sniff_encoding(path: Path, block_size: int = 1 << 20) -> str:
    """First of utf-8, cp1252 that decodes the whole file; latin-1 otherwise.

    Streams the file in blocks so it works for inputs too large to read at once.
    """
    for enc in ("utf-8", "cp1252"):
        decoder = codecs.getincrementaldecoder(enc)()
        try:
            with open(path, "rb") as f:
                while block := f.read(block_size):
                    decoder.decode(block)
                decoder.decode(b"", final=True)
            return enc
        except UnicodeDecodeError:
            continue
    return "latin-1"


def _read_csv(path: Path, dtype: dict | None = None) -> pd.DataFrame:
    """Read CSV with encoding fallback (utf-8, cp1252, then latin-1 which never fails)."""
    for enc in ("utf-8", "cp1252"):
        try:
            return pd.read_csv(path, encoding=enc, dtype=dtype, low_memory=False)
        except UnicodeDecodeError:
            continue
    return pd.read_csv(path, encoding="latin-1", dtype=dtype, low_memory=False)


def _read_file(path: Path, spec: dict) -> pd.DataFrame:
    fmt = spec.get("format", "csv").lower()
    dtype = _parse_read_dtypes(spec["read_dtypes"]) if spec.get("read_dtypes") else None
    if fmt == "csv":
        return _read_csv(path, dtype=dtype)
    if fmt == "xlsx":
        read_kw: dict = {"engine": "openpyxl", "dtype": dtype}
        if "sheet" in spec:
            read_kw["sheet_name"] = spec["sheet"]
        return pd.read_excel(path, **read_kw)
    raise ValueError(f"Unsupported format: {fmt}")


def _require_columns(df: pd.DataFrame, columns: list[str], table: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise SchemaError(table, missing)


def normalize_county_code(codes: pd.Series, width: int = 5) -> pd.Series:
    """Left-pad county codes with zeros to ``width``; missing stays missing.

    Also strips whitespace and a trailing '.0' left by a float round-trip.
    """
    s = codes.astype("string").str.strip().str.replace(r"\.0$", "", regex=True)
    return s.str.zfill(width)


def project(
    df: pd.DataFrame,
    keys: dict,
    value_columns: dict,
    table: str = "loans",
    code_width: int = 5,
) -> pd.DataFrame:
    """Select county_code / ethnicity / action_taken by name and drop incomplete rows.

    Args:
        df: Raw loan table.
        keys: {canonical_name: raw_name} for the join key.
        value_columns: {canonical_name: raw_name} for the other kept columns.
        table: Table name used in error messages.
        code_width: county_code is zero-padded to this width.

    Returns:
        DataFrame with exactly PROJECTED_COLUMNS. The number of rows dropped for
        missing values is stored in ``out.attrs["dropped_rows"]``.

    Raises:
        SchemaError: if a configured column is absent.
        UnrecognizedCategory: if action_taken holds a non-integer value.
    """
    columns = {**keys, **value_columns}
    _require_columns(df, list(columns.values()), table)
    absent = [c for c in PROJECTED_COLUMNS if c not in columns]
    if absent:
        raise SchemaError(table, absent)

    out = df[[columns[c] for c in PROJECTED_COLUMNS]].copy()
    out.columns = PROJECTED_COLUMNS
    n_before = len(out)
    out = out.dropna(subset=PROJECTED_COLUMNS).reset_index(drop=True)
    dropped = n_before - len(out)
    logger.info(f"{table}: dropped {dropped} of {n_before} rows with missing values")

    actions = pd.to_numeric(out["action_taken"], errors="coerce")
    bad = actions.isna() | (actions % 1 != 0)
    if bad.any():
        raise UnrecognizedCategory("action_taken", set(out.loc[bad, "action_taken"]))

    out["county_code"] = normalize_county_code(out["county_code"], code_width).astype(str)
    out["action_taken"] = actions.astype("int64")
    out.attrs["dropped_rows"] = dropped
    return out


def recode_ethnicity(df: pd.DataFrame, mapping: dict) -> pd.DataFrame:
    """Map raw ethnicity labels onto Latino / NotLatino.

    Raises:
        UnrecognizedCategory: if any label is outside ``mapping``.
    """
    unknown = set(df.loc[~df["ethnicity"].isin(list(mapping)), "ethnicity"].unique())
    if unknown:
        raise UnrecognizedCategory("ethnicity", unknown)
    allowed = {e.value for e in Ethnicity}
    bad_targets = set(mapping.values()) - allowed
    if bad_targets:
        raise UnrecognizedCategory("ethnicity", bad_targets)

    out = df.copy()
    out["ethnicity"] = out["ethnicity"].map(mapping).astype(str)
    return out


def prepare_loans(df: pd.DataFrame, spec: dict) -> pd.DataFrame:
    """Project and recode a raw loan table (or chunk) according to ``spec``."""
    projected = project(
        df, spec.get("keys", {}), spec.get("value_columns", {}), code_width=spec.get("code_width", 5)
    )
    return recode_ethnicity(projected, spec["recode"]["ethnicity"])


def read_loans(spec: dict, base_path: Path | None = None) -> pd.DataFrame:
    """Load the loan table and return projected, recoded rows."""
    path = _existing_path(spec, base_path)
    df = _read_file(path, spec)
    logger.info(f"Read loans: {len(df)} rows from {path.name}")
    return prepare_loans(df, spec)


def read_loans_chunked(spec: dict, base_path: Path | None = None) -> Iterator[pd.DataFrame]:
    """Yield raw loan chunks of ``spec['chunksize']`` rows (CSV only)."""
    path = _existing_path(spec, base_path)
    fmt = spec.get("format", "csv").lower()
    if fmt != "csv":
        raise ValueError(f"Chunked reading needs csv, got: {fmt}")
    dtype = _parse_read_dtypes(spec["read_dtypes"]) if spec.get("read_dtypes") else None
    logger.info(f"Reading loans from {path.name} in chunks of {spec['chunksize']} rows")
    encoding = _sniff_encoding(path)
    with pd.read_csv(path, encoding=encoding, dtype=dtype, chunksize=spec["chunksize"]) as reader:
        yield from reader


def read_counties(spec: dict, base_path: Path | None = None) -> gpd.GeoDataFrame:
    """Load county polygons, renaming the configured key column to county_code."""
    path = _existing_path(spec, base_path)
    gdf = gpd.read_file(path)
    logger.info(f"Read counties: {len(gdf)} rows from {path.name}")

    key_col = spec["keys"]["county_code"]
    region_col = spec.get("region_column", "REGION")
    _require_columns(gdf, [key_col, region_col], "counties")
    gdf = gdf.rename(columns={key_col: "county_code"})
    return gdf
