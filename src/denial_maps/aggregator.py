"""
Per-county application and denial counts, split by ethnicity.

Counties with no rows for an ethnicity are absent from that ethnicity's counts
(absence, not zero); likewise a county with applications but no denials is
absent from the denied counts. Counting is additive over row batches, so
aggregate_chunks gives the same result as aggregate on the concatenated table.
"""

import logging
from enum import IntEnum
from typing import Iterable, NamedTuple

import pandas as pd

from src.denial_maps.reader import Ethnicity, prepare_loans

logger = logging.getLogger(__name__)


class ActionTaken(IntEnum):
    """HMDA action_taken codes."""

    LOAN_ORIGINATED = 1
    APPROVED_NOT_ACCEPTED = 2
    APPLICATION_DENIED = 3
    APPLICATION_WITHDRAWN = 4
    FILE_CLOSED_INCOMPLETE = 5
    PURCHASED_LOAN = 6
    PREAPPROVAL_DENIED = 7
    PREAPPROVAL_APPROVED_NOT_ACCEPTED = 8


DENIED_ACTIONS = frozenset({ActionTaken.APPLICATION_DENIED, ActionTaken.PREAPPROVAL_DENIED})


class CountyCounts(NamedTuple):
    all_loans: pd.DataFrame  # [county_code, all_loans]
    denied_loans: pd.DataFrame  # [county_code, denied_loans]


def is_denied(actions: pd.Series) -> pd.Series:
    return actions.isin([int(a) for a in DENIED_ACTIONS])


def partition_by_ethnicity(df: pd.DataFrame) -> dict[Ethnicity, pd.DataFrame]:
    """Split loans into one disjoint subset per ethnicity."""
    parts = {e: df[df["ethnicity"] == e.value] for e in Ethnicity}
    for e, part in parts.items():
        logger.info(f"{e.value}: {len(part)} applications")
    return parts


def count_per_county(df: pd.DataFrame, name: str) -> pd.DataFrame:
    """Count rows per county_code; returns columns [county_code, name]."""
    return (
        df.groupby("county_code", sort=True)
        .size()
        .astype("int64")
        .rename(name)
        .reset_index()
    )


def count_counties(df: pd.DataFrame) -> int:
    """Number of distinct counties with at least one application."""
    return int(df["county_code"].nunique())


def aggregate(df: pd.DataFrame) -> dict[Ethnicity, CountyCounts]:
    """All and denied application counts per county, per ethnicity.

    Args:
        df: Projected, recoded loans (county_code, ethnicity, action_taken).

    Returns:
        {Ethnicity: CountyCounts}, each table sorted by county_code.
    """
    logger.info(f"Loan data covers {count_counties(df)} counties")
    out = {}
    for ethnicity, part in partition_by_ethnicity(df).items():
        all_counts = count_per_county(part, "all_loans")
        denied_counts = count_per_county(part[is_denied(part["action_taken"])], "denied_loans")
        logger.info(
            f"{ethnicity.value}: {len(all_counts)} counties with applications, "
            f"{len(denied_counts)} with denials"
        )
        out[ethnicity] = CountyCounts(all_counts, denied_counts)
    return out


def _empty_counts(name: str) -> pd.DataFrame:
    return pd.DataFrame({"county_code": pd.Series(dtype=object), name: pd.Series(dtype="int64")})


def _to_counts(counter: pd.Series | None, name: str) -> pd.DataFrame:
    if counter is None:
        return _empty_counts(name)
    counter = counter[counter > 0].astype("int64").sort_index()
    out = counter.rename(name).reset_index()
    out.columns = ["county_code", name]
    return out


def aggregate_chunks(chunks: Iterable[pd.DataFrame], spec: dict) -> dict[Ethnicity, CountyCounts]:
    """Aggregate raw loan chunks incrementally without holding all rows.

    Each chunk is projected and recoded with ``spec`` before counting, so an
    unrecognized ethnicity in any chunk aborts the run.
    """
    all_totals: dict[Ethnicity, pd.Series] = {}
    denied_totals: dict[Ethnicity, pd.Series] = {}
    n_rows = 0
    n_dropped = 0
    for chunk in chunks:
        loans = prepare_loans(chunk, spec)
        n_rows += len(loans)
        n_dropped += loans.attrs.get("dropped_rows", 0)
        denied = is_denied(loans["action_taken"])
        for ethnicity in Ethnicity:
            mask = loans["ethnicity"] == ethnicity.value
            all_part = loans.loc[mask].groupby("county_code").size()
            denied_part = loans.loc[mask & denied].groupby("county_code").size()
            for totals, part in ((all_totals, all_part), (denied_totals, denied_part)):
                prev = totals.get(ethnicity)
                totals[ethnicity] = part if prev is None else prev.add(part, fill_value=0)
    logger.info(f"Aggregated {n_rows} rows in chunks ({n_dropped} dropped with missing values)")

    return {
        e: CountyCounts(
            _to_counts(all_totals.get(e), "all_loans"),
            _to_counts(denied_totals.get(e), "denied_loans"),
        )
        for e in Ethnicity
    }
