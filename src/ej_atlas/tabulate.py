"""
Tables derived from the tract estimates and the site records.

Majority tally
--------------
For each tract the race/ethnicity variable(s) with the largest estimate win.
Ties are resolved by the ``ties`` policy:

    "all"    every tied variable wins; the tract is counted once under each
    "first"  only the first tied variable in category order wins

NaN estimates are ignored. A tract whose largest estimate is 0 (or which
has no estimates at all) has no winner and is left out of every count.
"""

from typing import Mapping, Sequence

import pandas as pd

from ej_atlas.records import MajorityTally
from ej_atlas.schemas import SCHEMA_MAJORITY_TALLY, SchemaValidationError, validate_schema


TIE_POLICIES = ("all", "first")


def majority_categories(
    tracts: pd.DataFrame,
    categories: Sequence[str],
    ties: str = "all",
) -> pd.DataFrame:
    """
    Find the winning category (or categories) of each tract.

    Args:
        tracts: Long table with geoid, variable, estimate.
        categories: Variable labels competing for the maximum.
        ties: Tie policy, "all" or "first".

    Returns:
        DataFrame with geoid, variable, estimate; one row per
        (tract, winning variable), ordered by geoid then category order.
    """
    if ties not in TIE_POLICIES:
        raise ValueError(f"Unknown tie policy '{ties}'; expected one of {TIE_POLICIES}")

    categories = list(categories)
    order = {c: i for i, c in enumerate(categories)}

    race = pd.DataFrame(
        tracts.loc[tracts["variable"].isin(categories), ["geoid", "variable", "estimate"]]
    ).dropna(subset=["estimate"])

    tract_max = race.groupby("geoid")["estimate"].transform("max")
    winners = race[(race["estimate"] == tract_max) & (tract_max > 0)]

    winners = (
        winners.assign(_order=winners["variable"].map(order))
        .sort_values(["geoid", "_order"], kind="stable")
        .drop(columns="_order")
    )
    if ties == "first":
        winners = winners.drop_duplicates(subset="geoid", keep="first")

    return winners.reset_index(drop=True)


def tally_majority(winners: pd.DataFrame, categories: Sequence[str]) -> pd.DataFrame:
    """
    Count tracts per winning category.

    Categories that win no tract are omitted. Rows are sorted by descending
    count, then category order. Empty input gives an empty table.
    """
    counts = winners["variable"].value_counts()
    rows = [
        {"category": c, "tract_count": int(counts[c])}
        for c in categories if counts.get(c, 0) > 0
    ]

    tally = pd.DataFrame({
        "category": pd.Series([r["category"] for r in rows], dtype="object"),
        "tract_count": pd.Series([r["tract_count"] for r in rows], dtype="int64"),
    })
    tally = tally.sort_values("tract_count", ascending=False, kind="stable")
    tally = tally.reset_index(drop=True)

    validate_schema(tally, SCHEMA_MAJORITY_TALLY)
    return tally


def majority_tally(
    tracts: pd.DataFrame,
    categories: Sequence[str],
    ties: str = "all",
) -> pd.DataFrame:
    """majority_categories followed by tally_majority."""
    return tally_majority(majority_categories(tracts, categories, ties), categories)


def tally_records(tally: pd.DataFrame) -> list[MajorityTally]:
    return [
        MajorityTally(category=row.category, tract_count=int(row.tract_count))
        for row in tally.itertuples(index=False)
    ]


def site_display_table(table: pd.DataFrame, columns: Mapping[str, str]) -> pd.DataFrame:
    """
    Project the site table onto display columns, keeping source row order.

    Args:
        table: Normalized site table.
        columns: Normalized column -> display header, in display order.

    Raises:
        SchemaValidationError: If a display column is missing from table.
    """
    missing = [c for c in columns if c not in table.columns]
    if missing:
        raise SchemaValidationError(f"Display columns not in site table: {missing}")

    display = pd.DataFrame(table[list(columns)]).rename(columns=dict(columns))
    return display.reset_index(drop=True)
