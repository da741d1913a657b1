# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Country-name aliasing and exact-match joins between GAUL and NUE tables.

The NUE table and GAUL use different naming vocabularies; only some names
match exactly. A small versioned alias table maps NUE names onto GAUL
names before an exact inner join. Names that still do not match are
dropped from the join and reported, never guessed.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging

import pandas as pd

logger = logging.getLogger(__name__)

DEFAULT_ALIASES = {
    "USA": "United States of America",
    "RussianFed": "Russian Federation",
}


@dataclass(frozen=True)
class CountryAliases:
    """Versioned mapping from a source country name to the canonical GAUL name."""

    version: str
    mapping: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, cfg: Mapping | None) -> "CountryAliases":
        if not cfg:
            return cls(version="default", mapping=dict(DEFAULT_ALIASES))
        mapping = cfg.get("mapping") or {}
        return cls(
            version=str(cfg.get("version", "unversioned")),
            mapping={str(k).strip(): str(v).strip() for k, v in mapping.items()},
        )

    def apply(self, names: pd.Series) -> pd.Series:
        stripped = names.astype(str).str.strip()
        return stripped.replace(dict(self.mapping))


@dataclass
class JoinResult:
    joined: pd.DataFrame
    unmatched_left: list[str]
    unmatched_right: list[str]

    @property
    def n_dropped(self) -> int:
        return len(self.unmatched_left) + len(self.unmatched_right)


def apply_aliases(
    df: pd.DataFrame, aliases: CountryAliases, column: str = "country"
) -> pd.DataFrame:
    """Return a copy of ``df`` with ``column`` rewritten through the alias table."""
    out = df.copy()
    renamed = aliases.apply(out[column])
    changed = int((renamed != out[column].astype(str).str.strip()).sum())
    out[column] = renamed
    logger.info(
        "Applied country aliases (version %s): %d names rewritten",
        aliases.version,
        changed,
    )
    return out


def join_on_country(
    left: pd.DataFrame, right: pd.DataFrame, on: str = "country"
) -> JoinResult:
    """Inner join on exact country name, recording names missing on either side."""
    for name, frame in (("left", left), ("right", right)):
        if on not in frame.columns:
            raise KeyError(f"Column '{on}' missing from {name} table")
        if frame[on].duplicated().any():
            dupes = sorted(frame.loc[frame[on].duplicated(), on].astype(str).unique())
            raise ValueError(f"Duplicate country names in {name} table: {dupes}")

    joined = left.merge(right, on=on, how="inner", validate="one_to_one")
    left_names = set(left[on])
    right_names = set(right[on])
    result = JoinResult(
        joined=joined.reset_index(drop=True),
        unmatched_left=sorted(map(str, left_names - right_names)),
        unmatched_right=sorted(map(str, right_names - left_names)),
    )

    logger.info(
        "Joined %d countries (%d left rows, %d right rows)",
        len(joined),
        len(left),
        len(right),
    )
    if result.unmatched_right:
        logger.warning(
            "%d of %d right-hand country names have no exact match: %s",
            len(result.unmatched_right),
            len(right),
            ", ".join(result.unmatched_right),
        )
    return result


def unmatched_report(result: JoinResult) -> pd.DataFrame:
    """Tabulate dropped names by the side they came from."""
    rows = [("production", name) for name in result.unmatched_left] + [
        ("nue", name) for name in result.unmatched_right
    ]
    return pd.DataFrame(rows, columns=["source", "country"])
