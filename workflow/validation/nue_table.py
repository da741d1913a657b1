# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Validation and loading of the country nitrogen-use-efficiency table."""

import logging
from pathlib import Path

import pandas as pd
from pandera.pandas import Check, Column, DataFrameSchema

logger = logging.getLogger(__name__)

NUE_SCHEMA = DataFrameSchema(
    {
        "country": Column(str, nullable=False, unique=True, coerce=True),
        "nue": Column(float, Check.gt(0), nullable=False, coerce=True),
    },
    strict=True,
    coerce=True,
)


def load_nue_table(
    path: str | Path, country_col: str = "country", nue_col: str = "nue"
) -> pd.DataFrame:
    """Read the NUE CSV into validated ``country``/``nue`` columns."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"NUE table not found: {path}")

    df = pd.read_csv(path, comment="#")
    missing = [c for c in (country_col, nue_col) if c not in df.columns]
    if missing:
        raise ValueError(f"NUE table {path} missing columns: {', '.join(missing)}")

    df = df[[country_col, nue_col]].rename(
        columns={country_col: "country", nue_col: "nue"}
    )
    df = NUE_SCHEMA.validate(df)
    df["country"] = df["country"].str.strip()
    if df["country"].duplicated().any():
        dupes = sorted(df.loc[df["country"].duplicated(), "country"])
        raise ValueError(f"NUE table {path} has duplicate countries: {', '.join(dupes)}")

    high = df[df["nue"] > 1]
    if not high.empty:
        logger.warning(
            "%d countries have NUE above 1 (soil mining): %s",
            len(high),
            ", ".join(high["country"]),
        )
    return df


def validate_nue_table(config: dict, project_root: Path) -> None:
    """Check the NUE table parses; warn about aliases naming absent countries."""
    nue_cfg = config["nue"]
    csv_path = project_root / config["inputs"]["nue"]
    df = load_nue_table(
        csv_path, nue_cfg.get("country_column", "country"), nue_cfg.get("value_column", "nue")
    )

    aliases = (nue_cfg.get("aliases") or {}).get("mapping") or {}
    stale = sorted(set(aliases) - set(df["country"]))
    if stale:
        logger.warning(
            "Country aliases refer to names absent from %s: %s",
            csv_path,
            ", ".join(stale),
        )
