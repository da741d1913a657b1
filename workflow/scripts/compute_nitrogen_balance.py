#! /usr/bin/env python3
# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Derive national nitrogen output, input and loss for wheat.

Definition: output = production * 0.02, input = output / NUE,
loss = input - output (all Mt N).

Inputs (via Snakemake):
 - production_csv: per-country production (country, production_mt, ...)
 - nue:            CSV mapping country name to NUE

Outputs:
 - balance:     all countries present in both tables
 - top:         the top-N producers among them
 - correlation: Pearson r between production and loss
 - unmatched:   country names dropped by the join, by source

Notes:
 - NUE names are rewritten through the alias table before an exact inner
   join on country name; unmatched countries are dropped and reported.
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd
from scipy import stats

from workflow.scripts.constants import DEFAULT_TOP_N, WHEAT_N_CONTENT
from workflow.scripts.country_names import (
    CountryAliases,
    JoinResult,
    apply_aliases,
    join_on_country,
    unmatched_report,
)
from workflow.scripts.logging_config import setup_script_logging
from workflow.validation.nue_table import load_nue_table

logger = logging.getLogger(__name__)

BALANCE_COLUMNS = [
    "country",
    "production_mt",
    "nue",
    "n_output_mt",
    "n_input_mt",
    "n_loss_mt",
]


def nitrogen_balance(
    production: pd.DataFrame,
    nue: pd.DataFrame,
    aliases: CountryAliases,
    n_content: float = WHEAT_N_CONTENT,
) -> tuple[pd.DataFrame, JoinResult]:
    """Join production with aliased NUE values and compute the N balance."""
    nue_aliased = apply_aliases(nue, aliases)
    result = join_on_country(production[["country", "production_mt"]], nue_aliased)

    df = result.joined.copy()
    df["n_output_mt"] = df["production_mt"] * n_content
    df["n_input_mt"] = df["n_output_mt"] / df["nue"]
    df["n_loss_mt"] = df["n_input_mt"] - df["n_output_mt"]
    df = df[BALANCE_COLUMNS].sort_values("production_mt", ascending=False)
    return df.reset_index(drop=True), result


def top_producers(balance: pd.DataFrame, n: int = DEFAULT_TOP_N) -> pd.DataFrame:
    return balance.nlargest(n, "production_mt").reset_index(drop=True)


def production_loss_correlation(balance: pd.DataFrame) -> dict[str, float]:
    """Pearson correlation of production and nitrogen loss across countries."""
    valid = balance[["production_mt", "n_loss_mt"]].dropna()
    n = len(valid)
    if n < 3 or valid["production_mt"].nunique() < 2 or valid["n_loss_mt"].nunique() < 2:
        logger.warning("Too few distinct countries (%d) for a correlation", n)
        return {"n": n, "pearson_r": np.nan, "p_value": np.nan}

    r, p = stats.pearsonr(valid["production_mt"], valid["n_loss_mt"])
    logger.info("Production/loss correlation over %d countries: r=%.3f (p=%.3g)", n, r, p)
    return {"n": n, "pearson_r": float(r), "p_value": float(p)}


def _write_csv(df: pd.DataFrame, path: str | Path) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)
    logger.info("Wrote %s", out)


def run(
    production_csv: str,
    nue_csv: str,
    *,
    balance_csv: str,
    top_csv: str,
    correlation_csv: str,
    unmatched_csv: str,
    aliases: CountryAliases,
    country_col: str = "country",
    nue_col: str = "nue",
    n_content: float = WHEAT_N_CONTENT,
    top_n: int = DEFAULT_TOP_N,
) -> pd.DataFrame:
    if not Path(production_csv).exists():
        raise FileNotFoundError(f"Production table not found: {production_csv}")
    production = pd.read_csv(production_csv)
    nue = load_nue_table(nue_csv, country_col, nue_col)

    balance, result = nitrogen_balance(production, nue, aliases, n_content)
    top = top_producers(balance, top_n)
    correlation = production_loss_correlation(balance)

    _write_csv(balance, balance_csv)
    _write_csv(top, top_csv)
    _write_csv(pd.DataFrame([correlation]), correlation_csv)
    _write_csv(unmatched_report(result), unmatched_csv)
    return top


if __name__ == "__main__":
    logger = setup_script_logging(log_file=snakemake.log[0] if snakemake.log else None)  # type: ignore[name-defined]

    run(
        snakemake.input.production_csv,  # type: ignore[name-defined]
        snakemake.input.nue,  # type: ignore[name-defined]
        balance_csv=snakemake.output.balance,  # type: ignore[name-defined]
        top_csv=snakemake.output.top,  # type: ignore[name-defined]
        correlation_csv=snakemake.output.correlation,  # type: ignore[name-defined]
        unmatched_csv=snakemake.output.unmatched,  # type: ignore[name-defined]
        aliases=CountryAliases.from_config(snakemake.params.aliases),  # type: ignore[name-defined]
        country_col=snakemake.params.country_column,  # type: ignore[name-defined]
        nue_col=snakemake.params.value_column,  # type: ignore[name-defined]
        n_content=float(snakemake.params.nitrogen_content),  # type: ignore[name-defined]
        top_n=int(snakemake.params.top_n),  # type: ignore[name-defined]
    )
