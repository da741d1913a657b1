# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Stacked horizontal bars of nitrogen output and loss for the top producers."""

import logging
from pathlib import Path

import matplotlib

matplotlib.use("pdf")
import matplotlib.patches as mpatches
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from workflow.scripts.logging_config import setup_script_logging

logger = logging.getLogger(__name__)

SEGMENTS = {
    "n_output_mt": ("N in harvested wheat", "#3b745f"),
    "n_loss_mt": ("N loss", "#d95f02"),
}


def plot_nitrogen_balance(
    top: pd.DataFrame, output_path: str, *, title: str = "Wheat nitrogen balance"
) -> Path:
    missing = [c for c in ("country", *SEGMENTS) if c not in top.columns]
    if missing:
        raise ValueError(f"Nitrogen table missing columns: {', '.join(missing)}")

    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    if top.empty:
        fig, ax = plt.subplots(figsize=(8, 4))
        ax.text(0.5, 0.5, "No countries with NUE data", ha="center", va="center")
        ax.axis("off")
        fig.savefig(out, bbox_inches="tight", dpi=300)
        plt.close(fig)
        logger.warning("Nitrogen table empty; wrote placeholder %s", out)
        return out

    # Largest producer at the top
    df = top.iloc[::-1].reset_index(drop=True)

    bar_height = 0.7
    fig_height = max(4.0, 1.0 + bar_height * len(df))
    fig, ax = plt.subplots(figsize=(10, fig_height))

    left = np.zeros(len(df))
    for column, (label, color) in SEGMENTS.items():
        values = df[column].fillna(0.0).clip(lower=0.0).to_numpy(dtype=float)
        ax.barh(
            np.arange(len(df)),
            values,
            left=left,
            height=bar_height,
            color=color,
            label=label,
        )
        left += values

    ax.set_yticks(np.arange(len(df)))
    ax.set_yticklabels(df["country"])
    ax.set_ylim(-0.5, len(df) - 0.5)
    ax.set_xlabel("Mt N")
    ax.set_title(title)
    ax.grid(axis="x", alpha=0.3)

    handles = [mpatches.Patch(color=color, label=label) for label, color in SEGMENTS.values()]
    ax.legend(handles=handles, loc="lower right", frameon=True)

    fig.tight_layout()
    fig.savefig(out, bbox_inches="tight", dpi=300)
    plt.close(fig)
    logger.info("Saved bar chart to %s", out)
    return out


if __name__ == "__main__":
    logger = setup_script_logging(log_file=snakemake.log[0] if snakemake.log else None)  # type: ignore[name-defined]

    plot_nitrogen_balance(
        pd.read_csv(snakemake.input.csv),  # type: ignore[name-defined]
        snakemake.output.pdf,  # type: ignore[name-defined]
        title=snakemake.params.title,  # type: ignore[name-defined]
    )
