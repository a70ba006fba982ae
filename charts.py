# charts.py
# Matplotlib figures for the Streamlit pages (dark style, compact).

from typing import List, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from self_control import CONDITIONS, OutcomeRecord


# -----------------------------
# Dark plot style (global)
# -----------------------------
plt.style.use("dark_background")
plt.rcParams.update({
    "font.size": 8,
    "axes.titlesize": 9,
    "axes.labelsize": 8,
    "legend.fontsize": 7,
    "xtick.labelsize": 7,
    "ytick.labelsize": 7,
    "figure.facecolor": "black",
    "axes.facecolor": "black",
})

GRANOLA_COLOR = "#8FBC8F"
CHOCOLATE_COLOR = "#CD853F"
Y_LIMITS = (60, 120)


def outcome_chart(outcomes: Sequence[OutcomeRecord], title: str):
    """Grouped granola / chocolate bars per condition."""
    x = np.arange(len(outcomes))
    width = 0.38

    fig, ax = plt.subplots(figsize=(4.8, 2.6))
    ax.bar(x - width / 2, [o.granola for o in outcomes], width, color=GRANOLA_COLOR, label="Granola Bars")
    ax.bar(x + width / 2, [o.chocolate for o in outcomes], width, color=CHOCOLATE_COLOR, label="Chocolate Bars")
    ax.set_xticks(x)
    ax.set_xticklabels([o.condition for o in outcomes])
    ax.set_ylim(*Y_LIMITS)
    ax.grid(axis="y", linestyle=":", alpha=0.4)
    ax.set_title(title)
    ax.legend()
    return fig


def gap_comparison_chart(frame: pd.DataFrame):
    """Preference gap per interpretation and condition, human gap as dotted reference."""
    interpretations: List[str] = list(dict.fromkeys(frame["interpretation"]))
    x = np.arange(len(interpretations))
    width = 0.38

    fig, ax = plt.subplots(figsize=(4.8, 2.6))
    for offset, condition in zip((-width / 2, width / 2), CONDITIONS):
        rows = frame[frame["condition"] == condition].set_index("interpretation")
        gaps = [float(rows.loc[name, "gap"]) for name in interpretations]
        bars = ax.bar(x + offset, gaps, width, label=condition)
        ax.axhline(float(rows["human_gap"].iloc[0]), color=bars.patches[0].get_facecolor(),
                   linestyle=":", linewidth=1)
    ax.axhline(0, color="gray", linewidth=0.8)
    ax.set_xticks(x)
    ax.set_xticklabels([name.replace(" Interpretation", "") for name in interpretations])
    ax.set_ylabel("granola − chocolate")
    ax.set_title("Preference gap (dotted: human)")
    ax.legend()
    return fig
