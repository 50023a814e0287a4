"""Tables and plots of trial summaries."""

import os
from typing import Callable, Dict, Optional, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402

from .accounting import TrialSummary  # noqa: E402
from .errors import InvalidConfiguration  # noqa: E402

FORMATS = ("pretty", "csv")
FLOAT_PRECISION_DIGITS = 6


def _columns(summary: TrialSummary, participant: Optional[int], ideal: Optional[Callable]) -> Dict[str, object]:
    columns = {"Rounds": summary.rounds, "Trials": summary.trials}
    for pid, spec in enumerate(summary.config.participants):
        columns[f"Participant {pid} Strategy"] = spec.strategy.name
        columns[f"Participant {pid} Power"] = spec.power
        columns[f"Participant {pid} Revenue"] = summary.mean_share[pid]
        if summary.trials > 1:
            columns[f"Participant {pid} Std"] = summary.std_share[pid]
    if ideal is not None and participant is not None:
        columns["Ideal Revenue"] = float(ideal(summary.config.weights[participant]))
    columns["Blocks Published"] = summary.mean_blocks_published
    columns["Longest Chain Length"] = summary.mean_chain_length
    return columns


def summaries_frame(
    summaries: Sequence[TrialSummary],
    participant: Optional[int] = None,
    ideal: Optional[Callable] = None,
) -> pd.DataFrame:
    """One row per summary, one column per reported figure."""
    return pd.DataFrame([_columns(s, participant, ideal) for s in summaries])


def format_summaries(
    summaries: Sequence[TrialSummary],
    fmt: str = "pretty",
    participant: Optional[int] = None,
    ideal: Optional[Callable] = None,
) -> str:
    """
    Renders one row per summary.

    Args:
        summaries: Summaries over the same set of participants.
        fmt: "pretty" for an aligned table, "csv" for comma-separated values.
        participant: Participant whose power feeds `ideal`.
        ideal: Revenue curve, e.g. `selfish_revenue`, shown as an extra column.
    """
    if fmt not in FORMATS:
        raise InvalidConfiguration(f"format must be one of {FORMATS}, got {fmt!r}")
    if not summaries:
        return ""

    df = summaries_frame(summaries, participant, ideal)
    if fmt == "csv":
        return df.to_csv(index=False, float_format=f"%.{FLOAT_PRECISION_DIGITS}f").rstrip("\n")
    return df.to_string(index=False, float_format=lambda v: f"{v:.{FLOAT_PRECISION_DIGITS}f}")


def plot_power_sweep(
    summaries: Sequence[TrialSummary],
    participant: int,
    path: str,
    ideal: Optional[Callable] = None,
    ideal_label: str = "Ideal Revenue",
    title: Optional[str] = None,
) -> str:
    """
    Plots the revenue share of `participant` against its power, with the
    power-share diagonal and an optional ideal curve. Returns the saved path.
    """
    powers = np.array([s.config.weights[participant] for s in summaries])
    means = np.array([s.mean_share[participant] for s in summaries])
    stds = np.array([s.std_share[participant] for s in summaries])
    name = summaries[0].config.participants[participant].strategy.name

    fig, ax = plt.subplots(figsize=(10, 8))
    ax.plot(powers, means, color='red', marker='o', linewidth=2, markersize=6, label=f'{name} (simulated)')
    ax.errorbar(powers, means, yerr=stds, fmt='none', capsize=3, alpha=0.5, color='red')
    ax.plot(powers, powers, color='gray', linestyle='--', label='Power share')
    if ideal is not None:
        grid = np.linspace(powers.min(), powers.max(), 200)
        ax.plot(grid, ideal(grid), color='blue', linestyle='-', alpha=0.7, label=ideal_label)

    ax.set_xlabel(f'Participant {participant} Power')
    ax.set_ylabel('Revenue Share')
    ax.set_title(title or f'{name} revenue ({summaries[0].trials} trials, {summaries[0].rounds} rounds)')
    ax.grid(True, alpha=0.3)
    ax.legend(loc='upper left')

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    plt.tight_layout()
    plt.savefig(path, dpi=300, bbox_inches='tight')
    plt.close(fig)
    return path
