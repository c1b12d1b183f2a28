"""
Study figures.

Every function builds and returns a matplotlib Figure; callers decide
whether to save it, embed it in a report, or both (see ``FigureSink``).
"""

import base64
from io import BytesIO
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.figure import Figure
from sklearn.tree import plot_tree

from casebook.utils.logging import get_logger

log = get_logger(__name__)


def fig_to_base64(fig: Figure) -> str:
    """Encode a figure as base64 PNG."""
    buf = BytesIO()
    fig.savefig(buf, format="png", dpi=150, bbox_inches="tight")
    buf.seek(0)
    return base64.b64encode(buf.read()).decode("utf-8")


class FigureSink:
    """
    Collects study figures.

    Each figure is encoded for the HTML report, written as PNG when a
    directory is given, and closed.
    """

    def __init__(self, study: str, plots_dir: Path | None = None) -> None:
        self.study = study
        self.plots_dir = plots_dir
        self.figures: dict[str, str] = {}
        self.paths: dict[str, Path] = {}

    def add(self, name: str, fig: Figure) -> str:
        encoded = fig_to_base64(fig)
        self.figures[name] = encoded
        if self.plots_dir is not None:
            self.plots_dir.mkdir(parents=True, exist_ok=True)
            path = self.plots_dir / f"{self.study}_{name}.png"
            fig.savefig(path, dpi=150, bbox_inches="tight")
            self.paths[name] = path
            log.debug("Saved figure", path=str(path))
        plt.close(fig)
        return encoded


def plot_tuning_curve(
    metrics: pd.DataFrame,
    param: str,
    metric: str,
    *,
    log_x: bool = True,
    title: str | None = None,
    highlight: float | None = None,
) -> Figure:
    """Mean resampled metric against one tuning parameter."""
    rows = metrics[metrics[".metric"] == metric].sort_values(param)

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(rows[param], rows["mean"], "o-", color="steelblue", markersize=4)
    if highlight is not None:
        ax.axvline(highlight, color="firebrick", linestyle="--", alpha=0.7, label="selected")
        ax.legend(loc="lower left")
    if log_x:
        ax.set_xscale("log")
    ax.set_xlabel(param, fontsize=11)
    ax.set_ylabel(f"{metric} (validation)", fontsize=11)
    ax.set_title(title or f"{metric} across {param}", fontsize=12)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_tuning_grid(
    metrics: pd.DataFrame,
    params: list[str],
    metric: str,
    *,
    title: str | None = None,
) -> Figure:
    """One panel per parameter: metric against parameter value (space-filling grids)."""
    rows = metrics[metrics[".metric"] == metric]
    fig, axes = plt.subplots(1, len(params), figsize=(5 * len(params), 4), squeeze=False)
    for ax, param in zip(axes[0], params, strict=True):
        ax.scatter(rows[param], rows["mean"], color="steelblue", alpha=0.8)
        ax.set_xlabel(param, fontsize=11)
        ax.grid(True, alpha=0.3)
    axes[0][0].set_ylabel(metric, fontsize=11)
    fig.suptitle(title or f"{metric} across the tuning grid", fontsize=12)
    fig.tight_layout()
    return fig


def plot_tuning_panel(
    metrics: pd.DataFrame,
    x: str,
    color: str,
    *,
    log_x: bool = True,
    title: str | None = None,
) -> Figure:
    """One panel per metric; ``x`` on the horizontal axis, one line per ``color`` value."""
    names = list(dict.fromkeys(metrics[".metric"]))
    fig, axes = plt.subplots(1, len(names), figsize=(6 * len(names), 4.5), squeeze=False)
    cmap = plt.get_cmap("viridis")
    levels = sorted(metrics[color].unique())

    for ax, name in zip(axes[0], names, strict=True):
        rows = metrics[metrics[".metric"] == name]
        for i, level in enumerate(levels):
            series = rows[rows[color] == level].sort_values(x)
            ax.plot(
                series[x],
                series["mean"],
                "o-",
                color=cmap(i / max(len(levels) - 1, 1)),
                label=f"{color}={level}",
                markersize=4,
            )
        if log_x:
            ax.set_xscale("log")
        ax.set_xlabel(x, fontsize=11)
        ax.set_title(name, fontsize=11)
        ax.grid(True, alpha=0.3)
    axes[0][0].set_ylabel("mean", fontsize=11)
    axes[0][-1].legend(loc="lower left", fontsize=9)
    if title:
        fig.suptitle(title, fontsize=12)
    fig.tight_layout()
    return fig


def plot_roc_curves(curves: dict[str, pd.DataFrame], *, title: str = "ROC curve") -> Figure:
    """ROC curves (``1 - specificity`` vs ``sensitivity``) for one or more models."""
    fig, ax = plt.subplots(figsize=(6, 6))
    for label, curve in curves.items():
        ax.plot(1.0 - curve["specificity"], curve["sensitivity"], linewidth=1.5, label=label)
    ax.plot([0, 1], [0, 1], linestyle="dotted", color="grey")
    ax.set_xlim(0, 1)
    ax.set_ylim(0, 1)
    ax.set_aspect("equal")
    ax.set_xlabel("1 - specificity", fontsize=11)
    ax.set_ylabel("sensitivity", fontsize=11)
    ax.set_title(title, fontsize=12)
    if len(curves) > 1:
        ax.legend(loc="lower right")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_variable_importance(importance: pd.DataFrame, *, title: str) -> Figure:
    """Horizontal bar chart, most important variable on top."""
    n_show = len(importance)
    fig, ax = plt.subplots(figsize=(8, max(4, n_show * 0.35)))
    ax.barh(
        range(n_show),
        importance["importance"].to_numpy()[::-1],
        color="steelblue",
        alpha=0.8,
    )
    ax.set_yticks(range(n_show))
    ax.set_yticklabels(importance["variable"].to_numpy()[::-1], fontsize=9)
    ax.set_xlabel("Importance", fontsize=11)
    ax.set_title(title, fontsize=12)
    ax.grid(axis="x", alpha=0.3)
    fig.tight_layout()
    return fig


def plot_coefficients(tidy: pd.DataFrame, *, title: str, drop_intercept: bool = True) -> Figure:
    """Dot-and-whisker plot of coefficient estimates and intervals."""
    rows = tidy
    if drop_intercept:
        rows = tidy[tidy["term"] != "Intercept"]
    positions = np.arange(len(rows))[::-1]

    fig, ax = plt.subplots(figsize=(8, max(3, len(rows) * 0.5)))
    ax.errorbar(
        rows["estimate"],
        positions,
        xerr=[rows["estimate"] - rows["conf_low"], rows["conf_high"] - rows["estimate"]],
        fmt="o",
        color="black",
        ecolor="grey",
        capsize=3,
    )
    ax.axvline(0, color="grey", linestyle="dashed")
    ax.set_yticks(positions)
    ax.set_yticklabels(rows["term"], fontsize=9)
    ax.set_xlabel("estimate", fontsize=11)
    ax.set_title(title, fontsize=12)
    ax.grid(axis="x", alpha=0.3)
    fig.tight_layout()
    return fig


def plot_prediction_intervals(
    predictions: pd.DataFrame,
    group: str,
    *,
    title: str,
    ylabel: str,
) -> Figure:
    """Point predictions per group with interval error bars."""
    fig, ax = plt.subplots(figsize=(6, 4.5))
    x = np.arange(len(predictions))
    ax.errorbar(
        x,
        predictions[".pred"],
        yerr=[
            predictions[".pred"] - predictions[".pred_lower"],
            predictions[".pred_upper"] - predictions[".pred"],
        ],
        fmt="o",
        color="black",
        capsize=6,
    )
    ax.set_xticks(x)
    ax.set_xticklabels(predictions[group].astype(str))
    ax.set_xlabel(group, fontsize=11)
    ax.set_ylabel(ylabel, fontsize=11)
    ax.set_title(title, fontsize=12)
    ax.grid(axis="y", alpha=0.3)
    fig.tight_layout()
    return fig


def plot_group_scatter(
    data: pd.DataFrame,
    x: str,
    y: str,
    group: str,
    *,
    title: str,
) -> Figure:
    """Scatter plot coloured by group with a least-squares line per group."""
    fig, ax = plt.subplots(figsize=(8, 6))
    levels = data[group].cat.categories if hasattr(data[group], "cat") else sorted(data[group].unique())
    for level in levels:
        rows = data[data[group] == level]
        if rows.empty:
            continue
        points = ax.scatter(rows[x], rows[y], alpha=0.6, s=30, label=str(level))
        if len(rows) > 1:
            slope, intercept = np.polyfit(rows[x], rows[y], 1)
            xs = np.linspace(rows[x].min(), rows[x].max(), 50)
            ax.plot(xs, intercept + slope * xs, color=points.get_facecolor()[0], alpha=0.9)
    ax.set_xlabel(x, fontsize=11)
    ax.set_ylabel(y, fontsize=11)
    ax.set_title(title, fontsize=12)
    ax.legend(title=group, loc="upper left")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_decision_tree(model: object, feature_names: list[str], *, max_depth: int = 3, title: str) -> Figure:
    """Top levels of a fitted decision tree."""
    fig, ax = plt.subplots(figsize=(14, 7))
    plot_tree(
        model,
        feature_names=feature_names,
        class_names=[str(c) for c in getattr(model, "classes_", [])] or None,
        max_depth=max_depth,
        filled=True,
        impurity=False,
        proportion=True,
        fontsize=8,
        ax=ax,
    )
    ax.set_title(title, fontsize=12)
    return fig
