"""
Report figures for the base rent analysis.

Styling is passed in as a PlotStyle and applied with an rc_context around
each figure, so nothing here changes matplotlib's global settings.
"""

import logging
import pathlib
from dataclasses import dataclass, field
from typing import Tuple

import matplotlib.pyplot as plt
import pandas as pd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlotStyle:
    figsize: Tuple[float, float] = (6, 5)
    dpi: int = 200
    font_family: str = "DejaVu Sans"
    font_size: float = 10
    point_color: str = "tab:blue"
    line_color: str = "red"
    alpha: float = 0.6
    bins: int = 20
    extra_rc: dict = field(default_factory=dict)

    def rc_params(self) -> dict:
        params = {
            "font.family": self.font_family,
            "font.size": self.font_size,
            "figure.figsize": self.figsize,
            "savefig.dpi": self.dpi,
        }
        params.update(self.extra_rc)
        return params


def _resolve(style):
    return PlotStyle() if style is None else style


def _save(fig, out_path: pathlib.Path, style: PlotStyle):
    out_path = pathlib.Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_path, dpi=style.dpi)
    plt.close(fig)
    return out_path


def save_hist(series, title, xlabel, out_path, style: PlotStyle = None):
    s = series.dropna()
    style = _resolve(style)
    with plt.rc_context(style.rc_params()):
        fig, ax = plt.subplots()
        ax.hist(s, bins=style.bins, color=style.point_color, edgecolor="black")
        ax.set_title(title)
        ax.set_xlabel(xlabel)
        ax.set_ylabel("Count")
        return _save(fig, out_path, style)


def save_scatter(x, y, title, xlabel, ylabel, out_path, style: PlotStyle = None):
    mask = x.notna() & y.notna()
    style = _resolve(style)
    with plt.rc_context(style.rc_params()):
        fig, ax = plt.subplots()
        ax.scatter(x[mask], y[mask], alpha=style.alpha, color=style.point_color, s=10)
        ax.set_title(title)
        ax.set_xlabel(xlabel)
        ax.set_ylabel(ylabel)
        return _save(fig, out_path, style)


def plot_outlier_scatterplots(df: pd.DataFrame, out_dir, style: PlotStyle = None):
    """Scatterplots the outlier thresholds are read from."""
    style = _resolve(style)
    out_dir = pathlib.Path(out_dir)
    return [
        save_scatter(df["area"], df["baserent"], "Living area vs base rent",
                     "Living area (m²)", "Base rent (€)",
                     out_dir / "scatter_area_vs_baserent.png", style),
        save_scatter(df["area"], df["service"], "Living area vs service charge",
                     "Living area (m²)", "Service charge (€)",
                     out_dir / "scatter_area_vs_service.png", style),
        save_scatter(df["room"], df["baserent"], "Rooms vs base rent",
                     "Number of rooms", "Base rent (€)",
                     out_dir / "scatter_room_vs_baserent.png", style),
        save_hist(df["baserent"], "Distribution of base rent", "Base rent (€)",
                  out_dir / "hist_baserent.png", style),
    ]


def plot_actual_vs_predicted(
    actual: pd.Series,
    predicted: pd.Series,
    out_path,
    title: str = "Actual vs predicted base rent (test set)",
    style: PlotStyle = None,
):
    style = _resolve(style)
    with plt.rc_context(style.rc_params()):
        fig, ax = plt.subplots()
        ax.scatter(actual, predicted, alpha=style.alpha, color=style.point_color)
        min_val = min(actual.min(), predicted.min())
        max_val = max(actual.max(), predicted.max())
        ax.plot([min_val, max_val], [min_val, max_val], color=style.line_color, linewidth=1)
        ax.set_xlabel("Actual base rent (€)")
        ax.set_ylabel("Predicted base rent (€)")
        ax.set_title(title)
        return _save(fig, out_path, style)


def plot_residuals_vs_fitted(
    fitted: pd.Series,
    residuals: pd.Series,
    out_path,
    title: str = "Residuals vs fitted values",
    style: PlotStyle = None,
):
    style = _resolve(style)
    with plt.rc_context(style.rc_params()):
        fig, ax = plt.subplots()
        ax.scatter(fitted, residuals, alpha=style.alpha, color=style.point_color)
        ax.axhline(0, color="black", linewidth=1)
        ax.set_xlabel("Fitted base rent (€)")
        ax.set_ylabel("Residual")
        ax.set_title(title)
        return _save(fig, out_path, style)


def plot_residual_histogram(residuals: pd.Series, out_path, style: PlotStyle = None):
    return save_hist(residuals, "Distribution of OLS residuals", "Residual", out_path, style)


def plot_standardized_coefficients(coef_df: pd.DataFrame, out_path, style: PlotStyle = None):
    """Bar plot of standardized coefficients."""
    style = _resolve(style)
    with plt.rc_context(style.rc_params()):
        fig, ax = plt.subplots(figsize=(8, 5))
        ordered = coef_df.sort_values("std_coef", key=lambda s: s.abs(), ascending=True)
        ax.barh(ordered["variable"], ordered["std_coef"], color=style.point_color)
        ax.set_xlabel("Standardized coefficient")
        ax.set_title("Standardized coefficients for predictors of base rent")
        return _save(fig, out_path, style)


def plot_rmse_comparison(metrics: pd.DataFrame, out_path, style: PlotStyle = None):
    style = _resolve(style)
    with plt.rc_context(style.rc_params()):
        fig, ax = plt.subplots()
        ax.bar(metrics["model"], metrics["rmse"], color=style.point_color)
        ax.set_xlabel("Model")
        ax.set_ylabel("Test RMSE (€)")
        ax.set_title("Prediction error by model (test set)")
        return _save(fig, out_path, style)


def save_model_figures(result, std_coef: pd.DataFrame, figures_dir, style: PlotStyle = None):
    """All figures for one analysis run; returns the written paths."""
    style = _resolve(style)
    figures_dir = pathlib.Path(figures_dir)
    predictions = result.evaluation.predictions
    paths = []

    for name, model in result.models.items():
        paths.append(plot_actual_vs_predicted(
            predictions["actual"], predictions[name],
            figures_dir / f"actual_vs_predicted_{name}.png",
            title=f"Actual vs predicted base rent, {name} model (test set)",
            style=style,
        ))

    full = result.models["full"]
    train = result.split.train
    fitted = full.predict(train)
    residuals = train[full.spec.response] - fitted
    paths.append(plot_residuals_vs_fitted(
        fitted, residuals, figures_dir / "residuals_vs_fitted_train.png",
        title="Residuals vs fitted values (train set)", style=style,
    ))
    paths.append(plot_residual_histogram(
        residuals, figures_dir / "residual_histogram_train.png", style))
    paths.append(plot_standardized_coefficients(
        std_coef, figures_dir / "standardized_coefficients.png", style))
    paths.append(plot_rmse_comparison(
        result.evaluation.metrics, figures_dir / "rmse_by_model.png", style))

    logger.info(f"Saved {len(paths)} figures to {figures_dir}")
    return paths
