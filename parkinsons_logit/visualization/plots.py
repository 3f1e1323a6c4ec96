"""
Report figures for the Parkinson's logit analysis.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from numpy.typing import ArrayLike
from scipy.stats import norm
from sklearn.metrics import ConfusionMatrixDisplay, confusion_matrix

from ..config import TARGET_COL, VIZ_CONFIG
from ..diagnostics import DiagnosticResult
from ..evaluation.metrics import CLASS_LABELS

logger = logging.getLogger('parkinsons')


def finalize_figure(save_path: str | Path | None = None, close: bool = True) -> None:
    """
    Finalize figure with consistent save settings.

    Args:
        save_path: Optional path to save the figure. If None, figure is not saved.
        close: Whether to close the figure after saving (default: True)
    """
    if save_path is not None:
        plt.savefig(save_path, dpi=VIZ_CONFIG['dpi'], bbox_inches='tight')
        logger.debug(f"Saved figure: {save_path}")
    if close:
        plt.close()


def plot_class_balance(
    df: pd.DataFrame,
    target_col: str = TARGET_COL,
    save_path: str | Path | None = None
) -> dict[int, int]:
    """Bar chart of response class counts."""
    counts = df[target_col].value_counts().sort_index()

    fig, ax = plt.subplots(figsize=VIZ_CONFIG['figsize_square'])
    colors = [VIZ_CONFIG['healthy_color'], VIZ_CONFIG['parkinsons_color']][:len(counts)]
    ax.bar([CLASS_LABELS[int(i)] for i in counts.index], counts.values, color=colors)
    for i, value in enumerate(counts.values):
        ax.text(i, value, str(value), ha='center', va='bottom', fontsize=VIZ_CONFIG['label_fontsize'])
    ax.set_ylabel('Recordings', fontsize=VIZ_CONFIG['label_fontsize'])
    ax.set_title('Class Balance', fontsize=VIZ_CONFIG['title_fontsize'], fontweight='bold')

    plt.tight_layout()
    finalize_figure(save_path)
    return {int(k): int(v) for k, v in counts.items()}


def plot_correlation_heatmap(
    corr: pd.DataFrame,
    threshold: float | None = None,
    save_path: str | Path | None = None
) -> None:
    """Lower-triangle correlation heatmap; cells above |threshold| are outlined."""
    mask = np.triu(np.ones_like(corr, dtype=bool), k=1)
    size = max(6, 0.45 * len(corr))

    fig, ax = plt.subplots(figsize=(size, size * 0.85))
    sns.heatmap(corr, mask=mask, cmap=VIZ_CONFIG['heatmap_cmap'], vmin=-1, vmax=1,
                center=0, square=True, linewidths=0.5, cbar_kws={'shrink': 0.7},
                annot=len(corr) <= 10, fmt='.2f', ax=ax)

    if threshold is not None:
        rows, cols = np.where((np.abs(corr.to_numpy()) > threshold) & ~mask)
        for r, c in zip(rows, cols):
            if r != c:
                ax.add_patch(plt.Rectangle((c, r), 1, 1, fill=False,
                                           edgecolor=VIZ_CONFIG['flag_color'], lw=1.5))

    title = 'Feature Correlation Matrix'
    if threshold is not None:
        title += f' (|r| > {threshold} outlined)'
    ax.set_title(title, fontsize=VIZ_CONFIG['title_fontsize'], fontweight='bold')

    plt.tight_layout()
    finalize_figure(save_path)


def plot_feature_boxplots(
    df: pd.DataFrame,
    features: list[str],
    target_col: str = TARGET_COL,
    save_path: str | Path | None = None
) -> None:
    """One boxplot per feature, split by response class."""
    n_cols = min(4, len(features))
    n_rows = (len(features) + n_cols - 1) // n_cols

    _, axes = plt.subplots(n_rows, n_cols, figsize=(3.5 * n_cols, 3 * n_rows))
    axes = np.atleast_1d(axes).ravel()
    plot_df = df.assign(**{target_col: df[target_col].map(dict(enumerate(CLASS_LABELS)))})
    palette = {CLASS_LABELS[0]: VIZ_CONFIG['healthy_color'],
               CLASS_LABELS[1]: VIZ_CONFIG['parkinsons_color']}

    for ax, feature in zip(axes, features):
        sns.boxplot(data=plot_df, x=target_col, y=feature, hue=target_col, palette=palette,
                    order=list(CLASS_LABELS), legend=False, ax=ax)
        ax.set_title(feature, fontsize=VIZ_CONFIG['tick_fontsize'])
        ax.set_xlabel('')
        ax.set_ylabel('')

    for ax in axes[len(features):]:
        ax.set_visible(False)

    plt.tight_layout()
    finalize_figure(save_path)


def plot_logit_linearity(
    linearity: DiagnosticResult,
    save_path: str | Path | None = None
) -> None:
    """Fitted logit against each predictor with its LOWESS smooth."""
    curves = linearity.details.get('curves', {})
    if not curves:
        logger.warning("No continuous predictors to plot for logit linearity")
        return

    predictors = list(curves)
    n_cols = min(3, len(predictors))
    n_rows = (len(predictors) + n_cols - 1) // n_cols
    _, axes = plt.subplots(n_rows, n_cols, figsize=(4.5 * n_cols, 3.5 * n_rows))
    axes = np.atleast_1d(axes).ravel()

    for ax, predictor in zip(axes, predictors):
        curve = curves[predictor]
        flagged = predictor in linearity.flagged
        ax.scatter(curve['x'], curve['logit'], s=10, alpha=0.5, color=VIZ_CONFIG['secondary'])
        ax.plot(curve['smooth'][:, 0], curve['smooth'][:, 1], linewidth=2,
                color=VIZ_CONFIG['flag_color'] if flagged else VIZ_CONFIG['primary'])
        r2 = linearity.table.loc[predictor, 'smooth_r2']
        ax.set_title(f"{predictor} (R²={r2:.2f})", fontsize=VIZ_CONFIG['tick_fontsize'])
        ax.set_ylabel('logit(p)')

    for ax in axes[len(predictors):]:
        ax.set_visible(False)

    plt.tight_layout()
    finalize_figure(save_path)


def plot_cooks_distance(
    influence: DiagnosticResult,
    save_path: str | Path | None = None
) -> None:
    """Stem plot of Cook's distance; top rows annotated."""
    table = influence.table
    positions = np.arange(len(table))

    fig, ax = plt.subplots(figsize=VIZ_CONFIG['figsize_wide'])
    ax.stem(positions, table['cooks_d'].to_numpy(), markerfmt=' ', basefmt=' ')
    for label in influence.details.get('top_cooks', []):
        pos = table.index.get_loc(label)
        ax.annotate(str(label), (pos, table.loc[label, 'cooks_d']),
                    textcoords='offset points', xytext=(0, 4), ha='center', fontsize=8,
                    color=VIZ_CONFIG['flag_color'])
    ax.set_xlabel('Observation', fontsize=VIZ_CONFIG['label_fontsize'])
    ax.set_ylabel("Cook's distance", fontsize=VIZ_CONFIG['label_fontsize'])
    ax.set_title("Cook's Distance", fontsize=VIZ_CONFIG['title_fontsize'], fontweight='bold')

    plt.tight_layout()
    finalize_figure(save_path)


def half_normal_quantiles(n: int) -> np.ndarray:
    """Expected half-normal order statistics, norm.ppf((n + i) / (2n + 1))."""
    i = np.arange(1, n + 1)
    return norm.ppf((n + i) / (2 * n + 1))


def plot_half_normal(
    influence: DiagnosticResult,
    n_labels: int = 2,
    save_path: str | Path | None = None
) -> dict[str, Any]:
    """Half-normal plot of absolute studentized residuals."""
    resid = influence.table['studentized_resid'].abs().sort_values()
    quantiles = half_normal_quantiles(len(resid))

    fig, ax = plt.subplots(figsize=VIZ_CONFIG['figsize_square'])
    ax.scatter(quantiles, resid.to_numpy(), s=12, color=VIZ_CONFIG['primary'])
    for q, (label, value) in list(zip(quantiles, resid.items()))[-n_labels:]:
        ax.annotate(str(label), (q, value), textcoords='offset points', xytext=(-4, 4),
                    ha='right', fontsize=8)
    ax.set_xlabel('Half-normal quantiles', fontsize=VIZ_CONFIG['label_fontsize'])
    ax.set_ylabel('|Studentized residual|', fontsize=VIZ_CONFIG['label_fontsize'])
    ax.set_title('Half-Normal Residual Plot', fontsize=VIZ_CONFIG['title_fontsize'], fontweight='bold')

    plt.tight_layout()
    finalize_figure(save_path)
    return {'quantiles': quantiles, 'abs_resid': resid.to_numpy()}


def plot_vif(
    multicollinearity: DiagnosticResult,
    threshold: float,
    save_path: str | Path | None = None
) -> None:
    table = multicollinearity.table.sort_values('vif')

    fig, ax = plt.subplots(figsize=VIZ_CONFIG['figsize_medium'])
    colors = [VIZ_CONFIG['flag_color'] if high else VIZ_CONFIG['primary'] for high in table['high']]
    ax.barh(table.index, table['vif'], color=colors)
    ax.axvline(threshold, linestyle='--', color=VIZ_CONFIG['neutral'], label=f'VIF = {threshold:g}')
    ax.set_xlabel('Variance inflation factor', fontsize=VIZ_CONFIG['label_fontsize'])
    ax.set_title('Multicollinearity', fontsize=VIZ_CONFIG['title_fontsize'], fontweight='bold')
    ax.legend(loc='lower right')

    plt.tight_layout()
    finalize_figure(save_path)


def plot_confusion_matrix(
    y_true: ArrayLike,
    y_pred: ArrayLike,
    threshold: float = 0.5,
    save_path: str | Path | None = None
) -> dict[str, int]:
    """
    Confusion matrix heatmap for the held-out partition.

    Returns:
        Dict with tn, fp, fn, tp counts and total
    """
    fig, ax = plt.subplots(figsize=VIZ_CONFIG['figsize_square'])

    cm = confusion_matrix(y_true, y_pred, labels=[0, 1])
    disp = ConfusionMatrixDisplay(confusion_matrix=cm, display_labels=list(CLASS_LABELS))
    disp.plot(ax=ax, cmap=VIZ_CONFIG['confusion_cmap'], values_format='d', colorbar=False)

    ax.set_title(f'Held-out Confusion Matrix\n(Threshold = {threshold:.2f})',
                 fontsize=VIZ_CONFIG['title_fontsize'], fontweight='bold')
    ax.set_xlabel('Predicted Label', fontsize=VIZ_CONFIG['label_fontsize'])
    ax.set_ylabel('True Label', fontsize=VIZ_CONFIG['label_fontsize'])

    plt.tight_layout()
    finalize_figure(save_path)

    tn, fp, fn, tp = cm.ravel()
    return {'tn': int(tn), 'fp': int(fp), 'fn': int(fn), 'tp': int(tp), 'total': int(cm.sum())}
