"""
Markdown report for one analysis run.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

from .analysis import AnalysisResult
from .models.fitting import FittedModel

logger = logging.getLogger('parkinsons')

REPORT_FILENAME = 'parkinsons_logit_report.md'


def _table(df: pd.DataFrame, floatfmt: str = '.4g') -> str:
    if df is None or df.empty:
        return '_(empty)_\n'
    return df.to_markdown(floatfmt=floatfmt) + '\n'


def _model_section(title: str, model: FittedModel) -> list[str]:
    return [
        f"### {title}",
        f"`{model.formula}`",
        "",
        f"Log-likelihood {model.log_likelihood:.3f}, deviance {model.deviance:.3f} "
        f"on {model.df_resid:g} df, AIC {model.aic:.3f}",
        "",
        _table(model.summary_frame()),
    ]


def render_report(result: AnalysisResult, figures: dict[str, Path] | None = None) -> str:
    """
    Build the report text.

    Args:
        result: Output of run_analysis
        figures: Optional mapping of figure name to saved path (linked relative
            to the report directory when possible)
    """
    figures = figures or {}
    exploration = result.exploration
    reduction = result.reduction
    diagnostics = result.diagnostics
    evaluation = result.evaluation
    selection = result.selection

    def figure(name: str, caption: str) -> list[str]:
        if name not in figures:
            return []
        return [f"![{caption}]({Path('figures') / Path(figures[name]).name})", ""]

    lines = [
        "# Parkinson's Disease Status from Vocal Measurements",
        "",
        f"_Generated {datetime.now(timezone.utc):%Y-%m-%d %H:%M UTC}_",
        "",
        "## Configuration",
        _table(pd.Series(result.config.to_dict(), name='value').astype(str).to_frame()),
        "## 1. Data",
        f"{exploration.n_rows} recordings, {exploration.n_features} measurement features.",
        "",
        "### Missing values",
        f"Total missing: {exploration.total_missing}",
        "",
        _table(exploration.missingness[exploration.missingness['n_missing'] > 0]),
        "### Class balance",
        _table(exploration.class_balance),
        *figure('class_balance', 'Class balance'),
        "## 2. Exploratory analysis",
        "### Feature distributions",
        _table(exploration.feature_summary),
        *figure('boxplots', 'Boxplots by status'),
        "### Differences by status (Mann-Whitney U)",
        _table(exploration.group_comparison),
        "### Correlation",
        *figure('correlation', 'Correlation heatmap'),
        f"Pairs with |r| > {result.config.correlation_threshold}:",
        "",
        _table(exploration.high_pairs),
        "## 3. Feature reduction",
        f"Flagged ({len(reduction.flagged)}): {', '.join(reduction.flagged) or 'none'}",
        "",
        f"Retained ({len(reduction.features)}): {', '.join(reduction.features)}",
        "",
    ]
    if reduction.rejected_overrides:
        lines += [f"Overrides rejected (would exceed threshold): "
                  f"{', '.join(reduction.rejected_overrides)}", ""]
    scaling = ("all rows before the split" if result.config.scale_before_split
               else "the training partition only")
    lines += [
        f"Retained features are standardized (sample SD) using statistics from {scaling}.",
        "",
        "## 4. Model selection",
        f"Training rows: {len(result.partition.train)}, held-out rows: {len(result.partition.test)} "
        f"(seed {result.config.random_state}).",
        "",
        *_model_section("Full additive model", result.full_model),
        "### Likelihood-ratio elimination",
        f"Start: `{result.saturated_formula}`",
        "",
        _table(result.lrt_path.history()),
        *_model_section("LRT-selected model", result.lrt_path.final),
        "### Stepwise AIC",
        _table(result.aic_path.history()),
        *_model_section("AIC-selected model", result.aic_path.final),
        "### Analysis of deviance",
        _table(result.anova),
        "### Pairwise nested comparisons",
        _table(selection.comparisons),
        f"Reference model ({selection.reference}): `{result.reference_model.formula}`. Candidates "
        "never tested against a larger model are not eligible.",
        "",
        f"**Final model:** `{selection.final.formula}` ({selection.final_name}).",
        "",
        "Independent procedures agree: "
        f"{'yes' if selection.procedures_agree else 'no' if selection.procedures_agree is not None else 'n/a'}",
        "",
        "## 5. Diagnostics",
        _table(diagnostics.verdicts()),
        "### Linearity in the logit",
        _table(diagnostics.linearity.table),
        *figure('linearity', 'Logit linearity'),
        "### Influence",
        f"Top Cook's distance rows: {diagnostics.influence.details.get('top_cooks', [])}",
        "",
        f"|studentized residual| > {result.config.residual_bound}: "
        f"{diagnostics.influence.details.get('outliers', []) or 'none'}",
        "",
        *figure('cooks', "Cook's distance"),
        *figure('half_normal', 'Half-normal residuals'),
        "### Multicollinearity",
        _table(diagnostics.multicollinearity.table),
        *figure('vif', 'VIF'),
        "### Odds ratios",
        _table(diagnostics.odds_ratios),
        "## 6. Held-out evaluation",
        f"Threshold {evaluation.threshold}, {evaluation.n_test} rows.",
        "",
        _table(evaluation.confusion),
        *figure('confusion', 'Confusion matrix'),
        _table(pd.Series({k: evaluation.metrics[k] for k in
                          ('precision', 'recall', 'specificity', 'f1_score', 'accuracy', 'auc_roc')
                          if k in evaluation.metrics}, name='value').to_frame()),
    ]
    return '\n'.join(lines)


def write_report(
    result: AnalysisResult,
    output_dir: Path,
    figures: dict[str, Path] | None = None
) -> Path:
    """Render and write the report; returns its path."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / REPORT_FILENAME
    path.write_text(render_report(result, figures), encoding='utf-8')
    logger.info(f"Report written: {path}")
    return path
