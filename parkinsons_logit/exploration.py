"""
Exploratory summaries of the observation table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd
from scipy.stats import mannwhitneyu

from .config import CORRELATION_THRESHOLD, TARGET_COL
from .data.loader import split_features_target

logger = logging.getLogger('parkinsons')


def missingness_table(df: pd.DataFrame) -> pd.DataFrame:
    """Missing count and percentage per column."""
    counts = df.isna().sum()
    return pd.DataFrame({
        'n_missing': counts.astype(int),
        'pct_missing': counts / len(df) * 100,
    })


def class_balance(df: pd.DataFrame, target_col: str = TARGET_COL) -> pd.DataFrame:
    counts = df[target_col].value_counts().sort_index()
    return pd.DataFrame({
        'count': counts.astype(int),
        'proportion': counts / counts.sum(),
    }).rename_axis(target_col)


def feature_summary(X: pd.DataFrame) -> pd.DataFrame:
    """describe() transposed, with skewness appended."""
    summary = X.describe().T
    summary['skew'] = X.skew()
    return summary


def correlation_matrix(X: pd.DataFrame, method: str = 'pearson') -> pd.DataFrame:
    return X.corr(method=method)


def high_correlation_pairs(corr: pd.DataFrame, threshold: float = CORRELATION_THRESHOLD) -> pd.DataFrame:
    """
    Tidy list of feature pairs whose absolute correlation exceeds threshold.

    Returns:
        DataFrame with feature_1, feature_2, correlation, sorted by |r| descending
    """
    cols = list(corr.columns)
    rows = [
        {'feature_1': a, 'feature_2': b, 'correlation': corr.loc[a, b]}
        for i, a in enumerate(cols)
        for b in cols[i + 1:]
        if abs(corr.loc[a, b]) > threshold
    ]
    pairs = pd.DataFrame(rows, columns=['feature_1', 'feature_2', 'correlation'])
    order = pairs['correlation'].abs().sort_values(ascending=False).index
    return pairs.loc[order].reset_index(drop=True)


def group_comparison(X: pd.DataFrame, y: pd.Series) -> pd.DataFrame:
    """Per-feature medians by class with a two-sided Mann-Whitney U test."""
    rows = []
    for col in X.columns:
        healthy = X.loc[y == 0, col]
        affected = X.loc[y == 1, col]
        stat, p_value = mannwhitneyu(healthy, affected, alternative='two-sided')
        rows.append({
            'feature': col,
            'median_healthy': healthy.median(),
            'median_parkinsons': affected.median(),
            'u_statistic': stat,
            'p_value': p_value,
        })
    return pd.DataFrame(rows).set_index('feature')


@dataclass(frozen=True)
class ExplorationSummary:
    n_rows: int
    n_features: int
    missingness: pd.DataFrame
    class_balance: pd.DataFrame
    feature_summary: pd.DataFrame
    correlation: pd.DataFrame
    high_pairs: pd.DataFrame
    group_comparison: pd.DataFrame

    @property
    def total_missing(self) -> int:
        return int(self.missingness['n_missing'].sum())


def summarize(df: pd.DataFrame, threshold: float = CORRELATION_THRESHOLD) -> ExplorationSummary:
    """Compute every exploratory table for the loaded dataset."""
    X, y = split_features_target(df)
    corr = correlation_matrix(X)
    summary = ExplorationSummary(
        n_rows=len(df),
        n_features=X.shape[1],
        missingness=missingness_table(df),
        class_balance=class_balance(df),
        feature_summary=feature_summary(X),
        correlation=corr,
        high_pairs=high_correlation_pairs(corr, threshold),
        group_comparison=group_comparison(X, y),
    )

    if summary.total_missing:
        logger.warning(f"Exploration: {summary.total_missing} missing values in table")
    balance = summary.class_balance['count'].to_dict()
    logger.info(f"Exploration: {summary.n_rows} rows, class counts={balance}, "
                f"{len(summary.high_pairs)} pairs with |r|>{threshold}")
    return summary
