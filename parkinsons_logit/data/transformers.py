"""
Custom scikit-learn transformers for feature reduction

METHODOLOGY NOTES:
- CorrelationFilter flags BOTH members of every pair above the threshold and
  keeps only unflagged features plus an explicit override list, so the
  domain-judgement step is a configuration value rather than a manual edit
- SampleStandardizer divides by the sample standard deviation (ddof=1),
  unlike sklearn's StandardScaler (ddof=0)
- All transformers preserve DataFrame structure
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

import numpy as np
from numpy.typing import ArrayLike, NDArray
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin

from ..config import CORRELATION_THRESHOLD, ID_COL

logger = logging.getLogger('parkinsons')


def _validate_dataframe(X: Any, transformer_name: str) -> None:
    """Validate input is a pandas DataFrame."""
    if not isinstance(X, pd.DataFrame):
        raise TypeError(
            f"{transformer_name} requires pandas DataFrame, "
            f"got {type(X).__name__}"
        )


def _validate_threshold(threshold: Any) -> float:
    if not isinstance(threshold, (int, float)) or isinstance(threshold, bool):
        raise TypeError(f"threshold must be numeric, got {type(threshold).__name__}")
    if not 0.0 <= float(threshold) <= 1.0:
        raise ValueError(f"threshold must be in [0, 1], got {threshold}")
    return float(threshold)


class IdentifierDropper(BaseEstimator, TransformerMixin):
    """Remove identifier columns (recording names) before modeling."""

    def __init__(self, columns: Iterable[str] = (ID_COL,)):
        self.columns = tuple(columns)

    def fit(self, X: pd.DataFrame, y: ArrayLike | None = None) -> "IdentifierDropper":
        _validate_dataframe(X, "IdentifierDropper")
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return X.drop(columns=[c for c in self.columns if c in X.columns])


class CorrelationFilter(BaseEstimator, TransformerMixin):
    """
    Remove features involved in high pairwise correlations.

    Every pair with |r| > threshold flags both of its members. Unflagged
    features are kept; flagged features listed in ``retain`` are admitted
    in order, provided they stay within the threshold against everything
    already kept.

    Args:
        threshold: Absolute correlation bound (default 0.6)
        retain: Override list of features to keep despite being flagged
        method: Correlation method passed to DataFrame.corr

    Raises:
        TypeError: If input is not a pandas DataFrame
        ValueError: If threshold is not in [0, 1] or ``retain`` names an
            unknown column
    """

    def __init__(
        self,
        threshold: float = CORRELATION_THRESHOLD,
        retain: Iterable[str] | None = None,
        method: str = 'pearson'
    ):
        self.threshold = _validate_threshold(threshold)
        self.retain = tuple(retain) if retain is not None else None
        self.method = method
        self.corr_matrix_: pd.DataFrame | None = None
        self.high_pairs_: pd.DataFrame | None = None
        self.flagged_: list[str] | None = None
        self.features_to_keep_: list[str] | None = None
        self.rejected_overrides_: list[str] | None = None

    def fit(self, X: pd.DataFrame, y: ArrayLike | None = None) -> "CorrelationFilter":
        _validate_dataframe(X, "CorrelationFilter")

        unknown = [c for c in (self.retain or ()) if c not in X.columns]
        if unknown:
            raise ValueError(f"retain names unknown columns: {unknown}")

        corr = X.corr(method=self.method)
        abs_corr = corr.abs()
        self.corr_matrix_ = corr

        cols = list(X.columns)
        pairs = []
        for i, a in enumerate(cols):
            for b in cols[i + 1:]:
                if abs_corr.loc[a, b] > self.threshold:
                    pairs.append({'feature_1': a, 'feature_2': b,
                                  'correlation': corr.loc[a, b]})
        self.high_pairs_ = (
            pd.DataFrame(pairs, columns=['feature_1', 'feature_2', 'correlation'])
            .assign(abs_correlation=lambda d: d['correlation'].abs())
            .sort_values('abs_correlation', ascending=False)
            .reset_index(drop=True)
        )

        flagged = set(self.high_pairs_['feature_1']) | set(self.high_pairs_['feature_2'])
        self.flagged_ = [c for c in cols if c in flagged]

        keep = [c for c in cols if c not in flagged]
        rejected = []
        for feature in self.retain or ():
            if feature in keep:
                continue
            if keep and (abs_corr.loc[feature, keep] > self.threshold).any():
                rejected.append(feature)
                continue
            keep.append(feature)

        if rejected:
            logger.warning(f"  CorrelationFilter: override(s) {rejected} exceed "
                           f"|r| > {self.threshold} against kept features; not retained")

        # Preserve original column order
        self.features_to_keep_ = [c for c in cols if c in keep]
        self.rejected_overrides_ = rejected

        logger.info(f"  CorrelationFilter (|r|>{self.threshold}): {len(self.high_pairs_)} pairs, "
                    f"{len(self.flagged_)} flagged, kept {len(self.features_to_keep_)}/{len(cols)}")
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return X[self.features_to_keep_]

    def get_feature_names_out(self, input_features: ArrayLike | None = None) -> NDArray:
        """Return feature names for sklearn 1.1+ compatibility."""
        return np.array(self.features_to_keep_)


class SampleStandardizer(BaseEstimator, TransformerMixin):
    """
    Center to zero mean and scale to unit sample standard deviation.

    Raises:
        ValueError: If a column has zero (or undefined) standard deviation
    """

    def __init__(self):
        self.mean_: pd.Series | None = None
        self.scale_: pd.Series | None = None

    def fit(self, X: pd.DataFrame, y: ArrayLike | None = None) -> "SampleStandardizer":
        _validate_dataframe(X, "SampleStandardizer")
        scale = X.std(ddof=1)
        bad = scale.index[~(scale > 0)].tolist()
        if bad:
            raise ValueError(f"Cannot standardize zero-variance columns: {bad}")
        self.mean_ = X.mean()
        self.scale_ = scale
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        _validate_dataframe(X, "SampleStandardizer")
        cols = list(self.mean_.index)
        return (X[cols] - self.mean_) / self.scale_

    def get_feature_names_out(self, input_features: ArrayLike | None = None) -> NDArray:
        return np.array(self.mean_.index)


class DataFrameWrapper(BaseEstimator, TransformerMixin):
    """
    Wrap sklearn transformers to preserve DataFrame structure.

    Many sklearn transformers (SimpleImputer, StandardScaler) return numpy
    arrays. This wrapper keeps column names and the row index.
    """

    def __init__(self, transformer: BaseEstimator):
        self.transformer = transformer
        self.feature_names_: list[str] | None = None

    def fit(self, X: pd.DataFrame, y: ArrayLike | None = None) -> "DataFrameWrapper":
        self.feature_names_ = X.columns.tolist()
        self.transformer.fit(X, y)
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        X_transformed = self.transformer.transform(X)
        return pd.DataFrame(X_transformed, columns=self.feature_names_, index=X.index)

    def get_feature_names_out(self, input_features: ArrayLike | None = None) -> NDArray:
        """Return feature names for sklearn 1.1+ compatibility."""
        return np.array(self.feature_names_)


@dataclass(frozen=True)
class FeatureReduction:
    """Outcome of the correlation filter plus standardization."""
    features: list[str]
    flagged: list[str]
    high_pairs: pd.DataFrame
    corr_matrix: pd.DataFrame
    rejected_overrides: list[str]
    standardizer: SampleStandardizer


def reduce_features(
    X: pd.DataFrame,
    threshold: float = CORRELATION_THRESHOLD,
    retain: Iterable[str] | None = None,
    fit_rows: pd.Index | None = None
) -> tuple[pd.DataFrame, FeatureReduction]:
    """
    Filter correlated features and standardize the survivors.

    Args:
        X: Measurement matrix (identifier and response already removed)
        threshold: Absolute correlation bound
        retain: Override list of flagged features to keep
        fit_rows: Rows used to estimate mean/SD. None uses every row, which
            matches the reference analysis but lets test rows inform scaling.

    Returns:
        Tuple of (standardized reduced matrix for all rows, FeatureReduction)
    """
    corr_filter = CorrelationFilter(threshold=threshold, retain=retain)
    X_reduced = corr_filter.fit_transform(X)

    standardizer = SampleStandardizer()
    standardizer.fit(X_reduced if fit_rows is None else X_reduced.loc[fit_rows])
    X_scaled = standardizer.transform(X_reduced)

    reduction = FeatureReduction(
        features=list(corr_filter.features_to_keep_),
        flagged=list(corr_filter.flagged_),
        high_pairs=corr_filter.high_pairs_,
        corr_matrix=corr_filter.corr_matrix_,
        rejected_overrides=list(corr_filter.rejected_overrides_),
        standardizer=standardizer,
    )
    return X_scaled, reduction
