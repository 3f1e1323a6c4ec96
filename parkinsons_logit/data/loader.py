"""
Data loading and partitioning for the Parkinson's voice dataset
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.impute import SimpleImputer
from sklearn.model_selection import train_test_split

from ..config import (
    DEFAULT_DATA_PATH, ID_COL, TARGET_COL, RANDOM_STATE, TEST_SIZE,
    MISSING_POLICIES, MissingPolicy,
)
from ..exceptions import DataSourceError, DataValidationError
from .transformers import DataFrameWrapper, IdentifierDropper

logger = logging.getLogger('parkinsons')

# Raw column names as published by UCI, grouped by measurement family
RAW_FEATURE_GROUPS = {
    'frequency': ['MDVP:Fo(Hz)', 'MDVP:Fhi(Hz)', 'MDVP:Flo(Hz)'],
    'jitter': ['MDVP:Jitter(%)', 'MDVP:Jitter(Abs)', 'MDVP:RAP', 'MDVP:PPQ', 'Jitter:DDP'],
    'shimmer': ['MDVP:Shimmer', 'MDVP:Shimmer(dB)', 'Shimmer:APQ3', 'Shimmer:APQ5',
                'MDVP:APQ', 'Shimmer:DDA'],
    'noise': ['NHR', 'HNR'],
    'nonlinear': ['RPDE', 'DFA', 'spread1', 'spread2', 'D2', 'PPE'],
}

RAW_FEATURE_COLS = [c for group in RAW_FEATURE_GROUPS.values() for c in group]


def clean_column_name(name: str) -> str:
    """'MDVP:Fo(Hz)' -> 'MDVP_Fo_Hz'. Safe to use inside a model formula."""
    cleaned = re.sub(r'[^0-9a-zA-Z]+', '_', str(name)).strip('_')
    if not cleaned:
        raise ValueError(f"Column name '{name}' has no usable characters")
    if cleaned[0].isdigit():
        cleaned = f"x_{cleaned}"
    return cleaned


def clean_column_names(columns: list[str]) -> dict[str, str]:
    """
    Map raw column names to formula-safe identifiers.

    Raises:
        ValueError: If two raw names collapse onto the same identifier
    """
    mapping = {col: clean_column_name(col) for col in columns}
    seen: dict[str, str] = {}
    for raw, clean in mapping.items():
        if clean in seen:
            raise ValueError(
                f"Columns '{seen[clean]}' and '{raw}' both map to '{clean}'"
            )
        seen[clean] = raw
    return mapping


FEATURE_NAME_MAP = clean_column_names(RAW_FEATURE_COLS)
FEATURE_COLS = list(FEATURE_NAME_MAP.values())
FEATURE_GROUPS = {
    group: [FEATURE_NAME_MAP[c] for c in cols]
    for group, cols in RAW_FEATURE_GROUPS.items()
}


def _read_csv(source: str | Path) -> pd.DataFrame:
    source_str = str(source)
    is_url = source_str.startswith(('http://', 'https://'))

    if not is_url and not Path(source).exists():
        raise FileNotFoundError(
            f"Dataset not found at {source}\n"
            "Download parkinsons.data from the UCI repository into data/raw/ "
            "or pass its URL with --data."
        )

    try:
        return pd.read_csv(source, encoding='utf-8')
    except pd.errors.EmptyDataError as e:
        raise DataValidationError(f"Dataset is empty: {source}") from e
    except pd.errors.ParserError as e:
        raise DataValidationError(f"Dataset has invalid format: {e}") from e
    except OSError as e:
        raise DataSourceError(f"Cannot read dataset from {source}: {e}") from e


def _apply_missing_policy(df: pd.DataFrame, policy: MissingPolicy) -> pd.DataFrame:
    missing = df.isna().sum()
    missing = missing[missing > 0]
    if missing.empty:
        return df

    if policy == 'reject':
        raise DataValidationError(
            f"Dataset has {int(missing.sum())} missing values "
            f"({', '.join(f'{c}={n}' for c, n in missing.items())}). "
            "Use missing_policy='impute' to fill them with column medians."
        )

    if TARGET_COL in missing.index or ID_COL in missing.index:
        raise DataValidationError(
            f"Cannot impute missing '{TARGET_COL}' or '{ID_COL}' values"
        )

    logger.warning(f"Imputing {int(missing.sum())} missing values with column medians "
                   f"in {len(missing)} columns")
    imputer = DataFrameWrapper(SimpleImputer(strategy='median'))
    imputed = imputer.fit_transform(df[FEATURE_COLS])
    return df.assign(**{col: imputed[col] for col in FEATURE_COLS})


def validate_schema(df: pd.DataFrame) -> pd.DataFrame:
    """
    Check the cleaned table has the identifier, a binary response and the
    22 measurement columns, and coerce their dtypes.

    Raises:
        DataValidationError: On missing columns, non-numeric measurements or
            response values outside {0, 1}
    """
    if df.empty:
        raise DataValidationError("Dataset has no data rows")

    required = [ID_COL, TARGET_COL, *FEATURE_COLS]
    missing_cols = [c for c in required if c not in df.columns]
    if missing_cols:
        raise DataValidationError(f"Dataset is missing columns: {missing_cols}")

    extra = [c for c in df.columns if c not in required]
    if extra:
        logger.warning(f"Ignoring unexpected columns: {extra}")

    out = df[required].copy()
    try:
        out[FEATURE_COLS] = out[FEATURE_COLS].apply(pd.to_numeric).astype(float)
    except (ValueError, TypeError) as e:
        raise DataValidationError(f"Non-numeric measurement values: {e}") from e

    labels = set(pd.unique(out[TARGET_COL].dropna()))
    if not labels.issubset({0, 1}):
        raise DataValidationError(
            f"Unexpected '{TARGET_COL}' values: {sorted(labels)}. Expected: [0, 1]"
        )
    return out


def load_parkinsons(
    source: str | Path | None = None,
    missing_policy: MissingPolicy = 'reject'
) -> pd.DataFrame:
    """
    Load the Parkinson's voice dataset.

    Args:
        source: Local path or http(s) URL of the comma-delimited CSV.
            Defaults to data/raw/parkinsons.data under the project root.
        missing_policy: 'reject' raises on any missing value, 'impute' fills
            measurement columns with their median.

    Returns:
        DataFrame with formula-safe column names: 'name', 'status' and the
        22 measurement columns

    Raises:
        FileNotFoundError: If a local source does not exist
        DataValidationError: If the file is empty, malformed or violates the
            schema or the missing-value policy
        DataSourceError: If a URL or file cannot be read (network, permissions)
    """
    if missing_policy not in MISSING_POLICIES:
        raise ValueError(
            f"missing_policy must be one of {MISSING_POLICIES}, got '{missing_policy}'"
        )

    source = DEFAULT_DATA_PATH if source is None else source
    raw = _read_csv(source)
    raw = raw.rename(columns=clean_column_names(list(raw.columns)))

    df = validate_schema(raw)
    df = _apply_missing_policy(df, missing_policy)
    df[TARGET_COL] = df[TARGET_COL].astype(int)

    logger.info(f"Loaded dataset: {df.shape[0]} rows, {len(FEATURE_COLS)} features, "
                f"positive rate={df[TARGET_COL].mean():.1%}")
    return df


def split_features_target(df: pd.DataFrame) -> tuple[pd.DataFrame, pd.Series]:
    """Drop the identifier and separate the measurement matrix from the response."""
    X = IdentifierDropper((ID_COL, TARGET_COL)).fit_transform(df)
    y = df[TARGET_COL].copy()
    return X, y


@dataclass(frozen=True)
class Partition:
    """Disjoint train/test row sets of one table."""
    train: pd.DataFrame
    test: pd.DataFrame

    @property
    def train_index(self) -> pd.Index:
        return self.train.index

    @property
    def test_index(self) -> pd.Index:
        return self.test.index

    @property
    def train_fraction(self) -> float:
        return len(self.train) / (len(self.train) + len(self.test))


def stratified_split(
    df: pd.DataFrame,
    test_size: float = TEST_SIZE,
    random_state: int = RANDOM_STATE,
    target_col: str = TARGET_COL
) -> Partition:
    """
    Deterministic stratified train/test partition.

    The same seed and test_size always give the same row sets. With 195 rows
    and test_size=0.2 the test partition has 39 rows (rounded up).
    """
    if not 0.0 < test_size < 1.0:
        raise ValueError(f"test_size must be in (0, 1), got {test_size}")

    train_idx, test_idx = train_test_split(
        df.index.to_numpy(),
        test_size=test_size,
        random_state=random_state,
        stratify=df[target_col],
    )
    partition = Partition(train=df.loc[np.sort(train_idx)].copy(),
                          test=df.loc[np.sort(test_idx)].copy())

    logger.info(f"Split: train={len(partition.train)} test={len(partition.test)} "
                f"(positive rate train={partition.train[target_col].mean():.1%}, "
                f"test={partition.test[target_col].mean():.1%})")
    return partition
