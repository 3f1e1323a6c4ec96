"""
Data loading and transformation utilities.
"""

from .loader import (
    load_parkinsons,
    validate_schema,
    clean_column_name,
    clean_column_names,
    split_features_target,
    stratified_split,
    Partition,
    FEATURE_COLS,
    FEATURE_GROUPS,
    FEATURE_NAME_MAP,
)
from .transformers import (
    IdentifierDropper,
    CorrelationFilter,
    SampleStandardizer,
    DataFrameWrapper,
    FeatureReduction,
    reduce_features,
)

__all__ = [
    'load_parkinsons',
    'validate_schema',
    'clean_column_name',
    'clean_column_names',
    'split_features_target',
    'stratified_split',
    'Partition',
    'FEATURE_COLS',
    'FEATURE_GROUPS',
    'FEATURE_NAME_MAP',
    'IdentifierDropper',
    'CorrelationFilter',
    'SampleStandardizer',
    'DataFrameWrapper',
    'FeatureReduction',
    'reduce_features',
]
