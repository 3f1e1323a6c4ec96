"""
Visualization utilities.
"""

from .plots import (
    finalize_figure,
    plot_class_balance,
    plot_correlation_heatmap,
    plot_feature_boxplots,
    plot_logit_linearity,
    plot_cooks_distance,
    half_normal_quantiles,
    plot_half_normal,
    plot_vif,
    plot_confusion_matrix,
)

__all__ = [
    'finalize_figure',
    'plot_class_balance',
    'plot_correlation_heatmap',
    'plot_feature_boxplots',
    'plot_logit_linearity',
    'plot_cooks_distance',
    'half_normal_quantiles',
    'plot_half_normal',
    'plot_vif',
    'plot_confusion_matrix',
]
