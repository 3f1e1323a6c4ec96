"""
Model evaluation utilities.
"""

from .metrics import (
    unpack_confusion_matrix,
    confusion_frame,
    evaluate_model,
    evaluate_at_threshold,
    EvaluationResult,
    evaluate_holdout,
)

__all__ = [
    'unpack_confusion_matrix',
    'confusion_frame',
    'evaluate_model',
    'evaluate_at_threshold',
    'EvaluationResult',
    'evaluate_holdout',
]
