"""
Held-out evaluation metrics for the selected logistic model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray
from sklearn.metrics import (
    accuracy_score, confusion_matrix, f1_score, precision_score,
    recall_score, roc_auc_score,
)

from ..config import DEFAULT_CLASSIFICATION_THRESHOLD, TARGET_COL
from ..models.fitting import FittedModel

logger = logging.getLogger('parkinsons')

CLASS_LABELS = ('healthy', 'parkinsons')


def unpack_confusion_matrix(y_true: ArrayLike, y_pred: ArrayLike) -> tuple[int, int, int, int]:
    """(tn, fp, fn, tp) with healthy=0 as the negative class, even if one class is absent."""
    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
    return int(tn), int(fp), int(fn), int(tp)


def confusion_frame(y_true: ArrayLike, y_pred: ArrayLike) -> pd.DataFrame:
    """Confusion matrix with labelled actual (rows) and predicted (columns) classes."""
    cm = confusion_matrix(y_true, y_pred, labels=[0, 1])
    return pd.DataFrame(
        cm,
        index=pd.Index([f"actual_{c}" for c in CLASS_LABELS], name='actual'),
        columns=pd.Index([f"predicted_{c}" for c in CLASS_LABELS], name='predicted'),
    )


def evaluate_model(
    y_true: ArrayLike,
    y_pred: ArrayLike,
    y_pred_proba: ArrayLike | None = None,
    model_name: str = "Model"
) -> dict[str, Any]:
    """
    Classification metrics with respect to the positive class.

    Args:
        y_true: Observed status (0 healthy, 1 Parkinson's)
        y_pred: Predicted status
        y_pred_proba: Fitted P(status = 1); enables AUC-ROC
        model_name: Label used in log messages

    Returns:
        dict with precision, recall, specificity, f1_score, accuracy and,
        when probabilities are given, auc_roc
    """
    tn, fp, fn, tp = unpack_confusion_matrix(y_true, y_pred)

    results = {
        'model': model_name,
        'precision': precision_score(y_true, y_pred, zero_division=0),
        'recall': recall_score(y_true, y_pred, zero_division=0),
        'specificity': tn / (tn + fp) if (tn + fp) > 0 else 0.0,
        'f1_score': f1_score(y_true, y_pred, zero_division=0),
        'accuracy': accuracy_score(y_true, y_pred),
        'tn': tn, 'fp': fp, 'fn': fn, 'tp': tp,
    }

    if y_pred_proba is not None:
        proba_arr = np.asarray(y_pred_proba, dtype=float)
        if ((proba_arr < 0) | (proba_arr > 1)).any():
            logger.warning(f"{model_name}: probabilities outside [0, 1], AUC-ROC unreliable")
        if len(np.unique(y_true)) == 2:
            results['auc_roc'] = roc_auc_score(y_true, proba_arr)
        else:
            logger.warning(f"{model_name}: single class in y_true, AUC-ROC undefined")
            results['auc_roc'] = float('nan')

    return results


def evaluate_at_threshold(
    y_true: ArrayLike,
    y_proba: ArrayLike,
    threshold: float = DEFAULT_CLASSIFICATION_THRESHOLD
) -> dict[str, Any]:
    """Threshold probabilities (>= threshold is positive) and evaluate."""
    y_pred = (np.asarray(y_proba) >= threshold).astype(int)
    return evaluate_model(y_true, y_pred, y_proba, f"threshold={threshold:.3f}")


@dataclass(frozen=True)
class EvaluationResult:
    threshold: float
    y_true: NDArray
    y_proba: NDArray
    y_pred: NDArray
    confusion: pd.DataFrame
    metrics: dict[str, Any]

    @property
    def n_test(self) -> int:
        return len(self.y_true)


def evaluate_holdout(
    model: FittedModel,
    test: pd.DataFrame,
    threshold: float = DEFAULT_CLASSIFICATION_THRESHOLD,
    target_col: str = TARGET_COL
) -> EvaluationResult:
    """
    One-shot evaluation of a fitted model on the held-out partition.

    Raises:
        ValueError: If threshold is not in (0, 1) or the test set is empty
    """
    if not 0.0 < threshold < 1.0:
        raise ValueError(f"threshold must be in (0, 1), got {threshold}")
    if test.empty:
        raise ValueError("Test partition is empty")

    y_true = test[target_col].to_numpy(dtype=int)
    y_proba = model.predict(test)
    y_pred = (y_proba >= threshold).astype(int)

    metrics = evaluate_model(y_true, y_pred, y_proba, str(model.formula))
    result = EvaluationResult(
        threshold=threshold,
        y_true=y_true,
        y_proba=y_proba,
        y_pred=y_pred,
        confusion=confusion_frame(y_true, y_pred),
        metrics=metrics,
    )
    logger.info(f"Held-out ({result.n_test} rows, threshold={threshold}): "
                f"precision={metrics['precision']:.3f}, recall={metrics['recall']:.3f}, "
                f"F1={metrics['f1_score']:.3f}")
    return result
