"""
Post-selection diagnostics for the logistic model.

Each check reports a verdict and a table; none of them alters the model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from statsmodels.nonparametric.smoothers_lowess import lowess
from statsmodels.stats.outliers_influence import variance_inflation_factor

from .config import (
    AnalysisConfig, COOKS_TOP_K, LINEARITY_MIN_DEPARTURE, LINEARITY_MIN_R2, LOWESS_FRAC,
    RESIDUAL_OUTLIER_BOUND, SIGNIFICANCE_LEVEL, VIF_THRESHOLD,
)
from .models.fitting import FittedModel

logger = logging.getLogger('parkinsons')

_PROB_CLIP = 1e-6


@dataclass(frozen=True)
class DiagnosticResult:
    name: str
    passed: bool
    flagged: list[Any]
    table: pd.DataFrame
    details: dict[str, Any] = field(default_factory=dict)


def empirical_logit(probabilities: np.ndarray) -> np.ndarray:
    p = np.clip(np.asarray(probabilities, dtype=float), _PROB_CLIP, 1 - _PROB_CLIP)
    return np.log(p / (1 - p))


def _straightness(x: np.ndarray, y: np.ndarray) -> tuple[float, float, float]:
    """R^2, slope and RMS residual of a least-squares line through (x, y)."""
    slope, intercept = np.polyfit(x, y, 1)
    ss_res = float(np.sum((y - (slope * x + intercept)) ** 2))
    rms = float(np.sqrt(ss_res / len(y)))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    if ss_tot == 0.0:
        return 1.0, float(slope), rms
    return 1.0 - ss_res / ss_tot, float(slope), rms


def check_linearity(
    model: FittedModel,
    data: pd.DataFrame,
    frac: float = LOWESS_FRAC,
    min_r2: float = LINEARITY_MIN_R2,
    min_departure: float = LINEARITY_MIN_DEPARTURE
) -> DiagnosticResult:
    """
    Linearity of each continuous main effect against the logit.

    The fitted logit is smoothed against the predictor with LOWESS. A smooth
    that a straight line explains poorly (R^2 < min_r2) and that bends by
    more than min_departure logit standard deviations is flagged.
    """
    logit = empirical_logit(model.predict(data))
    logit_sd = float(np.std(logit)) or 1.0
    predictors = [p for p in model.formula.main_effects if data[p].nunique() > 2]

    rows = []
    curves = {}
    for predictor in predictors:
        x = data[predictor].to_numpy(dtype=float)
        smooth = lowess(logit, x, frac=frac, return_sorted=True)
        r2, slope, rms = _straightness(smooth[:, 0], smooth[:, 1])
        departure = rms / logit_sd
        rows.append({'predictor': predictor, 'smooth_r2': r2, 'slope': slope,
                     'departure': departure,
                     'nonlinear': r2 < min_r2 and departure > min_departure})
        curves[predictor] = {'x': x, 'logit': logit, 'smooth': smooth}

    table = pd.DataFrame(
        rows, columns=['predictor', 'smooth_r2', 'slope', 'departure', 'nonlinear']
    ).set_index('predictor')
    flagged = table.index[table['nonlinear'].astype(bool)].tolist()

    if flagged:
        logger.warning(f"Linearity: non-linear logit relationship for {flagged}")
    else:
        logger.info(f"Linearity: {len(predictors)} predictors look linear in the logit")
    return DiagnosticResult('linearity', not flagged, flagged, table, {'curves': curves})


def check_influence(
    model: FittedModel,
    top_k: int = COOKS_TOP_K,
    residual_bound: float = RESIDUAL_OUTLIER_BOUND
) -> DiagnosticResult:
    """
    Cook's distance and studentized residuals per observation.

    The top_k Cook's distances are reported as the most influential rows;
    |studentized residual| > residual_bound marks an outlier candidate and
    fails the check.
    """
    influence = model.result.get_influence()
    index = model.result.fittedvalues.index
    table = pd.DataFrame({
        'cooks_d': np.asarray(influence.cooks_distance[0]),
        'studentized_resid': np.asarray(influence.resid_studentized),
        'leverage': np.asarray(influence.hat_matrix_diag),
    }, index=index)

    top = table['cooks_d'].nlargest(top_k).index.tolist()
    outliers = table.index[table['studentized_resid'].abs() > residual_bound].tolist()
    table['top_cooks'] = table.index.isin(top)
    table['outlier'] = table.index.isin(outliers)

    flagged = list(dict.fromkeys(top + outliers))
    if outliers:
        logger.warning(f"Influence: {len(outliers)} rows with |studentized residual| > {residual_bound}")
    logger.info(f"Influence: max Cook's D={table['cooks_d'].max():.4f} (rows {top})")
    return DiagnosticResult('influence', not outliers, flagged, table,
                            {'top_cooks': top, 'outliers': outliers})


def check_multicollinearity(
    model: FittedModel,
    threshold: float = VIF_THRESHOLD
) -> DiagnosticResult:
    """VIF for every non-intercept column of the design matrix."""
    exog = np.asarray(model.result.model.exog, dtype=float)
    names = list(model.result.model.exog_names)

    rows = [
        {'term': name, 'vif': float(variance_inflation_factor(exog, i))}
        for i, name in enumerate(names) if name != 'Intercept'
    ]
    table = pd.DataFrame(rows, columns=['term', 'vif']).set_index('term')
    table['high'] = table['vif'] > threshold
    flagged = table.index[table['high'].astype(bool)].tolist()

    if flagged:
        logger.warning(f"Multicollinearity: VIF > {threshold} for {flagged}")
    elif not table.empty:
        logger.info(f"Multicollinearity: max VIF={table['vif'].max():.2f}")
    return DiagnosticResult('multicollinearity', not flagged, flagged, table)


def odds_ratio_table(model: FittedModel, alpha: float = SIGNIFICANCE_LEVEL) -> pd.DataFrame:
    return model.odds_ratios(alpha)


@dataclass(frozen=True)
class Diagnostics:
    linearity: DiagnosticResult
    influence: DiagnosticResult
    multicollinearity: DiagnosticResult
    odds_ratios: pd.DataFrame

    @property
    def checks(self) -> list[DiagnosticResult]:
        return [self.linearity, self.influence, self.multicollinearity]

    @property
    def all_passed(self) -> bool:
        return all(c.passed for c in self.checks)

    def verdicts(self) -> pd.DataFrame:
        return pd.DataFrame([
            {'check': c.name, 'passed': c.passed, 'n_flagged': len(c.flagged)}
            for c in self.checks
        ]).set_index('check')


def run_diagnostics(
    model: FittedModel,
    data: pd.DataFrame,
    config: AnalysisConfig | None = None
) -> Diagnostics:
    """Run every check on the selected model, using its fitting data."""
    config = config or AnalysisConfig()
    return Diagnostics(
        linearity=check_linearity(model, data, config.lowess_frac, config.linearity_min_r2),
        influence=check_influence(model, config.cooks_top_k, config.residual_bound),
        multicollinearity=check_multicollinearity(model, config.vif_threshold),
        odds_ratios=odds_ratio_table(model, config.alpha),
    )
