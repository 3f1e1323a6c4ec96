"""
Binomial GLM (logit link) fitting with statsmodels.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from numpy.typing import NDArray
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from ..exceptions import ConvergenceError
from .formula import ModelFormula

logger = logging.getLogger('parkinsons')

# Fitted probabilities closer than this to 0 or 1 count as quasi-separation
_SEPARATION_EPS = 1e-8


@dataclass(frozen=True)
class FittedModel:
    """Immutable snapshot of one logistic fit: formula plus statsmodels results."""
    formula: ModelFormula
    result: Any

    @property
    def log_likelihood(self) -> float:
        return float(self.result.llf)

    @property
    def deviance(self) -> float:
        return float(self.result.deviance)

    @property
    def df_resid(self) -> float:
        return float(self.result.df_resid)

    @property
    def n_params(self) -> int:
        return len(self.result.params)

    @property
    def n_obs(self) -> int:
        return int(self.result.nobs)

    @property
    def aic(self) -> float:
        return -2.0 * self.log_likelihood + 2.0 * self.n_params

    @property
    def params(self) -> pd.Series:
        return self.result.params

    @property
    def bse(self) -> pd.Series:
        return self.result.bse

    @property
    def pvalues(self) -> pd.Series:
        return self.result.pvalues

    @property
    def fitted_probabilities(self) -> NDArray:
        return np.asarray(self.result.fittedvalues)

    def predict(self, data: pd.DataFrame) -> NDArray:
        """Predicted probability of the positive class for new rows."""
        return np.asarray(self.result.predict(data))

    def summary_frame(self) -> pd.DataFrame:
        """Coefficient, standard error, z statistic and p-value per term."""
        return pd.DataFrame({
            'coef': self.result.params,
            'std_err': self.result.bse,
            'z': self.result.tvalues,
            'p_value': self.result.pvalues,
        })

    def odds_ratios(self, alpha: float = 0.05) -> pd.DataFrame:
        """exp(coef) with Wald (1 - alpha) confidence interval."""
        ci = self.result.conf_int(alpha=alpha)
        level = f"{(1 - alpha) * 100:g}%"
        return pd.DataFrame({
            'odds_ratio': np.exp(self.result.params),
            f'ci_lower_{level}': np.exp(ci.iloc[:, 0]),
            f'ci_upper_{level}': np.exp(ci.iloc[:, 1]),
            'p_value': self.result.pvalues,
        })


def fit_logit(
    formula: ModelFormula,
    data: pd.DataFrame,
    maxiter: int = 100
) -> FittedModel:
    """
    Fit a logistic regression by IRLS.

    Args:
        formula: Model formula (response must be coded 0/1)
        data: Table holding the response and every predictor in the formula
        maxiter: IRLS iteration cap

    Returns:
        FittedModel snapshot

    Raises:
        ConvergenceError: If IRLS does not converge or the data are perfectly
            separated
        KeyError: If the formula references a column not in ``data``
    """
    missing = [v for v in (formula.response, *formula.variables) if v not in data.columns]
    if missing:
        raise KeyError(f"Columns not in data: {missing}")

    patsy_formula = formula.to_patsy()
    model = smf.glm(patsy_formula, data=data, family=sm.families.Binomial())

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        try:
            result = model.fit(maxiter=maxiter)
        except PerfectSeparationError as e:
            raise ConvergenceError(patsy_formula, f"perfect separation ({e})") from e
        except np.linalg.LinAlgError as e:
            raise ConvergenceError(patsy_formula, f"singular design ({e})") from e

    for w in caught:
        if issubclass(w.category, PerfectSeparationWarning):
            raise ConvergenceError(patsy_formula, "perfect separation detected")
    if not getattr(result, 'converged', True):
        raise ConvergenceError(patsy_formula, f"IRLS did not converge in {maxiter} iterations")
    if any(issubclass(w.category, ConvergenceWarning) for w in caught):
        logger.warning(f"Convergence warning while fitting '{patsy_formula}'")

    fitted = np.asarray(result.fittedvalues)
    n_extreme = int(((fitted < _SEPARATION_EPS) | (fitted > 1 - _SEPARATION_EPS)).sum())
    if n_extreme:
        logger.warning(f"'{patsy_formula}': {n_extreme} fitted probabilities numerically 0 or 1")

    logger.debug(f"Fitted '{patsy_formula}': llf={result.llf:.4f}, k={len(result.params)}")
    return FittedModel(formula=formula, result=result)
