"""
Nested model comparison by analysis of deviance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import combinations

import numpy as np
import pandas as pd
from scipy.stats import chi2

from ..config import SIGNIFICANCE_LEVEL
from ..exceptions import ComparisonNotApplicable
from .fitting import FittedModel

logger = logging.getLogger('parkinsons')


@dataclass(frozen=True)
class NestedComparison:
    """Deviance-difference chi-squared test between two nested models."""
    smaller: FittedModel
    larger: FittedModel
    statistic: float
    df: int
    p_value: float
    alpha: float = SIGNIFICANCE_LEVEL

    @property
    def prefer_smaller(self) -> bool:
        """Fail to reject -> the simpler model is an adequate fit."""
        return self.p_value >= self.alpha


def _order_nested(a: FittedModel, b: FittedModel) -> tuple[FittedModel, FittedModel]:
    if a.n_obs != b.n_obs:
        raise ComparisonNotApplicable(
            f"Models fitted on different data ({a.n_obs} vs {b.n_obs} rows)"
        )
    if a.formula.same_terms(b.formula):
        raise ComparisonNotApplicable(
            f"Models have identical terms ({a.formula}); degrees of freedom difference is 0"
        )
    if a.formula.is_nested_in(b.formula):
        return a, b
    if b.formula.is_nested_in(a.formula):
        return b, a
    raise ComparisonNotApplicable(f"Models are not nested: '{a.formula}' vs '{b.formula}'")


def compare_nested(
    a: FittedModel,
    b: FittedModel,
    alpha: float = SIGNIFICANCE_LEVEL
) -> NestedComparison:
    """
    Compare two nested models regardless of argument order.

    statistic = deviance(smaller) - deviance(larger),
    df = df_resid(smaller) - df_resid(larger).

    Raises:
        ComparisonNotApplicable: If the models are identical, not nested,
            fitted on different rows, or the df difference is not positive
    """
    smaller, larger = _order_nested(a, b)
    df = int(round(smaller.df_resid - larger.df_resid))
    if df <= 0:
        raise ComparisonNotApplicable(
            f"Degrees of freedom difference is {df} for '{smaller.formula}' vs '{larger.formula}'"
        )
    statistic = max(smaller.deviance - larger.deviance, 0.0)
    p_value = float(chi2.sf(statistic, df))
    return NestedComparison(smaller, larger, statistic, df, p_value, alpha)


def anova_table(models: list[FittedModel] | dict[str, FittedModel]) -> pd.DataFrame:
    """
    Sequential analysis-of-deviance table.

    Each row after the first tests that model against the previous one.
    Consecutive pairs that cannot be compared get NaN test columns.
    """
    if isinstance(models, dict):
        names, fitted = list(models.keys()), list(models.values())
    else:
        names, fitted = [f"model_{i + 1}" for i in range(len(models))], list(models)

    rows = []
    for i, model in enumerate(fitted):
        row = {
            'model': names[i],
            'formula': str(model.formula),
            'resid_df': model.df_resid,
            'resid_dev': model.deviance,
            'df': np.nan,
            'deviance': np.nan,
            'p_value': np.nan,
        }
        if i > 0:
            try:
                comparison = compare_nested(fitted[i - 1], model)
            except ComparisonNotApplicable as e:
                logger.debug(f"ANOVA row {names[i]}: {e}")
            else:
                row.update(df=comparison.df, deviance=comparison.statistic,
                           p_value=comparison.p_value)
        rows.append(row)
    return pd.DataFrame(rows).set_index('model')


@dataclass(frozen=True)
class ModelSelection:
    """Final choice among candidate models."""
    final_name: str
    final: FittedModel
    comparisons: pd.DataFrame
    procedures_agree: bool | None
    reference: str | None = None


def select_final_model(
    candidates: dict[str, FittedModel],
    alpha: float = SIGNIFICANCE_LEVEL,
    reference: str | None = None,
    lrt_name: str = 'lrt',
    aic_name: str = 'aic'
) -> ModelSelection:
    """
    Pick the simplest candidate statistically indistinguishable from the
    reference model.

    Every pair of candidates is compared. A candidate is rejected when it is
    the smaller model of a comparison with p < alpha. Apart from the
    reference, a candidate is only eligible once it has been the smaller
    model of at least one applicable comparison and was not rejected; a
    candidate that nests with nothing is never chosen. Among eligible models
    the one with fewest parameters wins (ties broken by AIC).

    Args:
        candidates: Named fitted models (same rows)
        alpha: Significance level of the deviance tests
        reference: Candidate every other one should be nested in (usually
            the largest model searched). Defaults to the candidate with the
            most parameters.

    Raises:
        ValueError: If no candidates are given or ``reference`` is unknown
    """
    if not candidates:
        raise ValueError("No candidate models to select from")
    if reference is None:
        reference = max(candidates, key=lambda n: candidates[n].n_params)
    elif reference not in candidates:
        raise ValueError(f"Reference '{reference}' is not a candidate")

    rows = []
    rejected: set[str] = set()
    tested: set[str] = set()
    for name_a, name_b in combinations(candidates, 2):
        a, b = candidates[name_a], candidates[name_b]
        try:
            result = compare_nested(a, b, alpha)
        except ComparisonNotApplicable as e:
            rows.append({'smaller': name_a, 'larger': name_b, 'df': np.nan,
                         'statistic': np.nan, 'p_value': np.nan,
                         'decision': 'not applicable', 'note': str(e)})
            continue

        small_name, large_name = (name_a, name_b) if result.smaller is a else (name_b, name_a)
        tested.add(small_name)
        if not result.prefer_smaller:
            rejected.add(small_name)
        rows.append({'smaller': small_name, 'larger': large_name, 'df': result.df,
                     'statistic': result.statistic, 'p_value': result.p_value,
                     'decision': f"prefer {small_name if result.prefer_smaller else large_name}",
                     'note': ''})

    untested = [n for n in candidates if n != reference and n not in tested]
    if untested:
        logger.warning(f"Candidates never tested against a larger model, not eligible: {untested}")

    eligible = [n for n in candidates
                if n == reference or (n in tested and n not in rejected)]
    final_name = min(eligible, key=lambda n: (candidates[n].n_params, candidates[n].aic))

    agree = None
    if lrt_name in candidates and aic_name in candidates:
        agree = candidates[lrt_name].formula.same_terms(candidates[aic_name].formula)
        if not agree:
            logger.warning("LRT and AIC selection reached different models: "
                           f"'{candidates[lrt_name].formula}' vs '{candidates[aic_name].formula}'")

    logger.info(f"Final model: {final_name} -> {candidates[final_name].formula}")
    return ModelSelection(
        final_name=final_name,
        final=candidates[final_name],
        comparisons=pd.DataFrame(rows, columns=['smaller', 'larger', 'df', 'statistic',
                                                'p_value', 'decision', 'note']),
        procedures_agree=agree,
        reference=reference,
    )
