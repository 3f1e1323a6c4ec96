"""
Backward model selection for the logistic model.

Two independent procedures:
- LRT elimination: drop the term whose single-term likelihood-ratio test has
  the largest p-value, one term per step, while that p-value exceeds alpha.
- Stepwise AIC: apply the single-term move that lowers AIC the most, until
  no move lowers it.

Each step is a pure function of (formula, data); the loop drivers only chain
steps and keep the ordered history.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

import pandas as pd
from scipy.stats import chi2

from ..config import MAX_SELECTION_STEPS, SIGNIFICANCE_LEVEL
from ..exceptions import SelectionLimitError
from .fitting import FittedModel, fit_logit
from .formula import (
    ModelFormula,
    addable_terms,
    all_pairwise,
    droppable_terms,
)

logger = logging.getLogger('parkinsons')

# Minimum AIC improvement for a move to count (guards against float noise)
AIC_TOLERANCE = 1e-7


def lrt_statistic(smaller: FittedModel, larger: FittedModel) -> tuple[float, int, float]:
    """
    Likelihood-ratio test of ``smaller`` against ``larger``.

    Returns:
        Tuple of (statistic, df, p_value) where statistic =
        2 * (llf_larger - llf_smaller) and df = difference in parameter count
    """
    stat = 2.0 * (larger.log_likelihood - smaller.log_likelihood)
    df = larger.n_params - smaller.n_params
    # Clamp tiny negative values from IRLS tolerance
    stat = max(stat, 0.0)
    p_value = float(chi2.sf(stat, df)) if df > 0 else float('nan')
    return stat, df, p_value


def drop1_lrt(
    model: FittedModel,
    data: pd.DataFrame,
    respect_hierarchy: bool = True
) -> pd.DataFrame:
    """
    Single-term deletions with likelihood-ratio tests.

    Returns:
        DataFrame indexed by term with df, deviance, aic, lrt and p_value
        columns; empty when no term can be dropped
    """
    rows = []
    for term in droppable_terms(model.formula, respect_hierarchy):
        reduced = fit_logit(model.formula.drop(term), data)
        stat, df, p_value = lrt_statistic(reduced, model)
        rows.append({
            'term': term,
            'df': df,
            'deviance': reduced.deviance,
            'aic': reduced.aic,
            'lrt': stat,
            'p_value': p_value,
        })
    return pd.DataFrame(rows, columns=['term', 'df', 'deviance', 'aic', 'lrt', 'p_value']).set_index('term')


@dataclass(frozen=True)
class EliminationStep:
    """One LRT elimination step. ``eliminated_term`` is None when the loop halts."""
    model: FittedModel
    next_formula: ModelFormula
    eliminated_term: str | None
    p_value: float | None
    table: pd.DataFrame

    @property
    def halted(self) -> bool:
        return self.eliminated_term is None


def lrt_elimination_step(
    formula: ModelFormula,
    data: pd.DataFrame,
    alpha: float = SIGNIFICANCE_LEVEL,
    respect_hierarchy: bool = True,
    model: FittedModel | None = None
) -> EliminationStep:
    """
    Compute the next state of the LRT backward elimination.

    Args:
        formula: Current model formula
        data: Fitting data
        alpha: Terms with removal p-value above this are candidates
        respect_hierarchy: Skip main effects contained in an interaction
        model: Already fitted model for ``formula`` (refit when None)

    Returns:
        EliminationStep with the next formula, the removed term and its
        p-value, or a halting step when every candidate has p <= alpha
    """
    current = model if model is not None else fit_logit(formula, data)
    table = drop1_lrt(current, data, respect_hierarchy)

    if table.empty:
        return EliminationStep(current, formula, None, None, table)

    worst = table['p_value'].idxmax()
    worst_p = float(table.loc[worst, 'p_value'])
    if worst_p <= alpha:
        return EliminationStep(current, formula, None, worst_p, table)

    return EliminationStep(current, formula.drop(worst), worst, worst_p, table)


@dataclass(frozen=True)
class AicStep:
    """One stepwise-AIC move. ``term`` is None when no move lowers AIC."""
    model: FittedModel
    next_formula: ModelFormula
    move: Literal['-', '+'] | None
    term: str | None
    aic_before: float
    aic_after: float
    table: pd.DataFrame

    @property
    def halted(self) -> bool:
        return self.term is None


def aic_step(
    formula: ModelFormula,
    data: pd.DataFrame,
    upper: ModelFormula | None = None,
    direction: Literal['backward', 'both'] = 'backward',
    respect_hierarchy: bool = True,
    model: FittedModel | None = None
) -> AicStep:
    """
    Evaluate every single-term deletion (and addition from ``upper`` when
    direction='both') and pick the move with the lowest AIC.
    """
    current = model if model is not None else fit_logit(formula, data)

    candidates = [('-', t, formula.drop(t)) for t in droppable_terms(formula, respect_hierarchy)]
    if direction == 'both' and upper is not None:
        candidates += [('+', t, formula.add(t)) for t in addable_terms(formula, upper)]

    rows = [{'move': '<none>', 'term': '', 'aic': current.aic}]
    for move, term, candidate in candidates:
        rows.append({'move': move, 'term': term, 'aic': fit_logit(candidate, data).aic})
    table = pd.DataFrame(rows).sort_values('aic', kind='stable').reset_index(drop=True)

    best = table.iloc[0]
    if best['move'] == '<none>' or best['aic'] >= current.aic - AIC_TOLERANCE:
        return AicStep(current, formula, None, None, current.aic, current.aic, table)

    next_formula = formula.drop(best['term']) if best['move'] == '-' else formula.add(best['term'])
    return AicStep(current, next_formula, best['move'], best['term'],
                   current.aic, float(best['aic']), table)


@dataclass(frozen=True)
class SelectionPath:
    """Ordered record of a selection procedure."""
    method: str
    initial: FittedModel
    final: FittedModel
    steps: tuple = field(default_factory=tuple)

    @property
    def removed_terms(self) -> list[str]:
        out = []
        for step in self.steps:
            if isinstance(step, EliminationStep) and step.eliminated_term is not None:
                out.append(step.eliminated_term)
            elif isinstance(step, AicStep) and step.move == '-':
                out.append(step.term)
        return out

    def history(self) -> pd.DataFrame:
        """One row per applied move."""
        rows = []
        for i, step in enumerate(self.steps, start=1):
            if step.halted:
                continue
            if isinstance(step, EliminationStep):
                rows.append({'step': i, 'move': '-', 'term': step.eliminated_term,
                             'p_value': step.p_value, 'aic': step.model.aic})
            else:
                rows.append({'step': i, 'move': step.move, 'term': step.term,
                             'aic_before': step.aic_before, 'aic_after': step.aic_after})
        return pd.DataFrame(rows)


def prune_by_lrt(
    formula: ModelFormula,
    data: pd.DataFrame,
    alpha: float = SIGNIFICANCE_LEVEL,
    respect_hierarchy: bool = True,
    max_steps: int = MAX_SELECTION_STEPS
) -> SelectionPath:
    """
    Backward elimination by likelihood-ratio tests until every droppable
    term has removal p-value <= alpha.

    Raises:
        SelectionLimitError: If the loop has not halted after ``max_steps`` steps
    """
    model = fit_logit(formula, data)
    initial = model
    steps = []

    for _ in range(max_steps):
        step = lrt_elimination_step(model.formula, data, alpha, respect_hierarchy, model=model)
        steps.append(step)
        if step.halted:
            logger.info(f"LRT pruning: halted after {len(steps) - 1} removals -> {step.model.formula}")
            return SelectionPath('lrt', initial, step.model, tuple(steps))

        logger.info(f"LRT pruning: drop '{step.eliminated_term}' (p={step.p_value:.4f})")
        model = fit_logit(step.next_formula, data)

    raise SelectionLimitError(f"LRT pruning did not halt within {max_steps} steps")


def stepwise_aic(
    formula: ModelFormula,
    data: pd.DataFrame,
    upper: ModelFormula | None = None,
    direction: Literal['backward', 'both'] = 'backward',
    respect_hierarchy: bool = True,
    max_steps: int = MAX_SELECTION_STEPS
) -> SelectionPath:
    """
    Stepwise selection by AIC starting from ``formula``.

    Args:
        formula: Starting model (normally the full additive model)
        data: Fitting data
        upper: Largest model in the search scope. Defaults to the starting
            predictors plus all their pairwise interactions.
        direction: 'backward' only deletes; 'both' also tries additions
            from ``upper``
        respect_hierarchy: Keep marginal terms of present interactions
        max_steps: Safety bound on the number of moves

    Raises:
        ValueError: If direction is not 'backward' or 'both'
        SelectionLimitError: If no local AIC minimum is reached within ``max_steps``
    """
    if direction not in ('backward', 'both'):
        raise ValueError(f"direction must be 'backward' or 'both', got '{direction}'")
    if upper is None:
        upper = ModelFormula(formula.response,
                             formula.terms + all_pairwise(formula.main_effects))

    model = fit_logit(formula, data)
    initial = model
    steps = []

    for _ in range(max_steps):
        step = aic_step(model.formula, data, upper, direction, respect_hierarchy, model=model)
        steps.append(step)
        if step.halted:
            logger.info(f"Stepwise AIC: halted at AIC={step.aic_before:.3f} -> {step.model.formula}")
            return SelectionPath('aic', initial, step.model, tuple(steps))

        logger.info(f"Stepwise AIC: {step.move}{step.term} "
                    f"(AIC {step.aic_before:.3f} -> {step.aic_after:.3f})")
        model = fit_logit(step.next_formula, data)

    raise SelectionLimitError(f"Stepwise AIC did not halt within {max_steps} steps")
