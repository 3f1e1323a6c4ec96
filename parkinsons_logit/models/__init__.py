"""
Logistic model formulas, fitting, selection and comparison.
"""

from .formula import (
    ModelFormula,
    additive,
    all_pairwise,
    with_pairwise_interactions,
    droppable_terms,
    addable_terms,
)
from .fitting import FittedModel, fit_logit
from .selection import (
    lrt_statistic,
    drop1_lrt,
    EliminationStep,
    lrt_elimination_step,
    AicStep,
    aic_step,
    SelectionPath,
    prune_by_lrt,
    stepwise_aic,
)
from .comparison import (
    NestedComparison,
    compare_nested,
    anova_table,
    ModelSelection,
    select_final_model,
)

__all__ = [
    'ModelFormula',
    'additive',
    'all_pairwise',
    'with_pairwise_interactions',
    'droppable_terms',
    'addable_terms',
    'FittedModel',
    'fit_logit',
    'lrt_statistic',
    'drop1_lrt',
    'EliminationStep',
    'lrt_elimination_step',
    'AicStep',
    'aic_step',
    'SelectionPath',
    'prune_by_lrt',
    'stepwise_aic',
    'NestedComparison',
    'compare_nested',
    'anova_table',
    'ModelSelection',
    'select_final_model',
]
