"""
Model formula representation.

A formula is a response plus an ordered tuple of terms. Main effects are
variable names; interactions join variable names with ':' and are stored in
a canonical (sorted) order so 'b:a' and 'a:b' are the same term. The
intercept is implicit and never removed.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Iterable


def normalize_term(term: str) -> str:
    factors = [f.strip() for f in term.split(':')]
    if not all(factors):
        raise ValueError(f"Malformed term: '{term}'")
    if len(set(factors)) != len(factors):
        raise ValueError(f"Term repeats a variable: '{term}'")
    return ':'.join(sorted(factors)) if len(factors) > 1 else factors[0]


def term_factors(term: str) -> frozenset[str]:
    return frozenset(term.split(':'))


@dataclass(frozen=True)
class ModelFormula:
    response: str
    terms: tuple[str, ...]

    def __post_init__(self) -> None:
        seen: list[str] = []
        for term in self.terms:
            norm = normalize_term(term)
            if norm not in seen:
                seen.append(norm)
        object.__setattr__(self, 'terms', tuple(seen))

    def __str__(self) -> str:
        return self.to_patsy()

    def to_patsy(self) -> str:
        rhs = ' + '.join(self.terms) if self.terms else '1'
        return f"{self.response} ~ {rhs}"

    @property
    def n_terms(self) -> int:
        return len(self.terms)

    @property
    def main_effects(self) -> tuple[str, ...]:
        return tuple(t for t in self.terms if ':' not in t)

    @property
    def interactions(self) -> tuple[str, ...]:
        return tuple(t for t in self.terms if ':' in t)

    @property
    def variables(self) -> tuple[str, ...]:
        """Every variable appearing in any term, in first-seen order."""
        out: list[str] = []
        for term in self.terms:
            for factor in term.split(':'):
                if factor not in out:
                    out.append(factor)
        return tuple(out)

    def __contains__(self, term: str) -> bool:
        return normalize_term(term) in self.terms

    def drop(self, term: str) -> "ModelFormula":
        norm = normalize_term(term)
        if norm not in self.terms:
            raise KeyError(f"Term '{term}' not in formula '{self}'")
        return ModelFormula(self.response, tuple(t for t in self.terms if t != norm))

    def add(self, term: str) -> "ModelFormula":
        norm = normalize_term(term)
        if norm in self.terms:
            raise ValueError(f"Term '{term}' already in formula '{self}'")
        return ModelFormula(self.response, self.terms + (norm,))

    def is_nested_in(self, other: "ModelFormula") -> bool:
        """True when every term here also appears in ``other`` (same response)."""
        return self.response == other.response and set(self.terms) <= set(other.terms)

    def same_terms(self, other: "ModelFormula") -> bool:
        return self.response == other.response and set(self.terms) == set(other.terms)


def additive(response: str, predictors: Iterable[str]) -> ModelFormula:
    return ModelFormula(response, tuple(predictors))


def all_pairwise(predictors: Iterable[str]) -> tuple[str, ...]:
    return tuple(f"{a}:{b}" for a, b in combinations(list(predictors), 2))


def with_pairwise_interactions(
    response: str,
    predictors: Iterable[str],
    among: Iterable[str] | None = None
) -> ModelFormula:
    """
    Additive model over ``predictors`` plus every pairwise interaction among
    the ``among`` subset (all predictors when None).

    Raises:
        ValueError: If ``among`` names a variable not in ``predictors``
    """
    predictors = list(predictors)
    among = predictors if among is None else list(among)
    unknown = [p for p in among if p not in predictors]
    if unknown:
        raise ValueError(f"Interaction predictors not in model: {unknown}")
    return ModelFormula(response, tuple(predictors) + all_pairwise(among))


def droppable_terms(formula: ModelFormula, respect_hierarchy: bool = True) -> tuple[str, ...]:
    """
    Terms eligible for single-term deletion.

    With respect_hierarchy, a term contained in a higher-order term of the
    same formula (e.g. 'a' while 'a:b' is present) is not eligible.
    """
    if not respect_hierarchy:
        return formula.terms
    factor_sets = {t: term_factors(t) for t in formula.terms}
    return tuple(
        t for t, fs in factor_sets.items()
        if not any(fs < other for u, other in factor_sets.items() if u != t)
    )


def addable_terms(formula: ModelFormula, upper: ModelFormula) -> tuple[str, ...]:
    """Terms in ``upper`` not yet in ``formula`` whose lower-order margins are present."""
    present = set(formula.terms)
    out = []
    for term in upper.terms:
        if term in present:
            continue
        factors = term_factors(term)
        if len(factors) > 1 and not all(f in present for f in factors):
            continue
        out.append(term)
    return tuple(out)
