"""
Error types raised by the analysis pipeline.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base class for analysis failures."""


class DataValidationError(AnalysisError, ValueError):
    """Input table violates the expected schema or missing-value policy."""


class ConvergenceError(AnalysisError):
    """Logistic fit did not converge or hit perfect separation."""

    def __init__(self, formula: str, reason: str):
        self.formula = formula
        self.reason = reason
        super().__init__(f"Fit did not converge for '{formula}': {reason}")


class ComparisonNotApplicable(AnalysisError):
    """Two models cannot be compared with a nested deviance test."""


class DataSourceError(AnalysisError, OSError):
    """Dataset location could not be read (network or file system)."""


class SelectionLimitError(AnalysisError, RuntimeError):
    """A selection loop did not halt within its step limit."""
