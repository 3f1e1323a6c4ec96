"""
Unit tests for post-selection diagnostics.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from parkinsons_logit.config import AnalysisConfig
from parkinsons_logit.diagnostics import (
    Diagnostics,
    check_influence,
    check_linearity,
    check_multicollinearity,
    empirical_logit,
    odds_ratio_table,
    run_diagnostics,
)
from parkinsons_logit.models.fitting import fit_logit
from parkinsons_logit.models.formula import additive


@pytest.fixture
def linear_model(logit_data: pd.DataFrame):
    return fit_logit(additive('status', ['x1', 'x2']), logit_data)


@pytest.fixture
def curved_data() -> pd.DataFrame:
    """Logit is quadratic in x; w carries x**2 so the fitted logit bends against x."""
    rng = np.random.default_rng(11)
    n = 300
    x = rng.uniform(-2, 2, n)
    w = x ** 2 + 0.05 * rng.normal(size=n)
    eta = 1.5 * w - 1.5
    y = (rng.random(n) < 1 / (1 + np.exp(-eta))).astype(int)
    return pd.DataFrame({'x': x, 'w': w, 'status': y})


class TestEmpiricalLogit:

    def test_clips_extremes(self):
        logit = empirical_logit(np.array([0.0, 0.5, 1.0]))

        assert np.isfinite(logit).all()
        assert logit[1] == pytest.approx(0.0)
        assert logit[0] == pytest.approx(-logit[2])


class TestCheckLinearity:
    """Tests for check_linearity."""

    def test_linear_predictors_pass(self, linear_model, logit_data: pd.DataFrame):
        result = check_linearity(linear_model, logit_data)

        assert result.name == 'linearity'
        assert result.passed
        assert list(result.table.index) == ['x1', 'x2']
        assert (result.table['smooth_r2'] > 0.8).all()

    def test_curved_relationship_flagged(self, curved_data: pd.DataFrame):
        model = fit_logit(additive('status', ['x', 'w']), curved_data)
        result = check_linearity(model, curved_data)

        assert 'x' in result.flagged
        assert not result.passed
        assert result.table.loc['x', 'departure'] > 0.1

    def test_binary_predictor_skipped(self, logit_data: pd.DataFrame):
        data = logit_data.assign(flag=(logit_data['x3'] > 0).astype(int))
        model = fit_logit(additive('status', ['x1', 'flag']), data)

        result = check_linearity(model, data)

        assert list(result.table.index) == ['x1']

    def test_curves_for_plotting(self, linear_model, logit_data: pd.DataFrame):
        result = check_linearity(linear_model, logit_data)
        curve = result.details['curves']['x1']

        assert len(curve['x']) == len(logit_data)
        assert curve['smooth'].shape == (len(logit_data), 2)
        assert np.all(np.diff(curve['smooth'][:, 0]) >= 0)


class TestCheckInfluence:
    """Tests for check_influence."""

    def test_table_per_observation(self, linear_model, logit_data: pd.DataFrame):
        result = check_influence(linear_model, top_k=5)

        assert len(result.table) == len(logit_data)
        assert {'cooks_d', 'studentized_resid', 'leverage', 'top_cooks', 'outlier'} <= set(result.table.columns)
        assert (result.table['cooks_d'] >= 0).all()

    def test_top_k_rows(self, linear_model):
        result = check_influence(linear_model, top_k=3)
        top = result.details['top_cooks']

        assert len(top) == 3
        assert result.table.loc[top, 'cooks_d'].min() >= result.table['cooks_d'].drop(index=top).max()
        assert result.table['top_cooks'].sum() == 3

    def test_mislabelled_point_is_outlier(self, logit_data: pd.DataFrame):
        bad_row = pd.DataFrame({'x1': [4.0], 'x2': [-3.0], 'x3': [0.0], 'x4': [0.0], 'status': [0]},
                               index=[999])
        data = pd.concat([logit_data, bad_row])
        model = fit_logit(additive('status', ['x1', 'x2']), data)

        result = check_influence(model, residual_bound=3.0)

        assert 999 in result.details['outliers']
        assert 999 in result.details['top_cooks']
        assert not result.passed

    def test_passes_without_outliers(self, linear_model):
        result = check_influence(linear_model, residual_bound=1e6)

        assert result.passed
        assert result.details['outliers'] == []


class TestCheckMulticollinearity:
    """Tests for check_multicollinearity."""

    def test_independent_predictors_near_one(self, logit_data: pd.DataFrame):
        model = fit_logit(additive('status', ['x1', 'x2', 'x3', 'x4']), logit_data)
        result = check_multicollinearity(model, threshold=5.0)

        assert result.passed
        assert 'Intercept' not in result.table.index
        assert (result.table['vif'] < 1.5).all()

    def test_collinear_pair_flagged(self, logit_data: pd.DataFrame):
        rng = np.random.default_rng(5)
        data = logit_data.assign(x5=logit_data['x1'] + 0.1 * rng.normal(size=len(logit_data)))
        model = fit_logit(additive('status', ['x1', 'x2', 'x5']), data)

        result = check_multicollinearity(model, threshold=5.0)

        assert set(result.flagged) == {'x1', 'x5'}
        assert not result.passed

    def test_interaction_columns_included(self, logit_data: pd.DataFrame):
        from parkinsons_logit.models.formula import ModelFormula

        model = fit_logit(ModelFormula('status', ('x1', 'x2', 'x1:x2')), logit_data)
        result = check_multicollinearity(model)

        assert list(result.table.index) == ['x1', 'x2', 'x1:x2']


class TestRunDiagnostics:

    def test_bundle(self, linear_model, logit_data: pd.DataFrame):
        diagnostics = run_diagnostics(linear_model, logit_data)

        assert isinstance(diagnostics, Diagnostics)
        assert list(diagnostics.verdicts().index) == ['linearity', 'influence', 'multicollinearity']
        assert diagnostics.all_passed == all(c.passed for c in diagnostics.checks)

    def test_config_thresholds_used(self, linear_model, logit_data: pd.DataFrame):
        config = AnalysisConfig(cooks_top_k=2, vif_threshold=0.5)
        diagnostics = run_diagnostics(linear_model, logit_data, config)

        assert len(diagnostics.influence.details['top_cooks']) == 2
        assert not diagnostics.multicollinearity.passed

    def test_odds_ratio_table(self, linear_model):
        table = odds_ratio_table(linear_model)

        assert list(table.columns) == ['odds_ratio', 'ci_lower_95%', 'ci_upper_95%', 'p_value']
        assert table.loc['x1', 'odds_ratio'] > 1
        assert table.loc['x2', 'odds_ratio'] < 1
