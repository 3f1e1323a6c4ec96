"""
End-to-end tests for the analysis procedure on the synthetic dataset.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from parkinsons_logit.analysis import (
    AnalysisResult,
    build_modeling_table,
    candidate_formulas,
    fit_reference,
    run_analysis,
)
from parkinsons_logit.config import AnalysisConfig, RETAINED_FEATURES, TARGET_COL


class TestBuildModelingTable:
    """Tests for build_modeling_table."""

    def test_reduced_columns(self, df: pd.DataFrame):
        modeling, reduction, _ = build_modeling_table(df, AnalysisConfig())

        assert reduction.features == list(RETAINED_FEATURES)
        assert list(modeling.columns) == [*RETAINED_FEATURES, TARGET_COL]

    def test_standardized_with_sample_sd(self, df: pd.DataFrame):
        modeling, _, _ = build_modeling_table(df, AnalysisConfig())
        features = modeling[list(RETAINED_FEATURES)]

        np.testing.assert_allclose(features.mean(), 0.0, atol=1e-10)
        np.testing.assert_allclose(features.std(ddof=1), 1.0, rtol=1e-10)

    def test_partition_sizes(self, df: pd.DataFrame):
        _, _, partition = build_modeling_table(df, AnalysisConfig())

        assert len(partition.train) == 156
        assert len(partition.test) == 39
        assert partition.train_index.intersection(partition.test_index).empty

    def test_rows_independent_of_scaling_choice(self, df: pd.DataFrame):
        _, _, before = build_modeling_table(df, AnalysisConfig())
        _, _, after = build_modeling_table(df, AnalysisConfig(scale_before_split=False))

        assert before.train_index.equals(after.train_index)
        assert before.test_index.equals(after.test_index)

    def test_scale_after_split_uses_training_rows(self, df: pd.DataFrame):
        _, _, partition = build_modeling_table(df, AnalysisConfig(scale_before_split=False))
        train = partition.train[list(RETAINED_FEATURES)]

        np.testing.assert_allclose(train.mean(), 0.0, atol=1e-10)
        np.testing.assert_allclose(train.std(ddof=1), 1.0, rtol=1e-10)

    def test_input_not_mutated(self, df: pd.DataFrame):
        before = df.copy()
        build_modeling_table(df, AnalysisConfig())

        pd.testing.assert_frame_equal(df, before)


class TestCandidateFormulas:

    def test_full_and_saturated(self):
        full, saturated = candidate_formulas(list(RETAINED_FEATURES), AnalysisConfig())

        assert full.terms == RETAINED_FEATURES
        assert saturated.n_terms == 13
        assert 'MDVP_Fo_Hz:spread2' in saturated
        assert set(saturated.main_effects) == set(RETAINED_FEATURES)

    def test_missing_interaction_predictor_skipped(self):
        features = ['MDVP_Fo_Hz', 'RPDE', 'D2']
        _, saturated = candidate_formulas(features, AnalysisConfig())

        assert saturated.interactions == ('D2:MDVP_Fo_Hz',)

    def test_single_interaction_predictor_gives_additive(self):
        full, saturated = candidate_formulas(['RPDE', 'D2'], AnalysisConfig())

        assert saturated == full


class TestFitReference:

    def test_reuses_saturated_fit(self, logit_data: pd.DataFrame):
        from parkinsons_logit.models.fitting import fit_logit
        from parkinsons_logit.models.formula import ModelFormula, additive

        saturated = ModelFormula('status', ('x1', 'x2', 'x1:x2'))
        saturated_fit = fit_logit(saturated, logit_data)
        small = fit_logit(additive('status', ['x1']), logit_data)

        assert fit_reference(saturated, [small], logit_data, saturated_fit) is saturated_fit

    def test_widened_by_outside_terms(self, logit_data: pd.DataFrame):
        from parkinsons_logit.models.fitting import fit_logit
        from parkinsons_logit.models.formula import ModelFormula, additive

        saturated = additive('status', ['x1', 'x2'])
        grown = fit_logit(ModelFormula('status', ('x1', 'x2', 'x2:x1')), logit_data)

        reference = fit_reference(saturated, [grown], logit_data)

        assert reference.formula.terms == ('x1', 'x2', 'x1:x2')
        assert grown.formula.is_nested_in(reference.formula)


class TestRunAnalysis:
    """End-to-end checks on the shared analysis result."""

    def test_result_type(self, analysis_result: AnalysisResult):
        assert isinstance(analysis_result, AnalysisResult)
        assert analysis_result.config == AnalysisConfig()

    def test_exploration_covers_full_table(self, analysis_result: AnalysisResult):
        assert analysis_result.exploration.n_rows == 195
        assert analysis_result.exploration.n_features == 22
        assert analysis_result.exploration.total_missing == 0

    def test_models_fit_on_training_rows(self, analysis_result: AnalysisResult):
        n_train = len(analysis_result.partition.train)

        assert analysis_result.full_model.n_obs == n_train
        assert analysis_result.final_model.n_obs == n_train

    def test_final_model_is_a_candidate(self, analysis_result: AnalysisResult):
        final = analysis_result.final_model

        assert any(final is model for model in analysis_result.candidates.values())
        assert analysis_result.selection.final_name in analysis_result.candidates

    def test_selected_models_nested_in_start(self, analysis_result: AnalysisResult):
        lrt_final = analysis_result.lrt_path.final.formula
        aic_final = analysis_result.aic_path.final.formula

        assert lrt_final.is_nested_in(analysis_result.saturated_formula)
        # backward search from the full additive model
        assert aic_final.is_nested_in(analysis_result.full_model.formula)

    def test_reference_nests_every_candidate(self, analysis_result: AnalysisResult):
        reference = analysis_result.reference_model.formula

        assert analysis_result.selection.reference == 'saturated'
        for model in analysis_result.candidates.values():
            assert model.formula.is_nested_in(reference)

    def test_final_model_was_tested(self, analysis_result: AnalysisResult):
        selection = analysis_result.selection
        if selection.final_name != selection.reference:
            applicable = selection.comparisons.dropna(subset=['p_value'])
            own = applicable[applicable['smaller'] == selection.final_name]
            assert len(own) >= 1
            assert (own['p_value'] >= analysis_result.config.alpha).all()

    def test_anova_ordered_by_size(self, analysis_result: AnalysisResult):
        resid_df = analysis_result.anova['resid_df'].to_numpy()
        assert np.all(np.diff(resid_df) <= 0)

    def test_evaluation_on_held_out_rows(self, analysis_result: AnalysisResult):
        evaluation = analysis_result.evaluation

        assert evaluation.n_test == 39
        assert evaluation.confusion.to_numpy().sum() == 39
        np.testing.assert_array_equal(
            evaluation.y_true, analysis_result.partition.test[TARGET_COL].to_numpy()
        )

    def test_signal_recovered(self, analysis_result: AnalysisResult):
        terms = set(analysis_result.final_model.formula.variables)

        assert 'spread2' in terms or 'MDVP_Fo_Hz' in terms
        assert analysis_result.evaluation.metrics['accuracy'] > 0.5

    def test_diagnostics_run_on_final_model(self, analysis_result: AnalysisResult):
        linearity = analysis_result.diagnostics.linearity
        final = analysis_result.final_model

        assert set(linearity.table.index) <= set(final.formula.main_effects)
        assert list(analysis_result.diagnostics.odds_ratios.index) == list(final.params.index)


class TestRunAnalysisOptions:
    """Re-running with alternative settings."""

    def test_deterministic(self, df: pd.DataFrame, analysis_result: AnalysisResult):
        again = run_analysis(df)

        assert str(again.final_model.formula) == str(analysis_result.final_model.formula)
        assert again.partition.test_index.equals(analysis_result.partition.test_index)
        assert again.evaluation.metrics['f1_score'] == analysis_result.evaluation.metrics['f1_score']

    def test_input_not_mutated(self, df: pd.DataFrame):
        before = df.copy()
        run_analysis(df, AnalysisConfig(scale_before_split=False))

        pd.testing.assert_frame_equal(df, before)

    def test_different_seed_changes_partition(self, df: pd.DataFrame, analysis_result: AnalysisResult):
        other = run_analysis(df, AnalysisConfig(random_state=7))

        assert len(other.partition.test) == 39
        assert not other.partition.test_index.equals(analysis_result.partition.test_index)

    def test_correlation_only_reduction(self, df: pd.DataFrame):
        result = run_analysis(df, AnalysisConfig(retained_features=None))

        assert set(result.reduction.features).isdisjoint(result.reduction.flagged)
        assert result.final_model.n_obs == 156
