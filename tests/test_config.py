"""
Unit tests for run configuration and project paths.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from parkinsons_logit.config import (
    AnalysisConfig,
    COLORS,
    CORRELATION_THRESHOLD,
    RANDOM_STATE,
    RETAINED_FEATURES,
    VIZ_CONFIG,
    ensure_directories,
)
from parkinsons_logit.data.loader import FEATURE_COLS


class TestConstants:

    def test_reference_values(self):
        assert RANDOM_STATE == 225
        assert CORRELATION_THRESHOLD == 0.6

    def test_retained_features_are_known_columns(self):
        assert set(RETAINED_FEATURES) <= set(FEATURE_COLS)
        assert len(RETAINED_FEATURES) == 7

    def test_plot_settings_immutable(self):
        with pytest.raises(TypeError):
            VIZ_CONFIG['dpi'] = 300
        with pytest.raises(TypeError):
            COLORS['primary'] = '#000000'


class TestAnalysisConfig:
    """Tests for AnalysisConfig."""

    def test_defaults(self):
        config = AnalysisConfig()

        assert config.random_state == 225
        assert config.test_size == 0.2
        assert config.alpha == 0.05
        assert config.classification_threshold == 0.5
        assert config.scale_before_split is True
        assert config.missing_policy == 'reject'

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            AnalysisConfig().alpha = 0.1

    def test_replace_returns_copy(self):
        base = AnalysisConfig()
        changed = base.replace(alpha=0.01, scale_before_split=False)

        assert changed.alpha == 0.01
        assert changed.scale_before_split is False
        assert base.alpha == 0.05

    @pytest.mark.parametrize('changes', [
        {'test_size': 0.0},
        {'test_size': 1.2},
        {'alpha': 1.0},
        {'classification_threshold': 0.0},
        {'correlation_threshold': 1.5},
        {'missing_policy': 'drop'},
        {'aic_direction': 'forward'},
        {'cooks_top_k': 0},
        {'max_steps': 0},
    ])
    def test_invalid_values_rejected(self, changes):
        with pytest.raises(ValueError):
            AnalysisConfig().replace(**changes)

    def test_to_dict(self):
        as_dict = AnalysisConfig().to_dict()

        assert as_dict['random_state'] == 225
        assert tuple(as_dict['retained_features']) == RETAINED_FEATURES


class TestEnsureDirectories:

    def test_creates_report_tree(self, tmp_path: Path):
        dirs = ensure_directories(reports_dir=tmp_path / 'out')

        assert dirs['reports'] == tmp_path / 'out'
        assert dirs['figures'] == tmp_path / 'out' / 'figures'
        assert dirs['figures'].is_dir()

    def test_no_create(self, tmp_path: Path):
        dirs = ensure_directories(create=False, reports_dir=tmp_path / 'later')

        assert not dirs['reports'].exists()

    def test_failure_is_runtime_error(self, tmp_path: Path):
        blocker = tmp_path / 'file'
        blocker.write_text('x')

        with pytest.raises(RuntimeError, match="Cannot create"):
            ensure_directories(reports_dir=blocker / 'reports')
