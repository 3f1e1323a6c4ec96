"""
Shared pytest fixtures for the Parkinson's logit analysis tests.

The synthetic table mirrors the published dataset: 195 recordings, the raw
UCI column names, tightly coupled jitter/shimmer/noise families, spread1/PPE
nearly collinear with spread2 following them, and independent frequency and
nonlinear-dynamics measures. Status depends on Fo, spread2 and D2 through a
moderate logistic link, so nothing separates perfectly.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from parkinsons_logit.config import RANDOM_STATE
from parkinsons_logit.data.loader import load_parkinsons


N_RECORDINGS = 195


def make_parkinsons_frame(n: int = N_RECORDINGS, seed: int = RANDOM_STATE) -> pd.DataFrame:
    """Synthetic voice table with the raw UCI column names."""
    rng = np.random.default_rng(seed)

    def around(base: np.ndarray, scale: float, rel: float = 0.05) -> np.ndarray:
        return base * scale * (1 + rel * rng.normal(size=n))

    fo = rng.normal(154, 41, n)
    fhi = rng.normal(197, 60, n)
    flo = rng.normal(116, 40, n)

    jitter = rng.lognormal(np.log(0.005), 0.5, n)
    shimmer = rng.lognormal(np.log(0.03), 0.4, n)

    z_spread = rng.normal(size=n)
    spread1 = -5.7 + 1.1 * z_spread
    ppe = 0.2 + 0.09 * z_spread + 0.02 * rng.normal(size=n)
    spread2 = 0.22 + 0.083 * (0.8 * z_spread + 0.6 * rng.normal(size=n))

    rpde = rng.normal(0.5, 0.1, n)
    dfa = rng.normal(0.72, 0.055, n)
    d2 = rng.normal(2.38, 0.38, n)

    def z(v: np.ndarray) -> np.ndarray:
        return (v - v.mean()) / v.std()

    eta = 1.3 - 0.9 * z(fo) + 0.9 * z(spread2) + 0.5 * z(d2)
    status = (rng.random(n) < 1 / (1 + np.exp(-eta))).astype(int)

    return pd.DataFrame({
        'name': [f"phon_R01_S{i // 6 + 1:02d}_{i % 6 + 1}" for i in range(n)],
        'MDVP:Fo(Hz)': fo,
        'MDVP:Fhi(Hz)': fhi,
        'MDVP:Flo(Hz)': flo,
        'MDVP:Jitter(%)': around(jitter, 1.0),
        'MDVP:Jitter(Abs)': around(jitter, 0.008),
        'MDVP:RAP': around(jitter, 0.5),
        'MDVP:PPQ': around(jitter, 0.55),
        'Jitter:DDP': around(jitter, 1.5),
        'MDVP:Shimmer': around(shimmer, 1.0),
        'MDVP:Shimmer(dB)': around(shimmer, 9.0),
        'Shimmer:APQ3': around(shimmer, 0.5),
        'Shimmer:APQ5': around(shimmer, 0.6),
        'MDVP:APQ': around(shimmer, 0.8),
        'Shimmer:DDA': around(shimmer, 1.5),
        'NHR': around(jitter, 5.0, rel=0.1),
        'HNR': 30 - 300 * shimmer + rng.normal(0, 1, n),
        'status': status,
        'RPDE': rpde,
        'DFA': dfa,
        'spread1': spread1,
        'spread2': spread2,
        'D2': d2,
        'PPE': ppe,
    })


# =============================================================================
# LOGGER ISOLATION
# =============================================================================

@pytest.fixture(autouse=True)
def reset_project_logger():
    """Undo handler/propagation changes made by setup_logging in a test."""
    yield
    logger = logging.getLogger('parkinsons')
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


# =============================================================================
# DATASET FIXTURES
# =============================================================================

@pytest.fixture
def raw_frame() -> pd.DataFrame:
    """Synthetic table with raw UCI column names."""
    return make_parkinsons_frame()


@pytest.fixture
def parkinsons_csv(tmp_path: Path, raw_frame: pd.DataFrame) -> Path:
    """Synthetic table written as a CSV file."""
    path = tmp_path / 'parkinsons.data'
    raw_frame.to_csv(path, index=False)
    return path


@pytest.fixture(scope='session')
def session_csv(tmp_path_factory) -> Path:
    path = tmp_path_factory.mktemp('data') / 'parkinsons.data'
    make_parkinsons_frame().to_csv(path, index=False)
    return path


@pytest.fixture(scope='session')
def parkinsons_df(session_csv: Path) -> pd.DataFrame:
    """Loaded (cleaned, validated) synthetic table; shared, do not mutate."""
    return load_parkinsons(session_csv)


@pytest.fixture
def df(parkinsons_df: pd.DataFrame) -> pd.DataFrame:
    """Per-test copy of the loaded table."""
    return parkinsons_df.copy()


@pytest.fixture(scope='session')
def analysis_result(parkinsons_df: pd.DataFrame):
    """Full analysis on the synthetic table with default settings."""
    from parkinsons_logit.analysis import run_analysis
    return run_analysis(parkinsons_df)


# =============================================================================
# SMALL MODELING FIXTURES
# =============================================================================

@pytest.fixture(scope='session')
def logit_data() -> pd.DataFrame:
    """
    200 rows: x1 and x2 drive the response, x3 and x4 are noise.
    """
    rng = np.random.default_rng(RANDOM_STATE)
    n = 200
    X = rng.normal(size=(n, 4))
    eta = 0.3 + 1.2 * X[:, 0] - 0.8 * X[:, 1]
    y = (rng.random(n) < 1 / (1 + np.exp(-eta))).astype(int)
    return pd.DataFrame({
        'x1': X[:, 0], 'x2': X[:, 1], 'x3': X[:, 2], 'x4': X[:, 3], 'status': y,
    })


@pytest.fixture
def separated_data() -> pd.DataFrame:
    """Response perfectly determined by the sign of x (with a wide gap)."""
    x = np.concatenate([np.linspace(-3, -1, 20), np.linspace(1, 3, 20)])
    return pd.DataFrame({'x': x, 'status': (x > 0).astype(int)})
