"""
Configuration constants for the Parkinson's voice logistic-regression analysis
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, asdict, replace as dc_replace
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Generator, Literal


# Random seed for the train/test partition (reference split uses 225)
RANDOM_STATE = 225

# Held-out fraction (80/20 stratified split)
TEST_SIZE = 0.20

# =============================================================================
# ANALYSIS THRESHOLDS (centralized to avoid magic numbers)
# =============================================================================

# Pairs of features with |r| above this are flagged as redundant
CORRELATION_THRESHOLD = 0.60

# Significance level for LRT pruning and nested model comparison
SIGNIFICANCE_LEVEL = 0.05

# Probability cut-off for the positive class on the held-out partition
DEFAULT_CLASSIFICATION_THRESHOLD = 0.5

# Conventional VIF bound (5 is the stricter of the two common choices)
VIF_THRESHOLD = 5.0

# Influence diagnostics
COOKS_TOP_K = 5
RESIDUAL_OUTLIER_BOUND = 3.0

# Logit linearity: LOWESS span and minimum straightness of the smooth
LOWESS_FRAC = 2.0 / 3.0
LINEARITY_MIN_R2 = 0.80
# Smooths whose RMS departure from their own line is below this share of the
# logit SD count as straight regardless of R^2 (a flat smooth has R^2 near 0)
LINEARITY_MIN_DEPARTURE = 0.10

# Upper bound on elimination iterations (each step removes one term)
MAX_SELECTION_STEPS = 100

MissingPolicy = Literal['reject', 'impute']
MISSING_POLICIES = ('reject', 'impute')

# =============================================================================
# DATASET
# =============================================================================

DATASET_URL = (
    "https://archive.ics.uci.edu/ml/machine-learning-databases/"
    "parkinsons/parkinsons.data"
)

ID_COL = 'name'
TARGET_COL = 'status'

# Representative subset kept after the correlation filter: three frequency
# statistics plus RPDE, DFA, spread2 and D2 (formula-safe names)
RETAINED_FEATURES = (
    'MDVP_Fo_Hz',
    'MDVP_Fhi_Hz',
    'MDVP_Flo_Hz',
    'RPDE',
    'DFA',
    'spread2',
    'D2',
)

# Predictors whose pairwise interactions seed the LRT backward elimination
INTERACTION_PREDICTORS = (
    'MDVP_Fo_Hz',
    'MDVP_Fhi_Hz',
    'spread2',
    'D2',
)

# =============================================================================
# LOGGING
# =============================================================================

PROJECT_LOGGER = 'parkinsons'

# Third-party loggers that are too chatty at INFO during figure rendering
_QUIET_LIBRARIES = {
    'matplotlib': logging.WARNING,
    'PIL': logging.WARNING,
}

# LogRecord attributes carried into JSON output when a caller sets them
_STRUCTURED_FIELDS = ('duration_ms', 'metrics', 'context')


def _quiet_libraries() -> None:
    for name, level in _QUIET_LIBRARIES.items():
        logging.getLogger(name).setLevel(level)


def _install_handlers(
    logger: logging.Logger,
    level: int,
    handlers: list[logging.Handler]
) -> logging.Logger:
    """Replace every handler on ``logger``; the project logger never propagates."""
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.setLevel(level)
    for handler in handlers:
        logger.addHandler(handler)
    logger.propagate = False
    _quiet_libraries()
    return logger


def setup_logging(level: int = logging.INFO, force: bool = False) -> logging.Logger:
    """
    Plain console logging for the 'parkinsons' logger.

    Safe to call from every entry point: a second call is a no-op unless
    ``force`` is set, so handlers never pile up.

    Args:
        level: Threshold for the logger and its stdout handler
        force: Rebuild the handler even if one is already attached

    Returns:
        The project logger
    """
    logger = logging.getLogger(PROJECT_LOGGER)
    if logger.handlers and not force:
        _quiet_libraries()
        return logger

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter('[%(levelname)s] %(message)s'))
    return _install_handlers(logger, level, [console])


@dataclass
class LogRecord:
    """One JSON log line; empty optional fields are left out."""
    timestamp: str
    level: str
    message: str
    logger: str = PROJECT_LOGGER
    module: str | None = None
    function: str | None = None
    line: int | None = None
    duration_ms: float | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        payload = {
            key: value for key, value in asdict(self).items()
            if value is not None and value != {}
        }
        return json.dumps(payload, default=str)


class JSONFormatter(logging.Formatter):
    """Render records as single-line JSON objects (UTC ISO timestamps)."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry = LogRecord(
            timestamp=stamp.isoformat().replace('+00:00', 'Z'),
            level=record.levelname,
            message=record.getMessage(),
            logger=record.name,
            module=record.module,
            function=record.funcName,
            line=record.lineno,
        )
        for name in _STRUCTURED_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                setattr(entry, name, value)
        return entry.to_json()


def setup_json_logging(
    level: int = logging.INFO,
    log_file: Path | None = None,
    console: bool = True
) -> logging.Logger:
    """
    JSON-lines logging for the 'parkinsons' logger.

    Args:
        level: Logger threshold
        log_file: Also append to this file (parent directories are created)
        console: Also write to stdout

    Returns:
        The project logger
    """
    formatter = JSONFormatter()
    handlers: list[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
    return _install_handlers(logging.getLogger(PROJECT_LOGGER), level, handlers)


def _emit(
    logger: logging.Logger,
    level: int,
    msg: str,
    duration_ms: float | None,
    metrics: dict[str, Any],
    context: dict[str, Any]
) -> None:
    if not logger.isEnabledFor(level):
        return
    logger.log(level, msg, extra={
        'duration_ms': duration_ms,
        'metrics': metrics,
        'context': context,
    })


@contextmanager
def log_execution_time(
    logger: logging.Logger,
    operation: str,
    level: int = logging.INFO,
    extra_context: dict[str, Any] | None = None
) -> Generator[dict[str, Any], None, None]:
    """
    Time a block and log '<operation> completed' when it exits.

    The yielded dict is attached to the record as ``metrics``, so the block
    can report counts or scores alongside the duration. The record is
    written even if the block raises.

    Example:
        with log_execution_time(logger, "model_selection") as metrics:
            path = prune_by_lrt(formula, train)
            metrics["n_steps"] = len(path.steps)
    """
    metrics: dict[str, Any] = {}
    started = time.perf_counter()
    try:
        yield metrics
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        _emit(logger, level, f"{operation} completed", elapsed_ms, metrics,
              {'operation': operation, **(extra_context or {})})


def log_pipeline_step(
    logger: logging.Logger,
    step_name: str,
    status: str,
    duration_ms: float | None = None,
    metrics: dict[str, Any] | None = None,
    level: int = logging.INFO
) -> None:
    """Log a 'pipeline:<step>:<status>' lifecycle event (started/completed/failed)."""
    _emit(logger, level, f"pipeline:{step_name}:{status}", duration_ms,
          metrics or {}, {'step': step_name, 'status': status})


# =============================================================================
# PROJECT PATHS
# =============================================================================
# PARKINSONS_PROJECT_ROOT overrides the checkout location (containers, CI)
PROJECT_ROOT = Path(os.environ.get('PARKINSONS_PROJECT_ROOT', Path(__file__).parent.parent))
RAW_DATA_DIR = PROJECT_ROOT / "data" / "raw"
DEFAULT_DATA_PATH = RAW_DATA_DIR / "parkinsons.data"
REPORTS_DIR = PROJECT_ROOT / "reports"
FIGURES_DIR = REPORTS_DIR / "figures"

# Nothing is created on import; entry points call ensure_directories().


def ensure_directories(
    create: bool = True,
    reports_dir: Path | None = None
) -> dict[str, Path]:
    """
    Resolve (and by default create) the report and figure directories.

    Args:
        create: Create missing directories; False only resolves the paths
        reports_dir: Report root to use instead of REPORTS_DIR

    Returns:
        {"reports": ..., "figures": ...}

    Raises:
        RuntimeError: If a directory cannot be created
    """
    reports = Path(reports_dir) if reports_dir is not None else REPORTS_DIR
    directories = {
        'reports': reports,
        'figures': reports / 'figures',
    }

    if not create:
        return directories

    for name, path in directories.items():
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RuntimeError(f"Cannot create {name} directory at {path}: {e}") from e

    return directories


# =============================================================================
# RUN CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class AnalysisConfig:
    """
    Judgement calls for one analysis run.

    Defaults reproduce the reference analysis; override any field to re-run
    the procedure mechanically with different choices.
    """
    random_state: int = RANDOM_STATE
    test_size: float = TEST_SIZE
    correlation_threshold: float = CORRELATION_THRESHOLD
    retained_features: tuple[str, ...] | None = RETAINED_FEATURES
    interaction_predictors: tuple[str, ...] = INTERACTION_PREDICTORS
    alpha: float = SIGNIFICANCE_LEVEL
    classification_threshold: float = DEFAULT_CLASSIFICATION_THRESHOLD
    vif_threshold: float = VIF_THRESHOLD
    cooks_top_k: int = COOKS_TOP_K
    residual_bound: float = RESIDUAL_OUTLIER_BOUND
    lowess_frac: float = LOWESS_FRAC
    linearity_min_r2: float = LINEARITY_MIN_R2
    scale_before_split: bool = True
    aic_direction: Literal['backward', 'both'] = 'backward'
    missing_policy: MissingPolicy = 'reject'
    max_steps: int = MAX_SELECTION_STEPS

    def __post_init__(self) -> None:
        for name in ('test_size', 'alpha', 'classification_threshold', 'lowess_frac'):
            value = getattr(self, name)
            if not 0.0 < value < 1.0:
                raise ValueError(f"{name} must be in (0, 1), got {value}")
        if not 0.0 <= self.correlation_threshold <= 1.0:
            raise ValueError(
                f"correlation_threshold must be in [0, 1], got {self.correlation_threshold}"
            )
        if self.missing_policy not in MISSING_POLICIES:
            raise ValueError(
                f"missing_policy must be one of {MISSING_POLICIES}, got '{self.missing_policy}'"
            )
        if self.aic_direction not in ('backward', 'both'):
            raise ValueError(f"aic_direction must be 'backward' or 'both', got '{self.aic_direction}'")
        if self.cooks_top_k < 1 or self.max_steps < 1:
            raise ValueError("cooks_top_k and max_steps must be >= 1")

    def replace(self, **changes: Any) -> "AnalysisConfig":
        """Return a copy with the given fields changed (validated)."""
        return dc_replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# COLOR PALETTE (immutable to prevent runtime modification)
# =============================================================================
COLORS = MappingProxyType({
    'primary': '#1428A0',
    'secondary': '#2596be',
    'healthy': '#00C1B0',
    'parkinsons': '#EA580C',
    'warning': '#F59E0B',
    'neutral': '#757575',
})

VIZ_CONFIG = MappingProxyType({
    'dpi': 150,
    'palette': 'colorblind',

    'title_fontsize': 14,
    'label_fontsize': 12,
    'tick_fontsize': 10,

    'primary': COLORS['primary'],
    'secondary': COLORS['secondary'],
    'healthy_color': COLORS['healthy'],
    'parkinsons_color': COLORS['parkinsons'],
    'flag_color': COLORS['warning'],
    'neutral': COLORS['neutral'],

    'heatmap_cmap': 'RdBu_r',
    'confusion_cmap': 'Blues',

    'figsize_wide': (10, 6),
    'figsize_medium': (8, 5),
    'figsize_square': (6, 5),
})
