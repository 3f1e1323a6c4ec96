#!/usr/bin/env python
"""
Parkinson's Voice Analysis Report Pipeline

Runs the full logistic-regression analysis on the UCI Parkinson's voice
dataset and writes a Markdown report with figures.

METHODOLOGY NOTES:
- Rows are partitioned (stratified 80/20, fixed seed) on the raw table
- Standardization uses every row unless --scale-after-split is given
- Final model is fit on the training partition only; the held-out partition
  is scored once at threshold 0.5

Usage:
    python -m pipelines.report
    python -m pipelines.report --data https://.../parkinsons.data --verbose
    python -m pipelines.report --missing-policy impute --json-logs
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parkinsons_logit.analysis import AnalysisResult, run_analysis
from parkinsons_logit.config import (
    AnalysisConfig, DATASET_URL, DEFAULT_DATA_PATH, MISSING_POLICIES, TARGET_COL,
    ensure_directories, log_pipeline_step, setup_json_logging, setup_logging
)
from parkinsons_logit.data.loader import FEATURE_COLS, load_parkinsons
from parkinsons_logit.exceptions import AnalysisError
from parkinsons_logit.report import write_report
from parkinsons_logit.visualization import (
    plot_class_balance, plot_confusion_matrix, plot_cooks_distance,
    plot_correlation_heatmap, plot_feature_boxplots, plot_half_normal,
    plot_logit_linearity, plot_vif
)

logger = logging.getLogger('parkinsons')


def save_figures(result: AnalysisResult, df, figures_dir: Path) -> dict[str, Path]:
    """Render every report figure into figures_dir."""
    paths = {
        name: figures_dir / f'{name}.png'
        for name in ('class_balance', 'correlation', 'boxplots', 'linearity',
                     'cooks', 'half_normal', 'vif', 'confusion')
    }
    diagnostics = result.diagnostics
    evaluation = result.evaluation

    plot_class_balance(df, TARGET_COL, save_path=paths['class_balance'])
    plot_correlation_heatmap(result.exploration.correlation,
                             threshold=result.config.correlation_threshold,
                             save_path=paths['correlation'])
    plot_feature_boxplots(df, list(FEATURE_COLS), TARGET_COL, save_path=paths['boxplots'])

    if diagnostics.linearity.details.get('curves'):
        plot_logit_linearity(diagnostics.linearity, save_path=paths['linearity'])
    else:
        paths.pop('linearity')

    plot_cooks_distance(diagnostics.influence, save_path=paths['cooks'])
    plot_half_normal(diagnostics.influence, save_path=paths['half_normal'])

    if diagnostics.multicollinearity.table.empty:
        paths.pop('vif')
    else:
        plot_vif(diagnostics.multicollinearity, result.config.vif_threshold, save_path=paths['vif'])

    plot_confusion_matrix(evaluation.y_true, evaluation.y_pred,
                          threshold=evaluation.threshold, save_path=paths['confusion'])

    logger.info(f"Saved {len(paths)} figures to {figures_dir}")
    return paths


def main() -> int:
    """
    CLI entry point.

    Returns:
        Exit code: 0=success, 1=analysis failed
    """
    parser = argparse.ArgumentParser(
        description="Logistic regression analysis of Parkinson's voice measurements"
    )
    parser.add_argument(
        '--data',
        default=None,
        help=f"CSV path or http(s) URL (default: {DEFAULT_DATA_PATH}; canonical source {DATASET_URL})"
    )
    parser.add_argument('--output-dir', type=Path, default=None, help='Report directory (default: reports/)')
    parser.add_argument(
        '--missing-policy',
        choices=MISSING_POLICIES,
        default='reject',
        help='How to treat missing measurements (default: reject)'
    )
    parser.add_argument(
        '--scale-after-split',
        action='store_true',
        help='Fit standardization on the training partition only'
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--json-logs', action='store_true', help='Emit structured JSON log lines')
    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else logging.INFO
    if args.json_logs:
        setup_json_logging(level)
    else:
        setup_logging(level)
    dirs = ensure_directories(reports_dir=args.output_dir)

    config = AnalysisConfig(
        missing_policy=args.missing_policy,
        scale_before_split=not args.scale_after_split,
    )

    start = time.perf_counter()
    log_pipeline_step(logger, 'report', 'started', metrics={'source': str(args.data or DEFAULT_DATA_PATH)})
    try:
        df = load_parkinsons(args.data, missing_policy=config.missing_policy)
        result = run_analysis(df, config)
        figures = save_figures(result, df, dirs['figures'])
        report_path = write_report(result, dirs['reports'], figures)
    except (FileNotFoundError, ValueError, AnalysisError) as e:
        # AnalysisError covers unreadable URLs and selection step limits
        logger.error(f"Analysis failed: {e}")
        log_pipeline_step(logger, 'report', 'failed',
                          duration_ms=(time.perf_counter() - start) * 1000,
                          metrics={'error': str(e)}, level=logging.ERROR)
        return 1

    log_pipeline_step(logger, 'report', 'completed',
                      duration_ms=(time.perf_counter() - start) * 1000,
                      metrics={
                          'final_formula': str(result.final_model.formula),
                          'f1_score': round(result.evaluation.metrics['f1_score'], 4),
                      })
    logger.info(f"Analysis complete. See {report_path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
