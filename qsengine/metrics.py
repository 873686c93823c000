# -*- coding: utf-8 -*-
"""
Prometheus Metrics - Questionnaire Scoring Engine

8 Prometheus metrics for scoring engine monitoring. Recording is skipped
when ``enable_metrics`` is False on the config of the engine making the
call, or on the global config for calls that pass no setting.

Metrics:
    1. qs_engine_scoring_runs_total (Counter)
    2. qs_engine_scoring_duration_seconds (Histogram)
    3. qs_engine_visibility_evaluations_total (Counter)
    4. qs_engine_hidden_questions (Histogram)
    5. qs_engine_factor_computations_total (Counter)
    6. qs_engine_factor_graph_depth (Histogram)
    7. qs_engine_errors_total (Counter)
    8. qs_engine_interpretation_lookups_total (Counter)

Author: Questionnaire Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from typing import Optional

from prometheus_client import Counter, Histogram

from qsengine.config import get_config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Scoring runs
scoring_runs_total = Counter(
    "qs_engine_scoring_runs_total",
    "Total scoring orchestrator runs",
    labelnames=["result"],
)

# 2. Scoring duration
scoring_duration_seconds = Histogram(
    "qs_engine_scoring_duration_seconds",
    "Scoring orchestrator run duration in seconds",
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25),
)

# 3. Visibility evaluations
visibility_evaluations_total = Counter(
    "qs_engine_visibility_evaluations_total",
    "Total visibility evaluations performed",
)

# 4. Hidden questions per evaluation
hidden_questions = Histogram(
    "qs_engine_hidden_questions",
    "Number of questions hidden by visibility rules per evaluation",
    buckets=(0, 1, 2, 5, 10, 20, 50, 100),
)

# 5. Factor computations by formula
factor_computations_total = Counter(
    "qs_engine_factor_computations_total",
    "Total factor computations by formula",
    labelnames=["formula"],
)

# 6. Factor graph depth
factor_graph_depth = Histogram(
    "qs_engine_factor_graph_depth",
    "Deepest composite factor chain walked per computation",
    buckets=(1, 2, 3, 4, 5, 7, 10, 15, 20),
)

# 7. Errors by type
errors_total = Counter(
    "qs_engine_errors_total",
    "Total scoring engine errors by exception type",
    labelnames=["error_type"],
)

# 8. Interpretation lookups
interpretation_lookups_total = Counter(
    "qs_engine_interpretation_lookups_total",
    "Total interpretation lookups by outcome",
    labelnames=["outcome"],
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def _enabled(enabled: Optional[bool]) -> bool:
    """Explicit caller setting wins; otherwise the global config decides."""
    if enabled is not None:
        return enabled
    return get_config().enable_metrics


def record_scoring_run(
    result: str,
    duration_seconds: float,
    enabled: Optional[bool] = None,
) -> None:
    """Record a scoring run.

    Args:
        result: Run result ("success" or "error").
        duration_seconds: Run duration in seconds.
        enabled: The calling engine's ``enable_metrics``. Uses global
            config if None.
    """
    if not _enabled(enabled):
        return
    scoring_runs_total.labels(result=result).inc()
    scoring_duration_seconds.observe(duration_seconds)


def record_visibility_evaluation(hidden_count: int, enabled: Optional[bool] = None) -> None:
    """Record a visibility evaluation and how many questions it hid.

    Args:
        hidden_count: Number of hidden questions.
        enabled: The calling engine's ``enable_metrics``.
    """
    if not _enabled(enabled):
        return
    visibility_evaluations_total.inc()
    hidden_questions.observe(hidden_count)


def record_factor_computation(formula: str, enabled: Optional[bool] = None) -> None:
    """Record a single factor computation.

    Args:
        formula: Formula name (sum, avg, count_matching).
        enabled: The calling engine's ``enable_metrics``.
    """
    if not _enabled(enabled):
        return
    factor_computations_total.labels(formula=formula).inc()


def record_factor_graph_depth(depth: int, enabled: Optional[bool] = None) -> None:
    """Record the depth of a factor graph walk."""
    if not _enabled(enabled):
        return
    factor_graph_depth.observe(depth)


def record_error(error_type: str, enabled: Optional[bool] = None) -> None:
    """Record an engine error.

    Args:
        error_type: Exception class name.
        enabled: The calling engine's ``enable_metrics``.
    """
    if not _enabled(enabled):
        return
    errors_total.labels(error_type=error_type).inc()


def record_interpretation_lookup(outcome: str, enabled: Optional[bool] = None) -> None:
    """Record an interpretation lookup.

    Args:
        outcome: "matched", "unmatched" or "skipped".
        enabled: The calling engine's ``enable_metrics``.
    """
    if not _enabled(enabled):
        return
    interpretation_lookups_total.labels(outcome=outcome).inc()


__all__ = [
    # Metric objects
    "scoring_runs_total",
    "scoring_duration_seconds",
    "visibility_evaluations_total",
    "hidden_questions",
    "factor_computations_total",
    "factor_graph_depth",
    "errors_total",
    "interpretation_lookups_total",
    # Helper functions
    "record_scoring_run",
    "record_visibility_evaluation",
    "record_factor_computation",
    "record_factor_graph_depth",
    "record_error",
    "record_interpretation_lookup",
]
