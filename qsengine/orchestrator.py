# -*- coding: utf-8 -*-
"""
Scoring Orchestrator

Single entry point that turns one immutable ruleset snapshot and one
answer snapshot into a complete AssessmentResult:

    1. Validate the ruleset (when ``validate_on_score`` is set)
    2. Evaluate question visibility
    3. Aggregate factor scores over the visible answers only
    4. Expose the total-score factor's score as ``total_score``
    5. Resolve interpretations for displayable factors and the total
    6. Fingerprint inputs and outputs for audit

Integrates with:
    - VisibilityEvaluator, FactorAggregator, InterpretationResolver
    - RulesetValidator for structural checks before scoring
    - ProvenanceTracker (optional, caller-owned) for audit trails
    - Metrics for Prometheus observability

Zero-Hallucination Guarantees:
    - Identical inputs produce identical results and provenance hashes
    - Errors propagate with no partial result
    - The ruleset and answers are never mutated

Example:
    >>> from qsengine.orchestrator import ScoringOrchestrator
    >>> result = ScoringOrchestrator().score(ruleset, answers)
    >>> print(result.total_score, result.total_interpretation)

Author: Questionnaire Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional

from qsengine.aggregator import FactorAggregator
from qsengine.config import EngineConfig, get_config
from qsengine.exceptions import RulesetError
from qsengine.interpretation import InterpretationResolver
from qsengine.metrics import record_error, record_scoring_run
from qsengine.models import (
    AnswerInput,
    AssessmentResult,
    FactorResult,
    Ruleset,
    index_answers,
)
from qsengine.provenance import (
    ProvenanceTracker,
    answers_fingerprint,
    result_fingerprint,
    ruleset_fingerprint,
)
from qsengine.validator import RulesetValidator
from qsengine.visibility import VisibilityEvaluator

logger = logging.getLogger(__name__)


class ScoringOrchestrator:
    """Composes visibility, aggregation and interpretation into one call.

    Attributes:
        config: EngineConfig instance.
        visibility: VisibilityEvaluator instance.
        aggregator: FactorAggregator instance.
        resolver: InterpretationResolver instance.
        validator: RulesetValidator instance.
        provenance: Optional ProvenanceTracker receiving every run.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        visibility: Optional[VisibilityEvaluator] = None,
        aggregator: Optional[FactorAggregator] = None,
        resolver: Optional[InterpretationResolver] = None,
        validator: Optional[RulesetValidator] = None,
        provenance: Optional[ProvenanceTracker] = None,
    ) -> None:
        """Initialize ScoringOrchestrator.

        Args:
            config: Optional config. Uses global config if None.
            visibility: Optional evaluator. Creates new one if None.
            aggregator: Optional aggregator. Creates new one if None.
            resolver: Optional resolver. Creates new one if None.
            validator: Optional validator. Creates new one if None.
            provenance: Optional provenance tracker. Runs are not
                recorded if None.
        """
        self.config = config or get_config()
        self.visibility = visibility or VisibilityEvaluator(self.config)
        self.aggregator = aggregator or FactorAggregator(self.config)
        self.resolver = resolver or InterpretationResolver(self.config)
        self.validator = validator or RulesetValidator()
        self.provenance = provenance

    def score(
        self,
        ruleset: Ruleset,
        answers: Optional[AnswerInput],
    ) -> AssessmentResult:
        """Score one answer set against one ruleset version.

        Args:
            ruleset: Published ruleset snapshot.
            answers: Respondent answers keyed by question code, or a list.

        Returns:
            Complete AssessmentResult.

        Raises:
            ConfigurationError: For references to unknown or mis-ordered
                questions or factors.
            CyclicFactorError: If composite factors form a cycle.
            EmptyFactorError: If a required-non-empty factor has no items.
        """
        start = time.monotonic()
        try:
            result = self._score(ruleset, answers)
        except RulesetError as exc:
            record_error(type(exc).__name__, enabled=self.config.enable_metrics)
            record_scoring_run(
                "error", time.monotonic() - start, enabled=self.config.enable_metrics,
            )
            logger.warning(
                "Scoring ruleset %s v%s failed: %s",
                ruleset.ruleset_id, ruleset.version, exc,
            )
            raise

        record_scoring_run(
            "success", time.monotonic() - start, enabled=self.config.enable_metrics,
        )
        logger.info(
            "Scored ruleset %s v%s: %d visible questions, %d factors, total=%s",
            ruleset.ruleset_id,
            ruleset.version,
            len(result.visible_question_codes),
            len(result.factor_scores),
            result.total_score,
        )
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _score(self, ruleset: Ruleset, answers: Optional[AnswerInput]) -> AssessmentResult:
        if self.config.validate_on_score:
            validation = self.validator.assert_valid(ruleset)
            for warning in validation.warnings:
                logger.debug("Ruleset %s warning: %s", ruleset.ruleset_id, warning)

        indexed = index_answers(answers)

        # Step 1: visibility
        visible_codes = self.visibility.evaluate_ordered(
            ruleset.questions, indexed, ruleset_id=ruleset.ruleset_id,
        )
        visible = frozenset(visible_codes)
        visible_answers = {
            code: answer for code, answer in indexed.items() if code in visible
        }

        # Step 2: factor scores over visible answers
        detailed = self.aggregator.compute_detailed(
            ruleset.factors,
            ruleset.questions,
            visible_answers,
            visible=visible,
            ruleset_id=ruleset.ruleset_id,
        )
        factor_scores: Dict[str, float] = {
            code: item.score for code, item in detailed.items()
        }

        # Step 3: total score
        total_factor = ruleset.total_factor()
        total_score = factor_scores[total_factor.code] if total_factor else None

        # Step 4: interpretations
        maxima = {
            f.code: f.max_score
            for f in self.aggregator.ensure_max_scores(ruleset.factors, ruleset.questions)
        }
        interpretations: Dict[str, Optional[str]] = {}
        factor_results: List[FactorResult] = []
        for factor in ruleset.factors:
            text = None
            if factor.is_show:
                text = self.resolver.resolve(factor.interpretation, factor_scores[factor.code])
                interpretations[factor.code] = text
            factor_results.append(FactorResult(
                code=factor.code,
                title=factor.title,
                score=factor_scores[factor.code],
                max_score=maxima.get(factor.code),
                item_count=detailed[factor.code].item_count,
                is_total_score=factor.is_total_score,
                is_show=factor.is_show,
                interpretation=text,
            ))
        total_interpretation = self.resolver.resolve(
            ruleset.macro_interpretation, total_score,
        )

        # Step 5: provenance
        result = AssessmentResult(
            ruleset_id=ruleset.ruleset_id,
            ruleset_version=ruleset.version,
            visible_question_codes=visible_codes,
            factor_scores=factor_scores,
            total_score=total_score,
            interpretations=interpretations,
            total_interpretation=total_interpretation,
            factor_results=factor_results,
            ruleset_hash=ruleset_fingerprint(ruleset),
            answers_hash=answers_fingerprint(indexed),
        )
        result.provenance_hash = result_fingerprint(result)

        if self.provenance is not None:
            self.provenance.record_scoring(result)

        return result


def score(
    ruleset: Ruleset,
    answers: Optional[AnswerInput],
    config: Optional[EngineConfig] = None,
) -> AssessmentResult:
    """Module-level shortcut for :meth:`ScoringOrchestrator.score`."""
    return ScoringOrchestrator(config).score(ruleset, answers)


__all__ = [
    "ScoringOrchestrator",
    "score",
]
