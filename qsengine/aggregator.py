# -*- coding: utf-8 -*-
"""
Factor Aggregator

Computes a numeric score for every factor of a ruleset from the visible
answers. Leaf factors read question answers; composite factors read other
factors' scores. Factors are evaluated in post-order over the composite
dependency graph (see :mod:`qsengine.graph`), so every sub-factor score is
known before the factors that read it.

Formulas:
    - sum: total of the item scores
    - avg: total divided by the number of sources (none -> 0 unless required)
    - count_matching: number of answered source questions whose answer
      content is one of the factor's target contents

Zero-Hallucination Guarantees:
    - Decimal arithmetic; results do not depend on source order
    - Scores rounded ROUND_HALF_UP to a configured number of places
    - Hidden questions score 0 in sum and avg and are skipped by count_matching

Example:
    >>> from qsengine.aggregator import FactorAggregator
    >>> scores = FactorAggregator().compute(factors, questions, answers)
    >>> scores["F1"]
    5.0

Author: Questionnaire Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import AbstractSet, Dict, Iterable, List, Mapping, Optional, Sequence

from qsengine.config import EngineConfig, get_config
from qsengine.exceptions import ConfigurationError, EmptyFactorError
from qsengine.graph import post_order
from qsengine.metrics import record_factor_computation, record_factor_graph_depth
from qsengine.models import (
    Answer,
    AnswerInput,
    Factor,
    FactorFormula,
    Question,
    index_answers,
)

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


def to_decimal(value: Optional[float]) -> Decimal:
    """Convert a score to Decimal through ``str`` so 0.1 stays 0.1."""
    if value is None:
        return _ZERO
    return Decimal(str(value))


@dataclass(frozen=True)
class FactorScore:
    """Score of one factor plus how many items produced it."""
    code: str
    score: float
    item_count: int


class FactorAggregator:
    """Computes factor scores over a composite-factor dependency graph.

    Attributes:
        config: EngineConfig instance.

    Example:
        >>> aggregator = FactorAggregator()
        >>> aggregator.compute(ruleset.factors, ruleset.questions, answers)
        {'F1': 5.0, 'G': 12.0}
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        """Initialize FactorAggregator.

        Args:
            config: Optional config. Uses global config if None.
        """
        self.config = config or get_config()
        self._quantum = Decimal(1).scaleb(-self.config.score_decimal_places)

    def compute(
        self,
        factors: Sequence[Factor],
        questions: Sequence[Question],
        answers: Optional[AnswerInput],
        visible: Optional[AbstractSet[str]] = None,
        ruleset_id: Optional[str] = None,
    ) -> Dict[str, float]:
        """Compute the score of every factor.

        Args:
            factors: Factor definitions in declared order.
            questions: Questions the leaf factors read.
            answers: Respondent answers keyed by question code, or a list.
            visible: Visible question codes. None treats every question
                as visible.
            ruleset_id: Optional ruleset id attached to raised errors.

        Returns:
            Mapping of factor code to score, in declared factor order.

        Raises:
            ConfigurationError: For unknown sources, misused formulas or
                a graph deeper than ``max_factor_depth``.
            CyclicFactorError: If composite factors form a cycle.
            EmptyFactorError: If a required-non-empty factor has no items.
        """
        detailed = self.compute_detailed(
            factors, questions, answers, visible=visible, ruleset_id=ruleset_id,
        )
        return {code: result.score for code, result in detailed.items()}

    def compute_detailed(
        self,
        factors: Sequence[Factor],
        questions: Sequence[Question],
        answers: Optional[AnswerInput],
        visible: Optional[AbstractSet[str]] = None,
        ruleset_id: Optional[str] = None,
    ) -> Dict[str, FactorScore]:
        """Like :meth:`compute` but keeps the item count of each factor."""
        by_code = self._factor_arena(factors, ruleset_id)
        questions_by_code = {q.code: q for q in questions}
        self._check_sources(factors, by_code, questions_by_code, ruleset_id)

        indexed = index_answers(answers)
        if visible is None:
            visible = frozenset(questions_by_code)

        nodes = {
            f.code: (f.source_codes if f.is_composite else [])
            for f in factors
        }
        order, depth = post_order(
            nodes,
            [f.code for f in factors],
            max_depth=self.config.max_factor_depth,
            ruleset_id=ruleset_id,
        )
        record_factor_graph_depth(depth, enabled=self.config.enable_metrics)

        exact: Dict[str, Decimal] = {}
        results: Dict[str, FactorScore] = {}
        for code in order:
            factor = by_code[code]
            if factor.is_composite:
                items = [exact[source] for source in factor.source_codes]
                value = self._apply_formula(factor, items, ruleset_id)
                count = len(items)
            elif factor.formula == FactorFormula.COUNT_MATCHING:
                value, count = self._count_matching(
                    factor, questions_by_code, indexed, visible, ruleset_id,
                )
            else:
                items = self._leaf_items(factor, questions_by_code, indexed, visible)
                value = self._apply_formula(factor, items, ruleset_id)
                count = len(items)

            exact[code] = value
            results[code] = FactorScore(code=code, score=float(value), item_count=count)
            record_factor_computation(
                factor.formula.value, enabled=self.config.enable_metrics,
            )
            logger.debug(
                "Factor %s (%s) = %s over %d items",
                code, factor.formula.value, value, count,
            )

        return {f.code: results[f.code] for f in factors}

    def max_attainable_score(
        self,
        factor: Factor,
        questions: Sequence[Question],
        factors: Iterable[Factor] = (),
    ) -> float:
        """Full score of a factor, for display next to its score.

        For a leaf factor this sums, per source question, the highest
        single option score, multi-select questions included, matching
        the full scores the authoring tool displays. Composite factors
        sum their sub-factors' maxima; count_matching factors can reach
        at most one per source.

        Args:
            factor: Factor to measure.
            questions: Questions of the ruleset.
            factors: Other factors, needed when ``factor`` is composite.

        Returns:
            The maximum attainable score.
        """
        arena: Dict[str, Factor] = {f.code: f for f in factors}
        arena[factor.code] = factor
        return self._max_scores(list(arena.values()), questions, [factor.code])[factor.code]

    def ensure_max_scores(
        self,
        factors: Sequence[Factor],
        questions: Sequence[Question],
    ) -> List[Factor]:
        """Return factors with ``max_score`` filled in where it is missing.

        Factors that already carry a ``max_score`` are returned unchanged.
        """
        missing = [f.code for f in factors if f.max_score is None]
        if not missing:
            return list(factors)
        maxima = self._max_scores(list(factors), questions, missing)
        return [
            f if f.max_score is not None else f.model_copy(update={"max_score": maxima[f.code]})
            for f in factors
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _quantize(self, value: Decimal) -> Decimal:
        return value.quantize(self._quantum, rounding=ROUND_HALF_UP)

    @staticmethod
    def _factor_arena(
        factors: Sequence[Factor],
        ruleset_id: Optional[str],
    ) -> Dict[str, Factor]:
        """Index factors by code, rejecting duplicates."""
        arena: Dict[str, Factor] = {}
        for factor in factors:
            if factor.code in arena:
                raise ConfigurationError(
                    f"Duplicate factor code {factor.code}",
                    ruleset_id=ruleset_id,
                    context={"factor_code": factor.code},
                )
            arena[factor.code] = factor
        return arena

    @staticmethod
    def _check_sources(
        factors: Sequence[Factor],
        by_code: Mapping[str, Factor],
        questions_by_code: Mapping[str, Question],
        ruleset_id: Optional[str],
    ) -> None:
        """Ensure every source code resolves to the right kind of node."""
        for factor in factors:
            if factor.is_composite:
                if factor.formula == FactorFormula.COUNT_MATCHING:
                    raise ConfigurationError(
                        f"Composite factor {factor.code} cannot use count_matching",
                        ruleset_id=ruleset_id,
                        context={"factor_code": factor.code},
                    )
                pool, kind = by_code, "factor"
            else:
                pool, kind = questions_by_code, "question"
            for source in factor.source_codes:
                if source not in pool:
                    raise ConfigurationError(
                        f"Factor {factor.code} references unknown {kind} {source}",
                        ruleset_id=ruleset_id,
                        context={"factor_code": factor.code, "source_code": source},
                    )

    def _leaf_items(
        self,
        factor: Factor,
        questions_by_code: Mapping[str, Question],
        answers: Mapping[str, Answer],
        visible: AbstractSet[str],
    ) -> List[Decimal]:
        """Item score of every source question of a leaf factor; hidden ones score 0."""
        items: List[Decimal] = []
        for code in factor.source_codes:
            if code not in visible:
                items.append(_ZERO)
                continue
            items.append(self._item_score(questions_by_code[code], answers.get(code)))
        return items

    def _item_score(self, question: Question, answer: Optional[Answer]) -> Decimal:
        """Score one answered question; stale option codes score nothing."""
        if answer is None:
            return _ZERO
        chosen = [o for o in question.options if o.code in answer.selected]
        if not chosen:
            return _ZERO
        if question.is_multi_select(self.config.multi_select_types):
            return sum((to_decimal(o.score) for o in chosen), _ZERO)
        if len(chosen) > 1:
            logger.warning(
                "Single-selection question %s has %d options selected; scoring %s",
                question.code, len(chosen), chosen[0].code,
            )
        return to_decimal(chosen[0].score)

    def _count_matching(
        self,
        factor: Factor,
        questions_by_code: Mapping[str, Question],
        answers: Mapping[str, Answer],
        visible: AbstractSet[str],
        ruleset_id: Optional[str],
    ) -> tuple:
        """Count visible answered sources whose content is a target."""
        targets = set(factor.target_contents)
        answered = 0
        matched = 0
        for code in factor.source_codes:
            answer = answers.get(code)
            if code not in visible or answer is None or answer.is_empty:
                continue
            answered += 1
            question = questions_by_code[code]
            contents = {o.content for o in question.options if o.code in answer.selected}
            if answer.value is not None and answer.value.strip():
                contents.add(answer.value.strip())
            if contents & targets:
                matched += 1

        if answered == 0 and factor.required_non_empty:
            raise EmptyFactorError(factor.code, ruleset_id=ruleset_id)
        return Decimal(matched), answered

    def _apply_formula(
        self,
        factor: Factor,
        items: List[Decimal],
        ruleset_id: Optional[str],
    ) -> Decimal:
        """Apply sum or avg to item scores."""
        if not items:
            if factor.required_non_empty:
                raise EmptyFactorError(factor.code, ruleset_id=ruleset_id)
            return self._quantize(_ZERO)
        total = sum(items, _ZERO)
        if factor.formula == FactorFormula.AVG:
            return self._quantize(total / len(items))
        return self._quantize(total)

    def _max_scores(
        self,
        factors: Sequence[Factor],
        questions: Sequence[Question],
        roots: Sequence[str],
    ) -> Dict[str, float]:
        """Maximum attainable score of ``roots`` and their sub-factors."""
        by_code = self._factor_arena(factors, None)
        questions_by_code = {q.code: q for q in questions}
        self._check_sources(
            [by_code[code] for code in roots], by_code, questions_by_code, None,
        )
        nodes = {f.code: (f.source_codes if f.is_composite else []) for f in factors}
        order, _ = post_order(nodes, roots, max_depth=self.config.max_factor_depth)

        maxima: Dict[str, Decimal] = {}
        for code in order:
            factor = by_code[code]
            if factor.formula == FactorFormula.COUNT_MATCHING:
                maxima[code] = Decimal(len(factor.source_codes))
            elif factor.is_composite:
                maxima[code] = sum(
                    (maxima[s] for s in factor.source_codes if s in maxima), _ZERO,
                )
            else:
                maxima[code] = sum(
                    (
                        max(
                            [to_decimal(o.score) for o in questions_by_code[s].options],
                            default=_ZERO,
                        ).max(_ZERO)
                        for s in factor.source_codes
                        if s in questions_by_code
                    ),
                    _ZERO,
                )
        return {code: float(self._quantize(value)) for code, value in maxima.items()}


def compute(
    factors: Sequence[Factor],
    questions: Sequence[Question],
    answers: Optional[AnswerInput],
    visible: Optional[AbstractSet[str]] = None,
    config: Optional[EngineConfig] = None,
) -> Dict[str, float]:
    """Module-level shortcut for :meth:`FactorAggregator.compute`."""
    return FactorAggregator(config).compute(factors, questions, answers, visible=visible)


def max_attainable_score(
    factor: Factor,
    questions: Sequence[Question],
    factors: Iterable[Factor] = (),
    config: Optional[EngineConfig] = None,
) -> float:
    """Module-level shortcut for :meth:`FactorAggregator.max_attainable_score`."""
    return FactorAggregator(config).max_attainable_score(factor, questions, factors)


__all__ = [
    "FactorScore",
    "FactorAggregator",
    "compute",
    "max_attainable_score",
    "to_decimal",
]
