# -*- coding: utf-8 -*-
"""
Visibility Evaluator

Decides which questions are shown to a respondent given the answers
given so far. Questions are walked in ascending position order while a
running map records the selected options of every question already found
visible. A hidden question contributes an empty selection to any later
condition that references it, so hiding cascades down the questionnaire.

Zero-Hallucination Guarantees:
    - Pure function of (questions, answers); no shared state
    - Stale option codes in answers count as "not selected"
    - Rule defects raise ConfigurationError naming both question codes

Example:
    >>> from qsengine.visibility import VisibilityEvaluator
    >>> visible = VisibilityEvaluator().evaluate(questions, answers)
    >>> "Q2" in visible

Author: Questionnaire Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Optional, Sequence, Set

from qsengine.config import EngineConfig, get_config
from qsengine.exceptions import ConfigurationError
from qsengine.metrics import record_visibility_evaluation
from qsengine.models import (
    AnswerInput,
    Combinator,
    Question,
    VisibilityRule,
    index_answers,
)

logger = logging.getLogger(__name__)

_EMPTY: FrozenSet[str] = frozenset()


class VisibilityEvaluator:
    """Evaluates visibility rules over an ordered question list.

    Attributes:
        config: EngineConfig instance.

    Example:
        >>> evaluator = VisibilityEvaluator()
        >>> codes = evaluator.evaluate_ordered(ruleset.questions, answers)
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        """Initialize VisibilityEvaluator.

        Args:
            config: Optional config. Uses global config if None.
        """
        self.config = config or get_config()

    def evaluate(
        self,
        questions: Sequence[Question],
        answers: Optional[AnswerInput],
        ruleset_id: Optional[str] = None,
    ) -> Set[str]:
        """Return the codes of all currently visible questions.

        Args:
            questions: Questions of one ruleset, in any order.
            answers: Respondent answers keyed by question code, or a list.
            ruleset_id: Optional ruleset id attached to raised errors.

        Returns:
            Set of visible question codes.

        Raises:
            ConfigurationError: If a condition references an unknown
                question or one that does not precede the controlled one.
        """
        return set(self.evaluate_ordered(questions, answers, ruleset_id))

    def evaluate_ordered(
        self,
        questions: Sequence[Question],
        answers: Optional[AnswerInput],
        ruleset_id: Optional[str] = None,
    ) -> List[str]:
        """Return visible question codes in questionnaire order.

        Same contract as :meth:`evaluate`; the ordered form is what the
        live form renderer and the assessment result consume.
        """
        indexed = index_answers(answers)
        by_code: Dict[str, Question] = {q.code: q for q in questions}
        ordered = sorted(questions, key=lambda q: q.position)

        selections: Dict[str, FrozenSet[str]] = {}
        visible: List[str] = []

        for question in ordered:
            if question.visibility_rule is not None:
                self._check_controllers(question, by_code, ruleset_id)
                shown = self._rule_holds(question.visibility_rule, selections)
            else:
                shown = True

            if not shown:
                selections[question.code] = _EMPTY
                logger.debug("Question %s hidden", question.code)
                continue

            visible.append(question.code)
            selections[question.code] = self._selected_options(
                question, indexed.get(question.code),
            )

        hidden_count = len(ordered) - len(visible)
        record_visibility_evaluation(hidden_count, enabled=self.config.enable_metrics)
        logger.debug(
            "Visibility evaluated: %d visible, %d hidden", len(visible), hidden_count,
        )
        return visible

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _rule_holds(
        rule: VisibilityRule,
        selections: Dict[str, FrozenSet[str]],
    ) -> bool:
        """Combine the per-condition results with the rule's combinator."""
        if not rule.conditions:
            return True
        results = (
            condition.matches(selections.get(condition.question_code, _EMPTY))
            for condition in rule.conditions
        )
        if rule.combinator == Combinator.ALL:
            return all(results)
        return any(results)

    @staticmethod
    def _check_controllers(
        question: Question,
        by_code: Dict[str, Question],
        ruleset_id: Optional[str],
    ) -> None:
        """Reject conditions on unknown or non-preceding questions."""
        for code in question.visibility_rule.controller_codes:
            controller = by_code.get(code)
            if controller is None:
                raise ConfigurationError(
                    f"Question {question.code} is controlled by unknown question {code}",
                    ruleset_id=ruleset_id,
                    context={"question_code": question.code, "controller_code": code},
                )
            if code == question.code or controller.position >= question.position:
                raise ConfigurationError(
                    f"Question {question.code} is controlled by {code} "
                    "which does not precede it",
                    ruleset_id=ruleset_id,
                    context={
                        "question_code": question.code,
                        "controller_code": code,
                        "question_position": question.position,
                        "controller_position": controller.position,
                    },
                )

    @staticmethod
    def _selected_options(question: Question, answer) -> FrozenSet[str]:
        """Selected option codes of ``answer`` that exist on ``question``."""
        if answer is None:
            return _EMPTY
        selected = answer.selected
        known = selected & question.option_codes
        if known != selected:
            logger.warning(
                "Ignoring stale option codes %s in answer to question %s",
                sorted(selected - known), question.code,
            )
        return frozenset(known)


def evaluate(
    questions: Sequence[Question],
    answers: Optional[AnswerInput],
    config: Optional[EngineConfig] = None,
) -> Set[str]:
    """Module-level shortcut for :meth:`VisibilityEvaluator.evaluate`."""
    return VisibilityEvaluator(config).evaluate(questions, answers)


__all__ = [
    "VisibilityEvaluator",
    "evaluate",
]
