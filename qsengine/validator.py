# -*- coding: utf-8 -*-
"""
Ruleset Validator

Authoring-time structural validation of a ruleset before it is published.
The same checks run before scoring when
``EngineConfig.validate_on_score`` is set.

Checks:
    - question_codes: duplicate question codes and positions
    - option_codes: duplicate option codes within a question
    - visibility_rules: unknown or non-preceding controllers, unknown or
      empty option lists
    - factor_sources: duplicate factor codes, leaf/composite sources of the
      wrong kind, count_matching misuse
    - total_score: more than one total-score factor
    - factor_cycles: cycles in the composite-factor graph
    - bands: bands whose start exceeds their end

Zero-Hallucination Guarantees:
    - All validation is deterministic and rule-based
    - validate() never raises; assert_valid() raises the engine's errors
    - Complete audit of which checks were run

Example:
    >>> from qsengine.validator import RulesetValidator
    >>> result = RulesetValidator().validate(ruleset)
    >>> print(result.is_valid, result.errors)

Author: Questionnaire Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Optional

from qsengine.exceptions import ConfigurationError, CyclicFactorError
from qsengine.graph import find_cycles
from qsengine.models import (
    FactorFormula,
    InterpretationTable,
    Question,
    Ruleset,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class RulesetValidator:
    """Validates the structural invariants of a ruleset.

    Example:
        >>> validator = RulesetValidator()
        >>> validator.assert_valid(ruleset)  # raises on the first defect
    """

    def validate(self, ruleset: Ruleset) -> ValidationResult:
        """Run every check and collect errors and warnings.

        Args:
            ruleset: The ruleset to validate.

        Returns:
            ValidationResult with errors, warnings and detected cycles.
        """
        errors: List[str] = []
        warnings: List[str] = []
        checks_run: List[str] = []

        checks_run.append("question_codes")
        self._check_question_codes(ruleset, errors, warnings)

        checks_run.append("option_codes")
        self._check_option_codes(ruleset, errors, warnings)

        checks_run.append("visibility_rules")
        self._check_visibility_rules(ruleset, errors, warnings)

        checks_run.append("factor_sources")
        self._check_factor_sources(ruleset, errors, warnings)

        checks_run.append("total_score")
        self._check_total_score(ruleset, errors, warnings)

        checks_run.append("factor_cycles")
        nodes = {
            f.code: list(f.source_codes) if f.is_composite else []
            for f in ruleset.factors
        }
        cycles = find_cycles(nodes)
        for cycle in cycles:
            errors.append(f"Composite factor cycle: {' -> '.join(cycle)}")

        checks_run.append("bands")
        self._check_bands(ruleset, errors, warnings)

        is_valid = not errors
        if not is_valid:
            logger.warning(
                "Ruleset %s v%s failed validation with %d errors",
                ruleset.ruleset_id, ruleset.version, len(errors),
            )
        return ValidationResult(
            is_valid=is_valid,
            errors=errors,
            warnings=warnings,
            cycles=cycles,
            checks_run=checks_run,
        )

    def assert_valid(self, ruleset: Ruleset) -> ValidationResult:
        """Validate and raise if the ruleset cannot be scored.

        Returns:
            The ValidationResult (possibly carrying warnings) when valid.

        Raises:
            CyclicFactorError: For the first detected cycle.
            ConfigurationError: For the first other error.
        """
        result = self.validate(ruleset)
        if result.cycles:
            raise CyclicFactorError(result.cycles[0], ruleset_id=ruleset.ruleset_id)
        if result.errors:
            raise ConfigurationError(
                result.errors[0],
                ruleset_id=ruleset.ruleset_id,
                context={"errors": result.errors},
            )
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_question_codes(
        ruleset: Ruleset,
        errors: List[str],
        warnings: List[str],
    ) -> None:
        """Question codes and positions must be unique."""
        for code, count in Counter(q.code for q in ruleset.questions).items():
            if count > 1:
                errors.append(f"Duplicate question code {code}")
        for position, count in Counter(q.position for q in ruleset.questions).items():
            if count > 1:
                errors.append(f"Duplicate question position {position}")

    @staticmethod
    def _check_option_codes(
        ruleset: Ruleset,
        errors: List[str],
        warnings: List[str],
    ) -> None:
        """Option codes must be unique within their question."""
        for question in ruleset.questions:
            for code, count in Counter(o.code for o in question.options).items():
                if count > 1:
                    errors.append(
                        f"Question {question.code} has duplicate option code {code}"
                    )

    @staticmethod
    def _check_visibility_rules(
        ruleset: Ruleset,
        errors: List[str],
        warnings: List[str],
    ) -> None:
        """Controllers must exist and precede the question they control."""
        by_code: Dict[str, Question] = ruleset.question_map()
        for question in ruleset.questions:
            rule = question.visibility_rule
            if rule is None:
                continue
            if not rule.conditions:
                warnings.append(
                    f"Question {question.code} has a visibility rule without conditions"
                )
            for condition in rule.conditions:
                controller = by_code.get(condition.question_code)
                if controller is None:
                    errors.append(
                        f"Question {question.code} is controlled by unknown "
                        f"question {condition.question_code}"
                    )
                    continue
                if (
                    controller.code == question.code
                    or controller.position >= question.position
                ):
                    errors.append(
                        f"Question {question.code} is controlled by "
                        f"{controller.code} which does not precede it"
                    )
                if not condition.option_codes:
                    warnings.append(
                        f"Condition of {question.code} on {controller.code} lists no options"
                    )
                unknown = sorted(set(condition.option_codes) - controller.option_codes)
                if unknown:
                    warnings.append(
                        f"Condition of {question.code} on {controller.code} "
                        f"references unknown options {unknown}"
                    )

    @staticmethod
    def _check_factor_sources(
        ruleset: Ruleset,
        errors: List[str],
        warnings: List[str],
    ) -> None:
        """Leaf factors read questions, composite factors read factors."""
        question_codes = {q.code for q in ruleset.questions}
        factor_counts = Counter(f.code for f in ruleset.factors)
        for code, count in factor_counts.items():
            if count > 1:
                errors.append(f"Duplicate factor code {code}")

        for factor in ruleset.factors:
            if not factor.source_codes:
                warnings.append(f"Factor {factor.code} has no sources")
            if factor.is_composite:
                if factor.formula == FactorFormula.COUNT_MATCHING:
                    errors.append(
                        f"Composite factor {factor.code} cannot use count_matching"
                    )
                for source in factor.source_codes:
                    if source not in factor_counts:
                        errors.append(
                            f"Factor {factor.code} references unknown factor {source}"
                        )
            else:
                for source in factor.source_codes:
                    if source not in question_codes:
                        errors.append(
                            f"Factor {factor.code} references unknown question {source}"
                        )
                if (
                    factor.formula == FactorFormula.COUNT_MATCHING
                    and not factor.target_contents
                ):
                    warnings.append(
                        f"Factor {factor.code} counts matches but has no target contents"
                    )

    @staticmethod
    def _check_total_score(
        ruleset: Ruleset,
        errors: List[str],
        warnings: List[str],
    ) -> None:
        """At most one factor may be the total score."""
        totals = [f.code for f in ruleset.factors if f.is_total_score]
        if len(totals) > 1:
            errors.append(f"Multiple total-score factors: {totals}")
        if ruleset.macro_interpretation is not None and not totals:
            warnings.append("Macro interpretation configured without a total-score factor")

    @classmethod
    def _check_bands(
        cls,
        ruleset: Ruleset,
        errors: List[str],
        warnings: List[str],
    ) -> None:
        """Every band must satisfy start <= end."""
        cls._check_table("macro interpretation", ruleset.macro_interpretation, errors)
        for factor in ruleset.factors:
            cls._check_table(f"factor {factor.code}", factor.interpretation, errors)

    @staticmethod
    def _check_table(
        owner: str,
        table: Optional[InterpretationTable],
        errors: List[str],
    ) -> None:
        if table is None:
            return
        for index, band in enumerate(table.bands):
            if band.start > band.end:
                errors.append(
                    f"Band {index} of {owner} starts at {band.start} after its end {band.end}"
                )


__all__ = [
    "RulesetValidator",
]
