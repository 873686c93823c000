# -*- coding: utf-8 -*-
"""
Scoring Engine Data Models

Pydantic v2 data models for the questionnaire scoring engine. Every
ruleset model is frozen: rulesets are authored and published as a unit
and the engine never mutates them.

Models:
    - Enums: MatchMode, Combinator, FactorKind, FactorFormula
    - Questionnaire: Option, ControllingCondition, VisibilityRule, Question
    - Respondent: Answer
    - Scoring: Band, InterpretationTable, Factor, Ruleset
    - Results: FactorResult, AssessmentResult, ValidationResult
    - Audit: ScoringRecord

Author: Questionnaire Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# Enumerations
# =============================================================================


class MatchMode(str, Enum):
    """How a controlling condition matches the selected options."""
    ALL = "all"
    ANY = "any"


class Combinator(str, Enum):
    """How the conditions of a visibility rule combine."""
    ALL = "all"
    ANY = "any"


class FactorKind(str, Enum):
    """Whether a factor reads questions or other factors."""
    LEAF = "leaf"
    COMPOSITE = "composite"


class FactorFormula(str, Enum):
    """Aggregation applied to a factor's item scores."""
    SUM = "sum"
    AVG = "avg"
    COUNT_MATCHING = "count_matching"


_FROZEN = {"extra": "forbid", "frozen": True}


def _unique(codes: Iterable[str]) -> List[str]:
    """Drop duplicate codes, keeping first occurrence order."""
    seen: Dict[str, None] = {}
    for code in codes:
        seen.setdefault(code, None)
    return list(seen)


# =============================================================================
# Questionnaire Models
# =============================================================================


class Option(BaseModel):
    """A selectable option of a question."""
    code: str = Field(..., min_length=1, description="Option code, unique within its question")
    content: str = Field(default="", description="Displayed option content")
    score: Optional[float] = Field(
        None, allow_inf_nan=False, description="Numeric score; None counts as 0",
    )

    model_config = _FROZEN


class ControllingCondition(BaseModel):
    """One condition of a visibility rule, over a preceding question."""
    question_code: str = Field(..., min_length=1, description="Controlling question code")
    match: MatchMode = Field(default=MatchMode.ANY, description="Option matching mode")
    option_codes: List[str] = Field(default_factory=list, description="Option codes to match")

    model_config = _FROZEN

    @field_validator("option_codes")
    @classmethod
    def dedupe_option_codes(cls, v: List[str]) -> List[str]:
        """Keep each option code once."""
        return _unique(v)

    def matches(self, selected: FrozenSet[str]) -> bool:
        """Evaluate this condition against a selected-option set."""
        wanted = set(self.option_codes)
        if self.match == MatchMode.ALL:
            return wanted.issubset(selected)
        return bool(wanted & selected)


class VisibilityRule(BaseModel):
    """Author-defined rule deciding whether a question is shown."""
    combinator: Combinator = Field(default=Combinator.ANY, description="How conditions combine")
    conditions: List[ControllingCondition] = Field(
        default_factory=list, description="Controlling conditions",
    )

    model_config = _FROZEN

    @property
    def controller_codes(self) -> List[str]:
        """Codes of every controlling question, in condition order."""
        return [c.question_code for c in self.conditions]


class Question(BaseModel):
    """A questionnaire item with its options and optional visibility rule."""
    code: str = Field(..., min_length=1, description="Unique question code")
    type: str = Field(..., min_length=1, description="Capture widget type tag")
    position: int = Field(..., ge=0, description="Ordinal position in the questionnaire")
    title: str = Field(default="", description="Question title")
    options: List[Option] = Field(default_factory=list, description="Ordered options")
    visibility_rule: Optional[VisibilityRule] = Field(
        None, description="Visibility rule; None means always visible",
    )

    model_config = _FROZEN

    @property
    def option_codes(self) -> FrozenSet[str]:
        """All option codes defined on the question."""
        return frozenset(o.code for o in self.options)

    def get_option(self, code: str) -> Optional[Option]:
        """Return the option with ``code`` or None."""
        for option in self.options:
            if option.code == code:
                return option
        return None

    def is_multi_select(self, multi_select_types: Iterable[str]) -> bool:
        """Whether answers to this question may select several options."""
        return self.type in set(multi_select_types)


# =============================================================================
# Respondent Models
# =============================================================================


class Answer(BaseModel):
    """A respondent's answer to a single question."""
    question_code: str = Field(..., min_length=1, description="Answered question code")
    option_codes: List[str] = Field(default_factory=list, description="Selected option codes")
    value: Optional[str] = Field(None, description="Free-text value")

    model_config = _FROZEN

    @field_validator("option_codes")
    @classmethod
    def normalize_option_codes(cls, v: List[str]) -> List[str]:
        """Selection order carries no meaning; store sorted and unique."""
        return sorted(set(v))

    @property
    def selected(self) -> FrozenSet[str]:
        """Selected option codes as a set."""
        return frozenset(self.option_codes)

    @property
    def is_empty(self) -> bool:
        """True when neither an option nor a non-blank value was given."""
        return not self.option_codes and not (self.value or "").strip()


AnswerInput = Union[Mapping[str, Answer], Iterable[Answer]]


def index_answers(answers: Optional[AnswerInput]) -> Dict[str, Answer]:
    """Normalize an answer mapping or iterable to ``{question_code: Answer}``.

    Raises:
        ValueError: If two answers in an iterable name the same question,
            or a mapping key disagrees with its answer's question code.
    """
    if answers is None:
        return {}
    if isinstance(answers, Mapping):
        for key, answer in answers.items():
            if key != answer.question_code:
                raise ValueError(
                    f"Answer keyed {key} belongs to question {answer.question_code}"
                )
        return dict(answers)
    indexed: Dict[str, Answer] = {}
    for answer in answers:
        if answer.question_code in indexed:
            raise ValueError(f"Duplicate answer for question {answer.question_code}")
        indexed[answer.question_code] = answer
    return indexed


# =============================================================================
# Scoring Models
# =============================================================================


class Band(BaseModel):
    """An inclusive score range paired with interpretive text."""
    start: float = Field(..., allow_inf_nan=False, description="Inclusive lower bound")
    end: float = Field(..., allow_inf_nan=False, description="Inclusive upper bound")
    text: str = Field(..., description="Interpretation text")

    model_config = _FROZEN

    def contains(self, score: float) -> bool:
        """Whether ``score`` falls inside the band."""
        return self.start <= score <= self.end


class InterpretationTable(BaseModel):
    """Ordered bands; the first matching band wins."""
    bands: List[Band] = Field(default_factory=list, description="Bands in authoring order")
    max_score: Optional[float] = Field(
        None, allow_inf_nan=False, description="Displayed full score",
    )

    model_config = _FROZEN


class Factor(BaseModel):
    """A scoring factor over questions (leaf) or other factors (composite)."""
    code: str = Field(..., min_length=1, description="Unique factor code")
    title: str = Field(default="", description="Factor title")
    kind: FactorKind = Field(default=FactorKind.LEAF, description="Leaf or composite")
    source_codes: List[str] = Field(
        default_factory=list, description="Question codes (leaf) or factor codes (composite)",
    )
    formula: FactorFormula = Field(default=FactorFormula.SUM, description="Aggregation formula")
    target_contents: List[str] = Field(
        default_factory=list, description="Answer contents counted by count_matching",
    )
    is_total_score: bool = Field(default=False, description="Overall questionnaire score flag")
    required_non_empty: bool = Field(
        default=False, description="Raise instead of scoring 0 when no items resolve",
    )
    is_show: bool = Field(default=True, description="Whether the factor is displayed in reports")
    max_score: Optional[float] = Field(
        None, allow_inf_nan=False, description="Full score shown next to the factor",
    )
    interpretation: Optional[InterpretationTable] = Field(
        None, description="Per-factor interpretation table",
    )

    model_config = _FROZEN

    @field_validator("source_codes")
    @classmethod
    def dedupe_source_codes(cls, v: List[str]) -> List[str]:
        """A source counted twice would double its weight; keep it once."""
        return _unique(v)

    @property
    def is_composite(self) -> bool:
        return self.kind == FactorKind.COMPOSITE


class Ruleset(BaseModel):
    """Versioned immutable bundle of everything needed to score a questionnaire."""
    ruleset_id: str = Field(..., min_length=1, description="Questionnaire identifier")
    version: str = Field(default="1", description="Published version")
    title: str = Field(default="", description="Questionnaire title")
    questions: List[Question] = Field(default_factory=list, description="Questions")
    factors: List[Factor] = Field(default_factory=list, description="Factors in declared order")
    macro_interpretation: Optional[InterpretationTable] = Field(
        None, description="Interpretation table for the total score",
    )

    model_config = _FROZEN

    def ordered_questions(self) -> List[Question]:
        """Questions sorted by position, ties kept in declared order."""
        return sorted(self.questions, key=lambda q: q.position)

    def question_map(self) -> Dict[str, Question]:
        return {q.code: q for q in self.questions}

    def factor_map(self) -> Dict[str, Factor]:
        return {f.code: f for f in self.factors}

    def total_factor(self) -> Optional[Factor]:
        """The factor flagged as the total score, if any."""
        for factor in self.factors:
            if factor.is_total_score:
                return factor
        return None


# =============================================================================
# Result Models
# =============================================================================


class FactorResult(BaseModel):
    """Per-factor detail of an assessment."""
    code: str = Field(..., description="Factor code")
    title: str = Field(default="", description="Factor title")
    score: float = Field(..., description="Computed score")
    max_score: Optional[float] = Field(None, description="Full score")
    item_count: int = Field(default=0, ge=0, description="Items that contributed")
    is_total_score: bool = Field(default=False, description="Total score flag")
    is_show: bool = Field(default=True, description="Displayable flag")
    interpretation: Optional[str] = Field(None, description="Resolved interpretation text")

    model_config = {"extra": "forbid"}


class AssessmentResult(BaseModel):
    """Complete output of one scoring run."""
    ruleset_id: str = Field(..., description="Scored ruleset")
    ruleset_version: str = Field(..., description="Scored ruleset version")
    visible_question_codes: List[str] = Field(
        default_factory=list, description="Visible questions in questionnaire order",
    )
    factor_scores: Dict[str, float] = Field(
        default_factory=dict, description="Score per factor code",
    )
    total_score: Optional[float] = Field(None, description="Score of the total-score factor")
    interpretations: Dict[str, Optional[str]] = Field(
        default_factory=dict, description="Interpretation per displayable factor",
    )
    total_interpretation: Optional[str] = Field(
        None, description="Macro interpretation of the total score",
    )
    factor_results: List[FactorResult] = Field(
        default_factory=list, description="Per-factor detail",
    )
    ruleset_hash: str = Field(default="", description="SHA-256 of the ruleset")
    answers_hash: str = Field(default="", description="SHA-256 of the answer set")
    provenance_hash: str = Field(default="", description="SHA-256 over inputs and outputs")

    model_config = {"extra": "forbid"}

    @property
    def visible_set(self) -> FrozenSet[str]:
        return frozenset(self.visible_question_codes)


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


class ScoringRecord(BaseModel):
    """Audit log entry for one scoring run."""
    record_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique record ID",
    )
    timestamp: datetime = Field(default_factory=_utcnow, description="Run timestamp")
    ruleset_id: str = Field(..., description="Scored ruleset")
    ruleset_version: str = Field(..., description="Scored ruleset version")
    ruleset_hash: str = Field(..., description="SHA-256 of the ruleset")
    answers_hash: str = Field(..., description="SHA-256 of the answer set")
    result_hash: str = Field(..., description="Provenance hash of the result")
    chain_hash: str = Field(default="", description="SHA-256 chain hash for tamper evidence")

    model_config = {"extra": "forbid"}


class ValidationResult(BaseModel):
    """Result of validating a ruleset."""
    is_valid: bool = Field(..., description="Overall validation status")
    errors: List[str] = Field(default_factory=list, description="Validation errors")
    warnings: List[str] = Field(default_factory=list, description="Validation warnings")
    cycles: List[List[str]] = Field(default_factory=list, description="Composite-factor cycles")
    checks_run: List[str] = Field(default_factory=list, description="Checks that were run")

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def cycles_are_errors(self) -> "ValidationResult":
        """A result listing cycles can never be valid."""
        if self.cycles and self.is_valid:
            raise ValueError("ValidationResult with cycles cannot be valid")
        return self


__all__ = [
    # Enumerations
    "MatchMode",
    "Combinator",
    "FactorKind",
    "FactorFormula",
    # Questionnaire models
    "Option",
    "ControllingCondition",
    "VisibilityRule",
    "Question",
    # Respondent models
    "Answer",
    "AnswerInput",
    "index_answers",
    # Scoring models
    "Band",
    "InterpretationTable",
    "Factor",
    "Ruleset",
    # Result models
    "FactorResult",
    "AssessmentResult",
    "ScoringRecord",
    "ValidationResult",
]
