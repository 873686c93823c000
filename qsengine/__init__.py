# -*- coding: utf-8 -*-
"""
qsengine: Questionnaire Visibility and Factor-Scoring Rule Engine
=================================================================

This package evaluates which questions of a questionnaire are visible
for a given set of answers and computes factor scores, a total score and
score interpretations from the visible answers. It supports:

- Conditional visibility rules over preceding questions (any/all)
- Leaf and composite factors with sum, avg and count_matching formulas
- First-match interpretation bands for factors and the total score
- Authoring-time ruleset validation including factor cycle detection
- SHA-256 fingerprints and an optional chained scoring audit log
- A converter for the questionnaire backend's legacy wire payloads
- 8 Prometheus metrics for observability
- Thread-safe configuration with QS_ENGINE_ env prefix

Key Components:
    - visibility: VisibilityEvaluator for question visibility
    - aggregator: FactorAggregator for factor scores and maxima
    - interpretation: InterpretationResolver for band lookup
    - orchestrator: ScoringOrchestrator producing AssessmentResult
    - validator: RulesetValidator for structural checks
    - provenance: fingerprints and ProvenanceTracker
    - legacy: legacy payload conversion
    - config: EngineConfig with QS_ENGINE_ env prefix
    - metrics: 8 Prometheus metrics

Example:
    >>> from qsengine import Answer, ScoringOrchestrator
    >>> result = ScoringOrchestrator().score(ruleset, [
    ...     Answer(question_code="Q1", option_codes=["A"]),
    ... ])
    >>> print(result.visible_question_codes, result.total_score)
"""

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from qsengine.config import (
    EngineConfig,
    get_config,
    set_config,
    reset_config,
)

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from qsengine.exceptions import (
    RulesetError,
    ConfigurationError,
    CyclicFactorError,
    EmptyFactorError,
    LegacyFormatError,
)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
from qsengine.models import (
    # Enumerations
    MatchMode,
    Combinator,
    FactorKind,
    FactorFormula,
    # Questionnaire models
    Option,
    ControllingCondition,
    VisibilityRule,
    Question,
    # Respondent models
    Answer,
    # Scoring models
    Band,
    InterpretationTable,
    Factor,
    Ruleset,
    # Result models
    FactorResult,
    AssessmentResult,
    ScoringRecord,
    ValidationResult,
)

# ---------------------------------------------------------------------------
# Core engines
# ---------------------------------------------------------------------------
from qsengine.visibility import VisibilityEvaluator
from qsengine.aggregator import FactorAggregator
from qsengine.interpretation import InterpretationResolver
from qsengine.validator import RulesetValidator
from qsengine.provenance import ProvenanceTracker
from qsengine.orchestrator import ScoringOrchestrator, score

# ---------------------------------------------------------------------------
# Legacy wire format
# ---------------------------------------------------------------------------
from qsengine.legacy import (
    answers_from_legacy,
    ruleset_from_legacy,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "EngineConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Errors
    "RulesetError",
    "ConfigurationError",
    "CyclicFactorError",
    "EmptyFactorError",
    "LegacyFormatError",
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
    # Core engines
    "VisibilityEvaluator",
    "FactorAggregator",
    "InterpretationResolver",
    "RulesetValidator",
    "ProvenanceTracker",
    "ScoringOrchestrator",
    "score",
    # Legacy wire format
    "answers_from_legacy",
    "ruleset_from_legacy",
]
