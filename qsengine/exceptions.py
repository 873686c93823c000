"""
Scoring Engine Error Taxonomy
=============================

Structured error hierarchy for ruleset evaluation.

Every error is structural and non-transient: a ruleset that fails once
fails the same way on every retry, so none of these are retriable.

- RulesetError: base with structured context
- ConfigurationError: missing or mis-ordered question/factor references
- CyclicFactorError: composite-factor graph contains a cycle
- EmptyFactorError: a required-non-empty factor resolved zero items
- LegacyFormatError: a legacy wire payload could not be converted
"""

from typing import Any, Dict, List, Optional


class RulesetError(Exception):
    """
    Base exception for all scoring engine errors

    Provides structured error information:
    - message: Human-readable error description
    - ruleset_id: Ruleset being evaluated (if known)
    - context: Additional error context
    """

    def __init__(
        self,
        message: str,
        ruleset_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.ruleset_id = ruleset_id
        self.context = context or {}

        parts = [message]
        if ruleset_id:
            parts.append(f"(ruleset: {ruleset_id})")

        super().__init__(" ".join(parts))

    @property
    def retriable(self) -> bool:
        """Structural errors never succeed on retry."""
        return False

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "ruleset_id": self.ruleset_id,
            "context": self.context,
        }


class ConfigurationError(RulesetError):
    """
    Ruleset configuration error

    Raised when a ruleset references a non-existent or mis-ordered
    question or factor. These are authoring-time defects that the
    authoring tool should have rejected before publish.

    Example:
        raise ConfigurationError(
            "Question Q3 is controlled by Q5 which does not precede it",
            context={"question_code": "Q3", "controller_code": "Q5"}
        )
    """
    pass


class CyclicFactorError(RulesetError):
    """
    Composite-factor cycle

    Raised when the composite-factor source graph is not acyclic.
    ``cycle`` lists the factor codes along the cycle, first code repeated
    at the end.
    """

    def __init__(
        self,
        cycle: List[str],
        ruleset_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.cycle = list(cycle)
        ctx = dict(context or {})
        ctx.setdefault("cycle", self.cycle)
        super().__init__(
            f"Composite factor cycle detected: {' -> '.join(self.cycle)}",
            ruleset_id=ruleset_id,
            context=ctx,
        )


class EmptyFactorError(RulesetError):
    """
    Empty required factor

    Raised only when a factor marked ``required_non_empty`` resolves
    zero source items: a leaf or composite factor with no sources, or a
    count_matching factor whose sources are all hidden or unanswered.
    """

    def __init__(
        self,
        factor_code: str,
        ruleset_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.factor_code = factor_code
        ctx = dict(context or {})
        ctx.setdefault("factor_code", factor_code)
        super().__init__(
            f"Factor {factor_code} is required to be non-empty but resolved no items",
            ruleset_id=ruleset_id,
            context=ctx,
        )


class LegacyFormatError(RulesetError):
    """
    Legacy payload conversion error

    Raised by the legacy wire adapter when a payload is missing required
    fields or carries values that cannot be interpreted.
    """
    pass


__all__ = [
    "RulesetError",
    "ConfigurationError",
    "CyclicFactorError",
    "EmptyFactorError",
    "LegacyFormatError",
]
