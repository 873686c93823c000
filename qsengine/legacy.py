# -*- coding: utf-8 -*-
"""
Legacy Wire Adapter

Converts payloads of the questionnaire backend's historical wire format
into engine models, and conditions back into that format.

The historical ``select_option_codes`` list encodes its matching mode by
shape: a list of bare strings means "any of these options", while a
nested array inside the list means "all of these options". Only the first
nested array is honoured; bare strings next to it are dropped. Whether a
controlling question was ever meant to carry several AND groups is not
known, so extra groups are logged and ignored rather than guessed at.

Other conventions handled here:
    - string flags ``"1"``/``"0"`` for booleans
    - factor ``type`` ``first_grade``/``multi_grade`` and formula ``cnt``
    - interpretation bounds sent as strings, blank rows left by the editor
    - answer options flagged with ``is_select``
    - ``show_controller`` without a ``rule`` combines its conditions with "and"

Example:
    >>> from qsengine.legacy import condition_from_legacy
    >>> condition_from_legacy({"code": "Q1", "select_option_codes": [["A", "B"]]})
    ControllingCondition(question_code='Q1', match=<MatchMode.ALL: 'all'>, option_codes=['A', 'B'])
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from qsengine.exceptions import LegacyFormatError
from qsengine.models import (
    Answer,
    Band,
    Combinator,
    ControllingCondition,
    Factor,
    FactorFormula,
    FactorKind,
    InterpretationTable,
    MatchMode,
    Option,
    Question,
    Ruleset,
    VisibilityRule,
)

logger = logging.getLogger(__name__)

_FORMULAS = {
    "sum": FactorFormula.SUM,
    "avg": FactorFormula.AVG,
    "cnt": FactorFormula.COUNT_MATCHING,
}

_KINDS = {
    "first_grade": FactorKind.LEAF,
    "multi_grade": FactorKind.COMPOSITE,
}


def _flag(value: Any, default: bool = False) -> bool:
    """Read a legacy boolean that may be a bool, int or "1"/"0" string."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in ("1", "true", "yes")


def _number(value: Any, field: str) -> Optional[float]:
    """Parse a legacy numeric field; blank means missing."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise LegacyFormatError(
            f"Field {field} is not numeric: {value!r}",
            context={"field": field, "value": value},
        ) from exc
    if not math.isfinite(number):
        raise LegacyFormatError(
            f"Field {field} is not a finite number: {value!r}",
            context={"field": field, "value": value},
        )
    return number


def _require(payload: Mapping[str, Any], key: str, what: str) -> Any:
    try:
        return payload[key]
    except KeyError as exc:
        raise LegacyFormatError(
            f"{what} payload is missing '{key}'",
            context={"payload_keys": sorted(payload)},
        ) from exc


# ---------------------------------------------------------------------------
# Visibility rules
# ---------------------------------------------------------------------------


def condition_from_legacy(payload: Mapping[str, Any]) -> ControllingCondition:
    """Disambiguate one legacy controlling question into a condition.

    A nested array in ``select_option_codes`` marks an AND group; a list
    of bare strings is an OR list.
    """
    code = _require(payload, "code", "Controlling question")
    raw = payload.get("select_option_codes") or []
    if isinstance(raw, str):
        raw = [raw]

    groups = [item for item in raw if not isinstance(item, str)]
    if not groups:
        return ControllingCondition(
            question_code=code, match=MatchMode.ANY, option_codes=list(raw),
        )

    group = groups[0]
    if not isinstance(group, (list, tuple)) or not all(isinstance(c, str) for c in group):
        raise LegacyFormatError(
            f"Controlling question {code} has a malformed option group: {group!r}",
            context={"question_code": code},
        )
    if len(groups) > 1 or len(groups) != len(raw):
        logger.warning(
            "Controlling question %s mixes %d option groups with %d bare codes; "
            "using only the first group",
            code, len(groups), len(raw) - len(groups),
        )
    return ControllingCondition(
        question_code=code, match=MatchMode.ALL, option_codes=list(group),
    )


def condition_to_legacy(condition: ControllingCondition) -> Dict[str, Any]:
    """Encode a condition in the legacy shape-based format."""
    codes = list(condition.option_codes)
    return {
        "code": condition.question_code,
        "select_option_codes": [codes] if condition.match == MatchMode.ALL else codes,
    }


def visibility_rule_from_legacy(
    payload: Optional[Mapping[str, Any]],
) -> Optional[VisibilityRule]:
    """Convert a legacy ``show_controller``; None when it controls nothing.

    A missing ``rule`` means "and".
    """
    if not payload:
        return None
    questions = payload.get("questions") or []
    conditions = [
        condition_from_legacy(q) for q in questions if q.get("code")
    ]
    if not conditions:
        return None
    rule = (payload.get("rule") or "and").lower()
    if rule not in ("and", "or"):
        raise LegacyFormatError(
            f"Unknown show_controller rule {rule!r}", context={"rule": rule},
        )
    return VisibilityRule(
        combinator=Combinator.ALL if rule == "and" else Combinator.ANY,
        conditions=conditions,
    )


def visibility_rule_to_legacy(rule: VisibilityRule) -> Dict[str, Any]:
    """Encode a visibility rule as a legacy ``show_controller``."""
    return {
        "rule": "and" if rule.combinator == Combinator.ALL else "or",
        "questions": [condition_to_legacy(c) for c in rule.conditions],
    }


# ---------------------------------------------------------------------------
# Questions and answers
# ---------------------------------------------------------------------------


def question_from_legacy(payload: Mapping[str, Any], position: int) -> Question:
    """Convert a legacy question; ``position`` is its index in the sheet."""
    code = _require(payload, "code", "Question")
    options = [
        Option(
            code=_require(o, "code", f"Option of question {code}"),
            content=str(o.get("content") or ""),
            score=_number(o.get("score"), f"{code}.options.score"),
        )
        for o in payload.get("options") or []
    ]
    return Question(
        code=code,
        type=_require(payload, "type", f"Question {code}"),
        position=position,
        title=str(payload.get("title") or ""),
        options=options,
        visibility_rule=visibility_rule_from_legacy(payload.get("show_controller")),
    )


def answers_from_legacy(payload: Any) -> Dict[str, Answer]:
    """Convert a legacy answer sheet into answers keyed by question code.

    Accepts either the answer list itself or a mapping holding it under
    ``answers``. Options count as selected when ``is_select`` is set.
    """
    rows: Iterable[Mapping[str, Any]]
    if isinstance(payload, Mapping):
        rows = payload.get("answers") or []
    else:
        rows = payload or []

    answers: Dict[str, Answer] = {}
    for row in rows:
        code = row.get("question_code") or row.get("code")
        if not code:
            raise LegacyFormatError(
                "Answer payload is missing 'question_code'",
                context={"payload_keys": sorted(row)},
            )
        selected = [
            o["code"] for o in row.get("options") or []
            if o.get("code") and _flag(o.get("is_select"))
        ]
        value = row.get("value")
        if isinstance(value, (list, dict)):
            value = None
        answers[code] = Answer(
            question_code=code,
            option_codes=selected,
            value=None if value is None else str(value),
        )
    return answers


# ---------------------------------------------------------------------------
# Factors and interpretation
# ---------------------------------------------------------------------------


def interpretation_from_legacy(
    rows: Optional[Iterable[Mapping[str, Any]]],
    max_score: Any = None,
) -> Optional[InterpretationTable]:
    """Convert legacy ``{start, end, content}`` rows into a band table.

    Rows left with a blank bound by the editor are skipped.
    """
    if rows is None:
        return None
    bands: List[Band] = []
    for index, row in enumerate(rows):
        start = _number(row.get("start"), f"interpretation[{index}].start")
        end = _number(row.get("end"), f"interpretation[{index}].end")
        if start is None or end is None:
            logger.warning("Skipping interpretation row %d with a blank bound", index)
            continue
        bands.append(Band(start=start, end=end, text=str(row.get("content") or "")))
    return InterpretationTable(
        bands=bands,
        max_score=_number(max_score, "max_score"),
    )


def factor_from_legacy(
    payload: Mapping[str, Any],
    question_codes: Optional[Iterable[str]] = None,
    interpretation: Optional[InterpretationTable] = None,
) -> Factor:
    """Convert a legacy factor.

    When ``type`` is absent the kind is inferred from ``question_codes``:
    a factor none of whose sources is a question is composite.
    """
    code = _require(payload, "code", "Factor")
    sources = list(payload.get("source_codes") or [])

    raw_type = payload.get("type")
    if raw_type:
        if raw_type not in _KINDS:
            raise LegacyFormatError(
                f"Factor {code} has unknown type {raw_type!r}",
                context={"factor_code": code},
            )
        kind = _KINDS[raw_type]
    elif question_codes is not None and sources and not set(sources) & set(question_codes):
        kind = FactorKind.COMPOSITE
    else:
        kind = FactorKind.LEAF

    calc_rule = payload.get("calc_rule") or {}
    raw_formula = calc_rule.get("formula") or "sum"
    if raw_formula not in _FORMULAS:
        raise LegacyFormatError(
            f"Factor {code} has unknown formula {raw_formula!r}",
            context={"factor_code": code},
        )
    params = calc_rule.get("append_params") or {}

    return Factor(
        code=code,
        title=str(payload.get("title") or ""),
        kind=kind,
        source_codes=sources,
        formula=_FORMULAS[raw_formula],
        target_contents=list(params.get("cnt_option_contents") or []),
        is_total_score=_flag(payload.get("is_total_score")),
        is_show=_flag(payload.get("is_show"), default=True),
        max_score=_number(payload.get("max_score"), f"{code}.max_score"),
        interpretation=interpretation,
    )


# ---------------------------------------------------------------------------
# Whole ruleset
# ---------------------------------------------------------------------------


def ruleset_from_legacy(
    questionsheet: Mapping[str, Any],
    factors: Optional[Iterable[Mapping[str, Any]]] = None,
    analysis: Optional[Mapping[str, Any]] = None,
    ruleset_id: Optional[str] = None,
    version: Optional[str] = None,
) -> Ruleset:
    """Assemble a Ruleset from legacy questionsheet, factor and analysis payloads.

    Args:
        questionsheet: Sheet with ``code``, ``title`` and ordered ``questions``.
        factors: Factor payloads.
        analysis: Interpretation rules with ``macro_rule`` and ``factor_rules``.
        ruleset_id: Overrides the sheet ``code``.
        version: Overrides the sheet ``version``.

    Returns:
        The converted Ruleset.
    """
    questions = [
        question_from_legacy(q, position)
        for position, q in enumerate(questionsheet.get("questions") or [])
    ]
    question_codes = {q.code for q in questions}

    analysis = analysis or {}
    factor_rules = {
        rule["code"]: rule for rule in analysis.get("factor_rules") or [] if rule.get("code")
    }

    converted: List[Factor] = []
    for payload in factors or []:
        factor = factor_from_legacy(payload, question_codes)
        rule = factor_rules.get(factor.code)
        if rule is not None:
            interpret = rule.get("interpret_rule") or {}
            update: Dict[str, Any] = {
                "interpretation": interpretation_from_legacy(
                    interpret.get("interpretation"), rule.get("max_score"),
                ),
                "is_show": _flag(interpret.get("is_show"), default=factor.is_show),
            }
            if factor.max_score is None:
                update["max_score"] = _number(rule.get("max_score"), f"{factor.code}.max_score")
            factor = factor.model_copy(update=update)
        converted.append(factor)

    macro = analysis.get("macro_rule")
    macro_table = None
    if macro:
        macro_table = interpretation_from_legacy(
            macro.get("interpretation") or [], macro.get("max_score"),
        )

    ruleset_code = ruleset_id or questionsheet.get("code")
    if not ruleset_code:
        raise LegacyFormatError("Questionsheet payload has no 'code'")

    ruleset = Ruleset(
        ruleset_id=ruleset_code,
        version=str(version or questionsheet.get("version") or "1"),
        title=str(questionsheet.get("title") or ""),
        questions=questions,
        factors=converted,
        macro_interpretation=macro_table,
    )
    logger.info(
        "Converted legacy ruleset %s v%s: %d questions, %d factors",
        ruleset.ruleset_id, ruleset.version, len(questions), len(converted),
    )
    return ruleset


__all__ = [
    "condition_from_legacy",
    "condition_to_legacy",
    "visibility_rule_from_legacy",
    "visibility_rule_to_legacy",
    "question_from_legacy",
    "answers_from_legacy",
    "interpretation_from_legacy",
    "factor_from_legacy",
    "ruleset_from_legacy",
]
