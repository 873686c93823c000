# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

from typing import List, Optional, Sequence, Tuple

import pytest

from qsengine.config import EngineConfig, reset_config, set_config
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


@pytest.fixture(autouse=True)
def engine_config():
    """Install a default config for every test, independent of the environment."""
    config = EngineConfig()
    set_config(config)
    yield config
    reset_config()


# ==============================================================================
# Builders
# ==============================================================================

@pytest.fixture
def make_question():
    """Factory for questions.

    ``options`` is a list of ``(code, score)`` or ``(code, score, content)``
    tuples. ``shown_when`` is a list of ``(controller, [codes])`` or
    ``(controller, [codes], MatchMode)`` tuples.
    """
    def _make(
        code: str,
        position: int,
        options: Sequence[Tuple] = (),
        type: str = "Radio",
        shown_when: Optional[Sequence[Tuple]] = None,
        combinator: Combinator = Combinator.ANY,
    ) -> Question:
        built: List[Option] = []
        for item in options:
            option_code, score = item[0], item[1]
            content = item[2] if len(item) > 2 else option_code
            built.append(Option(code=option_code, score=score, content=content))

        rule = None
        if shown_when is not None:
            rule = VisibilityRule(
                combinator=combinator,
                conditions=[
                    ControllingCondition(
                        question_code=cond[0],
                        option_codes=list(cond[1]),
                        match=cond[2] if len(cond) > 2 else MatchMode.ANY,
                    )
                    for cond in shown_when
                ],
            )
        return Question(
            code=code, type=type, position=position, options=built, visibility_rule=rule,
        )

    return _make


@pytest.fixture
def answer():
    """Factory for answers: ``answer("Q1", "A", "B")`` or ``answer("Q1", value="x")``."""
    def _make(question_code: str, *option_codes: str, value: Optional[str] = None) -> Answer:
        return Answer(question_code=question_code, option_codes=list(option_codes), value=value)

    return _make


# ==============================================================================
# Sample ruleset
# ==============================================================================

@pytest.fixture
def sample_ruleset(make_question) -> Ruleset:
    """Four-question screening questionnaire with leaf, count and total factors.

    Q2 is only shown when Q1 is answered Y. Q3 is multi-select.
    """
    questions = [
        make_question("Q1", 0, [("Y", 2, "是"), ("N", 0, "否")]),
        make_question(
            "Q2", 1, [("A", 3, "经常"), ("B", 1, "偶尔")], shown_when=[("Q1", ["Y"])],
        ),
        make_question("Q3", 2, [("X", 1, "头痛"), ("Z", 2, "失眠")], type="Checkbox"),
        make_question("Q4", 3, [("Y4", 1, "是"), ("N4", 0, "否")]),
    ]
    factors = [
        Factor(code="F1", title="Mood", source_codes=["Q1", "Q2"]),
        Factor(code="F2", title="Body", source_codes=["Q3", "Q4"], formula=FactorFormula.AVG),
        Factor(
            code="F3",
            title="Yes answers",
            source_codes=["Q1", "Q4"],
            formula=FactorFormula.COUNT_MATCHING,
            target_contents=["是"],
            is_show=False,
        ),
        Factor(
            code="T",
            title="Total",
            kind=FactorKind.COMPOSITE,
            source_codes=["F1", "F2"],
            is_total_score=True,
            interpretation=InterpretationTable(bands=[
                Band(start=0, end=5, text="低"),
                Band(start=5.5, end=20, text="高"),
            ]),
        ),
    ]
    return Ruleset(
        ruleset_id="SCREEN",
        version="3",
        title="Screening",
        questions=questions,
        factors=factors,
        macro_interpretation=InterpretationTable(
            bands=[
                Band(start=0, end=5, text="正常"),
                Band(start=5.0001, end=100, text="异常"),
            ],
            max_score=8,
        ),
    )


@pytest.fixture
def sample_answers(answer) -> List[Answer]:
    """Answers that show every question of the sample ruleset."""
    return [
        answer("Q1", "Y"),
        answer("Q2", "A"),
        answer("Q3", "X", "Z"),
        answer("Q4", "N4"),
    ]
