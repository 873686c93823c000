# -*- coding: utf-8 -*-
"""Tests for the legacy wire adapter.

Covers the shape-encoded ``select_option_codes`` heuristic, show
controllers, factor and interpretation payloads, answer sheets and a
full questionnaire conversion scored end to end.
"""

import pytest

from qsengine.exceptions import LegacyFormatError, RulesetError
from qsengine.legacy import (
    answers_from_legacy,
    condition_from_legacy,
    condition_to_legacy,
    factor_from_legacy,
    interpretation_from_legacy,
    question_from_legacy,
    ruleset_from_legacy,
    visibility_rule_from_legacy,
    visibility_rule_to_legacy,
)
from qsengine.models import (
    Combinator,
    ControllingCondition,
    FactorFormula,
    FactorKind,
    MatchMode,
    VisibilityRule,
)
from qsengine.orchestrator import ScoringOrchestrator


# ==============================================================================
# Conditions
# ==============================================================================

class TestConditionFromLegacy:

    def test_bare_strings_mean_any(self):
        condition = condition_from_legacy({"code": "Q1", "select_option_codes": ["A", "B"]})
        assert condition.match == MatchMode.ANY
        assert condition.option_codes == ["A", "B"]

    def test_nested_array_means_all(self):
        condition = condition_from_legacy({"code": "Q1", "select_option_codes": [["A", "B"]]})
        assert condition.match == MatchMode.ALL
        assert condition.option_codes == ["A", "B"]

    def test_mixed_list_uses_first_group(self):
        """Bare strings beside a group, and later groups, are dropped."""
        condition = condition_from_legacy({
            "code": "Q1",
            "select_option_codes": ["X", ["A", "B"], ["C"]],
        })
        assert condition.match == MatchMode.ALL
        assert condition.option_codes == ["A", "B"]

    def test_missing_codes_is_empty_any(self):
        condition = condition_from_legacy({"code": "Q1"})
        assert condition.match == MatchMode.ANY
        assert condition.option_codes == []

    def test_malformed_group(self):
        with pytest.raises(LegacyFormatError):
            condition_from_legacy({"code": "Q1", "select_option_codes": [{"code": "A"}]})

    def test_missing_code(self):
        with pytest.raises(LegacyFormatError) as exc_info:
            condition_from_legacy({"select_option_codes": ["A"]})
        assert isinstance(exc_info.value, RulesetError)


class TestConditionRoundTrip:

    @pytest.mark.parametrize("match", [MatchMode.ANY, MatchMode.ALL])
    def test_round_trip(self, match):
        condition = ControllingCondition(question_code="Q1", match=match, option_codes=["A", "B"])
        assert condition_from_legacy(condition_to_legacy(condition)) == condition

    def test_all_encoded_as_nested_array(self):
        condition = ControllingCondition(
            question_code="Q1", match=MatchMode.ALL, option_codes=["A"],
        )
        assert condition_to_legacy(condition) == {"code": "Q1", "select_option_codes": [["A"]]}


class TestVisibilityRuleFromLegacy:

    def test_empty_controller_is_no_rule(self):
        assert visibility_rule_from_legacy(None) is None
        assert visibility_rule_from_legacy({"rule": "and", "questions": []}) is None
        assert visibility_rule_from_legacy({"questions": [{"code": ""}]}) is None

    def test_rule_defaults_to_and(self):
        rule = visibility_rule_from_legacy({
            "questions": [{"code": "Q1", "select_option_codes": ["A"]}],
        })
        assert rule.combinator == Combinator.ALL

    def test_and_rule(self):
        rule = visibility_rule_from_legacy({
            "rule": "and",
            "questions": [
                {"code": "Q1", "select_option_codes": ["A"]},
                {"code": "Q2", "select_option_codes": [["B", "C"]]},
            ],
        })
        assert rule.combinator == Combinator.ALL
        assert rule.controller_codes == ["Q1", "Q2"]
        assert rule.conditions[1].match == MatchMode.ALL

    def test_unknown_rule(self):
        with pytest.raises(LegacyFormatError):
            visibility_rule_from_legacy({
                "rule": "xor", "questions": [{"code": "Q1", "select_option_codes": ["A"]}],
            })

    def test_round_trip(self):
        rule = VisibilityRule(
            combinator=Combinator.ALL,
            conditions=[
                ControllingCondition(question_code="Q1", option_codes=["A"]),
                ControllingCondition(question_code="Q2", match=MatchMode.ALL, option_codes=["B"]),
            ],
        )
        assert visibility_rule_from_legacy(visibility_rule_to_legacy(rule)) == rule


# ==============================================================================
# Questions and Answers
# ==============================================================================

class TestQuestionFromLegacy:

    def test_options_and_scores(self):
        question = question_from_legacy({
            "code": "Q1",
            "type": "Radio",
            "title": "Sleep",
            "options": [
                {"code": "A", "content": "是", "score": "2"},
                {"code": "B", "content": "否", "score": ""},
            ],
        }, position=4)
        assert question.position == 4
        assert question.options[0].score == 2.0
        assert question.options[1].score is None
        assert question.visibility_rule is None

    def test_non_numeric_score(self):
        with pytest.raises(LegacyFormatError):
            question_from_legacy({
                "code": "Q1", "type": "Radio", "options": [{"code": "A", "score": "many"}],
            }, position=0)

    @pytest.mark.parametrize("score", ["inf", "-Infinity", "nan", float("inf")])
    def test_non_finite_score(self, score):
        with pytest.raises(LegacyFormatError) as exc_info:
            question_from_legacy({
                "code": "Q1", "type": "Radio", "options": [{"code": "A", "score": score}],
            }, position=0)
        assert exc_info.value.context["field"] == "Q1.options.score"

    def test_missing_type(self):
        with pytest.raises(LegacyFormatError):
            question_from_legacy({"code": "Q1"}, position=0)


class TestAnswersFromLegacy:

    def test_selected_options_and_values(self):
        answers = answers_from_legacy({"answers": [
            {
                "question_code": "Q1",
                "type": "Checkbox",
                "options": [
                    {"code": "A", "is_select": "1"},
                    {"code": "B", "is_select": "0"},
                    {"code": "C", "is_select": "1"},
                ],
            },
            {"question_code": "Q2", "type": "Number", "value": 42},
        ]})
        assert answers["Q1"].option_codes == ["A", "C"]
        assert answers["Q2"].value == "42"
        assert answers["Q2"].option_codes == []

    def test_plain_list(self):
        answers = answers_from_legacy([{"code": "Q1", "value": "hello"}])
        assert answers["Q1"].value == "hello"

    def test_missing_question_code(self):
        with pytest.raises(LegacyFormatError):
            answers_from_legacy([{"value": "x"}])


# ==============================================================================
# Factors and Interpretation
# ==============================================================================

class TestFactorFromLegacy:

    def test_first_grade_count(self):
        factor = factor_from_legacy({
            "code": "F1",
            "title": "Yes count",
            "type": "first_grade",
            "source_codes": ["Q1", "Q2"],
            "calc_rule": {"formula": "cnt", "append_params": {"cnt_option_contents": ["是"]}},
            "is_total_score": "0",
        })
        assert factor.kind == FactorKind.LEAF
        assert factor.formula == FactorFormula.COUNT_MATCHING
        assert factor.target_contents == ["是"]
        assert not factor.is_total_score
        assert factor.is_show

    def test_multi_grade_total(self):
        factor = factor_from_legacy({
            "code": "T",
            "type": "multi_grade",
            "source_codes": ["F1", "F2"],
            "calc_rule": {"formula": "avg"},
            "is_total_score": "1",
            "is_show": "0",
        })
        assert factor.kind == FactorKind.COMPOSITE
        assert factor.formula == FactorFormula.AVG
        assert factor.is_total_score
        assert not factor.is_show

    def test_formula_defaults_to_sum(self):
        assert factor_from_legacy({"code": "F", "source_codes": ["Q1"]}).formula == FactorFormula.SUM

    def test_kind_inferred_from_sources(self):
        composite = factor_from_legacy({"code": "T", "source_codes": ["F1"]}, {"Q1"})
        leaf = factor_from_legacy({"code": "F1", "source_codes": ["Q1"]}, {"Q1"})
        assert composite.kind == FactorKind.COMPOSITE
        assert leaf.kind == FactorKind.LEAF

    @pytest.mark.parametrize("payload", [
        {"code": "F", "type": "third_grade"},
        {"code": "F", "calc_rule": {"formula": "median"}},
    ])
    def test_unknown_values(self, payload):
        with pytest.raises(LegacyFormatError):
            factor_from_legacy(payload)


class TestInterpretationFromLegacy:

    def test_string_bounds(self):
        table = interpretation_from_legacy(
            [{"start": "0", "end": "10", "content": "low"}, {"start": "11", "end": "20", "content": "high"}],
            max_score="20",
        )
        assert [(b.start, b.end, b.text) for b in table.bands] == [
            (0.0, 10.0, "low"), (11.0, 20.0, "high"),
        ]
        assert table.max_score == 20.0

    def test_blank_rows_skipped(self):
        table = interpretation_from_legacy([
            {"start": "", "end": "", "content": ""},
            {"start": "0", "end": "5", "content": "ok"},
        ])
        assert len(table.bands) == 1

    def test_invalid_bound(self):
        with pytest.raises(LegacyFormatError):
            interpretation_from_legacy([{"start": "low", "end": "5", "content": "x"}])

    def test_non_finite_bound(self):
        with pytest.raises(LegacyFormatError):
            interpretation_from_legacy([{"start": "0", "end": "nan", "content": "x"}])

    def test_none_is_no_table(self):
        assert interpretation_from_legacy(None) is None


# ==============================================================================
# Full Conversion
# ==============================================================================

@pytest.fixture
def legacy_payloads():
    questionsheet = {
        "code": "SDS",
        "title": "Self-rating",
        "version": "2",
        "questions": [
            {
                "code": "Q1", "type": "Radio", "title": "Low mood",
                "options": [
                    {"code": "Y", "content": "是", "score": "3"},
                    {"code": "N", "content": "否", "score": "0"},
                ],
            },
            {
                "code": "Q2", "type": "Checkbox", "title": "Symptoms",
                "show_controller": {
                    "rule": "or",
                    "questions": [{"code": "Q1", "select_option_codes": ["Y"]}],
                },
                "options": [
                    {"code": "A", "content": "失眠", "score": "1"},
                    {"code": "B", "content": "头痛", "score": "2"},
                ],
            },
            {"code": "Q3", "type": "Section", "title": "Thanks"},
        ],
    }
    factors = [
        {
            "code": "F1", "title": "Mood", "type": "first_grade",
            "source_codes": ["Q1", "Q2"], "calc_rule": {"formula": "sum"},
        },
        {
            "code": "F2", "title": "Yes", "type": "first_grade",
            "source_codes": ["Q1"],
            "calc_rule": {"formula": "cnt", "append_params": {"cnt_option_contents": ["是"]}},
        },
        {
            "code": "T", "title": "Total", "type": "multi_grade",
            "source_codes": ["F1", "F2"], "calc_rule": {"formula": "sum"},
            "is_total_score": "1",
        },
    ]
    analysis = {
        "macro_rule": {
            "max_score": "7",
            "interpretation": [
                {"start": "0", "end": "3", "content": "正常"},
                {"start": "4", "end": "7", "content": "关注"},
            ],
        },
        "factor_rules": [
            {
                "code": "F1", "title": "Mood", "max_score": "6",
                "interpret_rule": {
                    "is_show": "1",
                    "interpretation": [{"start": "0", "end": "6", "content": "mood band"}],
                },
            },
            {"code": "F2", "interpret_rule": {"is_show": "0", "interpretation": []}},
        ],
    }
    return questionsheet, factors, analysis


class TestRulesetFromLegacy:

    def test_structure(self, legacy_payloads):
        ruleset = ruleset_from_legacy(*legacy_payloads)

        assert ruleset.ruleset_id == "SDS"
        assert ruleset.version == "2"
        assert [q.position for q in ruleset.ordered_questions()] == [0, 1, 2]
        factors = ruleset.factor_map()
        assert factors["F1"].max_score == 6.0
        assert factors["F1"].interpretation.bands[0].text == "mood band"
        assert not factors["F2"].is_show
        assert factors["T"].is_composite
        assert ruleset.macro_interpretation.max_score == 7.0

    def test_overrides(self, legacy_payloads):
        ruleset = ruleset_from_legacy(*legacy_payloads, ruleset_id="SDS-B", version="9")
        assert (ruleset.ruleset_id, ruleset.version) == ("SDS-B", "9")

    def test_missing_code(self, legacy_payloads):
        _, factors, analysis = legacy_payloads
        with pytest.raises(LegacyFormatError):
            ruleset_from_legacy({"questions": []}, factors, analysis)

    def test_scores_end_to_end(self, legacy_payloads):
        ruleset = ruleset_from_legacy(*legacy_payloads)
        answers = answers_from_legacy([
            {"question_code": "Q1", "options": [{"code": "Y", "is_select": "1"}]},
            {
                "question_code": "Q2",
                "options": [{"code": "A", "is_select": "1"}, {"code": "B", "is_select": "1"}],
            },
        ])
        result = ScoringOrchestrator().score(ruleset, answers)

        assert result.visible_question_codes == ["Q1", "Q2", "Q3"]
        assert result.factor_scores == {"F1": 6.0, "F2": 1.0, "T": 7.0}
        assert result.interpretations == {"F1": "mood band", "T": None}
        assert result.total_interpretation == "关注"
