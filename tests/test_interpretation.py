# -*- coding: utf-8 -*-
"""Tests for first-match interpretation lookup."""

import pytest
from pydantic import ValidationError

from qsengine.interpretation import InterpretationResolver, resolve
from qsengine.models import Band, InterpretationTable


@pytest.fixture
def table():
    return InterpretationTable(bands=[
        Band(start=0, end=10, text="low"),
        Band(start=11, end=20, text="high"),
    ])


class TestResolve:

    def test_score_in_band(self, table):
        """15 falls in [11, 20]."""
        assert InterpretationResolver().resolve(table, 15) == "high"

    def test_score_above_every_band(self, table):
        """25 matches nothing."""
        assert InterpretationResolver().resolve(table, 25) is None

    def test_score_in_gap(self, table):
        """Gaps between bands match nothing."""
        assert resolve(table, 10.5) is None

    @pytest.mark.parametrize("score,expected", [(0, "low"), (10, "low"), (11, "high"), (20, "high")])
    def test_bounds_are_inclusive(self, table, score, expected):
        assert resolve(table, score) == expected

    def test_first_match_wins_on_overlap(self):
        """Overlapping bands resolve to the earliest authored one."""
        overlapping = InterpretationTable(bands=[
            Band(start=5, end=15, text="first"),
            Band(start=0, end=20, text="second"),
        ])
        assert resolve(overlapping, 10) == "first"
        assert resolve(overlapping, 2) == "second"

    def test_missing_table_or_score(self, table):
        assert resolve(None, 5) is None
        assert resolve(table, None) is None

    def test_deterministic(self, table):
        """Repeated lookups agree."""
        assert {resolve(table, 7) for _ in range(10)} == {"low"}

    def test_match_returns_band(self, table):
        band = InterpretationResolver.match(table, 12)
        assert band == Band(start=11, end=20, text="high")


class TestBandBounds:

    @pytest.mark.parametrize("bound", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_bounds_rejected(self, bound):
        with pytest.raises(ValidationError):
            Band(start=0, end=bound, text="x")
        with pytest.raises(ValidationError):
            Band(start=bound, end=10, text="x")

    def test_non_finite_max_score_rejected(self):
        with pytest.raises(ValidationError):
            InterpretationTable(bands=[], max_score=float("inf"))
