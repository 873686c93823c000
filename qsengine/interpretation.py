# -*- coding: utf-8 -*-
"""
Interpretation Resolver

Maps a numeric score to interpretive text using an ordered band table.
Bands are scanned in authoring order and the first band whose inclusive
``[start, end]`` range contains the score wins. Bands need not be sorted
or disjoint; overlap is an authoring concern, not a runtime error.
"""

from __future__ import annotations

import logging
from typing import Optional

from qsengine.config import EngineConfig, get_config
from qsengine.metrics import record_interpretation_lookup
from qsengine.models import Band, InterpretationTable

logger = logging.getLogger(__name__)


class InterpretationResolver:
    """First-match band lookup.

    Attributes:
        config: EngineConfig instance.
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or get_config()

    def resolve(
        self,
        table: Optional[InterpretationTable],
        score: Optional[float],
    ) -> Optional[str]:
        """Return the text of the first band containing ``score``.

        Args:
            table: Interpretation table, or None when none is configured.
            score: Score to interpret, or None when there is no score.

        Returns:
            Band text, or None if no band matches.
        """
        if table is None or score is None:
            record_interpretation_lookup("skipped", enabled=self.config.enable_metrics)
            return None

        band = self.match(table, score)
        if band is None:
            record_interpretation_lookup("unmatched", enabled=self.config.enable_metrics)
            logger.debug("No band matches score %s", score)
            return None

        record_interpretation_lookup("matched", enabled=self.config.enable_metrics)
        return band.text

    @staticmethod
    def match(table: InterpretationTable, score: float) -> Optional[Band]:
        """Return the first band containing ``score``, or None."""
        for band in table.bands:
            if band.contains(score):
                return band
        return None


def resolve(
    table: Optional[InterpretationTable],
    score: Optional[float],
    config: Optional[EngineConfig] = None,
) -> Optional[str]:
    """Module-level shortcut for :meth:`InterpretationResolver.resolve`."""
    return InterpretationResolver(config).resolve(table, score)


__all__ = [
    "InterpretationResolver",
    "resolve",
]
