# -*- coding: utf-8 -*-
"""
Scoring Engine Configuration

Centralized configuration for the questionnaire scoring engine covering:
- Factor graph traversal limits
- Ruleset validation before scoring
- Score rounding precision
- Selection semantics of question widget types
- Metrics toggle

All settings can be overridden via environment variables with the
``QS_ENGINE_`` prefix (e.g. ``QS_ENGINE_MAX_FACTOR_DEPTH``).

Example:
    >>> from qsengine.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.max_factor_depth, cfg.score_decimal_places)

Author: Questionnaire Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "QS_ENGINE_"

DEFAULT_MULTI_SELECT_TYPES: FrozenSet[str] = frozenset({
    "Checkbox",
    "CheckBox",
    "ImageCheckBox",
    "MatrixCheckBox",
    "ImageMatrixCheckBox",
})


# ---------------------------------------------------------------------------
# EngineConfig
# ---------------------------------------------------------------------------


@dataclass
class EngineConfig:
    """Complete configuration for the questionnaire scoring engine.

    Attributes:
        max_factor_depth: Deepest composite-factor chain the walk will follow.
        validate_on_score: Whether to validate the whole ruleset before scoring.
        score_decimal_places: Decimal places kept in computed scores.
        multi_select_types: Question type tags with multi-selection semantics.
        enable_metrics: Whether to record Prometheus metrics.
    """

    # -- Traversal -----------------------------------------------------------
    max_factor_depth: int = 64

    # -- Validation ----------------------------------------------------------
    validate_on_score: bool = True

    # -- Arithmetic ----------------------------------------------------------
    score_decimal_places: int = 4

    # -- Question semantics --------------------------------------------------
    multi_select_types: FrozenSet[str] = field(
        default_factory=lambda: DEFAULT_MULTI_SELECT_TYPES,
    )

    # -- Observability -------------------------------------------------------
    enable_metrics: bool = True

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Build an EngineConfig from environment variables.

        Every field can be overridden via ``QS_ENGINE_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).
        ``MULTI_SELECT_TYPES`` is a comma-separated list of type tags.

        Returns:
            Populated EngineConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int, minimum: int = 0) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                parsed = int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default
            if parsed < minimum:
                logger.warning(
                    "Out of range value for %s%s=%s (minimum %d), using default %d",
                    prefix, name, val, minimum, default,
                )
                return default
            return parsed

        def _types(name: str, default: FrozenSet[str]) -> FrozenSet[str]:
            val = _env(name)
            if val is None:
                return default
            parsed = frozenset(t.strip() for t in val.split(",") if t.strip())
            if not parsed:
                logger.warning(
                    "Empty type list for %s%s, using defaults", prefix, name,
                )
                return default
            return parsed

        config = cls(
            max_factor_depth=_int(
                "MAX_FACTOR_DEPTH", cls.max_factor_depth, minimum=1,
            ),
            validate_on_score=_bool("VALIDATE_ON_SCORE", cls.validate_on_score),
            score_decimal_places=_int(
                "SCORE_DECIMAL_PLACES", cls.score_decimal_places,
            ),
            multi_select_types=_types(
                "MULTI_SELECT_TYPES", DEFAULT_MULTI_SELECT_TYPES,
            ),
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
        )

        logger.info(
            "EngineConfig loaded: max_depth=%d, validate=%s, decimals=%d, "
            "multi_select_types=%s, metrics=%s",
            config.max_factor_depth,
            config.validate_on_score,
            config.score_decimal_places,
            sorted(config.multi_select_types),
            config.enable_metrics,
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[EngineConfig] = None
_config_lock = threading.Lock()


def get_config() -> EngineConfig:
    """Return the singleton EngineConfig, creating from env if needed.

    Returns:
        EngineConfig singleton instance.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = EngineConfig.from_env()
    return _config_instance


def set_config(config: EngineConfig) -> None:
    """Replace the singleton EngineConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("EngineConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "DEFAULT_MULTI_SELECT_TYPES",
    "EngineConfig",
    "get_config",
    "set_config",
    "reset_config",
]
