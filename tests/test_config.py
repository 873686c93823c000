# -*- coding: utf-8 -*-
"""Tests for EngineConfig and its environment overrides."""

from qsengine.config import (
    DEFAULT_MULTI_SELECT_TYPES,
    EngineConfig,
    get_config,
    reset_config,
    set_config,
)


class TestDefaults:

    def test_defaults(self):
        config = EngineConfig()
        assert config.max_factor_depth == 64
        assert config.validate_on_score is True
        assert config.score_decimal_places == 4
        assert config.multi_select_types == DEFAULT_MULTI_SELECT_TYPES
        assert config.enable_metrics is True

    def test_checkbox_family_is_multi_select(self):
        assert {"Checkbox", "CheckBox", "ImageCheckBox"} <= DEFAULT_MULTI_SELECT_TYPES
        assert "Radio" not in DEFAULT_MULTI_SELECT_TYPES


class TestFromEnv:

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("QS_ENGINE_MAX_FACTOR_DEPTH", "8")
        monkeypatch.setenv("QS_ENGINE_VALIDATE_ON_SCORE", "false")
        monkeypatch.setenv("QS_ENGINE_SCORE_DECIMAL_PLACES", "2")
        monkeypatch.setenv("QS_ENGINE_MULTI_SELECT_TYPES", "Checkbox, Tags ,")
        monkeypatch.setenv("QS_ENGINE_ENABLE_METRICS", "0")

        config = EngineConfig.from_env()
        assert config.max_factor_depth == 8
        assert config.validate_on_score is False
        assert config.score_decimal_places == 2
        assert config.multi_select_types == frozenset({"Checkbox", "Tags"})
        assert config.enable_metrics is False

    def test_invalid_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("QS_ENGINE_MAX_FACTOR_DEPTH", "deep")
        monkeypatch.setenv("QS_ENGINE_SCORE_DECIMAL_PLACES", "-1")
        monkeypatch.setenv("QS_ENGINE_MULTI_SELECT_TYPES", " , ")

        config = EngineConfig.from_env()
        assert config.max_factor_depth == 64
        assert config.score_decimal_places == 4
        assert config.multi_select_types == DEFAULT_MULTI_SELECT_TYPES

    def test_depth_minimum_is_one(self, monkeypatch):
        monkeypatch.setenv("QS_ENGINE_MAX_FACTOR_DEPTH", "0")
        assert EngineConfig.from_env().max_factor_depth == 64


class TestSingleton:

    def test_set_config(self):
        custom = EngineConfig(score_decimal_places=1)
        set_config(custom)
        assert get_config() is custom

    def test_reset_reloads_from_env(self, monkeypatch):
        monkeypatch.setenv("QS_ENGINE_SCORE_DECIMAL_PLACES", "6")
        reset_config()
        first = get_config()
        assert first.score_decimal_places == 6
        assert get_config() is first
