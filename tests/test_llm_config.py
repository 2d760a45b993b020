"""Tests for config.llm_config — LLMConfig model, merge, and model settings."""

import pytest

from config.llm_config import LLMConfig


# ── Construction & defaults ───────────────────────────────────


def test_default_all_none():
    cfg = LLMConfig()
    assert cfg.model is None
    assert cfg.temperature is None
    assert cfg.top_p is None
    assert cfg.stop is None


def test_validation_temperature_range():
    with pytest.raises(ValueError):
        LLMConfig(temperature=3.0)  # max 2.0


def test_validation_top_p_range():
    with pytest.raises(ValueError):
        LLMConfig(top_p=-0.1)


# ── merge ─────────────────────────────────────────────────────


def test_merge_override_non_none():
    base = LLMConfig(model="gemini/gemini-2.5-flash", temperature=0.7, max_tokens=4096)
    merged = base.merge(LLMConfig(temperature=0.2))

    assert merged.model == "gemini/gemini-2.5-flash"
    assert merged.temperature == 0.2
    assert merged.max_tokens == 4096
    assert merged.top_p is None


def test_merge_does_not_mutate():
    base = LLMConfig(temperature=0.7)
    override = LLMConfig(temperature=0.2)
    merged = base.merge(override)

    assert base.temperature == 0.7
    assert override.temperature == 0.2
    assert merged.temperature == 0.2


def test_merge_empty_override():
    base = LLMConfig(model="a", temperature=0.5)
    merged = base.merge(LLMConfig())

    assert merged.model == "a"
    assert merged.temperature == 0.5


# ── to_model_settings ────────────────────────────────────────


def test_to_model_settings_excludes_none_and_model():
    cfg = LLMConfig(model="openai/gpt-4o", temperature=0.5)
    assert cfg.to_model_settings() == {"temperature": 0.5}


def test_to_model_settings_all_fields():
    cfg = LLMConfig(max_tokens=1024, temperature=0.2, top_p=0.8, seed=123, stop=["<|end|>"])
    kw = cfg.to_model_settings()

    assert kw["max_tokens"] == 1024
    assert kw["temperature"] == 0.2
    assert kw["top_p"] == 0.8
    assert kw["seed"] == 123
    assert kw["stop_sequences"] == ["<|end|>"]


def test_to_model_settings_empty():
    assert LLMConfig().to_model_settings() == {}


# ── Settings integration ──────────────────────────────────────


def test_settings_get_default_llm_config():
    from config.settings import Settings

    s = Settings(
        default_model="openai/gpt-4o-mini",
        max_tokens=2048,
        temperature=0.6,
    )
    cfg = s.get_default_llm_config()

    assert cfg.model == "openai/gpt-4o-mini"
    assert cfg.max_tokens == 2048
    assert cfg.temperature == 0.6
    assert cfg.seed is None


def test_settings_defaults_cover_tutoring_knobs():
    from config.settings import Settings

    s = Settings(_env_file=None)
    assert s.notebook_max_chars == 20000
    assert s.classifier_history_window == 3
    assert s.enrichment_flashcard_count == 3
    assert s.enrichment_quiz_count == 2


def test_settings_model_settings_for_layers_agent_config():
    from config.settings import Settings

    s = Settings(_env_file=None, max_tokens=1024, temperature=0.9, top_p=0.5)
    kw = s.model_settings_for(LLMConfig(temperature=0.1))

    assert kw == {"max_tokens": 1024, "temperature": 0.1, "top_p": 0.5}
