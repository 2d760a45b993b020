"""Agent provider — shared model factory for PydanticAI agents.

Every agent in the tutoring pipeline (classifier, researcher, tutor,
materials) resolves its model through :func:`create_model`, so switching
inference provider is a settings change only.
"""

from __future__ import annotations

import logging

from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider

from config.settings import get_settings

logger = logging.getLogger(__name__)

# Provider prefix → (base_url, settings_key_attr) for OpenAI-compatible endpoints
_PROVIDER_MAP: dict[str, tuple[str, str]] = {
    "dashscope": ("https://dashscope.aliyuncs.com/compatible-mode/v1", "dashscope_api_key"),
}


def create_model(model_name: str | None = None):
    """Build a PydanticAI model instance.

    Parses the ``"provider/model"`` format (e.g. ``"gemini/gemini-2.5-flash"``,
    ``"anthropic/claude-sonnet-4-20250514"``) and creates the appropriate model.

    - ``gemini/*`` → native :class:`GoogleModel`
    - ``anthropic/*`` → native :class:`AnthropicModel`
    - ``dashscope/*`` → :class:`OpenAIChatModel` via OpenAI-compatible endpoint
    - ``openai/*`` or bare name → :class:`OpenAIChatModel` with OpenAI API

    Args:
        model_name: Model identifier in ``"provider/model"`` format.
                    Defaults to ``settings.default_model``.

    Returns:
        A PydanticAI model instance ready for ``Agent(model=...)``.
    """
    settings = get_settings()
    name = model_name or settings.default_model

    if "/" in name:
        prefix, model_id = name.split("/", 1)

        # ── Google Gemini ──
        if prefix == "gemini":
            from pydantic_ai.models.google import GoogleModel
            from pydantic_ai.providers.google import GoogleProvider

            provider = GoogleProvider(api_key=settings.gemini_api_key or None)
            return GoogleModel(model_id, provider=provider)

        # ── Anthropic native ──
        if prefix == "anthropic":
            from pydantic_ai.models.anthropic import AnthropicModel
            from pydantic_ai.providers.anthropic import AnthropicProvider

            provider = AnthropicProvider(api_key=settings.anthropic_api_key or None)
            return AnthropicModel(model_id, provider=provider)

        # ── Other OpenAI-compatible providers ──
        if prefix in _PROVIDER_MAP:
            base_url, key_attr = _PROVIDER_MAP[prefix]
            api_key = getattr(settings, key_attr, "")
            provider = OpenAIProvider(api_key=api_key, base_url=base_url)
            return OpenAIChatModel(model_id, provider=provider)

    # Fallback: assume OpenAI with OPENAI_API_KEY
    model_id = name.split("/", 1)[1] if "/" in name else name
    provider = OpenAIProvider(api_key=settings.openai_api_key or None)
    return OpenAIChatModel(model_id, provider=provider)


def get_model_for_role(role: str) -> str:
    """Map a pipeline role to the configured model name.

    Role → Settings field mapping:
    - classifier → classifier_model (fast, low temperature)
    - tutor      → tutor_model
    - research   → research_model
    - materials  → materials_model

    Unknown roles fall back to ``default_model``.
    """
    settings = get_settings()
    return {
        "classifier": settings.classifier_model,
        "tutor": settings.tutor_model,
        "research": settings.research_model,
        "materials": settings.materials_model,
    }.get(role, settings.default_model)
