from __future__ import annotations

from scistu.ai.config import MODEL_CATALOG, PROVIDERS, REASONER_ALIAS, REASONER_TARGET
from scistu.ai.providers.openai_provider import OpenAICompatibleProvider
from scistu.ai.reasoning import ReasoningProvider
from scistu.ai.types import AIClient
from scistu.core.config import settings


class ModelRegistryError(ValueError):
    pass


class ProviderNotConfiguredError(RuntimeError):
    def __init__(self, provider: str, env_name: str):
        super().__init__(f"Provider '{provider}' is not configured. Set {env_name}.")
        self.provider = provider
        self.env_name = env_name


def parse_model_id(model_id: str) -> tuple[str, str]:
    value = (model_id or "").strip()
    if not value:
        raise ModelRegistryError("Model id is required.")
    if ":" not in value:
        return "openai", value
    provider, _, model = value.partition(":")
    provider = provider.strip().lower()
    model = model.strip()
    if not provider or not model:
        raise ModelRegistryError(f"Invalid model id '{value}'. Expected 'provider:model'.")
    return provider, model


def _build_provider(provider: str, model: str) -> OpenAICompatibleProvider:
    cfg = PROVIDERS.get(provider)
    if cfg is None:
        raise ModelRegistryError(
            f"Unsupported provider '{provider}'. Supported: {', '.join(sorted(PROVIDERS))}."
        )
    api_key = cfg.api_key()
    if not api_key:
        raise ProviderNotConfiguredError(provider, cfg.api_key_env)
    return OpenAICompatibleProvider(
        model=model,
        api_key=api_key,
        base_url=cfg.resolved_base_url(),
        timeout_s=settings.llm_timeout_s,
        max_retries=settings.llm_max_retries,
        provider=provider,
    )


def get_model(model_id: str, *, reasoning_tag: str = "think") -> AIClient:
    """Resolve a ``provider:model`` id to a client.

    The DeepSeek reasoner alias is served by the Groq-hosted R1 distill model,
    whose chain of thought arrives inline inside ``<reasoning_tag>`` tags.
    """
    value = (model_id or "").strip()
    if value == REASONER_ALIAS:
        provider, model = parse_model_id(REASONER_TARGET)
        return ReasoningProvider(_build_provider(provider, model), tag=reasoning_tag)

    provider, model = parse_model_id(value)
    return _build_provider(provider, model)


def list_models() -> list[dict[str, str | bool]]:
    models = []
    for model_id, label in MODEL_CATALOG:
        provider, _ = parse_model_id(REASONER_TARGET if model_id == REASONER_ALIAS else model_id)
        models.append(
            {
                "id": model_id,
                "label": label,
                "provider": model_id.split(":", 1)[0],
                "available": bool(PROVIDERS[provider].api_key()),
            }
        )
    return models


def configured_providers() -> list[str]:
    return [name for name, cfg in PROVIDERS.items() if cfg.api_key()]
