import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    api_key_env: str
    base_url: str | None = None
    base_url_env: str | None = None

    def api_key(self) -> str:
        return (os.getenv(self.api_key_env) or "").strip()

    def resolved_base_url(self) -> str | None:
        if self.base_url_env:
            override = (os.getenv(self.base_url_env) or "").strip()
            if override:
                return override
        return self.base_url


PROVIDERS: dict[str, ProviderConfig] = {
    "openai": ProviderConfig("openai", "OPENAI_API_KEY", base_url_env="OPENAI_BASE_URL"),
    "deepseek": ProviderConfig("deepseek", "DEEPSEEK_API_KEY", "https://api.deepseek.com"),
    "groq": ProviderConfig("groq", "GROQ_API_KEY", "https://api.groq.com/openai/v1"),
    "gemini": ProviderConfig(
        "gemini", "GEMINI_API_KEY", "https://generativelanguage.googleapis.com/v1beta/openai/"
    ),
    "anthropic": ProviderConfig("anthropic", "ANTHROPIC_API_KEY", "https://api.anthropic.com/v1/"),
}

# Model ids offered in the playground model picker.
MODEL_CATALOG: tuple[tuple[str, str], ...] = (
    ("openai:gpt-4o", "GPT-4o"),
    ("openai:gpt-3.5-turbo", "GPT-3.5 Turbo"),
    ("openai:gpt-4-turbo", "GPT-4 Turbo"),
    ("deepseek:deepseek-chat", "DeepSeek Chat"),
    ("deepseek:deepseek-coder", "DeepSeek Coder"),
    ("deepseek:deepseek-reasoner", "DeepSeek-R"),
    ("groq:deepseek-r1-distill-llama-70b", "GROQ"),
    ("gemini:gemini-2.0-flash", "Gemini 2.0 Flash"),
    ("gemini:gemini-2.0-flash-lite", "Gemini 2.0 Flash-Lite"),
    ("gemini:gemini-1.5-pro", "Gemini 1.5 Pro"),
)

REASONER_ALIAS = "deepseek:deepseek-reasoner"
REASONER_TARGET = "groq:deepseek-r1-distill-llama-70b"
