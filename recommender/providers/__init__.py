"""Provider registries with lazy loading.

Usage:
    from recommender.providers import get_embedding_provider, get_llm_provider

    embedder = get_embedding_provider("gemini")
    vector = embedder.embed("AI 공모전")

    llm = get_llm_provider("anthropic")
    raw = llm.complete(prompt, system=SYSTEM_PROMPT)
"""

import importlib

from recommender.providers.base import EmbeddingProvider, LLMProvider, parse_json_response

__all__ = [
    "EmbeddingProvider",
    "LLMProvider",
    "available_embedding_providers",
    "available_llm_providers",
    "get_embedding_provider",
    "get_llm_provider",
    "parse_json_response",
]

# Lazy registries: maps provider name → (module_path, class_name)
_LLM_REGISTRY: dict[str, tuple[str, str]] = {
    "anthropic": ("recommender.providers.anthropic", "AnthropicProvider"),
    "openai": ("recommender.providers.openai", "OpenAIProvider"),
    "gemini": ("recommender.providers.gemini", "GeminiProvider"),
    "ollama": ("recommender.providers.ollama", "OllamaProvider"),
}

# Anthropic has no embeddings API.
_EMBEDDING_REGISTRY: dict[str, tuple[str, str]] = {
    "openai": ("recommender.providers.openai", "OpenAIProvider"),
    "gemini": ("recommender.providers.gemini", "GeminiProvider"),
    "ollama": ("recommender.providers.ollama", "OllamaProvider"),
}


def _load(registry: dict[str, tuple[str, str]], name: str, kind: str) -> object:
    if name not in registry:
        valid = ", ".join(sorted(registry))
        msg = f"Unknown {kind} provider '{name}'. Available: {valid}"
        raise ValueError(msg)

    module_path, class_name = registry[name]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls()


def get_llm_provider(name: str) -> LLMProvider:
    """Instantiate and return a chat LLM provider by name.

    Raises:
        ValueError: If the provider name is unknown.
    """
    return _load(_LLM_REGISTRY, name, "LLM")  # type: ignore[return-value]


def get_embedding_provider(name: str) -> EmbeddingProvider:
    """Instantiate and return an embedding provider by name.

    Raises:
        ValueError: If the provider name is unknown.
    """
    return _load(_EMBEDDING_REGISTRY, name, "embedding")  # type: ignore[return-value]


def available_llm_providers() -> list[str]:
    """Return sorted list of registered chat provider names."""
    return sorted(_LLM_REGISTRY)


def available_embedding_providers() -> list[str]:
    """Return sorted list of registered embedding provider names."""
    return sorted(_EMBEDDING_REGISTRY)
