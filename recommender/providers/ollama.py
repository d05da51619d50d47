"""Ollama local provider (OpenAI-compatible API)."""

import logging
from typing import Any

from recommender.core.errors import ProviderError
from recommender.providers.base import EmbeddingProvider, LLMProvider
from recommender.providers.openai import _import_openai

logger = logging.getLogger(__name__)

_OLLAMA_BASE_URL = "http://localhost:11434/v1"


class OllamaProvider(LLMProvider, EmbeddingProvider):
    """Provider using a local Ollama instance via its OpenAI-compatible API."""

    def __init__(self, base_url: str = _OLLAMA_BASE_URL) -> None:
        self._base_url = base_url
        self._client: Any = None

    @property
    def provider_id(self) -> str:
        return "ollama"

    @property
    def default_model(self) -> str:
        return "llama3"

    @property
    def default_embedding_model(self) -> str:
        return "nomic-embed-text"

    @property
    def env_var(self) -> None:
        return None

    def _get_client(self) -> Any:
        if self._client is None:
            openai = _import_openai()
            self._client = openai.OpenAI(base_url=self._base_url, api_key="ollama")
        return self._client

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str,
    ) -> str:
        client = self._get_client()
        use_model = model or self.default_model

        logger.debug("Sending prompt to Ollama (%s)", use_model)
        try:
            response = client.chat.completions.create(
                model=use_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
            )
        except Exception as e:
            msg = f"Ollama completion failed: {e}"
            raise ProviderError(msg) from e

        return response.choices[0].message.content or ""

    def embed(self, text: str, model: str | None = None) -> list[float]:
        client = self._get_client()
        try:
            response = client.embeddings.create(
                model=model or self.default_embedding_model, input=text,
            )
        except Exception as e:
            msg = f"Ollama embedding failed: {e}"
            raise ProviderError(msg) from e

        if not response.data:
            msg = "Ollama returned no embedding"
            raise ProviderError(msg)
        return list(response.data[0].embedding)
