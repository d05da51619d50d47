"""OpenAI chat and embedding provider."""

import logging
from typing import Any

from recommender.core.errors import ProviderError
from recommender.providers.base import EmbeddingProvider, LLMProvider, require_api_key

logger = logging.getLogger(__name__)


def _import_openai() -> Any:
    try:
        import openai
    except ImportError:
        msg = (
            "openai is required for the OpenAI provider. "
            "Install with: pip install 'activity-recommender[openai]'"
        )
        raise ImportError(msg) from None
    return openai


class OpenAIProvider(LLMProvider, EmbeddingProvider):
    """Provider using the OpenAI API for both completions and embeddings."""

    def __init__(self) -> None:
        self._client: Any = None

    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    @property
    def default_embedding_model(self) -> str:
        return "text-embedding-3-small"

    @property
    def env_var(self) -> str:
        return "OPENAI_API_KEY"

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = require_api_key(self.env_var)
            openai = _import_openai()
            self._client = openai.OpenAI(api_key=api_key)
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

        logger.debug("Sending prompt to OpenAI API (%s)", use_model)
        try:
            response = client.chat.completions.create(
                model=use_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
            )
        except Exception as e:
            msg = f"OpenAI completion failed: {e}"
            raise ProviderError(msg) from e

        return response.choices[0].message.content or ""

    def embed(self, text: str, model: str | None = None) -> list[float]:
        client = self._get_client()
        use_model = model or self.default_embedding_model

        try:
            response = client.embeddings.create(model=use_model, input=text)
        except Exception as e:
            msg = f"OpenAI embedding failed: {e}"
            raise ProviderError(msg) from e

        if not response.data:
            msg = "OpenAI returned no embedding"
            raise ProviderError(msg)
        return list(response.data[0].embedding)
