"""Google Gemini chat and embedding provider (google-genai SDK)."""

import logging
from typing import Any

from recommender.core.errors import ProviderError
from recommender.providers.base import EmbeddingProvider, LLMProvider, require_api_key

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider, EmbeddingProvider):
    """Provider using the Google Gemini API for completions and embeddings."""

    def __init__(self) -> None:
        self._client: Any = None

    @property
    def provider_id(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return "gemini-2.5-flash"

    @property
    def default_embedding_model(self) -> str:
        return "text-embedding-004"

    @property
    def env_var(self) -> str:
        return "GOOGLE_API_KEY"

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = require_api_key(self.env_var)
            try:
                from google import genai
            except ImportError:
                msg = (
                    "google-genai is required for the Gemini provider. "
                    "Install with: pip install 'activity-recommender[gemini]'"
                )
                raise ImportError(msg) from None
            self._client = genai.Client(api_key=api_key)
        return self._client

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str,
    ) -> str:
        client = self._get_client()
        from google.genai import types as genai_types

        use_model = model or self.default_model
        logger.debug("Sending prompt to Gemini API (%s)", use_model)
        try:
            response = client.models.generate_content(
                model=use_model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(system_instruction=system),
            )
        except Exception as e:
            msg = f"Gemini completion failed: {e}"
            raise ProviderError(msg) from e

        return response.text or ""

    def embed(self, text: str, model: str | None = None) -> list[float]:
        client = self._get_client()
        use_model = model or self.default_embedding_model

        try:
            response = client.models.embed_content(model=use_model, contents=text)
        except Exception as e:
            msg = f"Gemini embedding failed: {e}"
            raise ProviderError(msg) from e

        if not response.embeddings or not response.embeddings[0].values:
            msg = "Gemini returned no embedding"
            raise ProviderError(msg)
        return list(response.embeddings[0].values)
