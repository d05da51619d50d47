"""Anthropic Claude chat provider (completions only)."""

import logging
from typing import Any

from recommender.core.errors import ProviderError
from recommender.providers.base import LLMProvider, require_api_key

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """LLM provider using the Anthropic Claude API."""

    def __init__(self) -> None:
        self._client: Any = None

    @property
    def provider_id(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-20250514"

    @property
    def env_var(self) -> str:
        return "ANTHROPIC_API_KEY"

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = require_api_key(self.env_var)
            try:
                import anthropic
            except ImportError:
                msg = (
                    "anthropic is required for the Anthropic provider. "
                    "Install with: pip install 'activity-recommender[anthropic]'"
                )
                raise ImportError(msg) from None
            self._client = anthropic.Anthropic(api_key=api_key)
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

        logger.debug("Sending prompt to Anthropic API (%s)", use_model)
        try:
            message = client.messages.create(
                model=use_model,
                max_tokens=512,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            msg = f"Anthropic completion failed: {e}"
            raise ProviderError(msg) from e

        return message.content[0].text  # type: ignore[no-any-return]
