"""Abstract provider interfaces and shared response parsing."""

import json
import os
import re
from abc import ABC, abstractmethod
from typing import Any


def require_api_key(env_var: str) -> str:
    """Return the API key from the environment or raise ValueError."""
    api_key = os.environ.get(env_var)
    if not api_key:
        msg = f"{env_var} environment variable is required"
        raise ValueError(msg)
    return api_key


def parse_json_response(raw_text: str) -> dict[str, Any]:
    """Parse an LLM JSON answer into a dict.

    Handles markdown-wrapped JSON (```json ... ```) and plain JSON.
    Raises ValueError on malformed or non-object responses.
    """
    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", raw_text.strip())
    cleaned = re.sub(r"\n?```\s*$", "", cleaned)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        msg = f"Failed to parse LLM response as JSON: {e}"
        raise ValueError(msg) from e

    if not isinstance(data, dict):
        msg = f"Expected a JSON object from LLM, got {type(data).__name__}"
        raise ValueError(msg)
    return data


class Provider(ABC):
    """Identity shared by every provider backend."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'openai')."""

    @property
    @abstractmethod
    def env_var(self) -> str | None:
        """Environment variable name for the API key, or None if not needed."""


class LLMProvider(Provider):
    """A chat-completion backend (used by the role-fit scorer)."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The default chat model ID used when no override is specified."""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str,
    ) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Raises:
            ValueError: If the API key is missing.
            ImportError: If the SDK is not installed.
            ProviderError: If the API call fails.
        """


class EmbeddingProvider(Provider):
    """A text-embedding backend (used by the embedding similarity scorer)."""

    @property
    @abstractmethod
    def default_embedding_model(self) -> str:
        """The default embedding model ID used when no override is specified."""

    @abstractmethod
    def embed(self, text: str, model: str | None = None) -> list[float]:
        """Return a fixed-length embedding vector for ``text``.

        Raises:
            ValueError: If the API key is missing.
            ImportError: If the SDK is not installed.
            ProviderError: If the API call fails or returns no vector.
        """
