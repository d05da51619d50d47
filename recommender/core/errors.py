"""Exception types shared across the recommender."""


class InvalidArgumentError(ValueError):
    """Caller error: blank query, unknown user/activity, bad type value.

    Never degraded or retried; surfaced to the caller as-is.
    """


class ProviderError(RuntimeError):
    """An external provider (embedding, LLM) call failed."""
