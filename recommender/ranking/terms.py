"""Query term expansion from a static synonym table."""

import logging
from collections.abc import Mapping
from types import MappingProxyType

from recommender.core.config import DEFAULT_SYNONYMS
from recommender.core.errors import InvalidArgumentError

logger = logging.getLogger(__name__)


class TermExpander:
    """Expands a raw query into related terms.

    The synonym table is frozen at construction: each group is stored as an
    immutable (key, *synonyms) tuple. If the lower-cased query contains any
    term of a group, every term of that group is added.

    Usage::

        expander = TermExpander(settings.synonyms)
        expander.expand("개발자 채용")
        # ['개발자 채용', '개발', '프로그래밍', '코딩', '소프트웨어', '취업', '채용', ...]
    """

    def __init__(self, synonyms: Mapping[str, list[str]] | None = None) -> None:
        table = DEFAULT_SYNONYMS if synonyms is None else synonyms
        self._groups: Mapping[str, tuple[str, ...]] = MappingProxyType(
            {key: (key, *values) for key, values in table.items()}
        )

    @property
    def groups(self) -> Mapping[str, tuple[str, ...]]:
        return self._groups

    def expand(self, query: str) -> list[str]:
        """Return [query, *related terms], deduplicated, query first.

        Raises:
            InvalidArgumentError: If the query is blank.
        """
        if query is None or not query.strip():
            msg = "search query must not be blank"
            raise InvalidArgumentError(msg)

        lowered = query.lower()
        terms: list[str] = [query]
        for group in self._groups.values():
            if any(term.lower() in lowered for term in group):
                terms.extend(group)

        expanded = list(dict.fromkeys(terms))
        logger.debug("Expanded '%s' into %d terms", query, len(expanded))
        return expanded
