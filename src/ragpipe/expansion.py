"""Rule-based query expansion."""

import re
from typing import Optional

DEFAULT_SYNONYMS: dict[str, list[str]] = {
    "rag": ["retrieval augmented generation", "document retrieval", "knowledge retrieval"],
    "vector": ["embedding", "dense representation", "semantic vector"],
    "llm": ["large language model", "AI model", "language model"],
    "agent": ["agentic system", "autonomous agent", "AI agent"],
    "mcp": ["model context protocol", "tool integration", "tool calling"],
    "security": ["access control", "authentication", "authorization", "encryption"],
    "scale": ["scalability", "horizontal scaling", "performance", "throughput"],
    "orchestrat": ["workflow", "langgraph", "state machine", "control flow"],
    "chunk": ["segment", "split", "partition", "document chunk"],
    "embed": ["embedding", "vector representation", "encode"],
    "search": ["retrieval", "query", "find", "lookup"],
    "database": ["store", "storage", "index", "persistence"],
}

STOP_WORDS = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "what", "how", "why", "when",
    "where", "who", "which", "do", "does", "did", "can", "could", "should",
    "would", "will", "shall", "may", "might", "must", "to", "of", "in", "for",
    "on", "with", "at", "by", "from", "about", "into", "through", "during",
    "before", "after", "above", "below", "between", "and", "or", "but", "not",
    "no", "nor", "so", "yet", "both", "either", "neither", "each", "every",
    "all", "any", "few", "more", "most", "some", "such", "than", "too", "very",
    "just", "only",
})


class QueryExpander:
    """Generate query variants to widen recall.

    Produces at most one synonym variant (the first table key found in the
    query, replaced by its first synonym) and one keyword-only variant with
    stop words and short words removed.
    """

    def __init__(
        self,
        synonyms: Optional[dict[str, list[str]]] = None,
        stop_words: Optional[frozenset[str]] = None,
    ):
        self.synonyms = synonyms if synonyms is not None else DEFAULT_SYNONYMS
        self.stop_words = stop_words if stop_words is not None else STOP_WORDS

    def expand(self, query: str) -> list[str]:
        """
        Return unique query strings, the original first.
        """
        queries = [query]

        variant = self._synonym_variant(query)
        if variant is not None:
            queries.append(variant)

        keywords = self._keyword_variant(query)
        if keywords != query and len(keywords) > 3:
            queries.append(keywords)

        return list(dict.fromkeys(queries))

    def _synonym_variant(self, query: str) -> Optional[str]:
        lower = query.lower()
        for key, synonyms in self.synonyms.items():
            if key in lower and synonyms:
                return re.sub(re.escape(key), lambda _: synonyms[0], query, flags=re.IGNORECASE)
        return None

    def _keyword_variant(self, query: str) -> str:
        return " ".join(
            word for word in query.split()
            if word.lower() not in self.stop_words and len(word) > 2
        )
