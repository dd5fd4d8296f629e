"""Query embeddings via PydanticAI Gateway."""

from typing import List

import logfire
from pydantic_ai import Embedder

from src.config import get_settings
from src.services.chat.errors import EmbeddingServiceError


class EmbeddingService:
    """Generate search-query embeddings for semantic call search."""

    def __init__(self, model: str | None = None):
        self.model_name = model or get_settings().embedding_model

    async def embed_query(self, query: str) -> List[float]:
        """
        Generate a single embedding for a search query.

        Uses settings.embedding_model (e.g. gateway/openai:text-embedding-3-small)
        routed through the PydanticAI Gateway key.

        Args:
            query: Search query string.

        Returns:
            Embedding vector, or an empty list for a blank query.

        Raises:
            EmbeddingServiceError: If the embedding call fails
        """
        if not query or not query.strip():
            return []
        embedder = Embedder(self.model_name)
        with logfire.span("embedding_query", model=self.model_name):
            try:
                result = await embedder.embed_query(query)
            except Exception as e:
                raise EmbeddingServiceError(f"Embedding failed: {e}") from e
        if not result.embeddings:
            return []
        return list(result.embeddings[0])


def get_embedding_service() -> EmbeddingService:
    """Get embedding service instance."""
    return EmbeddingService()
