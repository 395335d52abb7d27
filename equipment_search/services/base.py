"""Provider interfaces consumed by the ranking core."""

import abc


class EmbeddingProvider(abc.ABC):
    """Interface that any embedding provider implements."""

    dimension: int

    @abc.abstractmethod
    async def embed_query(self, text: str) -> list[float]: ...

    @abc.abstractmethod
    async def embed_documents(self, texts: list[str]) -> list[list[float]]: ...


class CrossEncoderProvider(abc.ABC):
    """Interface that any cross-encoder provider implements."""

    @abc.abstractmethod
    async def score(self, query: str, documents: list[str]) -> list[float]:
        """One score per document, higher is more relevant."""
