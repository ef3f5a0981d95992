"""
Vector store abstractions and factories.
"""

from docqa.config import settings
from docqa.vector_store.memory_store import InMemoryVectorStore

DEFAULT_VECTOR_STORE_BACKEND = settings.vector_store_backend


def get_vector_store(embedding_model: str | None = None, backend: str | None = None):
    """
    Factory to obtain a fresh VectorStore instance.
    Currently supports only the in-memory backend.
    """
    backend = (backend or DEFAULT_VECTOR_STORE_BACKEND).lower()
    if backend == "memory":
        return InMemoryVectorStore(embedding_model=embedding_model)
    raise ValueError(f"Unsupported vector store backend: {backend}")


__all__ = ["DEFAULT_VECTOR_STORE_BACKEND", "get_vector_store", "InMemoryVectorStore"]
