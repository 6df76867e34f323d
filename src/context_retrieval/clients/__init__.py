"""Clients for the external services the pipeline talks to."""

from context_retrieval.clients.huggingface import HuggingFaceRelevanceModel, build_relevance_model
from context_retrieval.clients.qdrant import QdrantClientWrapper, QdrantVectorIndex

__all__ = [
    "HuggingFaceRelevanceModel",
    "build_relevance_model",
    "QdrantClientWrapper",
    "QdrantVectorIndex",
]
