"""
Vector store interface and the JSON-persisted implementation.
"""

from .base import VectorStore
from .json_vector_store import JsonVectorStore

__all__ = [
    "VectorStore",
    "JsonVectorStore",
]
