"""Document store implementations."""

from .filters import matches
from .memory import InMemoryDocumentService, InMemoryDocumentStore, InMemoryMediaLibrary
from .rest import RestDocumentService, RestDocumentStore

__all__ = [
    "InMemoryDocumentService",
    "InMemoryDocumentStore",
    "InMemoryMediaLibrary",
    "RestDocumentService",
    "RestDocumentStore",
    "matches",
]
