"""Sweep job construction, argument layout and error types."""

from .errors import ArtifactMissingError, CollectionError, ParseError, RetrievalError

__all__ = [
    "ArtifactMissingError",
    "CollectionError",
    "ParseError",
    "RetrievalError",
]
