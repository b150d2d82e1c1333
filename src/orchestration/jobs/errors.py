"""Custom exceptions for sweep orchestration and result collection."""


class CollectionError(Exception):
    """Base exception for sweep result collection errors."""
    pass


class RetrievalError(CollectionError):
    """Raised when child runs or their metadata cannot be fetched from the platform."""
    pass


class ArtifactMissingError(CollectionError):
    """Raised when an expected output artifact is absent for a completed child run."""
    pass


class ParseError(CollectionError):
    """Raised when run arguments or artifact content are not in the expected shape."""
    pass
