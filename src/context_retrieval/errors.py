"""Exceptions raised by the retrieval pipeline."""


class RetrievalError(Exception):
    """Base class for retrieval pipeline errors."""


class RerankerNotConfiguredError(RetrievalError, RuntimeError):
    """Raised when reranking is requested without a relevance model."""

    def __init__(self, message: str = "No relevance model configured for reranking") -> None:
        super().__init__(message)


class RelevanceModelError(RetrievalError):
    """Raised when the relevance model returns an unusable score list."""

    def __init__(self, message: str, expected: int, received: int) -> None:
        """Initialize relevance model error.

        Args:
            message: Error message.
            expected: Number of scores expected (one per candidate).
            received: Number of scores returned by the model.
        """
        super().__init__(message)
        self.expected = expected
        self.received = received


class RetrievalTimeoutError(RetrievalError, TimeoutError):
    """Raised when a pipeline run exceeds its deadline."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Retrieval did not complete within {timeout_seconds:.3f}s")
        self.timeout_seconds = timeout_seconds
