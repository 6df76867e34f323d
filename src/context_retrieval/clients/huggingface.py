"""Hugging Face Inference API relevance model."""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from context_retrieval.config import Settings
from context_retrieval.protocols import RelevanceModel
from context_retrieval.types import Chunk

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (500, 502, 503, 504)


class HuggingFaceRelevanceModel:
    """Cross-encoder relevance scoring through the Hugging Face Inference API.

    The API ranks texts against a query and answers with ``index``/``score``
    pairs sorted by score; they are mapped back to input order here.

    Attributes:
        model_id: Hugging Face model ID (e.g., BAAI/bge-reranker-v2-m3).
        api_url: Full API endpoint URL.
        max_retries: Maximum number of attempts on transient server errors.
        retry_delay: Initial delay between retries in seconds.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        model_id: str,
        api_token: str,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Hugging Face relevance model.

        Args:
            model_id: Hugging Face model ID.
            api_token: Hugging Face API token.
            max_retries: Maximum attempts on transient server errors.
            retry_delay: Initial delay between retries (exponential backoff).
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used instead of the network.
        """
        self.model_id = model_id
        self.api_token = api_token
        self.api_url = f"https://api-inference.huggingface.co/models/{model_id}"
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport

        logger.info(f"Initialized Hugging Face relevance model: {model_id}")

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {self.api_token}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self._transport,
        )

    @staticmethod
    def _parse_response(response_data: list[dict[str, Any]], count: int) -> list[float]:
        """Map API ``index``/``score`` items back to one score per input text.

        Texts the API left out score 0.0.
        """
        scores = [0.0] * count
        for item in response_data:
            index = int(item["index"])
            if 0 <= index < count:
                scores[index] = float(item["score"])
        return scores

    async def score(self, query: str, chunks: Sequence[Chunk]) -> list[float]:
        """Score each chunk against the query.

        Args:
            query: Query text.
            chunks: Candidate chunks.

        Returns:
            One score per chunk, in input order.

        Raises:
            httpx.HTTPStatusError: If the API request fails after retries.
        """
        if not chunks:
            return []

        payload = {
            "inputs": {"query": query, "texts": [chunk.content for chunk in chunks]},
            "options": {"wait_for_model": True},
        }

        async with self._create_client() as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.post(self.api_url, json=payload)
                    response.raise_for_status()
                    return self._parse_response(response.json(), len(chunks))

                except httpx.HTTPStatusError as e:
                    if (
                        e.response.status_code in RETRYABLE_STATUS_CODES
                        and attempt < self.max_retries - 1
                    ):
                        delay = self.retry_delay * (2**attempt)
                        logger.warning(
                            f"Hugging Face API error {e.response.status_code}, "
                            f"retrying in {delay}s (attempt {attempt + 1}/{self.max_retries})"
                        )
                        await asyncio.sleep(delay)
                        continue
                    logger.error(f"Hugging Face API request failed: {e}")
                    raise

        raise RuntimeError("Hugging Face relevance model made no request (max_retries < 1)")


def build_relevance_model(settings: Settings) -> RelevanceModel | None:
    """Create the relevance model selected by ``reranker_backend``.

    Returns:
        The configured model, or None when the backend is ``none``.
    """
    if settings.reranker_backend == "huggingface":
        logger.info(f"Using Hugging Face relevance model: {settings.reranker_model}")
        return HuggingFaceRelevanceModel(
            model_id=settings.reranker_model,
            api_token=settings.hf_api_token,
            timeout=settings.reranker_timeout,
        )

    logger.info("No relevance model configured")
    return None
