"""
Embedding Service
Turns text into fixed-width vectors shared by catalog items and queries.
"""

import logging
import math
from numbers import Real
from typing import Any, List, Optional, Sequence

from ..conf import assistant_setting
from ..exceptions import EmbeddingUnavailableError
from .openai_service import OpenAIService, OpenAIServiceError, get_openai_service

logger = logging.getLogger(__name__)


def normalize_embedding(vector: Sequence[float], dimensions: Optional[int] = None) -> List[float]:
    """
    Force a vector to exactly ``dimensions`` components.

    Longer vectors are truncated to their first ``dimensions`` components,
    shorter ones are right-padded with zeros. Matching widths pass through.
    """
    dimensions = dimensions or assistant_setting('EMBEDDING_DIMENSIONS')
    values = list(vector)
    if len(values) > dimensions:
        return values[:dimensions]
    if len(values) < dimensions:
        return values + [0.0] * (dimensions - len(values))
    return values


def coerce_embedding(raw: Any) -> List[float]:
    """
    Validate a raw model response and return it as a list of floats.

    Empty, non-numeric, NaN/infinite and all-zero vectors cannot be ranked
    and raise EmbeddingUnavailableError.
    """
    if not isinstance(raw, (list, tuple)) or not raw:
        raise EmbeddingUnavailableError("Embedding response was empty or not a vector")

    values = []
    for component in raw:
        # bool is a Real subclass but never a valid component
        if isinstance(component, bool) or not isinstance(component, Real):
            raise EmbeddingUnavailableError("Embedding contains non-numeric components")
        value = float(component)
        if not math.isfinite(value):
            raise EmbeddingUnavailableError("Embedding contains NaN or infinite components")
        values.append(value)

    if not any(values):
        raise EmbeddingUnavailableError("Embedding is an all-zero vector")
    return values


class EmbeddingService:
    """Embed catalog descriptions and chat queries into the shared vector space"""

    def __init__(self, openai_service: Optional[OpenAIService] = None, dimensions: Optional[int] = None):
        self.openai = openai_service or get_openai_service()
        self.dimensions = dimensions or assistant_setting('EMBEDDING_DIMENSIONS')

    def embed(self, text: str) -> List[float]:
        """
        Embed ``text`` and normalize it to the index width.

        Raises:
            EmbeddingUnavailableError: network/timeout failure or unusable response
        """
        try:
            raw = self.openai.create_embedding(text, dimensions=self.dimensions)
        except OpenAIServiceError as exc:
            raise EmbeddingUnavailableError(str(exc)) from exc

        values = coerce_embedding(raw)
        if len(values) != self.dimensions:
            logger.info(
                f"Embedding width {len(values)} differs from index width {self.dimensions}; normalizing"
            )
        return normalize_embedding(values, self.dimensions)

    def embed_query(self, text: str) -> Optional[List[float]]:
        """Embed a chat query; blank text means skip retrieval and returns None"""
        if not text or not text.strip():
            return None
        return self.embed(text)
