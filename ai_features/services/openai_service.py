"""
OpenAI Service
Centralized service for all OpenAI API interactions: text embeddings for
catalog retrieval and streamed chat completions for the store assistant.
Every call carries a bounded timeout and SDK failures surface as
OpenAIServiceError.
"""

import logging
import time
from typing import Any, Dict, Iterator, List, Optional

from django.conf import settings
from openai import OpenAI

from ..conf import assistant_setting

logger = logging.getLogger(__name__)


class OpenAIServiceError(Exception):
    """Raised when OpenAI service encounters an error"""
    pass


class OpenAIService:
    """Centralized OpenAI API service"""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None) -> None:
        self.api_key = api_key if api_key is not None else getattr(settings, 'OPENAI_API_KEY', '')
        self.base_url = base_url if base_url is not None else getattr(settings, 'OPENAI_BASE_URL', None)
        self._client = None

    @property
    def client(self) -> OpenAI:
        """Lazily build the SDK client so a missing key only fails the call that needs it."""
        if self._client is None:
            if not self.api_key:
                raise OpenAIServiceError("OPENAI_API_KEY not configured in settings")
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, max_retries=1)
        return self._client

    def create_embedding(
        self,
        text: str,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> List[Any]:
        """
        Embed one text string.

        Args:
            text: Input text
            model: Embedding model name (defaults to EMBEDDING_MODEL)
            dimensions: Requested vector width (defaults to EMBEDDING_DIMENSIONS)
            timeout: Request timeout in seconds (defaults to EMBEDDING_TIMEOUT)

        Returns:
            The raw vector exactly as returned by the API. The width may
            differ from the one requested.
        """
        model = model or assistant_setting('EMBEDDING_MODEL')
        dimensions = dimensions or assistant_setting('EMBEDDING_DIMENSIONS')
        timeout = timeout or assistant_setting('EMBEDDING_TIMEOUT')

        start_time = time.time()
        try:
            response = self.client.with_options(timeout=timeout).embeddings.create(
                model=model,
                input=text,
                dimensions=dimensions,
            )
            vector = response.data[0].embedding
        except OpenAIServiceError:
            raise
        except Exception as exc:
            raise OpenAIServiceError(f"OpenAI embedding error: {str(exc)}") from exc

        processing_time_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"Embedding from {model} took {processing_time_ms}ms")
        return vector

    def stream_chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> Iterator[str]:
        """
        Stream a chat completion as text deltas.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Chat model name (defaults to CHAT_MODEL)
            temperature: Sampling temperature (0-2)
            max_tokens: Maximum tokens to generate
            timeout: Request timeout in seconds (defaults to CHAT_TIMEOUT)

        Yields:
            Non-empty content fragments in arrival order

        Raises:
            OpenAIServiceError: on request failure or when the stream breaks
        """
        model = model or assistant_setting('CHAT_MODEL')
        timeout = timeout or assistant_setting('CHAT_TIMEOUT')

        request_kwargs = {
            'model': model,
            'messages': messages,
            'temperature': temperature if temperature is not None else assistant_setting('TEMPERATURE'),
            'stream': True,
        }
        if max_tokens:
            request_kwargs['max_tokens'] = max_tokens

        try:
            stream = self.client.with_options(timeout=timeout).chat.completions.create(**request_kwargs)
        except OpenAIServiceError:
            raise
        except Exception as exc:
            raise OpenAIServiceError(f"OpenAI API Error: {str(exc)}") from exc

        try:
            for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except Exception as exc:
            raise OpenAIServiceError(f"OpenAI stream interrupted: {str(exc)}") from exc
        finally:
            stream.close()


# Singleton instance
_openai_service = None

def get_openai_service() -> OpenAIService:
    """Get or create OpenAI service singleton"""
    global _openai_service
    if _openai_service is None:
        _openai_service = OpenAIService()
    return _openai_service
