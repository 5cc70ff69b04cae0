# filename: openai_service.py
# location: jobbooster/services/

import logging
import time
from typing import Dict, Iterator, List, NamedTuple, Optional

import openai
from flask import current_app
from openai import OpenAI

logger = logging.getLogger(__name__)

# Transient provider failures worth another attempt
RETRYABLE_ERRORS = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class CompletionError(Exception):
    """The provider answered, but not with something usable."""


class UpstreamUnavailable(CompletionError):
    """The provider could not be reached within the retry budget."""


class Completion(NamedTuple):
    content: str
    usage: Optional[Dict[str, int]]
    model: str
    duration_ms: int


class CompletionClient:
    """Thin wrapper around an OpenAI-compatible chat-completion endpoint.

    The SDK's own retries are disabled (``max_retries=0``) so that the
    bounded retry with exponential backoff below is the only policy in play.
    """

    def __init__(self, api_key: str, base_url: Optional[str], model: str,
                 timeout: float = 30.0, max_retries: int = 3, backoff: float = 0.5,
                 client=None):
        self.model = model
        self.base_url = base_url
        self.max_retries = max_retries
        self.backoff = backoff
        self.client = client or OpenAI(
            api_key=api_key,
            base_url=base_url or None,
            timeout=timeout,
            max_retries=0,
        )

    @classmethod
    def from_config(cls, config):
        return cls(
            api_key=config["OPENAI_API_KEY"],
            base_url=config.get("OPENAI_BASE_URL"),
            model=config["OPENAI_MODEL"],
            timeout=config.get("OPENAI_TIMEOUT", 30.0),
            max_retries=config.get("OPENAI_MAX_RETRIES", 3),
            backoff=config.get("OPENAI_RETRY_BACKOFF", 0.5),
        )

    def _create(self, **kwargs):
        attempt = 0
        while True:
            try:
                return self.client.chat.completions.create(model=self.model, **kwargs)
            except RETRYABLE_ERRORS as e:
                if attempt >= self.max_retries:
                    logger.error("LLM provider unavailable after %d attempt(s): %s", attempt + 1, e)
                    raise UpstreamUnavailable("AI service temporarily unavailable") from e
                delay = self.backoff * (2 ** attempt)
                logger.warning("LLM call failed (%s), retrying in %.2fs", type(e).__name__, delay)
                time.sleep(delay)
                attempt += 1
            except openai.APIStatusError as e:
                logger.error("LLM provider rejected the request: %s %s", e.status_code, e.message)
                raise CompletionError(f"AI service rejected the request ({e.status_code})") from e

    def complete(self, messages: List[Dict[str, str]], temperature: float = 0.7,
                 max_tokens: Optional[int] = None) -> Completion:
        """Blocking call; returns ``choices[0].message.content``."""
        logger.info("LLM call: model=%s endpoint=%s messages=%d", self.model, self.base_url, len(messages))
        started = time.perf_counter()

        kwargs = {"messages": messages, "temperature": temperature}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        response = self._create(**kwargs)

        duration_ms = int((time.perf_counter() - started) * 1000)
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise CompletionError("No response from AI service")

        usage = response.usage.model_dump() if response.usage is not None else None
        logger.info("LLM call completed in %dms (%d chars)", duration_ms, len(content))
        return Completion(content=content, usage=usage, model=response.model or self.model, duration_ms=duration_ms)

    def stream(self, messages: List[Dict[str, str]], temperature: float = 0.7,
               max_tokens: Optional[int] = None) -> Iterator[str]:
        """Open a stream and return an iterator of non-empty text deltas.

        The stream is opened eagerly so connection failures surface before
        any response headers are sent. A failure mid-stream propagates to
        the consumer. Closing the returned generator closes the upstream
        HTTP response.
        """
        logger.info("LLM stream: model=%s endpoint=%s messages=%d", self.model, self.base_url, len(messages))

        kwargs = {"messages": messages, "temperature": temperature, "stream": True}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        upstream = self._create(**kwargs)
        return self._deltas(upstream)

    @staticmethod
    def _deltas(upstream) -> Iterator[str]:
        try:
            for chunk in upstream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except openai.APIError as e:
            raise CompletionError("Stream interrupted") from e
        finally:
            upstream.close()


def get_completion_client() -> CompletionClient:
    """The client registered on the current app by create_app."""
    return current_app.extensions["completion_client"]
