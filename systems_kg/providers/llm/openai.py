"""
OpenAI LLM Provider (LangChain-based)

Implements LLMProvider interface using LangChain's ChatOpenAI.

Timeouts and rate limits from the OpenAI client are re-raised as
TransientServiceError; the extractor retries those and turns anything else
into a failed chunk.

Example:
    >>> provider = OpenAILLMProvider(api_key="sk-...", model="gpt-4o")
    >>> response = await provider.generate("Summarize this paragraph ...")
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from systems_kg.errors import TransientServiceError
from systems_kg.providers.base import LLMProvider

if TYPE_CHECKING:
    from langchain_openai import ChatOpenAI

logger = logging.getLogger(__name__)


def _get_chat_openai(
    api_key: str | None = None,
    model: str = "gpt-4o",
    temperature: float = 0.0,
    timeout: float | None = None,
) -> "ChatOpenAI":
    """
    Get a ChatOpenAI instance.

    Uses lazy import to avoid requiring langchain-openai unless actually used.

    Raises:
        ImportError: If langchain-openai package is not installed
    """
    try:
        from langchain_openai import ChatOpenAI
    except ImportError:
        raise ImportError(
            "OpenAI provider requires the 'langchain-openai' package. "
            "Install with: pip install systems-kg"
        )

    # Retries are owned by the extractor
    kwargs: dict[str, Any] = {"model": model, "temperature": temperature, "max_retries": 0}
    if api_key:
        kwargs["api_key"] = api_key
    if timeout is not None:
        kwargs["timeout"] = timeout

    return ChatOpenAI(**kwargs)


class OpenAILLMProvider(LLMProvider):
    """
    OpenAI LLM provider implementation using LangChain.

    Args:
        api_key: OpenAI API key. If None, uses OPENAI_API_KEY environment variable.
        model: Model to use (default: "gpt-4o")
        timeout: Seconds before a call is abandoned as a timeout
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o",
        timeout: float | None = 60.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout

    @property
    def model_name(self) -> str:
        """Current model name."""
        return self._model

    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 4096,
    ) -> str:
        """
        Generate a text completion.

        Args:
            prompt: User prompt
            system: Optional system message for context
            temperature: Sampling temperature (0.0 = deterministic)
            max_tokens: Maximum tokens in response

        Returns:
            Generated text response

        Raises:
            TransientServiceError: On timeout or rate limiting
        """
        import openai
        from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

        base_client = _get_chat_openai(
            api_key=self._api_key,
            model=self._model,
            temperature=temperature,
            timeout=self._timeout,
        )
        client = base_client.bind(max_tokens=max_tokens)

        messages: list[BaseMessage] = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=prompt))

        try:
            response = await client.ainvoke(messages)
        except openai.RateLimitError as e:
            logger.warning("OpenAI rate limit hit for %s", self._model)
            raise TransientServiceError(str(e), kind="rate_limited") from e
        except (openai.APITimeoutError, asyncio.TimeoutError) as e:
            logger.warning("OpenAI call timed out for %s", self._model)
            raise TransientServiceError(str(e) or "request timed out", kind="timeout") from e

        return str(response.content)
