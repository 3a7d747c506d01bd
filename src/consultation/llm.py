"""Language model capability used by tip strategies.

Strategies only need ``complete(prompt) -> text``. The OpenAI adapter
streams a chat completion and returns the concatenated deltas; every
provider error is surfaced as ``GenerationFailure``.
"""

import logging
import time
from abc import ABC, abstractmethod

from openai import AsyncOpenAI

from src.consultation.errors import GenerationFailure

logger = logging.getLogger(__name__)


class LanguageModel(ABC):
    """Text completion capability."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Complete a prompt.

        Args:
            prompt: Fully rendered prompt

        Returns:
            Final completion text

        Raises:
            GenerationFailure: If the model call fails
        """


class OpenAILanguageModel(LanguageModel):
    """OpenAI chat-completions adapter with streaming.

    The prompt is sent as a single system message, matching how tip
    prompts embed the conversation history inline.

    Example:
        >>> llm = OpenAILanguageModel(api_key="sk-...", model="gpt-4o-mini")
        >>> text = await llm.complete("Give one short tip.")
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        max_tokens: int = 200,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: OpenAI API key
            model: Chat model name
            temperature: Sampling temperature
            max_tokens: Maximum completion tokens

        Raises:
            ValueError: If api_key is empty or a placeholder
        """
        if not api_key or api_key == "sk-your-openai-api-key":
            raise ValueError(
                "Invalid OpenAI API key. Set OPENAI_API_KEY environment variable."
            )

        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

        logger.info(f"OpenAILanguageModel initialized: model={model}")

    async def complete(self, prompt: str) -> str:
        start_time = time.perf_counter()
        chunks: list[str] = []

        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "system", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=True,
            )

            async for chunk in stream:  # type: ignore[union-attr]
                if chunk.choices and chunk.choices[0].delta.content:
                    chunks.append(chunk.choices[0].delta.content)

        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise GenerationFailure(f"OpenAI completion failed: {e}") from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Completion finished in {latency_ms:.2f}ms ({len(chunks)} chunks)")

        return "".join(chunks).strip()
