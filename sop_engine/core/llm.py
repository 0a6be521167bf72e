"""Generative-text client used by the SOP chains.

Chains depend on the small ``TextGenerator`` protocol (prompt in, text out) so
tests and alternative providers can be injected. The default implementation
wraps Anthropic's async Messages API.
"""

import logging
import re
import time
from typing import Protocol

from sop_engine.core.config import get_settings
from sop_engine.core.exceptions import GenerationFailure
from sop_engine.core.logging import get_logger, log_with_context

logger = get_logger(__name__)


class TextGenerator(Protocol):
    """Anything that turns a prompt into response text."""

    async def generate(self, prompt: str) -> str: ...


class AnthropicTextGenerator:
    """TextGenerator backed by ``AsyncAnthropic.messages.create``."""

    def __init__(
        self,
        model: str,
        max_tokens: int = 4000,
        temperature: float = 0.3,
        system: str | None = None,
        api_key: str | None = None,
        chain: str = "sop",
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.system = system
        self.api_key = api_key
        self.chain = chain

    async def generate(self, prompt: str) -> str:
        """Send one user message and return the concatenated text blocks.

        Raises:
            GenerationFailure: If no API key is configured
            anthropic.APIError: Propagated unchanged from the SDK
        """
        from anthropic import AsyncAnthropic

        api_key = self.api_key or get_settings().ANTHROPIC_API_KEY
        if not api_key:
            raise GenerationFailure(
                f"No Anthropic API key configured for {self.chain}", producer=self.chain
            )

        client = AsyncAnthropic(api_key=api_key)
        kwargs = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.system:
            kwargs["system"] = self.system

        start = time.time()
        response = await client.messages.create(**kwargs)
        duration_ms = int((time.time() - start) * 1000)

        usage = getattr(response, "usage", None)
        log_with_context(
            logger,
            logging.INFO,
            "LLM call completed",
            chain=self.chain,
            model=self.model,
            tokens_input=getattr(usage, "input_tokens", 0),
            tokens_output=getattr(usage, "output_tokens", 0),
            duration_ms=duration_ms,
        )

        parts = [getattr(block, "text", "") for block in (response.content or [])]
        return "".join(p for p in parts if isinstance(p, str))


def strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```mermaid ... ```, ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    fence_match = re.search(r"```[\w-]*[ \t]*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    # Unterminated fence
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def get_text_generator(
    model: str,
    max_tokens: int,
    temperature: float,
    chain: str,
    system: str | None = None,
) -> TextGenerator:
    """Build the default generator for a chain."""
    return AnthropicTextGenerator(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        system=system,
        chain=chain,
    )
