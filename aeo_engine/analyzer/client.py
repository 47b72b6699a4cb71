"""
Claude API Client

Text-completion provider backed by the Anthropic API, with token tracking,
retry logic and cost estimation.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from dataclasses import dataclass

import anthropic

from aeo_engine.errors import ProviderCallFailed, ProviderUnavailable
from aeo_engine.integrations.base import TextCompletion

logger = logging.getLogger(__name__)


@dataclass
class TokenUsage:
    """Track token usage for cost calculation."""
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def estimated_cost(self) -> float:
        """Estimate cost in dollars based on Claude Sonnet 4 pricing."""
        # Sonnet 4 pricing: $3/1M input, $15/1M output
        input_cost = (self.input_tokens / 1_000_000) * 3.0
        output_cost = (self.output_tokens / 1_000_000) * 15.0
        return input_cost + output_cost


@dataclass
class AnalysisResponse:
    """Response from a Claude call."""
    content: str
    usage: TokenUsage
    model: str
    stop_reason: str
    success: bool = True
    error: Optional[str] = None


class ClaudeClient(TextCompletion):
    """
    Async client for Claude API.

    Usage:
        client = ClaudeClient(api_key="sk-ant-...")
        if client.is_available():
            text = await client.complete("What are the top 5 HVAC companies in Charleston?")
    """

    name = "anthropic"

    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    MAX_TOKENS = 2000
    TEMPERATURE = 0.3

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 2,
    ):
        """
        Initialize Claude client.

        Args:
            api_key: Anthropic API key. Without one the client reports unavailable.
            model: Model to use (defaults to Sonnet 4)
            timeout: Per-call timeout in seconds
            max_retries: Attempts made by complete() before giving up
        """
        self.api_key = api_key
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout
        self.max_retries = max_retries

        self.async_client = (
            anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)
            if api_key else None
        )

        # Track cumulative usage
        self.total_usage = TokenUsage()
        self.call_count = 0

    def is_available(self) -> bool:
        return self.async_client is not None

    async def analyze(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = MAX_TOKENS,
        temperature: float = TEMPERATURE,
    ) -> AnalysisResponse:
        """
        Send a prompt to Claude.

        Returns:
            AnalysisResponse; success=False on API errors and timeouts
        """
        if not self.is_available():
            raise ProviderUnavailable(self.name, "ANTHROPIC_API_KEY not provided")

        try:
            kwargs = {
                "model": self.model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "messages": [{"role": "user", "content": prompt}],
            }
            if system:
                kwargs["system"] = system

            response = await asyncio.wait_for(
                self.async_client.messages.create(**kwargs),
                timeout=self.timeout,
            )

            content = ""
            for block in response.content:
                if hasattr(block, "text"):
                    content += block.text

            usage = TokenUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            )
            self.total_usage.input_tokens += usage.input_tokens
            self.total_usage.output_tokens += usage.output_tokens
            self.call_count += 1

            logger.info(
                f"Claude call: {usage.input_tokens} in, {usage.output_tokens} out, "
                f"${usage.estimated_cost:.4f}"
            )

            return AnalysisResponse(
                content=content,
                usage=usage,
                model=self.model,
                stop_reason=response.stop_reason,
            )

        except asyncio.TimeoutError:
            logger.warning(f"Claude call timed out after {self.timeout}s")
            error = f"Timed out after {self.timeout}s"
        except anthropic.APIError as e:
            logger.error(f"Claude API error: {e}")
            error = str(e)

        return AnalysisResponse(
            content="",
            usage=TokenUsage(),
            model=self.model,
            stop_reason="error",
            success=False,
            error=error,
        )

    async def analyze_with_retry(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_retries: Optional[int] = None,
        **kwargs,
    ) -> AnalysisResponse:
        """
        Analyze with retry logic for transient failures.

        Args:
            prompt: User prompt
            system: System prompt
            max_retries: Maximum attempts (defaults to the client setting)
            **kwargs: Additional arguments for analyze()
        """
        attempts = max_retries or self.max_retries
        last_error = None

        for attempt in range(attempts):
            response = await self.analyze(prompt, system, **kwargs)

            if response.success:
                return response

            last_error = response.error
            if attempt + 1 < attempts:
                wait_time = 2 ** attempt  # Exponential backoff
                logger.warning(
                    f"Claude call failed (attempt {attempt + 1}/{attempts}), "
                    f"retrying in {wait_time}s: {response.error}"
                )
                await asyncio.sleep(wait_time)

        return AnalysisResponse(
            content="",
            usage=TokenUsage(),
            model=self.model,
            stop_reason="max_retries",
            success=False,
            error=f"Max retries exceeded. Last error: {last_error}",
        )

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = MAX_TOKENS,
    ) -> str:
        response = await self.analyze_with_retry(prompt, system=system, max_tokens=max_tokens)
        if not response.success:
            raise ProviderCallFailed(response.error or "Claude call failed", provider=self.name)
        return response.content

    def get_usage_summary(self) -> Dict[str, Any]:
        """Get summary of all API usage."""
        return {
            "total_calls": self.call_count,
            "input_tokens": self.total_usage.input_tokens,
            "output_tokens": self.total_usage.output_tokens,
            "total_tokens": self.total_usage.total_tokens,
            "estimated_cost": self.total_usage.estimated_cost,
        }

    async def close(self):
        if self.async_client is not None:
            await self.async_client.close()
