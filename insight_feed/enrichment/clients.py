"""Analysis clients for OpenAI and Anthropic.

Each client returns the raw payload text and leaves validation to the
enricher. SDK imports are deferred to first use so that the package
imports cleanly when a provider SDK or API key is not configured.
"""

import json
from typing import Any, Protocol, runtime_checkable

import structlog

from insight_feed.enrichment.circuit_breaker import CircuitBreaker
from insight_feed.enrichment.config import EnrichmentConfig
from insight_feed.enrichment.mock_client import MockAnalysisClient
from insight_feed.enrichment.prompts import (
    ANALYSIS_PROMPT,
    ANALYSIS_TOOL_NAME,
    SYSTEM_PROMPT,
)
from insight_feed.enrichment.schemas import ANALYSIS_JSON_SCHEMA

logger = structlog.get_logger(__name__)


@runtime_checkable
class AnalysisClient(Protocol):
    """External analysis capability.

    analyze() returns the raw structured payload (expected to be JSON) or
    None when the provider produced nothing, and raises on transport or
    API failure.
    """

    name: str

    @property
    def is_configured(self) -> bool: ...

    async def analyze(self, content: str) -> str | None: ...

    async def close(self) -> None: ...


def _breaker_for(config: EnrichmentConfig, name: str) -> CircuitBreaker:
    return CircuitBreaker(
        failure_threshold=config.circuit_failure_threshold,
        recovery_timeout=config.circuit_recovery_timeout,
        name=name,
    )


class OpenAIAnalysisClient:
    """Analysis through the OpenAI chat completions API in JSON mode."""

    name = "openai"

    def __init__(self, config: EnrichmentConfig) -> None:
        self._config = config
        self._client: Any = None
        self.breaker = _breaker_for(config, self.name)

    @property
    def is_configured(self) -> bool:
        key = self._config.openai_api_key
        return key is not None and bool(key.get_secret_value())

    def _get_client(self) -> Any:
        """Lazy-initialize the OpenAI async client."""
        if self._client is None:
            import openai

            api_key = self._config.openai_api_key
            self._client = openai.AsyncOpenAI(
                api_key=api_key.get_secret_value() if api_key else None,
                timeout=self._config.llm_timeout,
            )
        return self._client

    async def analyze(self, content: str) -> str | None:
        async def _call() -> str | None:
            client = self._get_client()
            response = await client.chat.completions.create(
                model=self._config.openai_model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": ANALYSIS_PROMPT.format(content=content)},
                ],
                temperature=0,
                max_tokens=self._config.max_tokens,
                response_format={"type": "json_object"},
            )
            if not response.choices:
                return None
            return response.choices[0].message.content

        return await self.breaker.call(_call)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


class AnthropicAnalysisClient:
    """Analysis through the Anthropic messages API with forced tool use."""

    name = "anthropic"

    def __init__(self, config: EnrichmentConfig) -> None:
        self._config = config
        self._client: Any = None
        self.breaker = _breaker_for(config, self.name)
        self._tool = {
            "name": ANALYSIS_TOOL_NAME,
            "description": "Submit the structured analysis of the content",
            "input_schema": ANALYSIS_JSON_SCHEMA,
        }

    @property
    def is_configured(self) -> bool:
        key = self._config.anthropic_api_key
        return key is not None and bool(key.get_secret_value())

    def _get_client(self) -> Any:
        """Lazy-initialize the Anthropic async client."""
        if self._client is None:
            import anthropic

            api_key = self._config.anthropic_api_key
            self._client = anthropic.AsyncAnthropic(
                api_key=api_key.get_secret_value() if api_key else None,
                timeout=self._config.llm_timeout,
            )
        return self._client

    async def analyze(self, content: str) -> str | None:
        async def _call() -> str | None:
            client = self._get_client()
            response = await client.messages.create(
                model=self._config.anthropic_model,
                max_tokens=self._config.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": ANALYSIS_PROMPT.format(content=content)},
                ],
                tools=[self._tool],
                tool_choice={"type": "tool", "name": ANALYSIS_TOOL_NAME},
            )
            for block in response.content:
                if block.type == "tool_use" and block.name == ANALYSIS_TOOL_NAME:
                    return json.dumps(block.input)

            # Fall back to any text the model produced instead of calling the tool
            text = "".join(
                block.text for block in response.content if block.type == "text"
            )
            logger.warning("Anthropic response contained no tool_use block")
            return text or None

        return await self.breaker.call(_call)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


def create_analysis_client(config: EnrichmentConfig | None = None) -> AnalysisClient:
    """Build the analysis client selected by config.provider."""
    config = config or EnrichmentConfig()

    if config.provider == "openai":
        return OpenAIAnalysisClient(config)
    if config.provider == "anthropic":
        return AnthropicAnalysisClient(config)

    return MockAnalysisClient(malformed_markers=config.mock_malformed_markers)
