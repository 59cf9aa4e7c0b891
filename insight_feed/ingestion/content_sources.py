"""
Content retrieval backends for the fetcher.

A ContentSource turns a source location into raw text, raising on
failure. The fetcher owns timeouts and error containment, so
implementations are free to raise whatever the underlying transport
raises.

Implementations:
- SimulatedContentSource: latency plus canned content by known domain
- HTTPContentSource: real retrieval (httpx + feedparser + BeautifulSoup)
- StaticContentSource: fixed location -> text/exception mapping
"""

import asyncio
import html
import random
import re
from typing import Protocol, runtime_checkable

import feedparser
import structlog
from bs4 import BeautifulSoup

from insight_feed.ingestion.config import IngestionConfig
from insight_feed.ingestion.http_client import HTTPClient, RetryConfig

logger = structlog.get_logger(__name__)

# Checked in order; first domain fragment contained in the location wins.
SIMULATED_CONTENT: tuple[tuple[str, str], ...] = (
    (
        "sneakernews",
        "The iconic Nike Air Jordan 1 'UNC Toe' is releasing soon. "
        "This classic sneaker has a fresh colorway.",
    ),
    ("hypebeast", "A review of the latest New Balance 990v6."),
    ("complex.com", "ComplexCon announces its return with major brand partners."),
)
GENERIC_CONTENT = "Generic news item that will likely be filtered."


class FetchError(Exception):
    """Raised by a content source when retrieval fails."""


@runtime_checkable
class ContentSource(Protocol):
    """Anything that can turn a location into raw text."""

    async def fetch(self, location: str) -> str: ...


class SimulatedContentSource:
    """
    Stand-in for real retrieval with realistic latency.

    Sleeps base_delay + uniform(0, jitter) seconds, then returns canned
    content chosen by the domain in the location. With a non-zero
    failure_rate, some fetches raise FetchError instead.

    Pass a seeded random.Random for reproducible latency and failures.
    """

    def __init__(
        self,
        base_delay: float = 0.5,
        jitter: float = 0.5,
        failure_rate: float = 0.0,
        rng: random.Random | None = None,
    ):
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")
        self.base_delay = base_delay
        self.jitter = jitter
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()

    @classmethod
    def from_config(
        cls, config: IngestionConfig, rng: random.Random | None = None
    ) -> "SimulatedContentSource":
        return cls(
            base_delay=config.simulated_base_delay,
            jitter=config.simulated_jitter,
            failure_rate=config.simulated_failure_rate,
            rng=rng,
        )

    async def fetch(self, location: str) -> str:
        delay = self.base_delay + self._rng.random() * self.jitter
        await asyncio.sleep(delay)

        if self.failure_rate and self._rng.random() < self.failure_rate:
            raise FetchError(f"Simulated network error while fetching {location}")

        return self.content_for(location)

    @staticmethod
    def content_for(location: str) -> str:
        """Return the canned text for a location."""
        lowered = location.lower()
        for fragment, content in SIMULATED_CONTENT:
            if fragment in lowered:
                return content
        return GENERIC_CONTENT


class StaticContentSource:
    """
    Deterministic content source backed by a dict.

    Values may be strings (returned) or exceptions (raised). Unknown
    locations raise FetchError unless a default is given.
    """

    def __init__(
        self,
        responses: dict[str, str | BaseException],
        default: str | None = None,
        delay: float = 0.0,
    ):
        self._responses = dict(responses)
        self._default = default
        self._delay = delay
        self.calls: list[str] = []

    async def fetch(self, location: str) -> str:
        self.calls.append(location)
        if self._delay:
            await asyncio.sleep(self._delay)

        value = self._responses.get(location, self._default)
        if value is None:
            raise FetchError(f"No content configured for {location}")
        if isinstance(value, BaseException):
            raise value
        return value


class HTTPContentSource:
    """
    Retrieves content over HTTP.

    Feed documents (RSS/Atom) are reduced to their entry titles and
    summaries; anything else is treated as HTML and stripped to text.
    Output is whitespace-normalized and truncated to max_content_chars.
    """

    def __init__(self, config: IngestionConfig | None = None):
        self.config = config or IngestionConfig()
        self._retry_config = RetryConfig(
            max_retries=self.config.max_http_retries,
            max_backoff_seconds=self.config.max_backoff_seconds,
        )

    async def fetch(self, location: str) -> str:
        async with HTTPClient(
            retry_config=self._retry_config,
            timeout=self.config.http_timeout_seconds,
            headers={"User-Agent": self.config.user_agent},
        ) as client:
            response = await client.get(location)

        text = self.extract_text(response.text)
        if not text:
            raise FetchError(f"No readable content at {location}")

        logger.debug("Fetched content", location=location, chars=len(text))
        return self._truncate(text)

    def extract_text(self, body: str | bytes) -> str:
        """Pull readable text out of a feed or HTML document."""
        # Bytes keep feedparser from treating short strings as paths or URLs.
        raw = body.encode("utf-8") if isinstance(body, str) else body
        feed = feedparser.parse(raw)
        if feed.entries:
            parts = []
            for entry in feed.entries[: self.config.max_entries_per_feed]:
                title = entry.get("title", "")
                summary = _clean_html(entry.get("summary", ""))
                parts.append(f"{title}: {summary}" if title and summary else title or summary)
            return _normalize_whitespace(" ".join(p for p in parts if p))

        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        return _clean_html(body)

    def _truncate(self, text: str) -> str:
        limit = self.config.max_content_chars
        if len(text) <= limit:
            return text
        return text[:limit].rstrip()


def _clean_html(content: str) -> str:
    if not content:
        return ""

    soup = BeautifulSoup(content, "html.parser")
    for element in soup(["script", "style", "nav", "footer", "header"]):
        element.decompose()

    text = html.unescape(soup.get_text(separator=" "))
    return _normalize_whitespace(text)


def _normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def create_content_source(
    live: bool = False, config: IngestionConfig | None = None
) -> ContentSource:
    """Return the HTTP source when live, the simulated one otherwise."""
    config = config or IngestionConfig()
    if live:
        return HTTPContentSource(config)
    return SimulatedContentSource.from_config(config)
