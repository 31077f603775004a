"""
Trend summarizer backed by Anthropic Claude.

Given the texts of a trend's member signals, produce a short title and a
two-to-three sentence summary describing the underlying change.
"""

import asyncio
import json
import logging
import re
import time
from typing import Any, Dict, Optional, Protocol, Sequence

import httpx

from trend_curator import config
from trend_curator.errors import SummaryGenerationError
from trend_curator.observability.metrics import (
    summary_request_duration,
    summary_requests_total,
)
from trend_curator.types import GeneratedSummary

logger = logging.getLogger(__name__)

MAX_TITLE_CHARS = 50
MAX_SUMMARY_CHARS = 500
FALLBACK_TITLE = "Trend"

SUMMARY_PROMPT = """You are helping identify trends from a collection of signals (observations about change) in a foresight/horizon scanning project.

The following signals have been identified as related. Generate:
1. A short title (1-3 words) that describes what is changing and how it's changing
2. A concise summary (2-3 sentences) that describes the underlying pattern

SIGNALS:
{signals}

REQUIREMENTS FOR TITLE:
- Exactly 1-3 words (prefer 2-3 words)
- Where possible, use words from the original signal descriptions
- Use title case

REQUIREMENTS FOR SUMMARY:
- Exactly 2-3 sentences, maximum 65 words
- Present tense
- Describe the change that is happening, not its implications

Return ONLY a valid JSON object with "title" and "summary" fields, for example:
{{"title": "Subscription Economy Growth", "summary": "Businesses are shifting from ownership to access-based models."}}"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class TrendSummarizer(Protocol):
    """Produces a (title, summary) pair from member signal texts."""

    async def generate(self, texts: Sequence[str]) -> GeneratedSummary:
        """
        Summarize the given signal texts.

        Raises:
            SummaryGenerationError: If no summary could be produced
        """
        ...


def build_prompt(texts: Sequence[str]) -> str:
    signals = "\n".join(f"{i + 1}. {text}" for i, text in enumerate(texts))
    return SUMMARY_PROMPT.format(signals=signals)


def parse_summary_response(text: str) -> GeneratedSummary:
    """
    Extract title and summary from a model reply.

    A JSON object with both fields wins. Otherwise the first non-empty line
    (at most three words) becomes the title and the remaining lines the
    summary.
    """
    text = text.strip()
    match = _JSON_OBJECT.search(text)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            logger.warning(f"Summary reply is not valid JSON: {text[:200]!r}")
        else:
            title = str(parsed.get("title") or "").strip()
            summary = str(parsed.get("summary") or "").strip()
            if title and summary:
                return GeneratedSummary(
                    title=title[:MAX_TITLE_CHARS], summary=summary[:MAX_SUMMARY_CHARS]
                )
            logger.warning("Summary reply missing title or summary, using text fallback")

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    title = " ".join(lines[0].split()[:3]) if lines else ""
    summary = " ".join(lines[1:]).strip() or text
    return GeneratedSummary(
        title=(title or FALLBACK_TITLE)[:MAX_TITLE_CHARS],
        summary=summary[:MAX_SUMMARY_CHARS],
    )


class AnthropicTrendSummarizer:
    """
    Summarizer calling the Anthropic Messages API over httpx.

    Features:
    - Automatic retry with exponential backoff on 429 / 5xx / network errors
    - Prometheus metrics for call counts and latency

    Example:
        ```python
        async with AnthropicTrendSummarizer(api_key="sk-ant-...") as summarizer:
            result = await summarizer.generate(["Signal one", "Signal two"])
        ```
    """

    API_ENDPOINT = "https://api.anthropic.com/v1/messages"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_retries: Optional[int] = None,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the summarizer.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY)
            model: Model name (defaults to SUMMARY_MODEL)
            max_retries: Maximum attempts per call
            timeout: Request timeout in seconds
            client: Pre-built client, mainly for tests

        Raises:
            ValueError: If no API key is available
        """
        self.api_key = api_key or config.ANTHROPIC_API_KEY
        if not self.api_key and client is None:
            raise ValueError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.model = model or config.SUMMARY_MODEL
        self.max_retries = max_retries or config.SUMMARY_MAX_RETRIES
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "Content-Type": "application/json",
            },
        )

        logger.info(f"Initialized AnthropicTrendSummarizer (model={self.model})")

    async def generate(self, texts: Sequence[str]) -> GeneratedSummary:
        if not texts:
            raise SummaryGenerationError("Cannot summarize a trend with no signals")

        start_time = time.time()
        try:
            reply = await self._call_api(build_prompt(texts))
        except SummaryGenerationError:
            summary_requests_total.labels(status="failure").inc()
            raise
        finally:
            summary_request_duration.observe(time.time() - start_time)

        summary_requests_total.labels(status="success").inc()
        return parse_summary_response(reply)

    async def _call_api(self, prompt: str) -> str:
        """Call the Messages API with retry logic and return the reply text."""
        last_error: Optional[Exception] = None
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": 200,
            "temperature": 0.7,
            "messages": [{"role": "user", "content": prompt}],
        }

        for attempt in range(self.max_retries):
            try:
                response = await self._client.post(self.API_ENDPOINT, json=payload)
                response.raise_for_status()
                data = response.json()
                return data["content"][0]["text"]

            except httpx.HTTPStatusError as e:
                last_error = e
                status = e.response.status_code

                if 400 <= status < 500 and status != 429:
                    raise SummaryGenerationError(
                        f"Anthropic API error: {e.response.text}"
                    ) from e

                logger.warning(
                    f"Anthropic API error {status} (attempt {attempt + 1}/{self.max_retries})"
                )

            except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
                last_error = e
                logger.warning(f"Summary request failed (attempt {attempt + 1}): {e}")

            if attempt < self.max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        raise SummaryGenerationError(
            f"Failed to generate summary after {self.max_retries} attempts"
        ) from last_error

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
