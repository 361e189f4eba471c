"""
Collector forwarder for Global Sentinel.

This module submits collected candidates to the core's ingest route. Every
item has its own bounded timeout and a bounded number of attempts; a
failing item is logged and reported, never raised, and never blocks the
items after it.
"""

import asyncio
import random
from typing import Any, Dict, Iterable, List, Optional

import aiohttp

from sentinel.core.config import settings
from sentinel.core.errors import ForwardingError
from sentinel.core.logging import logger
from sentinel.schemas.threat import ForwardOutcome, RawCandidate

MAX_BACKOFF_SECONDS = 30.0


class CollectorForwarder:
    """
    Forwards candidates from a collector process to the core.
    """

    def __init__(
        self,
        core_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        delay: Optional[float] = None,
        backoff_base: float = 1.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the forwarder.

        Args:
            core_url: Base URL of the core API.
            api_key: API key sent in the X-API-Key header.
            timeout: Seconds allowed per forwarding attempt.
            max_retries: Maximum attempts per candidate.
            delay: Pause between candidates in a batch.
            backoff_base: Base of the exponential backoff between attempts.
            session: Optional aiohttp session to use.
        """
        self.core_url = (core_url or settings.CORE_BACKEND_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.API_KEY
        self.timeout = timeout if timeout is not None else settings.FORWARD_TIMEOUT
        self.max_retries = max(1, max_retries if max_retries is not None else settings.FORWARD_MAX_RETRIES)
        self.delay = delay if delay is not None else settings.FORWARD_DELAY
        self.backoff_base = backoff_base
        self.session = session

    @property
    def ingest_url(self) -> str:
        return f"{self.core_url}/api/ingest"

    async def ensure_session(self):
        """Ensure an aiohttp session exists."""
        if self.session is None:
            self.session = aiohttp.ClientSession()

    async def close(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    def _backoff(self, attempt: int, retry_after: Optional[str] = None) -> float:
        if retry_after:
            try:
                return min(float(retry_after), MAX_BACKOFF_SECONDS)
            except ValueError:
                pass
        base = self.backoff_base * (2 ** (attempt - 1))
        return min(base + random.uniform(0, self.backoff_base), MAX_BACKOFF_SECONDS)

    async def _post(self, candidate: RawCandidate) -> Dict[str, Any]:
        """
        Make one forwarding attempt.

        Returns:
            The core's JSON response on success.

        Raises:
            ForwardingError: With ``retryable`` and ``retry_after`` details.
        """
        headers = {"Content-Type": "application/json", "X-API-Key": self.api_key}
        try:
            async with self.session.post(
                self.ingest_url,
                json=dict(candidate),
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                try:
                    body = await response.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError):
                    body = None

                if response.status == 200:
                    # Anything but an object carries no threat id
                    return body if isinstance(body, dict) else {}

                error = (body or {}).get("error") if isinstance(body, dict) else None
                message = (
                    error.get("message") if isinstance(error, dict) else None
                ) or f"Core responded with status {response.status}"
                retryable = response.status == 429 or response.status >= 500
                raise ForwardingError(
                    message,
                    reason="rejected" if not retryable else "unavailable",
                    status=response.status,
                    retryable=retryable,
                    retry_after=response.headers.get("Retry-After"),
                    core_error=error,
                )
        except asyncio.TimeoutError as e:
            raise ForwardingError(
                f"Timed out after {self.timeout}s", reason="timeout", retryable=True
            ) from e
        except aiohttp.ClientError as e:
            raise ForwardingError(
                f"Core unreachable: {e}", reason="unreachable", retryable=True
            ) from e

    async def forward(self, candidate: RawCandidate) -> ForwardOutcome:
        """
        Forward one candidate with bounded retries.

        Args:
            candidate: Candidate to submit.

        Returns:
            Outcome of the forwarding, successful or not.
        """
        await self.ensure_session()
        title = str(candidate.get("title", "")) if hasattr(candidate, "get") else None

        last_error: Optional[ForwardingError] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                body = await self._post(candidate)
            except ForwardingError as e:
                last_error = e
                if not e.details.get("retryable") or attempt == self.max_retries:
                    break
                wait = self._backoff(attempt, e.details.get("retry_after"))
                logger.warning(
                    f"Forwarding attempt {attempt}/{self.max_retries} failed for '{title}': "
                    f"{e.message}; retrying in {wait:.1f}s"
                )
                await asyncio.sleep(wait)
                continue

            logger.info(f"Forwarded threat: {title}")
            return ForwardOutcome(
                title=title, success=True, threat_id=body.get("threatId"), attempts=attempt
            )

        logger.error(f"Failed to forward threat '{title}' after {attempt} attempt(s): {last_error.message}")
        return ForwardOutcome(title=title, success=False, attempts=attempt, error=last_error.to_dict())

    async def forward_batch(self, candidates: Iterable[RawCandidate]) -> List[ForwardOutcome]:
        """
        Forward candidates one after another.

        Args:
            candidates: Candidates to submit.

        Returns:
            One outcome per candidate, in input order.
        """
        items = list(candidates)
        logger.info(f"Starting batch forward of {len(items)} threats")

        results = []
        for index, candidate in enumerate(items):
            results.append(await self.forward(candidate))
            if self.delay and index < len(items) - 1:
                await asyncio.sleep(self.delay)

        successful = sum(1 for result in results if result.success)
        logger.info(f"Forward complete: {successful} success, {len(results) - successful} failed")
        return results
