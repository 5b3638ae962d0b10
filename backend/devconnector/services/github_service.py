"""
DevConnector Backend: GitHub Lookup Service
============================================

What:  Lists a GitHub user's latest public repositories for profile pages.
How:   httpx.AsyncClient against the GitHub REST API, tenacity retries for
       transient failures, and a circuit breaker so an outage does not tie
       up every request that shows a profile.
Who:   GET /api/profile/github/{username}; the health check reads the
       breaker state.

Failure Mapping:
    4xx from GitHub (unknown user, bad name)     → NotFoundError, no retry
    transport error / timeout / 5xx              → retried with backoff
    retries exhausted                            → ExternalServiceError (503)
    breaker OPEN                                 → CircuitBreakerOpenError (503)
"""

import logging
import re
import time
import uuid
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from devconnector.config import Settings
from devconnector.exceptions import CircuitBreakerOpenError, ExternalServiceError, NotFoundError

logger = logging.getLogger(__name__)

# GitHub logins: alphanumerics and single hyphens, at most 39 characters
GITHUB_USERNAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,38})$")

REPO_LIMIT = 5
REPO_SORT = "created:asc"
USER_AGENT = "devconnector-backend"


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    State Machine:
        CLOSED     calls pass; `failure_threshold` consecutive failures → OPEN
        OPEN       calls are rejected until `recovery_timeout` has elapsed,
                   then the next call moves the breaker to HALF_OPEN
        HALF_OPEN  one trial call; success → CLOSED, failure → OPEN

    Single-process only: state lives in this object, one per worker.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at: Optional[float] = None

    def before_call(self) -> None:
        """Raises CircuitBreakerOpenError while OPEN and still cooling down."""
        if self.state != self.OPEN:
            return
        elapsed = time.monotonic() - (self.opened_at or 0.0)
        if elapsed < self.recovery_timeout:
            raise CircuitBreakerOpenError(recovery_time=max(1, int(self.recovery_timeout - elapsed)))
        logger.info("GitHub circuit breaker HALF_OPEN after %.1fs", elapsed)
        self.state = self.HALF_OPEN

    def record_success(self) -> None:
        if self.state != self.CLOSED:
            logger.info("GitHub circuit breaker CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at = None

    def record_failure(self) -> None:
        self.failure_count += 1
        if self.state == self.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self.state != self.OPEN:
                logger.warning(
                    "GitHub circuit breaker OPEN after %d consecutive failures",
                    self.failure_count,
                )
            self.state = self.OPEN
            self.opened_at = time.monotonic()


class _TransientGitHubError(Exception):
    """A failure worth retrying: transport problem or 5xx answer."""


class GitHubService:
    """
    Repository lookups with retry and circuit breaking.

    Args:
        settings:   API URL, token, timeout, retry and breaker settings.
        transport:  Optional httpx transport (tests pass `httpx.MockTransport`).
        retry_wait: Optional tenacity wait strategy replacing the jittered
                    exponential backoff.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        headers = {"User-Agent": USER_AGENT, "Accept": "application/vnd.github+json"}
        if settings.github_token:
            headers["Authorization"] = f"token {settings.github_token}"

        self._client = httpx.AsyncClient(
            base_url=settings.github_api_url,
            headers=headers,
            timeout=settings.github_timeout,
            transport=transport,
        )
        self.max_attempts = settings.retry_max_attempts
        self.retry_wait = retry_wait or wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        )
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    @property
    def health_state(self) -> str:
        """Breaker state for the health endpoint: closed, open or half_open."""
        return self.circuit_breaker.state

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_repos(self, username: str) -> List[Dict[str, Any]]:
        """
        Up to five of `username`'s public repositories, oldest first.

        Raises:
            NotFoundError:           GitHub does not know the user (or the name is invalid)
            ExternalServiceError:    GitHub kept failing after all retries
            CircuitBreakerOpenError: lookups are suspended after repeated failures
        """
        if not GITHUB_USERNAME_RE.match(username or ""):
            raise NotFoundError(
                resource="github profile",
                message="No GitHub profile found",
                context={"username": username},
            )

        self.circuit_breaker.before_call()
        lookup_id = str(uuid.uuid4())[:8]

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(_TransientGitHubError),
                stop=stop_after_attempt(self.max_attempts),
                wait=self.retry_wait,
                before_sleep=before_sleep_log(logger, logging.WARNING),
            ):
                with attempt:
                    repos = await self._fetch(username, lookup_id)
        except RetryError as e:
            self.circuit_breaker.record_failure()
            cause = e.last_attempt.exception() if e.last_attempt else None
            logger.error("[%s] GitHub lookup for %s failed after retries: %s", lookup_id, username, cause)
            raise ExternalServiceError(
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"lookup_id": lookup_id, "attempts": self.max_attempts},
            )

        # Any definitive answer (including a 4xx) means GitHub is reachable
        self.circuit_breaker.record_success()
        if repos is None:
            raise NotFoundError(
                resource="github profile",
                message="No GitHub profile found",
                context={"username": username},
            )
        return repos

    async def _fetch(self, username: str, lookup_id: str) -> Optional[List[Dict[str, Any]]]:
        """One HTTP call. Returns None for a 4xx answer."""
        start_time = time.monotonic()
        try:
            response = await self._client.get(
                f"/users/{username}/repos",
                params={"per_page": REPO_LIMIT, "sort": REPO_SORT},
            )
        except httpx.TransportError as e:
            logger.warning("[%s] GitHub transport error: %s", lookup_id, type(e).__name__)
            raise _TransientGitHubError(str(e)) from e

        duration_ms = (time.monotonic() - start_time) * 1000
        logger.debug("[%s] GitHub answered %d in %.0fms", lookup_id, response.status_code, duration_ms)

        if response.status_code >= 500:
            raise _TransientGitHubError(f"GitHub returned {response.status_code}")
        if response.status_code >= 400:
            logger.info("[%s] GitHub returned %d for %s", lookup_id, response.status_code, username)
            return None
        return response.json()
