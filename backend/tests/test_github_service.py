"""
DevConnector Backend: GitHub Service Unit Tests (Mocked Transport)
===================================================================

What:  CircuitBreaker state machine and GitHubService error mapping.
How:   httpx.MockTransport stands in for api.github.com; retries use
       tenacity's wait_none so nothing sleeps.

What we test:
    ✅ Request shape: path, per_page/sort query, headers
    ✅ 4xx → NotFoundError without retrying
    ✅ 5xx and transport errors are retried, then ExternalServiceError
    ✅ Breaker opens after repeated failures and rejects without calling out
    ❌ Real GitHub calls
"""

import time

import httpx
import pytest
from tenacity import wait_none

from devconnector.exceptions import CircuitBreakerOpenError, ExternalServiceError, NotFoundError
from devconnector.services.github_service import CircuitBreaker, GitHubService

REPOS = [
    {"id": 1, "name": "first-repo", "html_url": "https://github.com/ann/first-repo"},
    {"id": 2, "name": "second-repo", "html_url": "https://github.com/ann/second-repo"},
]


class RecordingHandler:
    """Replays `responses` in order (last one repeats) and records every request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.responses[min(len(self.requests), len(self.responses)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_service(settings, handler) -> GitHubService:
    return GitHubService(settings, transport=httpx.MockTransport(handler), retry_wait=wait_none())


class TestCircuitBreaker:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == CircuitBreaker.CLOSED
        cb.before_call()

    def test_opens_at_threshold(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        for _ in range(2):
            cb.record_failure()
        assert cb.state == CircuitBreaker.CLOSED

        cb.record_failure()
        assert cb.state == CircuitBreaker.OPEN
        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.before_call()
        assert 1 <= exc_info.value.recovery_time <= 60

    def test_success_resets(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()
        cb.record_success()
        assert cb.failure_count == 0
        assert cb.state == CircuitBreaker.CLOSED

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        assert cb.state == CircuitBreaker.OPEN

        time.sleep(0.01)
        cb.before_call()
        assert cb.state == CircuitBreaker.HALF_OPEN

    def test_failed_trial_reopens(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=0)
        cb.state = CircuitBreaker.HALF_OPEN
        cb.record_failure()
        assert cb.state == CircuitBreaker.OPEN


class TestGetRepos:

    @pytest.mark.asyncio
    async def test_returns_repos_and_sends_expected_request(self, test_settings):
        settings = test_settings.model_copy(update={"github_token": "gh-token"})
        handler = RecordingHandler(httpx.Response(200, json=REPOS))
        service = make_service(settings, handler)

        repos = await service.get_repos("ann")

        assert repos == REPOS
        request = handler.requests[0]
        assert request.url.host == "api.github.test"
        assert request.url.path == "/users/ann/repos"
        assert request.url.params["per_page"] == "5"
        assert request.url.params["sort"] == "created:asc"
        assert request.headers["User-Agent"] == "devconnector-backend"
        assert request.headers["Authorization"] == "token gh-token"
        await service.aclose()

    @pytest.mark.asyncio
    async def test_no_authorization_header_without_token(self, test_settings):
        handler = RecordingHandler(httpx.Response(200, json=[]))
        service = make_service(test_settings, handler)

        assert await service.get_repos("ann") == []
        assert "Authorization" not in handler.requests[0].headers

    @pytest.mark.asyncio
    async def test_unknown_user_is_not_found_without_retry(self, test_settings):
        handler = RecordingHandler(httpx.Response(404, json={"message": "Not Found"}))
        service = make_service(test_settings, handler)

        with pytest.raises(NotFoundError) as exc_info:
            await service.get_repos("nobody-here")

        assert exc_info.value.message == "No GitHub profile found"
        assert len(handler.requests) == 1
        assert service.health_state == CircuitBreaker.CLOSED

    @pytest.mark.asyncio
    async def test_invalid_username_never_calls_out(self, test_settings):
        handler = RecordingHandler(httpx.Response(200, json=REPOS))
        service = make_service(test_settings, handler)

        with pytest.raises(NotFoundError):
            await service.get_repos("../orgs/x")
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_server_error_retried_then_recovers(self, test_settings):
        handler = RecordingHandler(httpx.Response(502), httpx.Response(200, json=REPOS))
        service = make_service(test_settings, handler)

        assert await service.get_repos("ann") == REPOS
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, test_settings):
        handler = RecordingHandler(httpx.ConnectError("connection refused"))
        service = make_service(test_settings, handler)

        with pytest.raises(ExternalServiceError):
            await service.get_repos("ann")

        assert len(handler.requests) == test_settings.retry_max_attempts
        assert service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_breaker_opens_and_short_circuits(self, test_settings):
        handler = RecordingHandler(httpx.Response(503))
        service = make_service(test_settings, handler)

        for _ in range(test_settings.cb_failure_threshold):
            with pytest.raises(ExternalServiceError):
                await service.get_repos("ann")
        calls = len(handler.requests)

        with pytest.raises(CircuitBreakerOpenError):
            await service.get_repos("ann")
        assert len(handler.requests) == calls
        assert service.health_state == CircuitBreaker.OPEN
