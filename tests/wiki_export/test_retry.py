import errno
import unittest
from unittest.mock import AsyncMock, call, patch

from aiohttp import ServerDisconnectedError

from src.wiki_export.domain.models import FetchOutcome
from src.wiki_export.infrastructure.retry import RetryPolicy, is_transient


class ScriptedRequest:
    def __init__(self, outcomes):
        self._outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self) -> FetchOutcome:
        self.calls += 1
        return self._outcomes.pop(0)


class IsTransientTests(unittest.TestCase):
    def test_rate_limit_and_unavailable_statuses_are_transient(self):
        self.assertTrue(is_transient(FetchOutcome(status=429, body="")))
        self.assertTrue(is_transient(FetchOutcome(status=503, body="")))

    def test_other_statuses_are_terminal(self):
        for status in (200, 401, 404, 500, 502):
            self.assertFalse(is_transient(FetchOutcome(status=status, body="")), status)

    def test_refused_and_reset_connections_are_transient(self):
        self.assertTrue(is_transient(FetchOutcome(error=ConnectionRefusedError())))
        self.assertTrue(is_transient(FetchOutcome(error=ConnectionResetError())))
        self.assertTrue(is_transient(FetchOutcome(error=OSError(errno.ECONNRESET, "reset"))))
        self.assertTrue(is_transient(FetchOutcome(error=ServerDisconnectedError())))

    def test_other_errors_are_terminal(self):
        self.assertFalse(is_transient(FetchOutcome(error=TimeoutError())))
        self.assertFalse(is_transient(FetchOutcome(error=ValueError("bad"))))


class RetryPolicyTests(unittest.IsolatedAsyncioTestCase):
    async def test_success_passes_through_without_retry(self):
        request = ScriptedRequest([FetchOutcome(status=200, body="ok")])
        sleep_mock = AsyncMock()
        with patch("src.wiki_export.infrastructure.retry.asyncio.sleep", new=sleep_mock):
            outcome = await RetryPolicy(max_retries=3, base_delay=5).run(request)

        self.assertEqual(outcome.status, 200)
        self.assertEqual(request.calls, 1)
        sleep_mock.assert_not_awaited()

    async def test_retries_transient_failures_with_exponential_backoff(self):
        request = ScriptedRequest(
            [
                FetchOutcome(error=ConnectionRefusedError()),
                FetchOutcome(status=429, body="slow down"),
                FetchOutcome(status=503, body="unavailable"),
                FetchOutcome(status=200, body="ok"),
            ]
        )
        sleep_mock = AsyncMock()
        with patch("src.wiki_export.infrastructure.retry.asyncio.sleep", new=sleep_mock):
            outcome = await RetryPolicy(max_retries=5, base_delay=5).run(request)

        self.assertEqual(outcome, FetchOutcome(status=200, body="ok"))
        self.assertEqual(request.calls, 4)
        self.assertEqual(sleep_mock.await_args_list, [call(5), call(10), call(20)])

    async def test_exhausted_retries_return_last_outcome(self):
        failures = [FetchOutcome(status=503, body=f"attempt {i}") for i in range(4)]
        request = ScriptedRequest(failures)
        sleep_mock = AsyncMock()
        with patch("src.wiki_export.infrastructure.retry.asyncio.sleep", new=sleep_mock):
            outcome = await RetryPolicy(max_retries=3, base_delay=1).run(request)

        self.assertEqual(outcome.body, "attempt 3")
        self.assertEqual(request.calls, 4)
        self.assertEqual(sleep_mock.await_args_list, [call(1), call(2), call(4)])

    async def test_authentication_failure_is_not_retried(self):
        request = ScriptedRequest([FetchOutcome(status=401, body="denied")])
        sleep_mock = AsyncMock()
        with patch("src.wiki_export.infrastructure.retry.asyncio.sleep", new=sleep_mock):
            outcome = await RetryPolicy().run(request)

        self.assertEqual(outcome.status, 401)
        self.assertEqual(request.calls, 1)
        sleep_mock.assert_not_awaited()

    async def test_zero_retries_returns_first_transient_outcome(self):
        request = ScriptedRequest([FetchOutcome(error=ConnectionResetError())])
        with patch("src.wiki_export.infrastructure.retry.asyncio.sleep", new=AsyncMock()):
            outcome = await RetryPolicy(max_retries=0).run(request)

        self.assertIsInstance(outcome.error, ConnectionResetError)
        self.assertEqual(request.calls, 1)


if __name__ == "__main__":
    unittest.main()
