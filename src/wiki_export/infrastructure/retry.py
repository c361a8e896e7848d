import asyncio
import errno
from typing import Awaitable, Callable

from aiohttp import ClientConnectorError, ServerDisconnectedError

from src.config.logger_config import logger
from src.wiki_export.domain.models import FetchOutcome
from src.wiki_export.domain.rules import TRANSIENT_STATUS_CODES

RequestFactory = Callable[[], Awaitable[FetchOutcome]]

TRANSIENT_ERRNOS = frozenset({errno.ECONNREFUSED, errno.ECONNRESET})


def is_connection_refused_or_reset(error: BaseException) -> bool:
    if isinstance(error, ClientConnectorError):
        error = error.os_error
    if isinstance(error, (ConnectionRefusedError, ConnectionResetError, ServerDisconnectedError)):
        return True
    return isinstance(error, OSError) and error.errno in TRANSIENT_ERRNOS


def is_transient(outcome: FetchOutcome) -> bool:
    if outcome.error is not None:
        return is_connection_refused_or_reset(outcome.error)
    return outcome.status in TRANSIENT_STATUS_CODES


class RetryPolicy:
    def __init__(self, max_retries: int = 5, base_delay: float = 5.0) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * 2 ** (attempt - 1)

    async def run(self, request: RequestFactory) -> FetchOutcome:
        """Issue ``request`` until it yields a non-transient outcome or retries run out.

        The final outcome is returned untouched either way; status codes are for the
        caller to interpret.
        """
        attempt = 0
        while True:
            outcome = await request()
            if not is_transient(outcome) or attempt >= self.max_retries:
                return outcome
            attempt += 1
            delay = self.delay_for(attempt)
            logger.warning(
                "Connection issue detected ({}). Retrying in {}s (attempt {}/{})...",
                outcome.error or f"HTTP {outcome.status}",
                delay,
                attempt,
                self.max_retries,
            )
            await asyncio.sleep(delay)
