"""Retry policy and retry transport for the Bare Metal API.

The API is eventually consistent: an object that was just created may not be
visible to the next read, and a resource that was just changed may refuse
further changes until it settles. The retry transport absorbs those windows
with exponential backoff.

| Condition | Methods retried |
|-----------|-----------------|
| 429 Too Many Requests (honors `Retry-After`) | all |
| 409 with code `IncorrectState` | all |
| 404 (object not yet visible) | GET, HEAD |
| 500, 502, 503, 504 and network errors | GET, HEAD, PUT, DELETE, OPTIONS, TRACE |

Auto retries slow down bulk destroy operations, where many of these races
are expected and resolve on their own, so operators can turn them off with
`disable_auto_retries`. The policy is fixed when the client is built.

## Example

```python
from baremetal_provider.transport.retry import RetryPolicy, build_retry_transport
import httpx

transport = build_retry_transport(httpx.AsyncHTTPTransport(), RetryPolicy(max_retries=3))

async with httpx.AsyncClient(transport=transport) as client:
    response = await client.get("https://iaas.us-phoenix-1.oraclecloud.com/20160918/vcns")
```
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import httpx

from baremetal_provider.errors.exceptions import INCORRECT_STATE_CODE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Session-wide retry settings.

    Attributes:
        enabled: Whether transient errors are retried at all.
        max_retries: Retries after the first attempt.
        backoff_factor: Base delay in seconds for exponential backoff.
        max_backoff: Cap on any single delay, in seconds.
    """

    enabled: bool = True
    max_retries: int = 5
    backoff_factor: float = 1.0
    max_backoff: float = 60.0

    @classmethod
    def from_setting(cls, disable_auto_retries: bool | None) -> "RetryPolicy":
        """Build the policy from the `disable_auto_retries` setting.

        None means the operator did not set it, which keeps the default.
        """
        if disable_auto_retries is None:
            return cls()
        return cls(enabled=not disable_auto_retries)

    @property
    def max_attempts(self) -> int:
        return 1 + self.max_retries if self.enabled else 1


class EventualConsistencyRetry(httpx.AsyncBaseTransport):
    """Retry transport for transient and eventual-consistency errors.

    Args:
        wrapped_transport: The underlying transport to wrap
        max_retries: Maximum number of retry attempts (default: 5)
        backoff_factor: Multiplier for exponential backoff (default: 1.0)
        max_backoff: Maximum backoff time in seconds (default: 60)

    Example:
        ```python
        transport = EventualConsistencyRetry(
            wrapped_transport=httpx.AsyncHTTPTransport(),
            max_retries=5,
            max_backoff=60,
        )
        ```
    """

    # Idempotent HTTP methods (per RFC 7231) - safe to retry on 5xx
    IDEMPOTENT_METHODS: frozenset[str] = frozenset(["HEAD", "GET", "PUT", "DELETE", "OPTIONS", "TRACE"])

    # Reads that may race a just-completed write
    READ_METHODS: frozenset[str] = frozenset(["HEAD", "GET"])

    RETRY_5XX_STATUS_CODES: frozenset[int] = frozenset([500, 502, 503, 504])

    def __init__(
        self,
        *,
        wrapped_transport: httpx.AsyncBaseTransport,
        max_retries: int = 5,
        backoff_factor: float = 1.0,
        max_backoff: float = 60.0,
    ) -> None:
        self._wrapped_transport = wrapped_transport
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.max_backoff = max_backoff

    @classmethod
    def from_policy(cls, wrapped_transport: httpx.AsyncBaseTransport, policy: RetryPolicy) -> "EventualConsistencyRetry":
        return cls(
            wrapped_transport=wrapped_transport,
            max_retries=policy.max_retries,
            backoff_factor=policy.backoff_factor,
            max_backoff=policy.max_backoff,
        )

    async def __aenter__(self):
        """Enter async context, delegating to wrapped transport."""
        await self._wrapped_transport.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context, delegating to wrapped transport."""
        return await self._wrapped_transport.__aexit__(exc_type, exc_val, exc_tb)

    async def aclose(self) -> None:
        await self._wrapped_transport.aclose()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Handle request with retry logic for transient errors.

        Args:
            request: The HTTP request to send

        Returns:
            HTTP response (the last one received if retries run out)
        """
        retries = 0

        while True:
            try:
                response = await self._wrapped_transport.handle_async_request(request)
            except httpx.TransportError as e:
                # Network errors, timeouts, etc. - only retry idempotent methods
                if retries >= self.max_retries or request.method not in self.IDEMPOTENT_METHODS:
                    raise

                retries += 1
                delay = self._calculate_backoff_delay(retries)

                logger.warning(
                    f"Request {request.method} {request.url} failed with {e!r}, "
                    f"retrying in {delay}s (attempt {retries}/{self.max_retries})"
                )

                await asyncio.sleep(delay)
                continue

            should_retry, delay = await self._should_retry_with_delay(request, response, retries)
            if not should_retry:
                return response

            retries += 1
            logger.warning(
                f"Request {request.method} {request.url} failed with {response.status_code}, "
                f"retrying in {delay}s (attempt {retries}/{self.max_retries})"
            )

            await response.aclose()
            await asyncio.sleep(delay)

    async def _should_retry_with_delay(
        self, request: httpx.Request, response: httpx.Response, current_retries: int
    ) -> tuple[bool, float]:
        """Determine if request should be retried and calculate delay.

        Args:
            request: The HTTP request
            response: The HTTP response received
            current_retries: Number of retries attempted so far

        Returns:
            Tuple of (should_retry, delay_in_seconds)
        """
        if current_retries >= self.max_retries:
            return False, 0.0

        status_code = response.status_code
        backoff = self._calculate_backoff_delay(current_retries + 1)

        if status_code == 429:
            delay = self._parse_retry_after(response)
            return True, backoff if delay is None else delay

        if status_code == 409:
            return await self._is_incorrect_state(response), backoff

        if status_code == 404 and request.method in self.READ_METHODS:
            return True, backoff

        if status_code in self.RETRY_5XX_STATUS_CODES and request.method in self.IDEMPOTENT_METHODS:
            return True, backoff

        return False, 0.0

    async def _is_incorrect_state(self, response: httpx.Response) -> bool:
        """Check whether a 409 is a transient IncorrectState rather than a real conflict."""
        await response.aread()
        try:
            data = response.json()
        except ValueError:
            return False
        return isinstance(data, dict) and data.get("code") == INCORRECT_STATE_CODE

    def _parse_retry_after(self, response: httpx.Response) -> float | None:
        """Parse Retry-After header from response.

        Supports both delay-seconds ("120") and HTTP-date formats.

        Returns:
            Delay in seconds, or None if header is missing or invalid
        """
        retry_after = response.headers.get("Retry-After")
        if not retry_after:
            return None

        try:
            delay = int(retry_after)
            if delay < 0:
                return None
            return float(min(delay, self.max_backoff))
        except ValueError:
            pass

        try:
            retry_date = parsedate_to_datetime(retry_after)
            delay = (retry_date - datetime.now(UTC)).total_seconds()

            # Clock skew
            if delay < 0:
                return None

            return float(min(delay, self.max_backoff))
        except (ValueError, TypeError):
            pass

        return None

    def _calculate_backoff_delay(self, retry_number: int) -> float:
        """Calculate exponential backoff delay with max_backoff cap.

        Uses formula: min(backoff_factor * (2 ** (retry_number - 1)), max_backoff)
        Default backoff sequence: 1, 2, 4, 8, 16 seconds

        Args:
            retry_number: Current retry attempt (1-indexed)

        Returns:
            Delay in seconds (capped at max_backoff)
        """
        delay = self.backoff_factor * (2 ** (retry_number - 1))
        return min(delay, self.max_backoff)


def build_retry_transport(wrapped_transport: httpx.AsyncBaseTransport, policy: RetryPolicy) -> httpx.AsyncBaseTransport:
    """Apply the retry policy to a base transport.

    A disabled policy returns the base transport unwrapped, so every call
    makes exactly one attempt.
    """
    if not policy.enabled:
        logger.debug("Automatic retries disabled")
        return wrapped_transport
    return EventualConsistencyRetry.from_policy(wrapped_transport, policy)
