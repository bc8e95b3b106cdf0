"""HTTP client with bounded timeouts and retry logic."""

import logging
import time
from typing import Any

import httpx

from typo3_upgrade_planner import __version__

logger = logging.getLogger(__name__)

USER_AGENT = f"typo3-upgrade-planner/{__version__}"


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.5,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base

    def delay_for(self, attempt: int) -> float:
        """Backoff delay before retrying after ``attempt`` (0-based)."""
        return min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay,
        )


class SyncHTTPClient:
    """Synchronous HTTP client used for catalog refreshes and package lookups.

    Every wait is bounded: ``Retry-After`` values are capped at the retry
    config's ``max_delay`` and rate-limit responses consume the same retry
    budget as transport errors.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        retry_config: RetryConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            timeout: Request timeout in seconds
            retry_config: Retry configuration
            transport: Optional httpx transport (used by tests)
        """
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self._client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
            headers={
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
            },
        )

    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make GET request with retry logic."""
        return self._request_with_retry("GET", url, headers=headers, **kwargs)

    def get_json(self, url: str, **kwargs: Any) -> Any:
        """GET a URL and decode its JSON body.

        Raises:
            httpx.HTTPError: On transport failure or non-2xx status
            ValueError: If the body is not JSON
        """
        response = self.get(url, **kwargs)
        response.raise_for_status()
        return response.json()

    def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute request with exponential backoff retry."""
        last_exception: Exception | None = None

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                response = self._client.request(method, url, **kwargs)

                # Check for rate limit response
                if response.status_code == 429:
                    retry_after = _parse_retry_after(response.headers.get("Retry-After"))
                    wait = min(retry_after, self.retry_config.max_delay)
                    last_exception = httpx.HTTPStatusError(
                        "Rate limited",
                        request=response.request,
                        response=response,
                    )
                    if attempt < self.retry_config.max_retries:
                        logger.warning(f"Rate limited by {url}, waiting {wait:.1f}s")
                        time.sleep(wait)
                    continue

                # Check for server errors (retry-able)
                if response.status_code >= 500:
                    raise httpx.HTTPStatusError(
                        f"Server error: {response.status_code}",
                        request=response.request,
                        response=response,
                    )

                return response

            except (httpx.TimeoutException, httpx.ConnectError, httpx.HTTPStatusError) as e:
                last_exception = e

                if attempt < self.retry_config.max_retries:
                    delay = self.retry_config.delay_for(attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}), retrying in {delay:.1f}s: {e}"
                    )
                    time.sleep(delay)
                else:
                    logger.error(f"Request failed after {attempt + 1} attempts: {e}")

        if last_exception:
            raise last_exception

        raise httpx.HTTPError("Request failed with no exception")

    def close(self) -> None:
        """Close the client."""
        self._client.close()

    def __enter__(self) -> "SyncHTTPClient":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()


def _parse_retry_after(value: str | None) -> float:
    if not value:
        return 1.0
    try:
        return max(0.0, float(value))
    except ValueError:
        return 1.0
