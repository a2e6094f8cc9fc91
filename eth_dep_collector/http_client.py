"""
Shared HTTP client handling, error classification and retry.

Every outbound request goes through `with_retry`: rate-limit responses wait a
long fixed interval, other transient failures back off exponentially, and a
404 fails immediately because retrying cannot make the file appear.
"""

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from eth_dep_collector.config import (
    get_backoff_base,
    get_rate_limit_wait,
    get_retry_attempts,
    get_verify_ssl,
)

USER_AGENT = "eth-dep-collector/0.1 (+https://github.com/eth-supply-chain)"

_async_http_client: httpx.AsyncClient | None = None
_async_http_client_verify_ssl: bool | None = None


class FetchError(Exception):
    """Base class for outbound request failures."""


class MissingFileError(FetchError):
    """The requested document does not exist (HTTP 404)."""


class RateLimitError(FetchError):
    """The remote service rejected the request because of rate limiting."""


class TransientFetchError(FetchError):
    """Network error or server-side failure that may succeed on retry."""


async def _get_async_http_client() -> httpx.AsyncClient:
    """Get or create the global async HTTP client with connection pooling.

    Recreates the client if SSL verification setting has changed.
    """
    global _async_http_client, _async_http_client_verify_ssl
    current_verify_ssl = get_verify_ssl()

    if (
        _async_http_client is None
        or _async_http_client.is_closed
        or _async_http_client_verify_ssl != current_verify_ssl
    ):
        if _async_http_client is not None and not _async_http_client.is_closed:
            await _async_http_client.aclose()

        _async_http_client = httpx.AsyncClient(
            verify=current_verify_ssl,
            timeout=30,
            headers={"User-Agent": USER_AGENT},
            limits=httpx.Limits(
                max_connections=20,
                max_keepalive_connections=10,
                keepalive_expiry=30.0,
            ),
        )
        _async_http_client_verify_ssl = current_verify_ssl
    return _async_http_client


async def close_http_client() -> None:
    """Close the global HTTP client. Call this when shutting down."""
    global _async_http_client, _async_http_client_verify_ssl
    if _async_http_client is not None and not _async_http_client.is_closed:
        await _async_http_client.aclose()
    _async_http_client = None
    _async_http_client_verify_ssl = None


def is_rate_limited(response: httpx.Response) -> bool:
    """Detect GitHub-style primary and secondary rate-limit responses."""
    if response.status_code == 429:
        return True
    if response.status_code == 403:
        if response.headers.get("x-ratelimit-remaining") == "0":
            return True
        return "rate limit" in response.text.lower()
    return False


def check_response(response: httpx.Response, description: str) -> httpx.Response:
    """
    Map a non-success response onto the fetch error taxonomy.

    Args:
        response: The HTTP response.
        description: Short label for error messages (e.g. the URL).

    Returns:
        The response, when successful.

    Raises:
        MissingFileError: On 404.
        RateLimitError: On a rate-limit response.
        TransientFetchError: On 5xx.
        FetchError: On any other non-2xx status.
    """
    if response.is_success:
        return response
    status = response.status_code
    if status == 404:
        raise MissingFileError(f"{description}: 404 not found")
    if is_rate_limited(response):
        raise RateLimitError(f"{description}: rate limited ({status})")
    if status >= 500:
        raise TransientFetchError(f"{description}: server error {status}")
    raise FetchError(f"{description}: HTTP {status}")


def _retry_wait(retry_state: RetryCallState) -> float:
    """Fixed long wait after rate limiting, exponential backoff otherwise."""
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    if isinstance(exc, RateLimitError):
        return get_rate_limit_wait()
    return get_backoff_base() * (2 ** (retry_state.attempt_number - 1))


async def with_retry(fn, *args, attempts: int | None = None, **kwargs):
    """
    Await `fn(*args, **kwargs)` with bounded retry.

    Only RateLimitError, TransientFetchError and httpx transport errors are
    retried; the final attempt's exception propagates unchanged.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts or get_retry_attempts()),
        wait=_retry_wait,
        retry=retry_if_exception_type(
            (RateLimitError, TransientFetchError, httpx.TransportError)
        ),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await fn(*args, **kwargs)


async def get_text(
    url: str, headers: dict[str, str] | None = None, description: str | None = None
) -> str:
    """GET a URL and return its body, with retry."""

    async def _fetch() -> str:
        client = await _get_async_http_client()
        response = await client.get(url, headers=headers, follow_redirects=True)
        check_response(response, description or url)
        return response.text

    return await with_retry(_fetch)


async def get_json(
    url: str, headers: dict[str, str] | None = None, description: str | None = None
):
    """GET a URL and decode its JSON body, with retry."""

    async def _fetch():
        client = await _get_async_http_client()
        response = await client.get(url, headers=headers, follow_redirects=True)
        check_response(response, description or url)
        return response.json()

    return await with_retry(_fetch)
