"""
HTTP client for upstream TLE providers.

Each provider owns one ``HttpClient`` with its own session, timeout and retry
policy; nothing is shared between providers. Requests are made with
``requests`` on a worker thread so awaiting callers never block the event
loop.
"""

import asyncio
from typing import Any, Dict, Optional, Tuple

import requests
from requests.auth import HTTPBasicAuth

from satellite_catalog.config import ProviderConfig
from satellite_catalog.exceptions import UpstreamError
from satellite_catalog.logging_config import get_logger

logger = get_logger(__name__)

USER_AGENT = "satellite-catalog/1.0"

# Status codes worth another attempt
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    429: "RATE_LIMITED",
    500: "INTERNAL_SERVER_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
    504: "GATEWAY_TIMEOUT",
}


class HttpClient:
    """
    Retrying HTTP GET client bound to one provider.

    Attributes:
        provider: Provider name used in logs and errors
        config: Base URL, timeout and retry settings for this provider
    """

    def __init__(
        self,
        provider: str,
        config: ProviderConfig,
        auth: Optional[Tuple[str, str]] = None,
        session: Optional[requests.Session] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.provider = provider
        self.config = config
        self.auth = auth
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "application/json, text/plain, */*",
        })
        if headers:
            self.session.headers.update(headers)
        if auth is not None:
            self.session.auth = HTTPBasicAuth(*auth)

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """
        GET a provider resource with retries.

        Args:
            path: Path relative to the provider base URL (or an absolute URL)
            params: Optional query parameters

        Returns:
            The successful response

        Raises:
            UpstreamError: All attempts failed, or the server answered with a
                non-retryable error status
        """
        url = self.url_for(path)
        attempts = self.config.retry_attempts + 1
        last_error: Optional[UpstreamError] = None

        for attempt in range(1, attempts + 1):
            logger.debug("API call", provider=self.provider, url=url, attempt=attempt)
            try:
                response = await asyncio.to_thread(
                    self.session.get, url, params=params, timeout=self.config.timeout_seconds
                )
            except requests.Timeout as e:
                last_error = UpstreamError(
                    f"Timeout after {self.config.timeout_ms} ms: {url}", self.provider, url
                )
                last_error.__cause__ = e
            except requests.RequestException as e:
                last_error = UpstreamError(f"Request failed: {e}", self.provider, url)
                last_error.__cause__ = e
            else:
                if response.ok:
                    logger.debug(
                        "API response", provider=self.provider, url=url, status=response.status_code
                    )
                    return response

                status = response.status_code
                code = HTTP_ERROR_CODES.get(status, "UNKNOWN_ERROR")
                transient = status in RETRYABLE_STATUS_CODES or status >= 500
                last_error = UpstreamError(
                    f"HTTP {status} ({code}) from {url}",
                    self.provider,
                    url,
                    status_code=status,
                    transient=transient,
                )
                if not transient:
                    break

            if attempt < attempts:
                logger.info(
                    "Retrying upstream request",
                    provider=self.provider,
                    url=url,
                    attempt=attempt,
                    error=str(last_error),
                )
                await asyncio.sleep(self.config.retry_delay_seconds)

        logger.warning("API error", provider=self.provider, url=url, error=str(last_error))
        raise last_error

    def close(self) -> None:
        self.session.close()
