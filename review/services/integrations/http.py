"""
HTTP client wrapper for integration services.

Provides consistent error handling and timeouts for streamed HTTP requests.

Logging Guidelines:
- Logs method + host + path (no tokens/keys)
- On errors: status code + truncated response (max 500 chars)
- Never logs Authorization headers or API keys

Error Strategy:
- Only HTTP 200 opens a stream; every other status is an error
- The error message embeds the response body, or the reason phrase if empty
- No retries: each error is final for the request that raised it
"""

import logging
from typing import Optional, Dict, Any, Union
from urllib.parse import urljoin, urlparse

import httpx

from .errors import (
    IntegrationAuthError,
    IntegrationRateLimited,
    IntegrationTemporaryError,
    IntegrationPermanentError,
    TransportError,
)

logger = logging.getLogger(__name__)

# Maximum response text length to include in error messages
MAX_ERROR_RESPONSE_LENGTH = 500


class HTTPClient:
    """
    HTTP client with consistent error handling for integrations.

    Features:
    - Streamed responses handed to the caller unread
    - Timeout configuration
    - Error mapping to integration-specific exceptions
    - Request/response logging without secrets

    One client serves one streamed request at a time; close() releases the
    underlying connection pool.
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Union[float, httpx.Timeout] = 30.0,
        service_name: str = "Upstream API",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Base URL for all requests
            headers: Default headers to include in all requests
            timeout: Request timeout in seconds (or an httpx.Timeout)
            service_name: Name used in error messages
            transport: Optional httpx transport (tests, proxies)
        """
        self.base_url = base_url
        self.default_headers = headers or {}
        self.timeout = timeout
        self.service_name = service_name
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        """Close the underlying httpx client."""
        self._client.close()

    def _sanitize_headers(self, headers: Dict[str, str]) -> Dict[str, str]:
        """
        Remove sensitive headers for logging.

        Args:
            headers: Original headers

        Returns:
            Sanitized headers safe for logging
        """
        sensitive_keys = {'authorization', 'x-api-key', 'api-key', 'token'}
        return {
            k: '***' if k.lower() in sensitive_keys else v
            for k, v in headers.items()
        }

    def _truncate_response(self, text: str) -> str:
        """
        Truncate response text for error messages.

        Args:
            text: Response text

        Returns:
            Truncated text (max MAX_ERROR_RESPONSE_LENGTH chars)
        """
        if len(text) > MAX_ERROR_RESPONSE_LENGTH:
            return text[:MAX_ERROR_RESPONSE_LENGTH] + "..."
        return text

    def _build_url(self, path: str) -> str:
        """Build full URL from base URL and path."""
        return urljoin(self.base_url, path.lstrip('/'))

    def _read_error_body(self, response: httpx.Response) -> str:
        """
        Read the start of an error response body, or '' if unreadable.

        Stops once enough bytes are in to fill MAX_ERROR_RESPONSE_LENGTH
        characters (plus one, so truncation can be detected); the rest of
        the body is never downloaded.
        """
        # UTF-8 needs at most 4 bytes per character
        limit = (MAX_ERROR_RESPONSE_LENGTH + 1) * 4
        received = bytearray()
        try:
            for chunk in response.iter_bytes():
                received.extend(chunk)
                if len(received) >= limit:
                    break
        except (httpx.HTTPError, httpx.StreamError) as e:
            logger.debug(f"Could not read error body: {e.__class__.__name__}")

        encoding = response.encoding or 'utf-8'
        return bytes(received).decode(encoding, errors='replace').strip()

    def _handle_response_error(self, response: httpx.Response):
        """
        Map a non-200 response to an integration exception.

        Maps:
        - 401/403 → IntegrationAuthError
        - 429 → IntegrationRateLimited (with retry_after)
        - 5xx → IntegrationTemporaryError
        - anything else → IntegrationPermanentError

        Args:
            response: HTTP response object (may still be streaming)

        Raises:
            UpstreamError: Always, as the subclass matching the status
        """
        status = response.status_code
        body = self._truncate_response(self._read_error_body(response))
        detail = body or response.reason_phrase or f"HTTP {status}"
        message = f"{self.service_name} returned an error: {detail}"

        logger.warning(f"{self.service_name} answered HTTP {status}: {detail[:200]}")

        # Authentication errors (401/403)
        if status in (401, 403):
            raise IntegrationAuthError(message, status_code=status)

        # Rate limiting (429)
        if status == 429:
            retry_after = response.headers.get('Retry-After')
            try:
                retry_after = int(retry_after) if retry_after else None
            except (ValueError, TypeError):
                retry_after = None

            raise IntegrationRateLimited(message, retry_after=retry_after, status_code=status)

        # Server errors (5xx)
        if status >= 500:
            raise IntegrationTemporaryError(message, status_code=status)

        raise IntegrationPermanentError(message, status_code=status)

    def open_stream(
        self,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Send a request and return the response with its body unread.

        The caller owns the returned response and must close it.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: URL path (relative to base_url)
            headers: Additional headers for this request
            json: JSON body

        Returns:
            Streaming HTTP response with status 200

        Raises:
            UpstreamError: On any status other than 200
            TransportError: On connection errors and timeouts
        """
        url = self._build_url(path)
        parsed = urlparse(url)

        # Merge headers
        request_headers = {**self.default_headers}
        if headers:
            request_headers.update(headers)

        # Log request (without sensitive data)
        logger.debug(
            f"{method} {parsed.scheme}://{parsed.netloc}{parsed.path} "
            f"headers={self._sanitize_headers(request_headers)}"
        )

        request = self._client.build_request(
            method=method,
            url=url,
            headers=request_headers,
            json=json,
        )
        try:
            response = self._client.send(request, stream=True)
        except httpx.TransportError as e:
            logger.warning(
                f"{method} {parsed.netloc}{parsed.path} failed: {e.__class__.__name__}: {str(e)[:200]}"
            )
            raise TransportError(
                f"Could not reach {self.service_name}: {e.__class__.__name__}"
            ) from e

        if response.status_code != 200:
            try:
                self._handle_response_error(response)
            finally:
                response.close()

        return response
