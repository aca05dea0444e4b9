"""
Integration-specific exceptions for consistent error handling.

These exceptions provide a unified way to handle errors raised while talking
to the upstream completions provider.

Design principles:
- Never include secrets or tokens in exception messages
- Map HTTP status codes consistently
- Distinguish upstream rejections, broken event payloads and transport failures
- Nothing is retried; every error is final for the request that raised it
"""


class IntegrationError(Exception):
    """
    Base exception for all integration-related errors.

    All integration exceptions inherit from this class, allowing
    consumers to catch all integration errors with a single except clause.
    """
    pass


class IntegrationNotConfigured(IntegrationError):
    """
    Raised when an integration lacks required configuration.

    Example:
        The upstream base URL is empty.
    """
    pass


class UpstreamError(IntegrationError):
    """
    Raised when the upstream API answers with a status other than 200.

    The message embeds the decoded response body when one was sent,
    otherwise the HTTP reason phrase.

    Attributes:
        status_code: HTTP status returned by the upstream API
    """

    def __init__(self, message="Upstream request failed", status_code=None):
        super().__init__(message)
        self.status_code = status_code


class IntegrationAuthError(UpstreamError):
    """
    Raised when authentication with the upstream API fails.

    Corresponds to HTTP 401/403 errors.

    Example:
        Invalid API key, revoked key, missing model access.
    """
    pass


class IntegrationRateLimited(UpstreamError):
    """
    Raised when the upstream rate limit is exceeded.

    Corresponds to HTTP 429 errors. The request is not retried;
    retry_after is kept so callers can tell the user when to try again.

    Attributes:
        retry_after: Optional seconds suggested by the Retry-After header
    """

    def __init__(self, message="Rate limit exceeded", retry_after=None, status_code=429):
        """
        Initialize rate limit error.

        Args:
            message: Error message (no secrets!)
            retry_after: Optional seconds to wait before retrying
            status_code: HTTP status (always 429 in practice)
        """
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after


class IntegrationTemporaryError(UpstreamError):
    """
    Raised for upstream server errors (HTTP 5xx).

    Example:
        Provider overloaded, gateway timeout.
    """
    pass


class IntegrationPermanentError(UpstreamError):
    """
    Raised for any other non-200 upstream status.

    Typically HTTP 4xx client errors: unknown model, malformed request,
    context length exceeded.
    """
    pass


class DecodeError(IntegrationError):
    """
    Raised when an upstream event payload cannot be decoded.

    The payload is not valid JSON or lacks the choices[0].delta object.
    Terminal for the stream that produced it.
    """
    pass


class TransportError(IntegrationError):
    """
    Raised when the connection to the upstream API fails.

    Covers connect/read timeouts, connection resets and the response
    being closed underneath a reader.
    """
    pass
