"""
Tests for the integration base classes and utilities.
"""

from django.test import TestCase
import httpx
import respx

from review.services.integrations import (
    # Exceptions
    IntegrationError,
    IntegrationNotConfigured,
    UpstreamError,
    IntegrationAuthError,
    IntegrationRateLimited,
    IntegrationTemporaryError,
    IntegrationPermanentError,
    DecodeError,
    TransportError,
    # Classes
    BaseIntegration,
    HTTPClient,
)


class IntegrationExceptionsTestCase(TestCase):
    """Test cases for integration exceptions."""

    def test_all_exceptions_inherit_from_integration_error(self):
        """Test that all integration exceptions inherit from IntegrationError."""
        exceptions = [
            IntegrationNotConfigured("test"),
            UpstreamError("test"),
            IntegrationAuthError("test"),
            IntegrationRateLimited("test"),
            IntegrationTemporaryError("test"),
            IntegrationPermanentError("test"),
            DecodeError("test"),
            TransportError("test"),
        ]

        for exc in exceptions:
            with self.subTest(exc=exc):
                self.assertIsInstance(exc, IntegrationError)

    def test_status_errors_are_upstream_errors(self):
        """Test that every HTTP status error is an UpstreamError."""
        for cls in (IntegrationAuthError, IntegrationRateLimited,
                    IntegrationTemporaryError, IntegrationPermanentError):
            with self.subTest(cls=cls):
                self.assertTrue(issubclass(cls, UpstreamError))

    def test_decode_and_transport_are_not_upstream_errors(self):
        self.assertNotIsInstance(DecodeError("x"), UpstreamError)
        self.assertNotIsInstance(TransportError("x"), UpstreamError)

    def test_rate_limited_has_retry_after(self):
        """Test that IntegrationRateLimited can store retry_after."""
        error = IntegrationRateLimited("Rate limited", retry_after=60)
        self.assertEqual(error.retry_after, 60)
        self.assertEqual(error.status_code, 429)

    def test_rate_limited_retry_after_optional(self):
        """Test that retry_after is optional for IntegrationRateLimited."""
        error = IntegrationRateLimited("Rate limited")
        self.assertIsNone(error.retry_after)


class SampleIntegration(BaseIntegration):
    """Integration used to exercise BaseIntegration."""

    name = "sample"

    def __init__(self, config=None, is_complete=True):
        self._config = config
        self._is_complete = is_complete
        self.loads = 0
        super().__init__()

    def _load_config(self):
        self.loads += 1
        return self._config

    def _is_config_complete(self, config):
        return self._is_complete


class BaseIntegrationTestCase(TestCase):
    """Test cases for BaseIntegration class."""

    def test_name_property_required(self):
        """Test that name property must be set."""
        class BadIntegration(BaseIntegration):
            pass

        with self.assertRaises(NotImplementedError):
            BadIntegration()

    def test_logger_has_correct_namespace(self):
        """Test that logger uses redline.integration.<name> namespace."""
        integration = SampleIntegration()
        self.assertEqual(integration.logger.name, "redline.integration.sample")

    def test_get_config_is_cached(self):
        integration = SampleIntegration(config={'url': 'x'})
        integration.get_config()
        integration.get_config()
        self.assertEqual(integration.loads, 1)

    def test_require_config_raises_when_missing(self):
        integration = SampleIntegration(config=None)
        with self.assertRaises(IntegrationNotConfigured) as cm:
            integration.require_config()
        self.assertIn("sample", str(cm.exception))

    def test_require_config_raises_when_incomplete(self):
        integration = SampleIntegration(config={'url': ''}, is_complete=False)
        with self.assertRaises(IntegrationNotConfigured):
            integration.require_config()

    def test_require_config_returns_config_when_complete(self):
        config = {'url': 'https://example.com'}
        integration = SampleIntegration(config=config)
        self.assertEqual(integration.require_config(), config)


class HTTPClientTestCase(TestCase):
    """Test cases for HTTPClient class."""

    def setUp(self):
        """Set up test client."""
        self.mock = respx.mock(assert_all_called=False)
        self.mock.start()
        self.addCleanup(self.mock.stop)

        self.base_url = "https://api.example.com/v1/"
        self.client = HTTPClient(
            base_url=self.base_url,
            headers={'Authorization': 'Bearer secret-token'},
            timeout=10.0,
            service_name="Example API",
        )
        self.addCleanup(self.client.close)

    def test_successful_stream(self):
        """Test that a 200 response is returned unread."""
        self.mock.post(f"{self.base_url}stream").mock(
            return_value=httpx.Response(200, content=b"data: x\n\n")
        )

        response = self.client.open_stream("POST", "/stream", json={"a": 1})
        try:
            self.assertEqual(response.status_code, 200)
            self.assertEqual(b"".join(response.iter_bytes()), b"data: x\n\n")
        finally:
            response.close()

    def test_default_and_request_headers_merged(self):
        route = self.mock.post(f"{self.base_url}stream").mock(
            return_value=httpx.Response(200)
        )
        response = self.client.open_stream("POST", "stream", headers={"X-Trace": "1"})
        response.close()

        request = route.calls.last.request
        self.assertEqual(request.headers["Authorization"], "Bearer secret-token")
        self.assertEqual(request.headers["X-Trace"], "1")

    def test_401_raises_auth_error(self):
        """Test that 401 raises IntegrationAuthError with the body text."""
        self.mock.post(f"{self.base_url}stream").mock(
            return_value=httpx.Response(401, text="invalid api key")
        )

        with self.assertRaises(IntegrationAuthError) as cm:
            self.client.open_stream("POST", "stream")

        self.assertEqual(
            str(cm.exception), "Example API returned an error: invalid api key"
        )
        self.assertNotIn("secret-token", str(cm.exception))

    def test_403_raises_auth_error(self):
        self.mock.post(f"{self.base_url}stream").mock(
            return_value=httpx.Response(403, json={"error": "Forbidden"})
        )

        with self.assertRaises(IntegrationAuthError) as cm:
            self.client.open_stream("POST", "stream")

        self.assertIn("Forbidden", str(cm.exception))
        self.assertEqual(cm.exception.status_code, 403)

    def test_429_raises_rate_limited(self):
        """Test that 429 raises IntegrationRateLimited with retry_after."""
        route = self.mock.post(f"{self.base_url}stream").mock(
            return_value=httpx.Response(
                429,
                headers={"Retry-After": "60"},
                json={"error": "Rate limit exceeded"},
            )
        )

        with self.assertRaises(IntegrationRateLimited) as cm:
            self.client.open_stream("POST", "stream")

        self.assertEqual(cm.exception.retry_after, 60)
        self.assertEqual(route.call_count, 1)

    def test_500_raises_temporary_error(self):
        """Test that 500 raises IntegrationTemporaryError without retrying."""
        route = self.mock.post(f"{self.base_url}stream").mock(
            return_value=httpx.Response(500, text="Internal error")
        )

        with self.assertRaises(IntegrationTemporaryError) as cm:
            self.client.open_stream("POST", "stream")

        self.assertIn("Internal error", str(cm.exception))
        self.assertEqual(route.call_count, 1)

    def test_404_raises_permanent_error(self):
        self.mock.post(f"{self.base_url}stream").mock(
            return_value=httpx.Response(404, text="model not found")
        )

        with self.assertRaises(IntegrationPermanentError) as cm:
            self.client.open_stream("POST", "stream")

        self.assertIn("model not found", str(cm.exception))

    def test_non_200_success_status_is_an_error(self):
        """Test that only 200 opens a stream."""
        self.mock.post(f"{self.base_url}stream").mock(
            return_value=httpx.Response(204)
        )

        with self.assertRaises(UpstreamError) as cm:
            self.client.open_stream("POST", "stream")

        self.assertIn("No Content", str(cm.exception))

    def test_empty_body_uses_reason_phrase(self):
        self.mock.post(f"{self.base_url}stream").mock(
            return_value=httpx.Response(502)
        )

        with self.assertRaises(IntegrationTemporaryError) as cm:
            self.client.open_stream("POST", "stream")

        self.assertEqual(str(cm.exception), "Example API returned an error: Bad Gateway")

    def test_long_error_body_truncated(self):
        self.mock.post(f"{self.base_url}stream").mock(
            return_value=httpx.Response(400, text="x" * 2000)
        )

        with self.assertRaises(IntegrationPermanentError) as cm:
            self.client.open_stream("POST", "stream")

        self.assertTrue(str(cm.exception).endswith("x..."))
        self.assertLess(len(str(cm.exception)), 600)

    def test_error_body_read_is_bounded(self):
        """Test that a huge error body is not downloaded past the message limit."""
        served = []

        def body():
            for _ in range(1000):
                served.append(1)
                yield b"e" * 1024

        response = httpx.Response(500, content=body())
        text = self.client._read_error_body(response)

        self.assertLess(len(served), 10)
        self.assertGreater(len(text), 500)
        self.assertTrue(
            self.client._truncate_response(text).endswith("e...")
        )

    def test_timeout_raises_transport_error(self):
        self.mock.post(f"{self.base_url}stream").mock(
            side_effect=httpx.ReadTimeout("timed out")
        )

        with self.assertRaises(TransportError):
            self.client.open_stream("POST", "stream")

    def test_sanitize_headers(self):
        safe = self.client._sanitize_headers(
            {"Authorization": "Bearer x", "Content-Type": "application/json"}
        )
        self.assertEqual(safe["Authorization"], "***")
        self.assertEqual(safe["Content-Type"], "application/json")
