"""
Tests for the review stream consumer and clients.
"""

import json
from unittest.mock import Mock

import httpx
import respx
from httpx_sse import ServerSentEvent
from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase, override_settings

from review.services.ai import ReviewRequest, RelayStream
from review.services.consumer import (
    GENERIC_FAILURE_MESSAGE,
    ReviewClient,
    ReviewStreamConsumer,
    run_review,
    validate_review_input,
)
from review.services.exceptions import ServiceNotConfigured
from review.services.integrations import DecodeError, TransportError


class ValidateReviewInputTestCase(SimpleTestCase):
    """Test input checks done before any request is issued."""

    def test_empty_input_rejected(self):
        with self.assertRaises(ValidationError) as cm:
            validate_review_input('', 'gpt-4')
        self.assertEqual(cm.exception.code, 'empty')

    def test_default_tier_limit(self):
        """Test the 4000 character limit of gpt-3.5-turbo."""
        validate_review_input('a' * 4000, 'gpt-3.5-turbo')
        with self.assertRaises(ValidationError) as cm:
            validate_review_input('a' * 4001, 'gpt-3.5-turbo')
        self.assertIn('4000', cm.exception.messages[0])
        self.assertIn('4001', cm.exception.messages[0])

    def test_larger_tier_limit(self):
        """Test that other models get the 12000 character limit."""
        validate_review_input('a' * 12000, 'gpt-4')
        with self.assertRaises(ValidationError):
            validate_review_input('a' * 12001, 'gpt-4')

    @override_settings(REVIEW_MAX_INPUT_LENGTHS={'tiny': 5})
    def test_configured_limits(self):
        with self.assertRaises(ValidationError):
            validate_review_input('abcdef', 'tiny')


class ReviewStreamConsumerTestCase(SimpleTestCase):
    """Test accumulation of relayed bytes."""

    def test_accumulates_until_exhaustion(self):
        received = []
        result = ReviewStreamConsumer().consume(
            [b'<p>Hello ', b'', b'<span title="t">wrold</span></p>'],
            on_fragment=received.append,
        )

        self.assertTrue(result.completed)
        self.assertIsNone(result.error)
        self.assertEqual(result.html, '<p>Hello <span title="t">wrold</span></p>')
        self.assertEqual(received, ['<p>Hello ', '<span title="t">wrold</span></p>'])

    def test_split_utf8_sequence(self):
        """Test that a character split between chunks is decoded once whole."""
        raw = 'naïve'.encode('utf-8')
        split = raw.index(b'\xc3') + 1
        result = ReviewStreamConsumer().consume([raw[:split], raw[split:]])
        self.assertEqual(result.html, 'naïve')

    def test_sanitizes_final_html(self):
        result = ReviewStreamConsumer().consume(
            [b'<p onclick="x()">ok</p>', b'<script>alert(1)</script>']
        )
        self.assertEqual(result.sanitized_html, '<p>ok</p>')
        self.assertIn('<script>', result.html)

    def test_read_failure_is_not_completed(self):
        """Test that an error in the read loop marks the review as failed."""
        def chunks():
            yield b'<p>partial'
            raise httpx.ReadError('connection reset')

        result = ReviewStreamConsumer().consume(chunks())

        self.assertFalse(result.completed)
        self.assertEqual(result.error, GENERIC_FAILURE_MESSAGE)
        self.assertEqual(result.html, '<p>partial')

    def test_relay_decode_error_is_not_completed(self):
        stream = RelayStream([
            ServerSentEvent(data='{"choices":[{"delta":{"content":"A"}}]}'),
            ServerSentEvent(data='nope'),
        ])
        result = ReviewStreamConsumer().consume(stream.iter_bytes())

        self.assertFalse(result.completed)
        self.assertEqual(result.html, 'A')

    def test_empty_stream_completes(self):
        result = ReviewStreamConsumer().consume([])
        self.assertTrue(result.completed)
        self.assertEqual(result.html, '')


class RunReviewTestCase(SimpleTestCase):
    """Test in-process reviews."""

    def test_success(self):
        router = Mock()
        router.stream_review.return_value = RelayStream([
            ServerSentEvent(data='{"choices":[{"delta":{"content":"<p>fine</p>"}}]}'),
            ServerSentEvent(data='[DONE]'),
        ])
        request = ReviewRequest(input_text='fine', model_id='gpt-4')

        result = run_review(request, router=router)

        self.assertTrue(result.completed)
        self.assertEqual(result.sanitized_html, '<p>fine</p>')
        router.stream_review.assert_called_once_with(request)

    def test_validation_happens_before_request(self):
        router = Mock()
        request = ReviewRequest(input_text='a' * 5000, model_id='gpt-3.5-turbo')

        with self.assertRaises(ValidationError):
            run_review(request, router=router)
        router.stream_review.assert_not_called()

    def test_start_failure_returns_failed_result(self):
        for error in (ServiceNotConfigured('no key'), TransportError('down'), DecodeError('bad')):
            with self.subTest(error=error):
                router = Mock()
                router.stream_review.side_effect = error
                result = run_review(ReviewRequest(input_text='x', model_id='gpt-4'), router=router)
                self.assertFalse(result.completed)
                self.assertEqual(result.error, GENERIC_FAILURE_MESSAGE)


class ReviewClientTestCase(TestCase):
    """Test reviews against a relay server over HTTP."""

    def setUp(self):
        self.mock = respx.mock(assert_all_called=False)
        self.mock.start()
        self.addCleanup(self.mock.stop)
        self.url = 'http://relay.test/api/translate'

    def test_review_over_http(self):
        route = self.mock.post(self.url).mock(
            return_value=httpx.Response(200, content='<p>Überprüft</p>'.encode('utf-8'))
        )
        request = ReviewRequest(input_text='text', model_id='gpt-4', credential='sk-user')

        result = ReviewClient('http://relay.test').review(request)

        self.assertTrue(result.completed)
        self.assertEqual(result.html, '<p>Überprüft</p>')
        payload = json.loads(route.calls.last.request.content)
        self.assertEqual(payload['inputCode'], 'text')
        self.assertEqual(payload['model'], 'gpt-4')
        self.assertEqual(payload['apiKey'], 'sk-user')

    def test_relay_error_is_failed_review(self):
        self.mock.post(self.url).mock(
            return_value=httpx.Response(500, json={'error': 'OpenAI API returned an error: invalid api key'})
        )
        result = ReviewClient('http://relay.test/').review(ReviewRequest(input_text='x', model_id='gpt-4'))

        self.assertFalse(result.completed)
        self.assertEqual(result.error, GENERIC_FAILURE_MESSAGE)

    def test_oversized_input_never_sent(self):
        route = self.mock.post(self.url).mock(return_value=httpx.Response(200))
        request = ReviewRequest(input_text='a' * 13000, model_id='gpt-4')

        with self.assertRaises(ValidationError):
            ReviewClient('http://relay.test').review(request)
        self.assertEqual(route.call_count, 0)
