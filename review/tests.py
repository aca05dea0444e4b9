"""
Tests for the review relay view and the review_text command.
"""

import json
import os
import tempfile
from io import StringIO
from unittest.mock import patch

import httpx
import respx
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, Client, override_settings
from django.urls import reverse

from review.services.ai import RelayState, RelayStream

CHAT_URL = 'https://api.openai.test/v1/chat/completions'


def sse_body(*contents, done=True):
    body = ''
    for content in contents:
        body += 'data: ' + json.dumps({'choices': [{'delta': {'content': content}}]}) + '\n\n'
    if done:
        body += 'data: [DONE]\n\n'
    return body.encode('utf-8')


def sse_response(body):
    return httpx.Response(200, headers={'Content-Type': 'text/event-stream'}, content=body)


class ReviewStreamViewTestCase(TestCase):
    """Test cases for the streaming relay view."""

    def setUp(self):
        """Set up test client and mocked upstream."""
        self.client = Client()
        self.url = reverse('review:stream')

        self.mock = respx.mock(assert_all_called=False)
        self.mock.start()
        self.addCleanup(self.mock.stop)

    def post(self, payload):
        return self.client.post(
            self.url,
            data=json.dumps(payload),
            content_type='application/json',
        )

    def read(self, response):
        try:
            return b''.join(response.streaming_content)
        finally:
            response.close()

    def test_url_is_kept_for_existing_clients(self):
        self.assertEqual(self.url, '/api/translate')

    def test_streams_fragments(self):
        """Test that upstream deltas are relayed as raw text."""
        self.mock.post(CHAT_URL).mock(
            return_value=sse_response(sse_body('<p>Good ', 'text.</p>'))
        )

        response = self.post({
            'inputLanguage': 'JavaScript',
            'outputLanguage': 'Python',
            'inputCode': 'Good text.',
            'model': 'gpt-3.5-turbo',
            'apiKey': '',
        })

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.streaming)
        self.assertTrue(response['Content-Type'].startswith('text/plain'))
        self.assertEqual(response['Cache-Control'], 'no-cache')
        self.assertEqual(self.read(response), b'<p>Good text.</p>')

    def test_user_key_forwarded(self):
        route = self.mock.post(CHAT_URL).mock(
            return_value=sse_response(sse_body('ok'))
        )

        response = self.post({'inputCode': 'x', 'model': 'gpt-4', 'apiKey': 'sk-user'})
        self.read(response)

        request = route.calls.last.request
        self.assertEqual(request.headers['Authorization'], 'Bearer sk-user')
        self.assertEqual(json.loads(request.content)['model'], 'gpt-4')

    def test_model_defaults(self):
        route = self.mock.post(CHAT_URL).mock(
            return_value=sse_response(sse_body('ok'))
        )

        self.read(self.post({'inputCode': 'x'}))

        self.assertEqual(json.loads(route.calls.last.request.content)['model'], 'gpt-3.5-turbo')

    def test_get_not_allowed(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 405)

    def test_invalid_json(self):
        response = self.client.post(self.url, data='{oops', content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Invalid JSON')

    def test_empty_input(self):
        response = self.post({'inputCode': '', 'model': 'gpt-4'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('text', response.json()['error'])

    def test_upstream_error(self):
        """Test that an upstream 401 is reported with its body text."""
        self.mock.post(CHAT_URL).mock(
            return_value=httpx.Response(401, text='invalid api key')
        )

        response = self.post({'inputCode': 'x', 'apiKey': 'sk-bad'})

        self.assertEqual(response.status_code, 500)
        self.assertIn('invalid api key', response.json()['error'])
        self.assertNotIn('sk-bad', response.json()['error'])

    @override_settings(OPENAI_API_KEY='')
    def test_missing_key(self):
        response = self.post({'inputCode': 'x'})
        self.assertEqual(response.status_code, 500)
        self.assertIn('OPENAI_API_KEY', response.json()['error'])

    def test_decode_error_mid_stream(self):
        """Test that a broken event ends the body after the good fragments."""
        body = sse_body('A', done=False) + b'data: not-json\n\n' + sse_body('B')
        self.mock.post(CHAT_URL).mock(return_value=sse_response(body))

        response = self.post({'inputCode': 'x'})
        chunks = []
        with self.assertRaises(Exception):
            for chunk in response.streaming_content:
                chunks.append(chunk)
        response.close()

        self.assertEqual(chunks, [b'A'])

    def test_client_disconnect_closes_stream(self):
        """Test that closing the response aborts the relay."""
        stream = RelayStream.from_response(sse_response(sse_body('A', 'B')))

        with patch('review.views.AIRouter') as router_cls:
            router_cls.return_value.stream_review.return_value = stream
            response = self.post({'inputCode': 'x'})

        self.assertEqual(next(iter(response.streaming_content)), b'A')
        response.close()

        self.assertEqual(stream.state, RelayState.FAILED)
        self.assertTrue(stream.aborted)


class ReviewTextCommandTestCase(TestCase):
    """Test cases for the review_text management command."""

    def setUp(self):
        self.mock = respx.mock(assert_all_called=False)
        self.mock.start()
        self.addCleanup(self.mock.stop)

        handle, self.path = tempfile.mkstemp(suffix='.txt')
        with os.fdopen(handle, 'w', encoding='utf-8') as f:
            f.write('Teh quick fox.')
        self.addCleanup(os.remove, self.path)

        credential_dir = tempfile.TemporaryDirectory()
        self.addCleanup(credential_dir.cleanup)
        self.credential_file = os.path.join(credential_dir.name, 'redline', 'api_key')
        credential_settings = override_settings(REVIEW_CREDENTIAL_FILE=self.credential_file)
        credential_settings.enable()
        self.addCleanup(credential_settings.disable)

    def test_streams_and_writes_output(self):
        self.mock.post(CHAT_URL).mock(
            return_value=sse_response(sse_body('<p><span style="background-color: #8B0000" title="Typo">Teh</span>', ' quick fox.</p>'))
        )
        output_path = self.path + '.html'
        self.addCleanup(lambda: os.path.exists(output_path) and os.remove(output_path))
        out, err = StringIO(), StringIO()

        call_command('review_text', self.path, output=output_path, stdout=out, stderr=err)

        self.assertIn('quick fox.</p>', err.getvalue())
        self.assertIn('Review saved to', out.getvalue())
        with open(output_path, encoding='utf-8') as f:
            saved = f.read()
        self.assertTrue(saved.startswith('<p><span style="background-color: #8B0000'))
        self.assertIn('title="Typo">Teh</span> quick fox.</p>', saved)

    def test_quiet_prints_sanitized_html(self):
        self.mock.post(CHAT_URL).mock(
            return_value=sse_response(sse_body('<p>ok</p>', '<script>x()</script>'))
        )
        out = StringIO()

        call_command('review_text', self.path, quiet=True, stdout=out, stderr=StringIO())

        self.assertIn('<p>ok</p>', out.getvalue())
        self.assertNotIn('script', out.getvalue())

    def test_upstream_failure(self):
        self.mock.post(CHAT_URL).mock(return_value=httpx.Response(500, text='overloaded'))

        with self.assertRaises(CommandError):
            call_command('review_text', self.path, stdout=StringIO(), stderr=StringIO())

    def test_too_long_for_model(self):
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write('a' * 4001)

        with self.assertRaises(CommandError) as cm:
            call_command('review_text', self.path, model='gpt-3.5-turbo', stdout=StringIO())
        self.assertIn('4000', str(cm.exception))

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            call_command('review_text', self.path + '.missing', stdout=StringIO())

    def test_default_mode_prints_sanitized_html(self):
        """Test that stdout only ever receives the sanitized review."""
        self.mock.post(CHAT_URL).mock(
            return_value=sse_response(
                sse_body('<p>ok</p>', '<script>alert(1)</script><span onclick="x()">y</span>')
            )
        )
        out, err = StringIO(), StringIO()

        call_command('review_text', self.path, stdout=out, stderr=err)

        self.assertIn('<p>ok</p><span>y</span>', out.getvalue())
        self.assertNotIn('<script>', out.getvalue())
        self.assertNotIn('onclick', out.getvalue())
        # Raw fragments are only shown as progress
        self.assertIn('<script>', err.getvalue())

    def test_saved_key_is_reused(self):
        route = self.mock.post(CHAT_URL).mock(
            side_effect=lambda request: sse_response(sse_body('ok'))
        )

        call_command(
            'review_text', self.path, api_key='sk-remembered', save_key=True,
            stdout=StringIO(), stderr=StringIO(),
        )
        call_command('review_text', self.path, stdout=StringIO(), stderr=StringIO())

        self.assertEqual(route.call_count, 2)
        self.assertEqual(route.calls.last.request.headers['Authorization'], 'Bearer sk-remembered')

    def test_explicit_key_beats_saved_key(self):
        os.makedirs(os.path.dirname(self.credential_file))
        with open(self.credential_file, 'w', encoding='utf-8') as f:
            f.write('sk-remembered')
        route = self.mock.post(CHAT_URL).mock(return_value=sse_response(sse_body('ok')))

        call_command('review_text', self.path, api_key='sk-now', stdout=StringIO(), stderr=StringIO())

        self.assertEqual(route.calls.last.request.headers['Authorization'], 'Bearer sk-now')

    def test_save_key_needs_api_key(self):
        with self.assertRaises(CommandError):
            call_command('review_text', self.path, save_key=True, stdout=StringIO(), stderr=StringIO())
        self.assertFalse(os.path.exists(self.credential_file))

    def test_forget_key(self):
        route = self.mock.post(CHAT_URL).mock(return_value=sse_response(sse_body('ok')))
        call_command(
            'review_text', self.path, api_key='sk-remembered', save_key=True,
            stdout=StringIO(), stderr=StringIO(),
        )
        out = StringIO()

        call_command('review_text', forget_key=True, stdout=out)

        self.assertIn('removed', out.getvalue())
        self.assertFalse(os.path.exists(self.credential_file))
        self.assertEqual(route.call_count, 1)
