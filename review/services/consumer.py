"""
Review stream consumer.

Client side of the relay: validates input before anything is sent, reads
the relayed byte stream until it is exhausted, and only reports a review as
completed when the stream ended cleanly.
"""

import codecs
import logging
from typing import Callable, Iterable, Optional

import httpx
from django.core.exceptions import ValidationError

from review.services import config as config_service
from review.services.ai import AIRouter, ReviewRequest, ReviewResult
from review.services.exceptions import ServiceError
from review.services.integrations import HTTPClient, IntegrationError
from review.utils.html_sanitization import sanitize_review_html

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = 'Something went wrong.'

# Endpoint of the relay view, relative to the server root
RELAY_PATH = 'api/translate'


def validate_review_input(text: str, model_id: Optional[str] = None) -> None:
    """
    Reject input that must never reach the relay.

    Raises:
        ValidationError: If text is empty or longer than the model's limit
    """
    if not text or not text.strip():
        raise ValidationError('Please enter some text to be reviewed.', code='empty')

    max_length = config_service.get_max_input_length(model_id)
    if len(text) > max_length:
        raise ValidationError(
            f'Please enter text less than {max_length} characters. '
            f'You are currently at {len(text)} characters.',
            code='too_long',
        )


class ReviewStreamConsumer:
    """
    Accumulates a relayed byte stream into the review output.

    Chunks may be empty and may split UTF-8 sequences. Exhaustion of the
    iterable is the only completion signal.
    """

    def __init__(self, sanitizer: Callable[[str], str] = sanitize_review_html):
        self.sanitizer = sanitizer

    def consume(
        self,
        chunks: Iterable[bytes],
        on_fragment: Optional[Callable[[str], None]] = None,
    ) -> ReviewResult:
        """
        Read chunks until exhaustion.

        Args:
            chunks: Byte chunks of the relayed response
            on_fragment: Called with each decoded piece of text as it arrives

        Returns:
            ReviewResult; completed is False when the read loop failed
        """
        decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')
        parts = []

        def append(text):
            if text:
                parts.append(text)
                if on_fragment is not None:
                    on_fragment(text)

        try:
            for chunk in chunks:
                append(decoder.decode(chunk or b''))
            append(decoder.decode(b'', final=True))
        except (IntegrationError, httpx.HTTPError, httpx.StreamError) as e:
            logger.warning(f"Review stream failed after {len(parts)} fragments: {e}")
            html = ''.join(parts)
            return ReviewResult(
                html=html,
                sanitized_html=self.sanitizer(html),
                completed=False,
                fragments=len(parts),
                error=GENERIC_FAILURE_MESSAGE,
            )

        html = ''.join(parts)
        return ReviewResult(
            html=html,
            sanitized_html=self.sanitizer(html),
            completed=True,
            fragments=len(parts),
        )


def _failed(error: Exception) -> ReviewResult:
    logger.warning(f"Review could not be started: {error}")
    return ReviewResult(
        html='',
        sanitized_html='',
        completed=False,
        error=GENERIC_FAILURE_MESSAGE,
    )


def run_review(
    request: ReviewRequest,
    router: Optional[AIRouter] = None,
    on_fragment: Optional[Callable[[str], None]] = None,
) -> ReviewResult:
    """
    Validate and run one review in-process.

    Raises:
        ValidationError: If the input is rejected before any request is made
    """
    validate_review_input(request.input_text, request.model_id)

    router = router or AIRouter()
    try:
        stream = router.stream_review(request)
    except (IntegrationError, ServiceError) as e:
        return _failed(e)

    return ReviewStreamConsumer().consume(stream.iter_bytes(), on_fragment)


class ReviewClient:
    """
    Runs reviews against a Redline server over HTTP.

    Usage:
        client = ReviewClient('http://localhost:8000/')
        result = client.review(request, on_fragment=print)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url if base_url.endswith('/') else base_url + '/'
        self.timeout = timeout
        self.transport = transport

    def review(
        self,
        request: ReviewRequest,
        on_fragment: Optional[Callable[[str], None]] = None,
    ) -> ReviewResult:
        """
        Validate, post and consume one review.

        Raises:
            ValidationError: If the input is rejected before any request is made
        """
        validate_review_input(request.input_text, request.model_id)

        with HTTPClient(
            base_url=self.base_url,
            headers={'Content-Type': 'application/json'},
            timeout=self.timeout,
            service_name='Review relay',
            transport=self.transport,
        ) as client:
            try:
                response = client.open_stream('POST', RELAY_PATH, json=request.to_payload())
            except IntegrationError as e:
                return _failed(e)

            try:
                return ReviewStreamConsumer().consume(response.iter_bytes(), on_fragment)
            finally:
                response.close()
