"""
Streaming relay: upstream chat-completion events in, text fragments out.

A RelayStream pulls server-sent events off the upstream response (framing
is parsed by httpx-sse) and yields the text delta of each event as soon as
it is decoded. It never holds more than the line currently being read.

States:
    OPEN    forwarding fragments
    CLOSED  [DONE] received or upstream ended normally
    FAILED  decode error, transport error or abort
"""

import json
import logging
import time
from typing import Callable, Iterable, Iterator, Optional

import httpx
from httpx_sse import EventSource, SSEError

from review.services.integrations.errors import DecodeError, TransportError
from .schemas import RelayState

logger = logging.getLogger(__name__)

DONE_SENTINEL = '[DONE]'


def extract_delta(data: str) -> Optional[str]:
    """
    Return the text delta carried by one chat-completion chunk.

    Args:
        data: The event's data field (a JSON document)

    Returns:
        choices[0].delta.content, or None when the chunk carries no content
        (role announcement, finish_reason chunk)

    Raises:
        DecodeError: If data is not JSON or has no choices[0].delta object
    """
    try:
        payload = json.loads(data)
    except ValueError as e:
        raise DecodeError(f"Upstream event is not valid JSON: {data[:100]!r}") from e

    try:
        delta = payload['choices'][0]['delta']
    except (KeyError, IndexError, TypeError) as e:
        raise DecodeError(
            f"Upstream event has no choices[0].delta: {data[:100]!r}"
        ) from e

    if not isinstance(delta, dict):
        raise DecodeError(f"Upstream delta is not an object: {data[:100]!r}")

    content = delta.get('content')
    if content is None:
        return None
    if not isinstance(content, str):
        raise DecodeError(f"Upstream delta content is not text: {data[:100]!r}")
    return content


class RelayStream:
    """
    Lazy, finite, non-restartable iterator of text fragments.

    Iterating yields str fragments in upstream order; iter_bytes() yields
    them UTF-8 encoded. Errors surface from the iteration as DecodeError or
    TransportError. close() aborts the stream and releases the upstream
    response; it is safe to call more than once.

    Args:
        events: Server-sent events, anything with a `data` attribute
            (see from_response)
        on_close: Called exactly once to release the upstream response
    """

    def __init__(
        self,
        events: Iterable,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self._events = events
        self._on_close = on_close
        self._released = False
        self._started_at = time.monotonic()
        self._iterator = self._relay()

        self.state = RelayState.OPEN
        self.error: Optional[Exception] = None
        self.aborted = False
        self.fragments = 0

        logger.debug("Relay stream opened")

    @classmethod
    def from_response(
        cls,
        response: httpx.Response,
        on_close: Optional[Callable[[], None]] = None,
    ) -> "RelayStream":
        """
        Relay the event stream carried by a streamed httpx response.

        The response body is read lazily, one event at a time. Unless
        `on_close` is given, releasing the stream closes the response.
        """
        return cls(
            EventSource(response).iter_sse(),
            on_close=on_close if on_close is not None else response.close,
        )

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        return next(self._iterator)

    def iter_bytes(self) -> Iterator[bytes]:
        """Yield each fragment encoded as UTF-8; closes the stream when done or abandoned."""
        try:
            for fragment in self:
                yield fragment.encode('utf-8')
        finally:
            self.close()

    def close(self) -> None:
        """
        Abort the stream.

        An OPEN stream moves to FAILED and yields nothing further. The
        upstream response is released; a reader blocked in another thread
        wakes up and stops without raising.
        """
        if self.state is RelayState.OPEN:
            self.aborted = True
            self.state = RelayState.FAILED
            self.error = TransportError('Review stream aborted')
            logger.warning(f"Relay stream aborted after {self.fragments} fragments")

        self._release()
        if not self._iterator.gi_running:
            self._iterator.close()

    def _relay(self) -> Iterator[str]:
        try:
            for event in self._events:
                if self.aborted:
                    return
                # Events without data lines carry nothing to relay
                if not event.data:
                    continue
                if event.data == DONE_SENTINEL:
                    self._finish()
                    return

                fragment = extract_delta(event.data)
                if fragment:
                    self.fragments += 1
                    yield fragment
                    if self.aborted:
                        return

            if not self.aborted:
                # Upstream closed without [DONE]; end of stream is positional
                self._finish()

        except DecodeError as e:
            self._fail(e)
            raise

        except SSEError as e:
            # Not an event stream at all (wrong Content-Type)
            if self.aborted:
                return
            error = DecodeError(f"Upstream did not answer with an event stream: {e}")
            self._fail(error)
            raise error from e

        except (httpx.HTTPError, httpx.StreamError) as e:
            if self.aborted:
                return
            error = TransportError(
                f"Upstream stream interrupted: {e.__class__.__name__}"
            )
            self._fail(error)
            raise error from e

        finally:
            self._release()

    def _finish(self) -> None:
        self.state = RelayState.CLOSED
        duration_ms = int((time.monotonic() - self._started_at) * 1000)
        logger.info(f"Relay stream closed: {self.fragments} fragments in {duration_ms}ms")

    def _fail(self, error: Exception) -> None:
        self.state = RelayState.FAILED
        self.error = error
        logger.warning(f"Relay stream failed after {self.fragments} fragments: {error}")

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        if self._on_close is not None:
            try:
                self._on_close()
            except Exception as e:
                logger.warning(f"Error releasing upstream response: {e}")
