"""
Wikimedia EventStreams client.

Reads the recent-change stream over server-sent events and hands every
decoded JSON message to a callback. Connection failures are reported to
an error callback and retried with exponential backoff; a read timeout
acts as the idle watchdog.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable

import requests
import sseclient

logger = logging.getLogger(__name__)

EVENTSTREAM_URL = "https://stream.wikimedia.org/v2/stream/recentchange"
USER_AGENT = "wikipulse/0.1 (recent changes monitor)"


class EventStreamClient:
    """Long-running SSE consumer with reconnects."""

    def __init__(
        self,
        on_event: Callable[[dict[str, Any]], object],
        *,
        url: str = EVENTSTREAM_URL,
        on_error: Callable[[Exception], None] | None = None,
        connect_timeout: float = 10.0,
        idle_timeout: float = 60.0,
        min_backoff: float = 1.0,
        max_backoff: float = 60.0,
        session: requests.Session | None = None,
    ):
        """
        Args:
            on_event: Called with each decoded message
            url: Stream endpoint
            on_error: Called with transport errors before reconnecting
            connect_timeout: Seconds to wait for the connection
            idle_timeout: Seconds without data before reconnecting
            min_backoff: First reconnect delay in seconds
            max_backoff: Upper bound for the reconnect delay
            session: requests session to use (created if None)
        """
        self.on_event = on_event
        self.on_error = on_error
        self.url = url
        self.connect_timeout = connect_timeout
        self.idle_timeout = idle_timeout
        self.min_backoff = min_backoff
        self.max_backoff = max_backoff
        self.session = session or requests.Session()
        self.last_event_id: str | None = None

        self._stopped = threading.Event()
        self._response: requests.Response | None = None
        self._thread: threading.Thread | None = None

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "text/event-stream", "User-Agent": USER_AGENT}
        if self.last_event_id:
            headers["Last-Event-ID"] = self.last_event_id
        return headers

    def _dispatch(self, data: str) -> None:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("skipping non-JSON message: %.80s", data)
            return
        if not isinstance(payload, dict):
            return
        try:
            self.on_event(payload)
        except Exception:
            logger.exception("event handler failed")

    def consume_once(self) -> int:
        """
        Read from one connection until it ends.

        Returns the number of messages received. Transport errors
        propagate to the caller.
        """
        count = 0
        response = self.session.get(
            self.url,
            headers=self._headers(),
            stream=True,
            timeout=(self.connect_timeout, self.idle_timeout),
        )
        self._response = response
        try:
            response.raise_for_status()
            client = sseclient.SSEClient(response)
            for message in client.events():
                if self._stopped.is_set():
                    break
                if message.id:
                    self.last_event_id = message.id
                if message.event not in ("message", None, "") or not message.data:
                    continue
                self._dispatch(message.data)
                count += 1
        finally:
            self._response = None
            response.close()
        return count

    def run(self) -> None:
        """Consume the stream until stop() is called."""
        backoff = self.min_backoff
        while not self._stopped.is_set():
            received = 0
            try:
                received = self.consume_once()
            except requests.RequestException as e:
                if self._stopped.is_set():
                    break
                logger.warning("stream error: %s (reconnecting in %.0fs)", e, backoff)
                if self.on_error:
                    self.on_error(e)
            except Exception as e:
                if self._stopped.is_set():
                    break
                logger.exception("unexpected stream failure (reconnecting in %.0fs)", backoff)
                if self.on_error:
                    self.on_error(e)

            if received:
                backoff = self.min_backoff
                continue
            # Nothing came through: back off before reconnecting.
            if self._stopped.wait(backoff):
                break
            backoff = min(backoff * 2, self.max_backoff)

    def start(self) -> threading.Thread:
        """Run the consumer on a daemon thread."""
        self._thread = threading.Thread(target=self.run, name="wikipulse-stream", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop consuming and close the open connection."""
        self._stopped.set()
        response = self._response
        if response is not None:
            response.close()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
