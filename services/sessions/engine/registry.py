"""Browser session discovery over the direct-fetch and relay transports."""

import json
import logging
import os
import threading
import time
from contextlib import closing
from typing import Any, List, Optional
from urllib.parse import urlencode, urlsplit
import requests
from requests.exceptions import RequestException
from pydantic import ValidationError as PydanticValidationError
from services.sessions.infra.daemon_client import daemon_url_from_env
from services.sessions.infra.relay import BrowserContextOpener, RedisRelayChannel
from shared.constants import (
    DISCOVERY_TIMEOUT_SECONDS,
    DISCOVERY_TRANSPORTS,
    RELAY_POLL_INTERVAL_SECONDS,
    RELAY_WAIT_TIMEOUT_SECONDS,
    SESSIONS_PATH,
    TRANSPORT_DIRECT,
    TRANSPORT_RELAY
)
from shared.exceptions import (
    DiscoveryError,
    DiscoveryCancelledError,
    DiscoveryTimeoutError,
    MalformedResponseError
)
from shared.types import BrowserSession


def parse_sessions(payload: Any) -> List[BrowserSession]:
    """Validates a decoded session list, keeping daemon order"""
    if not isinstance(payload, list):
        raise MalformedResponseError(f"Expected a session list, got {type(payload).__name__}")
    try:
        return [BrowserSession.model_validate(item) for item in payload]
    except PydanticValidationError as e:
        raise MalformedResponseError(f"Invalid session entry: {e.error_count()} error(s)")


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


class DirectFetchTransport:
    """Plain GET against the daemon's discovery endpoint"""

    name = TRANSPORT_DIRECT

    def __init__(self, daemon_url: Optional[str] = None, http: Optional[requests.Session] = None,
                 timeout: float = DISCOVERY_TIMEOUT_SECONDS):
        self.daemon_url = (daemon_url or daemon_url_from_env()).rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout

    def fetch_sessions(self, cancel_event: Optional[threading.Event] = None) -> List[BrowserSession]:
        # No cancellation mid-request; the dialog discards stale results instead
        url = f"{self.daemon_url}{SESSIONS_PATH}"
        try:
            response = self.http.get(url, timeout=self.timeout)
        except RequestException as e:
            raise DiscoveryError(f"Session discovery failed: {e}", url=url)

        if not response.ok:
            raise DiscoveryError(
                f"Session discovery returned HTTP {response.status_code}",
                url=url,
                http_status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Session discovery body is not JSON: {e}", url=url)

        return parse_sessions(payload)


class RelayTransport:
    """Legacy discovery: the daemon posts the list back over a reply channel.

    A browsing context is opened at the discovery endpoint with the reply
    channel name in the query string. Only messages whose origin equals the
    daemon origin are accepted. The subscription and the context are both
    released on every exit path: success, failure, timeout or cancellation.
    """

    name = TRANSPORT_RELAY

    def __init__(self, channel, opener, daemon_url: Optional[str] = None,
                 timeout: float = RELAY_WAIT_TIMEOUT_SECONDS,
                 poll_interval: float = RELAY_POLL_INTERVAL_SECONDS):
        self.channel = channel
        self.opener = opener
        self.daemon_url = (daemon_url or daemon_url_from_env()).rstrip("/")
        self.expected_origin = origin_of(self.daemon_url)
        self.timeout = timeout
        self.poll_interval = poll_interval

    def fetch_sessions(self, cancel_event: Optional[threading.Event] = None) -> List[BrowserSession]:
        with closing(self.channel.subscribe()) as subscription:
            query = urlencode({"relay_channel": subscription.name})
            url = f"{self.daemon_url}{SESSIONS_PATH}?{query}"

            with closing(self.opener.open(url)):
                deadline = time.monotonic() + self.timeout
                while True:
                    if cancel_event is not None and cancel_event.is_set():
                        raise DiscoveryCancelledError("Relay discovery cancelled", channel=subscription.name)

                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise DiscoveryTimeoutError(
                            f"No session list relayed within {self.timeout}s",
                            channel=subscription.name
                        )

                    message = subscription.get_message(timeout=min(self.poll_interval, remaining))
                    if message is None:
                        continue

                    if message.origin != self.expected_origin:
                        logging.warning("Ignoring relay message from unexpected origin", extra={
                            "origin": message.origin,
                            "expected_origin": self.expected_origin
                        })
                        continue

                    return parse_sessions(self._decode(message.data))

    @staticmethod
    def _decode(data: Any) -> Any:
        if isinstance(data, bytes):
            data = data.decode('utf-8')
        if isinstance(data, str):
            try:
                return json.loads(data)
            except ValueError as e:
                raise MalformedResponseError(f"Relayed session data is not JSON: {e}")
        return data


class SessionRegistryClient:
    """Single discovery entry point over a primary and optional fallback transport"""

    def __init__(self, transport, fallback=None):
        self.transport = transport
        self.fallback = fallback

    @classmethod
    def from_env(cls) -> "SessionRegistryClient":
        mode = os.getenv("SESSION_DISCOVERY_TRANSPORT", TRANSPORT_DIRECT)
        if mode not in DISCOVERY_TRANSPORTS:
            raise ValueError(f"Unknown discovery transport: {mode}")

        if mode == TRANSPORT_RELAY:
            return cls(RelayTransport(RedisRelayChannel(), BrowserContextOpener()))
        return cls(DirectFetchTransport())

    def discover(self, cancel_event: Optional[threading.Event] = None) -> List[BrowserSession]:
        try:
            sessions = self.transport.fetch_sessions(cancel_event)
        except DiscoveryCancelledError:
            raise
        except DiscoveryError as e:
            if self.fallback is None:
                raise
            logging.warning("Primary discovery transport failed, trying fallback", extra={
                "transport": self.transport.name,
                "fallback": self.fallback.name,
                "error": e.message
            })
            sessions = self.fallback.fetch_sessions(cancel_event)

        logging.info("Browser sessions discovered", extra={"count": len(sessions)})
        return sessions
