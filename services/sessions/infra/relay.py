"""
Relay plumbing: a Redis pub/sub reply channel and the secondary browsing
context the daemon answers from.
"""

import json
import logging
import os
import shlex
import subprocess
import uuid
from dataclasses import dataclass
from typing import Any, Optional, List
import redis
from shared.constants import DEFAULT_RELAY_BROWSER_COMMAND, RELAY_CHANNEL_PREFIX
from shared.exceptions import DiscoveryError


@dataclass
class RelayMessage:
    origin: str
    data: Any


class RedisRelaySubscription:
    """One reply channel; must be closed to drop the listener"""

    def __init__(self, pubsub, name: str):
        self.pubsub = pubsub
        self.name = name
        self.closed = False

    def get_message(self, timeout: float) -> Optional[RelayMessage]:
        raw = self.pubsub.get_message(ignore_subscribe_messages=True, timeout=timeout)
        if not raw:
            return None

        try:
            envelope = json.loads(raw["data"])
        except (TypeError, ValueError):
            logging.warning("Dropping relay message without a readable envelope", extra={"channel": self.name})
            return None

        if not isinstance(envelope, dict) or "origin" not in envelope:
            logging.warning("Dropping relay message without an origin", extra={"channel": self.name})
            return None

        return RelayMessage(origin=envelope["origin"], data=envelope.get("data"))

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.pubsub.unsubscribe(self.name)
        self.pubsub.close()


class RedisRelayChannel:

    def __init__(self, redis_url: Optional[str] = None, client=None):
        url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self.client = client or redis.Redis.from_url(url, decode_responses=False)

    def subscribe(self) -> RedisRelaySubscription:
        name = f"{RELAY_CHANNEL_PREFIX}:{uuid.uuid4()}"
        pubsub = self.client.pubsub()
        pubsub.subscribe(name)
        return RedisRelaySubscription(pubsub, name)


class BrowserContext:
    """A browser window opened for the daemon to post its reply from"""

    def __init__(self, process: subprocess.Popen):
        self.process = process

    @property
    def closed(self) -> bool:
        return self.process.poll() is not None

    def close(self) -> None:
        if self.closed:
            return
        self.process.terminate()
        try:
            self.process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self.process.kill()


class BrowserContextOpener:

    def __init__(self, command: Optional[str] = None):
        raw = command or os.getenv("RELAY_BROWSER_COMMAND", DEFAULT_RELAY_BROWSER_COMMAND)
        self.command: List[str] = shlex.split(raw)

    def open(self, url: str) -> BrowserContext:
        try:
            process = subprocess.Popen(
                self.command + [url],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL
            )
        except OSError as e:
            raise DiscoveryError(f"Could not open relay browsing context: {e}", command=self.command[0])
        return BrowserContext(process)
