"""
Unit tests for the Redis relay channel and browser context opener.
"""

import json
import subprocess
import pytest
from unittest.mock import Mock, patch
from services.sessions.infra.relay import (
    BrowserContext,
    BrowserContextOpener,
    RedisRelayChannel,
    RedisRelaySubscription
)
from shared.exceptions import DiscoveryError


def test_subscribe_uses_unique_channel():
    redis_mock = Mock()
    channel = RedisRelayChannel(client=redis_mock)

    first = channel.subscribe()
    second = channel.subscribe()

    assert first.name != second.name
    assert first.name.startswith("relay:sessions:")
    redis_mock.pubsub.return_value.subscribe.assert_any_call(first.name)


def test_subscription_decodes_envelope():
    pubsub = Mock()
    pubsub.get_message.return_value = {
        "type": "message",
        "data": json.dumps({"origin": "http://127.0.0.1:40080", "data": "[]"}).encode()
    }
    subscription = RedisRelaySubscription(pubsub, "relay:sessions:x")

    message = subscription.get_message(timeout=0.1)

    assert message.origin == "http://127.0.0.1:40080"
    assert message.data == "[]"


def test_subscription_drops_unreadable_envelope():
    pubsub = Mock()
    pubsub.get_message.return_value = {"type": "message", "data": b"not json"}
    subscription = RedisRelaySubscription(pubsub, "relay:sessions:x")

    assert subscription.get_message(timeout=0.1) is None


def test_subscription_drops_envelope_without_origin():
    pubsub = Mock()
    pubsub.get_message.return_value = {"type": "message", "data": json.dumps({"data": "[]"})}
    subscription = RedisRelaySubscription(pubsub, "relay:sessions:x")

    assert subscription.get_message(timeout=0.1) is None


def test_subscription_close_is_idempotent():
    pubsub = Mock()
    subscription = RedisRelaySubscription(pubsub, "relay:sessions:x")

    subscription.close()
    subscription.close()

    pubsub.unsubscribe.assert_called_once_with("relay:sessions:x")
    pubsub.close.assert_called_once()


def test_opener_launches_browser_with_url():
    with patch("services.sessions.infra.relay.subprocess.Popen") as popen:
        context = BrowserContextOpener("chromium --new-window").open("http://127.0.0.1:40080/sessions")

    args = popen.call_args[0][0]
    assert args == ["chromium", "--new-window", "http://127.0.0.1:40080/sessions"]
    assert isinstance(context, BrowserContext)


def test_opener_failure_is_discovery_error():
    with patch("services.sessions.infra.relay.subprocess.Popen", side_effect=FileNotFoundError("chromium")):
        with pytest.raises(DiscoveryError):
            BrowserContextOpener("chromium").open("http://127.0.0.1:40080/sessions")


def test_context_close_terminates_running_process():
    process = Mock()
    process.poll.return_value = None
    process.wait.side_effect = subprocess.TimeoutExpired("chromium", 5)

    BrowserContext(process).close()

    process.terminate.assert_called_once()
    process.kill.assert_called_once()


def test_context_close_skips_exited_process():
    process = Mock()
    process.poll.return_value = 0

    BrowserContext(process).close()

    process.terminate.assert_not_called()
