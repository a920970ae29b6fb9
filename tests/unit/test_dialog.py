"""
Unit tests for the session selection dialog.
"""

import json
import pytest
from unittest.mock import Mock
from services.sessions.engine.dialog import SessionSelectDialog
from services.sessions.engine.registry import (
    DirectFetchTransport,
    RelayTransport,
    SessionRegistryClient
)
from services.sessions.infra.relay import RelayMessage
from shared.exceptions import ValidationError
from shared.types import BrowserSession, DialogState, SessionStartResult
from session_fakes import (
    DAEMON_URL,
    SESSIONS_PAYLOAD,
    FakeChannel,
    FakeOpener,
    FakeSubscription,
    http_response
)


def make_daemon():
    daemon = Mock()
    daemon.start_session.side_effect = lambda req: SessionStartResult(uuid=req.uuid, debug_port=9300)
    return daemon


def make_dialog(sessions=None):
    registry = Mock()
    registry.discover.return_value = sessions if sessions is not None else [
        BrowserSession(uuid="s1", name="Alpha"),
        BrowserSession(uuid="s2", name="Beta"),
    ]
    return SessionSelectDialog(registry, make_daemon()), registry


def test_load_moves_from_loading_to_ready():
    dialog, _ = make_dialog()

    dialog.open()
    assert dialog.state == DialogState.LOADING
    assert dialog.visible_sessions("") == []

    sessions = dialog.load()

    assert dialog.state == DialogState.READY
    assert [s.uuid for s in sessions] == ["s1", "s2"]


def test_discovery_failure_renders_empty_state():
    """HTTP 500 from the daemon gives an empty list and exactly one notice"""
    http = Mock()
    http.get.return_value = http_response(status_code=500)
    registry = SessionRegistryClient(DirectFetchTransport(daemon_url=DAEMON_URL, http=http))
    dialog = SessionSelectDialog(registry, make_daemon())

    dialog.open()
    dialog.load()

    assert dialog.state == DialogState.READY
    assert dialog.visible_sessions("") == []
    assert len(dialog.notices) == 1
    assert dialog.notices[0].error_type == "DiscoveryError"


def test_relay_foreign_origin_keeps_dialog_loading():
    """A foreign-origin reply is ignored; the dialog stays loading until timeout"""
    states = []
    message = RelayMessage(origin="http://attacker.example", data=json.dumps(SESSIONS_PAYLOAD))
    subscription = FakeSubscription([message], on_poll=lambda: states.append(dialog.state))
    opener = FakeOpener()
    transport = RelayTransport(FakeChannel(subscription), opener, daemon_url=DAEMON_URL,
                               timeout=0.05, poll_interval=0.01)
    dialog = SessionSelectDialog(SessionRegistryClient(transport), make_daemon())

    dialog.open()
    dialog.load()

    assert states and all(state == DialogState.LOADING for state in states)
    assert dialog.controller.sessions == []
    assert [n.error_type for n in dialog.notices] == ["DiscoveryTimeoutError"]
    assert subscription.closed and opener.context.closed


def test_close_during_relay_cancels_discovery():
    dialog_holder = {}
    subscription = FakeSubscription([], on_poll=lambda: dialog_holder["dialog"].close())
    opener = FakeOpener()
    transport = RelayTransport(FakeChannel(subscription), opener, daemon_url=DAEMON_URL,
                               timeout=5, poll_interval=0.01)
    dialog = SessionSelectDialog(SessionRegistryClient(transport), make_daemon())
    dialog_holder["dialog"] = dialog

    dialog.open()
    result = dialog.load()

    assert result == []
    assert dialog.notices == []
    assert dialog.state == DialogState.CLOSED
    assert subscription.closed and opener.context.closed


def test_result_after_close_is_discarded():
    """A direct fetch that finishes after close must not populate the dialog"""
    dialog, registry = make_dialog()

    def discover(cancel_event=None):
        dialog.close()
        return [BrowserSession(uuid="late", name="Late")]

    registry.discover.side_effect = discover

    dialog.open()
    result = dialog.load()

    assert result == []
    assert dialog.controller.sessions == []
    assert dialog.state == DialogState.CLOSED


def test_failure_after_close_is_not_reported():
    from shared.exceptions import DiscoveryError

    dialog, registry = make_dialog()

    def discover(cancel_event=None):
        dialog.close()
        raise DiscoveryError("timed out")

    registry.discover.side_effect = discover

    dialog.open()
    dialog.load()

    assert dialog.notices == []


def test_confirm_starts_selected_and_closes():
    dialog, _ = make_dialog()
    dialog.open()
    dialog.load()
    dialog.set_headless(True)
    dialog.toggle_select("s2", True)

    sessions = dialog.confirm()

    assert [(s.uuid, s.debug_port) for s in sessions] == [("s2", 9300)]
    assert dialog.state == DialogState.CLOSED
    assert dialog.controller.daemon.start_session.call_args[0][0].headless is True


def test_confirm_requires_selection():
    dialog, _ = make_dialog()
    dialog.open()
    dialog.load()

    with pytest.raises(ValidationError):
        dialog.confirm()


def test_confirm_while_loading_rejected():
    dialog, _ = make_dialog()
    dialog.open()

    with pytest.raises(ValidationError):
        dialog.confirm()


def test_reopen_resets_selection():
    dialog, _ = make_dialog()
    dialog.open()
    dialog.load()
    dialog.toggle_select("s1", True)

    dialog.close()
    dialog.open()
    dialog.load()

    assert dialog.controller.selected == set()


def test_refresh_keeps_selection():
    dialog, _ = make_dialog()
    dialog.open()
    dialog.load()
    dialog.toggle_select("s1", True)

    dialog.load()

    assert dialog.controller.selected == {"s1"}


def test_load_on_closed_dialog_rejected():
    dialog, _ = make_dialog()

    with pytest.raises(ValidationError):
        dialog.load()
