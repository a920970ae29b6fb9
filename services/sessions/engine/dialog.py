"""One invocation of the browser-session selection dialog."""

import logging
import threading
from typing import Callable, List, Optional
from services.sessions.engine.lifecycle import SessionLifecycleController
from shared.exceptions import (
    DiscoveryCancelledError,
    DiscoveryError,
    MalformedResponseError,
    Notice,
    ValidationError
)
from shared.types import BrowserSession, DialogState


class SessionSelectDialog:
    """Discovery, selection and confirmation between open() and close().

    Each open() starts a new invocation. Discovery results that arrive after
    the invocation they belong to was closed are discarded, and close()
    cancels an outstanding relay discovery.
    """

    def __init__(self, registry, daemon_client,
                 on_notice: Optional[Callable[[Notice], None]] = None):
        self.registry = registry
        self.controller = SessionLifecycleController(daemon_client, on_notice=on_notice)
        self.state = DialogState.CLOSED
        self._generation = 0
        self._cancel = threading.Event()

    @property
    def notices(self) -> List[Notice]:
        return self.controller.notices

    def open(self) -> None:
        self._generation += 1
        self._cancel = threading.Event()
        self.state = DialogState.LOADING

    def close(self) -> None:
        self._cancel.set()
        self.controller.clear_selection()
        self.state = DialogState.CLOSED

    def is_open(self) -> bool:
        return self.state != DialogState.CLOSED

    def load(self) -> List[BrowserSession]:
        """Runs discovery for the current invocation and returns the visible list"""
        if not self.is_open():
            raise ValidationError("Cannot load sessions for a closed dialog")

        generation, cancel = self._generation, self._cancel
        self.state = DialogState.LOADING
        try:
            sessions = self.registry.discover(cancel_event=cancel)
        except DiscoveryCancelledError:
            logging.info("Session discovery cancelled")
            return []
        except (DiscoveryError, MalformedResponseError) as e:
            if not self._is_current(generation):
                return []
            self.controller.report(e)
            sessions = []

        if not self._is_current(generation):
            logging.info("Discarding discovery result for closed dialog", extra={"count": len(sessions)})
            return []

        self.controller.set_sessions(sessions)
        self.state = DialogState.READY
        return self.controller.visible_sessions("")

    def set_headless(self, headless: bool) -> None:
        self.controller.headless = headless

    def toggle_select(self, uuid: str, selected: bool) -> None:
        self.controller.toggle_select(uuid, selected)

    def visible_sessions(self, query: str = "") -> List[BrowserSession]:
        if self.state != DialogState.READY:
            return []
        return self.controller.visible_sessions(query)

    def confirm(self) -> List[BrowserSession]:
        """Starts the selected sessions, closes the dialog and hands them back"""
        if self.state != DialogState.READY:
            raise ValidationError("Sessions are still loading")
        if not self.controller.selected:
            raise ValidationError("Select at least one browser session")

        sessions = self.controller.confirm_selection()
        self.close()
        return sessions

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self.is_open()
