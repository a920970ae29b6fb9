"""Selection, start and visibility rules for discovered browser sessions."""

import logging
import random
from typing import Callable, Dict, List, Optional, Set
from shared.constants import DEFAULT_REFERRER_RULE, DISABLE_IMAGES, IMAGE_DISABLE_CHROMIUM_ARG
from shared.exceptions import Notice, SessionStartError, UnknownSessionError, WorkflowError
from shared.types import (
    BrowserSession,
    ReferrerRule,
    SessionPhase,
    SessionStartRequest,
    SessionStartResult
)
from shared.utils import random_debug_port


class SessionLifecycleController:
    """Owns the session list and selection set for one dialog invocation"""

    def __init__(self, daemon_client, headless: bool = False,
                 rng: Optional[random.Random] = None,
                 on_notice: Optional[Callable[[Notice], None]] = None):
        self.daemon = daemon_client
        self.headless = headless
        self.rng = rng
        self.on_notice = on_notice
        self.notices: List[Notice] = []
        self._sessions: List[BrowserSession] = []
        self._selected: Set[str] = set()

    @property
    def sessions(self) -> List[BrowserSession]:
        return list(self._sessions)

    @property
    def selected(self) -> Set[str]:
        return set(self._selected)

    def set_sessions(self, sessions: List[BrowserSession]) -> None:
        """Replaces the list after discovery, keeping selections and debug ports by uuid"""
        known_ports: Dict[str, int] = {s.uuid: s.debug_port for s in self._sessions if s.is_started}

        merged = []
        for session in sessions:
            if session.debug_port is None and session.uuid in known_ports:
                session = session.model_copy(update={"debug_port": known_ports[session.uuid]})
            merged.append(session)

        present = {s.uuid for s in merged}
        dropped = self._selected - present
        if dropped:
            logging.info("Selected sessions no longer reported by daemon", extra={"uuids": sorted(dropped)})

        self._sessions = merged
        self._selected &= present

    def toggle_select(self, uuid: str, selected: bool) -> None:
        if selected:
            self._selected.add(uuid)
        else:
            self._selected.discard(uuid)

    def clear_selection(self) -> None:
        self._selected.clear()

    def phase(self, uuid: str) -> SessionPhase:
        session = self._find(uuid)
        if session is not None and session.is_started:
            return SessionPhase.STARTED
        if uuid in self._selected:
            return SessionPhase.SELECTED
        return SessionPhase.DISCOVERED

    def build_start_request(self, uuid: str, headless: bool) -> SessionStartRequest:
        return SessionStartRequest(
            uuid=uuid,
            headless=headless,
            debug_port=random_debug_port(self.rng),
            disable_images=DISABLE_IMAGES,
            chromium_args=IMAGE_DISABLE_CHROMIUM_ARG,
            referrer_values=[ReferrerRule(**DEFAULT_REFERRER_RULE)]
        )

    def start_session(self, uuid: str, headless: Optional[bool] = None,
                      restart: bool = False) -> SessionStartResult:
        """Starts one session and records the daemon-assigned debug port.

        An already started session is not started again unless ``restart`` is
        set; its recorded port is returned instead. Raises SessionStartError
        on failure, leaving the session's phase as it was.
        """
        session = self._find(uuid)
        if session is None:
            raise UnknownSessionError(f"Cannot start unknown session {uuid}", uuid=uuid)

        if session.is_started and not restart:
            logging.info("Session already started", extra={"uuid": uuid, "debug_port": session.debug_port})
            return SessionStartResult(uuid=uuid, debug_port=session.debug_port)

        request = self.build_start_request(uuid, self.headless if headless is None else headless)
        result = self.daemon.start_session(request)

        index = self._index(result.uuid)
        if index is None:
            raise UnknownSessionError(
                f"Daemon reported a start for unknown session {result.uuid}",
                uuid=uuid,
                reported_uuid=result.uuid
            )

        self._sessions[index] = self._sessions[index].model_copy(update={"debug_port": result.debug_port})
        logging.info("Session started", extra={
            "uuid": result.uuid,
            "candidate_port": request.debug_port,
            "debug_port": result.debug_port
        })
        return result

    def confirm_selection(self) -> List[BrowserSession]:
        """Starts every selected session one after another.

        All selected sessions are returned in list order; one whose start
        failed comes back without a debug port.
        """
        headless = self.headless
        for uuid in [s.uuid for s in self._sessions if s.uuid in self._selected]:
            try:
                self.start_session(uuid, headless=headless)
            except SessionStartError as e:
                self.report(e)

        return [s for s in self._sessions if s.uuid in self._selected]

    def visible_sessions(self, query: str = "") -> List[BrowserSession]:
        needle = (query or "").lower()
        return [
            s for s in self._sessions
            if s.uuid in self._selected or (needle in s.name.lower() and not s.is_started)
        ]

    def report(self, error: WorkflowError) -> None:
        notice = Notice.from_error(error)
        logging.error(error.message, extra={"error_type": notice.error_type, **error.context})
        self.notices.append(notice)
        if self.on_notice is not None:
            self.on_notice(notice)

    def _index(self, uuid: str) -> Optional[int]:
        for i, session in enumerate(self._sessions):
            if session.uuid == uuid:
                return i
        return None

    def _find(self, uuid: str) -> Optional[BrowserSession]:
        index = self._index(uuid)
        return None if index is None else self._sessions[index]
