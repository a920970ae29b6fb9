"""
HTTP client for the local automation daemon.
"""

import logging
import os
from typing import Optional
import requests
from requests.exceptions import RequestException
from pydantic import ValidationError as PydanticValidationError
from shared.constants import DEFAULT_DAEMON_URL, SESSION_START_PATH, SESSION_START_TIMEOUT_SECONDS
from shared.exceptions import SessionStartError
from shared.types import SessionStartRequest, SessionStartResult


def daemon_url_from_env() -> str:
    return os.getenv("SESSION_DAEMON_URL", DEFAULT_DAEMON_URL).rstrip("/")


class DaemonClient:

    def __init__(self, daemon_url: Optional[str] = None, http: Optional[requests.Session] = None,
                 timeout: float = SESSION_START_TIMEOUT_SECONDS):
        self.daemon_url = (daemon_url or daemon_url_from_env()).rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout

    def start_session(self, request: SessionStartRequest) -> SessionStartResult:
        url = f"{self.daemon_url}{SESSION_START_PATH}"
        logging.info("Starting browser session", extra={
            "uuid": request.uuid,
            "debug_port": request.debug_port,
            "headless": request.headless
        })

        try:
            response = self.http.post(url, json=request.model_dump(mode="json"), timeout=self.timeout)
        except RequestException as e:
            raise SessionStartError(f"Session start request failed: {e}", uuid=request.uuid)

        if not response.ok:
            raise SessionStartError(
                f"Session start returned HTTP {response.status_code}",
                uuid=request.uuid,
                http_status_code=response.status_code
            )

        try:
            return SessionStartResult.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise SessionStartError(f"Unreadable session start response: {e}", uuid=request.uuid)
