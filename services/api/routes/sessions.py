"""Browser session routes."""

import asyncio
import logging
from typing import List, Optional
from fastapi import APIRouter, Query, Request
from fastapi.concurrency import run_in_threadpool
from services.api.domain.models import SessionListResponse
from services.sessions.engine.dialog import SessionSelectDialog
from services.sessions.engine.registry import SessionRegistryClient
from services.sessions.infra.daemon_client import DaemonClient
from shared.constants import DISCONNECT_POLL_SECONDS
from shared.types import BrowserSession


router = APIRouter()
registry = SessionRegistryClient.from_env()
daemon_client = DaemonClient()


def new_dialog() -> SessionSelectDialog:
    return SessionSelectDialog(registry, daemon_client)


async def load_until_disconnect(dialog: SessionSelectDialog, request: Request,
                                poll_interval: float = DISCONNECT_POLL_SECONDS) -> List[BrowserSession]:
    """Runs discovery in the threadpool, closing the dialog if the client goes away.

    Closing cancels a relay wait and releases its browser context; a direct
    fetch result arriving afterwards is discarded by the dialog.
    """
    loading = asyncio.ensure_future(run_in_threadpool(dialog.load))
    while not loading.done():
        if await request.is_disconnected():
            logging.info("Client disconnected during session discovery")
            dialog.close()
            break
        await asyncio.wait({loading}, timeout=poll_interval)
    return await loading


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(request: Request, q: Optional[str] = Query(default="")):
    dialog = new_dialog()
    dialog.open()
    try:
        await load_until_disconnect(dialog, request)
        sessions = dialog.visible_sessions(q or "")
    finally:
        dialog.close()

    return SessionListResponse(sessions=sessions, notices=dialog.notices)
