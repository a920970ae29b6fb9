"""
Message broker client for handing workflow runs to the execution service.
"""

import logging
import os
from typing import List
from celery import Celery
from shared.logging_config import get_correlation_id
from shared.types import BrowserSession


class BrokerClient:
    """Celery client for API service"""

    def __init__(self, broker_url: str = None):
        url = broker_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")

        self.app = Celery(
            "api",
            broker=url,
            backend=url
        )

        self.app.conf.update(
            task_serializer="json",
            accept_content=["json"],
            result_serializer="json",
            timezone="UTC",
            enable_utc=True,
        )

    def trigger_run(self, workflow_id: str, sessions: List[BrowserSession]) -> None:
        """Fire-and-forget: the executor owns everything after this call"""
        correlation_id = get_correlation_id()
        payload = [{"uuid": s.uuid, "debug_port": s.debug_port} for s in sessions]

        self.app.send_task(
            "executor.run_workflow",
            kwargs={"workflow_id": workflow_id, "sessions": payload, "correlation_id": correlation_id},
            queue="executor"
        )
        logging.info("Workflow run triggered", extra={"workflow_id": workflow_id, "session_count": len(payload)})
