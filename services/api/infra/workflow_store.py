"""
Redis-backed store for workflow records.
"""

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Optional, List
import redis
from pydantic import ValidationError as PydanticValidationError
from shared.exceptions import PersistenceError, WorkflowNotFoundError
from shared.types import PersistedWorkflow


class WorkflowStore:
    """The `workflows` table: records keyed by id, indexed per owner"""

    def __init__(self, redis_url: Optional[str] = None, client=None):
        url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self.client = client or redis.Redis.from_url(url, decode_responses=False)

    @staticmethod
    def _record_key(workflow_id: str) -> str:
        return f"workflow:{workflow_id}"

    @staticmethod
    def _owner_key(owner_id: str) -> str:
        return f"owner:{owner_id}:workflows"

    def load(self, workflow_id: str, owner_id: str) -> PersistedWorkflow:
        try:
            data = self.client.get(self._record_key(workflow_id))
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to load workflow {workflow_id}: {e}", workflow_id=workflow_id)

        if not data:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found", workflow_id=workflow_id)

        workflow = _decode(data, workflow_id)
        if workflow.owner_id != owner_id:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found", workflow_id=workflow_id)
        return workflow

    def save(self, workflow: PersistedWorkflow) -> str:
        """Inserts when the record has no id yet, otherwise updates it in place"""
        now = datetime.now(timezone.utc).isoformat()

        if workflow.id is None:
            record = workflow.model_copy(update={
                "id": str(uuid.uuid4()),
                "created_at": now,
                "updated_at": now
            })
        else:
            existing = self.load(workflow.id, workflow.owner_id)
            record = workflow.model_copy(update={
                "created_at": existing.created_at,
                "updated_at": now
            })

        try:
            pipe = self.client.pipeline()
            pipe.set(self._record_key(record.id), record.model_dump_json())
            pipe.zadd(self._owner_key(record.owner_id), {record.id: _timestamp(record.created_at)})
            pipe.execute()
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to save workflow {record.id}: {e}", workflow_id=record.id)

        logging.info("Workflow saved", extra={"workflow_id": record.id, "created": workflow.id is None})
        return record.id

    def delete(self, workflow_id: str, owner_id: str) -> None:
        self.load(workflow_id, owner_id)
        try:
            pipe = self.client.pipeline()
            pipe.delete(self._record_key(workflow_id))
            pipe.zrem(self._owner_key(owner_id), workflow_id)
            pipe.execute()
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to delete workflow {workflow_id}: {e}", workflow_id=workflow_id)

        logging.info("Workflow deleted", extra={"workflow_id": workflow_id})

    def list_for_owner(self, owner_id: str) -> List[PersistedWorkflow]:
        """Newest first"""
        try:
            ids = self.client.zrevrange(self._owner_key(owner_id), 0, -1)
            if not ids:
                return []
            records = self.client.mget([self._record_key(i.decode('utf-8')) for i in ids])
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to list workflows: {e}", owner_id=owner_id)

        return [
            _decode(data, key.decode("utf-8"))
            for key, data in zip(ids, records)
            if data
        ]


def _decode(data: bytes, workflow_id: str) -> PersistedWorkflow:
    try:
        return PersistedWorkflow.model_validate(json.loads(data))
    except (ValueError, PydanticValidationError) as e:
        raise PersistenceError(f"Stored workflow {workflow_id} is unreadable: {e}", workflow_id=workflow_id)


def _timestamp(iso_value: Optional[str]) -> float:
    if not iso_value:
        return 0.0
    return datetime.fromisoformat(iso_value).timestamp()
