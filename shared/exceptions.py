"""Structured exception hierarchy for workflow editing and browser sessions."""

from typing import Optional, Dict, Any
from pydantic import BaseModel


class Notice(BaseModel):
    """Transient user-visible notice reported instead of aborting an operation"""
    level: str = "error"
    error_type: str
    message: str
    uuid: Optional[str] = None
    context: Dict[str, Any] = {}

    @classmethod
    def from_error(cls, error: "WorkflowError", level: str = "error") -> "Notice":
        return cls(
            level=level,
            error_type=type(error).__name__,
            message=error.message,
            uuid=getattr(error, "uuid", None),
            context=error.context,
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class WorkflowError(Exception):
    """Base exception for this package"""

    def __init__(self, message: str, **context):
        self.message = message
        self.context = context
        super().__init__(message)


class DiscoveryError(WorkflowError):
    pass


class DiscoveryTimeoutError(DiscoveryError):
    pass


class MalformedResponseError(WorkflowError):
    pass


class SessionStartError(WorkflowError):

    def __init__(self, message: str, uuid: str = "", **context):
        self.uuid = uuid
        super().__init__(message, uuid=uuid, **context)


class UnknownSessionError(SessionStartError):
    """Start result referencing a uuid the controller never discovered"""
    pass


class GraphIntegrityError(WorkflowError):
    pass


class PersistenceError(WorkflowError):
    pass


class WorkflowNotFoundError(WorkflowError):
    pass


class ValidationError(WorkflowError):
    pass


class DiscoveryCancelledError(DiscoveryError):
    """Discovery abandoned because the dialog that asked for it closed"""
    pass
