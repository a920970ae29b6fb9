"""API request/response models."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from shared.exceptions import Notice
from shared.types import BrowserSession


class CreateWorkflowRequest(BaseModel):
    """Request body for creating a new workflow"""
    name: str
    description: str
    nodes: Optional[List[Dict[str, Any]]] = None
    edges: Optional[List[Dict[str, Any]]] = None


class Connection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")


class UpdateWorkflowRequest(BaseModel):
    """Explicit save: metadata, an optional full graph, and editor changes applied in order"""
    name: Optional[str] = None
    description: Optional[str] = None
    nodes: Optional[List[Dict[str, Any]]] = None
    edges: Optional[List[Dict[str, Any]]] = None
    node_changes: List[Dict[str, Any]] = Field(default_factory=list)
    edge_changes: List[Dict[str, Any]] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)


class SaveWorkflowResponse(BaseModel):
    id: str


class WorkflowResponse(BaseModel):
    id: str
    name: str
    description: str
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class WorkflowSummary(BaseModel):
    id: str
    name: str
    description: str
    created_at: Optional[str] = None


class SessionListResponse(BaseModel):
    sessions: List[BrowserSession]
    notices: List[Notice] = Field(default_factory=list)


class RunWorkflowRequest(BaseModel):
    session_uuids: List[str] = Field(min_length=1)
    headless: bool = False


class RunWorkflowResponse(BaseModel):
    workflow_id: str
    status: str
    sessions: List[BrowserSession]
    notices: List[Notice] = Field(default_factory=list)
