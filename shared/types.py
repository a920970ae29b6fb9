"""Shared types for the workflow API and the session services."""

from enum import Enum
from typing import Dict, List, Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from shared.constants import MIN_DEBUG_PORT, MAX_DEBUG_PORT


class SessionPhase(str, Enum):
    DISCOVERED = "DISCOVERED"
    SELECTED = "SELECTED"
    STARTED = "STARTED"


class DialogState(str, Enum):
    CLOSED = "CLOSED"
    LOADING = "LOADING"
    READY = "READY"


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class Node(BaseModel):
    """A workflow step as rendered by the editor"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    type: Optional[str] = None
    position: Position = Field(default_factory=Position)
    data: Dict[str, Any] = Field(default_factory=dict)
    width: Optional[float] = None
    height: Optional[float] = None
    selected: bool = False


class Edge(BaseModel):
    """Directed sequencing between two workflow steps"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")
    type: Optional[str] = None
    label: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    selected: bool = False


class WorkflowGraph(BaseModel):
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]


class PersistedWorkflow(BaseModel):
    """Stored workflow record; nodes/edges hold the codec output untouched"""
    id: Optional[str] = None
    name: str = ""
    description: str = ""
    nodes: Optional[List[Dict[str, Any]]] = Field(default_factory=list)
    edges: Optional[List[Dict[str, Any]]] = Field(default_factory=list)
    owner_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ProxyInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    protocol: Optional[str] = None


class BrowserSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    uuid: str
    name: str = ""
    status: str = ""
    # None means the discovery transport did not report a proxy, not "no proxy"
    proxy: Optional[ProxyInfo] = None
    debug_port: Optional[int] = None

    @property
    def proxy_protocol(self) -> Optional[str]:
        return self.proxy.protocol if self.proxy else None

    @property
    def is_started(self) -> bool:
        return self.debug_port is not None


class ReferrerRule(BaseModel):
    url: str
    replace: str


class SessionStartRequest(BaseModel):
    uuid: str
    headless: bool = False
    debug_port: int = Field(ge=MIN_DEBUG_PORT, le=MAX_DEBUG_PORT)
    disable_images: bool = True
    chromium_args: str = ""
    referrer_values: List[ReferrerRule] = Field(default_factory=list)


class SessionStartResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    uuid: str
    debug_port: int
