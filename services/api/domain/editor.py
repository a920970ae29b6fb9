"""Live node/edge state for one workflow editing session."""

import logging
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel
from services.api.domain import codec
from shared.types import Node, Edge, Position, WorkflowGraph, PersistedWorkflow
from shared.utils import generate_edge_id


class AddNodeChange(BaseModel):
    type: Literal["add"] = "add"
    item: Node


class AddEdgeChange(BaseModel):
    type: Literal["add"] = "add"
    item: Edge


class RemoveChange(BaseModel):
    type: Literal["remove"] = "remove"
    id: str


class PositionChange(BaseModel):
    type: Literal["position"] = "position"
    id: str
    position: Optional[Position] = None


class SelectChange(BaseModel):
    type: Literal["select"] = "select"
    id: str
    selected: bool


NodeChange = Union[AddNodeChange, RemoveChange, PositionChange, SelectChange]
EdgeChange = Union[AddEdgeChange, RemoveChange, SelectChange]

NODE_CHANGE_TYPES = {
    "add": AddNodeChange,
    "remove": RemoveChange,
    "position": PositionChange,
    "select": SelectChange,
}

EDGE_CHANGE_TYPES = {
    "add": AddEdgeChange,
    "remove": RemoveChange,
    "select": SelectChange,
}


def parse_change(raw: Union[BaseModel, Dict[str, Any]], change_types: Dict[str, type]) -> Optional[BaseModel]:
    """Returns None for change kinds the editor does not handle"""
    if isinstance(raw, BaseModel):
        return raw if type(raw) in change_types.values() else None
    if not isinstance(raw, dict):
        return None
    model = change_types.get(raw.get("type"))
    if model is None:
        logging.debug("Ignoring unknown graph change", extra={"change_type": raw.get("type")})
        return None
    return model.model_validate(raw)


def apply_node_changes(changes: Iterable[Any], nodes: List[Node]) -> List[Node]:
    result = list(nodes)
    for raw in changes:
        change = parse_change(raw, NODE_CHANGE_TYPES)
        if change is None:
            continue

        if isinstance(change, AddNodeChange):
            if any(node.id == change.item.id for node in result):
                logging.warning("Ignoring add for existing node id", extra={"node_id": change.item.id})
                continue
            result.append(change.item)
        elif isinstance(change, RemoveChange):
            result = [node for node in result if node.id != change.id]
        elif isinstance(change, PositionChange):
            if change.position is None:
                continue
            result = [
                node.model_copy(update={"position": change.position}) if node.id == change.id else node
                for node in result
            ]
        elif isinstance(change, SelectChange):
            result = [
                node.model_copy(update={"selected": change.selected}) if node.id == change.id else node
                for node in result
            ]
    return result


def apply_edge_changes(changes: Iterable[Any], edges: List[Edge], node_ids: Iterable[str]) -> List[Edge]:
    known_nodes = set(node_ids)
    result = list(edges)
    for raw in changes:
        change = parse_change(raw, EDGE_CHANGE_TYPES)
        if change is None:
            continue

        if isinstance(change, AddEdgeChange):
            edge = change.item
            if edge.source not in known_nodes or edge.target not in known_nodes:
                logging.warning("Ignoring edge between unknown nodes", extra={"edge_id": edge.id})
                continue
            if any(existing.id == edge.id for existing in result):
                continue
            result.append(edge)
        elif isinstance(change, RemoveChange):
            result = [edge for edge in result if edge.id != change.id]
        elif isinstance(change, SelectChange):
            result = [
                edge.model_copy(update={"selected": change.selected}) if edge.id == change.id else edge
                for edge in result
            ]
    return result


class WorkflowEditor:
    """Owns nodes and edges between a load and an explicit save"""

    def __init__(self, nodes: Optional[List[Node]] = None, edges: Optional[List[Edge]] = None):
        self.nodes: List[Node] = list(nodes or [])
        self.edges: List[Edge] = list(edges or [])

    @classmethod
    def from_persisted(cls, workflow: PersistedWorkflow) -> "WorkflowEditor":
        nodes, edges = codec.deserialize(workflow.nodes, workflow.edges)
        return cls(nodes, edges)

    def apply_node_changes(self, changes: Iterable[Any]) -> List[Node]:
        self.nodes = apply_node_changes(changes, self.nodes)
        node_ids = {node.id for node in self.nodes}
        # Removing a node takes its edges with it
        self.edges = [edge for edge in self.edges if edge.source in node_ids and edge.target in node_ids]
        return self.nodes

    def apply_edge_changes(self, changes: Iterable[Any]) -> List[Edge]:
        self.edges = apply_edge_changes(changes, self.edges, (node.id for node in self.nodes))
        return self.edges

    def connect(self, source_id: str, target_id: str,
                source_handle: Optional[str] = None,
                target_handle: Optional[str] = None) -> Optional[Edge]:
        node_ids = {node.id for node in self.nodes}
        if source_id not in node_ids or target_id not in node_ids:
            return None

        edge_id = generate_edge_id(source_id, target_id, source_handle, target_handle)
        if any(edge.id == edge_id for edge in self.edges):
            return None

        edge = Edge(
            id=edge_id,
            source=source_id,
            target=target_id,
            source_handle=source_handle,
            target_handle=target_handle
        )
        self.edges = self.edges + [edge]
        return edge

    def snapshot(self) -> WorkflowGraph:
        return WorkflowGraph(
            nodes=[node.model_copy(deep=True) for node in self.nodes],
            edges=[edge.model_copy(deep=True) for edge in self.edges]
        )

    def to_persisted(self) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        graph = self.snapshot()
        return codec.serialize(graph.nodes, graph.edges)
