"""Conversion between the live editor graph and its persisted JSON form."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from pydantic import ValidationError as PydanticValidationError
from shared.exceptions import GraphIntegrityError, ValidationError
from shared.types import Node, Edge


PersistedItems = List[Dict[str, Any]]


def serialize(nodes: Sequence[Node], edges: Sequence[Edge]) -> Tuple[PersistedItems, PersistedItems]:
    """Dumps nodes and edges in their current order"""
    persisted_nodes = [node.model_dump(mode="json", by_alias=True) for node in nodes]
    persisted_edges = [edge.model_dump(mode="json", by_alias=True) for edge in edges]
    return persisted_nodes, persisted_edges


def deserialize(
    persisted_nodes: Optional[Sequence[Any]],
    persisted_edges: Optional[Sequence[Any]],
) -> Tuple[List[Node], List[Edge]]:
    """Rebuilds nodes and edges, pruning anything that breaks graph integrity.

    ``None`` is read as an empty graph. Unparseable or duplicate nodes are
    dropped, and so is every edge whose source or target is not a kept node.
    """
    nodes: List[Node] = []
    node_ids = set()
    for raw in persisted_nodes or []:
        node = _parse_item(Node, raw)
        if node is None:
            continue
        if node.id in node_ids:
            _report(GraphIntegrityError(f"Duplicate node id dropped: {node.id}", node_id=node.id))
            continue
        node_ids.add(node.id)
        nodes.append(node)

    edges: List[Edge] = []
    edge_ids = set()
    for raw in persisted_edges or []:
        edge = _parse_item(Edge, raw)
        if edge is None:
            continue
        missing = [ref for ref in (edge.source, edge.target) if ref not in node_ids]
        if missing:
            _report(GraphIntegrityError(
                f"Dangling edge pruned: {edge.id}",
                edge_id=edge.id,
                missing_nodes=missing
            ))
            continue
        if edge.id in edge_ids:
            _report(GraphIntegrityError(f"Duplicate edge id dropped: {edge.id}", edge_id=edge.id))
            continue
        edge_ids.add(edge.id)
        edges.append(edge)

    return nodes, edges


def parse_strict(
    nodes: Optional[Sequence[Any]],
    edges: Optional[Sequence[Any]],
) -> Tuple[List[Node], List[Edge]]:
    """Parses a client-supplied graph, raising ValidationError instead of pruning"""
    return (
        [_parse_strict_item(Node, raw, index) for index, raw in enumerate(nodes or [])],
        [_parse_strict_item(Edge, raw, index) for index, raw in enumerate(edges or [])],
    )


def _parse_strict_item(model, raw: Any, index: int):
    kind = model.__name__.lower()
    if not isinstance(raw, dict):
        raise ValidationError(f"{model.__name__} entry {index} must be an object", index=index)
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise ValidationError(
            f"Invalid {kind} entry {index}: {', '.join(fields)}",
            index=index,
            item_id=raw.get("id")
        )


def _parse_item(model, raw: Any):
    if not isinstance(raw, dict):
        _report(GraphIntegrityError(f"Non-object {model.__name__.lower()} entry dropped"))
        return None
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        _report(GraphIntegrityError(
            f"Invalid {model.__name__.lower()} entry dropped",
            item_id=raw.get("id"),
            errors=e.error_count()
        ))
        return None


def _report(error: GraphIntegrityError) -> None:
    # Integrity problems come from earlier partial saves; recovered here, never raised
    logging.warning(error.message, extra=error.context)
