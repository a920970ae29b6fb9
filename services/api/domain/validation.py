"""Save-time validation of workflow records."""

from typing import Any, Dict, List, Optional
from shared.constants import (
    MAX_NODES_PER_WORKFLOW,
    MAX_WORKFLOW_NAME_LENGTH,
    MAX_WORKFLOW_DESCRIPTION_LENGTH
)
from shared.exceptions import ValidationError
from shared.types import PersistedWorkflow


def validate_workflow(workflow: PersistedWorkflow) -> None:
    """Checks a record is complete enough to be written"""
    validate_metadata(workflow.name, workflow.description)
    validate_graph(workflow.nodes or [], workflow.edges or [])

    if not workflow.owner_id:
        raise ValidationError("Workflow must have an owner")


def validate_metadata(name: Optional[str], description: Optional[str]) -> None:
    for field, value, limit in (
        ("name", name, MAX_WORKFLOW_NAME_LENGTH),
        ("description", description, MAX_WORKFLOW_DESCRIPTION_LENGTH),
    ):
        if value is None or not value.strip():
            raise ValidationError(f"Workflow {field} is required", field=field)
        if len(value) > limit:
            raise ValidationError(
                f"Workflow {field} exceeds length limit: {len(value)} > {limit}",
                field=field
            )


def validate_graph(nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]]) -> None:
    """Rejects graphs that would be pruned on the next load"""
    if len(nodes) > MAX_NODES_PER_WORKFLOW:
        raise ValidationError(f"Workflow exceeds maximum node limit: {len(nodes)} > {MAX_NODES_PER_WORKFLOW}")

    node_ids = set()
    for node in nodes:
        node_id = node.get("id")
        if not node_id:
            raise ValidationError("All nodes must have an 'id' field")
        if node_id in node_ids:
            raise ValidationError(f"Duplicate node ID: {node_id}", node_id=node_id)
        node_ids.add(node_id)

    edge_ids = set()
    for edge in edges:
        edge_id = edge.get("id")
        if not edge_id:
            raise ValidationError("All edges must have an 'id' field")
        if edge_id in edge_ids:
            raise ValidationError(f"Duplicate edge ID: {edge_id}", edge_id=edge_id)
        edge_ids.add(edge_id)

        for end in ("source", "target"):
            if edge.get(end) not in node_ids:
                raise ValidationError(
                    f"Edge '{edge_id}' {end} references non-existent node '{edge.get(end)}'",
                    edge_id=edge_id
                )
