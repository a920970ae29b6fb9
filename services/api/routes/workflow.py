"""Workflow API routes."""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError as PydanticValidationError
from services.api.domain import codec
from services.api.domain.editor import WorkflowEditor
from services.api.domain.models import (
    CreateWorkflowRequest,
    UpdateWorkflowRequest,
    SaveWorkflowResponse,
    WorkflowResponse,
    WorkflowSummary,
    RunWorkflowRequest,
    RunWorkflowResponse
)
from services.api.domain.validation import validate_graph, validate_workflow
from services.api.infra.broker import BrokerClient
from services.api.infra.workflow_store import WorkflowStore
from services.api.middleware import get_owner_id
from services.api.routes import sessions as session_routes
from shared.exceptions import (
    PersistenceError,
    UnknownSessionError,
    ValidationError,
    WorkflowNotFoundError
)
from shared.types import PersistedWorkflow


router = APIRouter()
workflow_store = WorkflowStore()
broker = BrokerClient()


def load_workflow(workflow_id: str, owner_id: str) -> PersistedWorkflow:
    try:
        return workflow_store.load(workflow_id, owner_id)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)


def save_workflow(workflow: PersistedWorkflow) -> str:
    try:
        validate_workflow(workflow)
        return workflow_store.save(workflow)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except PersistenceError as e:
        logging.error("Workflow save failed", extra={"workflow_id": workflow.id, "error": e.message})
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)


def editor_for_graph(nodes, edges) -> WorkflowEditor:
    """Builds an editor from a client-supplied graph, rejecting anything load would prune"""
    try:
        parsed_nodes, parsed_edges = codec.parse_strict(nodes, edges)
        validate_graph(nodes or [], edges or [])
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    return WorkflowEditor(parsed_nodes, parsed_edges)


@router.get("/workflows", response_model=List[WorkflowSummary])
async def list_workflows(owner_id: str = Depends(get_owner_id)):
    try:
        workflows = workflow_store.list_for_owner(owner_id)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)

    return [
        WorkflowSummary(id=w.id, name=w.name, description=w.description, created_at=w.created_at)
        for w in workflows
    ]


@router.post("/workflows", response_model=SaveWorkflowResponse, status_code=status.HTTP_201_CREATED)
async def create_workflow(request: CreateWorkflowRequest, owner_id: str = Depends(get_owner_id)):
    editor = editor_for_graph(request.nodes, request.edges)
    nodes, edges = editor.to_persisted()

    workflow_id = save_workflow(PersistedWorkflow(
        name=request.name,
        description=request.description,
        nodes=nodes,
        edges=edges,
        owner_id=owner_id
    ))
    return SaveWorkflowResponse(id=workflow_id)


@router.get("/workflows/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(workflow_id: str, owner_id: str = Depends(get_owner_id)):
    workflow = load_workflow(workflow_id, owner_id)
    nodes, edges = WorkflowEditor.from_persisted(workflow).to_persisted()

    return WorkflowResponse(
        id=workflow.id,
        name=workflow.name,
        description=workflow.description,
        nodes=nodes,
        edges=edges,
        created_at=workflow.created_at,
        updated_at=workflow.updated_at
    )


@router.put("/workflows/{workflow_id}", response_model=SaveWorkflowResponse)
async def update_workflow(workflow_id: str, request: UpdateWorkflowRequest,
                          owner_id: str = Depends(get_owner_id)):
    existing = load_workflow(workflow_id, owner_id)

    editor = WorkflowEditor.from_persisted(existing)
    if request.nodes is not None or request.edges is not None:
        current_nodes, current_edges = editor.to_persisted()
        editor = editor_for_graph(
            current_nodes if request.nodes is None else request.nodes,
            current_edges if request.edges is None else request.edges
        )

    try:
        editor.apply_node_changes(request.node_changes)
        editor.apply_edge_changes(request.edge_changes)
    except PydanticValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid graph change: {e}")

    for connection in request.connections:
        editor.connect(connection.source, connection.target,
                       connection.source_handle, connection.target_handle)

    nodes, edges = editor.to_persisted()
    saved_id = save_workflow(existing.model_copy(update={
        "name": existing.name if request.name is None else request.name,
        "description": existing.description if request.description is None else request.description,
        "nodes": nodes,
        "edges": edges,
        "owner_id": owner_id
    }))
    return SaveWorkflowResponse(id=saved_id)


@router.delete("/workflows/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workflow(workflow_id: str, owner_id: str = Depends(get_owner_id)):
    try:
        workflow_store.delete(workflow_id, owner_id)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)


@router.post("/workflows/{workflow_id}/run", response_model=RunWorkflowResponse)
async def run_workflow(workflow_id: str, request: RunWorkflowRequest, http_request: Request,
                       owner_id: str = Depends(get_owner_id)):
    load_workflow(workflow_id, owner_id)

    dialog = session_routes.new_dialog()
    dialog.open()
    try:
        await session_routes.load_until_disconnect(dialog, http_request)
        if not dialog.is_open():
            return RunWorkflowResponse(
                workflow_id=workflow_id,
                status="CANCELLED",
                sessions=[],
                notices=dialog.notices
            )
        dialog.set_headless(request.headless)

        known = {s.uuid for s in dialog.controller.sessions}
        for uuid in request.session_uuids:
            if uuid not in known:
                dialog.controller.report(UnknownSessionError(f"Session {uuid} was not discovered", uuid=uuid))
                continue
            dialog.toggle_select(uuid, True)

        sessions = await run_in_threadpool(dialog.confirm) if dialog.controller.selected else []
    finally:
        dialog.close()

    runnable = [s for s in sessions if s.is_started]
    if runnable:
        broker.trigger_run(workflow_id, runnable)
        run_status = "TRIGGERED"
    else:
        logging.warning("No runnable sessions for workflow", extra={"workflow_id": workflow_id})
        run_status = "NOT_RUNNABLE"

    return RunWorkflowResponse(
        workflow_id=workflow_id,
        status=run_status,
        sessions=sessions,
        notices=dialog.notices
    )
