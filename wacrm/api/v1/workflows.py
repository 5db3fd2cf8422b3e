"""Workflow definition endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query

from wacrm.api.deps import CurrentAccount, DbSession
from wacrm.core.exceptions import NotFoundError
from wacrm.db.repositories import WorkflowRepository
from wacrm.models import Workflow
from wacrm.schemas import (
    WorkflowCreate,
    WorkflowDetail,
    WorkflowDuplicate,
    WorkflowList,
    WorkflowUpdate,
)

router = APIRouter(prefix="/workflows", tags=["workflows"])


async def _get_workflow(repo: WorkflowRepository, account_id: UUID, workflow_id: UUID) -> Workflow:
    workflow = await repo.get_for_account(account_id, workflow_id)
    if not workflow:
        raise NotFoundError("Workflow", str(workflow_id))
    return workflow


@router.get("", response_model=WorkflowList)
async def list_workflows(
    db: DbSession,
    account_id: CurrentAccount,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    is_active: bool | None = None,
):
    """List workflows, most recently updated first."""
    items, total = await WorkflowRepository(db).list(
        account_id=account_id, skip=skip, limit=limit, is_active=is_active
    )
    return WorkflowList(items=items, total=total, skip=skip, limit=limit)


@router.post("", response_model=WorkflowDetail, status_code=201)
async def create_workflow(
    data: WorkflowCreate,
    db: DbSession,
    account_id: CurrentAccount,
):
    """Create a workflow definition; new workflows start inactive."""
    return await WorkflowRepository(db).create(
        account_id=account_id,
        name=data.name,
        triggers=data.triggers,
        nodes=data.nodes,
        schema_version=data.schema_version,
        is_active=False,
    )


@router.get("/{workflow_id}", response_model=WorkflowDetail)
async def get_workflow(
    workflow_id: UUID,
    db: DbSession,
    account_id: CurrentAccount,
):
    return await _get_workflow(WorkflowRepository(db), account_id, workflow_id)


@router.patch("/{workflow_id}", response_model=WorkflowDetail)
async def update_workflow(
    workflow_id: UUID,
    data: WorkflowUpdate,
    db: DbSession,
    account_id: CurrentAccount,
):
    repo = WorkflowRepository(db)
    workflow = await _get_workflow(repo, account_id, workflow_id)
    return await repo.update(workflow, **data.model_dump(exclude_unset=True))


@router.delete("/{workflow_id}", status_code=204)
async def delete_workflow(
    workflow_id: UUID,
    db: DbSession,
    account_id: CurrentAccount,
):
    repo = WorkflowRepository(db)
    workflow = await _get_workflow(repo, account_id, workflow_id)
    await repo.delete(workflow)


@router.post("/{workflow_id}/toggle", response_model=WorkflowDetail)
async def toggle_workflow(
    workflow_id: UUID,
    db: DbSession,
    account_id: CurrentAccount,
):
    """Flip a workflow between active and inactive."""
    repo = WorkflowRepository(db)
    workflow = await _get_workflow(repo, account_id, workflow_id)
    return await repo.update(workflow, is_active=not workflow.is_active)


@router.post("/{workflow_id}/duplicate", response_model=WorkflowDetail, status_code=201)
async def duplicate_workflow(
    workflow_id: UUID,
    data: WorkflowDuplicate,
    db: DbSession,
    account_id: CurrentAccount,
):
    """Copy a workflow's triggers and nodes under a new name."""
    repo = WorkflowRepository(db)
    original = await _get_workflow(repo, account_id, workflow_id)
    return await repo.create(
        account_id=account_id,
        name=data.name,
        triggers=list(original.triggers or []),
        nodes=dict(original.nodes or {}),
        schema_version=original.schema_version,
        is_active=False,
    )
