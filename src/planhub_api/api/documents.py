"""策划文档与审批流转接口。"""

from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session

from planhub_api.db.session import get_db
from planhub_api.dependencies import Identity, get_current_identity
from planhub_api.models.enums import DocumentStatus
from planhub_api.schemas.common import ErrorResponse, SuccessResponse
from planhub_api.schemas.document import DocumentCreateRequest, DocumentEditRequest, DocumentRejectRequest
from planhub_api.schemas.responses import (
    ApprovalHistoryData,
    DocumentData,
    DocumentDeleteData,
    DocumentVersionData,
    PendingApprovalData,
)
from planhub_api.services import pop_ledger_warnings
from planhub_api.services import workflow as workflow_service
from planhub_api.services.steps import WORKFLOW_STEP_COUNT
from planhub_api.utils.response import success

router = APIRouter(tags=["documents"])

_READ_ERRORS = {401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
_TRANSITION_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get(
    "/projects/{project_id}/documents",
    summary="查询项目文档",
    description=(
        "返回调用方可见的文档：official 文档对项目成员可见，"
        "private 与 pending_approval 文档仅作者与管理员可见。"
    ),
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[DocumentData]],
    responses=_READ_ERRORS,
)
def list_documents(
    request: Request,
    project_id: UUID = Path(..., description="项目 ID。"),
    step: int | None = Query(default=None, ge=1, le=WORKFLOW_STEP_COUNT, description="按策划步骤过滤。"),
    doc_status: DocumentStatus | None = Query(default=None, alias="status", description="按文档状态过滤。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = workflow_service.list_documents(
        db,
        identity,
        project_id,
        workflow_step=step,
        status=doc_status.value if doc_status else None,
    )
    return success(request, data)


@router.post(
    "/projects/{project_id}/documents",
    summary="创建文档",
    description="在指定策划步骤下创建 private 草稿。项目成员与管理员可用。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DocumentData],
    responses=_READ_ERRORS | {400: {"model": ErrorResponse}},
)
def create_document(
    payload: DocumentCreateRequest,
    request: Request,
    project_id: UUID = Path(..., description="项目 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = workflow_service.create_document(
        db,
        identity,
        project_id,
        workflow_step=payload.workflow_step,
        title=payload.title,
        content=payload.content,
    )
    return success(request, data, warnings=pop_ledger_warnings(db))


@router.get(
    "/documents/pending-approvals",
    summary="待审批队列",
    description="返回所有项目中待审批的文档。仅管理员。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[PendingApprovalData]],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def list_pending_approvals(
    request: Request,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return success(request, workflow_service.list_pending_approvals(db, identity))


@router.get(
    "/documents/{document_id}",
    summary="查询文档详情",
    description="按可见性规则读取单个文档，不可见时返回 403。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DocumentData],
    responses=_READ_ERRORS,
)
def get_document(
    request: Request,
    document_id: UUID = Path(..., description="文档 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return success(request, workflow_service.get_document(db, identity, document_id))


@router.patch(
    "/documents/{document_id}",
    summary="修改文档",
    description="作者或管理员修改标题与正文。已生效或待审批的文档修改后退回 private。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DocumentData],
    responses=_TRANSITION_ERRORS,
)
def edit_document(
    payload: DocumentEditRequest,
    request: Request,
    document_id: UUID = Path(..., description="文档 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = workflow_service.edit_document(
        db,
        identity,
        document_id,
        title=payload.title,
        content=payload.content,
        expected_version=payload.expected_version,
    )
    return success(request, data, warnings=pop_ledger_warnings(db))


@router.delete(
    "/documents/{document_id}",
    summary="删除文档",
    description="作者或管理员删除文档及其修订快照与审批历史。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DocumentDeleteData],
    responses=_READ_ERRORS,
)
def delete_document(
    request: Request,
    document_id: UUID = Path(..., description="文档 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = workflow_service.delete_document(db, identity, document_id)
    return success(request, data, warnings=pop_ledger_warnings(db))


@router.post(
    "/documents/{document_id}/submit",
    summary="提交审批",
    description="作者将 private 文档提交审批。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DocumentData],
    responses=_TRANSITION_ERRORS,
)
def submit_for_approval(
    request: Request,
    document_id: UUID = Path(..., description="文档 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = workflow_service.submit_for_approval(db, identity, document_id)
    return success(request, data, warnings=pop_ledger_warnings(db))


@router.post(
    "/documents/{document_id}/approve",
    summary="通过审批",
    description="管理员通过待审批文档，同一步骤原有生效文档自动退回 private。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DocumentData],
    responses=_TRANSITION_ERRORS,
)
def approve_document(
    request: Request,
    document_id: UUID = Path(..., description="文档 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = workflow_service.approve_document(db, identity, document_id)
    return success(request, data, warnings=pop_ledger_warnings(db))


@router.post(
    "/documents/{document_id}/reject",
    summary="驳回审批",
    description="管理员驳回待审批文档，文档退回 private，可附驳回原因。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DocumentData],
    responses=_TRANSITION_ERRORS,
)
def reject_document(
    request: Request,
    document_id: UUID = Path(..., description="文档 ID。"),
    payload: DocumentRejectRequest | None = Body(default=None),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = workflow_service.reject_document(
        db,
        identity,
        document_id,
        reason=payload.reason if payload else None,
    )
    return success(request, data, warnings=pop_ledger_warnings(db))


@router.get(
    "/documents/{document_id}/versions",
    summary="查询修订快照",
    description="按修订号倒序返回文档修改前的快照。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[DocumentVersionData]],
    responses=_READ_ERRORS,
)
def list_versions(
    request: Request,
    document_id: UUID = Path(..., description="文档 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return success(request, workflow_service.list_versions(db, identity, document_id))


@router.get(
    "/documents/{document_id}/approval-history",
    summary="查询审批历史",
    description="按时间顺序返回文档的提交、通过与驳回记录。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[ApprovalHistoryData]],
    responses=_READ_ERRORS,
)
def list_approval_history(
    request: Request,
    document_id: UUID = Path(..., description="文档 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return success(request, workflow_service.list_approval_history(db, identity, document_id))
