import pytest
from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from conftest import PlanningWorld, code_of
from planhub_api.models.activity import ProjectActivity
from planhub_api.models.document import PlanningDocument
from planhub_api.models.enums import ActivityType, DocumentStatus
from planhub_api.services import workflow


def _create(db: Session, world: PlanningWorld, *, step: int = 1, title: str = "服务概述初稿", identity=None) -> dict:
    return workflow.create_document(
        db,
        identity or world.u1,
        world.project_id,
        workflow_step=step,
        title=title,
        content="目标：让学生便捷交易闲置物品。",
    )


def _official_count(db: Session, world: PlanningWorld, step: int) -> int:
    return db.execute(
        select(func.count())
        .select_from(PlanningDocument)
        .where(PlanningDocument.project_id == world.project_id)
        .where(PlanningDocument.workflow_step == step)
        .where(PlanningDocument.status == DocumentStatus.OFFICIAL)
    ).scalar_one()


def _activity_types(db: Session, world: PlanningWorld) -> list[str]:
    return list(
        db.execute(
            select(ProjectActivity.activity_type)
            .where(ProjectActivity.project_id == world.project_id)
            .order_by(ProjectActivity.created_at.asc())
        ).scalars()
    )


def test_scenario_a_submit_approve_then_member_sees_official(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)
    assert created["status"] == DocumentStatus.PRIVATE
    assert created["version"] == 1
    assert created["step_name"] == "服务概述与目标设定"

    submitted = workflow.submit_for_approval(db_session, world.u1, created["id"])
    assert submitted["status"] == DocumentStatus.PENDING_APPROVAL

    approved = workflow.approve_document(db_session, world.admin, created["id"])
    assert approved["status"] == DocumentStatus.OFFICIAL
    assert approved["approved_by"] == world.admin.user_id
    assert approved["approved_at"] is not None

    visible = workflow.list_documents(db_session, world.u2, world.project_id, workflow_step=1)
    assert [item["id"] for item in visible] == [created["id"]]

    types = _activity_types(db_session, world)
    assert types[-3:] == [
        ActivityType.DOCUMENT_CREATED,
        ActivityType.DOCUMENT_APPROVAL_REQUESTED,
        ActivityType.DOCUMENT_APPROVED,
    ]


def test_scenario_b_editing_official_reverts_to_private(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)
    workflow.submit_for_approval(db_session, world.u1, created["id"])
    workflow.approve_document(db_session, world.admin, created["id"])

    edited = workflow.edit_document(db_session, world.u1, created["id"], content="补充：支持校园卡支付。")
    assert edited["status"] == DocumentStatus.PRIVATE
    assert edited["version"] == 2
    assert edited["approved_by"] is None
    assert edited["approved_at"] is None

    assert workflow.list_documents(db_session, world.u2, world.project_id, workflow_step=1) == []
    assert _official_count(db_session, world, 1) == 0


def test_scenario_c_non_creator_cannot_edit(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)

    with pytest.raises(HTTPException) as exc:
        workflow.edit_document(db_session, world.u2, created["id"], title="被篡改的标题")

    assert exc.value.status_code == 403
    assert code_of(exc) == "FORBIDDEN"
    document = workflow.get_document(db_session, world.u1, created["id"])
    assert document["title"] == created["title"]
    assert document["version"] == 1


def test_approving_new_document_supersedes_previous_official(db_session: Session, world: PlanningWorld):
    first = _create(db_session, world, step=3, title="核心功能 v1")
    workflow.submit_for_approval(db_session, world.u1, first["id"])
    workflow.approve_document(db_session, world.admin, first["id"])

    second = _create(db_session, world, step=3, title="核心功能 v2", identity=world.u2)
    workflow.submit_for_approval(db_session, world.u2, second["id"])
    workflow.approve_document(db_session, world.admin, second["id"])

    assert _official_count(db_session, world, 3) == 1
    assert workflow.get_document(db_session, world.admin, first["id"])["status"] == DocumentStatus.PRIVATE
    assert workflow.get_document(db_session, world.admin, first["id"])["approved_by"] is None

    approved_event = db_session.execute(
        select(ProjectActivity)
        .where(ProjectActivity.activity_type == ActivityType.DOCUMENT_APPROVED)
        .where(ProjectActivity.target_id == second["id"])
    ).scalar_one()
    assert approved_event.details["superseded_document_ids"] == [str(first["id"])]


@pytest.mark.parametrize("status", [DocumentStatus.PENDING_APPROVAL, DocumentStatus.OFFICIAL])
def test_submit_only_from_private(db_session: Session, world: PlanningWorld, status: DocumentStatus):
    created = _create(db_session, world)
    workflow.submit_for_approval(db_session, world.u1, created["id"])
    if status == DocumentStatus.OFFICIAL:
        workflow.approve_document(db_session, world.admin, created["id"])

    with pytest.raises(HTTPException) as exc:
        workflow.submit_for_approval(db_session, world.u1, created["id"])

    assert exc.value.status_code == 400
    assert code_of(exc) == "INVALID_STATE"
    assert workflow.get_document(db_session, world.u1, created["id"])["status"] == status


@pytest.mark.parametrize("operation", ["approve", "reject"])
@pytest.mark.parametrize("status", [DocumentStatus.PRIVATE, DocumentStatus.OFFICIAL])
def test_approve_and_reject_only_from_pending(
    db_session: Session,
    world: PlanningWorld,
    operation: str,
    status: DocumentStatus,
):
    created = _create(db_session, world)
    if status == DocumentStatus.OFFICIAL:
        workflow.submit_for_approval(db_session, world.u1, created["id"])
        workflow.approve_document(db_session, world.admin, created["id"])

    action = workflow.approve_document if operation == "approve" else workflow.reject_document
    with pytest.raises(HTTPException) as exc:
        action(db_session, world.admin, created["id"])

    assert code_of(exc) == "INVALID_STATE"
    assert workflow.get_document(db_session, world.admin, created["id"])["status"] == status


@pytest.mark.parametrize("operation", ["approve", "reject"])
def test_creator_cannot_approve_or_reject_own_document(db_session: Session, world: PlanningWorld, operation: str):
    created = _create(db_session, world)
    workflow.submit_for_approval(db_session, world.u1, created["id"])

    action = workflow.approve_document if operation == "approve" else workflow.reject_document
    for caller in (world.u1, world.u2, world.outsider):
        with pytest.raises(HTTPException) as exc:
            action(db_session, caller, created["id"])
        assert code_of(exc) == "FORBIDDEN"

    assert workflow.get_document(db_session, world.u1, created["id"])["status"] == DocumentStatus.PENDING_APPROVAL


def test_only_creator_can_submit(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)
    for caller in (world.u2, world.admin, world.outsider):
        with pytest.raises(HTTPException) as exc:
            workflow.submit_for_approval(db_session, caller, created["id"])
        assert code_of(exc) == "FORBIDDEN"


def test_reject_returns_to_private_with_reason(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)
    workflow.submit_for_approval(db_session, world.u1, created["id"])

    rejected = workflow.reject_document(db_session, world.admin, created["id"], reason="缺少竞品分析")
    assert rejected["status"] == DocumentStatus.PRIVATE

    history = workflow.list_approval_history(db_session, world.u1, created["id"])
    assert [item["action"] for item in history] == ["requested", "rejected"]
    assert history[-1]["reason"] == "缺少竞品分析"
    assert history[-1]["previous_status"] == DocumentStatus.PENDING_APPROVAL

    event = db_session.execute(
        select(ProjectActivity).where(ProjectActivity.activity_type == ActivityType.DOCUMENT_REJECTED)
    ).scalar_one()
    assert event.details["reason"] == "缺少竞品分析"

    # 驳回后作者可以再次提交。
    assert workflow.submit_for_approval(db_session, world.u1, created["id"])["status"] == "pending_approval"


def test_edit_pending_document_withdraws_submission(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)
    workflow.submit_for_approval(db_session, world.u1, created["id"])

    edited = workflow.edit_document(db_session, world.u1, created["id"], title="修订后的标题")
    assert edited["status"] == DocumentStatus.PRIVATE
    assert workflow.list_pending_approvals(db_session, world.admin) == []


def test_noop_edit_keeps_version(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)

    same = workflow.edit_document(db_session, world.u1, created["id"], title=created["title"])
    assert same["version"] == 1
    assert workflow.list_versions(db_session, world.u1, created["id"]) == []


def test_edit_snapshots_previous_revision(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)
    workflow.edit_document(db_session, world.u1, created["id"], title="第二版")
    workflow.edit_document(db_session, world.admin, created["id"], content="管理员补充内容")

    versions = workflow.list_versions(db_session, world.u1, created["id"])
    assert [item["version"] for item in versions] == [2, 1]
    assert versions[-1]["title"] == created["title"]
    assert workflow.get_document(db_session, world.u1, created["id"])["version"] == 3


def test_version_history_hides_unapproved_drafts_from_other_members(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)
    workflow.submit_for_approval(db_session, world.u1, created["id"])
    workflow.approve_document(db_session, world.admin, created["id"])
    workflow.edit_document(db_session, world.u1, created["id"], content="未公开的草稿内容")
    workflow.edit_document(db_session, world.u1, created["id"], content="第三版正式内容")
    workflow.submit_for_approval(db_session, world.u1, created["id"])
    workflow.approve_document(db_session, world.admin, created["id"])

    member_view = workflow.list_versions(db_session, world.u2, created["id"])
    assert [(item["version"], item["status"]) for item in member_view] == [(1, DocumentStatus.OFFICIAL)]
    assert all(item["content"] != "未公开的草稿内容" for item in member_view)

    for identity in (world.u1, world.admin):
        versions = workflow.list_versions(db_session, identity, created["id"])
        assert [(item["version"], item["status"]) for item in versions] == [
            (2, DocumentStatus.PRIVATE),
            (1, DocumentStatus.OFFICIAL),
        ]


def test_edit_with_stale_expected_version_conflicts(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)
    workflow.edit_document(db_session, world.u1, created["id"], title="第二版", expected_version=1)

    with pytest.raises(HTTPException) as exc:
        workflow.edit_document(db_session, world.u1, created["id"], title="第三版", expected_version=1)

    assert exc.value.status_code == 409
    assert code_of(exc) == "CONFLICT"
    assert workflow.get_document(db_session, world.u1, created["id"])["title"] == "第二版"


@pytest.mark.parametrize(
    ("step", "title", "content", "field"),
    [
        (0, "标题", "正文", "workflow_step"),
        (10, "标题", "正文", "workflow_step"),
        (1, "   ", "正文", "title"),
        (1, "x" * 256, "正文", "title"),
        (1, "标题", "", "content"),
    ],
)
def test_create_validation(db_session: Session, world: PlanningWorld, step, title, content, field):
    with pytest.raises(HTTPException) as exc:
        workflow.create_document(db_session, world.u1, world.project_id, workflow_step=step, title=title, content=content)

    assert exc.value.status_code == 400
    assert code_of(exc) == "VALIDATION_ERROR"
    assert exc.value.detail["details"]["field"] == field


def test_outsider_cannot_create_or_list(db_session: Session, world: PlanningWorld):
    with pytest.raises(HTTPException) as exc:
        _create(db_session, world, identity=world.outsider)
    assert code_of(exc) == "FORBIDDEN"

    with pytest.raises(HTTPException) as exc:
        workflow.list_documents(db_session, world.outsider, world.project_id)
    assert code_of(exc) == "FORBIDDEN"


def test_get_invisible_draft_is_forbidden(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)

    with pytest.raises(HTTPException) as exc:
        workflow.get_document(db_session, world.u2, created["id"])
    assert code_of(exc) == "FORBIDDEN"

    with pytest.raises(HTTPException) as exc:
        workflow.list_versions(db_session, world.u2, created["id"])
    assert code_of(exc) == "FORBIDDEN"

    assert workflow.get_document(db_session, world.admin, created["id"])["id"] == created["id"]


def test_list_filters_by_status(db_session: Session, world: PlanningWorld):
    draft = _create(db_session, world, step=2)
    pending = _create(db_session, world, step=2, title="待审批")
    workflow.submit_for_approval(db_session, world.u1, pending["id"])

    pending_only = workflow.list_documents(db_session, world.u1, world.project_id, status="pending_approval")
    assert [item["id"] for item in pending_only] == [pending["id"]]
    assert {item["id"] for item in workflow.list_documents(db_session, world.u1, world.project_id)} == {
        draft["id"],
        pending["id"],
    }

    with pytest.raises(HTTPException) as exc:
        workflow.list_documents(db_session, world.u1, world.project_id, status="archived")
    assert code_of(exc) == "VALIDATION_ERROR"


def test_pending_queue_is_admin_only(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)
    workflow.submit_for_approval(db_session, world.u1, created["id"])

    queue = workflow.list_pending_approvals(db_session, world.admin)
    assert [item["id"] for item in queue] == [created["id"]]
    assert queue[0]["project_name"] == "校园二手交易平台"
    assert queue[0]["author_email"] == "u1@example.com"

    with pytest.raises(HTTPException) as exc:
        workflow.list_pending_approvals(db_session, world.u1)
    assert code_of(exc) == "FORBIDDEN"


def test_delete_document_by_creator(db_session: Session, world: PlanningWorld):
    created = _create(db_session, world)
    workflow.edit_document(db_session, world.u1, created["id"], title="第二版")

    with pytest.raises(HTTPException) as exc:
        workflow.delete_document(db_session, world.u2, created["id"])
    assert code_of(exc) == "FORBIDDEN"

    assert workflow.delete_document(db_session, world.u1, created["id"])["deleted"] is True
    with pytest.raises(HTTPException) as exc:
        workflow.get_document(db_session, world.u1, created["id"])
    assert code_of(exc) == "NOT_FOUND"
    assert _activity_types(db_session, world)[-1] == ActivityType.DOCUMENT_DELETED


def test_removed_member_loses_access_but_keeps_authorship(db_session: Session, world: PlanningWorld):
    from planhub_api.services import membership

    created = _create(db_session, world)
    membership.remove_member(db_session, world.admin, world.project_id, user_id=world.u1.user_id)

    with pytest.raises(HTTPException) as exc:
        workflow.get_document(db_session, world.u1, created["id"])
    assert code_of(exc) == "FORBIDDEN"
    assert workflow.get_document(db_session, world.admin, created["id"])["created_by"] == world.u1.user_id
