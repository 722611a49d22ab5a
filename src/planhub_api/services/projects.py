"""项目生命周期服务。"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from planhub_api.dependencies import Identity
from planhub_api.errors import validation_error
from planhub_api.models.activity import ProjectActivity
from planhub_api.models.document import DocumentApprovalHistory, DocumentVersion, PlanningDocument
from planhub_api.models.enums import ActivityType, DocumentStatus, ProjectRole, TargetType
from planhub_api.models.project import Project, ProjectMember
from planhub_api.services.access import require_global_admin, require_project_access, require_project_management
from planhub_api.services.activity import record_activity
from planhub_api.services.roles import get_project_or_404
from planhub_api.services.steps import WORKFLOW_STEPS
from planhub_api.services.visibility import filter_visible_documents, visible_documents_clause

logger = logging.getLogger("planhub_api.projects")


def _validate_name(name: object) -> str:
    if not isinstance(name, str) or not name.strip():
        raise validation_error("项目名称不能为空。", field="name")
    if len(name.strip()) > 255:
        raise validation_error("项目名称不能超过 255 个字符。", field="name")
    return name.strip()


def _counts_by_project(db: Session, project_ids: list[UUID]) -> tuple[dict[UUID, int], dict[UUID, int]]:
    """批量统计成员数与生效文档数。"""
    if not project_ids:
        return {}, {}
    member_counts = dict(
        db.execute(
            select(ProjectMember.project_id, func.count())
            .where(ProjectMember.project_id.in_(project_ids))
            .group_by(ProjectMember.project_id)
        ).all()
    )
    official_counts = dict(
        db.execute(
            select(PlanningDocument.project_id, func.count())
            .where(PlanningDocument.project_id.in_(project_ids))
            .where(PlanningDocument.status == DocumentStatus.OFFICIAL)
            .group_by(PlanningDocument.project_id)
        ).all()
    )
    return member_counts, official_counts


def project_to_dict(
    project: Project,
    *,
    viewer_role: str | None = None,
    member_count: int = 0,
    official_document_count: int = 0,
) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "created_by": project.created_by,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
        "viewer_role": viewer_role,
        "member_count": int(member_count),
        "official_document_count": int(official_document_count),
    }


def list_projects_for_viewer(db: Session, identity: Identity) -> list[dict[str, Any]]:
    """管理员返回全部项目，其余用户返回已加入的项目。"""
    memberships = {
        member.project_id: member.role
        for member in db.execute(select(ProjectMember).where(ProjectMember.user_id == identity.user_id)).scalars()
    }
    stmt = select(Project).order_by(Project.created_at.desc())
    if not identity.is_admin:
        if not memberships:
            return []
        stmt = stmt.where(Project.id.in_(list(memberships)))
    projects = db.execute(stmt).scalars().all()

    member_counts, official_counts = _counts_by_project(db, [project.id for project in projects])
    return [
        project_to_dict(
            project,
            viewer_role=memberships.get(project.id),
            member_count=member_counts.get(project.id, 0),
            official_document_count=official_counts.get(project.id, 0),
        )
        for project in projects
    ]


def create_project(
    db: Session,
    identity: Identity,
    *,
    name: str,
    description: str | None = None,
) -> dict[str, Any]:
    """管理员创建项目，创建者以服务策划角色加入。"""
    require_global_admin(identity)
    project = Project(name=_validate_name(name), description=description, created_by=identity.user_id)
    db.add(project)
    db.flush()
    db.add(
        ProjectMember(
            project_id=project.id,
            user_id=identity.user_id,
            role=ProjectRole.SERVICE_PLANNING,
            added_by=identity.user_id,
        )
    )
    db.flush()

    record_activity(
        db,
        project_id=project.id,
        user_id=identity.user_id,
        activity_type=ActivityType.PROJECT_CREATED,
        target_type=TargetType.PROJECT,
        target_id=project.id,
        metadata={"project_name": project.name},
        description=f"创建项目「{project.name}」",
    )
    db.commit()
    db.refresh(project)
    logger.info("project created project_id=%s by=%s", project.id, identity.user_id)
    return project_to_dict(project, viewer_role=ProjectRole.SERVICE_PLANNING, member_count=1)


def get_project(db: Session, identity: Identity, project_id: UUID) -> dict[str, Any]:
    """项目详情，包含调用方权限与九个步骤的进度。"""
    authority = require_project_access(db, identity, project_id)
    project = get_project_or_404(db, project_id)

    documents = db.execute(
        select(PlanningDocument)
        .where(PlanningDocument.project_id == project_id)
        .where(visible_documents_clause(authority))
    ).scalars().all()
    visible = filter_visible_documents(authority, documents)

    steps = []
    for step, name in WORKFLOW_STEPS.items():
        in_step = [item for item in visible if item.workflow_step == step]
        official = next((item for item in in_step if item.status == DocumentStatus.OFFICIAL), None)
        steps.append(
            {
                "step": step,
                "name": name,
                "official_document_id": official.id if official else None,
                "official_title": official.title if official else None,
                "visible_document_count": len(in_step),
            }
        )

    member_counts, official_counts = _counts_by_project(db, [project.id])
    return {
        "project": project_to_dict(
            project,
            viewer_role=authority.role,
            member_count=member_counts.get(project.id, 0),
            official_document_count=official_counts.get(project.id, 0),
        ),
        "authority": authority.as_dict(),
        "steps": steps,
    }


def update_project(
    db: Session,
    identity: Identity,
    project_id: UUID,
    *,
    name: str | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """更新项目基础信息，仅管理员。"""
    authority = require_project_management(db, identity, project_id)
    project = get_project_or_404(db, project_id)

    changed: dict[str, Any] = {}
    if name is not None:
        new_name = _validate_name(name)
        if new_name != project.name:
            changed["name"] = {"before": project.name, "after": new_name}
            project.name = new_name
    if description is not None and description != project.description:
        changed["description"] = {"before": project.description, "after": description}
        project.description = description

    if changed:
        db.flush()
        record_activity(
            db,
            project_id=project.id,
            user_id=identity.user_id,
            activity_type=ActivityType.PROJECT_UPDATED,
            target_type=TargetType.PROJECT,
            target_id=project.id,
            metadata={"changes": changed},
            description=f"更新项目「{project.name}」",
        )
        db.commit()
        db.refresh(project)
        logger.info("project updated project_id=%s fields=%s", project.id, ",".join(sorted(changed)))

    member_counts, official_counts = _counts_by_project(db, [project.id])
    return project_to_dict(
        project,
        viewer_role=authority.role,
        member_count=member_counts.get(project.id, 0),
        official_document_count=official_counts.get(project.id, 0),
    )


def delete_project(db: Session, identity: Identity, project_id: UUID) -> dict[str, Any]:
    """删除项目并级联清理成员、文档、快照、审批历史与活动记录。"""
    require_global_admin(identity)
    project = get_project_or_404(db, project_id)

    document_ids = select(PlanningDocument.id).where(PlanningDocument.project_id == project_id)
    db.execute(delete(DocumentVersion).where(DocumentVersion.document_id.in_(document_ids)))
    db.execute(delete(DocumentApprovalHistory).where(DocumentApprovalHistory.document_id.in_(document_ids)))
    db.execute(delete(PlanningDocument).where(PlanningDocument.project_id == project_id))
    db.execute(delete(ProjectMember).where(ProjectMember.project_id == project_id))
    db.execute(delete(ProjectActivity).where(ProjectActivity.project_id == project_id))
    db.delete(project)
    db.commit()
    logger.info("project deleted project_id=%s by=%s", project_id, identity.user_id)
    return {"id": project_id, "deleted": True}
