"""服务层能力导出集合。"""

from planhub_api.services.access import (
    authority_for,
    require_global_admin,
    require_project_access,
    require_project_management,
)
from planhub_api.services.activity import (
    compute_collaboration_stats,
    compute_member_summaries,
    list_activities,
    pop_ledger_warnings,
    record_activity,
)
from planhub_api.services.roles import Authority, AuthorityKind, resolve_authority
from planhub_api.services.steps import WORKFLOW_STEP_COUNT, WORKFLOW_STEPS
from planhub_api.services.visibility import can_view_document, filter_visible_documents, visible_documents_clause

__all__ = [
    "Authority",
    "AuthorityKind",
    "WORKFLOW_STEPS",
    "WORKFLOW_STEP_COUNT",
    "authority_for",
    "can_view_document",
    "compute_collaboration_stats",
    "compute_member_summaries",
    "filter_visible_documents",
    "list_activities",
    "pop_ledger_warnings",
    "record_activity",
    "require_global_admin",
    "require_project_access",
    "require_project_management",
    "resolve_authority",
    "visible_documents_clause",
]
