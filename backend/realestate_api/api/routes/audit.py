from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import require_admin
from realestate_api.models.audit import AuditLog
from realestate_api.models.user import User
from realestate_api.schemas.audit import AuditLogResponse
from realestate_api.schemas.common import ApiResponse

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=ApiResponse[list[AuditLogResponse]])
def list_audit_logs(
    limit: int = Query(default=50, ge=1, le=200),
    action: str | None = Query(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    q = db.query(AuditLog)
    if action:
        q = q.filter(AuditLog.action == action)
    return ApiResponse(data=q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all())
