from fastapi import Request
from sqlalchemy.orm import Session

from realestate_api.models.audit import AuditLog


def client_ip(request: Request | None) -> str | None:
    if request is None or request.client is None:
        return None
    return request.client.host


def audit_event(
    db: Session,
    action: str,
    resource: str,
    user_id: int | None = None,
    resource_id: int | None = None,
    ip_address: str | None = None,
    details: str | None = None,
) -> None:
    entry = AuditLog(
        user_id=user_id,
        action=action,
        resource=resource,
        resource_id=resource_id,
        ip_address=ip_address,
        details=details,
    )
    db.add(entry)
    db.commit()
