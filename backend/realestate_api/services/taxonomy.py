from sqlalchemy import func
from sqlalchemy.orm import Session

from realestate_api.core.errors import ConflictError, NotFoundError


def get_or_404(db: Session, model, ident: int, label: str):
    row = db.query(model).filter(model.id == ident).first()
    if not row:
        code = label.upper().replace(" ", "_") + "_NOT_FOUND"
        raise NotFoundError(f"{label.capitalize()} not found", code=code)
    return row


def ensure_no_dependents(db: Session, label: str, *checks) -> None:
    """Refuse a delete while any (column, id, description) check still matches rows."""
    for column, ident, description in checks:
        count = db.query(func.count()).select_from(column.class_).filter(column == ident).scalar() or 0
        if count:
            raise ConflictError(
                f"Cannot delete {label}: it still has {count} {description}",
                code="HAS_DEPENDENTS",
            )


def delete_row(db: Session, row) -> None:
    db.delete(row)
    db.commit()
