from datetime import datetime
import enum

from sqlalchemy import Boolean, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from realestate_api.core.database import Base
from realestate_api.core.errors import ValidationError


class UserRole(str, enum.Enum):
    # Member names are stored, values are what clients send and receive.
    USER = "user"
    USER_VIP = "user_vip"
    ADMIN = "admin"
    COMPANY = "company"


def parse_role(raw: str) -> UserRole:
    """Decode a role from either its client value or its stored name, case-insensitively."""
    normalized = (raw or "").strip().lower()
    for role in UserRole:
        if normalized in (role.value, role.name.lower()):
            return role
    allowed = ", ".join(r.value for r in UserRole)
    raise ValidationError(f"Invalid role '{raw}'. Allowed roles: {allowed}", code="INVALID_ROLE")


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(80), unique=True, index=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40))
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), default=UserRole.USER, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    company_name: Mapped[str | None] = mapped_column(String(160))
    company_license: Mapped[str | None] = mapped_column(String(120))
    vip_expires_at: Mapped[datetime | None] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def display_name(self) -> str:
        return self.company_name or self.full_name
