from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.errors import AuthError, ForbiddenError
from realestate_api.core.security import decode_token
from realestate_api.models.user import User, UserRole

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def _user_from_token(db: Session, token: str) -> User:
    try:
        payload = decode_token(token)
    except ExpiredSignatureError:
        raise AuthError("Token has expired", code="TOKEN_EXPIRED")
    except JWTError:
        raise AuthError("Invalid token", code="INVALID_TOKEN")

    user_id = payload.get("id")
    if user_id is None:
        raise AuthError("Invalid token", code="INVALID_TOKEN")

    user = db.query(User).filter(User.id == int(user_id)).first()
    if not user or not user.is_active:
        raise AuthError("Invalid token or user is inactive", code="INVALID_TOKEN")
    return user


def get_current_user(db: Session = Depends(get_db), token: str | None = Depends(oauth2_scheme)) -> User:
    if not token:
        raise AuthError("Access token required", code="NO_TOKEN")
    return _user_from_token(db, token)


def get_optional_user(db: Session = Depends(get_db), token: str | None = Depends(oauth2_scheme)) -> User | None:
    if not token:
        return None
    return _user_from_token(db, token)


def require_roles(*roles: UserRole):
    def role_dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise ForbiddenError("Insufficient permissions", code="INSUFFICIENT_PERMISSIONS")
        return current_user

    return role_dependency


require_admin = require_roles(UserRole.ADMIN)
require_company_or_admin = require_roles(UserRole.ADMIN, UserRole.COMPANY)
