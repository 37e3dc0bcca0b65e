import logging

from realestate_api.core.config import get_settings
from realestate_api.core.database import Base, SessionLocal, engine
from realestate_api.core.logging import configure_logging
from realestate_api.core.security import get_password_hash
from realestate_api import models  # noqa: F401
from realestate_api.models.user import User, UserRole

logger = logging.getLogger(__name__)


def create_user(username: str, full_name: str, password: str, role: UserRole, email: str | None = None) -> bool:
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.username == username).first()
        if existing:
            logger.info("user already exists: %s", username)
            return False

        user = User(
            username=username,
            email=email or None,
            full_name=full_name,
            hashed_password=get_password_hash(password),
            role=role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        logger.info("created %s: %s", role.value, username)
        return True
    finally:
        db.close()


def main() -> None:
    configure_logging()
    settings = get_settings()
    Base.metadata.create_all(bind=engine)
    # Credentials only come from the environment.
    if settings.BOOTSTRAP_ADMIN_USERNAME and settings.BOOTSTRAP_ADMIN_PASSWORD:
        create_user(
            settings.BOOTSTRAP_ADMIN_USERNAME,
            "Marketplace Admin",
            settings.BOOTSTRAP_ADMIN_PASSWORD,
            UserRole.ADMIN,
            email=settings.BOOTSTRAP_ADMIN_EMAIL,
        )
    else:
        logger.warning(
            "bootstrap skipped: set BOOTSTRAP_ADMIN_USERNAME and BOOTSTRAP_ADMIN_PASSWORD to create an admin user"
        )


if __name__ == "__main__":
    main()
