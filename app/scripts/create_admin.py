import logging
import os

from app.core.logging import setup_logging
from app.core.security import hash_password
from app.db.session import SessionLocal, engine, Base
from app.db.models import _all
from app.db.models.user import User

logger = logging.getLogger("app.scripts.create_admin")


def create_admin_user(
    email: str = os.getenv("ADMIN_EMAIL", "administrador@example.com"),
    name: str = os.getenv("ADMIN_NAME", "ADMINISTRADOR"),
    password: str = os.getenv("ADMIN_PASSWORD", "admin123"),  # 👉 luego la cambias
):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        existing_user = db.query(User).filter(User.email == email).first()

        if existing_user:
            logger.warning("Ya existe un usuario con el email %s (rol: %s)", existing_user.email, existing_user.role)
            return existing_user

        admin_user = User(
            email=email,
            name=name,
            hashed_password=hash_password(password),
            role="admin"
        )

        db.add(admin_user)
        db.commit()

        logger.info("Usuario administrador creado: %s", email)
        logger.warning("Cambia la contraseña cuanto antes")
        return admin_user

    except Exception:
        db.rollback()
        logger.exception("Error creando el usuario administrador")
        raise

    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    create_admin_user()
