"""Seed the reference categories and the admin user.

Run with ``glowfolio-seed`` (or ``python -m glowfolio.seed``). Existing rows
are left untouched, so the command can be repeated safely.
"""

import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from .auth import hash_password
from .config import Settings
from .database import Category, create_db_engine, create_session_factory, init_db
from .models.user import User

logger = logging.getLogger(__name__)

CATEGORIES: List[Dict[str, object]] = [
    {
        "name_cs": "Svatební líčení",
        "slug": "svatebni-liceni",
        "display_order": 1,
        "parent_section": "liceni",
    },
    {
        "name_cs": "Líčení na plesy a večírky",
        "slug": "liceni-na-plesy-a-vecirky",
        "display_order": 2,
        "parent_section": "liceni",
    },
    {
        "name_cs": "Slavnostní líčení",
        "slug": "slavnostni-liceni",
        "display_order": 3,
        "parent_section": "liceni",
    },
    {
        "name_cs": "Líčení pro focení",
        "slug": "liceni-pro-foceni",
        "display_order": 4,
        "parent_section": "liceni",
    },
]


def seed_categories(session: Session) -> int:
    """Insert missing categories, returning how many were created."""
    created = 0
    for data in CATEGORIES:
        if session.query(Category).filter(Category.slug == data["slug"]).first():
            logger.info("category already exists: %s", data["slug"])
            continue
        session.add(Category(**data))
        created += 1
        logger.info("created category: %s", data["slug"])
    session.commit()
    return created


def seed_admin_user(session: Session, settings: Settings) -> User:
    """Create the admin user unless one with the configured username exists."""
    user = session.query(User).filter(User.username == settings.admin_username).first()
    if user:
        logger.info("admin user already exists: %s", settings.admin_username)
        return user

    user = User(
        username=settings.admin_username,
        password_hash=hash_password(settings.admin_password),
        email=settings.admin_email,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("created admin user: %s <%s>", user.username, user.email)
    return user


def run_seed(settings: Settings | None = None) -> None:
    settings = settings or Settings()
    engine = create_db_engine(settings.database_url, echo=settings.database_echo)
    init_db(engine)
    session = create_session_factory(engine)()
    try:
        seed_categories(session)
        seed_admin_user(session, settings)
    except Exception:
        session.rollback()
        logger.exception("seeding failed")
        raise
    finally:
        session.close()
        engine.dispose()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
    run_seed()


if __name__ == "__main__":
    main()
