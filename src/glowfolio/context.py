"""Per-application state shared by request handlers.

The engine, session factory, rate limiter, image storage and mailer are
owned by one :class:`AppContext` created in :func:`glowfolio.api.create_app`
and stored on ``app.state``; handlers receive it through dependencies.
"""

from dataclasses import dataclass
from typing import Generator

from fastapi import Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import Settings
from .database import create_db_engine, create_session_factory
from .mailer import ContactMailer
from .storage import ImageStorage

API_LIMIT_MESSAGE = "Příliš mnoho požadavků. Zkuste to prosím později."
LOGIN_LIMIT_MESSAGE = "Příliš mnoho pokusů o přihlášení. Zkuste to prosím později."


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    limiter: Limiter
    storage: ImageStorage
    mailer: ContactMailer

    def api_limit(self):
        """Decorator applying the request budget shared by every ``/api`` route."""
        return self.limiter.shared_limit(
            self.settings.api_rate_limit, scope="api", error_message=API_LIMIT_MESSAGE
        )

    def login_limit(self):
        return self.limiter.limit(
            self.settings.login_rate_limit, error_message=LOGIN_LIMIT_MESSAGE
        )

    def dispose(self) -> None:
        self.engine.dispose()


def build_context(settings: Settings) -> AppContext:
    engine = create_db_engine(settings.database_url, echo=settings.database_echo)
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=create_session_factory(engine),
        limiter=Limiter(
            key_func=get_remote_address,
            enabled=settings.rate_limit_enabled,
            storage_uri="memory://",
        ),
        storage=ImageStorage(settings.upload_dir, settings.max_file_size),
        mailer=ContactMailer(settings),
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_db(ctx: AppContext = Depends(get_context)) -> Generator[Session, None, None]:
    """Provide a session scoped to one request."""
    db = ctx.session_factory()
    try:
        yield db
    finally:
        db.close()
