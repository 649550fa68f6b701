"""Database setup and models for portfolio categories and images."""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for ``database_url``.

    SQLite connections are shared with the threadpool that runs request
    handlers and get foreign key enforcement switched on.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(database_url, echo=echo, future=True, connect_args=connect_args)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


class Category(Base):
    """A named grouping of portfolio images."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name_cs = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    parent_section = Column(String(100), index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    images = relationship("Image", back_populates="category")

    def __repr__(self):
        return f"<Category {self.slug}>"


class Image(Base):
    """An uploaded portfolio image and where it lives on disk."""

    __tablename__ = "images"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(
        Integer, ForeignKey("categories.id"), index=True, nullable=False
    )
    filename = Column(String(255), nullable=False)
    original_filename = Column(String(255), nullable=False)
    file_path = Column(String(1024), nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    category = relationship("Category", back_populates="images")

    def __repr__(self):
        return f"<Image {self.filename}>"


def init_db(engine: Engine) -> None:
    """Create database tables if they do not exist."""
    # the users table lives in its own module but shares this metadata
    from .models import user  # noqa: F401

    Base.metadata.create_all(bind=engine)
