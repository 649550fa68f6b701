from sqlalchemy import Column, DateTime, Integer, String

from ..database import Base, utcnow


class User(Base):
    """SQLAlchemy model for admin users."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
