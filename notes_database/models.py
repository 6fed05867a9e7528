from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime, timezone


def utcnow():
    """Naive UTC timestamp; SQLite DateTime columns do not keep tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


Base = declarative_base()

# PUBLIC_INTERFACE
class User(Base):
    """
    SQLAlchemy model for a registered user. Never updated once created.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(64), unique=True, index=True, nullable=False)
    hashed_password = Column(String(256), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    notes = relationship("Note", back_populates="owner")

# PUBLIC_INTERFACE
class Note(Base):
    """
    SQLAlchemy model for a note. Exactly one owner per note.
    """
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(128), nullable=False)
    content = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=utcnow)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    owner = relationship("User", back_populates="notes")

    __table_args__ = (
        Index("ix_notes_user_title", "user_id", "title"),
    )

# PUBLIC_INTERFACE
class WebSession(Base):
    """
    SQLAlchemy model for a server-side login session.

    user_id and username are a denormalized copy of the identity; both are
    NULL for an anonymous session. There is no foreign key on purpose so a
    session row can be read without touching the users table.
    """
    __tablename__ = "sessions"

    id = Column(String(64), primary_key=True)
    user_id = Column(Integer, nullable=True)
    username = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_access = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)
