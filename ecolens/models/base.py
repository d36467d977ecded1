import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.orm import declarative_base

# Define the base class for declarative class definitions
Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel(Base):
    """
    Base class which provides automated id, created_at, and updated_at columns.
    Primary keys are UUIDs generated on the application side.
    """
    __abstract__ = True # Prevents SQLAlchemy from trying to create a table for this class

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False
    )

    # Audit timestamps (microsecond precision, so newest-first ordering is stable)
    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True
    )

    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )

from . import user           # Imports User model
from . import report         # Imports ViolationReport model
