from sqlalchemy import Column, String, Boolean
from .base import BaseModel


class User(BaseModel):
    """Corresponds to the 'users' table. Reporters are identified by these rows."""
    __tablename__ = 'users'

    name = Column(String(100), nullable=False)
    # Stored lower-cased; login normalizes before lookup
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
