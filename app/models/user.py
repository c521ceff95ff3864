"""
User Model
Accounts with a prepaid credit balance.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer

from app.core.database import Base


class User(Base):
    """Account record. ``balance`` is held in cents of BILLING_CURRENCY."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    name = Column(String, nullable=True)

    balance = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.id} {self.email}>"
