"""
Driver database model.
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from backend.app.db.session import Base


class Driver(Base):
    """
    Driver profile.

    user_id links to the auth service's user (the `user_id` claim in the JWT).
    """
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Driver(id={self.id}, user_id={self.user_id}, name='{self.name}')>"
